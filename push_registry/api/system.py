from fastapi import APIRouter

from push_registry.core.config import get_settings

router = APIRouter(tags=["system"])


@router.get("/health")
def health():
    settings = get_settings()
    return {"status": "ok", "version": settings.app_version}


@router.get("/system/info")
def system_info():
    settings = get_settings()
    return {
        "app_name": settings.app_name,
        "app_env": settings.app_env,
        "app_version": settings.app_version,
        "devices_collection": settings.devices_collection,
        "user_devices_path_template": settings.user_devices_path_template,
        "push_credentials_exists": settings.firebase_credentials_path.exists(),
    }
