from fastapi import APIRouter, Depends

from push_registry.api.deps import get_current_user_id, get_notification_service
from push_registry.models.device import Device
from push_registry.models.document import Document
from push_registry.schemas.devices import DeviceRegisterRequest, DeviceRegisterResponse, DeviceUnregisterRequest
from push_registry.services.push import NotificationService

router = APIRouter(prefix="/devices", tags=["devices"])


@router.post("/register", response_model=DeviceRegisterResponse)
async def register_device(
    payload: DeviceRegisterRequest,
    user_id: str = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    await service.register_device(user_id, payload)
    return DeviceRegisterResponse(ok=True)


@router.post("/unregister", response_model=DeviceRegisterResponse)
async def unregister_device(
    payload: DeviceUnregisterRequest,
    user_id: str = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    await service.unregister_device(user_id, payload.notification_token, payload.platform)
    return DeviceRegisterResponse(ok=True)


@router.get("", response_model=list[Document[Device]])
async def list_devices(
    user_id: str = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.list_devices(user_id)
