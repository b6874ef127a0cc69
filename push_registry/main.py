import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from push_registry.api.router import api_router
from push_registry.core.config import get_settings

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, version=settings.app_version)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router, prefix=settings.api_v1_prefix)
    logger.info("%s started in %s mode.", settings.app_name, settings.app_env)

    return app


app = create_app()
