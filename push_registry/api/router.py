from fastapi import APIRouter

from push_registry.api import devices, system

api_router = APIRouter()
api_router.include_router(system.router)
api_router.include_router(devices.router)
