from pydantic import BaseModel, Field

from push_registry.models.common import FirestoreModel
from push_registry.models.device import Device


class DeviceRegisterRequest(Device):
    pass


class DeviceUnregisterRequest(FirestoreModel):
    notification_token: str = Field(..., min_length=1)
    platform: str = Field(..., min_length=1)


class DeviceRegisterResponse(BaseModel):
    ok: bool
