from datetime import datetime

from pydantic import BaseModel


class DeviceTokenBase(BaseModel):
    token: str
    platform: str


class DeviceTokenCreate(DeviceTokenBase):
    pass


class DeviceTokenResponse(DeviceTokenBase):
    id: str
    user_id: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
