from typing import List, Optional

from pydantic import BaseModel


class FriendResponse(BaseModel):
    id: str
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    class Config:
        from_attributes = True


class DeviceContact(BaseModel):
    """A contact as read from the device address book."""
    id: Optional[str] = None
    name: Optional[str] = None
    phone_numbers: List[str] = []
    emails: List[str] = []

    @property
    def primary_phone(self) -> Optional[str]:
        return self.phone_numbers[0] if self.phone_numbers else None


class SelectableContactsRequest(BaseModel):
    contacts: List[DeviceContact]
