from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Platform(str, Enum):

    IOS = "ios"
    ANDROID = "android"
    WEB = "web"
    UNKNOWN = "unknown"


class Device(BaseModel):

    model_config = ConfigDict(frozen=True)

    device_id: str
    platform: Platform = Platform.UNKNOWN
    user_id: Optional[str] = None
    push_token: Optional[str] = None
    is_active: bool = True
    app_version: Optional[str] = None
    model: Optional[str] = None
    os_version: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("platform", mode="before")
    @classmethod
    def _coerce_platform(cls, value):
        if isinstance(value, Platform):
            return value
        try:
            return Platform(str(value).lower())
        except ValueError:
            return Platform.UNKNOWN


class DeviceRegister(BaseModel):

    device_id: str = Field(min_length=1, alias="deviceId")
    push_token: str = Field(min_length=1, alias="pushToken")
    platform: str
    app_version: Optional[str] = Field(default=None, alias="appVersion")
    model: Optional[str] = None
    os_version: Optional[str] = Field(default=None, alias="osVersion")

    model_config = ConfigDict(populate_by_name=True)


class DeviceLink(BaseModel):

    device_id: str = Field(min_length=1, alias="deviceId")

    model_config = ConfigDict(populate_by_name=True)


class DeviceLinkage(BaseModel):

    model_config = ConfigDict(frozen=True)

    linked: List[Device] = Field(default_factory=list)
    unlinked: List[Device] = Field(default_factory=list)
    foreign_count: int = 0

    @property
    def deliverable(self) -> List[Device]:
        return [d for d in self.linked if d.push_token]

    @property
    def linked_without_token(self) -> List[Device]:
        return [d for d in self.linked if not d.push_token]
