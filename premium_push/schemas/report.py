from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from premium_push.schemas.dispatch import DispatchBatch
from premium_push.schemas.entitlement import EntitlementResult


class ReportStatus(str, Enum):

    NOT_ENTITLED = "not_entitled"
    NO_DELIVERABLE_DEVICES = "no_deliverable_devices"
    DRY_RUN = "dry_run"
    DISPATCHED = "dispatched"


class IntegrityWarning(BaseModel):

    model_config = ConfigDict(frozen=True)

    kind: str = "unlinked_devices"
    device_ids: List[str]
    message: str


class LinkedDeviceView(BaseModel):

    model_config = ConfigDict(frozen=True)

    device_id: str
    platform: str
    token_preview: str


class LinkageSummary(BaseModel):

    model_config = ConfigDict(frozen=True)

    linked: List[LinkedDeviceView] = Field(default_factory=list)
    unlinked_device_ids: List[str] = Field(default_factory=list)
    linked_without_token: List[str] = Field(default_factory=list)
    foreign_count: int = 0
    integrity_warning: Optional[IntegrityWarning] = None


class Report(BaseModel):

    model_config = ConfigDict(frozen=True)

    email: str
    user_id: str
    checked_at: datetime
    status: ReportStatus
    reason: str
    entitlement: EntitlementResult
    linkage: LinkageSummary
    dispatch: Optional[DispatchBatch] = None
    deactivated_device_ids: List[str] = Field(default_factory=list)


class PremiumCheckRequest(BaseModel):

    email: EmailStr
    title: Optional[str] = None
    body: Optional[str] = None
    dry_run: bool = False
