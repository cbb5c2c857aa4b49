from datetime import datetime
from typing import Literal, Optional, TypedDict


PlanName = Literal["free", "premium"]


class UserDocument(TypedDict, total=False):

    _id: str
    email: str
    name: Optional[str]
    plan: PlanName
    is_active: bool
    expiry_date: Optional[datetime]
    trial_started_at: Optional[datetime]
    trial_ended_at: Optional[datetime]
    subscription_started_at: Optional[datetime]
