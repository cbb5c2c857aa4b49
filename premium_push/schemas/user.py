from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class Plan(str, Enum):

    FREE = "free"
    PREMIUM = "premium"


class User(BaseModel):

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    name: Optional[str] = None
    plan: Plan = Plan.FREE
    is_active: bool = True
    expiry_date: Optional[datetime] = None
    trial_started_at: Optional[datetime] = None
    trial_ended_at: Optional[datetime] = None
