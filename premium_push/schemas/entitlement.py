from pydantic import BaseModel, ConfigDict


class EntitlementResult(BaseModel):

    model_config = ConfigDict(frozen=True)

    is_premium: bool
    is_trial: bool
    has_access: bool
