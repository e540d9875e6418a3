from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from aidogs.utils.clock import as_utc

# SQLite hands back naive datetimes; every timestamp leaves the API with a UTC offset
UtcDateTime = Annotated[datetime, AfterValidator(as_utc)]


class CamelModel(BaseModel):
    """Wire format of the mini-app: camelCase keys, snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class TelegramProfile(BaseModel):
    """The ``user`` object the Telegram WebApp hands to the frontend."""

    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    language_code: Optional[str] = None
    allows_write_to_pm: Optional[bool] = True

    model_config = ConfigDict(extra="ignore", from_attributes=True)


class UserRequest(CamelModel):
    user: TelegramProfile


class ClaimRequest(UserRequest):
    claim_key: str = Field(..., alias="claimTreshold")

    @field_validator("claim_key", mode="before")
    @classmethod
    def _coerce_claim_key(cls, value):
        # Daily slots are numeric on the client (5, 10, ... 35)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(int(value)) if float(value).is_integer() else str(value)
        if isinstance(value, str):
            value = value.strip()
        if not value:
            raise ValueError("claimTreshold is required")
        return value
