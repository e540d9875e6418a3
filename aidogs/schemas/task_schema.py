from typing import Optional

from pydantic import Field

from aidogs.schemas.common import CamelModel, UtcDateTime


class TaskCreate(CamelModel):
    claim_key: str = Field(..., alias="claimTreshold", min_length=1, examples=["join-goats"])
    btn_text: Optional[str] = Field(None, examples=["Join"])  # frontend label
    task_text: Optional[str] = Field(None, examples=["Join the GOATS channel"])
    task_points: Optional[float] = None
    task_category: Optional[str] = None
    task_status: Optional[str] = None
    task_url: Optional[str] = None
    reward_claimed: bool = False


class TaskUpdate(CamelModel):
    claim_key: Optional[str] = Field(None, alias="claimTreshold")
    btn_text: Optional[str] = None
    task_text: Optional[str] = None
    task_points: Optional[float] = None
    task_category: Optional[str] = None
    task_status: Optional[str] = None
    task_url: Optional[str] = None
    reward_claimed: Optional[bool] = None


class TaskOut(TaskCreate):
    id: int
    created_at: Optional[UtcDateTime] = None
