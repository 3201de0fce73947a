from pydantic import BaseModel, Field, field_validator
from typing import Literal, Optional, Union

RecordType = Literal["first", "repeat"]
BonusCategory = Literal["legacy", "bonus", "correction", "other"]

class VerseRecordCreate(BaseModel):
    user_id: int
    # Either a memory item id or a verse reference such as "John 3:16"
    memory_item_id: Union[int, str]
    record_type: Optional[RecordType] = None

class SpendCreate(BaseModel):
    user_id: int
    points_spent: int = Field(..., gt=0)
    note: Optional[str] = None

class SpendUpdate(BaseModel):
    note: Optional[str] = None
    points_spent: Optional[int] = Field(None, gt=0)

    class Config:
        extra = "forbid"

class BonusCreate(BaseModel):
    user_id: int
    points_awarded: int
    reason: str
    category: BonusCategory = "bonus"
    awarded_by: Optional[str] = None

    @field_validator("points_awarded")
    @classmethod
    def non_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("points_awarded must be a non-zero number")
        return v

    @field_validator("reason")
    @classmethod
    def reason_present(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("reason cannot be empty")
        return v
