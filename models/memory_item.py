from pydantic import BaseModel, Field
from typing import Literal, Optional

ItemType = Literal["verse", "custom"]

class MemoryItemCreate(BaseModel):
    type: ItemType = "verse"
    reference: str = Field(..., min_length=1)
    text: Optional[str] = None
    points_first: Optional[int] = Field(None, ge=0)
    points_repeat: Optional[int] = Field(None, ge=0)
    active: bool = True
    bible_version: Optional[str] = None

class MemoryItemUpdate(BaseModel):
    type: Optional[ItemType] = None
    reference: Optional[str] = Field(None, min_length=1)
    text: Optional[str] = None
    points_first: Optional[int] = Field(None, ge=0)
    points_repeat: Optional[int] = Field(None, ge=0)
    active: Optional[bool] = None
    bible_version: Optional[str] = None

    class Config:
        extra = "forbid"
