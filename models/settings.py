from pydantic import BaseModel, Field
from typing import Optional

class SettingsUpdate(BaseModel):
    default_points_first: Optional[int] = Field(None, ge=0)
    default_points_repeat: Optional[int] = Field(None, ge=0)
    bible_version: Optional[str] = Field(None, min_length=1, max_length=16)

    class Config:
        extra = "forbid"
