from pydantic import BaseModel, Field, field_validator
from typing import Literal, Optional

Role = Literal["admin", "leader", "student"]

class AuthUser(BaseModel):
    id: int
    name: str
    role: Role
    is_leader: bool = False

    class Config:
        from_attributes = True

class LoginRequest(BaseModel):
    name: Optional[str] = None
    password: Optional[str] = None

class UserCreate(BaseModel):
    name: str = Field(..., min_length=1)
    is_leader: bool = False
    notes: Optional[str] = None
    emoji_icon: Optional[str] = None
    legacy_points: Optional[int] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    is_leader: Optional[bool] = None
    notes: Optional[str] = None
    emoji_icon: Optional[str] = None
    display_accommodation_note: Optional[bool] = Field(None, alias="displayAccommodationNote")

    class Config:
        extra = "forbid"
        populate_by_name = True
