from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class TeamCreate(BaseModel):
    name: str = Field(..., max_length=100)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required.")
        return v


class TeamUpdate(TeamCreate):
    """Same rules as creation: a trimmed, non-empty name."""


class TeamMemberCreate(BaseModel):
    user_id: str = Field(..., min_length=1)


class TeamResponse(BaseModel):
    id: str
    name: str
    created_at: datetime

    class Config:
        from_attributes = True


class TeamMemberResponse(BaseModel):
    id: str
    team_id: str
    user_id: str
    created_at: datetime

    class Config:
        from_attributes = True


