import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator


class SaveUserRequest(BaseModel):
    uid: str
    email: str | None = None
    name: str | None = None


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    firebase_uid: str
    email: str
    name: str | None
    created_at: datetime


class FriendCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        return v


class FriendResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    name: str
    created_at: datetime
