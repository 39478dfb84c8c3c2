import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from taskflow.models.enums import AppRole

class ProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    full_name: str | None
    avatar_url: str | None
    created_at: datetime
    updated_at: datetime

# checked by the store after the self-update policy
class ProfileUpdateIn(BaseModel):
    full_name: Any = None
    avatar_url: Any = None

class MeOut(BaseModel):
    profile: ProfileOut
    role: AppRole | None
