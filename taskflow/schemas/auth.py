import uuid

from pydantic import BaseModel, EmailStr

class SignupIn(BaseModel):
    email: EmailStr
    full_name: str | None = None
    # free text on purpose: unknown roles fall back to "user"
    role: str | None = None

class SignupOut(BaseModel):
    user_id: uuid.UUID
    created: bool
    token: str | None = None
    link: str | None = None

class RequestLinkIn(BaseModel):
    email: EmailStr

class RequestLinkOut(BaseModel):
    sent: bool = True
    token: str | None = None
    link: str | None = None

class RedeemIn(BaseModel):
    token: str

class AccessTokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
