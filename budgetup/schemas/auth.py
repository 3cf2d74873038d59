import uuid

from pydantic import BaseModel, EmailStr, Field

class RequestLinkIn(BaseModel):
    email: EmailStr

class RequestLinkOut(BaseModel):
    sent: bool = True
    # only echoed outside prod, where no mail is sent
    token: str | None = None
    link: str | None = None

class RedeemIn(BaseModel):
    token: str = Field(min_length=1)

class AccessTokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: uuid.UUID
    email: str
