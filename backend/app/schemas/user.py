from pydantic import BaseModel


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class ProfileResponse(BaseModel):
    id: str | None = None
    name: str
    email: str
    profile_pic: str


class ProfileUpdate(BaseModel):
    name: str | None = None
    email: str | None = None
    profile_pic: str | None = None
