from pydantic import BaseModel


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    user_id: str
    username: str
    role: str
    access_token: str
    token_type: str = "bearer"


class TechnicianResponse(BaseModel):
    id: str
    username: str
    email: str | None = None
    approved: bool

    model_config = {"from_attributes": True}
