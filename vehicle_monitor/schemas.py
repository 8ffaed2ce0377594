# vehicle_monitor/schemas.py

from typing import Optional
from pydantic import BaseModel


class TokenPayload(BaseModel):
    user_id: int
    username: str


class Credentials(BaseModel):
    # Both optional so a missing field is reported as 400, not as a schema error
    username: Optional[str] = None
    password: Optional[str] = None


class UserOut(BaseModel):
    id: int
    username: str


class LoginResponse(BaseModel):
    message: str = "Login successful"
    token: str
    user: UserOut


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int
