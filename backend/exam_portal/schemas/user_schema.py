from fastapi_users import schemas
from typing import Optional
import uuid
from pydantic import BaseModel


class UserRead(schemas.BaseUser[uuid.UUID]):
    full_name: Optional[str] = None


class UserCreate(schemas.BaseUserCreate):
    full_name: Optional[str] = None


class UserUpdate(schemas.BaseUserUpdate):
    full_name: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str
