from typing import Optional, Dict, Any
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, EmailStr


# =========================
# Enums
# =========================
class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


# =========================
# USER
# =========================
class UserBase(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    email: EmailStr


class CreateUser(UserBase):
    password: str = Field(min_length=8)
    model_config = ConfigDict(from_attributes=True)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(UserBase):
    id: str
    role: UserRole
    banned: bool
    ban_reason: Optional[str] = None
    created_at: int

    model_config = ConfigDict(from_attributes=True)


class AdminCreateUser(CreateUser):
    role: UserRole = UserRole.USER


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None


class PasswordUpdate(BaseModel):
    new_password: str = Field(min_length=8)


class RoleUpdate(BaseModel):
    role: UserRole


class BanRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


# =========================
# SESSIONS
# =========================
class SessionResponse(BaseModel):
    id: str
    user_id: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    impersonated_by: Optional[str] = None
    expires_at: int
    created_at: int
    updated_at: int

    model_config = ConfigDict(from_attributes=True)


class RevokedSessions(BaseModel):
    revoked: int


# =========================
# ADMIN DASHBOARD
# =========================
class AdminStatsResponse(BaseModel):
    total_users: int
    active_sessions: int
    banned_users: int


# =========================
# DATABASE BROWSER
# =========================
class RowDataRequest(BaseModel):
    """Column values for insert / whole-row update, keyed by column name."""

    data: Dict[str, Any]


class CellUpdateRequest(BaseModel):
    value: Any = None
