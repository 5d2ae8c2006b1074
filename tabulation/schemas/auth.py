"""
Authentication request/response models.
"""
from typing import Optional

from pydantic import BaseModel, Field

from tabulation.orm.accounts import PrincipalRole


class LoginRequest(BaseModel):
    role: PrincipalRole = Field(..., description="Role to sign in as")
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: PrincipalRole
    principal_id: int
    full_name: str
    event_id: Optional[int] = None
    is_chairman: bool = False
