from typing import Optional

from pydantic import BaseModel, field_validator

from financetracker.roles import Role


class UserProfile(BaseModel):
    """Row of `user_profiles`, keyed by the identity provider's user id."""

    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: Role = Role.VIEWER
    company_name: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("role", mode="before")
    @classmethod
    def _coerce_role(cls, value):
        return Role.parse(value)
