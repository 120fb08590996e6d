"""
Account Models for Fintrack

DESIGN DECISION: The password hash lives only on UserRecord, which never
leaves the service layer. Everything returned to a caller is a UserPublic.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UserPublic(BaseModel):
    """The user fields that may be shown to anyone."""

    id: int
    name: str
    email: str


class UserRecord(UserPublic):
    """A stored user row, including the password hash."""

    password_hash: str = Field(..., repr=False)

    def to_public(self) -> UserPublic:
        return UserPublic(id=self.id, name=self.name, email=self.email)


class SignUpInput(BaseModel):
    # No str_strip_whitespace here: whitespace is part of a password.
    # The validator strips name and email itself.
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, repr=False)


class ProfileInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)


class UserFilter(BaseModel):
    """
    Equality filters accepted by the user listing.

    Only these fields may be filtered on; the listing never exposes
    arbitrary columns of the users table.
    """
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    id: Optional[int] = Field(default=None, ge=1)
    email: Optional[str] = Field(default=None, min_length=1)
