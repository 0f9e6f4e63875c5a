"""
User model for the Library API.

Users are library members who borrow books. They are never removed; a user
who leaves is deactivated, which keeps their loan history intact.
"""

import re
from datetime import date

from pydantic import BaseModel, ConfigDict, Field

# local-part@domain.tld, no whitespace and a single "@"
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_email_shape(value: str) -> str:
    """Reject addresses that do not look like ``local@domain.tld``."""
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Email address is not valid")
    return value


class User(BaseModel):
    """Represents a registered library member."""

    id: int = Field(..., description="Database identifier of the user")

    full_name: str = Field(
        ...,
        description="Full name of the user",
        examples=["Jane Doe", "María García"],
    )

    email: str = Field(
        ...,
        description="Email address, unique across users",
        examples=["jane.doe@example.com"],
    )

    phone: str = Field(..., description="Contact phone number", examples=["555-123-4567"])

    address: str | None = Field(None, description="Postal address")

    registration_date: date = Field(..., description="Date the user registered")

    is_active: bool = Field(default=True, description="False once the user is deactivated")

    model_config = ConfigDict(from_attributes=True)
