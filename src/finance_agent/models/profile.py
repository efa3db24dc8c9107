"""User profile model."""

from datetime import datetime

from pydantic import BaseModel, Field


class UserProfile(BaseModel):
    """Basic identity details for the signed-in user."""

    id: str = Field(description="User identifier")
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def display_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) if parts else (self.email or self.id)
