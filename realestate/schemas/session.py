"""
Schemas for the client session endpoints.
"""

from pydantic import BaseModel, Field
from typing import Optional


class SessionCreate(BaseModel):
    """Session token issued by the authentication provider."""

    token: str = Field(..., min_length=1)


class SessionResponse(BaseModel):
    """Current session state."""

    user_id: Optional[str] = None
    authenticated: bool = False
    favorites_count: int = 0


class FavoriteToggleResponse(BaseModel):
    """Favorite status after a toggle."""

    property_id: str
    is_favorite: bool
