"""Authentication token model."""

from __future__ import annotations

import time

from pydantic import AliasChoices, Field, field_validator

from pytractive.ingestion.normalize import safe_float
from pytractive.models._base import TractiveBaseModel


class AccessToken(TractiveBaseModel):
    """Bearer token returned by ``/auth/token``.

    Parameters
    ----------
    user_id : str
        The authenticated user's ID.
    access_token : str
        Bearer token attached to every authenticated request.
    expires_at : float or None
        Expiry as epoch seconds, when the server reports one.
    """

    user_id: str = Field(default="", validation_alias=AliasChoices("user_id", "userId"))
    access_token: str = Field(..., validation_alias=AliasChoices("access_token", "accessToken"))
    expires_at: float | None = Field(default=None, validation_alias=AliasChoices("expires_at", "expiresAt"))

    @field_validator("expires_at", mode="before")
    @classmethod
    def _coerce_expiry(cls, value: object) -> float | None:
        return safe_float(value)

    @property
    def is_expired(self) -> bool:
        """Whether the token has passed its reported expiry."""
        if self.expires_at is None:
            return False
        return time.time() >= self.expires_at
