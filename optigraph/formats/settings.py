"""Pydantic model for the Graph connection settings."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

DEFAULT_ENDPOINT = "https://cg.optimizely.com/content/v2"


class AuthMode(str, Enum):
    NONE = "None"
    SINGLE_KEY = "SingleKey"
    HMAC = "Hmac"

    @classmethod
    def _missing_(cls, value: object) -> AuthMode | None:
        # Accept "none", "single-key", "single_key", "HMAC", ...
        if not isinstance(value, str):
            return None
        wanted = value.replace("-", "").replace("_", "").lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        return None


class GraphSettings(BaseModel):
    endpoint: str = DEFAULT_ENDPOINT
    auth_mode: AuthMode = AuthMode.SINGLE_KEY
    single_key: str | None = None
    app_key: str | None = None
    secret: str | None = None
    default_locale: str | None = "en"
    save_query_history: bool = True
    max_history_items: int = Field(default=50, ge=1)
    timeout: float = Field(default=30.0, gt=0)

    model_config = {"populate_by_name": True, "alias_generator": to_camel}

    def missing_credentials(self) -> list[str]:
        """Names of the credential fields the selected auth mode still needs."""
        if self.auth_mode is AuthMode.SINGLE_KEY:
            return [] if self.single_key else ["single_key"]
        if self.auth_mode is AuthMode.HMAC:
            return [name for name in ("app_key", "secret") if not getattr(self, name)]
        return []
