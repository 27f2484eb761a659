from __future__ import annotations

import json
from functools import lru_cache
from typing import Annotated, Dict, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


IncludeStacktrace = Literal["never", "always", "on_trace_param"]


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    Notes:
      - ERROR_VIEWS accepts either a JSON object or "404=not-found,5xx=server-error".
      - Extra env vars are ignored to keep upgrades painless.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ---- Runtime ----
    LOG_LEVEL: str = Field(default="INFO")
    HOST: str = Field(default="127.0.0.1")
    PORT: int = Field(default=8000, ge=1, le=65535)

    # ---- Error dispatch ----
    ERROR_PATH: str = Field(default="/error", description="Path of the error route")
    ERROR_INCLUDE_STACKTRACE: IncludeStacktrace = Field(default="never")
    ERROR_WHITELABEL_ENABLED: bool = Field(default=True, description="Render the fallback HTML page")

    # ---- Error view resolvers ----
    ERROR_PAGES_DIR: Optional[str] = Field(default=None, description="Directory holding 404.html, 5xx.html, ...")
    ERROR_PAGES_ORDER: Optional[int] = Field(default=None)
    ERROR_VIEWS: Annotated[Dict[str, str], NoDecode] = Field(default_factory=dict)
    ERROR_VIEWS_ORDER: Optional[int] = Field(default=None)

    @field_validator("ERROR_PATH")
    @classmethod
    def _normalize_error_path(cls, v: str) -> str:
        s = (v or "").strip()
        if not s:
            return "/error"
        if not s.startswith("/"):
            s = "/" + s
        return s.rstrip("/") or "/error"

    @field_validator("ERROR_INCLUDE_STACKTRACE", mode="before")
    @classmethod
    def _lower_policy(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("ERROR_PAGES_DIR", mode="before")
    @classmethod
    def _empty_dir_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("ERROR_VIEWS", mode="before")
    @classmethod
    def _parse_error_views(cls, v):
        if v is None or v == "":
            return {}
        if isinstance(v, dict):
            return {str(k).strip(): str(name).strip() for k, name in v.items()}
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("{"):
                return {str(k).strip(): str(name).strip() for k, name in json.loads(s).items()}
            views: Dict[str, str] = {}
            for pair in s.split(","):
                if not pair.strip():
                    continue
                key, sep, name = pair.partition("=")
                if not sep or not key.strip() or not name.strip():
                    raise ValueError(f"invalid ERROR_VIEWS entry: {pair!r}")
                views[key.strip()] = name.strip()
            return views
        raise ValueError("ERROR_VIEWS must be a mapping or a string")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
