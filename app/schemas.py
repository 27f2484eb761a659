from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ErrorBody(BaseModel):
    """JSON representation of an error when no view applies."""

    model_config = ConfigDict(extra="allow")

    timestamp: Optional[Union[datetime, str]] = None
    status: Union[int, str]
    error: Optional[str] = None
    exception: Optional[str] = None
    message: Optional[str] = None
    trace: Optional[str] = None
    path: Optional[str] = None


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    service: str = "error-views"
    resolvers: int = Field(ge=0)
