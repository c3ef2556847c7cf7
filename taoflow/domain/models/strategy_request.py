"""Caller-supplied input handed to strategy factories."""

import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StrategyRequest(BaseModel):
    """Opaque request payload. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    prompt: str = ""
    context: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)
