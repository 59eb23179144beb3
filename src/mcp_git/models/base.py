"""Base model for canonical provider entities."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class CanonicalModel(BaseModel):
    """Base model with common behavior for all platform-agnostic models."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class ParamsModel(CanonicalModel):
    """Base for caller-supplied parameter sets."""

    model_config = {"extra": "forbid", "populate_by_name": True}

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
