"""Strict request base: unexpected fields are rejected."""

from pydantic import BaseModel, ConfigDict


class StrictRequestModel(BaseModel):
    """Input payload base that forbids unknown keys."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)
