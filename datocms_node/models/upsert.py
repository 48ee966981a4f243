"""Upsert resolution models."""

from typing import Any

from pydantic import BaseModel, Field

from datocms_node.models.enums import UpsertState


class UpsertOutcome(BaseModel):
    """Result of a resolved upsert.

    ``state_path`` lists every state the resolver passed through, ending in
    RESOLVED.
    """

    record: dict[str, Any] = Field(..., description="Created, updated or published record")
    created: bool = Field(..., description="True when no match existed")
    match_criterion: dict[str, Any] = Field(
        default_factory=dict, description="Matching field keys and their values"
    )
    published: bool = Field(default=False)
    state_path: list[UpsertState] = Field(default_factory=list)
