"""Pydantic models for merge and enrichment outcomes.

A merge that could not be applied is still a value, not an exception:
``status`` tells the caller whether the returned profile is a real merge,
the untouched single input, or a fail-closed fallback.
"""

from typing import Literal

from pydantic import BaseModel, Field

from contact_graph.graph.models import ContactEntity

MergeStatus = Literal["merged", "unchanged", "failed"]


class MergeOutcome(BaseModel):
    """Result of consolidating several profiles into one."""

    profile: ContactEntity
    status: MergeStatus
    error: str = ""

    @property
    def applied(self) -> bool:
        return self.status == "merged"


class EnrichmentOutcome(BaseModel):
    """An enriched contact plus the stub contacts discovered along the way."""

    updated_entity: ContactEntity
    newly_discovered: list[ContactEntity] = Field(default_factory=list)
