"""Pydantic models for contact entities.

``related_people`` is a list of by-name references, not entity links:
a reference is resolved only by exact name lookup, and may point at a
contact that does not exist (yet). Entities are serialized by alias
(``relatedPeople``) whenever they leave the process.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RelatedPersonRef(BaseModel):
    """A weak reference to another contact, keyed by name."""

    name: str
    relationship: str = ""


class ContactEntity(BaseModel):
    """A person or organization node in the contact graph."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    name: str
    title: str = ""
    organization: str = ""
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    tags: list[str] = Field(default_factory=list)
    summary: str = ""
    notes: str = ""  # Free text, appended to (never replaced) on merge
    related_people: list[RelatedPersonRef] = Field(
        default_factory=list, alias="relatedPeople"
    )

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))

    def has_unique_related_names(self) -> bool:
        names = [ref.name for ref in self.related_people]
        return len(names) == len(set(names))

    def related_names(self) -> set[str]:
        return {ref.name for ref in self.related_people}

    def to_payload(self) -> dict[str, Any]:
        """Serialize the way the oracle and the snapshot file see it."""
        return self.model_dump(by_alias=True)


def dedupe_related(refs: list[RelatedPersonRef]) -> list[RelatedPersonRef]:
    """Drop references whose name was already seen. First occurrence wins."""
    seen: set[str] = set()
    result = []
    for ref in refs:
        if ref.name in seen:
            continue
        seen.add(ref.name)
        result.append(ref)
    return result
