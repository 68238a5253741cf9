"""Pydantic models for oracle requests, replies and evidence.

The oracle answers with a ``ProfilePatch``: every field optional, because
a patch only carries what the oracle actually said. Requests are tagged
with a mode, STRICT (schema-validated JSON) or GROUNDED (web access,
free text expected to contain JSON). The two are mutually exclusive.
"""

import base64
import logging
import mimetypes
from enum import Enum
from pathlib import Path
from typing import Any, Literal
from urllib.parse import urlparse

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from contact_graph.graph.models import RelatedPersonRef

logger = logging.getLogger(__name__)

# Patch fields that map one-to-one onto ContactEntity fields
PATCH_FIELDS = (
    "name",
    "title",
    "organization",
    "email",
    "phone",
    "location",
    "tags",
    "summary",
    "related_people",
)


class ProfilePatch(BaseModel):
    """A (partial) structured profile returned by the oracle."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str | None = None
    title: str | None = None
    organization: str | None = Field(
        default=None, validation_alias=AliasChoices("organization", "company")
    )
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    tags: list[str] | None = None
    summary: str | None = None
    related_people: list[RelatedPersonRef] | None = Field(
        default=None,
        validation_alias=AliasChoices("relatedPeople", "related_people"),
    )

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tag_string(cls, v: Any) -> Any:
        # Some models answer "AI, Mobile" instead of a list
        if isinstance(v, str):
            return [t.strip() for t in v.replace("，", ",").split(",") if t.strip()]
        return v

    @field_validator("related_people", mode="before")
    @classmethod
    def _drop_malformed_refs(cls, v: Any) -> Any:
        if not isinstance(v, list):
            return v
        kept = []
        for item in v:
            if isinstance(item, RelatedPersonRef):
                kept.append(item)
                continue
            if not isinstance(item, dict) or not isinstance(item.get("name"), str):
                logger.warning(f"Skipping malformed related person entry: {item!r}")
                continue
            relationship = item.get("relationship")
            kept.append({
                "name": item["name"],
                "relationship": relationship if isinstance(relationship, str) else "",
            })
        return kept

    def provided(self) -> dict[str, Any]:
        """Fields the oracle actually returned with a non-null value."""
        return {
            field: getattr(self, field)
            for field in PATCH_FIELDS
            if field in self.model_fields_set and getattr(self, field) is not None
        }


class SourceRef(BaseModel):
    """A web source backing a research summary."""

    title: str = "Web Source"
    url: str | None = None
    source: str = ""  # Hostname, shown next to the title
    snippet: str = ""

    @classmethod
    def from_url(cls, url: str, title: str = "") -> "SourceRef":
        return cls(
            title=title or "Web Source",
            url=url,
            source=urlparse(url).hostname or "",
        )


class SearchResults(BaseModel):
    """Summary and sources from a grounded research call."""

    summary: str = ""
    sources: list[SourceRef] = Field(default_factory=list)


class ImageBlob(BaseModel):
    """An image passed to the oracle as evidence (base64, no data: prefix)."""

    data: str
    mime_type: str = "image/jpeg"

    @classmethod
    def from_data_url(cls, value: str) -> "ImageBlob":
        if value.startswith("data:") and "," in value:
            header, data = value.split(",", 1)
            mime = header[len("data:"):].split(";", 1)[0] or "image/jpeg"
            return cls(data=data, mime_type=mime)
        return cls(data=value)

    @classmethod
    def from_path(cls, path: Path) -> "ImageBlob":
        mime, _ = mimetypes.guess_type(path.name)
        data = base64.b64encode(path.read_bytes()).decode("ascii")
        return cls(data=data, mime_type=mime or "image/jpeg")

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


class EvidenceBundle(BaseModel):
    """Everything a caller knows about a contact beyond its current record.

    ``trusted_sources=None`` means no source vetting happened and the web
    summary is used as-is; an empty list means every source was excluded,
    which drops the web summary entirely.
    """

    web_summary: str | None = None
    trusted_sources: list[SourceRef] | None = None
    manual_text: str | None = None
    manual_images: list[ImageBlob] = Field(default_factory=list)

    @property
    def usable_web_summary(self) -> str | None:
        if not self.web_summary or not self.web_summary.strip():
            return None
        if self.trusted_sources is not None and not self.trusted_sources:
            return None
        return self.web_summary

    @property
    def usable_manual_text(self) -> str | None:
        if not self.manual_text or not self.manual_text.strip():
            return None
        return self.manual_text

    def is_empty(self) -> bool:
        return (
            self.usable_web_summary is None
            and self.usable_manual_text is None
            and not self.manual_images
        )


class OracleMode(str, Enum):
    STRICT = "strict"
    GROUNDED = "grounded"


class OracleRequest(BaseModel):
    """A capability-tagged oracle call."""

    prompt: str
    mode: OracleMode = OracleMode.STRICT
    images: list[ImageBlob] = Field(default_factory=list)
    system_message: str | None = None


class OracleReply(BaseModel):
    """Raw oracle reply: text plus any URL citations from grounding."""

    text: str
    citations: list[SourceRef] = Field(default_factory=list)


OracleStatus = Literal["ok", "parse_error", "call_error"]


class OracleResult(BaseModel):
    """Tagged outcome of a profile-producing oracle call."""

    status: OracleStatus
    patch: ProfilePatch | None = None
    error: str = ""
    raw_text: str = ""

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @classmethod
    def success(cls, patch: ProfilePatch, raw_text: str = "") -> "OracleResult":
        return cls(status="ok", patch=patch, raw_text=raw_text)

    @classmethod
    def parse_error(cls, error: str, raw_text: str = "") -> "OracleResult":
        return cls(status="parse_error", error=error, raw_text=raw_text)

    @classmethod
    def call_error(cls, error: str) -> "OracleResult":
        return cls(status="call_error", error=error)
