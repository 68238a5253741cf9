"""In-memory contact store.

The store is an explicitly owned object handed to whatever needs it;
there is no module-level instance. It keeps entities in insertion order
and guarantees id uniqueness. Hosts are expected to serialize mutations
to any one entity; the store does not lock.
"""

import json
import logging
import uuid
from datetime import datetime
from importlib.metadata import version as _get_version
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

from unidecode import unidecode

from contact_graph.errors import ContactGraphError, DuplicateEntityId, UnknownEntity
from contact_graph.graph.models import ContactEntity, RelatedPersonRef, dedupe_related

if TYPE_CHECKING:
    from contact_graph.extract.models import ProfilePatch
    from contact_graph.resolve.models import EnrichmentOutcome, MergeOutcome

try:
    __version__ = _get_version("contact-graph")
except Exception:
    __version__ = "unknown"

logger = logging.getLogger(__name__)


def _slugify(name: str) -> str:
    """Lowercase ASCII slug, e.g. '李明' -> 'li_ming'."""
    normalized = unidecode(name.strip()).lower()
    normalized = "".join(c if c.isalnum() else "_" for c in normalized)
    while "__" in normalized:
        normalized = normalized.replace("__", "_")
    return normalized.strip("_") or "contact"


class EntityStore:
    """Mapping of contact id -> ContactEntity."""

    def __init__(self, entities: list[ContactEntity] | None = None) -> None:
        self._entities: dict[str, ContactEntity] = {}
        self.created_at = datetime.now()
        self.updated_at = datetime.now()
        for entity in entities or []:
            self.add(entity)

    # ------------------------------------------------------------------
    # Basic access
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities

    def __iter__(self) -> Iterator[ContactEntity]:
        return iter(list(self._entities.values()))

    @property
    def entities(self) -> list[ContactEntity]:
        return list(self._entities.values())

    def get(self, entity_id: str) -> ContactEntity | None:
        return self._entities.get(entity_id)

    def require(self, entity_id: str) -> ContactEntity:
        entity = self._entities.get(entity_id)
        if entity is None:
            raise UnknownEntity(f"No contact with id {entity_id!r}")
        return entity

    def names(self) -> set[str]:
        return {e.name for e in self._entities.values()}

    def find_by_name(self, name: str) -> ContactEntity | None:
        """Exact, case-sensitive name lookup. First match in store order."""
        for entity in self._entities.values():
            if entity.name == name:
                return entity
        return None

    def search(self, query: str) -> list[ContactEntity]:
        """Case-insensitive substring match on name, organization and tags."""
        if not query.strip():
            return self.entities
        q = query.lower()
        return [
            e for e in self._entities.values()
            if q in e.name.lower()
            or q in e.organization.lower()
            or any(q in tag.lower() for tag in e.tags)
        ]

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def new_id(self, name: str, kind: str = "person", reserved: set[str] | None = None) -> str:
        """Generate an id unique in the store and outside ``reserved``."""
        reserved = reserved or set()
        slug = _slugify(name)
        while True:
            candidate = f"{kind}:{slug}:{uuid.uuid4().hex[:8]}"
            if candidate not in self._entities and candidate not in reserved:
                return candidate

    def add(self, entity: ContactEntity) -> ContactEntity:
        if entity.id in self._entities:
            raise DuplicateEntityId(f"Contact id {entity.id!r} already exists")
        self._entities[entity.id] = entity
        self._touch()
        return entity

    def replace(self, entity: ContactEntity) -> ContactEntity:
        """Swap in a new version of an existing entity, keeping its position."""
        self.require(entity.id)
        self._entities[entity.id] = entity
        self._touch()
        return entity

    def delete(self, entity_id: str) -> ContactEntity:
        entity = self.require(entity_id)
        del self._entities[entity_id]
        self._touch()
        logger.info(f"Deleted contact {entity.name!r} ({entity_id})")
        return entity

    def create_from_patch(self, patch: "ProfilePatch") -> ContactEntity:
        """Create a contact from accepted extraction output."""
        fields = patch.provided()
        name = (fields.get("name") or "").strip()
        if not name:
            raise ContactGraphError("Extracted profile has no name; nothing to save")
        fields["name"] = name
        fields["related_people"] = dedupe_related(fields.get("related_people", []))
        entity = ContactEntity(id=self.new_id(name), **fields)
        self.add(entity)
        logger.info(f"Created contact {entity.name!r} ({entity.id})")
        return entity

    def add_relation(self, source_id: str, target_id: str, relationship: str) -> tuple[bool, bool]:
        """Link two contacts both ways under the same relationship label.

        Each side is left alone if it already references the other by
        name. Returns which sides were actually changed.
        """
        if source_id == target_id:
            raise ContactGraphError("Cannot relate a contact to itself")
        relationship = relationship.strip()
        if not relationship:
            raise ContactGraphError("Relationship label is required")
        source = self.require(source_id)
        target = self.require(target_id)

        changed = []
        for this, other in ((source, target), (target, source)):
            if other.name in this.related_names():
                changed.append(False)
                continue
            refs = [*this.related_people, RelatedPersonRef(name=other.name, relationship=relationship)]
            self._entities[this.id] = this.model_copy(update={"related_people": refs})
            changed.append(True)

        if any(changed):
            self._touch()
            logger.info(f"Linked {source.name!r} <-> {target.name!r} as {relationship!r}")
        return changed[0], changed[1]

    def apply_merge(self, outcome: "MergeOutcome", member_ids: list[str]) -> ContactEntity:
        """Replace every merged profile with the survivor, placed first."""
        if not outcome.applied:
            raise ContactGraphError("Merge was not applied; refusing to write it")
        survivor = outcome.profile
        if survivor.id not in member_ids:
            raise ContactGraphError(f"Survivor {survivor.id!r} is not one of the merged ids")
        for member_id in member_ids:
            self.require(member_id)

        remaining = {k: v for k, v in self._entities.items() if k not in member_ids}
        self._entities = {survivor.id: survivor, **remaining}
        self._touch()
        logger.info(
            f"Merged {len(member_ids)} contacts into {survivor.name!r} ({survivor.id})"
        )
        return survivor

    def apply_enrichment(self, outcome: "EnrichmentOutcome") -> None:
        """Write an enriched entity and its discovered stubs, all or nothing."""
        updated = outcome.updated_entity
        self.require(updated.id)
        new_ids = [e.id for e in outcome.newly_discovered]
        if len(set(new_ids)) != len(new_ids):
            raise DuplicateEntityId("Discovered contacts share an id")
        for new_id in new_ids:
            if new_id in self._entities:
                raise DuplicateEntityId(f"Contact id {new_id!r} already exists")

        self._entities[updated.id] = updated
        for entity in outcome.newly_discovered:
            self._entities[entity.id] = entity
        self._touch()
        logger.info(
            f"Enriched {updated.name!r}; {len(new_ids)} new contacts discovered"
        )

    def _touch(self) -> None:
        self.updated_at = datetime.now()

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def export(self) -> dict:
        return {
            "metadata": {
                "created_at": self.created_at.isoformat(),
                "updated_at": self.updated_at.isoformat(),
                "contact_count": len(self._entities),
                "contact_graph_version": __version__,
            },
            "contacts": [e.to_payload() for e in self._entities.values()],
        }

    def save(self, path: str | Path) -> None:
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(self.export(), indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info(f"Store saved: {len(self._entities)} contacts → {out}")

    @classmethod
    def load(cls, path: str | Path) -> "EntityStore":
        """Load a snapshot. A missing file gives an empty store."""
        path = Path(path)
        store = cls()
        if not path.exists():
            return store
        data = json.loads(path.read_text(encoding="utf-8"))
        created_at = data.get("metadata", {}).get("created_at")
        if isinstance(created_at, str):
            try:
                store.created_at = datetime.fromisoformat(created_at)
            except ValueError:
                pass
        for raw in data.get("contacts", []):
            store.add(ContactEntity.model_validate(raw))
        return store
