"""Evidence-driven enrichment with entity discovery.

Flow for one call:

1. refuse empty evidence before touching the oracle
2. ask the oracle for an updated profile (grounded if the notes hold a URL)
3. overwrite the target's fields with whatever the oracle returned
4. create stub contacts for related names nobody in the store has
5. write the enriched contact and the stubs to the store in one step

Anything failing in 1-3 raises and leaves the store untouched. Discovery
never fails the call: an unusable entry is logged and skipped.
"""

import asyncio
import logging
from typing import TYPE_CHECKING

from contact_graph.errors import EmptyEvidenceError, ExtractionParseError, OracleCallError
from contact_graph.extract.models import EvidenceBundle, ProfilePatch
from contact_graph.graph.entity_store import EntityStore
from contact_graph.graph.models import ContactEntity, RelatedPersonRef, dedupe_related
from contact_graph.resolve.models import EnrichmentOutcome

if TYPE_CHECKING:
    from contact_graph.extract.oracle import ExtractionOracle

logger = logging.getLogger(__name__)

DEFAULT_ORG_KEYWORDS = ("organization", "organisation", "company")
DEFAULT_DISCOVERY_TAG = "auto-discovered"
ORIGIN_RELATIONSHIP = "Origin Connection"
ORGANIZATION_TITLE = "Organization"


class EnrichmentPipeline:
    """Enrich contacts in one store using one oracle."""

    def __init__(
        self,
        store: EntityStore,
        oracle: "ExtractionOracle",
        org_keywords: tuple[str, ...] | list[str] = DEFAULT_ORG_KEYWORDS,
        discovery_tag: str = DEFAULT_DISCOVERY_TAG,
    ) -> None:
        self.store = store
        self.oracle = oracle
        self.org_keywords = tuple(k.lower() for k in org_keywords)
        self.discovery_tag = discovery_tag

    def enrich(
        self, target: ContactEntity, evidence: EvidenceBundle, apply: bool = True
    ) -> EnrichmentOutcome:
        """Sync wrapper around aenrich()."""
        return asyncio.run(self.aenrich(target, evidence, apply=apply))

    async def aenrich(
        self, target: ContactEntity, evidence: EvidenceBundle, apply: bool = True
    ) -> EnrichmentOutcome:
        """Enrich ``target`` from ``evidence`` and discover new contacts.

        Raises:
            EmptyEvidenceError: Nothing usable in the bundle
            OracleCallError: The oracle could not be reached
            ExtractionParseError: The oracle's answer was not a profile
        """
        if evidence.is_empty():
            raise EmptyEvidenceError(f"No evidence to enrich {target.name!r} with")

        result = await self.oracle.enrich_profile(target, evidence)
        if result.status == "call_error":
            raise OracleCallError(result.error)
        if not result.ok or result.patch is None:
            raise ExtractionParseError(result.error or "Oracle returned no profile")

        updated = apply_patch(target, result.patch)
        discovered = self.discover(updated)
        outcome = EnrichmentOutcome(updated_entity=updated, newly_discovered=discovered)

        if apply:
            self.store.apply_enrichment(outcome)
        return outcome

    def discover(self, entity: ContactEntity) -> list[ContactEntity]:
        """Create stub contacts for related names not yet in the store."""
        known = self.store.names()
        known.add(entity.name)
        reserved_ids: set[str] = set()
        stubs: list[ContactEntity] = []

        for ref in entity.related_people:
            name = ref.name.strip()
            if not name:
                logger.warning(f"Skipping related entry with a blank name on {entity.name!r}")
                continue
            if ref.name in known:
                continue
            stub = self._make_stub(ref, entity, reserved_ids)
            reserved_ids.add(stub.id)
            known.add(ref.name)
            stubs.append(stub)
            logger.debug(f"Discovered {ref.name!r} via {entity.name!r} ({ref.relationship})")

        return stubs

    def is_organization(self, relationship: str) -> bool:
        label = relationship.lower()
        return any(keyword in label for keyword in self.org_keywords)

    def _make_stub(
        self, ref: RelatedPersonRef, origin: ContactEntity, reserved_ids: set[str]
    ) -> ContactEntity:
        is_org = self.is_organization(ref.relationship)
        kind = "organization" if is_org else "person"
        return ContactEntity(
            id=self.store.new_id(ref.name, kind=kind, reserved=reserved_ids),
            name=ref.name,
            title=ORGANIZATION_TITLE if is_org else ref.relationship,
            organization=ref.name if is_org else "",
            location="",
            tags=[self.discovery_tag, "Organization" if is_org else "Person"],
            summary=f"Discovered from the profile of {origin.name}: {ref.relationship}",
            related_people=[RelatedPersonRef(name=origin.name, relationship=ORIGIN_RELATIONSHIP)],
        )


def apply_patch(target: ContactEntity, patch: ProfilePatch) -> ContactEntity:
    """Shallow overwrite: returned fields replace, absent fields stay."""
    update = patch.provided()
    if "related_people" in update:
        update["related_people"] = dedupe_related(update["related_people"])
    if "tags" in update:
        update["tags"] = list(dict.fromkeys(update["tags"]))
    if "name" in update and not update["name"].strip():
        del update["name"]
    return target.model_copy(update=update)
