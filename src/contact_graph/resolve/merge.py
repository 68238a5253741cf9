"""Multi-profile merge policy.

The oracle judges which scalar values are "most complete", but the
result is always post-processed so that, whatever it answers:

- the survivor's id is kept
- tags and related people are unions of the inputs (related people
  deduplicated by name, first occurrence wins)
- notes from every input are kept, in input order
- no scalar field ends up blank if any input had a value

If the oracle fails, the merge fails closed: the first input comes back
unchanged with status "failed".
"""

import asyncio
import logging
from typing import TYPE_CHECKING

from contact_graph.errors import InvalidMergeInput
from contact_graph.graph.models import ContactEntity, dedupe_related
from contact_graph.resolve.models import MergeOutcome

if TYPE_CHECKING:
    from contact_graph.extract.models import ProfilePatch
    from contact_graph.extract.oracle import ExtractionOracle

logger = logging.getLogger(__name__)

# Fields where the oracle's judgment is taken, with first-non-blank fallback
JUDGED_FIELDS = ("name", "title", "organization", "email", "phone", "location", "summary")

NOTES_SEPARATOR = "\n\n"


def merge_profiles(
    profiles: list[ContactEntity],
    survivor_id: str,
    oracle: "ExtractionOracle",
) -> MergeOutcome:
    """Consolidate profiles of the same person into one.

    Args:
        profiles: Profiles to merge, in priority order
        survivor_id: Id the merged profile keeps (must be one of the inputs)
        oracle: Oracle that judges the scalar fields

    Returns:
        MergeOutcome; check ``applied`` before writing it anywhere

    Raises:
        InvalidMergeInput: No profiles, repeated ids, or unknown survivor
    """
    return asyncio.run(amerge_profiles(profiles, survivor_id, oracle))


async def amerge_profiles(
    profiles: list[ContactEntity],
    survivor_id: str,
    oracle: "ExtractionOracle",
) -> MergeOutcome:
    """Async implementation of merge_profiles."""
    _validate_inputs(profiles, survivor_id)

    if len(profiles) == 1:
        return MergeOutcome(profile=profiles[0], status="unchanged")

    try:
        result = await oracle.merge_profiles(profiles)
    except Exception as e:
        logger.warning(f"Merge oracle raised, keeping first profile: {e}")
        return MergeOutcome(profile=profiles[0], status="failed", error=str(e))

    if not result.ok or result.patch is None:
        logger.warning(f"Merge not applied ({result.status}): {result.error}")
        return MergeOutcome(
            profile=profiles[0], status="failed", error=result.error or result.status
        )

    merged = resolve_fields(profiles, survivor_id, result.patch)
    logger.info(f"Merged {len(profiles)} profiles into {merged.name!r} ({merged.id})")
    return MergeOutcome(profile=merged, status="merged")


def resolve_fields(
    profiles: list[ContactEntity],
    survivor_id: str,
    patch: "ProfilePatch",
) -> ContactEntity:
    """Apply the deterministic field policy over the oracle's answer."""
    fields: dict = {"id": survivor_id}

    for field in JUDGED_FIELDS:
        judged = getattr(patch, field)
        if isinstance(judged, str) and judged.strip():
            fields[field] = judged
            continue
        fallback = next(
            (getattr(p, field) for p in profiles if (getattr(p, field) or "").strip()),
            None,
        )
        if fallback is not None:
            fields[field] = fallback

    fields["tags"] = list(dict.fromkeys(tag for p in profiles for tag in p.tags))
    fields["related_people"] = dedupe_related(
        [ref for p in profiles for ref in p.related_people]
    )
    fields["notes"] = NOTES_SEPARATOR.join(p.notes for p in profiles if p.notes)

    if "name" not in fields:
        # Every input had a blank name; keep the survivor's as-is
        fields["name"] = next(p.name for p in profiles if p.id == survivor_id)

    return ContactEntity(**fields)


def _validate_inputs(profiles: list[ContactEntity], survivor_id: str) -> None:
    if not profiles:
        raise InvalidMergeInput("Nothing to merge: no profiles given")
    ids = [p.id for p in profiles]
    if len(set(ids)) != len(ids):
        raise InvalidMergeInput(f"Profiles to merge repeat ids: {ids}")
    if survivor_id not in ids:
        raise InvalidMergeInput(f"Survivor {survivor_id!r} is not among the merged profiles")
