"""Library-usable pipeline functions.

Each function corresponds to a CLI command but takes explicit parameters
instead of reading from config/CLI args. Functions that change contacts
load the store snapshot, mutate it, and save it back only on success.
"""

import asyncio
import logging
from pathlib import Path

from contact_graph.errors import ContactGraphError, ExtractionParseError, OracleCallError
from contact_graph.extract.llm_client import LLMClient
from contact_graph.extract.models import EvidenceBundle, ImageBlob, SearchResults
from contact_graph.extract.oracle import ExtractionOracle
from contact_graph.graph.edges import Edge, derive_edges
from contact_graph.graph.entity_store import EntityStore
from contact_graph.graph.layout import compute_layout
from contact_graph.graph.models import ContactEntity
from contact_graph.resolve.enrich import DEFAULT_DISCOVERY_TAG, DEFAULT_ORG_KEYWORDS, EnrichmentPipeline
from contact_graph.resolve.merge import merge_profiles
from contact_graph.resolve.models import EnrichmentOutcome, MergeOutcome
from contact_graph.resolve.trust import filter_trusted

logger = logging.getLogger(__name__)


def _oracle(model: str, oracle: ExtractionOracle | None = None) -> ExtractionOracle:
    return oracle or ExtractionOracle(LLMClient(model=model))


def run_add(
    text: str, store_path: Path, model: str, oracle: ExtractionOracle | None = None
) -> ContactEntity:
    """Extract a contact from free text (or a URL) and add it to the store."""
    if not text.strip():
        raise ContactGraphError("Nothing to extract: input text is empty")

    store = EntityStore.load(store_path)
    result = asyncio.run(_oracle(model, oracle).extract_contact(text))
    if result.status == "call_error":
        raise OracleCallError(result.error)
    if not result.ok or result.patch is None:
        raise ExtractionParseError(result.error or "Oracle returned no profile")

    entity = store.create_from_patch(result.patch)
    store.save(store_path)
    return entity


def run_research(
    contact_id: str, store_path: Path, model: str, oracle: ExtractionOracle | None = None
) -> SearchResults:
    """Search the web for a contact. Does not change the store."""
    store = EntityStore.load(store_path)
    contact = store.require(contact_id)
    return asyncio.run(_oracle(model, oracle).research(contact.name, contact.organization))


def run_enrich(
    contact_id: str,
    store_path: Path,
    model: str,
    search: SearchResults | None = None,
    ignored_urls: set[str] | None = None,
    manual_text: str | None = None,
    image_paths: list[Path] | None = None,
    org_keywords: list[str] | tuple[str, ...] = DEFAULT_ORG_KEYWORDS,
    discovery_tag: str = DEFAULT_DISCOVERY_TAG,
    oracle: ExtractionOracle | None = None,
) -> EnrichmentOutcome:
    """Enrich a contact from research results and/or manual evidence.

    Args:
        contact_id: Contact to enrich
        store_path: Store snapshot file
        model: LLM model string
        search: Research results (from run_research); their sources are vetted
        ignored_urls: Source URLs the user excluded
        manual_text: Notes, resume text or URLs
        image_paths: Images (e.g. resume screenshots)
        oracle: Oracle to use instead of one built from ``model``

    Returns:
        EnrichmentOutcome, already written to the store
    """
    store = EntityStore.load(store_path)
    target = store.require(contact_id)

    evidence = EvidenceBundle(
        manual_text=manual_text,
        manual_images=[ImageBlob.from_path(p) for p in image_paths or []],
    )
    if search is not None:
        evidence.web_summary = search.summary
        # Without citations there is nothing to vet; the summary goes in as-is
        if search.sources:
            evidence.trusted_sources = filter_trusted(search.sources, ignored_urls or set())

    pipeline = EnrichmentPipeline(
        store, _oracle(model, oracle), org_keywords=org_keywords, discovery_tag=discovery_tag
    )
    outcome = pipeline.enrich(target, evidence)
    store.save(store_path)
    return outcome


def run_merge(
    contact_ids: list[str],
    store_path: Path,
    model: str,
    survivor_id: str | None = None,
    apply: bool = True,
    oracle: ExtractionOracle | None = None,
) -> MergeOutcome:
    """Merge contacts into one. The first id survives unless told otherwise.

    The store is only written when the merge was actually applied.
    """
    if len(contact_ids) < 2:
        raise ContactGraphError("Select at least two contacts to merge")

    store = EntityStore.load(store_path)
    profiles = [store.require(cid) for cid in contact_ids]
    outcome = merge_profiles(profiles, survivor_id or contact_ids[0], _oracle(model, oracle))

    if apply and outcome.applied:
        store.apply_merge(outcome, contact_ids)
        store.save(store_path)
    return outcome


def run_link(source_id: str, target_id: str, relationship: str, store_path: Path) -> tuple[bool, bool]:
    """Relate two contacts both ways."""
    store = EntityStore.load(store_path)
    changed = store.add_relation(source_id, target_id, relationship)
    if any(changed):
        store.save(store_path)
    return changed


def run_delete(contact_id: str, store_path: Path) -> ContactEntity:
    """Remove a contact from the store."""
    store = EntityStore.load(store_path)
    removed = store.delete(contact_id)
    store.save(store_path)
    return removed


def run_edges(store_path: Path) -> tuple[EntityStore, list[Edge]]:
    """Load the store and derive its relationship graph."""
    store = EntityStore.load(store_path)
    return store, derive_edges(store.entities)


def run_layout(
    store_path: Path,
    width: float = 1200.0,
    height: float = 800.0,
    seed: int | None = None,
) -> dict[str, tuple[float, float]]:
    """Positions for every contact on a width x height canvas."""
    store, edges = run_edges(store_path)
    return compute_layout(store.entities, edges, width=width, height=height, seed=seed)


def run_view(
    store_path: Path,
    output_path: Path,
    open_browser: bool = False,
    width: float = 1200.0,
    height: float = 800.0,
    discovery_tag: str = DEFAULT_DISCOVERY_TAG,
) -> Path:
    """Render the contact graph to an interactive HTML file."""
    from contact_graph.visualize import generate_view

    store, edges = run_edges(store_path)
    return generate_view(
        store.entities, edges, output_path,
        open_browser=open_browser, width=width, height=height, discovery_tag=discovery_tag,
    )


def run_export(store_path: Path, fmt: str, output_path: Path) -> Path:
    """Export contacts and derived edges (json, graphml, gexf, csv)."""
    from contact_graph.export import export_graph

    store, edges = run_edges(store_path)
    return export_graph(store.entities, edges, output_path, fmt)
