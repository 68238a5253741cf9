"""contact-graph: Identity graph consolidation for personal contacts.

Keeps a store of contact profiles, derives a weighted relationship graph
from them, merges duplicate profiles with an LLM oracle, and enriches
profiles from web research and user-supplied evidence.
"""

__version__ = "0.1.0"

from contact_graph.errors import ContactGraphError
from contact_graph.extract.llm_client import LLMClient
from contact_graph.extract.oracle import ExtractionOracle
from contact_graph.graph.edges import Edge, derive_edges
from contact_graph.graph.entity_store import EntityStore
from contact_graph.graph.layout import compute_layout
from contact_graph.graph.models import ContactEntity, RelatedPersonRef
from contact_graph.pipeline import (
    run_add,
    run_delete,
    run_enrich,
    run_export,
    run_link,
    run_merge,
    run_research,
    run_view,
)

__all__ = [
    "__version__",
    "ContactEntity",
    "ContactGraphError",
    "Edge",
    "EntityStore",
    "ExtractionOracle",
    "LLMClient",
    "RelatedPersonRef",
    "compute_layout",
    "derive_edges",
    "run_add",
    "run_delete",
    "run_enrich",
    "run_export",
    "run_link",
    "run_merge",
    "run_research",
    "run_view",
]
