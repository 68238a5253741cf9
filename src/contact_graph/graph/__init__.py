"""Contact store and derived relationship graph.

Contacts live in an in-memory ``EntityStore``; edges are derived on
demand and laid out with networkx.
"""

from contact_graph.graph.edges import Edge, derive_edges, to_networkx
from contact_graph.graph.entity_store import EntityStore
from contact_graph.graph.layout import compute_layout
from contact_graph.graph.models import ContactEntity, RelatedPersonRef

__all__ = [
    "ContactEntity",
    "Edge",
    "EntityStore",
    "RelatedPersonRef",
    "compute_layout",
    "derive_edges",
    "to_networkx",
]
