"""Relationship edge derivation.

Edges are never stored: they are recomputed from the current contacts
on every call. Two kinds exist side by side:

- explicit: A lists B by name in ``related_people`` (weight 2)
- inferred: A and B share a non-empty organization (weight 1, "Colleague")

An explicit and an inferred edge between the same pair both survive;
they mean different things and the layout only cares about weight.
"""

import logging
from collections import defaultdict
from typing import Iterable, Literal

import networkx as nx
from pydantic import BaseModel, ConfigDict

from contact_graph.graph.models import ContactEntity

logger = logging.getLogger(__name__)

EXPLICIT_WEIGHT = 2
INFERRED_WEIGHT = 1
COLLEAGUE_LABEL = "Colleague"

EdgeKind = Literal["explicit", "inferred"]


class Edge(BaseModel):
    """A derived relationship between two contacts."""

    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    weight: int
    label: str
    kind: EdgeKind


def derive_edges(entities: Iterable[ContactEntity]) -> list[Edge]:
    """Compute explicit and inferred edges for a set of contacts."""
    entities = list(entities)
    edges = _explicit_edges(entities)
    edges.extend(_inferred_edges(entities))
    return edges


def _explicit_edges(entities: list[ContactEntity]) -> list[Edge]:
    # Built once per call; with duplicate names the last contact wins
    name_index = {e.name: e.id for e in entities}
    edges = []
    for entity in entities:
        for ref in entity.related_people:
            target_id = name_index.get(ref.name)
            if target_id is None:
                logger.debug(f"Dangling reference {entity.name!r} -> {ref.name!r}, no edge")
                continue
            edges.append(Edge(
                source=entity.id,
                target=target_id,
                weight=EXPLICIT_WEIGHT,
                label=ref.relationship,
                kind="explicit",
            ))
    return edges


def _inferred_edges(entities: list[ContactEntity]) -> list[Edge]:
    by_org: dict[str, list[str]] = defaultdict(list)
    for entity in entities:
        if entity.organization:
            by_org[entity.organization].append(entity.id)

    edges = []
    for ids in by_org.values():
        ordered = sorted(set(ids))
        for i, a in enumerate(ordered):
            for b in ordered[i + 1:]:
                edges.append(Edge(
                    source=a,
                    target=b,
                    weight=INFERRED_WEIGHT,
                    label=COLLEAGUE_LABEL,
                    kind="inferred",
                ))
    return edges


def to_networkx(entities: Iterable[ContactEntity], edges: Iterable[Edge]) -> nx.MultiDiGraph:
    """Build a MultiDiGraph with contact fields on nodes and edge attributes on links."""
    graph = nx.MultiDiGraph()
    for entity in entities:
        data = entity.model_dump(exclude={"id"})
        graph.add_node(entity.id, **data)
    for edge in edges:
        graph.add_edge(
            edge.source,
            edge.target,
            weight=edge.weight,
            label=edge.label,
            kind=edge.kind,
        )
    return graph
