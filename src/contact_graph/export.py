"""Export the contact graph to various formats.

Supports native JSON, GraphML, GEXF (Gephi) and CSV. Edges are derived
at export time. GraphML/GEXF flatten list attributes to strings and
collapse parallel edges between the same pair into one.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Any

import networkx as nx

from contact_graph.graph.edges import Edge, to_networkx
from contact_graph.graph.layout import compute_layout
from contact_graph.graph.models import ContactEntity
from contact_graph.visualize import NODE_COLORS, node_kind

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("json", "graphml", "gexf", "csv")


def export_graph(
    entities: list[ContactEntity],
    edges: list[Edge],
    output_path: Path,
    fmt: str,
) -> Path:
    """Export contacts and edges to the specified format.

    Args:
        entities: Contacts (graph nodes)
        edges: Derived edges
        output_path: Where to write the output (a directory for CSV)
        fmt: "json", "graphml", "gexf", or "csv"

    Returns:
        Path to the written file (or directory for CSV)
    """
    fmt = fmt.lower()
    if fmt not in SUPPORTED_FORMATS:
        raise ValueError(f"Unsupported format: {fmt}. Supported: {', '.join(SUPPORTED_FORMATS)}")

    output_path.parent.mkdir(parents=True, exist_ok=True)

    if fmt == "json":
        return _export_json(entities, edges, output_path)
    if fmt == "graphml":
        flat = _build_flat_graph(entities, edges)
        nx.write_graphml(flat, str(output_path))
    elif fmt == "gexf":
        flat = _build_flat_graph(entities, edges)
        nx.write_gexf(flat, str(output_path))
    else:
        return _export_csv(entities, edges, output_path)

    logger.info(
        f"{fmt.upper()} exported: {flat.number_of_nodes()} nodes, "
        f"{flat.number_of_edges()} edges -> {output_path}"
    )
    return output_path


def _export_json(entities: list[ContactEntity], edges: list[Edge], output_path: Path) -> Path:
    data = {
        "nodes": [e.to_payload() for e in entities],
        "links": [edge.model_dump() for edge in edges],
    }
    output_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info(f"JSON exported: {len(entities)} nodes, {len(edges)} links -> {output_path}")
    return output_path


def _flatten_value(value: Any) -> str | int | float | bool:
    """Flatten complex values to strings for GraphML/GEXF compatibility."""
    if isinstance(value, (str, int, float, bool)):
        return value
    if value is None:
        return ""
    if isinstance(value, list):
        if any(isinstance(v, (dict, list, tuple, set)) for v in value):
            return json.dumps(value, ensure_ascii=False, default=str)
        return "; ".join(str(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def _build_flat_graph(entities: list[ContactEntity], edges: list[Edge]) -> nx.DiGraph:
    """Simple DiGraph with flattened attributes and precomputed positions.

    Parallel edges (an explicit relationship plus a shared organization)
    become one edge: labels joined, weights summed.
    """
    multi = to_networkx(entities, edges)
    flat = nx.DiGraph()
    by_id = {e.id: e for e in entities}

    for node_id, data in multi.nodes(data=True):
        attrs = {k: _flatten_value(v) for k, v in data.items()}
        attrs["label"] = data.get("name", node_id)
        if node_id in by_id:
            attrs["color"] = NODE_COLORS[node_kind(by_id[node_id])]
        flat.add_node(node_id, **attrs)

    for source, target, data in multi.edges(data=True):
        if flat.has_edge(source, target):
            existing = flat.edges[source, target]
            labels = set(existing["label"].split("; ")) | {data["label"]}
            existing["label"] = "; ".join(sorted(label for label in labels if label))
            existing["weight"] += data["weight"]
            existing["kind"] = "; ".join(sorted(set(existing["kind"].split("; ")) | {data["kind"]}))
        else:
            flat.add_edge(source, target, label=data["label"], weight=data["weight"], kind=data["kind"])

    # Pre-compute positions so Gephi/yEd open a spread-out graph
    positions = compute_layout(entities, edges, width=2000, height=2000, seed=42)
    for node_id, (x, y) in positions.items():
        if flat.has_node(node_id):
            flat.nodes[node_id]["x"] = float(x)
            flat.nodes[node_id]["y"] = float(y)

    return flat


def _export_csv(entities: list[ContactEntity], edges: list[Edge], output_dir: Path) -> Path:
    """Export as CSV (contacts.csv + edges.csv)."""
    output_dir.mkdir(parents=True, exist_ok=True)

    contact_fields = [
        "id", "name", "title", "organization", "email", "phone",
        "location", "tags", "summary", "notes", "related_people",
    ]
    with open(output_dir / "contacts.csv", "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=contact_fields)
        writer.writeheader()
        for entity in entities:
            row = entity.model_dump()
            row["tags"] = "; ".join(entity.tags)
            row["related_people"] = "; ".join(
                f"{ref.name} ({ref.relationship})" if ref.relationship else ref.name
                for ref in entity.related_people
            )
            writer.writerow({k: row.get(k) or "" for k in contact_fields})

    edge_fields = ["source", "target", "weight", "label", "kind"]
    with open(output_dir / "edges.csv", "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=edge_fields)
        writer.writeheader()
        writer.writerows(edge.model_dump() for edge in edges)

    logger.info(f"CSV exported: {len(entities)} contacts, {len(edges)} edges -> {output_dir}")
    return output_dir
