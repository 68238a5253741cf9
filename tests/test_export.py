"""Tests for export formats."""

import csv
import json

import networkx as nx
import pytest

from contact_graph.export import export_graph
from contact_graph.graph.edges import derive_edges
from contact_graph.graph.models import ContactEntity, RelatedPersonRef


@pytest.fixture
def colleagues() -> list[ContactEntity]:
    """Alice manages Bob at Acme: one explicit and one inferred edge."""
    return [
        ContactEntity(
            id="person:alice:1",
            name="Alice",
            organization="Acme",
            tags=["AI", "VC"],
            related_people=[RelatedPersonRef(name="Bob", relationship="Manager")],
        ),
        ContactEntity(id="person:bob:2", name="Bob", organization="Acme"),
    ]


def test_json_export(colleagues, tmp_dir):
    out = tmp_dir / "graph.json"
    export_graph(colleagues, derive_edges(colleagues), out, "json")
    data = json.loads(out.read_text(encoding="utf-8"))
    assert [n["id"] for n in data["nodes"]] == ["person:alice:1", "person:bob:2"]
    assert {link["kind"] for link in data["links"]} == {"explicit", "inferred"}


def test_graphml_merges_parallel_edges(colleagues, tmp_dir):
    """Explicit + inferred between one pair become a single flat edge."""
    out = tmp_dir / "graph.graphml"
    export_graph(colleagues, derive_edges(colleagues), out, "graphml")
    graph = nx.read_graphml(out)
    assert graph.number_of_nodes() == 2
    assert graph.number_of_edges() == 1
    data = graph.edges["person:alice:1", "person:bob:2"]
    assert data["weight"] == 3
    assert data["label"] == "Colleague; Manager"
    assert graph.nodes["person:alice:1"]["tags"] == "AI; VC"
    assert "x" in graph.nodes["person:alice:1"]


def test_gexf_export(colleagues, tmp_dir):
    out = tmp_dir / "graph.gexf"
    export_graph(colleagues, derive_edges(colleagues), out, "gexf")
    assert out.exists()
    assert "Alice" in out.read_text(encoding="utf-8")


def test_csv_export(colleagues, tmp_dir):
    out_dir = tmp_dir / "csv_export"
    export_graph(colleagues, derive_edges(colleagues), out_dir, "csv")

    with open(out_dir / "contacts.csv", newline="", encoding="utf-8") as f:
        contacts = list(csv.DictReader(f))
    assert contacts[0]["related_people"] == "Bob (Manager)"
    assert contacts[1]["email"] == ""

    with open(out_dir / "edges.csv", newline="", encoding="utf-8") as f:
        edges = list(csv.DictReader(f))
    assert len(edges) == 2


def test_unsupported_format(colleagues, tmp_dir):
    with pytest.raises(ValueError, match="Unsupported format"):
        export_graph(colleagues, [], tmp_dir / "x.sqlite", "sqlite")
