"""Tests for research source filtering."""

from contact_graph.extract.models import SourceRef
from contact_graph.resolve.trust import dedupe_sources, filter_trusted


def _sources() -> list[SourceRef]:
    return [
        SourceRef.from_url("https://a.example/profile", "A"),
        SourceRef.from_url("https://b.example/news", "B"),
        SourceRef(title="No link"),
        SourceRef.from_url("https://a.example/profile", "A again"),
    ]


class TestDedupeSources:
    def test_first_occurrence_wins(self):
        result = dedupe_sources(_sources())
        assert [s.title for s in result] == ["A", "B", "No link"]


class TestFilterTrusted:
    def test_nothing_ignored(self):
        result = filter_trusted(dedupe_sources(_sources()), set())
        assert [s.url for s in result] == ["https://a.example/profile", "https://b.example/news"]

    def test_ignored_urls_removed(self):
        result = filter_trusted(_sources(), {"https://a.example/profile"})
        assert [s.title for s in result] == ["B"]

    def test_everything_ignored(self):
        ignored = {"https://a.example/profile", "https://b.example/news"}
        assert filter_trusted(_sources(), ignored) == []

    def test_order_preserved(self):
        sources = [SourceRef.from_url(f"https://s{i}.example") for i in range(5)]
        result = filter_trusted(sources, {"https://s2.example"})
        assert [s.url for s in result] == [
            "https://s0.example", "https://s1.example", "https://s3.example", "https://s4.example",
        ]
