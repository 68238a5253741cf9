"""Tests for library pipeline functions against a snapshot file."""

import pytest

from contact_graph.errors import ContactGraphError, ExtractionParseError, OracleCallError
from contact_graph.extract.models import OracleResult, SearchResults, SourceRef
from contact_graph.graph.entity_store import EntityStore
from contact_graph.pipeline import (
    run_add,
    run_delete,
    run_edges,
    run_enrich,
    run_export,
    run_layout,
    run_link,
    run_merge,
    run_research,
)

LI = "person:li_ming:00000001"
WANG = "person:wang_qiang:00000002"
ZHANG = "person:zhang_wei:00000003"


class TestRunAdd:
    def test_adds_contact(self, store_file, make_oracle, ok_result):
        oracle = make_oracle(ok_result(name="赵敏", organization="字节跳动"))
        entity = run_add("赵敏 joined 字节跳动", store_file, "test-model", oracle=oracle)
        store = EntityStore.load(store_file)
        assert entity.id in store
        assert len(store) == 4

    def test_parse_error_writes_nothing(self, store_file, make_oracle):
        oracle = make_oracle(OracleResult.parse_error("junk"))
        with pytest.raises(ExtractionParseError):
            run_add("text", store_file, "test-model", oracle=oracle)
        assert len(EntityStore.load(store_file)) == 3

    def test_call_error(self, store_file, make_oracle):
        with pytest.raises(OracleCallError):
            run_add("text", store_file, "m", oracle=make_oracle(OracleResult.call_error("down")))

    def test_blank_text(self, store_file, make_oracle):
        with pytest.raises(ContactGraphError):
            run_add("  ", store_file, "m", oracle=make_oracle())


class TestRunResearchAndEnrich:
    def test_research_is_read_only(self, store_file, make_oracle):
        oracle = make_oracle(search=SearchResults(summary="Facts"))
        results = run_research(ZHANG, store_file, "m", oracle=oracle)
        assert results.summary == "Facts"
        assert oracle.calls == [("research", "张伟", "红杉资本")]

    def test_enrich_filters_sources(self, store_file, make_oracle, ok_result):
        oracle = make_oracle(ok_result(title="GP"))
        search = SearchResults(
            summary="Facts",
            sources=[
                SourceRef.from_url("https://good.example"),
                SourceRef.from_url("https://bad.example"),
            ],
        )
        outcome = run_enrich(
            ZHANG, store_file, "m", search=search,
            ignored_urls={"https://bad.example"}, oracle=oracle,
        )
        evidence = oracle.calls[0][2]
        assert [s.url for s in evidence.trusted_sources] == ["https://good.example"]
        assert outcome.updated_entity.title == "GP"
        assert EntityStore.load(store_file).require(ZHANG).title == "GP"

    def test_enrich_without_citations_keeps_summary(self, store_file, make_oracle, ok_result):
        oracle = make_oracle(ok_result(title="GP"))
        run_enrich(ZHANG, store_file, "m", search=SearchResults(summary="Facts"), oracle=oracle)
        evidence = oracle.calls[0][2]
        assert evidence.trusted_sources is None
        assert evidence.usable_web_summary == "Facts"

    def test_enrich_with_image(self, store_file, tmp_dir, make_oracle, ok_result):
        image = tmp_dir / "card.jpg"
        image.write_bytes(b"\xff\xd8")
        oracle = make_oracle(ok_result(phone="555"))
        run_enrich(ZHANG, store_file, "m", image_paths=[image], oracle=oracle)
        evidence = oracle.calls[0][2]
        assert evidence.manual_images[0].mime_type == "image/jpeg"

    def test_enrich_failure_leaves_file(self, store_file, make_oracle):
        before = store_file.read_text(encoding="utf-8")
        with pytest.raises(ExtractionParseError):
            run_enrich(
                ZHANG, store_file, "m", manual_text="notes",
                oracle=make_oracle(OracleResult.parse_error("junk")),
            )
        assert store_file.read_text(encoding="utf-8") == before


class TestRunMerge:
    def test_merge_applied(self, store_file, make_oracle, ok_result):
        oracle = make_oracle(ok_result(name="王强"))
        outcome = run_merge([WANG, LI], store_file, "m", oracle=oracle)
        assert outcome.applied
        store = EntityStore.load(store_file)
        assert [e.id for e in store] == [WANG, ZHANG]

    def test_merge_preview_only(self, store_file, make_oracle, ok_result):
        outcome = run_merge([LI, WANG], store_file, "m", apply=False, oracle=make_oracle(ok_result(name="李明")))
        assert outcome.applied
        assert len(EntityStore.load(store_file)) == 3

    def test_failed_merge_not_written(self, store_file, make_oracle):
        oracle = make_oracle(raises=OracleCallError("down"))
        outcome = run_merge([LI, WANG], store_file, "m", oracle=oracle)
        assert outcome.status == "failed"
        assert len(EntityStore.load(store_file)) == 3

    def test_needs_two_ids(self, store_file, make_oracle):
        with pytest.raises(ContactGraphError):
            run_merge([LI], store_file, "m", oracle=make_oracle())


class TestGraphFunctions:
    def test_link_and_edges(self, store_file):
        assert run_link(WANG, ZHANG, "Friend", store_file) == (True, True)
        _, edges = run_edges(store_file)
        explicit = {(e.source, e.target) for e in edges if e.kind == "explicit"}
        assert (WANG, ZHANG) in explicit
        assert (ZHANG, WANG) in explicit

    def test_delete(self, store_file):
        removed = run_delete(WANG, store_file)
        assert removed.name == "王强"
        assert WANG not in EntityStore.load(store_file)

    def test_layout(self, store_file):
        positions = run_layout(store_file, width=300, height=300, seed=2)
        assert set(positions) == {LI, WANG, ZHANG}

    def test_export(self, store_file, tmp_dir):
        path = run_export(store_file, "graphml", tmp_dir / "out.graphml")
        assert path.exists()
