"""Tests for the multi-profile merge policy."""

import pytest

from contact_graph.errors import InvalidMergeInput, OracleCallError
from contact_graph.extract.models import OracleResult
from contact_graph.graph.models import ContactEntity, RelatedPersonRef
from contact_graph.resolve.merge import merge_profiles


@pytest.fixture
def duplicates() -> list[ContactEntity]:
    """The same person entered twice."""
    return [
        ContactEntity(
            id="a",
            name="John",
            organization="X",
            tags=["AI"],
            notes="Met at conference.",
            related_people=[RelatedPersonRef(name="Bob", relationship="Colleague")],
        ),
        ContactEntity(
            id="b",
            name="John Smith",
            organization="X",
            phone="123",
            tags=["Mobile"],
            notes="Prefers email.",
            related_people=[
                RelatedPersonRef(name="Bob", relationship="Friend"),
                RelatedPersonRef(name="Carol", relationship="Advisor"),
            ],
        ),
    ]


class TestMergeSuccess:
    """Merges where the oracle answers."""

    def test_tags_union_and_survivor_id(self, duplicates, make_oracle, ok_result):
        oracle = make_oracle(ok_result(name="John Smith", organization="X", tags=["AI", "Mobile"]))
        outcome = merge_profiles(duplicates, "a", oracle)
        assert outcome.status == "merged"
        assert outcome.applied
        assert outcome.profile.id == "a"
        assert outcome.profile.name == "John Smith"
        assert set(outcome.profile.tags) == {"AI", "Mobile"}

    def test_oracle_cannot_drop_tags(self, duplicates, make_oracle, ok_result):
        oracle = make_oracle(ok_result(name="John Smith", tags=["AI"]))
        outcome = merge_profiles(duplicates, "a", oracle)
        assert set(outcome.profile.tags) == {"AI", "Mobile"}

    def test_blank_answer_falls_back_to_inputs(self, duplicates, make_oracle, ok_result):
        """Fields the oracle left out come from the first input that has them."""
        oracle = make_oracle(ok_result(name="John Smith", phone=""))
        outcome = merge_profiles(duplicates, "b", oracle)
        assert outcome.profile.phone == "123"
        assert outcome.profile.organization == "X"
        assert outcome.profile.id == "b"

    def test_notes_joined_in_input_order(self, duplicates, make_oracle, ok_result):
        outcome = merge_profiles(duplicates, "a", make_oracle(ok_result(name="John")))
        assert outcome.profile.notes == "Met at conference.\n\nPrefers email."

    def test_related_people_deduplicated(self, duplicates, make_oracle, ok_result):
        outcome = merge_profiles(duplicates, "a", make_oracle(ok_result(name="John")))
        related = [(r.name, r.relationship) for r in outcome.profile.related_people]
        assert related == [("Bob", "Colleague"), ("Carol", "Advisor")]
        assert outcome.profile.has_unique_related_names()

    def test_merge_is_idempotent(self, duplicates, make_oracle, ok_result):
        """Merging a merged profile with itself changes nothing."""
        first = merge_profiles(duplicates, "a", make_oracle(ok_result(name="John Smith")))
        copy = first.profile.model_copy(update={"id": "a2"})
        second = merge_profiles(
            [first.profile, copy], "a", make_oracle(ok_result(name="John Smith"))
        )
        assert set(second.profile.tags) == set(first.profile.tags)
        assert second.profile.related_people == first.profile.related_people

    def test_single_profile_unchanged(self, duplicates, make_oracle):
        oracle = make_oracle()
        outcome = merge_profiles(duplicates[:1], "a", oracle)
        assert outcome.status == "unchanged"
        assert outcome.profile == duplicates[0]
        assert oracle.calls == []


class TestMergeFailsClosed:
    """Oracle failures never yield a partial merge."""

    def test_oracle_raises(self, duplicates, make_oracle):
        oracle = make_oracle(raises=OracleCallError("timeout"))
        outcome = merge_profiles(duplicates, "b", oracle)
        assert outcome.status == "failed"
        assert not outcome.applied
        assert outcome.profile == duplicates[0]
        assert "timeout" in outcome.error

    def test_parse_error(self, duplicates, make_oracle):
        oracle = make_oracle(OracleResult.parse_error("not json"))
        outcome = merge_profiles(duplicates, "a", oracle)
        assert outcome.status == "failed"
        assert outcome.profile == duplicates[0]

    def test_call_error(self, duplicates, make_oracle):
        oracle = make_oracle(OracleResult.call_error("503"))
        outcome = merge_profiles(duplicates, "a", oracle)
        assert outcome.status == "failed"
        assert outcome.error == "503"


class TestMergeValidation:
    """Precondition violations raise."""

    def test_no_profiles(self, make_oracle):
        with pytest.raises(InvalidMergeInput):
            merge_profiles([], "a", make_oracle())

    def test_unknown_survivor(self, duplicates, make_oracle):
        with pytest.raises(InvalidMergeInput, match="Survivor"):
            merge_profiles(duplicates, "zzz", make_oracle())

    def test_repeated_ids(self, duplicates, make_oracle):
        with pytest.raises(InvalidMergeInput):
            merge_profiles([duplicates[0], duplicates[0]], "a", make_oracle())
