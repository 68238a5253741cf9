"""Shared test fixtures for contact-graph."""

import tempfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from contact_graph.extract.models import OracleResult, ProfilePatch, SearchResults
from contact_graph.graph.entity_store import EntityStore
from contact_graph.graph.models import ContactEntity, RelatedPersonRef


class FakeOracle:
    """Stands in for ExtractionOracle: canned answers, recorded calls."""

    def __init__(
        self,
        result: OracleResult | None = None,
        search: SearchResults | None = None,
        raises: Exception | None = None,
    ):
        self.result = result
        self.search = search or SearchResults()
        self.raises = raises
        self.calls: list[tuple] = []

    def _respond(self) -> OracleResult:
        if self.raises is not None:
            raise self.raises
        return self.result

    async def extract_contact(self, text):
        self.calls.append(("extract", text))
        return self._respond()

    async def research(self, name, organization=""):
        self.calls.append(("research", name, organization))
        if self.raises is not None:
            raise self.raises
        return self.search

    async def enrich_profile(self, target, evidence):
        self.calls.append(("enrich", target, evidence))
        return self._respond()

    async def merge_profiles(self, profiles):
        self.calls.append(("merge", profiles))
        return self._respond()


def patch_result(**fields) -> OracleResult:
    """An ok OracleResult whose patch carries exactly ``fields``."""
    return OracleResult.success(ProfilePatch.model_validate(fields))


@pytest.fixture
def make_oracle():
    """Factory for FakeOracle instances."""
    return FakeOracle


@pytest.fixture
def ok_result():
    """Factory for successful oracle results."""
    return patch_result


@pytest.fixture
def sample_contacts() -> list[ContactEntity]:
    """Two colleagues at one company and an investor elsewhere."""
    return [
        ContactEntity(
            id="person:li_ming:00000001",
            name="李明",
            title="CTO",
            organization="字节跳动",
            tags=["AI", "Mobile"],
            summary="Leads platform engineering.",
            related_people=[RelatedPersonRef(name="张伟", relationship="Investor")],
        ),
        ContactEntity(
            id="person:wang_qiang:00000002",
            name="王强",
            title="Engineer",
            organization="字节跳动",
            tags=["Backend"],
        ),
        ContactEntity(
            id="person:zhang_wei:00000003",
            name="张伟",
            title="Partner",
            organization="红杉资本",
            email="zhang@example.com",
            tags=["VC"],
        ),
    ]


@pytest.fixture
def sample_store(sample_contacts) -> EntityStore:
    """Store pre-loaded with the sample contacts."""
    return EntityStore(sample_contacts)


@pytest.fixture
def store_file(sample_store, tmp_dir) -> Path:
    """Sample store saved to a snapshot file."""
    path = tmp_dir / "contacts.json"
    sample_store.save(path)
    return path


@pytest.fixture
def tmp_dir():
    """Temporary directory that cleans up after test."""
    with tempfile.TemporaryDirectory() as d:
        yield Path(d)


@pytest.fixture
def mock_llm():
    """Mock LLMClient; tests set ``acomplete`` to an AsyncMock."""
    llm = MagicMock()
    llm.model = "test-model"
    llm.total_cost_usd = 0.0
    llm.total_input_tokens = 0
    llm.total_output_tokens = 0
    return llm
