"""Extraction oracle: the engine's only asynchronous boundary.

Wraps ``LLMClient`` with the four profile tasks the engine needs. Calls
that produce a profile return a tagged ``OracleResult`` instead of
raising, so callers decide how a failure is reported (merge fails
closed, enrichment aborts).
"""

import logging

from contact_graph.errors import OracleCallError
from contact_graph.extract.llm_client import LLMClient, parse_llm_json
from contact_graph.extract.models import (
    EvidenceBundle,
    OracleMode,
    OracleRequest,
    OracleResult,
    ProfilePatch,
    SearchResults,
)
from contact_graph.extract.prompts import (
    PROFILE_SCHEMA,
    build_enrich_prompt,
    build_extract_prompt,
    build_merge_prompt,
    build_research_prompt,
    contains_url,
)
from contact_graph.graph.models import ContactEntity
from contact_graph.resolve.trust import dedupe_sources

logger = logging.getLogger(__name__)


class ExtractionOracle:
    """Profile extraction, research, enrichment and merging via an LLM."""

    def __init__(self, llm: LLMClient):
        self.llm = llm

    async def extract_contact(self, text: str) -> OracleResult:
        """Extract a new contact profile from free text or a URL."""
        grounded = contains_url(text)
        request = OracleRequest(
            prompt=build_extract_prompt(text, grounded=grounded),
            mode=OracleMode.GROUNDED if grounded else OracleMode.STRICT,
        )
        return await self._ask(request)

    async def research(self, name: str, organization: str = "") -> SearchResults:
        """Search the web for a contact. Raises OracleCallError on failure."""
        request = OracleRequest(
            prompt=build_research_prompt(name, organization),
            mode=OracleMode.GROUNDED,
        )
        reply = await self.llm.acomplete(request)
        sources = dedupe_sources(reply.citations)
        logger.info(f"Research on {name!r}: {len(sources)} sources")
        return SearchResults(summary=reply.text.strip(), sources=sources)

    async def enrich_profile(
        self, target: ContactEntity, evidence: EvidenceBundle
    ) -> OracleResult:
        """Ask for an updated version of ``target`` given new evidence.

        A URL in the manual text switches the call to grounded mode so the
        oracle can resolve it.
        """
        grounded = contains_url(evidence.usable_manual_text)
        request = OracleRequest(
            prompt=build_enrich_prompt(target, evidence, grounded=grounded),
            mode=OracleMode.GROUNDED if grounded else OracleMode.STRICT,
            images=evidence.manual_images,
        )
        return await self._ask(request)

    async def merge_profiles(self, profiles: list[ContactEntity]) -> OracleResult:
        """Ask for one consolidated profile of several duplicates."""
        request = OracleRequest(prompt=build_merge_prompt(profiles), mode=OracleMode.STRICT)
        return await self._ask(request)

    async def _ask(self, request: OracleRequest) -> OracleResult:
        schema = PROFILE_SCHEMA if request.mode is OracleMode.STRICT else None
        try:
            reply = await self.llm.acomplete(request, response_schema=schema)
        except OracleCallError as e:
            return OracleResult.call_error(str(e))

        try:
            patch = ProfilePatch.model_validate(parse_llm_json(reply.text))
        except ValueError as e:
            # Covers ExtractionParseError and pydantic's ValidationError
            logger.warning(f"Unparseable oracle response ({request.mode.value} mode): {e}")
            return OracleResult.parse_error(str(e), raw_text=reply.text)

        return OracleResult.success(patch, raw_text=reply.text)
