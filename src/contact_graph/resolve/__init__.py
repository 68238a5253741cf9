"""Identity consolidation: merge duplicates and enrich from evidence.

Multi-profile merge with a deterministic field policy, enrichment with
stub discovery, and trust filtering of web research sources.
"""

from contact_graph.resolve.enrich import EnrichmentPipeline, apply_patch
from contact_graph.resolve.merge import amerge_profiles, merge_profiles
from contact_graph.resolve.models import EnrichmentOutcome, MergeOutcome
from contact_graph.resolve.trust import dedupe_sources, filter_trusted

__all__ = [
    "EnrichmentOutcome",
    "EnrichmentPipeline",
    "MergeOutcome",
    "amerge_profiles",
    "apply_patch",
    "dedupe_sources",
    "filter_trusted",
    "merge_profiles",
]
