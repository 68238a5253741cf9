"""Evidence trust filtering for web research sources."""

import logging
from typing import Iterable

from contact_graph.extract.models import SourceRef

logger = logging.getLogger(__name__)


def dedupe_sources(sources: Iterable[SourceRef]) -> list[SourceRef]:
    """Drop sources whose URL was already seen. First occurrence wins.

    Sources without a URL can't collide and are kept as-is.
    """
    seen: set[str] = set()
    result = []
    for source in sources:
        if source.url:
            if source.url in seen:
                continue
            seen.add(source.url)
        result.append(source)
    return result


def filter_trusted(sources: Iterable[SourceRef], ignored: set[str]) -> list[SourceRef]:
    """Keep sources whose URL the user did not exclude, in order.

    A source without a URL can't be vetted, so it is never trusted.
    """
    trusted = [s for s in sources if s.url and s.url not in ignored]
    logger.debug(f"Trusted {len(trusted)} sources ({len(ignored)} URLs ignored)")
    return trusted
