from __future__ import annotations

from typing import Iterable, Protocol

from .models import CollectedPage, DomainMetadata, ScanResult, TrackerHit
from .tracker_registry import TrackerIndex, find_tracker_info
from .utils.clock import utc_now_iso
from .utils.logging import debug
from .utils.urls import hostname


class PageCollector(Protocol):
    async def collect(self, url: str) -> CollectedPage: ...


def identify_trackers(resource_urls: Iterable[str], index: TrackerIndex | None) -> list[TrackerHit]:
    """Resolve each distinct resource hostname once, in the order it was first loaded."""
    if index is None:
        return []

    hits: list[TrackerHit] = []
    seen: set[str] = set()
    for url in resource_urls:
        if not url or not isinstance(url, str):
            continue
        h = hostname(url)
        if not h or h in seen:
            continue
        seen.add(h)
        info = find_tracker_info(h, index)
        if info is not None:
            hits.append(TrackerHit(domain=h, info=info))
    return hits


async def scan_website(
    collector: PageCollector,
    url: str,
    index: TrackerIndex | None,
    *,
    metadata: DomainMetadata | None = None,
) -> ScanResult:
    started_at = utc_now_iso()
    page = await collector.collect(url)
    trackers = identify_trackers(page.resource_urls, index)
    debug(f"{url}: {len(page.resource_urls)} resources, {len(trackers)} trackers")

    return ScanResult(
        requested_url=url,
        final_url=page.final_url,
        domain=hostname(page.final_url) or "unknown",
        timestamp=started_at,
        screenshot_path=page.screenshot_path,
        total_size=page.total_size,
        resource_urls=list(page.resource_urls),
        trackers=trackers,
        error=page.error,
        domain_metadata=metadata,
    )


def error_result(url: str, domain: str, message: str, metadata: DomainMetadata | None = None) -> ScanResult:
    """Placeholder result for a site whose scan raised before producing anything."""
    return ScanResult(
        requested_url=url,
        final_url=url,
        domain=domain,
        timestamp=utc_now_iso(),
        error=message,
        domain_metadata=metadata,
    )
