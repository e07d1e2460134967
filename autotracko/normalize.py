from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

from .errors import ResultFormatError
from .models import NormalizedDataset, NormalizedScanResult, ScanResult, TrackerEntry, TrackerHit
from .utils.clock import utc_now_iso
from .utils.io import read_json


def normalize_results(results: Iterable[ScanResult], source_file: str | Path | None = None) -> NormalizedDataset:
    """
    Collapse raw per-site results into one dataset with a shared tracker dictionary.

    The first site that reports a tracker domain decides its info for the whole
    dataset; later sightings never overwrite it. Sites reference trackers by
    domain and lose their resource URL lists.
    """
    all_trackers: dict[str, TrackerEntry] = {}
    scan_results: list[NormalizedScanResult] = []

    for result in results:
        tracker_domains: list[str] = []
        for hit in result.trackers:
            if hit.domain not in tracker_domains:
                tracker_domains.append(hit.domain)
            if hit.domain not in all_trackers:
                all_trackers[hit.domain] = hit.info

        scan_results.append(NormalizedScanResult(
            requested_url=result.requested_url,
            final_url=result.final_url,
            domain=result.domain,
            timestamp=result.timestamp,
            screenshot_path=result.screenshot_path,
            total_size=result.total_size,
            tracker_domains=tracker_domains,
            error=result.error,
            domain_metadata=result.domain_metadata,
        ))

    return NormalizedDataset(
        generation_timestamp=utc_now_iso(),
        source_file=Path(source_file).name if source_file else None,
        all_trackers=all_trackers,
        scan_results=scan_results,
    )


def expand_trackers(dataset: NormalizedDataset, result: NormalizedScanResult) -> list[TrackerHit]:
    """Re-attach tracker info to a site's references (unknown domains are left out)."""
    return [
        TrackerHit(domain=d, info=dataset.all_trackers[d])
        for d in result.tracker_domains
        if d in dataset.all_trackers
    ]


def scan_results_from_json(data: Any) -> list[ScanResult]:
    if not isinstance(data, list):
        raise ResultFormatError("Scan results must be a JSON array.")
    return [ScanResult.from_dict(item) for item in data]


def load_scan_results(path: str | Path) -> list[ScanResult]:
    return scan_results_from_json(read_json(path))


def load_dataset(path: str | Path) -> NormalizedDataset:
    """Read a normalized dataset, or a raw results array which is normalized on the fly."""
    data = read_json(path)
    if isinstance(data, dict) and "scanResults" in data:
        return NormalizedDataset.from_dict(data)
    return normalize_results(scan_results_from_json(data), source_file=path)
