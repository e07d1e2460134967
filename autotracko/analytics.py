from __future__ import annotations

import math
import statistics
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from .errors import AnalyticsError
from .models import NormalizedDataset, NormalizedScanResult, TrackerEntry
from .utils.clock import utc_now_iso
from .utils.logging import warn

TOP_N = 20
GROUP_TOP_N = 5

UNKNOWN_OWNER = "Unknown Owner"
UNKNOWN_CATEGORY = "Unknown Category"
UNKNOWN_COUNTRY = "Unknown Country"


@dataclass(frozen=True)
class FrequencyItem:
    name: str
    count: int
    percentage: float

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "count": self.count, "percentage": self.percentage}


@dataclass(frozen=True)
class GroupAnalysis:
    site_count: int
    total_tracker_instances: int
    average_trackers_per_site: float
    top_tracker_owners: tuple[FrequencyItem, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "siteCount": self.site_count,
            "totalTrackerInstances": self.total_tracker_instances,
            "averageTrackersPerSite": self.average_trackers_per_site,
            "topTrackerOwners": [i.to_dict() for i in self.top_tracker_owners],
        }


@dataclass(frozen=True)
class AnalyticsSummary:
    total_sites_processed: int
    sites_with_errors: int
    sites_with_trackers: int
    total_tracker_instances: int
    total_unique_tracker_domains: int
    total_unique_tracker_owners: int
    average_trackers_per_site: float
    average_unique_tracker_domains_per_site: float
    average_unique_tracker_owners_per_site: float
    average_page_size_bytes: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalSitesProcessed": self.total_sites_processed,
            "sitesWithErrors": self.sites_with_errors,
            "sitesWithTrackers": self.sites_with_trackers,
            "totalTrackerInstances": self.total_tracker_instances,
            "totalUniqueTrackerDomains": self.total_unique_tracker_domains,
            "totalUniqueTrackerOwners": self.total_unique_tracker_owners,
            "averageTrackersPerSite": self.average_trackers_per_site,
            "averageUniqueTrackerDomainsPerSite": self.average_unique_tracker_domains_per_site,
            "averageUniqueTrackerOwnersPerSite": self.average_unique_tracker_owners_per_site,
            "averagePageSizeBytes": self.average_page_size_bytes,
        }


@dataclass(frozen=True)
class TrackerCountDistribution:
    min: int
    max: int
    median: float
    mean: float

    def to_dict(self) -> dict[str, Any]:
        return {"min": self.min, "max": self.max, "median": self.median, "mean": self.mean}


@dataclass(frozen=True)
class AnalyticsReport:
    generation_timestamp: str
    input_file: str | None
    summary: AnalyticsSummary
    tracker_count_distribution: TrackerCountDistribution
    top_tracker_domains: tuple[FrequencyItem, ...]
    top_tracker_owners: tuple[FrequencyItem, ...]
    top_tracker_categories: tuple[FrequencyItem, ...]
    analysis_by_category: Mapping[str, GroupAnalysis] | None = None
    analysis_by_country: Mapping[str, GroupAnalysis] | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"generationTimestamp": self.generation_timestamp}
        if self.input_file is not None:
            out["inputFile"] = self.input_file
        out.update({
            "summary": self.summary.to_dict(),
            "trackerCountDistribution": self.tracker_count_distribution.to_dict(),
            "topTrackerDomains": [i.to_dict() for i in self.top_tracker_domains],
            "topTrackerOwners": [i.to_dict() for i in self.top_tracker_owners],
            "topTrackerCategories": [i.to_dict() for i in self.top_tracker_categories],
        })
        if self.analysis_by_category:
            out["analysisByCategory"] = {k: g.to_dict() for k, g in self.analysis_by_category.items()}
        if self.analysis_by_country:
            out["analysisByCountry"] = {k: g.to_dict() for k, g in self.analysis_by_country.items()}
        return out


def _round2(x: float) -> float:
    return round(x, 2)


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _site_counts(site_sets: Mapping[str, set[str]]) -> Counter:
    return Counter({name: len(sites) for name, sites in site_sets.items()})


def top_n(counts: Mapping[str, int], total: int, n: int = TOP_N) -> tuple[FrequencyItem, ...]:
    """Highest counts first; equal counts keep the order in which names were first counted."""
    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)[:n]
    return tuple(
        FrequencyItem(name=name, count=count, percentage=_round2(count / total * 100) if total else 0.0)
        for name, count in ranked
    )


@dataclass
class _GroupAccumulator:
    sites: set[str] = field(default_factory=set)
    tracker_instances: int = 0
    owner_sites: dict[str, set[str]] = field(default_factory=dict)

    def add(self, site: str, owner: str) -> None:
        self.sites.add(site)
        self.tracker_instances += 1
        self.owner_sites.setdefault(owner, set()).add(site)

    def to_analysis(self, top: int) -> GroupAnalysis:
        site_count = len(self.sites)
        return GroupAnalysis(
            site_count=site_count,
            total_tracker_instances=self.tracker_instances,
            average_trackers_per_site=_round2(self.tracker_instances / site_count),
            top_tracker_owners=top_n(_site_counts(self.owner_sites), site_count, top),
        )


@dataclass
class _Accumulator:
    all_trackers: Mapping[str, TrackerEntry]
    sites_with_errors: int = 0
    sites_with_trackers: int = 0
    total_page_size: int = 0
    tracker_counts: list[int] = field(default_factory=list)
    unique_domains_per_site: list[int] = field(default_factory=list)
    unique_owners_per_site: list[int] = field(default_factory=list)
    domain_sites: dict[str, set[str]] = field(default_factory=dict)
    owner_sites: dict[str, set[str]] = field(default_factory=dict)
    category_instances: Counter = field(default_factory=Counter)
    by_category: dict[str, _GroupAccumulator] = field(default_factory=dict)
    by_country: dict[str, _GroupAccumulator] = field(default_factory=dict)

    def update(self, result: NormalizedScanResult) -> None:
        if result.error:
            self.sites_with_errors += 1
        self.total_page_size += result.total_size or 0

        count = len(result.tracker_domains)
        if count > 0:
            self.sites_with_trackers += 1
        self.tracker_counts.append(count)

        meta = result.domain_metadata
        site_category = (meta.category if meta else None) or UNKNOWN_CATEGORY
        site_country = (meta.owner.country if meta and meta.owner else None) or UNKNOWN_COUNTRY

        site = result.domain
        site_owners: set[str] = set()
        for tracker_domain in result.tracker_domains:
            info = self.all_trackers.get(tracker_domain)
            if info is None:
                warn(f'Tracker domain "{tracker_domain}" found in results but not in allTrackers map. Skipping.')
                continue

            owner = info.owner_name or UNKNOWN_OWNER
            site_owners.add(owner)
            self.domain_sites.setdefault(tracker_domain, set()).add(site)
            self.owner_sites.setdefault(owner, set()).add(site)
            self.category_instances.update(info.categories)

            self.by_category.setdefault(site_category, _GroupAccumulator()).add(site, owner)
            self.by_country.setdefault(site_country, _GroupAccumulator()).add(site, owner)

        self.unique_domains_per_site.append(len(set(result.tracker_domains)))
        self.unique_owners_per_site.append(len(site_owners))

    def to_report(self, input_file: str | None, top: int, group_top: int) -> AnalyticsReport:
        total_sites = len(self.tracker_counts)
        total_instances = sum(self.tracker_counts)
        owner_names = {info.owner_name or UNKNOWN_OWNER for info in self.all_trackers.values()}

        summary = AnalyticsSummary(
            total_sites_processed=total_sites,
            sites_with_errors=self.sites_with_errors,
            sites_with_trackers=self.sites_with_trackers,
            total_tracker_instances=total_instances,
            total_unique_tracker_domains=len(self.all_trackers),
            total_unique_tracker_owners=len(owner_names),
            average_trackers_per_site=_round2(total_instances / total_sites),
            average_unique_tracker_domains_per_site=_round2(sum(self.unique_domains_per_site) / total_sites),
            average_unique_tracker_owners_per_site=_round2(sum(self.unique_owners_per_site) / total_sites),
            average_page_size_bytes=_round_half_up(self.total_page_size / total_sites),
        )
        distribution = TrackerCountDistribution(
            min=min(self.tracker_counts),
            max=max(self.tracker_counts),
            median=statistics.median(self.tracker_counts),
            mean=summary.average_trackers_per_site,
        )

        by_category = {k: g.to_analysis(group_top) for k, g in self.by_category.items()}
        by_country = {k: g.to_analysis(group_top) for k, g in self.by_country.items()}

        return AnalyticsReport(
            generation_timestamp=utc_now_iso(),
            input_file=input_file,
            summary=summary,
            tracker_count_distribution=distribution,
            top_tracker_domains=top_n(_site_counts(self.domain_sites), total_sites, top),
            top_tracker_owners=top_n(_site_counts(self.owner_sites), total_sites, top),
            top_tracker_categories=top_n(self.category_instances, total_instances, top),
            analysis_by_category=by_category or None,
            analysis_by_country=by_country or None,
        )


def generate_analytics(
    dataset: NormalizedDataset,
    input_file: str | Path | None = None,
    *,
    top: int = TOP_N,
    group_top: int = GROUP_TOP_N,
) -> AnalyticsReport:
    """
    Aggregate a normalized dataset into rankings and per-category / per-country breakdowns.

    Domain and owner rankings count distinct sites; category rankings count
    tracker instances (a tracker with two categories counts once for each).
    Groups only report their top ``group_top`` owners.
    """
    if not dataset.scan_results:
        raise AnalyticsError("Cannot generate analytics: No results found in input.")

    acc = _Accumulator(all_trackers=dataset.all_trackers)
    for result in dataset.scan_results:
        acc.update(result)

    return acc.to_report(Path(input_file).name if input_file else None, top, group_top)
