"""Tracker scanning and analytics over DuckDuckGo TDS data."""

from .analytics import AnalyticsReport, generate_analytics, top_n
from .ledger import is_processed, read_ledger, upsert, write_ledger
from .models import CacheEntry, NormalizedDataset, ScanResult, TrackerEntry, TrackerHit
from .normalize import normalize_results
from .tracker_registry import TrackerIndex, find_tracker_info, load_tracker_index, normalize_domain

__all__ = [
    "AnalyticsReport",
    "CacheEntry",
    "NormalizedDataset",
    "ScanResult",
    "TrackerEntry",
    "TrackerHit",
    "TrackerIndex",
    "find_tracker_info",
    "generate_analytics",
    "is_processed",
    "load_tracker_index",
    "normalize_domain",
    "normalize_results",
    "read_ledger",
    "top_n",
    "upsert",
    "write_ledger",
]
