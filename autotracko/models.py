"""Records shared by the scanner, the cache ledger, the normalizer and analytics.

JSON field names are camelCase and stable: files written by one run are read
back by later runs (resume, ledger, analytics on saved data).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from .errors import ResultFormatError

_TRACKER_FIELDS = ("owner", "prevalence", "fingerprinting", "cookies", "default", "categories")
# Present in the raw registry, never kept on a loaded entry.
_DROPPED_TRACKER_FIELDS = ("rules",)


def _drop_none(d: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


def _opt_str(v: Any) -> str | None:
    return v if isinstance(v, str) else None


def _as_int(v: Any) -> int:
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return int(v)
    return 0


def _as_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ResultFormatError(f"{what} must be an object, got {type(data).__name__}")
    return data


def _as_list(data: Any, what: str) -> list[Any]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise ResultFormatError(f"{what} must be an array, got {type(data).__name__}")
    return data


@dataclass(frozen=True)
class TrackerEntry:
    owner: Any = None
    prevalence: float | None = None
    categories: tuple[str, ...] = ()
    fingerprinting: Any = None
    cookies: Any = None
    default: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def owner_name(self) -> str | None:
        # TDS files author the owner either as a plain string or as an object.
        if isinstance(self.owner, str):
            return self.owner or None
        if isinstance(self.owner, Mapping):
            name = self.owner.get("name") or self.owner.get("displayName")
            return name if isinstance(name, str) and name else None
        return None

    @classmethod
    def from_dict(cls, data: Any) -> "TrackerEntry":
        data = _as_mapping(data, "tracker entry")
        extra = {
            k: v for k, v in data.items()
            if k not in _TRACKER_FIELDS and k not in _DROPPED_TRACKER_FIELDS
        }

        raw_cats = data.get("categories")
        cats = [raw_cats] if isinstance(raw_cats, str) else raw_cats
        categories = tuple(c for c in cats if isinstance(c, str)) if isinstance(cats, list) else ()
        # Values that don't fit the typed fields are kept verbatim so to_dict() reproduces them.
        if raw_cats is not None and (not raw_cats or list(categories) != raw_cats):
            extra["categories"] = raw_cats

        prevalence = data.get("prevalence")
        if isinstance(prevalence, (int, float)) and not isinstance(prevalence, bool):
            prevalence = float(prevalence)
        elif prevalence is not None:
            extra["prevalence"] = prevalence
            prevalence = None

        return cls(
            owner=data.get("owner"),
            prevalence=prevalence,
            categories=categories,
            fingerprinting=data.get("fingerprinting"),
            cookies=data.get("cookies"),
            default=_opt_str(data.get("default")),
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        out = _drop_none({
            "owner": self.owner,
            "prevalence": self.prevalence,
            "fingerprinting": self.fingerprinting,
            "cookies": self.cookies,
            "default": self.default,
        })
        if self.categories:
            out["categories"] = list(self.categories)
        out.update(self.extra)
        return out


@dataclass(frozen=True)
class DomainOwnerInfo:
    name: str | None = None
    display_name: str | None = None
    country: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "DomainOwnerInfo | None":
        if isinstance(data, str):
            return cls(name=data)
        if not isinstance(data, Mapping):
            return None
        return cls(
            name=_opt_str(data.get("name")),
            display_name=_opt_str(data.get("displayName")),
            country=_opt_str(data.get("country")),
        )

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({"name": self.name, "displayName": self.display_name, "country": self.country})


@dataclass(frozen=True)
class DomainMetadata:
    """Everything a domain-list entry declares besides its URL."""
    owner: DomainOwnerInfo | None = None
    category: str | None = None
    language: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "DomainMetadata | None":
        if not isinstance(data, Mapping):
            return None
        return cls(
            owner=DomainOwnerInfo.from_dict(data.get("owner")),
            category=_opt_str(data.get("category")),
            language=_opt_str(data.get("language")),
            extra={k: v for k, v in data.items() if k not in ("url", "owner", "category", "language")},
        )

    def is_empty(self) -> bool:
        return not self.to_dict()

    def to_dict(self) -> dict[str, Any]:
        out = _drop_none({
            "owner": self.owner.to_dict() if self.owner else None,
            "category": self.category,
            "language": self.language,
        })
        out.update(self.extra)
        return out


@dataclass(frozen=True)
class DomainInput:
    url: str
    metadata: DomainMetadata | None = None
    rank: int | None = None


@dataclass(frozen=True)
class TrackerHit:
    domain: str
    info: TrackerEntry

    @classmethod
    def from_dict(cls, data: Any) -> "TrackerHit":
        data = _as_mapping(data, "tracker hit")
        domain = data.get("domain")
        if not isinstance(domain, str) or not domain:
            raise ResultFormatError("tracker hit is missing its 'domain'")
        return cls(domain=domain, info=TrackerEntry.from_dict(data.get("info")))

    def to_dict(self) -> dict[str, Any]:
        return {"domain": self.domain, "info": self.info.to_dict()}


@dataclass
class CollectedPage:
    """What the page collector observed while loading one URL."""
    final_url: str
    resource_urls: list[str] = field(default_factory=list)
    total_size: int = 0
    screenshot_path: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class ScanResult:
    requested_url: str
    final_url: str
    domain: str
    timestamp: str
    screenshot_path: str | None = None
    total_size: int = 0
    resource_urls: list[str] = field(default_factory=list)
    trackers: list[TrackerHit] = field(default_factory=list)
    error: str | None = None
    domain_metadata: DomainMetadata | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "ScanResult":
        data = _as_mapping(data, "scan result")
        return cls(
            requested_url=str(data.get("requestedUrl") or ""),
            final_url=str(data.get("finalUrl") or ""),
            domain=str(data.get("domain") or ""),
            timestamp=str(data.get("timestamp") or ""),
            screenshot_path=_opt_str(data.get("screenshotPath")),
            total_size=_as_int(data.get("totalSize")),
            resource_urls=[u for u in _as_list(data.get("resourceUrls"), "resourceUrls") if isinstance(u, str)],
            trackers=[TrackerHit.from_dict(t) for t in _as_list(data.get("trackers"), "trackers")],
            error=_opt_str(data.get("error")),
            domain_metadata=DomainMetadata.from_dict(data.get("domainMetadata")),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "requestedUrl": self.requested_url,
            "finalUrl": self.final_url,
            "domain": self.domain,
            "timestamp": self.timestamp,
            "screenshotPath": self.screenshot_path,
            "totalSize": self.total_size,
            "resourceUrls": list(self.resource_urls),
            "trackers": [t.to_dict() for t in self.trackers],
        }
        if self.error is not None:
            out["error"] = self.error
        if self.domain_metadata is not None:
            out["domainMetadata"] = self.domain_metadata.to_dict()
        return out


@dataclass(frozen=True)
class CacheEntry:
    domain: str
    last_checked: str
    success: bool
    error: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "CacheEntry":
        data = _as_mapping(data, "cache entry")
        domain = data.get("domain")
        if not isinstance(domain, str) or not domain:
            raise ResultFormatError("cache entry is missing its 'domain'")
        return cls(
            domain=domain,
            last_checked=str(data.get("lastChecked") or ""),
            success=data.get("success") is True,
            error=_opt_str(data.get("error")),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"domain": self.domain, "lastChecked": self.last_checked, "success": self.success}
        if self.error is not None:
            out["error"] = self.error
        return out


@dataclass(frozen=True)
class NormalizedScanResult:
    requested_url: str
    final_url: str
    domain: str
    timestamp: str
    screenshot_path: str | None = None
    total_size: int = 0
    tracker_domains: list[str] = field(default_factory=list)
    error: str | None = None
    domain_metadata: DomainMetadata | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "NormalizedScanResult":
        data = _as_mapping(data, "normalized scan result")
        return cls(
            requested_url=str(data.get("requestedUrl") or ""),
            final_url=str(data.get("finalUrl") or ""),
            domain=str(data.get("domain") or ""),
            timestamp=str(data.get("timestamp") or ""),
            screenshot_path=_opt_str(data.get("screenshotPath")),
            total_size=_as_int(data.get("totalSize")),
            tracker_domains=[d for d in _as_list(data.get("trackerDomains"), "trackerDomains") if isinstance(d, str)],
            error=_opt_str(data.get("error")),
            domain_metadata=DomainMetadata.from_dict(data.get("domainMetadata")),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "requestedUrl": self.requested_url,
            "finalUrl": self.final_url,
            "domain": self.domain,
            "timestamp": self.timestamp,
            "screenshotPath": self.screenshot_path,
            "totalSize": self.total_size,
            "trackerDomains": list(self.tracker_domains),
        }
        if self.error is not None:
            out["error"] = self.error
        if self.domain_metadata is not None:
            out["domainMetadata"] = self.domain_metadata.to_dict()
        return out


@dataclass(frozen=True)
class NormalizedDataset:
    generation_timestamp: str
    all_trackers: dict[str, TrackerEntry]
    scan_results: list[NormalizedScanResult]
    source_file: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "NormalizedDataset":
        data = _as_mapping(data, "normalized dataset")
        trackers = _as_mapping(data.get("allTrackers") or {}, "allTrackers")
        return cls(
            generation_timestamp=str(data.get("generationTimestamp") or ""),
            source_file=_opt_str(data.get("sourceFile")),
            all_trackers={k: TrackerEntry.from_dict(v) for k, v in trackers.items()},
            scan_results=[NormalizedScanResult.from_dict(r) for r in _as_list(data.get("scanResults"), "scanResults")],
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"generationTimestamp": self.generation_timestamp}
        if self.source_file is not None:
            out["sourceFile"] = self.source_file
        out["allTrackers"] = {k: v.to_dict() for k, v in self.all_trackers.items()}
        out["scanResults"] = [r.to_dict() for r in self.scan_results]
        return out
