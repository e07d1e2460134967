from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from .errors import TrackerRegistryError
from .models import TrackerEntry
from .utils.logging import debug, warn


def normalize_domain(domain: str) -> str:
    """Lower-case and drop one leading ``www.``; ``sub.www.x.com`` is left alone."""
    if not domain:
        return ""
    d = domain.lower()
    if d.startswith("www."):
        d = d[4:]
    return d


def parse_tracker_data(raw: str) -> dict[str, Any]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise TrackerRegistryError(f"Invalid tracker data format: {e}") from e

    if not isinstance(parsed, dict) or not isinstance(parsed.get("trackers"), dict):
        raise TrackerRegistryError("Parsed data must include a valid 'trackers' object.")
    return parsed


class _TrieNode:
    __slots__ = ("children", "position", "original_key")

    def __init__(self) -> None:
        self.children: dict[str, _TrieNode] = {}
        # Set only on nodes where a normalized tracker domain ends.
        self.position: int | None = None
        self.original_key: str | None = None


class TrackerIndex:
    """
    Lookup structure over a tracker registry (DuckDuckGo TDS format).

    Keeps ``normalized domain -> registry key`` in registry order, plus a trie
    over reversed labels (``com -> example -> sub``) for subdomain lookups.

    Subdomain resolution returns the tracker whose key was inserted FIRST among
    all keys that are a suffix of the observed domain, not the most specific
    one; a broad ``example.com`` listed before ``sub.example.com`` wins for
    ``a.sub.example.com``.
    """

    def __init__(self, trackers: Mapping[str, TrackerEntry] | None = None) -> None:
        self._trackers: dict[str, TrackerEntry] = {}
        self._normalized: dict[str, str] = {}
        self._root = _TrieNode()
        for key, entry in (trackers or {}).items():
            self._trackers[key] = entry
            # Duplicate normalized keys: last registry key wins, first position is kept.
            self._normalized[normalize_domain(key)] = key
        self._build_trie()

    @classmethod
    def build(cls, registry: Mapping[str, Any] | None) -> "TrackerIndex":
        if not isinstance(registry, Mapping) or not isinstance(registry.get("trackers"), Mapping):
            warn("Tracker registry is missing or 'trackers' is not an object; using an empty index.")
            return cls()

        trackers: dict[str, TrackerEntry] = {}
        for key, raw in registry["trackers"].items():
            if not isinstance(key, str) or not isinstance(raw, Mapping):
                warn(f"Skipping malformed tracker registry entry: {key!r}")
                continue
            trackers[key] = TrackerEntry.from_dict(raw)
        return cls(trackers)

    def _build_trie(self) -> None:
        for position, (norm, original) in enumerate(self._normalized.items()):
            if not norm:
                continue
            node = self._root
            for label in reversed(norm.split(".")):
                node = node.children.setdefault(label, _TrieNode())
            node.position = position
            node.original_key = original

    def __len__(self) -> int:
        return len(self._normalized)

    def original_key(self, normalized: str) -> str | None:
        return self._normalized.get(normalized)

    def entry(self, original_key: str) -> TrackerEntry | None:
        return self._trackers.get(original_key)

    def resolve_key(self, domain: str) -> str | None:
        """Registry key tracking ``domain`` (exact match first, then subdomain match)."""
        norm = normalize_domain(domain)
        if not norm:
            return None

        exact = self._normalized.get(norm)
        if exact is not None:
            return exact

        labels = list(reversed(norm.split(".")))
        best: _TrieNode | None = None
        node = self._root
        # Stop one label short: only proper suffixes count here.
        for label in labels[:-1]:
            node = node.children.get(label)
            if node is None:
                break
            if node.position is not None and (best is None or node.position < best.position):
                best = node
        return best.original_key if best else None

    def resolve(self, domain: str) -> TrackerEntry | None:
        key = self.resolve_key(domain)
        return self._trackers.get(key) if key is not None else None


def find_tracker_info(domain: str, index: TrackerIndex | None) -> TrackerEntry | None:
    if index is None or len(index) == 0:
        return None
    return index.resolve(domain)


def load_tracker_index(path: str | Path) -> TrackerIndex:
    """
    Read a TDS file (e.g. ``extension-mv3-tds.json``) and build its index.

    Raises TrackerRegistryError when the file is missing, unreadable or not a
    valid registry. A registry that loads but has no trackers is returned as an
    empty index; callers decide whether that is fatal.
    """
    p = Path(path)
    debug(f"Loading tracker data from: {p}")
    if not p.exists():
        raise TrackerRegistryError(f"File not found at {p}")
    try:
        raw = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise TrackerRegistryError(f"Could not read {p}: {e}") from e

    index = TrackerIndex.build(parse_tracker_data(raw))
    debug(f"Tracker data loaded and prepared: {len(index)} tracker domains.")
    return index
