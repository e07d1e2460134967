"""Ledger of site domains already scanned, so re-runs skip finished sites.

Ledgers are tuples: every update returns a new tuple and leaves the previous
snapshot untouched. Lookups are linear in the ledger size.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence

from .errors import ResultFormatError
from .models import CacheEntry
from .utils.io import write_json
from .utils.logging import debug, error, warn

Ledger = tuple[CacheEntry, ...]

DEFAULT_LEDGER_FILE = "cache.json"


def find_cache_entry(domain: str, ledger: Sequence[CacheEntry]) -> CacheEntry | None:
    for entry in ledger:
        if entry.domain == domain:
            return entry
    return None


def is_processed(domain: str, ledger: Sequence[CacheEntry]) -> bool:
    """True only for a successful entry; failed sites are retried on the next run."""
    entry = find_cache_entry(domain, ledger)
    return entry is not None and entry.success


def upsert(entry: CacheEntry, ledger: Sequence[CacheEntry]) -> Ledger:
    for i, existing in enumerate(ledger):
        if existing.domain == entry.domain:
            return (*ledger[:i], entry, *ledger[i + 1:])
    return (*ledger, entry)


def read_ledger(path: str | Path = DEFAULT_LEDGER_FILE) -> Ledger:
    p = Path(path)
    if not p.exists():
        debug(f"Cache file not found at {p}, starting empty.")
        return ()
    try:
        raw = p.read_text(encoding="utf-8")
        if not raw.strip():
            debug(f"Cache file at {p} is empty, starting empty.")
            return ()
        parsed = json.loads(raw)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        error(f"Error reading or parsing cache file {p}: {e}. Starting empty.")
        return ()

    if not isinstance(parsed, list):
        error(f"Error parsing cache file {p}: content is not an array. Starting empty.")
        return ()

    ledger: Ledger = ()
    for item in parsed:
        try:
            ledger = upsert(CacheEntry.from_dict(item), ledger)
        except ResultFormatError as e:
            warn(f"Skipping malformed cache entry in {p}: {e}")
    return ledger


def write_ledger(ledger: Sequence[CacheEntry], path: str | Path = DEFAULT_LEDGER_FILE) -> bool:
    try:
        write_json(path, [entry.to_dict() for entry in ledger])
    except OSError as e:
        error(f"Error writing cache file to {path}: {e}")
        return False
    debug(f"Cache successfully written to {path}")
    return True
