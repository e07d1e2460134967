from __future__ import annotations

import json
from pathlib import Path

from .errors import DomainListError
from .models import DomainInput, DomainMetadata
from .utils.logging import warn
from .utils.urls import ensure_scheme, is_valid_url


def parse_domain_inputs(data: object) -> list[DomainInput]:
    """
    Validate a domains document: a JSON array of ``{"url": ..., "category": ..., "owner": {...}}``.

    Entries without a usable URL are skipped with a warning; a missing scheme
    defaults to https.
    """
    if not isinstance(data, list):
        raise DomainListError("Domains file content must be a JSON array.")

    inputs: list[DomainInput] = []
    for entry in data:
        url = entry.get("url") if isinstance(entry, dict) else None
        if not isinstance(url, str) or not url.strip():
            warn(f"Skipping entry with missing or invalid 'url': {json.dumps(entry, ensure_ascii=False)}")
            continue
        url = ensure_scheme(url)
        if not is_valid_url(url):
            warn(f"Skipping entry with invalid URL format: {entry['url']}")
            continue
        meta = DomainMetadata.from_dict(entry)
        inputs.append(DomainInput(url=url, metadata=None if meta is None or meta.is_empty() else meta))

    if not inputs:
        raise DomainListError("No valid domain entries found in the domains JSON file.")
    return inputs


def load_domain_inputs(path: str | Path) -> list[DomainInput]:
    p = Path(path)
    if not p.exists():
        raise DomainListError(f"Domains file not found: {p}")
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DomainListError(f"Error loading or parsing domains from {p}: {e}") from e
    return parse_domain_inputs(data)


def get_tranco_inputs(top_n: int, date: str | None, cache_dir: str) -> list[DomainInput]:
    """Returns a reproducible Tranco list snapshot (top N) using the official `tranco` Python package."""
    try:
        from tranco import Tranco
    except ImportError as e:
        raise RuntimeError("Missing dependency `tranco`. Install with `pip install tranco`.") from e

    t = Tranco(cache=True, cache_dir=cache_dir)
    lst = t.list(date=date) if date else t.list()

    domains = lst.top(top_n)
    return [DomainInput(url=ensure_scheme(d), rank=i) for i, d in enumerate(domains, start=1)]
