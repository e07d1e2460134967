from __future__ import annotations
from urllib.parse import urlparse

def hostname(url: str) -> str | None:
    try:
        h = urlparse(url).hostname
        return h if h else None
    except ValueError:
        return None

def ensure_scheme(url: str) -> str:
    url = url.strip()
    if url.startswith("http://") or url.startswith("https://"):
        return url
    return "https://" + url

def is_valid_url(url: str) -> bool:
    try:
        p = urlparse(url)
        return p.scheme in ("http", "https") and bool(p.hostname)
    except ValueError:
        return False
