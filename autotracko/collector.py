from __future__ import annotations

import base64
import binascii
import inspect
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from .models import CollectedPage
from .utils.clock import epoch_ms
from .utils.logging import debug, warn
from .utils.urls import hostname

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/115.0.0.0 Safari/537.36"
)


@dataclass
class CollectorConfig:
    browser_type: str = "chromium"
    headless: bool = True
    verbose: bool = False
    user_agent: str | None = DEFAULT_USER_AGENT
    viewport_width: int = 1280
    viewport_height: int = 800
    page_timeout_ms: int = 30000
    wait_until: str = "networkidle"
    screenshots: bool = True
    screenshot_dir: str = "screenshots"
    locale: str | None = None
    timezone_id: str | None = None
    proxy: str | None = None


def _filter_kwargs(cls: Any, kwargs: dict[str, Any]) -> dict[str, Any]:
    """
    Filter kwargs to only those accepted by a class' __init__.

    If the target __init__ accepts **kwargs, nothing is filtered: Crawl4AI
    config classes change between releases and silently dropping a valid
    option makes it fall back to its own defaults.
    """
    cleaned = {k: v for k, v in kwargs.items() if v is not None}
    try:
        sig = inspect.signature(cls.__init__)
    except (TypeError, ValueError):
        return cleaned

    if any(p.kind == inspect.Parameter.VAR_KEYWORD for p in sig.parameters.values()):
        return cleaned
    allowed = set(sig.parameters.keys())
    allowed.discard("self")
    return {k: v for k, v in cleaned.items() if k in allowed}


def _proxy_to_proxy_config(proxy: str) -> dict[str, str]:
    """Playwright-style proxy fields (server, username, password) from a proxy URL."""
    p = urlparse(proxy)
    cfg: dict[str, str] = {"server": proxy}
    if p.username:
        cfg["username"] = p.username
    if p.password:
        cfg["password"] = p.password
    return cfg


def _content_length(headers: Any) -> int:
    if not isinstance(headers, dict):
        return 0
    for k, v in headers.items():
        if isinstance(k, str) and k.lower() == "content-length":
            try:
                return int(v)
            except (TypeError, ValueError):
                return 0
    return 0


def summarize_network(events: list[dict[str, Any]] | None) -> tuple[list[str], int]:
    """
    Resource URLs and transferred bytes from Crawl4AI network events.

    Every response URL is kept in arrival order (repeats included); requests
    that never got a response are appended afterwards. Size is the sum of
    response ``content-length`` headers.
    """
    urls: list[str] = []
    responded: set[str] = set()
    total = 0
    pending: list[str] = []
    for ev in events or []:
        if not isinstance(ev, dict) or not isinstance(ev.get("url"), str):
            continue
        kind = ev.get("event_type")
        if kind == "response":
            urls.append(ev["url"])
            responded.add(ev["url"])
            total += _content_length(ev.get("headers"))
        elif kind in ("request", "request_failed"):
            pending.append(ev["url"])
    for u in pending:
        if u not in responded:
            responded.add(u)
            urls.append(u)
    return urls, total


class Crawl4AICollector:
    """
    Page collector backed by Crawl4AI's AsyncWebCrawler.

    Navigation failures are reported on the returned page, never raised.
    """

    def __init__(self, config: CollectorConfig | None = None) -> None:
        self.config = config or CollectorConfig()
        self._crawler = None

    async def __aenter__(self) -> "Crawl4AICollector":
        try:
            from crawl4ai import AsyncWebCrawler, BrowserConfig
        except ImportError as e:
            raise RuntimeError(
                "Crawl4AI is not installed or failed to import. Install with `pip install crawl4ai`."
            ) from e

        cfg = self.config
        bc_kwargs: dict[str, Any] = dict(
            browser_type=cfg.browser_type,
            headless=cfg.headless,
            verbose=cfg.verbose,
            user_agent=cfg.user_agent,
            viewport_width=cfg.viewport_width,
            viewport_height=cfg.viewport_height,
        )
        if cfg.proxy:
            bc_kwargs["proxy_config"] = _proxy_to_proxy_config(cfg.proxy)

        self._crawler = AsyncWebCrawler(config=BrowserConfig(**_filter_kwargs(BrowserConfig, bc_kwargs)))
        await self._crawler.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._crawler:
            await self._crawler.close()
        self._crawler = None

    def _save_screenshot(self, url: str, data: str | None) -> str | None:
        if not data:
            return None
        try:
            png = base64.b64decode(data)
        except (binascii.Error, ValueError) as e:
            warn(f"Error decoding screenshot for {url}: {e}")
            return None
        out_dir = Path(self.config.screenshot_dir)
        path = out_dir / f"{hostname(url) or 'unknown-domain'}-{epoch_ms()}.png"
        try:
            out_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(png)
        except OSError as e:
            warn(f"Error capturing screenshot for {url}: {e}")
            return None
        return str(path)

    async def collect(self, url: str) -> CollectedPage:
        if not self._crawler:
            raise RuntimeError("Crawl4AICollector must be used as an async context manager.")

        from crawl4ai import CacheMode, CrawlerRunConfig

        cfg = self.config
        run_kwargs: dict[str, Any] = {
            "cache_mode": CacheMode.BYPASS,
            "verbose": bool(cfg.verbose),
            "log_console": False,
            "capture_console_messages": False,
            "capture_network_requests": True,
            "screenshot": cfg.screenshots,
            "wait_until": cfg.wait_until,
            "page_timeout": cfg.page_timeout_ms,
            "locale": cfg.locale,
            "timezone_id": cfg.timezone_id,
        }
        run_cfg = CrawlerRunConfig(**_filter_kwargs(CrawlerRunConfig, run_kwargs))

        debug(f"Navigating to {url} with wait_until: {cfg.wait_until}...")
        try:
            res = await self._crawler.arun(url=url, config=run_cfg)
        except Exception as e:
            # Crawl4AI and Playwright raise a wide range of types on navigation failure.
            warn(f"Error during website data collection for {url}: {e}")
            return CollectedPage(final_url=url, error=str(e))

        final_url = getattr(res, "redirected_url", None) or getattr(res, "url", None) or url
        events = getattr(res, "network_requests", None)
        if events is None:
            events = getattr(res, "captured_requests", None)
        resource_urls, total_size = summarize_network(events)

        error = None
        if not getattr(res, "success", False):
            error = getattr(res, "error_message", None) or "navigation_failed"

        screenshot_path = None
        if cfg.screenshots and not error:
            screenshot_path = self._save_screenshot(final_url, getattr(res, "screenshot", None))

        return CollectedPage(
            final_url=final_url,
            resource_urls=resource_urls,
            total_size=total_size,
            screenshot_path=screenshot_path,
            error=error,
        )
