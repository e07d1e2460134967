#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

import aiohttp

from autotracko.errors import TrackerRegistryError
from autotracko.tracker_registry import parse_tracker_data

TRACKER_URL = "https://raw.githubusercontent.com/duckduckgo/tracker-blocklists/main/web/v6/extension-mv3-tds.json"

async def _download(url: str, timeout_s: float) -> str:
    timeout = aiohttp.ClientTimeout(total=timeout_s)
    async with aiohttp.ClientSession(timeout=timeout) as session:
        async with session.get(url) as resp:
            if resp.status >= 400:
                raise SystemExit(f"Failed to fetch tracker file: {resp.status} {resp.reason}")
            return await resp.text()

def main() -> None:
    ap = argparse.ArgumentParser(description="Download the DuckDuckGo tracker data set (TDS) used by autotracko.")
    ap.add_argument("--url", default=TRACKER_URL)
    ap.add_argument("--out", default=str(Path("data") / "extension-mv3-tds.json"))
    ap.add_argument("--timeout", type=float, default=60.0, help="Download timeout in seconds.")
    args = ap.parse_args()

    print(f"Fetching tracker file from {args.url}...")
    try:
        raw = asyncio.run(_download(args.url, args.timeout))
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise SystemExit(f"Error fetching tracker file: {e}")

    try:
        trackers = parse_tracker_data(raw)["trackers"]
    except TrackerRegistryError as e:
        raise SystemExit(f"Downloaded file is not a valid tracker list: {e}")

    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(raw, encoding="utf-8")
    print(f"Wrote {len(trackers):,} tracker domains to {out}")

if __name__ == "__main__":
    main()
