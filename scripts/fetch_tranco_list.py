#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
from pathlib import Path

from tranco import Tranco

def main() -> None:
    ap = argparse.ArgumentParser(description="Fetch a Tranco top-N list and write it as an autotracko domains file.")
    ap.add_argument("--top", type=int, default=1000)
    ap.add_argument("--date", type=str, default=None, help="YYYY-MM-DD snapshot date (recommended)")
    ap.add_argument("--cache-dir", type=str, default=".tranco_cache")
    ap.add_argument("--category", type=str, default=None, help="Category to declare on every entry.")
    ap.add_argument("--out", required=True)
    args = ap.parse_args()

    t = Tranco(cache=True, cache_dir=args.cache_dir)
    lst = t.list(date=args.date) if args.date else t.list()
    domains = lst.top(args.top)

    entries = []
    for d in domains:
        entry = {"url": f"https://{d}"}
        if args.category:
            entry["category"] = args.category
        entries.append(entry)

    Path(args.out).write_text(json.dumps(entries, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
    print(f"Wrote {len(entries):,} domains to {args.out}")

if __name__ == "__main__":
    main()
