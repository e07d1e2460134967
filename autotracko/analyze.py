"""Normalize saved scan results and write the analytics report."""
from __future__ import annotations

import argparse
import json

from .analytics import GROUP_TOP_N, TOP_N, generate_analytics
from .errors import AnalyticsError, ResultFormatError
from .normalize import load_dataset
from .utils.io import write_json
from .utils.logging import error, log, set_verbose


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="autotracko-analyze",
        description="Normalize scan results and generate tracker analytics (by owner, category and country).",
    )
    p.add_argument("--results", type=str, default="results.json", help="Raw scan results array written by `autotracko`, or an already normalized dataset.")
    p.add_argument("--output", type=str, default="normalized_results.json", help="Where to write the normalized dataset.")
    p.add_argument("--analytics-output", type=str, default="analytics.json", help="Where to write the analytics report.")
    p.add_argument("--top-n", type=int, default=TOP_N, help=f"Size of the global rankings. Default: {TOP_N}")
    p.add_argument("--group-top-n", type=int, default=GROUP_TOP_N, help=f"Owners listed per category/country. Default: {GROUP_TOP_N}")
    p.add_argument("--verbose", action="store_true", help="Debug logging.")
    return p.parse_args(argv)


def run(args: argparse.Namespace) -> int:
    set_verbose(args.verbose)
    log(f"Reading results from: {args.results}")

    try:
        dataset = load_dataset(args.results)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, ResultFormatError) as e:
        error(f"Error loading results file {args.results}: {e}")
        return 1

    try:
        write_json(args.output, dataset.to_dict())
    except OSError as e:
        error(f"Error writing normalized results to {args.output}: {e}")
        return 1
    log(f"Normalized results ({len(dataset.scan_results)} sites, {len(dataset.all_trackers)} trackers) saved to {args.output}")

    try:
        report = generate_analytics(dataset, args.output, top=args.top_n, group_top=args.group_top_n)
    except AnalyticsError as e:
        error(f"Error generating analytics: {e}")
        return 1

    try:
        write_json(args.analytics_output, report.to_dict())
    except OSError as e:
        error(f"Error writing analytics to {args.analytics_output}: {e}")
        return 1
    log(f"Analytics generated successfully and saved to {args.analytics_output}")
    return 0


def main(argv: list[str] | None = None) -> None:
    raise SystemExit(run(_parse_args(argv)))


if __name__ == "__main__":
    main()
