#!/usr/bin/env python3
"""
Traffic split checker for a running contact-router

Calls /api/get-random-phone repeatedly and prints how responses were
distributed across upstreams, agencies, sources and fallback tiers, so the
observed split can be compared against the weights in routing.yaml.

Usage:
    python3 scripts/check_traffic_split.py --count 200
    python3 scripts/check_traffic_split.py --url https://example.com/api/get-random-phone --upstream foxy
"""

import argparse
import asyncio
import json
import sys
from collections import Counter
from typing import Any, Dict, Optional

import httpx

LOCAL_URL = "http://localhost:3001/api/get-random-phone"
TIMEOUT = 10  # seconds per request


def classify(status: int, body: Dict[str, Any]) -> str:
    if status == 503:
        return "unavailable"
    if body.get("cache"):
        return "cache"
    if body.get("fallback"):
        return "fallback"
    return "fresh"


async def run_checks(url: str, count: int, params: Dict[str, str]) -> Dict[str, Counter]:
    tiers: Counter = Counter()
    upstreams: Counter = Counter()
    agencies: Counter = Counter()
    sources: Counter = Counter()
    errors: Counter = Counter()

    async with httpx.AsyncClient(timeout=TIMEOUT) as client:
        for _ in range(count):
            try:
                response = await client.get(url, params=params)
                body = response.json()
            except (httpx.HTTPError, json.JSONDecodeError) as e:
                tiers["request_failed"] += 1
                errors[str(e) or e.__class__.__name__] += 1
                continue

            tier = classify(response.status_code, body)
            tiers[tier] += 1
            if tier == "fresh":
                upstreams[body.get("upstream_key")] += 1
                agencies[f"{body.get('upstream_key')}/{body.get('agency_id')}"] += 1
                sources[body.get("chosen_from")] += 1
            else:
                errors[body.get("error") if tier != "unavailable" else body.get("details")] += 1

    return {
        "tiers": tiers,
        "upstreams": upstreams,
        "agencies": agencies,
        "sources": sources,
        "errors": errors,
    }


def print_report(results: Dict[str, Counter], count: int) -> None:
    for section, counter in results.items():
        if not counter:
            continue
        print(f"\n{section}:")
        for key, n in counter.most_common():
            print(f"  {str(key):<40} {n:>6}  {n / count * 100:6.1f}%")


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Check contact-router traffic split")
    parser.add_argument("--url", default=LOCAL_URL, help="Endpoint to call")
    parser.add_argument("--count", type=int, default=100, help="Number of requests")
    parser.add_argument("--upstream", help="Force an upstream key")
    parser.add_argument("--agency-id", help="Force an agency id")
    args = parser.parse_args(argv)

    params = {"mode": "split-check"}
    if args.upstream:
        params["upstream"] = args.upstream
    if args.agency_id:
        params["agency_id"] = args.agency_id

    print(f"Calling {args.url} {args.count} times with {params}")
    results = asyncio.run(run_checks(args.url, args.count, params))
    print_report(results, args.count)

    return 0 if not results["tiers"].get("unavailable") else 1


if __name__ == "__main__":
    sys.exit(main())
