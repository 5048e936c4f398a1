#!/usr/bin/env python3
import argparse
import asyncio
import json
import os
import sys
import time
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv


def _duration_ms(start: float) -> int:
    return int((time.time() - start) * 1000)


async def probe_provider(provider, query: str, deadline: float, allow_empty: bool) -> Dict[str, Any]:
    result: Dict[str, Any] = {
        "provider_id": provider.id,
        "provider_name": provider.name,
        "kinds": sorted(kind.value for kind in provider.media_kinds),
        "search_ok": False,
        "search_count": 0,
        "search_ms": None,
        "first_title": None,
        "errors": []
    }

    start = time.time()
    try:
        items = await asyncio.wait_for(provider.search(query), timeout=deadline)
        result["search_ok"] = True
        result["search_count"] = len(items or [])
        if items:
            result["first_title"] = items[0].title_zh
    except asyncio.TimeoutError:
        result["errors"].append(f"search: timed out after {deadline}s")
        items = []
    except Exception as exc:
        result["errors"].append(f"search: {exc!r}")
        items = []
    finally:
        await provider.close()
    result["search_ms"] = _duration_ms(start)

    if not allow_empty and result["search_ok"] and not items:
        result["search_ok"] = False
        result["errors"].append("search_empty")

    return result


def select_providers(requested: Optional[List[str]]) -> List[Any]:
    from mediahub_app.metadata.providers import default_providers  # pylint: disable=import-outside-toplevel

    providers = default_providers()
    if requested:
        providers = [provider for provider in providers if provider.id in requested]
    return providers


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Probe media search providers for basic health.")
    parser.add_argument("--query", default="星际穿越", help="Search query to test.")
    parser.add_argument("--providers", default="", help="Comma-separated provider IDs (tmdb,bgm,douban,maoyan).")
    parser.add_argument("--deadline", type=float, default=20.0, help="Seconds allowed per provider.")
    parser.add_argument(
        "--allow-empty",
        action="store_true",
        help="Do not treat empty results as failures."
    )
    parser.add_argument("--sleep", type=float, default=0.2, help="Sleep seconds between providers.")
    parser.add_argument("--output", default="", help="Also write the JSON report to this path.")
    parser.add_argument("--env", default=".env", help="Path to .env file (TMDB_ACCESS_TOKEN etc).")
    return parser.parse_args()


async def run_probe(args: argparse.Namespace) -> Dict[str, Any]:
    requested = [item.strip() for item in args.providers.split(",") if item.strip()]
    providers = select_providers(requested or None)

    results = []
    for provider in providers:
        results.append(await probe_provider(provider, args.query, args.deadline, args.allow_empty))
        if args.sleep:
            await asyncio.sleep(args.sleep)

    return {
        "generated_at": time.strftime("%Y-%m-%dT%H:%M:%S%z"),
        "query": args.query,
        "total_providers": len(results),
        "search_failures": sum(1 for item in results if not item["search_ok"]),
        "providers": results
    }


def main() -> int:
    args = parse_args()
    load_dotenv(args.env)

    sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

    report = asyncio.run(run_probe(args))
    print(json.dumps(report, indent=2, ensure_ascii=False))

    if args.output:
        output_dir = os.path.dirname(args.output)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)
        with open(args.output, "w", encoding="utf-8") as handle:
            json.dump(report, handle, indent=2, ensure_ascii=False, sort_keys=True)

    return 1 if report["search_failures"] else 0


if __name__ == "__main__":
    sys.exit(main())
