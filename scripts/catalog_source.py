#!/usr/bin/env python3
"""
App Source Catalog Tool
=======================
Create catalog items from artifacts, or verify a published catalog.

Usage:
    python scripts/catalog_source.py create app.ipa other.ipa \
        --catalog-name "My Apps" --app-developer-name "Example Ltd"
    python scripts/catalog_source.py verify https://example.com/catalog/index.json

verify exits with status 1 when any app has failures, so it can gate a
publish step in CI.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from appsource import config
from appsource.catalog.builder import create_catalog
from appsource.catalog.errors import CatalogError
from appsource.catalog.options import CatalogSourceOptions
from appsource.catalog.verify import create_verify_run, load_catalog, verify_catalog

logger = logging.getLogger(__name__)

OVERRIDE_FLAGS = (
    ("--app-download-url", "app_download_url", "Download URL override"),
    ("--app-subtitle", "app_subtitle", "Subtitle override"),
    ("--app-developer-name", "app_developer_name", "Developer name override"),
    ("--app-localized-description", "app_localized_description", "Description override"),
    ("--app-version-description", "app_version_description", "Version description override"),
)

CATALOG_FLAGS = (
    ("--catalog-name", "catalog_name"),
    ("--catalog-identifier", "catalog_identifier"),
    ("--catalog-platform", "catalog_platform"),
    ("--catalog-source-url", "catalog_source_url"),
    ("--catalog-icon-url", "catalog_icon_url"),
    ("--catalog-localized-description", "catalog_localized_description"),
    ("--catalog-tint-color", "catalog_tint_color"),
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="App Source catalog tool")
    parser.add_argument("--output", "-o", help="Write JSON to this file instead of stdout")
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="Create a catalog from .ipa or .zip artifacts")
    create.add_argument("sources", nargs="+", help="Paths or URLs of artifacts")
    for flag, dest, help_text in OVERRIDE_FLAGS:
        create.add_argument(
            flag, dest=dest, action="append", default=[],
            help=f"{help_text}: 'bundle.id=value' or a bare default (repeatable)"
        )
    for flag, dest in CATALOG_FLAGS:
        create.add_argument(flag, dest=dest)

    verify = subparsers.add_parser("verify", help="Verify the apps in a catalog JSON")
    verify.add_argument("catalog", help="Path or URL of the catalog")
    verify.add_argument("--bundle-id", dest="bundle_ids", action="append", default=[],
                        help="Verify only this bundle identifier (repeatable)")
    verify.add_argument("--concurrency", type=int, default=config.VERIFY_CONCURRENCY,
                        help="Maximum simultaneous verifications")
    return parser


def options_from_args(args: argparse.Namespace) -> CatalogSourceOptions:
    values = {dest: getattr(args, dest) for _, dest, _ in OVERRIDE_FLAGS}
    values.update({dest: getattr(args, dest) for _, dest in CATALOG_FLAGS})
    return CatalogSourceOptions(**values)


async def run_create(args: argparse.Namespace) -> dict:
    catalog, errors = await create_catalog(args.sources, options_from_args(args))
    for source, error in errors.items():
        logger.error(f"{source}: {error}")
    return {"catalog": catalog.to_json_dict(), "errors": errors}


async def run_verify(args: argparse.Namespace) -> dict:
    catalog = await load_catalog(args.catalog)
    results = await verify_catalog(
        catalog,
        catalog_url=args.catalog,
        bundle_ids=args.bundle_ids,
        concurrency=args.concurrency,
    )
    run = create_verify_run(results, args.catalog)
    return {
        "run_id": run.run_id,
        "results_hash": run.results_hash,
        "total_apps": len(run.results),
        "failed_apps": run.failed_count,
        "results": [r.to_json_dict() for r in run.results],
    }


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
    args = build_parser().parse_args(argv)

    try:
        if args.command == "create":
            report = asyncio.run(run_create(args))
        else:
            report = asyncio.run(run_verify(args))
    except (CatalogError, OSError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 2

    report_json = json.dumps(report, indent=2, default=str)
    if args.output:
        with open(args.output, 'w') as f:
            f.write(report_json)
        logger.info(f"Report saved to: {args.output}")
    else:
        print(report_json)

    if args.command == "create":
        return 1 if report["errors"] else 0
    return 1 if report["failed_apps"] else 0


if __name__ == "__main__":
    sys.exit(main())
