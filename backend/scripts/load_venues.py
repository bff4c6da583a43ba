#!/usr/bin/env python3
"""Import venues from a JSON file and rebuild every venue's rating aggregate."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from backend.restorany.db.core import init_db
from backend.restorany.engine import DB
from backend.restorany.errors import InvalidVenue
from backend.restorany.seed import load_seed_file


async def _load(path: Path | None, recompute: bool) -> None:
    await init_db()
    if path is not None:
        inserted = skipped = 0
        for payload in load_seed_file(path):
            try:
                await DB.catalog.create(payload)
            except InvalidVenue as exc:
                print(f"Skipping {payload.id}: {exc.detail}")
                skipped += 1
                continue
            inserted += 1
        print(f"Imported {inserted} venues from {path} ({skipped} skipped)")
    if recompute:
        venues = await DB.catalog.all()
        for venue in venues:
            await DB.aggregator.recompute(venue.id)
        print(f"Recomputed aggregates for {len(venues)} venues")


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("path", nargs="?", type=Path, help="JSON array of venues")
    ap.add_argument("--recompute", action="store_true", help="rebuild rating aggregates")
    args = ap.parse_args()
    if args.path is None and not args.recompute:
        ap.error("nothing to do: pass a venues file and/or --recompute")
    asyncio.run(_load(args.path, args.recompute))


if __name__ == "__main__":
    main()
