from __future__ import annotations

import asyncio
import json

from backend.restorany.seed import demo_venues, load_seed_file, seed


def test_demo_seed_populates_empty_catalog(engine, tmp_path):
    created = asyncio.run(seed(engine, path=tmp_path / "absent.json"))

    assert created == len(demo_venues())
    venues = asyncio.run(engine.catalog.all())
    assert {v.id for v in venues} >= {"vz-grofica-marica", "zg-didov-san"}
    assert all((v.average_rating, v.review_count) == (0.0, 0) for v in venues)


def test_seed_skips_populated_catalog(engine, add_venue, tmp_path):
    add_venue("existing", 46.0, 16.0)
    assert asyncio.run(seed(engine, path=tmp_path / "absent.json")) == 0


def test_seed_from_file_skips_invalid_entries(engine, tmp_path):
    path = tmp_path / "venues.json"
    path.write_text(
        json.dumps(
            [
                {"id": "good", "name": "Good Place", "latitude": 46.3, "longitude": 16.3},
                {"id": "bad", "name": "Nowhere", "latitude": 123.0, "longitude": 16.3},
                {"id": "good", "name": "Good Place Again", "latitude": 46.3, "longitude": 16.3},
            ]
        ),
        encoding="utf-8",
    )

    assert len(load_seed_file(path)) == 2
    assert asyncio.run(seed(engine, path=path)) == 1
    assert [v.id for v in asyncio.run(engine.catalog.all())] == ["good"]
