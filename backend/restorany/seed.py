from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from .contracts import VenueCreate, VenueDetails
from .engine import DB, Engine
from .errors import InvalidVenue
from .logging_config import get_logger
from .settings import settings

logger = get_logger(__name__)

SEED_FILENAME = "venues.json"


def demo_venues() -> list[VenueCreate]:
    def v(vid, name, lat, lng, address, categories, tier, amenities=()):
        return VenueCreate(
            id=vid,
            name=name,
            latitude=lat,
            longitude=lng,
            address=address,
            details=VenueDetails(
                categories=list(categories), price_tier=tier, amenities=list(amenities)
            ),
        )

    return [
        v(
            "vz-zlatne-gorice",
            "Restoran Zlatne Gorice",
            46.3130,
            16.3318,
            "Banjščina 7, Varaždin",
            ["Croatian", "Grill"],
            "$$$",
            ["terrace", "parking"],
        ),
        v(
            "vz-grofica-marica",
            "Grofica Marica",
            46.3081,
            16.3379,
            "Kranjčevićeva 12, Varaždin",
            ["Croatian", "Traditional"],
            "$$",
            ["terrace"],
        ),
        v(
            "vz-pizzeria-stari-grad",
            "Pizzeria Stari Grad",
            46.3095,
            16.3350,
            "Trg kralja Tomislava 3, Varaždin",
            ["Pizza", "Italian"],
            "$",
            ["delivery", "takeaway"],
        ),
        v(
            "vz-kavana-korzo",
            "Kavana Korzo",
            46.3059,
            16.3371,
            "Trg kralja Tomislava 2, Varaždin",
            ["Café", "Desserts"],
            "$",
            ["wifi"],
        ),
        v(
            "zg-didov-san",
            "Didov San",
            45.8153,
            15.9716,
            "Mletačka 11, Zagreb",
            ["Croatian", "Dalmatian"],
            "$$$",
            ["reservations"],
        ),
        v(
            "zg-plac",
            "Pod Zidom Bistro",
            45.8145,
            15.9770,
            "Pod zidom 5, Zagreb",
            ["Bistro", "Market"],
            "$$",
        ),
    ]


def load_seed_file(path: Path) -> list[VenueCreate]:
    """Read venues from a JSON array; entries that fail validation are skipped."""
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise ValueError(f"{path} must contain a JSON array of venues")
    venues: list[VenueCreate] = []
    for index, entry in enumerate(payload):
        try:
            venues.append(VenueCreate.model_validate(entry))
        except ValidationError as exc:
            logger.warning("seed_entry_skipped", path=str(path), index=index, errors=exc.error_count())
    return venues


async def seed(engine: Engine | None = None, path: Path | None = None) -> int:
    """Populate an empty catalog from ``DATA_DIR/venues.json`` or the built-in demo set."""
    engine = engine or DB
    if await engine.catalog.all():
        return 0
    source = path or settings.data_dir / SEED_FILENAME
    venues = load_seed_file(source) if source.exists() else demo_venues()
    created = 0
    for payload in venues:
        try:
            await engine.catalog.create(payload)
        except InvalidVenue as exc:
            logger.warning("seed_venue_skipped", venue_id=payload.id, detail=exc.detail)
            continue
        created += 1
    logger.info("catalog_seeded", source=str(source) if source.exists() else "demo", venues=created)
    return created
