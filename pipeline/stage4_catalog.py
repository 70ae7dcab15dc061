"""Stage 4: Catalog - emit one catalog item per renamed group.

Items get placeholder text from placeholders.yaml (or the built-in English and
Swedish defaults), the default categories, `active: true` and a placeholder
price. Prices come from an RNG seeded with settings.price_seed so re-running
over the same photos reproduces the same catalog.

Reads:  <project>/data/placeholders.yaml (optional)
Writes: <project>/data/items.json
"""
import logging
import random

from models.catalog import Catalog, CatalogItem
from models.placeholders import PlaceholderTemplate
from models.renames import RenamePlan
from settings import Settings
from utils.artifacts import write_artifact

logger = logging.getLogger(__name__)


def run(settings: Settings, plan: RenamePlan) -> Catalog:
    """Build the catalog for `plan` and write items.json.

    Raises CatalogWriteError if items.json cannot be written.
    """
    template = PlaceholderTemplate.load_or_default(settings.placeholders_yaml_path)
    catalog = build_catalog(plan, settings, template)

    write_artifact(settings.items_json_path, catalog.model_dump_json(indent=2))

    logger.info("Stage 4 complete → %s", settings.items_json_path)
    logger.info("  Items:  %d", len(catalog.items))
    logger.info("  Photos: %d", sum(len(i.images) for i in catalog.items))
    if catalog.items:
        logger.info("  Oldest item has ID 1, newest item has ID %d", catalog.items[-1].id)

    return catalog


def build_catalog(plan: RenamePlan, settings: Settings, template: PlaceholderTemplate) -> Catalog:
    rng = random.Random(settings.price_seed)
    items: list[CatalogItem] = []

    for item_id, entries in plan.by_item().items():
        photo_count = len(entries)
        items.append(CatalogItem(
            id=item_id,
            categories=list(settings.default_categories),
            active=True,
            price=rng.randint(settings.price_min, settings.price_max),
            images=[f"{settings.image_url_prefix}/{e.target}" for e in entries],
            en=template.en.render(item_id, photo_count),
            sv=template.sv.render(item_id, photo_count),
        ))

    return Catalog(items=items)
