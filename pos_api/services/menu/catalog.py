import logging
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from pos_api import models
from pos_api.core.config import settings
from pos_api.core.errors import NotFound, StoreError
from pos_api.services.orders.builder import AddOn, MenuItemRef, Variation, VariationOption

logger = logging.getLogger(__name__)

VARIANT_GROUP_NAME = "Variant"

# cache for menu responses, keyed by query string
_menu_cache: Dict[str, Dict[str, Any]] = {}


def _get_cached_result(cache: Dict[str, Dict[str, Any]], key: str, max_age_seconds: int) -> Optional[Dict[str, Any]]:
    """get cached result if it's still valid."""
    if key in cache:
        cached_data = cache[key]
        if time.time() - cached_data.get("_cached_at", 0) < max_age_seconds:
            result = cached_data.copy()
            result.pop("_cached_at", None)
            return result
    return None


def _cache_result(cache: Dict[str, Dict[str, Any]], key: str, result: Dict[str, Any]) -> None:
    """cache result with timestamp."""
    result_with_timestamp = result.copy()
    result_with_timestamp["_cached_at"] = time.time()
    cache[key] = result_with_timestamp


def clear_cache() -> None:
    _menu_cache.clear()


def _slugify(name: str) -> str:
    return "-".join(name.lower().split())


def variant_group(item: models.MenuItem) -> Optional[Variation]:
    """expose per-variant absolute prices as one required group of deltas."""
    if not item.variants:
        return None
    base = Decimal(str(item.price))
    options = []
    for v in sorted(item.variants, key=lambda v: (v.sort_order, v.id)):
        price = Decimal(str(v.price)) if v.price is not None else base
        options.append(VariationOption(id=v.id, name=v.name, price_modifier=price - base))
    return Variation(id=f"var-{item.id}", name=VARIANT_GROUP_NAME, required=True, options=tuple(options))


def available_add_ons(item: models.MenuItem) -> List[AddOn]:
    addons = [a for a in item.addons if a.is_available]
    addons.sort(key=lambda a: (a.sort_order, a.id))
    return [AddOn(id=a.id, name=a.name, price=Decimal(str(a.price or 0))) for a in addons]


def _category_out(category: models.MenuCategory) -> Dict[str, Any]:
    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug or _slugify(category.name),
        "icon": category.icon,
        "display_order": category.sort_order,
        "created_at": category.created_at,
    }


def _item_out(item: models.MenuItem) -> Dict[str, Any]:
    group = variant_group(item)
    add_ons = available_add_ons(item)
    return {
        "id": item.id,
        "name": item.name,
        "description": item.description,
        "price": float(item.price),
        "image_url": item.image_url,
        "category_id": item.category_id,
        "is_available": item.is_available,
        "is_featured": item.is_featured,
        "preparation_time": item.preparation_time,
        "variations": [
            {
                "id": group.id,
                "name": group.name,
                "required": group.required,
                "options": [
                    {"id": o.id, "name": o.name, "price_modifier": float(o.price_modifier)}
                    for o in group.options
                ],
            }
        ] if group else None,
        "add_ons": [{"id": a.id, "name": a.name, "price": float(a.price)} for a in add_ons] or None,
        "created_at": item.created_at,
        "updated_at": item.updated_at,
    }


def load_menu(db: Session, institution_id: int, cache_key: Optional[str] = None) -> Dict[str, Any]:
    """categories + available items for one tenant, cached per query string."""
    cache_key = cache_key or f"institution_id={institution_id}"
    cached = _get_cached_result(_menu_cache, cache_key, settings.MENU_CACHE_SECONDS)
    if cached:
        logger.debug(f"Menu cache hit for {cache_key}")
        return cached

    try:
        categories = db.scalars(
            select(models.MenuCategory)
            .where(
                models.MenuCategory.institution_id == institution_id,
                models.MenuCategory.is_visible.is_(True),
            )
            .order_by(models.MenuCategory.sort_order.asc(), models.MenuCategory.id.asc())
        ).all()
        items = db.scalars(
            select(models.MenuItem)
            .where(
                models.MenuItem.institution_id == institution_id,
                models.MenuItem.is_available.is_(True),
            )
            .options(selectinload(models.MenuItem.variants), selectinload(models.MenuItem.addons))
            .order_by(models.MenuItem.created_at.asc(), models.MenuItem.id.asc())
        ).all()
    except SQLAlchemyError as e:
        logger.error(f"Menu fetch failed for institution {institution_id}: {e}")
        raise StoreError("Failed to fetch menu", details=str(e)) from e

    result = {
        "categories": [_category_out(c) for c in categories],
        "items": [_item_out(i) for i in items],
    }
    _cache_result(_menu_cache, cache_key, result)
    logger.info(f"Menu loaded for institution {institution_id}: {len(categories)} categories, {len(items)} items")
    return result


def menu_item_ref(db: Session, menu_item_id: int) -> MenuItemRef:
    """the cart's view of one menu item, read fresh from the store."""
    try:
        item = db.scalar(
            select(models.MenuItem)
            .where(models.MenuItem.id == menu_item_id)
            .options(selectinload(models.MenuItem.variants), selectinload(models.MenuItem.addons))
        )
    except SQLAlchemyError as e:
        raise StoreError("Failed to fetch menu item", details=str(e)) from e
    if item is None:
        raise NotFound("Menu item not found", details={"menu_item_id": menu_item_id})

    group = variant_group(item)
    return MenuItemRef(
        id=item.id,
        name=item.name,
        price=Decimal(str(item.price)),
        is_available=item.is_available,
        variations=(group,) if group else (),
        add_ons=tuple(available_add_ons(item)),
    )
