"""
Map a normalized Printify product onto SureCart's product model.

``map_product`` is pure: the same snapshot always yields the same
destination data, apart from the ``printify_synced_at`` metadata stamp.
"""

import html
import json
import logging
import re
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple

from app.constants.sync import (
    ACTIVE_VARIANT_FLAGS,
    DEFAULT_VARIANT_TITLE,
    META_BLUEPRINT_ID,
    META_EXTERNAL_ID,
    META_IMAGES,
    META_PRINT_PROVIDER_ID,
    META_PRINTIFY_ID,
    META_SYNCED_AT,
    META_VARIANT_ID,
    META_VARIANT_OPTIONS,
    MINOR_UNITS_THRESHOLD,
    OPTION_SEPARATOR,
    SKU_PREFIX,
    UNTITLED_PRODUCT,
)
from app.models.product_models import PriceData, ProductOption, SureCartProductData, VariantData
from app.models.sync_models import UpstreamProduct, UpstreamVariant

__logger__ = logging.getLogger(__name__)

_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")
_SKU_RE = re.compile(r"[^A-Za-z0-9_-]")


def clean_text(value: Optional[str], keep_line_breaks: bool = False) -> str:
    """Strip markup, decode entities and trim."""
    if not value:
        return ""
    if keep_line_breaks:
        value = _BR_RE.sub("\n", value)
    value = _TAG_RE.sub("", value)
    return html.unescape(value).strip()


def is_variant_active(variant: UpstreamVariant) -> bool:
    """Active unless one of the known flags is explicitly False."""
    return not any(variant.flags.get(flag) is False for flag in ACTIVE_VARIANT_FLAGS)


def _cents(dollars: Decimal) -> int:
    return int((dollars * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_minor_units(price: Optional[float], cost: Optional[float] = None) -> Tuple[int, int]:
    """
    Convert a Printify price/cost pair to integer cents.

    Values above 1000 are taken to be cents already; the decision is made
    on the price and applied to the cost as well. Negatives clamp to 0.
    """
    price_value = max(Decimal(str(price or 0)), Decimal(0))
    cost_value = max(Decimal(str(cost or 0)), Decimal(0))
    if price_value > MINOR_UNITS_THRESHOLD:
        price_value = price_value / 100
        cost_value = cost_value / 100
    return _cents(price_value), _cents(cost_value)


def sanitize_sku(sku: Optional[str], product_id: str, index: int) -> str:
    """Keep ``[A-Za-z0-9_-]``; synthesize ``PRINTIFY-{product}-{index}`` when nothing is left."""
    cleaned = _SKU_RE.sub("", sku or "")
    return cleaned or f"{SKU_PREFIX}-{product_id}-{index}"


def _https(url: str) -> str:
    if url.startswith("//"):
        return f"https:{url}"
    if not re.match(r"^https?://", url):
        return f"https://{url.lstrip('/')}"
    return url


def select_images(product: UpstreamProduct, active: List[UpstreamVariant]) -> List[str]:
    """
    Ordered image URLs for a product.

    When active variants reference catalog images (by image id, or through
    an image's ``variant_ids``) only those images plus the first catalog
    image are kept. Direct variant image URLs follow, then the product-level
    fallbacks when nothing else resolved.
    """
    image_ids = {image_id for v in active for image_id in v.image_ids}
    active_ids = {v.id for v in active}
    variant_specific = bool(image_ids) or any(image.variant_ids for image in product.images)

    urls: List[str] = []
    for index, image in enumerate(product.images):
        if variant_specific and index > 0:
            referenced = (image.id in image_ids) or bool(active_ids.intersection(image.variant_ids))
            if not referenced:
                continue
        if image.src:
            urls.append(image.src)

    for variant in active:
        if variant.image_url:
            urls.append(variant.image_url)

    if not urls:
        urls.extend(product.fallback_images)

    seen = set()
    ordered = []
    for url in (_https(u) for u in urls if u):
        if url not in seen:
            seen.add(url)
            ordered.append(url)
    return ordered


def derive_options(product: UpstreamProduct, active: List[UpstreamVariant]) -> List[ProductOption]:
    """One option per title segment position, values deduplicated in first-seen order."""
    names = [o.name for o in product.options]
    values: Dict[str, List[str]] = {}
    for variant in active:
        title = clean_text(variant.title)
        if not title:
            continue
        for i, part in enumerate(title.split(OPTION_SEPARATOR)):
            name = names[i] if i < len(names) and names[i] else f"Option {i + 1}"
            bucket = values.setdefault(name, [])
            part = part.strip()
            if part and part not in bucket:
                bucket.append(part)
    return [ProductOption(name=name, values=vals) for name, vals in values.items() if vals]


def _default_listing(product: UpstreamProduct, currency: str) -> Tuple[List[PriceData], List[VariantData]]:
    amount, _ = to_minor_units(product.price)
    price = PriceData(name=DEFAULT_VARIANT_TITLE, amount=amount, currency=currency)
    variant = VariantData(
        title=DEFAULT_VARIANT_TITLE,
        sku=f"{SKU_PREFIX}-{product.id}-DEFAULT",
        amount=amount,
        cost=0,
        metadata={META_VARIANT_ID: "", META_VARIANT_OPTIONS: "[]"},
    )
    return [price], [variant]


def map_product(
    product: UpstreamProduct,
    synced_at: Optional[datetime] = None,
    currency: str = "usd"
) -> SureCartProductData:
    """
    Build SureCart product data from a Printify product snapshot.

    Args:
        product: Normalized Printify product
        synced_at: Timestamp written to ``printify_synced_at`` (defaults to now)
        currency: ISO currency code for the generated prices

    Returns:
        SureCartProductData with options, prices, variants and images
    """
    synced_at = synced_at or datetime.now(timezone.utc)
    active = [v for v in product.variants if is_variant_active(v)]
    skipped = len(product.variants) - len(active)
    if skipped:
        __logger__.debug(f"Product {product.id}: skipping {skipped} inactive variant(s)")

    prices: List[PriceData] = []
    variants: List[VariantData] = []
    for index, variant in enumerate(product.variants, start=1):
        if not is_variant_active(variant):
            continue
        cleaned_title = clean_text(variant.title)
        title = cleaned_title or f"Variant {index}"
        option_values = [p.strip() for p in cleaned_title.split(OPTION_SEPARATOR)] if cleaned_title else []
        amount, cost = to_minor_units(variant.price, variant.cost)
        variant_meta = {
            META_VARIANT_ID: variant.id,
            META_VARIANT_OPTIONS: json.dumps(variant.option_ids),
        }
        prices.append(PriceData(
            name=title,
            amount=amount,
            currency=currency,
            metadata={META_VARIANT_ID: variant.id},
        ))
        variants.append(VariantData(
            title=title,
            sku=sanitize_sku(variant.sku, product.id, index),
            amount=amount,
            cost=cost,
            option_values=option_values,
            metadata=variant_meta,
        ))

    if not variants:
        prices, variants = _default_listing(product, currency)

    images = select_images(product, active)
    metadata = {
        META_PRINTIFY_ID: product.id,
        META_EXTERNAL_ID: product.external_id or "",
        META_PRINT_PROVIDER_ID: product.print_provider_id or "",
        META_BLUEPRINT_ID: product.blueprint_id or "",
        META_SYNCED_AT: synced_at.isoformat(),
    }
    if images:
        metadata[META_IMAGES] = json.dumps(images)

    return SureCartProductData(
        name=clean_text(product.title) or UNTITLED_PRODUCT,
        description=clean_text(product.description, keep_line_breaks=True),
        image_url=images[0] if images else None,
        images=images,
        metadata=metadata,
        options=derive_options(product, active),
        prices=prices,
        variants=variants,
    )
