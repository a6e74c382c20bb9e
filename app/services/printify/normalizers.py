"""Normalize raw Printify payloads into catalog snapshot models."""

import logging
import re
import json
from typing import Any, Dict, List, Optional

from app.constants.sync import ACTIVE_VARIANT_FLAGS
from app.models.sync_models import (
    UpstreamImage,
    UpstreamOption,
    UpstreamProduct,
    UpstreamVariant,
)

__logger__ = logging.getLogger(__name__)

_IMAGE_URL_RE = re.compile(r'"(https?://[^"]+\.(?:jpg|jpeg|png|gif))"', re.IGNORECASE)


def _as_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _as_number(value: Any) -> Optional[float]:
    """Numbers and numeric strings pass through; anything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def extract_list(payload: Any) -> List[Dict[str, Any]]:
    """Printify list endpoints answer with ``{"data": [...]}`` or a bare list."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(data, list):
            return data
    return []


def resolve_image_url(image: Any) -> str:
    """Image URL from ``src``, ``preview_url`` or ``url``, else the first image-looking URL in the payload."""
    if isinstance(image, str):
        return image
    if not isinstance(image, dict):
        return ""
    for key in ("src", "preview_url", "url"):
        if image.get(key):
            return str(image[key])
    match = _IMAGE_URL_RE.search(json.dumps(image))
    return match.group(1) if match else ""


def normalize_image(raw: Any) -> UpstreamImage:
    if isinstance(raw, str):
        return UpstreamImage(src=raw)
    return UpstreamImage(
        id=_as_str(raw.get("id")),
        src=resolve_image_url(raw),
        variant_ids=[str(v) for v in raw.get("variant_ids") or []],
        position=_as_str(raw.get("position")),
        is_default=bool(raw.get("is_default", False)),
    )


def normalize_variant(raw: Dict[str, Any]) -> UpstreamVariant:
    image_ids = []
    image_url = None
    if raw.get("image_id"):
        image_ids.append(str(raw["image_id"]))
    image = raw.get("image")
    if isinstance(image, str) and image:
        image_url = image
    elif isinstance(image, dict) and image.get("id"):
        image_ids.append(str(image["id"]))

    flags = {
        flag: raw[flag]
        for flag in ACTIVE_VARIANT_FLAGS
        if isinstance(raw.get(flag), bool)
    }

    return UpstreamVariant(
        id=str(raw.get("id", "")),
        title=str(raw.get("title") or ""),
        price=_as_number(raw.get("price")),
        cost=_as_number(raw.get("cost")),
        sku=_as_str(raw.get("sku")),
        option_ids=[str(o) for o in raw.get("options") or [] if not isinstance(o, dict)],
        image_ids=image_ids,
        image_url=image_url,
        flags=flags,
    )


def normalize_product(raw: Dict[str, Any], detailed: bool = False) -> UpstreamProduct:
    """
    Convert a Printify product payload (list or detail endpoint) into an UpstreamProduct.

    Args:
        raw: Decoded JSON product
        detailed: Whether the payload came from the single-product endpoint

    Returns:
        Normalized, immutable product snapshot
    """
    external = raw.get("external")
    external_id = raw.get("external_id")
    if external_id is None and isinstance(external, dict):
        external_id = external.get("id")

    fallback_images = []
    if isinstance(raw.get("image"), str) and raw.get("image"):
        fallback_images.append(raw["image"])
    for key in ("preview_url", "thumbnail_url"):
        if raw.get(key):
            fallback_images.append(str(raw[key]))

    options = []
    for option in raw.get("options") or []:
        if isinstance(option, dict):
            options.append(UpstreamOption(name=str(option.get("name") or ""), type=option.get("type")))

    return UpstreamProduct(
        id=str(raw.get("id", "")),
        title=str(raw.get("title") or ""),
        description=str(raw.get("description") or ""),
        images=[normalize_image(i) for i in raw.get("images") or [] if isinstance(i, (dict, str))],
        variants=[normalize_variant(v) for v in raw.get("variants") or [] if isinstance(v, dict)],
        options=options,
        price=_as_number(raw.get("price")),
        external_id=_as_str(external_id),
        print_provider_id=_as_str(raw.get("print_provider_id")),
        blueprint_id=_as_str(raw.get("blueprint_id")),
        fallback_images=fallback_images,
        detailed=detailed,
    )
