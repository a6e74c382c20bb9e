"""Printify services package."""

from app.services.printify.client import PrintifyClient
from app.services.printify.normalizers import (
    extract_list,
    normalize_product,
    normalize_variant,
    resolve_image_url,
)

__all__ = [
    "PrintifyClient",
    "extract_list",
    "normalize_product",
    "normalize_variant",
    "resolve_image_url",
]
