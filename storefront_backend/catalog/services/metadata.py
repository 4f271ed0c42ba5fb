# catalog/services/metadata.py

"""SEO + social sharing metadata for item pages."""

from __future__ import annotations

from django.conf import settings

from common.money import format_money

DEFAULT_SITE_NAME = "E-Commerce Store"
PLACEHOLDER_IMAGE = "/placeholder-product.jpg"


def get_site_url() -> str:
    return (getattr(settings, "FRONTEND_BASE_URL", "") or "").rstrip("/")


def _absolute(url: str, site_url: str) -> str:
    if url.startswith("http"):
        return url
    return f"{site_url}{url if url.startswith('/') else '/' + url}"


def generate_item_metadata(item, business=None) -> dict:
    site_url = get_site_url()
    site_name = getattr(business, "name", "") or DEFAULT_SITE_NAME

    title = item.seo_title or f"{item.name} | {site_name}"
    description = item.seo_description or item.description or f"Shop {item.name} at {site_name}"
    keywords = item.seo_keywords or [item.name, item.type, site_name]

    image = item.main_image
    image_url = _absolute(image.get("url") or PLACEHOLDER_IMAGE, site_url)
    section = "products" if item.is_product else "services"
    item_url = f"{site_url}/{section}/{item.slug}"

    return {
        "title": title,
        "description": description,
        "keywords": ", ".join(keywords),
        "canonical_url": item_url,
        "open_graph": {
            "title": title,
            "description": description,
            "url": item_url,
            "site_name": site_name,
            "images": [
                {
                    "url": image_url,
                    "width": 1200,
                    "height": 630,
                    "alt": image.get("alt") or item.name,
                }
            ],
            "type": "website",
            "locale": "en_US",
        },
        "twitter": {
            "card": "summary_large_image",
            "title": title,
            "description": description,
            "images": [image_url],
            "creator": getattr(business, "name", None),
        },
        "price": {
            "amount": str(item.base_price),
            "currency": item.currency,
            "formatted": format_money(item.base_price, item.currency),
        },
    }
