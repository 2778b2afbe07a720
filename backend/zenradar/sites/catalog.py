"""Built-in catalog of monitored matcha shops.

The catalog is plain data. ``load_sites()`` returns it keyed by site id,
optionally merged with descriptors from a JSON file (``SITES_FILE``), where a
JSON entry with an existing ``site_id`` replaces the built-in one.
"""

import json
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional

import structlog

from zenradar.sites.descriptor import CurrencyOverride, SiteDescriptor

logger = structlog.get_logger(__name__)


_GERMAN_HEADERS = {"Accept-Language": "de-DE,de;q=0.9,en;q=0.5"}

_EN_OUT_OF_STOCK = ("out of stock", "sold out")
_DE_OUT_OF_STOCK = ("ausverkauft", "nicht verfügbar", "nicht auf lager", "sold out")


BUILTIN_SITES: List[SiteDescriptor] = [
    SiteDescriptor(
        site_id="tokichi",
        name="Nakamura Tokichi",
        base_url="https://global.tokichi.jp",
        listing_url="https://global.tokichi.jp/collections/matcha",
        container_selectors=(".card-wrapper",),
        name_selectors=(".card__heading a", ".card__content .card__heading"),
        price_selectors=(".price__current .price-item--regular", ".price .price-item"),
        link_selectors=(".card__heading a", ".card__content a"),
        image_selectors=(".card__media img", ".card__inner img", "img[alt*='matcha']"),
        out_of_stock_selector=".badge--sold-out, .price--sold-out",
        stock_keywords=("add to cart", "add to bag", "buy now"),
        out_of_stock_keywords=_EN_OUT_OF_STOCK,
        stock_policy=("structured_availability", "out_of_stock_marker", "default_in_stock"),
    ),
    SiteDescriptor(
        site_id="marukyu",
        name="Marukyu-Koyamaen",
        base_url="https://www.marukyu-koyamaen.co.jp",
        listing_url="https://www.marukyu-koyamaen.co.jp/english/shop/products/catalog/matcha?currency=USD",
        container_selectors=(".item", ".product-item", ".product"),
        name_selectors=(".item-name", ".product-name", ".name", "h3"),
        price_selectors=(".price", ".item-price", ".cost"),
        link_selectors=("a.item-link", "a"),
        image_selectors=(".item-image img", ".product-image img", "img[src*='product']"),
        stock_selector=".instock, .cart-form button:not([disabled]), .add-to-cart:not(.disabled)",
        out_of_stock_selector=".outofstock",
        stock_keywords=("add to cart", "in stock"),
        out_of_stock_keywords=("out of stock", "sold out", "unavailable"),
        default_currency="USD",
        stock_policy=(
            "structured_availability",
            "out_of_stock_marker",
            "purchase_affordance",
            "default_out_of_stock",
        ),
    ),
    SiteDescriptor(
        site_id="ippodo",
        name="Ippodo Tea",
        base_url="https://global.ippodo-tea.co.jp",
        listing_url="https://global.ippodo-tea.co.jp/collections/matcha",
        container_selectors=(".m-product-card",),
        name_selectors=(".m-product-card__name", ".m-product-card__body a"),
        price_selectors=(".m-product-card__price",),
        link_selectors=("a[href*='/products/']",),
        image_selectors=(".m-product-card__image img", ".product-card__media img"),
        out_of_stock_selector=".out-of-stock",
        stock_keywords=("add to cart", "buy now", "purchase"),
        out_of_stock_keywords=_EN_OUT_OF_STOCK,
        default_currency="JPY",
        stock_policy=("structured_availability", "out_of_stock_marker", "default_in_stock"),
    ),
    SiteDescriptor(
        site_id="yoshien",
        name="Yoshi En",
        base_url="https://www.yoshien.com",
        listing_url="https://www.yoshien.com/matcha/matcha-tee/",
        container_selectors=(".cs-product-tile",),
        name_selectors=(".cs-product-tile__name", ".cs-product-tile__name-link", ".product-item-link"),
        price_selectors=(".cs-product-tile__price", ".price"),
        link_selectors=("a.product-item-link", "a.cs-product-tile__name-link", "a"),
        image_selectors=(".cs-product-tile__image img", "img.product-image-photo", "img"),
        stock_selector=".tocart:not([disabled]), .add-to-cart:not(.disabled)",
        out_of_stock_selector=".cs-product-tile--out-of-stock, .stock.unavailable",
        stock_keywords=("in den warenkorb", "verfügbar"),
        out_of_stock_keywords=_DE_OUT_OF_STOCK,
        request_headers=_GERMAN_HEADERS,
    ),
    SiteDescriptor(
        site_id="matcha-karu",
        name="Matcha Kāru",
        base_url="https://matcha-karu.com",
        listing_url="https://matcha-karu.com/collections/matcha-tee",
        container_selectors=(".product-item",),
        name_selectors=(".product-item-meta__title", ".product-item__info a"),
        price_selectors=(".price", ".price__current", ".price-item"),
        link_selectors=("a[href*='/products/']",),
        image_selectors=(".product-item__aspect-ratio img", ".product-item__image img", "img[src*='products/']"),
        stock_selector=".product-form, .add-to-cart:not(.disabled)",
        out_of_stock_selector=".label--subdued, .sold-out",
        stock_keywords=("in den warenkorb", "kaufen"),
        out_of_stock_keywords=_DE_OUT_OF_STOCK,
        request_headers=_GERMAN_HEADERS,
        stock_policy=(
            "structured_availability",
            "out_of_stock_marker",
            "price_required",
            "default_in_stock",
        ),
    ),
    SiteDescriptor(
        site_id="sho-cha",
        name="Sho-Cha",
        base_url="https://www.sho-cha.com",
        listing_url="https://www.sho-cha.com/teeshop",
        container_selectors=(".ProductList-item",),
        name_selectors=(".ProductList-title", ".ProductList-title a"),
        price_selectors=(".product-price", ".sqs-money-native", ".ProductList-price"),
        link_selectors=("a.ProductList-item-link", "a[href*='/teeshop/']"),
        image_selectors=(".ProductList-image", "img[data-src]", "img"),
        stock_selector=".sqs-add-to-cart-button:not(.disabled)",
        out_of_stock_selector=".sold-out, .product-mark.sold-out",
        stock_keywords=("kaufen", "in den warenkorb"),
        out_of_stock_keywords=_DE_OUT_OF_STOCK,
        request_headers=_GERMAN_HEADERS,
        stock_policy=(
            "structured_availability",
            "out_of_stock_marker",
            "price_present",
            "default_out_of_stock",
        ),
    ),
    SiteDescriptor(
        site_id="sazentea",
        name="Sazen Tea",
        base_url="https://www.sazentea.com",
        listing_url="https://www.sazentea.com/en/products/c21-matcha",
        container_selectors=(".product",),
        name_selectors=(".product-name",),
        price_selectors=(".product-price",),
        link_selectors=("a[href*='/products/']",),
        image_selectors=("img[src*='/content/products/']", ".product-image-img"),
        out_of_stock_keywords=("out of stock", "sold out", "unavailable"),
        stock_keywords=("add to cart", "in stock"),
        default_currency="USD",
        stock_policy=(
            "structured_availability",
            "out_of_stock_marker",
            "price_present",
            "default_out_of_stock",
        ),
    ),
    SiteDescriptor(
        site_id="mamecha",
        name="Mamecha",
        base_url="https://www.mamecha.de",
        listing_url="https://www.mamecha.de/collections/alle-tees",
        container_selectors=(".product-item",),
        name_selectors=(".product-item__title a", ".product-item__title"),
        price_selectors=(".price-item--sale", ".price-item--regular", ".price"),
        link_selectors=(".product-item__title a", "a[href*='/products/']"),
        image_selectors=(".product-item__image img", "img"),
        stock_keywords=("in den warenkorb", "verfügbar"),
        out_of_stock_keywords=_DE_OUT_OF_STOCK,
        request_headers=_GERMAN_HEADERS,
        stock_policy=(
            "structured_availability",
            "out_of_stock_marker",
            "purchase_affordance",
            "price_present",
            "default_out_of_stock",
        ),
    ),
    SiteDescriptor(
        site_id="enjoyemeri",
        name="Emeri",
        base_url="https://www.enjoyemeri.com",
        listing_url="https://www.enjoyemeri.com/collections/shop-all",
        container_selectors=(".product-card",),
        name_selectors=("h3", ".product-title", ".product__title"),
        price_selectors=(".price",),
        link_selectors=("a[href*='/products/']", "a"),
        image_selectors=(".product-media__image", ".product-card__image img", "img"),
        stock_keywords=("add to cart", "buy now"),
        out_of_stock_keywords=_EN_OUT_OF_STOCK,
        stock_policy=(
            "structured_availability",
            "out_of_stock_marker",
            "price_present",
            "default_out_of_stock",
        ),
    ),
    SiteDescriptor(
        site_id="poppatea",
        name="Poppatea",
        base_url="https://poppatea.com",
        listing_url="https://poppatea.com/de-de/collections/all-teas?filter.p.m.custom.tea_type=Matcha",
        container_selectors=(".card",),
        name_selectors=(".card__title", "h3", ".card-title"),
        price_selectors=(".price", ".money"),
        link_selectors=("a[href*='/products/']", "a"),
        image_selectors=(".card__media img", "img[src*='cdn/shop']", "img"),
        stock_selector="button[name='add']:not([disabled]), .product-form__submit:not([disabled])",
        out_of_stock_selector=".sold-out, .unavailable",
        stock_keywords=("in den warenkorb", "lägg i varukorg"),
        out_of_stock_keywords=("ausverkauft", "nicht verfügbar", "slutsåld", "ej i lager", "sold out"),
        request_headers=_GERMAN_HEADERS,
    ),
    SiteDescriptor(
        site_id="horiishichimeien",
        name="Horiishichimeien",
        base_url="https://horiishichimeien.com",
        listing_url="https://horiishichimeien.com/en/collections/all?selected=%E6%8A%B9%E8%8C%B6",
        container_selectors=(".grid__item",),
        name_selectors=(".card__heading", "a[href*='/products/'] span.visually-hidden", ".product-title"),
        price_selectors=(".price__regular .money", ".price .money", ".price-item--regular"),
        link_selectors=("a[href*='/products/']",),
        image_selectors=(".grid-view-item__image", "img[src*='products/']", ".product-image img", "img"),
        stock_selector="button[name='add']:not([disabled]), form[action='/cart/add']",
        out_of_stock_keywords=("sold out", "unavailable", "売り切れ", "out of stock"),
        stock_keywords=("add to cart", "カートに入れる"),
        default_currency="JPY",
        currency_override=CurrencyOverride(source="JPY", rate=Decimal("0.0067")),
        price_quirk="minor_unit_jpy",
        stock_policy=(
            "structured_availability",
            "out_of_stock_marker",
            "purchase_affordance",
            "default_out_of_stock",
        ),
    ),
]


def load_sites(path: Optional[str] = None) -> Dict[str, SiteDescriptor]:
    """Load site descriptors keyed by site id.

    Args:
        path: Optional JSON file holding a list of descriptor mappings.
            Entries override built-ins with the same ``site_id``.

    Returns:
        Dict of enabled descriptors keyed by site id, in catalog order
    """
    sites: Dict[str, SiteDescriptor] = {site.site_id: site for site in BUILTIN_SITES}

    if path:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        for entry in raw:
            descriptor = SiteDescriptor.from_dict(entry)
            if descriptor.site_id in sites:
                logger.info("site_descriptor_overridden", site=descriptor.site_id)
            sites[descriptor.site_id] = descriptor

    enabled = {site_id: site for site_id, site in sites.items() if site.enabled}
    logger.info("sites_loaded", count=len(enabled), sites=list(enabled))
    return enabled
