"""Parser for shops whose listing page lacks per-variant data.

The listing yields base products; each detail page is fetched and expanded
into one extraction per purchasable variant. Extraction strategies, in order:

1. an embedded structured-data blob (Shopify ``"variants": [...]`` array or a
   JSON-LD ``Product`` with offers),
2. the variant ``<select>``/``<option>`` elements of the product form,
3. the whole page as a single product.
"""

import asyncio
import json
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Pattern, Tuple

from bs4 import BeautifulSoup, Tag

from zenradar.config import settings
from zenradar.core.exceptions import MalformedStructuredData
from zenradar.scrapers.base import RawExtraction
from zenradar.scrapers.generic import GenericParser, element_matches
from zenradar.scrapers.utils.fetcher import DocumentFetcher
from zenradar.scrapers.utils.html import (
    GLOBAL_PRICE_SELECTORS,
    clean_text,
    find_image,
    make_soup,
    select_text,
)
from zenradar.scrapers.utils.normalizer import absolute_url
from zenradar.scrapers.utils.stock import StockSignals
from zenradar.sites.descriptor import SiteDescriptor

_UNIT = r"(?:kg|g|gr|gram|grams|gramm|ml)"

# Ordered suffix rules; the first rule that matches is applied once
VARIANT_SUFFIX_RULES: List[Tuple[str, Pattern]] = [
    (
        "pack_count",
        re.compile(
            rf"\s*[-–,]?\s*\(?\s*\d+\s*[x×]\s*\d+(?:[.,]\d+)?\s*{_UNIT}\b[^)]*\)?\s*$",
            re.IGNORECASE,
        ),
    ),
    (
        "weight",
        re.compile(rf"\s*[-–/|,]\s*\d+(?:[.,]\d+)?\s*{_UNIT}\b.*$", re.IGNORECASE),
    ),
    (
        "portions",
        re.compile(
            r"\s*[-–,]?\s*\(?\s*\d+\s*(?:portionen|portions|portioner|servings|cups)\s*\)?\s*$",
            re.IGNORECASE,
        ),
    ),
    (
        "container",
        re.compile(
            r"\s*[-–,]?\s*\(?\s*(?:dose|tin|can|nachfüllbeutel|refill(?:\s*bag)?|pouch|beutel|burk|påse)\s*\)?\s*$",
            re.IGNORECASE,
        ),
    ),
    (
        "trailing_weight",
        re.compile(rf"\s+\(?\d+(?:[.,]\d+)?\s*{_UNIT}\)?\s*$", re.IGNORECASE),
    ),
]

_VARIANTS_KEY = re.compile(r'"variants"\s*:\s*\[')

# Price or sold-out tail of an option label: "50g Dose - €12,50", "50g - Ausverkauft"
_OPTION_TAIL = re.compile(
    r"\s*[-–/]\s*(?:[€$£¥]\s*\d|\d[\d.,\s]*(?:€|kr|eur|sek|usd|\$)|sold\s*out|ausverkauft|slutsåld|nicht verfügbar).*$",
    re.IGNORECASE,
)

VARIANT_OPTION_SELECTOR = 'select[name="id"] option[value], .product-form__option select option'
PRODUCT_FORM_SELECTOR = "form[action*='/cart/add'], .product-form, .product__info-container"
PAGE_IMAGE_SELECTORS = (
    ".product__media img",
    ".product-single__photos img",
    ".product__photo img",
)


def strip_variant_suffix(title: str) -> str:
    """Recover the shared base name from a variant title.

    Examples:
        "Matcha Tee Zeremoniell - 50g Dose (50 Portionen)" -> "Matcha Tee Zeremoniell"
        "Hojicha 2 x 50 g Nachfüllbeutel"                  -> "Hojicha"
        "Uji Matcha 40g"                                   -> "Uji Matcha"
    """
    title = clean_text(title)
    for _name, pattern in VARIANT_SUFFIX_RULES:
        if pattern.search(title):
            stripped = clean_text(pattern.sub("", title, count=1))
            return stripped or title
    return title


def blob_price(value: Any) -> Optional[Decimal]:
    """Price from a structured-data blob.

    Integers are minor units (cents); strings and floats are major units.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, int):
            return Decimal(value) / 100
        return Decimal(str(value).strip())
    except InvalidOperation:
        return None


def extract_variant_blob(script_text: str) -> Optional[List[Dict[str, Any]]]:
    """Find and decode a ``"variants": [...]`` array inside a script.

    Returns:
        List of variant dicts, or None when the script holds no variants key

    Raises:
        MalformedStructuredData: If the array is present but not valid JSON
    """
    match = _VARIANTS_KEY.search(script_text)
    if not match:
        return None
    try:
        variants, _ = json.JSONDecoder().raw_decode(script_text, match.end() - 1)
    except ValueError as e:
        raise MalformedStructuredData("variants", str(e))
    if not isinstance(variants, list):
        raise MalformedStructuredData("variants", "not an array")
    return [variant for variant in variants if isinstance(variant, dict)]


def _iter_json_ld_products(data: Any):
    if isinstance(data, list):
        for item in data:
            yield from _iter_json_ld_products(item)
    elif isinstance(data, dict):
        if "@graph" in data:
            yield from _iter_json_ld_products(data["@graph"])
        kind = data.get("@type")
        if kind == "Product" or (isinstance(kind, list) and "Product" in kind):
            yield data


def _availability(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value:
        lowered = value.lower()
        if "outofstock" in lowered or "soldout" in lowered or "discontinued" in lowered:
            return False
        if "instock" in lowered or "limitedavailability" in lowered or "preorder" in lowered:
            return True
    return None


class VariantPageParser(GenericParser):
    """Listing parser that expands every product through its detail page."""

    def variant_image(self, soup: BeautifulSoup, variant_title: str, default: Optional[str]) -> Optional[str]:
        """Image for one variant; the page's main image unless a subclass knows better."""
        return default

    async def crawl(self, site: SiteDescriptor, fetcher: DocumentFetcher) -> List[RawExtraction]:
        listing = await self.fetch_listing(site, fetcher)
        bases = self.dedupe(self.parse(site, listing.body))
        self.logger.info("listing_parsed", site=site.site_id, count=len(bases))

        results: List[RawExtraction] = []
        batch_size = max(1, settings.DETAIL_BATCH_SIZE)
        for start in range(0, len(bases), batch_size):
            batch = bases[start:start + batch_size]
            outcomes = await asyncio.gather(
                *(self.expand(site, fetcher, base) for base in batch),
                return_exceptions=True,
            )
            for base, outcome in zip(batch, outcomes):
                if isinstance(outcome, Exception):
                    self.logger.warning(
                        "detail_expansion_failed",
                        site=site.site_id,
                        url=base.detail_url,
                        error=str(outcome),
                    )
                    results.append(base)
                else:
                    results.extend(outcome)

            if start + batch_size < len(bases) and settings.DETAIL_BATCH_DELAY_SECONDS > 0:
                await asyncio.sleep(settings.DETAIL_BATCH_DELAY_SECONDS)

        self.logger.info("variants_expanded", site=site.site_id, products=len(bases), variants=len(results))
        return results

    @staticmethod
    def dedupe(bases: List[RawExtraction]) -> List[RawExtraction]:
        """Drop repeated listing entries pointing at the same detail page."""
        seen = set()
        unique = []
        for base in bases:
            marker = base.detail_url or base.name
            if marker in seen:
                continue
            seen.add(marker)
            unique.append(base)
        return unique

    async def expand(
        self, site: SiteDescriptor, fetcher: DocumentFetcher, base: RawExtraction
    ) -> List[RawExtraction]:
        """Fetch a base product's detail page and expand it into variants."""
        if not base.detail_url or base.detail_url == site.listing_url:
            return [base]
        response = await self.fetch_detail(site, fetcher, base.detail_url)
        if response is None:
            return [base]
        return self.expand_document(site, base, response.body) or [base]

    def expand_document(self, site: SiteDescriptor, base: RawExtraction, document: str) -> List[RawExtraction]:
        """Expand one detail page using the first strategy that yields variants.

        Args:
            site: Site descriptor
            base: Listing extraction for this product
            document: Detail page HTML

        Returns:
            One RawExtraction per variant; at least one for a readable page
        """
        soup = make_soup(document)
        main_image = absolute_url(find_image(soup, PAGE_IMAGE_SELECTORS + site.image_selectors), site.base_url)
        if not main_image:
            main_image = base.image_url

        variants = self.extract_structured_variants(site, base, soup, main_image)
        if variants:
            return variants

        variants = self.extract_option_variants(site, base, soup, main_image)
        if variants:
            return variants

        return [self.extract_single_product(site, base, soup, main_image)]

    def extract_structured_variants(
        self, site: SiteDescriptor, base: RawExtraction, soup: BeautifulSoup, main_image: Optional[str]
    ) -> List[RawExtraction]:
        """Primary strategy: variants from an embedded JSON blob."""
        for script in soup.find_all("script"):
            content = script.string or script.get_text()
            if not content:
                continue
            try:
                if script.get("type") == "application/ld+json":
                    variants = self._json_ld_variants(site, base, soup, content, main_image)
                elif '"variants"' in content:
                    variants = self._blob_variants(site, base, soup, content, main_image)
                else:
                    continue
            except MalformedStructuredData as e:
                self.logger.warning("structured_data_malformed", site=site.site_id, url=base.detail_url, error=e.message)
                continue
            if variants:
                return variants
        return []

    def _blob_variants(
        self, site: SiteDescriptor, base: RawExtraction, soup: BeautifulSoup, content: str, main_image: Optional[str]
    ) -> List[RawExtraction]:
        blob = extract_variant_blob(content)
        if not blob:
            return []

        extractions = []
        for index, variant in enumerate(blob):
            try:
                title = clean_text(str(variant.get("title") or ""))
                full_name = self._variant_name(base.name, variant.get("name"), title)
                available = variant.get("available")
                image = variant.get("featured_image")
                image_src = image.get("src") if isinstance(image, dict) else None
                variant_id = variant.get("id")
                extractions.append(
                    RawExtraction(
                        name=full_name,
                        detail_url=base.detail_url,
                        price_amount=blob_price(variant.get("price")),
                        price_currency=site.default_currency,
                        signals=StockSignals(
                            element_text=title,
                            available=available if isinstance(available, bool) else None,
                        ),
                        image_url=absolute_url(image_src, site.base_url)
                        or self.variant_image(soup, full_name, main_image),
                        variant_id=str(variant_id) if variant_id is not None else None,
                        base_name=strip_variant_suffix(full_name),
                    )
                )
            except Exception as e:
                self.logger.warning("variant_parse_failed", site=site.site_id, index=index, error=str(e))
        return extractions

    def _json_ld_variants(
        self, site: SiteDescriptor, base: RawExtraction, soup: BeautifulSoup, content: str, main_image: Optional[str]
    ) -> List[RawExtraction]:
        try:
            data = json.loads(content)
        except ValueError as e:
            raise MalformedStructuredData("ld+json", str(e))

        extractions = []
        for product in _iter_json_ld_products(data):
            offers = product.get("offers") or []
            if isinstance(offers, dict):
                offers = offers.get("offers") or [offers]
            product_name = clean_text(str(product.get("name") or "")) or base.name
            for index, offer in enumerate(offers):
                if not isinstance(offer, dict):
                    continue
                try:
                    title = clean_text(str(offer.get("name") or ""))
                    full_name = self._variant_name(product_name, None, title)
                    offer_url = offer.get("url") or ""
                    variant_id = offer.get("sku") or (
                        offer_url.rsplit("variant=", 1)[-1] if "variant=" in offer_url else None
                    )
                    extractions.append(
                        RawExtraction(
                            name=full_name,
                            detail_url=base.detail_url,
                            price_amount=blob_price(offer.get("price")),
                            price_currency=offer.get("priceCurrency") or site.default_currency,
                            signals=StockSignals(
                                element_text=title,
                                available=_availability(offer.get("availability")),
                            ),
                            image_url=self.variant_image(soup, full_name, main_image),
                            variant_id=str(variant_id) if variant_id and len(offers) > 1 else None,
                            base_name=strip_variant_suffix(full_name),
                        )
                    )
                except Exception as e:
                    self.logger.warning("offer_parse_failed", site=site.site_id, index=index, error=str(e))
        return extractions

    def extract_option_variants(
        self, site: SiteDescriptor, base: RawExtraction, soup: BeautifulSoup, main_image: Optional[str]
    ) -> List[RawExtraction]:
        """Secondary strategy: variants from the product form's options."""
        page_price = self._page_price(site, soup)
        extractions = []
        for option in soup.select(VARIANT_OPTION_SELECTOR):
            try:
                value = (option.get("value") or "").strip()
                label = clean_text(option.get_text(" "))
                if not value or not label:
                    continue
                tail_match = _OPTION_TAIL.search(label)
                tail = tail_match.group(0) if tail_match else ""
                variant_label = _OPTION_TAIL.sub("", label) or label
                full_name = self._variant_name(base.name, None, variant_label)
                extractions.append(
                    RawExtraction(
                        name=full_name,
                        detail_url=base.detail_url,
                        price_text=tail if re.search(r"\d", tail) else page_price,
                        signals=StockSignals(
                            element_text=label,
                            out_of_stock_marker=option.has_attr("disabled"),
                        ),
                        image_url=self.variant_image(soup, full_name, main_image),
                        variant_id=value,
                        base_name=strip_variant_suffix(full_name),
                    )
                )
            except Exception as e:
                self.logger.warning("option_parse_failed", site=site.site_id, error=str(e))
        return extractions

    def extract_single_product(
        self, site: SiteDescriptor, base: RawExtraction, soup: BeautifulSoup, main_image: Optional[str]
    ) -> RawExtraction:
        """Tertiary strategy: the detail page is one product."""
        form = soup.select_one(PRODUCT_FORM_SELECTOR)
        scope: Tag = form if form is not None else soup
        return RawExtraction(
            name=base.name,
            detail_url=base.detail_url,
            price_text=self._page_price(site, soup) or base.price_text,
            signals=StockSignals(
                element_text=clean_text(form.get_text(" ")) if form is not None else base.signals.element_text,
                out_of_stock_marker=element_matches(scope, site.out_of_stock_selector),
                purchase_affordance=element_matches(scope, site.stock_selector),
            ),
            image_url=main_image,
            base_name=base.base_name or base.name,
        )

    @staticmethod
    def _page_price(site: SiteDescriptor, soup: BeautifulSoup) -> Optional[str]:
        return select_text(soup, site.price_selectors) or select_text(soup, GLOBAL_PRICE_SELECTORS) or None

    @staticmethod
    def _variant_name(base_name: str, explicit_name: Optional[str], title: str) -> str:
        if explicit_name:
            return clean_text(str(explicit_name))
        if not title or title.lower() == "default title":
            return base_name
        if base_name.lower() in title.lower():
            return title
        return f"{base_name} - {title}"
