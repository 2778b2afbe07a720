"""Selector-driven parser used for every site without a specialized parser."""

from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from zenradar.scrapers.base import BaseParser, RawExtraction
from zenradar.scrapers.utils.html import (
    GLOBAL_NAME_SELECTORS,
    GLOBAL_PRICE_SELECTORS,
    clean_product_title,
    clean_text,
    find_image,
    image_alt,
    make_soup,
    select_attr,
    select_text,
)
from zenradar.scrapers.utils.normalizer import absolute_url, normalize_url
from zenradar.scrapers.utils.stock import StockSignals
from zenradar.sites.descriptor import SiteDescriptor

MIN_NAME_LENGTH = 2


def element_matches(element: Tag, selector: Optional[str]) -> bool:
    """True if ``element`` itself or any descendant matches ``selector``."""
    if not selector:
        return False
    if not isinstance(element, BeautifulSoup) and element.css.match(selector):
        return True
    return element.select_one(selector) is not None


class GenericParser(BaseParser):
    """Parses listing pages using a SiteDescriptor's selectors.

    Each field is resolved by trying the site's ordered selectors, then a
    global selector list; an image's alt text is the last resort for the
    name. Containers without a usable name are skipped.
    """

    def parse(self, site: SiteDescriptor, document: str) -> List[RawExtraction]:
        soup = make_soup(document)
        containers = self.find_containers(soup, site)
        if not containers:
            self.logger.warning("no_containers_found", site=site.site_id)
            return []

        extractions = []
        for index, container in enumerate(containers):
            try:
                extraction = self.extract_container(site, container)
            except Exception as e:
                self.logger.warning(
                    "container_parse_failed",
                    site=site.site_id,
                    index=index,
                    error=str(e),
                    exc_info=True,
                )
                continue
            if extraction is not None:
                extractions.append(extraction)

        return extractions

    @staticmethod
    def find_containers(soup: Tag, site: SiteDescriptor) -> List[Tag]:
        """Elements of the first container selector that matches anything."""
        for selector in site.container_selectors:
            found = soup.select(selector)
            if found:
                return found
        return []

    def extract_container(self, site: SiteDescriptor, container: Tag) -> Optional[RawExtraction]:
        """Extract one product from a listing container.

        Returns:
            RawExtraction, or None when the container has no usable name
        """
        name = clean_product_title(
            select_text(container, site.name_selectors)
            or select_text(container, GLOBAL_NAME_SELECTORS)
            or image_alt(container)
        )
        if len(name) < MIN_NAME_LENGTH:
            self.logger.debug("container_without_name", site=site.site_id)
            return None

        href = select_attr(container, site.link_selectors, "href") or select_attr(
            container, ("a[href]",), "href"
        )
        if not href and container.name == "a":
            href = container.get("href")
        detail_url = absolute_url(href, site.base_url)
        detail_url = normalize_url(detail_url) if detail_url else site.listing_url

        price_text = select_text(container, site.price_selectors) or select_text(
            container, GLOBAL_PRICE_SELECTORS
        )
        image_url = find_image(container, site.image_selectors)
        element_text = clean_text(container.get_text(" "))

        signals = StockSignals(
            element_text=element_text,
            out_of_stock_marker=element_matches(container, site.out_of_stock_selector),
            purchase_affordance=element_matches(container, site.stock_selector),
        )

        return RawExtraction(
            name=name,
            detail_url=detail_url,
            price_text=price_text or None,
            signals=signals,
            image_url=absolute_url(image_url, site.base_url),
            base_name=name,
        )
