"""Tests for price parsing, currency conversion, categories and URL helpers."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from conftest import make_site
from zenradar.config import Settings
from zenradar.scrapers.utils.normalizer import (
    CategoryClassifier,
    PriceNormalizer,
    absolute_url,
    normalize_url,
)
from zenradar.sites import BUILTIN_SITES


def _builtin(site_id):
    return next(site for site in BUILTIN_SITES if site.site_id == site_id)


# ============================================================================
# TESTS: PRICE PARSING
# ============================================================================

class TestPriceParsing:
    """Tests for PriceNormalizer.parse."""

    @pytest.mark.parametrize(
        "raw, amount, currency",
        [
            ("¥10,800", Decimal("10800"), "JPY"),
            ("5,00€", Decimal("5.00"), "EUR"),
            ("160 kr", Decimal("160"), "SEK"),
            ("€24.90", Decimal("24.90"), "EUR"),
            ("1.234,56 €", Decimal("1234.56"), "EUR"),
            ("€1.299", Decimal("1299"), "EUR"),
            ("1.234 €", Decimal("1234"), "EUR"),
            ("$12.50 USD", Decimal("12.50"), "USD"),
            ("CA$20.00", Decimal("20.00"), "CAD"),
            ("£10", Decimal("10"), "GBP"),
            ("3,240円", Decimal("3240"), "JPY"),
            ("1 299 kr", Decimal("1299"), "SEK"),
            ("249 DKK", Decimal("249"), "DKK"),
        ],
    )
    def test_parse_currency_formats(self, raw, amount, currency):
        parsed = PriceNormalizer.parse(raw)

        assert parsed is not None
        assert parsed.amount == amount
        assert parsed.currency == currency

    def test_parse_strips_price_labels(self):
        parsed = PriceNormalizer.parse("Regular price €24,90")

        assert parsed.amount == Decimal("24.90")
        assert parsed.currency == "EUR"

    def test_parse_prefers_canonical_currency_in_mixed_text(self):
        parsed = PriceNormalizer.parse("$12.00 USD / €10.50")

        assert parsed.currency == "EUR"
        assert parsed.amount == Decimal("10.50")

    def test_bare_kr_follows_nordic_default_currency(self):
        parsed = PriceNormalizer.parse("Från 160 kr", default_currency="DKK")

        assert parsed.currency == "DKK"
        assert parsed.amount == Decimal("160")

    def test_bare_number_uses_default_currency(self):
        parsed = PriceNormalizer.parse("24.90", default_currency="USD")

        assert parsed.currency == "USD"
        assert parsed.amount == Decimal("24.90")

    @pytest.mark.parametrize("raw", [None, "", "Ausverkauft", "0,00 €", "Sold out"])
    def test_parse_without_positive_amount(self, raw):
        assert PriceNormalizer.parse(raw) is None


# ============================================================================
# TESTS: CURRENCY CONVERSION
# ============================================================================

class TestCurrencyConversion:
    """Tests for PriceNormalizer.to_canonical and normalize."""

    def test_jpy_conversion(self):
        assert PriceNormalizer.to_canonical(Decimal("10800"), "JPY") == Decimal("62.64")

    def test_sek_conversion(self):
        assert PriceNormalizer.to_canonical(Decimal("160"), "SEK") == Decimal("13.76")

    def test_rounding_is_half_up(self):
        # 12.50 USD * 0.85 = 10.625
        assert PriceNormalizer.to_canonical(Decimal("12.50"), "USD") == Decimal("10.63")

    def test_canonical_currency_passes_through(self):
        assert PriceNormalizer.to_canonical(Decimal("5"), "EUR") == Decimal("5.00")

    def test_unknown_currency_is_not_converted(self):
        assert PriceNormalizer.to_canonical(Decimal("10"), "CHF") == Decimal("10.00")

    def test_only_eur_is_accepted_as_canonical_currency(self):
        assert Settings(CANONICAL_CURRENCY="eur").CANONICAL_CURRENCY == "EUR"

        with pytest.raises(ValidationError):
            Settings(CANONICAL_CURRENCY="USD")

    def test_rate_override(self):
        assert PriceNormalizer.to_canonical(Decimal("10800"), "JPY", Decimal("0.0067")) == Decimal("72.36")

    def test_format_price(self):
        assert PriceNormalizer.format_price(Decimal("12.5"), "EUR") == "€12.50"
        assert PriceNormalizer.format_price(Decimal("3"), "SEK") == "3.00 SEK"

    def test_normalize_jpy_listing_price(self):
        site = make_site(default_currency="JPY")

        price = PriceNormalizer.normalize("¥10,800", site)

        assert price.value == Decimal("62.64")
        assert price.text == "€62.64"
        assert price.currency == "EUR"
        assert price.original == "¥10,800"

    def test_normalize_applies_site_currency_override(self):
        price = PriceNormalizer.normalize("¥10,800", _builtin("horiishichimeien"))

        assert price.value == Decimal("72.36")

    def test_normalize_minor_unit_quirk_on_structured_amount(self):
        site = _builtin("horiishichimeien")

        price = PriceNormalizer.normalize(None, site, amount=Decimal("1080000"), currency="JPY")

        assert price.value == Decimal("72.36")

    def test_normalize_structured_amount_wins_over_text(self):
        site = make_site()

        price = PriceNormalizer.normalize("Ab 9,90 €", site, amount=Decimal("24.00"), currency="EUR")

        assert price.value == Decimal("24.00")
        assert price.original == "Ab 9,90 €"

    def test_normalize_missing_price(self):
        price = PriceNormalizer.normalize(None, make_site())

        assert price.value is None
        assert price.text is None
        assert price.currency == "EUR"


# ============================================================================
# TESTS: CATEGORIES
# ============================================================================

class TestCategoryClassifier:
    """Tests for keyword-based category detection."""

    @pytest.mark.parametrize(
        "name, category",
        [
            ("Bamboo Whisk (Chasen) 80 tips", "Accessories"),
            ("Matcha Starter Set", "Tea Sets"),
            ("Genmaicha 100g", "Genmaicha"),
            ("Hojicha Tea Powder", "Hojicha"),
            ("Earl Grey Black Tea", "Black Tea"),
            ("Matcha Tee Zeremoniell", "Ceremonial Matcha"),
            ("Premium Matcha Kiwami", "Premium Matcha"),
            ("Culinary Matcha for baking", "Culinary Matcha"),
            ("Sayaka no Mukashi", "Matcha"),
            (None, "Matcha"),
        ],
    )
    def test_classify(self, name, category):
        assert CategoryClassifier.classify(name) == category


# ============================================================================
# TESTS: URL HELPERS
# ============================================================================

class TestUrlHelpers:
    """Tests for URL normalization."""

    def test_normalize_url_drops_tracking_params_and_fragment(self):
        url = "https://shop.example/products/uji?utm_source=ig&variant=42&fbclid=abc#reviews"

        assert normalize_url(url) == "https://shop.example/products/uji?variant=42"

    def test_absolute_url_relative(self):
        assert absolute_url("/products/uji", "https://shop.example") == "https://shop.example/products/uji"

    def test_absolute_url_protocol_relative(self):
        assert absolute_url("//cdn.example/img.jpg", "https://shop.example") == "https://cdn.example/img.jpg"

    @pytest.mark.parametrize("href", [None, "", "javascript:void(0)", "mailto:a@b.c", "#top"])
    def test_absolute_url_rejects_non_links(self, href):
        assert absolute_url(href, "https://shop.example") is None
