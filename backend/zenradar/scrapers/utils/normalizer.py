"""Data normalization utilities for price parsing and category classification."""

import re
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Callable, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlencode, urljoin, urlparse, urlunparse

import structlog

from zenradar.config import settings
from zenradar.sites.descriptor import SiteDescriptor

logger = structlog.get_logger(__name__)


# Static conversion rates into EUR; the canonical currency is fixed to EUR in Settings
RATES: Dict[str, Decimal] = {
    "USD": Decimal("0.85"),
    "CAD": Decimal("0.63"),
    "JPY": Decimal("0.0058"),
    "GBP": Decimal("1.17"),
    "SEK": Decimal("0.086"),
    "DKK": Decimal("0.134"),
    "NOK": Decimal("0.085"),
}

# Currencies without a minor unit: commas are always thousands separators
ZERO_DECIMAL_CURRENCIES = {"JPY"}

NORDIC_CURRENCIES = {"SEK", "DKK", "NOK"}

CURRENCY_SYMBOLS = {"EUR": "€", "USD": "$", "GBP": "£", "JPY": "¥"}

# Grouped thousands ("10,800", "1.234,56", "1 299") before plain numbers ("5,00", "12.5")
_NUMBER = r"\d{1,3}(?:[.,'\u00a0\u202f ]\d{3})+(?:[.,]\d{1,2})?|\d+(?:[.,]\d{1,2})?"

PRICE_LABELS = (
    "regular price",
    "sale price",
    "unit price",
    "original price",
    "angebotspreis",
    "normaler preis",
    "regulärer preis",
    "verkaufspreis",
    "stückpreis",
    "ordinarie pris",
    "från",
    "from",
    "ab",
    "fra",
    "preis",
    "price",
    "pris",
)

_LABEL_RE = re.compile(
    r"(?<![\w])(?:" + "|".join(re.escape(label) for label in PRICE_LABELS) + r")(?![\w])\s*:?",
    re.IGNORECASE,
)


def _pattern(template: str) -> "re.Pattern":
    return re.compile(template.replace("{N}", f"(?P<num>{_NUMBER})"), re.IGNORECASE)


# Ordered (currency, pattern) table; first match wins. EUR comes first so that
# multi-currency strings ("$12.00 USD / €10.50") resolve to the canonical amount.
CURRENCY_PATTERNS: List[Tuple[str, "re.Pattern"]] = [
    ("EUR", _pattern(r"€\s*{N}")),
    ("EUR", _pattern(r"{N}\s*€")),
    ("EUR", _pattern(r"\bEUR\s*{N}")),
    ("EUR", _pattern(r"{N}\s*EUR\b")),
    # CAD before USD: "C$" and "CA$" also contain a dollar sign
    ("CAD", _pattern(r"(?:CA\$|C\$|\bCAD\s*\$?)\s*{N}")),
    ("CAD", _pattern(r"{N}\s*CAD\b")),
    ("USD", _pattern(r"(?:US\$|\bUSD\s*\$?|\$)\s*{N}")),
    ("USD", _pattern(r"{N}\s*(?:USD\b|\$)")),
    ("GBP", _pattern(r"£\s*{N}")),
    ("GBP", _pattern(r"{N}\s*(?:£|GBP\b)")),
    ("GBP", _pattern(r"\bGBP\s*{N}")),
    ("JPY", _pattern(r"[¥￥]\s*{N}")),
    ("JPY", _pattern(r"{N}\s*(?:円|[¥￥]|JPY\b)")),
    ("JPY", _pattern(r"\bJPY\s*{N}")),
    ("SEK", _pattern(r"{N}\s*SEK\b")),
    ("SEK", _pattern(r"\bSEK\s*{N}")),
    ("DKK", _pattern(r"{N}\s*DKK\b")),
    ("DKK", _pattern(r"\bDKK\s*{N}")),
    ("NOK", _pattern(r"{N}\s*NOK\b")),
    ("NOK", _pattern(r"\bNOK\s*{N}")),
    # Bare "kr": resolved against the site's default currency, SEK otherwise
    ("KR", _pattern(r"{N}\s*kr\b\.?")),
    ("KR", _pattern(r"\bkr\.?\s*{N}")),
]

_BARE_NUMBER_RE = re.compile(_NUMBER)


@dataclass(frozen=True)
class ParsedPrice:
    """Amount and currency read from free-form price text."""

    amount: Decimal
    currency: str
    # Number exactly as written, used by per-site quirks
    source_text: str = field(default="", compare=False)


@dataclass(frozen=True)
class NormalizedPrice:
    """Price converted to the canonical currency.

    ``text`` and ``value`` are None when no price could be read.
    """

    text: Optional[str]
    value: Optional[Decimal]
    currency: str
    original: Optional[str]


def _minor_unit_jpy(parsed: ParsedPrice) -> ParsedPrice:
    """Yen amounts some shops emit pre-multiplied by 100 ("1080000" for ¥10,800)."""
    if parsed.currency != "JPY":
        return parsed
    digits = parsed.source_text.strip()
    if not re.fullmatch(r"\d+", digits):
        return parsed
    if parsed.amount >= 100000 and parsed.amount % 100 == 0:
        return replace(parsed, amount=parsed.amount / 100)
    return parsed


# Declared per-site post-processing hooks, referenced by SiteDescriptor.price_quirk
PRICE_QUIRKS: Dict[str, Callable[[ParsedPrice], ParsedPrice]] = {
    "minor_unit_jpy": _minor_unit_jpy,
}


class PriceNormalizer:
    """Price parsing and currency conversion utilities.

    Handles prices written in EUR, USD, CAD, GBP, JPY, SEK, DKK and NOK with
    either decimal convention and converts them to the canonical currency
    using a static rate table.
    """

    RATES = RATES

    @staticmethod
    def strip_labels(raw: str) -> str:
        """Remove price labels such as "Regular price" or "Ab" from raw text."""
        return _LABEL_RE.sub(" ", raw)

    @staticmethod
    def to_decimal(number_text: str, currency: str) -> Optional[Decimal]:
        """Convert a matched number to Decimal using the separator rules.

        - JPY: commas are thousands separators.
        - Both ``,`` and ``.`` present: the last one is the decimal separator.
        - A single comma followed by one or two digits is a decimal comma.
        - Any other comma, repeated dots, or a single dot before exactly three
          digits ("1.299") are thousands separators.

        Args:
            number_text: Number as matched in the price text
            currency: Currency the number belongs to

        Returns:
            Decimal amount or None if it cannot be read
        """
        cleaned = re.sub(r"[\s\u00a0\u202f']", "", number_text)
        if not cleaned:
            return None

        if currency in ZERO_DECIMAL_CURRENCIES:
            cleaned = cleaned.replace(",", "")
            if cleaned.count(".") > 1 or re.fullmatch(r"\d{1,3}\.\d{3}", cleaned):
                cleaned = cleaned.replace(".", "")
        elif "," in cleaned and "." in cleaned:
            if cleaned.rfind(",") > cleaned.rfind("."):
                cleaned = cleaned.replace(".", "").replace(",", ".")
            else:
                cleaned = cleaned.replace(",", "")
        elif "," in cleaned:
            if re.fullmatch(r"\d+,\d{1,2}", cleaned):
                cleaned = cleaned.replace(",", ".")
            else:
                cleaned = cleaned.replace(",", "")
        elif cleaned.count(".") > 1 or re.fullmatch(r"\d{1,3}\.\d{3}", cleaned):
            cleaned = cleaned.replace(".", "")

        try:
            return Decimal(cleaned)
        except InvalidOperation:
            return None

    @classmethod
    def parse(cls, raw_text: Optional[str], default_currency: Optional[str] = None) -> Optional[ParsedPrice]:
        """Parse free-form price text into an amount and a currency.

        Examples:
            "¥10,800"          -> 10800 JPY
            "5,00€"            -> 5.00 EUR
            "160 kr"           -> 160 SEK
            "Regular price $12.50 USD" -> 12.50 USD

        Args:
            raw_text: Price text as scraped
            default_currency: Currency for bare numbers and ambiguous "kr";
                the canonical currency when omitted

        Returns:
            ParsedPrice, or None when no positive amount is found
        """
        if not raw_text:
            return None

        fallback_currency = (default_currency or settings.CANONICAL_CURRENCY).upper()
        text = cls.strip_labels(raw_text.replace("\u00a0", " "))

        for currency, pattern in CURRENCY_PATTERNS:
            match = pattern.search(text)
            if not match:
                continue
            if currency == "KR":
                currency = fallback_currency if fallback_currency in NORDIC_CURRENCIES else "SEK"
            number_text = match.group("num")
            amount = cls.to_decimal(number_text, currency)
            if amount is None or amount <= 0:
                return None
            return ParsedPrice(amount=amount, currency=currency, source_text=number_text)

        match = _BARE_NUMBER_RE.search(text)
        if not match:
            return None
        amount = cls.to_decimal(match.group(0), fallback_currency)
        if amount is None or amount <= 0:
            return None
        return ParsedPrice(amount=amount, currency=fallback_currency, source_text=match.group(0))

    @classmethod
    def to_canonical(
        cls,
        amount: Decimal,
        currency: str,
        rate_override: Optional[Decimal] = None,
    ) -> Decimal:
        """Convert an amount into the canonical currency.

        Unknown currencies are logged and passed through unconverted.

        Args:
            amount: Amount in ``currency``
            currency: ISO currency code
            rate_override: Fixed rate replacing the static table

        Returns:
            Amount in the canonical currency, rounded half-up to two decimals
        """
        currency = currency.upper()
        if rate_override is not None:
            value = amount * rate_override
        elif currency == settings.CANONICAL_CURRENCY:
            value = amount
        elif currency in cls.RATES:
            value = amount * cls.RATES[currency]
        else:
            logger.warning("unknown_currency", currency=currency, amount=str(amount))
            value = amount
        return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    @staticmethod
    def format_price(value: Decimal, currency: Optional[str] = None) -> str:
        """Render a canonical price, e.g. ``€12.50``."""
        currency = (currency or settings.CANONICAL_CURRENCY).upper()
        symbol = CURRENCY_SYMBOLS.get(currency)
        if symbol:
            return f"{symbol}{value:.2f}"
        return f"{value:.2f} {currency}"

    @classmethod
    def normalize(
        cls,
        raw: Optional[str],
        site: SiteDescriptor,
        amount: Optional[Decimal] = None,
        currency: Optional[str] = None,
    ) -> NormalizedPrice:
        """Parse, apply the site's quirk and override, and convert a price.

        Args:
            raw: Raw price text
            site: Site the price was scraped from
            amount: Structured amount (from an embedded data blob), preferred over ``raw``
            currency: Currency of the structured amount

        Returns:
            NormalizedPrice in the canonical currency
        """
        canonical = settings.CANONICAL_CURRENCY
        original = raw.strip() if raw else None

        if amount is not None and amount > 0:
            parsed = ParsedPrice(
                amount=amount,
                currency=(currency or site.default_currency).upper(),
                source_text=str(amount),
            )
        else:
            parsed = cls.parse(raw, site.default_currency)

        if parsed is None:
            return NormalizedPrice(text=None, value=None, currency=canonical, original=original)

        if site.price_quirk:
            quirk = PRICE_QUIRKS.get(site.price_quirk)
            if quirk is None:
                logger.warning("unknown_price_quirk", site=site.site_id, quirk=site.price_quirk)
            else:
                parsed = quirk(parsed)

        rate_override = None
        if site.currency_override and site.currency_override.source == parsed.currency:
            rate_override = site.currency_override.rate

        value = cls.to_canonical(parsed.amount, parsed.currency, rate_override)
        if original is None:
            original = f"{parsed.amount} {parsed.currency}"

        return NormalizedPrice(
            text=cls.format_price(value, canonical),
            value=value,
            currency=canonical,
            original=original,
        )


# Ordered keyword rules for category detection; first match wins
_ACCESSORY_KEYWORDS = (
    "whisk", "chasen", "bowl", "chawan", "scoop", "chashaku",
    "schale", "becher", "tasse", "schüssel", "besen", "sieve", "sieb",
)
_SET_RE = re.compile(r"\b(?:set|kit)\b|-set\b", re.IGNORECASE)


class CategoryClassifier:
    """Keyword-based category detection from product names."""

    DEFAULT_CATEGORY = "Matcha"

    @classmethod
    def classify(cls, name: Optional[str]) -> str:
        """Classify a product into a display category.

        Args:
            name: Product display name

        Returns:
            Category label, "Matcha" when nothing more specific matches
        """
        if not name:
            return cls.DEFAULT_CATEGORY

        lower = name.lower()

        if any(keyword in lower for keyword in _ACCESSORY_KEYWORDS):
            return "Accessories"
        if _SET_RE.search(lower):
            return "Tea Sets"
        if "genmaicha" in lower:
            return "Genmaicha"
        if "hojicha" in lower or "houjicha" in lower:
            return "Hojicha"
        if "black tea" in lower or "earl grey" in lower or "schwarztee" in lower:
            return "Black Tea"
        if "matcha" in lower:
            if "ceremonial" in lower or "ceremony" in lower or "zeremon" in lower:
                return "Ceremonial Matcha"
            if "premium" in lower or "grade a" in lower:
                return "Premium Matcha"
            if "cooking" in lower or "culinary" in lower or "küche" in lower:
                return "Culinary Matcha"

        return cls.DEFAULT_CATEGORY


TRACKING_PARAMS = {
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_content",
    "utm_term",
    "ref",
    "fbclid",
    "gclid",
    "mc_cid",
    "mc_eid",
    "_pos",
    "_sid",
    "_ss",
}


def normalize_url(url: str) -> str:
    """Normalize a URL by removing tracking parameters and the fragment.

    Args:
        url: URL to normalize

    Returns:
        Normalized URL
    """
    if not url:
        return url

    parsed = urlparse(url)
    query_params = parse_qs(parsed.query, keep_blank_values=True)
    filtered_params = {k: v for k, v in query_params.items() if k not in TRACKING_PARAMS}
    new_query = urlencode(filtered_params, doseq=True)

    return urlunparse(
        (parsed.scheme, parsed.netloc, parsed.path, parsed.params, new_query, "")
    )


def absolute_url(href: Optional[str], base_url: str) -> Optional[str]:
    """Build an absolute URL from a possibly relative or protocol-relative href.

    Args:
        href: Link as found in the document
        base_url: Site base URL

    Returns:
        Absolute URL, or None for empty and non-http links
    """
    if not href:
        return None
    href = href.strip()
    if not href or href.startswith(("javascript:", "mailto:", "tel:", "data:", "#")):
        return None
    if href.startswith("//"):
        return "https:" + href
    if href.startswith(("http://", "https://")):
        return href
    return urljoin(base_url.rstrip("/") + "/", href)
