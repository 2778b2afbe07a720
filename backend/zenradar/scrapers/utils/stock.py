"""Heuristic stock-state inference.

Availability is never exposed through one reliable signal, so each site
declares an ordered policy of rule names. Rules return True, False or None
(no opinion); the first rule with an opinion decides.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence

import structlog

from zenradar.sites.descriptor import DEFAULT_STOCK_POLICY, SiteDescriptor

logger = structlog.get_logger(__name__)


# Localized sold-out phrases checked for every site, on top of the site's own list
OUT_OF_STOCK_KEYWORDS = (
    "sold out",
    "out of stock",
    "currently unavailable",
    "ausverkauft",
    "nicht verfügbar",
    "nicht auf lager",
    "slutsåld",
    "slut i lager",
    "ej i lager",
    "udsolgt",
    "utsolgt",
    "売り切れ",
    "在庫切れ",
    "完売",
)


@dataclass(frozen=True)
class StockSignals:
    """Raw availability signals collected by a parser for one product.

    Attributes:
        element_text: Visible text of the product container or variant label
        out_of_stock_marker: An explicit sold-out element/class was found
        purchase_affordance: An enabled add-to-cart control was found
        available: Explicit flag from embedded structured data, if any
    """

    element_text: str = ""
    out_of_stock_marker: bool = False
    purchase_affordance: bool = False
    available: Optional[bool] = None


RuleFn = Callable[[str, StockSignals, Optional[str], SiteDescriptor], Optional[bool]]


def _structured_availability(text, signals, price_text, site):
    return signals.available


def _out_of_stock_marker(text, signals, price_text, site):
    if signals.out_of_stock_marker:
        return False
    lowered = text.lower()
    for keyword in tuple(site.out_of_stock_keywords) + OUT_OF_STOCK_KEYWORDS:
        if keyword.lower() in lowered:
            return False
    return None


def _purchase_affordance(text, signals, price_text, site):
    if signals.purchase_affordance:
        return True
    lowered = text.lower()
    if any(keyword.lower() in lowered for keyword in site.stock_keywords):
        return True
    return None


def _price_present(text, signals, price_text, site):
    return True if price_text and price_text.strip() else None


def _price_required(text, signals, price_text, site):
    return False if not (price_text and price_text.strip()) else None


def _default_in_stock(text, signals, price_text, site):
    return True


def _default_out_of_stock(text, signals, price_text, site):
    return False


STOCK_RULES: Dict[str, RuleFn] = {
    "structured_availability": _structured_availability,
    "out_of_stock_marker": _out_of_stock_marker,
    "purchase_affordance": _purchase_affordance,
    "price_present": _price_present,
    "price_required": _price_required,
    "default_in_stock": _default_in_stock,
    "default_out_of_stock": _default_out_of_stock,
}


class StockClassifier:
    """Evaluates a site's ordered stock policy."""

    @staticmethod
    def classify(
        element_text: Optional[str],
        signals: Optional[StockSignals],
        site: SiteDescriptor,
        price_text: Optional[str] = None,
        policy: Optional[Sequence[str]] = None,
    ) -> bool:
        """Infer whether a product is purchasable.

        Args:
            element_text: Visible text around the product
            signals: Structural signals gathered by the parser
            site: Site descriptor holding keywords and the policy
            price_text: Raw price text, used by the price rules
            policy: Rule order overriding the site's policy

        Returns:
            Concrete availability flag; True when no rule decides
        """
        text = element_text or ""
        signals = signals or StockSignals(element_text=text)

        for rule_name in policy or site.stock_policy or DEFAULT_STOCK_POLICY:
            rule = STOCK_RULES.get(rule_name)
            if rule is None:
                logger.warning("unknown_stock_rule", site=site.site_id, rule=rule_name)
                continue
            decision = rule(text, signals, price_text, site)
            if decision is not None:
                return decision

        return True
