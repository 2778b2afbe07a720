"""Tests for the ordered stock policy."""

from conftest import make_site
from zenradar.scrapers.utils.stock import StockClassifier, StockSignals


class TestStockClassifier:
    """Tests for StockClassifier.classify."""

    def test_out_of_stock_marker_beats_price(self, site):
        signals = StockSignals(element_text="Uji Matcha €24,00", out_of_stock_marker=True)

        assert StockClassifier.classify(signals.element_text, signals, site, price_text="€24,00") is False

    def test_sold_out_keyword_beats_price(self, site):
        text = "Uji Matcha €24,00 Ausverkauft"

        assert StockClassifier.classify(text, StockSignals(element_text=text), site, price_text="€24,00") is False

    def test_structured_availability_wins(self, site):
        unavailable = StockSignals(element_text="add to cart", purchase_affordance=True, available=False)
        available = StockSignals(element_text="sold out", out_of_stock_marker=True, available=True)

        assert StockClassifier.classify(unavailable.element_text, unavailable, site) is False
        assert StockClassifier.classify(available.element_text, available, site) is True

    def test_purchase_affordance(self, site):
        signals = StockSignals(element_text="Uji Matcha", purchase_affordance=True)

        assert StockClassifier.classify(signals.element_text, signals, site) is True

    def test_stock_keyword(self, site):
        text = "Uji Matcha Add to cart"

        assert StockClassifier.classify(text, None, site) is True

    def test_price_present_decides_without_other_signals(self):
        site = make_site(stock_keywords=(), stock_policy=("out_of_stock_marker", "price_present", "default_out_of_stock"))

        assert StockClassifier.classify("Uji Matcha", None, site, price_text="€24,00") is True
        assert StockClassifier.classify("Uji Matcha", None, site, price_text=None) is False

    def test_price_required(self):
        site = make_site(stock_policy=("out_of_stock_marker", "price_required", "default_in_stock"))

        assert StockClassifier.classify("Uji Matcha", None, site, price_text="  ") is False
        assert StockClassifier.classify("Uji Matcha", None, site, price_text="€5") is True

    def test_default_out_of_stock(self):
        site = make_site(stock_keywords=(), stock_policy=("out_of_stock_marker", "purchase_affordance", "default_out_of_stock"))

        assert StockClassifier.classify("Uji Matcha", None, site) is False

    def test_no_deciding_rule_defaults_to_in_stock(self):
        site = make_site(stock_keywords=(), stock_policy=("out_of_stock_marker",))

        assert StockClassifier.classify("Uji Matcha", None, site) is True

    def test_unknown_rule_is_skipped(self):
        site = make_site(stock_policy=("no_such_rule", "default_out_of_stock"))

        assert StockClassifier.classify("Uji Matcha", None, site) is False

    def test_policy_argument_overrides_site_policy(self, site):
        assert StockClassifier.classify("Uji Matcha", None, site, policy=("default_out_of_stock",)) is False
