"""Tests for product key derivation."""

from zenradar.scrapers.utils.identity import MAX_KEY_LENGTH, derive_key, normalize_name, url_slug


class TestDeriveKey:
    """Tests for derive_key."""

    def test_key_layout(self):
        key = derive_key(
            "https://global.ippodo-tea.co.jp/collections/matcha/products/sayaka-40g?variant=1",
            "Sayaka Matcha 40g",
            "ippodo",
        )

        assert key == "ippodo_sayaka40g_sayakamatcha40g"

    def test_name_prefix_is_twenty_characters(self):
        key = derive_key("https://shop.example/products/uji", "Uji Matcha Ceremonial Grade Organic", "teashop")

        assert key == "teashop_uji_ujimatchaceremonialg"

    def test_whitespace_and_case_do_not_change_key(self):
        url = "https://shop.example/products/uji"

        assert derive_key(url, "Uji  Matcha", "teashop") == derive_key(url, "uji matcha", "teashop")
        assert derive_key(url, " UJI MATCHA ", "teashop") == derive_key(url, "Uji Matcha", "teashop")

    def test_stable_across_calls(self):
        args = ("https://shop.example/products/uji", "Uji Matcha", "teashop", "4711")

        assert derive_key(*args) == derive_key(*args)

    def test_variant_suffix(self):
        url = "https://poppatea.com/de-de/products/matcha-tea-ceremonial"
        keys = {
            derive_key(url, "Matcha Tee Zeremoniell", "poppatea", variant_id)
            for variant_id in ("101", "102", "103")
        }

        assert len(keys) == 3
        assert "poppatea_matchateaceremonial_matchateezeremoniell_101" in keys

    def test_non_ascii_is_folded(self):
        key = derive_key("https://matcha-karu.com/products/kāru-matcha", "Kāru Matcha", "matcha-karu")

        assert key == "matchakaru_karumatcha_karumatcha"

    def test_truncated_before_variant_suffix(self):
        long_slug = "a" * 200
        key = derive_key(f"https://shop.example/products/{long_slug}", "Name", "teashop", "9")

        assert len(key) == MAX_KEY_LENGTH + len("_9")
        assert key.endswith("_9")

    def test_missing_url(self):
        assert derive_key(None, "Uji Matcha", "teashop") == "teashop__ujimatcha"


class TestNameHelpers:
    """Tests for url_slug and normalize_name."""

    def test_url_slug_ignores_query_and_trailing_slash(self):
        assert url_slug("https://shop.example/products/Uji-Matcha/?variant=3") == "ujimatcha"

    def test_normalize_name(self):
        assert normalize_name("  Uji-Matcha (40g)!  ") == "uji matcha 40g"
        assert normalize_name(None) == ""
