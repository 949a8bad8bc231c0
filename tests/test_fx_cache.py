"""
Tests for processing/fx_cache.py

Covers the TTL cache (one fetch per base per window, stale rates kept on a
failed refresh, failures remembered for the retry window), the HTTP fetcher
(requests mocked) and StaticRates.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from processing.fx_cache import FxCache, StaticRates, fetch_rates


class _FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _make_cache(rates=None, ttl: float = 100.0, retry: float = 10.0):
    fetcher = MagicMock(return_value=rates if rates is not None else {"AUD": 1.5, "EUR": 0.9})
    clock = _FakeClock()
    return FxCache(fetcher=fetcher, ttl_seconds=ttl, retry_seconds=retry, clock=clock), fetcher, clock


# ═══════════════════════════════════════════════════════════════════════════
# Cache behaviour
# ═══════════════════════════════════════════════════════════════════════════

class TestFxCache:

    def test_same_currency_is_one_without_fetch(self):
        cache, fetcher, _ = _make_cache()
        assert cache.get_rate("aud", "AUD") == 1.0
        fetcher.assert_not_called()

    def test_lazy_load_on_first_lookup(self):
        cache, fetcher, _ = _make_cache()
        assert cache.get_rate("USD", "AUD") == 1.5
        fetcher.assert_called_once_with("USD")

    def test_reuses_rates_within_ttl(self):
        cache, fetcher, clock = _make_cache()
        cache.get_rate("USD", "AUD")
        clock.now = 99.0
        cache.get_rate("USD", "EUR")
        assert fetcher.call_count == 1

    def test_refetches_after_ttl(self):
        cache, fetcher, clock = _make_cache()
        cache.get_rate("USD", "AUD")
        clock.now = 100.0
        fetcher.return_value = {"AUD": 1.6}
        assert cache.get_rate("USD", "AUD") == 1.6
        assert fetcher.call_count == 2

    def test_failed_refresh_keeps_stale_rates(self):
        cache, fetcher, clock = _make_cache()
        cache.get_rate("USD", "AUD")
        clock.now = 500.0
        fetcher.side_effect = requests.ConnectionError("offline")
        assert cache.get_rate("USD", "AUD") == 1.5

    def test_failed_first_fetch_returns_none(self):
        cache, fetcher, _ = _make_cache()
        fetcher.side_effect = requests.Timeout("slow")
        assert cache.get_rate("USD", "AUD") is None
        assert cache.cached_bases() == []

    def test_failed_fetch_not_repeated_within_retry_window(self):
        cache, fetcher, clock = _make_cache(retry=10.0)
        fetcher.side_effect = requests.ConnectionError("offline")
        for _ in range(50):
            assert cache.get_rate("EUR", "AUD") is None
        clock.now = 9.0
        assert cache.get_rate("EUR", "AUD") is None
        assert fetcher.call_count == 1

    def test_failed_fetch_retried_after_retry_window(self):
        cache, fetcher, clock = _make_cache(retry=10.0)
        fetcher.side_effect = requests.ConnectionError("offline")
        cache.get_rate("EUR", "AUD")
        clock.now = 10.0
        fetcher.side_effect = None
        assert cache.get_rate("EUR", "AUD") == 1.5
        assert fetcher.call_count == 2
        assert cache.cached_bases() == ["EUR"]

    def test_failed_refresh_not_repeated_within_retry_window(self):
        cache, fetcher, clock = _make_cache(ttl=100.0, retry=10.0)
        cache.get_rate("USD", "AUD")
        clock.now = 150.0
        fetcher.side_effect = requests.ConnectionError("offline")
        for _ in range(20):
            assert cache.get_rate("USD", "AUD") == 1.5
        assert fetcher.call_count == 2
        clock.now = 160.0
        fetcher.side_effect = None
        fetcher.return_value = {"AUD": 1.7}
        assert cache.get_rate("USD", "AUD") == 1.7
        assert fetcher.call_count == 3

    def test_unknown_target_is_none(self):
        cache, _, _ = _make_cache()
        assert cache.get_rate("USD", "XYZ") is None

    def test_convert_amount(self):
        cache, _, _ = _make_cache()
        assert cache.convert_amount(100, "USD", "AUD") == pytest.approx(150.0)
        assert cache.convert_amount(100, "USD", "XYZ") == 100

    def test_separate_entry_per_base(self):
        cache, fetcher, _ = _make_cache()
        cache.load_rates("usd")
        cache.load_rates("EUR")
        assert cache.cached_bases() == ["EUR", "USD"]
        assert fetcher.call_count == 2

    def test_clear(self):
        cache, fetcher, _ = _make_cache()
        cache.load_rates("USD")
        cache.clear()
        cache.load_rates("USD")
        assert fetcher.call_count == 2


# ═══════════════════════════════════════════════════════════════════════════
# HTTP fetcher
# ═══════════════════════════════════════════════════════════════════════════

class TestFetchRates:

    @patch("processing.fx_cache.requests.get")
    def test_parses_rates(self, mock_get):
        response = MagicMock()
        response.json.return_value = {"base": "USD", "rates": {"aud": 1.52, "EUR": 0.92}}
        mock_get.return_value = response

        rates = fetch_rates("USD", timeout=2)

        assert rates == {"AUD": 1.52, "EUR": 0.92}
        _, kwargs = mock_get.call_args
        assert kwargs["params"] == {"from": "USD"}
        assert kwargs["timeout"] == 2

    @patch("processing.fx_cache.requests.get")
    def test_http_error_raised(self, mock_get):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("503")
        mock_get.return_value = response

        with pytest.raises(requests.HTTPError):
            fetch_rates("USD")

    @patch("processing.fx_cache.requests.get")
    def test_missing_rates_raised(self, mock_get):
        response = MagicMock()
        response.json.return_value = {"message": "not found"}
        mock_get.return_value = response

        with pytest.raises(ValueError):
            fetch_rates("XYZ")


class TestStaticRates:

    def test_to_base(self):
        assert StaticRates({"USD": 1.5}, base="AUD").get_rate("USD", "AUD") == 1.5

    def test_cross_rate(self):
        rates = StaticRates({"USD": 1.5, "EUR": 1.6}, base="AUD")
        assert rates.get_rate("EUR", "USD") == pytest.approx(1.6 / 1.5)

    def test_unknown_currency(self):
        assert StaticRates({"USD": 1.5}).get_rate("JPY", "AUD") is None
