"""Provider adapter decoding tests."""

import pytest

from fxcache.core.errors import MalformedResponse, UnsupportedProvider
from fxcache.services.rates.providers import (
    ExchangeRateHostProvider,
    FiatSource,
    FrankfurterProvider,
    OpenErApiProvider,
    parse,
    resolve_fiat_providers,
)
from helpers import er_host_payload, frankfurter_payload, open_er_payload


def test_each_known_schema_decodes_to_units_per_usd():
    assert parse(er_host_payload({"EUR": 0.92}), "exchangerate-host") == {"EUR": 0.92}
    assert parse(frankfurter_payload({"EUR": 0.91}), "frankfurter") == {"EUR": 0.91}
    assert parse(open_er_payload({"EUR": 0.93, "USD": 1}), "open-er-api") == {
        "EUR": 0.93,
        "USD": 1.0,
    }


def test_codes_are_upper_cased_and_non_positive_values_dropped():
    rates = parse(open_er_payload({"eur": 0.9, "XXX": 0, "YYY": -2}), "open-er-api")
    assert rates == {"EUR": 0.9}


@pytest.mark.parametrize("provider", ["exchangerate-host", "frankfurter", "open-er-api"])
@pytest.mark.parametrize("bad", [float("inf"), float("-inf"), float("nan")])
def test_non_finite_values_are_dropped(provider, bad):
    payloads = {
        "exchangerate-host": er_host_payload,
        "frankfurter": frankfurter_payload,
        "open-er-api": open_er_payload,
    }
    rates = parse(payloads[provider]({"EUR": 0.9, "GBP": bad}), provider)
    assert rates == {"EUR": 0.9}


def test_unknown_provider_is_rejected():
    with pytest.raises(UnsupportedProvider):
        parse(er_host_payload({"EUR": 1.0}), "api.example.com")


@pytest.mark.parametrize(
    "provider, payload",
    [
        (ExchangeRateHostProvider(), {"success": False, "error": {"code": 101}}),
        (ExchangeRateHostProvider(), {"base": "USD", "rates": {"EUR": 1}}),
        (FrankfurterProvider(), {"base": "USD", "date": "2026-01-01", "rates": {}}),
        (FrankfurterProvider(), {"amount": 10, "base": "USD", "date": "d", "rates": {}}),
        (OpenErApiProvider(), {"result": "error", "error-type": "quota-reached"}),
        (OpenErApiProvider(), {"result": "success", "rates": ["EUR"]}),
        (OpenErApiProvider(), {"result": "success", "base_code": "EUR", "rates": {"USD": 1.1}}),
        (OpenErApiProvider(), {"result": "success", "rates": {"EUR": "0.9"}}),
        (OpenErApiProvider(), {"result": "success", "rates": {"EUR": True}}),
    ],
)
def test_schema_mismatch_is_malformed(provider, payload):
    with pytest.raises(MalformedResponse):
        provider.decode(payload)


def test_resolve_preserves_configured_order():
    providers = resolve_fiat_providers(["open-er-api", "Frankfurter"])
    assert [p.name for p in providers] == ["open-er-api", "frankfurter"]


def test_resolve_rejects_unknown_and_empty():
    with pytest.raises(UnsupportedProvider):
        resolve_fiat_providers(["frankfurter", "nope"])
    with pytest.raises(UnsupportedProvider):
        resolve_fiat_providers([])


def test_default_priority_order():
    assert [m.value for m in FiatSource] == ["exchangerate-host", "frankfurter", "open-er-api"]
