from __future__ import annotations

import json
from decimal import Decimal

import httpx
import pytest

from warasat.config import Settings
from warasat.services.ai.valuation import ValuationService
from warasat.services.estate.models import (
    EstateProperty,
    Location,
    Party,
    PropertyType,
    Relation,
    ValuationSource,
)
from warasat.services.i18n.localization import get_text

LAHORE = Location(lat=31.5204, lng=74.3587)


def _settings(**overrides) -> Settings:
    values = {"ai_api_key": "test-key", "ai_max_retries": 2, "ai_retry_base_delay_seconds": 0}
    values.update(overrides)
    return Settings(**values)


def _completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _service(handler, config: Settings | None = None) -> ValuationService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://ai.test/v1")
    return ValuationService(config or _settings(), client=client)


@pytest.mark.asyncio
async def test_no_key_returns_mock_rate_without_request(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("AI_API_KEY", raising=False)
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=_completion("{}"))

    service = _service(handler, Settings(ai_api_key=None))
    estimate = await service.estimate(Decimal(2_000), LAHORE, PropertyType.RESIDENTIAL)
    assert estimate.rate == Decimal(15_000)
    assert estimate.source is ValuationSource.MANUAL
    assert estimate.analysis == get_text("ai.valuation.no_key")
    assert calls == []


@pytest.mark.asyncio
async def test_fenced_json_estimate_is_parsed() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        content = '<think>compare DHA listings</think>```json\n{"ratePerSqFt": 18500, "analysis": "Prime block."}\n```'
        return httpx.Response(200, json=_completion(content))

    service = _service(handler)
    estimate = await service.estimate(Decimal(2_000), LAHORE, PropertyType.COMMERCIAL, "Corner plot")
    assert estimate.rate == Decimal(18_500)
    assert estimate.analysis == "Prime block."
    assert estimate.source is ValuationSource.ESTIMATED
    assert not estimate.is_fallback
    assert seen["body"]["response_format"] == {"type": "json_object"}
    assert "commercial" in seen["body"]["messages"][0]["content"]


@pytest.mark.asyncio
async def test_malformed_json_falls_back() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion("The price is roughly twenty thousand."))

    estimate = await _service(handler).estimate(Decimal(1_000), LAHORE, PropertyType.PLOT)
    assert estimate.rate == Decimal(5_000)
    assert estimate.source is ValuationSource.MANUAL
    assert estimate.analysis == get_text("ai.valuation.unavailable")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"choices": ["oops"]},
        {"choices": [{"message": "oops"}]},
        {"choices": [{"message": {"content": 123}}]},
        {"choices": {"message": {"content": "{}"}}},
        ["not", "an", "object"],
    ],
)
async def test_unexpected_reply_shape_falls_back(body) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    service = _service(handler)
    estimate = await service.estimate(Decimal(1_000), LAHORE, PropertyType.PLOT)
    assert estimate.rate == Decimal(5_000)
    assert estimate.source is ValuationSource.MANUAL
    assert estimate.analysis == get_text("ai.valuation.unavailable")

    party = Party(name="Ali", relation=Relation.SON)
    assert await service.explain_distribution([party], Decimal(0)) == get_text("ai.explain.unavailable")


@pytest.mark.asyncio
async def test_currency_labelled_rate_is_read_in_full() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion('{"ratePerSqFt": "Rs. 12,000", "analysis": "ok"}'))

    estimate = await _service(handler).estimate(Decimal(1_000), LAHORE, PropertyType.RESIDENTIAL)
    assert estimate.rate == Decimal(12_000)
    assert estimate.source is ValuationSource.ESTIMATED


@pytest.mark.asyncio
async def test_non_positive_rate_keeps_analysis_but_uses_fallback() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion('{"ratePerSqFt": 0, "analysis": "No comparables."}'))

    estimate = await _service(handler).estimate(Decimal(1_000), LAHORE, PropertyType.AGRICULTURAL)
    assert estimate.rate == Decimal(5_000)
    assert estimate.analysis == "No comparables."
    assert estimate.is_fallback


@pytest.mark.asyncio
async def test_server_error_is_retried() -> None:
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(500, json={"error": "busy"})
        return httpx.Response(200, json=_completion('{"ratePerSqFt": "12,000", "analysis": "ok"}'))

    estimate = await _service(handler).estimate(Decimal(1_000), LAHORE, PropertyType.RESIDENTIAL)
    assert calls["count"] == 2
    assert estimate.rate == Decimal(12_000)
    assert estimate.source is ValuationSource.ESTIMATED


@pytest.mark.asyncio
async def test_client_error_is_not_retried() -> None:
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(400, json={"error": "bad request"})

    estimate = await _service(handler).estimate(Decimal(1_000), LAHORE, PropertyType.RESIDENTIAL)
    assert calls["count"] == 1
    assert estimate.rate == Decimal(5_000)


@pytest.mark.asyncio
async def test_connection_failure_falls_back() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    estimate = await _service(handler).estimate(Decimal(1_000), LAHORE, PropertyType.RESIDENTIAL)
    assert estimate.rate == Decimal(5_000)
    assert estimate.source is ValuationSource.MANUAL


@pytest.mark.asyncio
async def test_advice_strips_reasoning() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion("<think>weigh rent</think>\n- Good rental income"))

    item = EstateProperty.create(
        name="Shop",
        property_type=PropertyType.COMMERCIAL,
        area_sq_ft=Decimal(500),
        location=LAHORE,
        price_per_sq_ft=Decimal(20_000),
    )
    party = Party(name="Maryam", relation=Relation.DAUGHTER)
    advice = await _service(handler).advise(item, party)
    assert advice == "- Good rental income"


@pytest.mark.asyncio
async def test_explanation_without_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("AI_API_KEY", raising=False)

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    service = _service(handler, Settings(ai_api_key=None))
    text = await service.explain_distribution([Party(name="Ali", relation=Relation.SON)], Decimal(0))
    assert text == get_text("ai.explain.no_key")
