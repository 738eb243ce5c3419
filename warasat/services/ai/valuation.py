from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Sequence

import httpx

from warasat.config import Settings, settings as default_settings
from warasat.services.estate.models import (
    EstateProperty,
    Location,
    Party,
    PropertyType,
    ValuationSource,
)
from warasat.services.estate.parsing import parse_amount
from warasat.services.i18n.localization import get_text

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.fireworks.ai/inference/v1"
DEFAULT_MODEL = "accounts/fireworks/models/deepseek-r1-0528"
_RETRYABLE_STATUSES = {429, 500, 502, 503, 504}
_THINK_RE = re.compile(r"<think>.*?</think>", flags=re.DOTALL)
_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", flags=re.DOTALL)


@dataclass(frozen=True, slots=True)
class ValuationEstimate:
    rate: Decimal
    analysis: str
    source: ValuationSource

    @property
    def is_fallback(self) -> bool:
        return self.source is ValuationSource.MANUAL


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        seconds = float(str(value).strip())
    except ValueError:
        return None
    if seconds <= 0:
        return None
    return seconds


def _clean_content(content: str) -> str:
    return _THINK_RE.sub("", content or "").strip()


def _extract_json_object(content: str) -> Optional[dict[str, Any]]:
    text = _clean_content(content)
    fenced = _FENCE_RE.match(text)
    if fenced:
        text = fenced.group(1)
    try:
        data = json.loads(text)
    except ValueError:
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            return None
        try:
            data = json.loads(text[start : end + 1])
        except ValueError:
            return None
    return data if isinstance(data, dict) else None


def _valuation_prompt(
    area_sq_ft: Decimal,
    location: Location,
    property_type: PropertyType,
    description: Optional[str],
) -> str:
    return (
        "Act as a real estate expert in Pakistan.\n"
        f"Estimate the current market value per square foot (in PKR) for a {property_type.value} property.\n"
        f"Location coordinates: {location.lat}, {location.lng}.\n"
        f"Area: {area_sq_ft} sq ft.\n"
        f"Additional details: {description or 'Standard condition'}.\n\n"
        "Respond with valid JSON only, no markdown:\n"
        '{"ratePerSqFt": number, "analysis": "Short 2-sentence explanation of the price '
        'based on location trends in Pakistan."}'
    )


def _advice_prompt(item: EstateProperty, party: Party) -> str:
    return (
        "Analyze the suitability of this property for the inheritor.\n"
        f"Property: {item.name} ({item.type.value}), {item.area_sq_ft} sq ft. Value: PKR {item.total_value}.\n"
        f"Inheritor: {party.name} ({party.relation.value}).\n\n"
        "Suggest pros and cons considering:\n"
        "- Rental income potential (if commercial/residential)\n"
        "- Living needs (if residential)\n"
        "- Liquidity (ease of selling)\n"
        "- Long term appreciation vs gold.\n\n"
        "Keep it concise (max 3 bullet points)."
    )


def _explanation_prompt(parties: Sequence[Party], total_value: Decimal) -> str:
    summary = ", ".join(f"{party.name} ({party.relation.value})" for party in parties)
    return (
        f"Given the following inheritors: {summary}.\n"
        f"Total estate value: PKR {total_value}.\n"
        "Explain the Shariah distribution (faraid) briefly.\n"
        "Identify any immediate blocking rules (e.g. inheritance denied due to family "
        "relations not shown).\n"
        "Assume standard Hanafi Sunni jurisprudence unless otherwise implied.\n"
        "Keep it very brief and reassuring."
    )


class ValuationService:
    """
    Client for the external valuation/advice model.

    Every public method returns a usable value: provider failures are logged
    and turned into fallback values with an explanatory string.
    """

    def __init__(
        self,
        config: Settings = default_settings,
        *,
        client: Optional[httpx.AsyncClient] = None,
        lang_code: Optional[str] = None,
    ) -> None:
        self.config = config
        self.lang = lang_code or config.default_language
        self._client = client
        self._owns_client = client is None

    @property
    def enabled(self) -> bool:
        return bool(self.config.ai_api_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.ai_base_url or DEFAULT_BASE_URL,
                headers={"Authorization": f"Bearer {self.config.ai_api_key}"},
                timeout=self.config.ai_request_timeout_sec,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _complete(self, prompt: str, *, json_mode: bool = False) -> str:
        client = self._get_client()
        body: dict[str, Any] = {
            "model": self.config.ai_model or DEFAULT_MODEL,
            "messages": [{"role": "user", "content": prompt}],
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}

        max_retries = max(1, self.config.ai_max_retries)
        for attempt in range(1, max_retries + 1):
            try:
                response = await client.post("/chat/completions", json=body)
                response.raise_for_status()
                payload = response.json()
                if not isinstance(payload, dict):
                    raise ValueError("Unexpected provider payload")
                choices = payload.get("choices") or []
                if not isinstance(choices, list):
                    raise ValueError("Unexpected provider payload")
                if not choices:
                    return ""
                message = choices[0].get("message") if isinstance(choices[0], dict) else None
                content = message.get("content") if isinstance(message, dict) else None
                if not isinstance(content, str):
                    raise ValueError("Unexpected provider payload")
                return _clean_content(content)
            except httpx.HTTPStatusError as exc:
                status_code = exc.response.status_code
                if status_code not in _RETRYABLE_STATUSES or attempt >= max_retries:
                    raise
                retry_after = _parse_retry_after(exc.response.headers.get("Retry-After"))
                delay = retry_after if retry_after is not None else self.config.ai_retry_base_delay_seconds * attempt
                logger.warning(
                    "AI provider returned %s (attempt %s/%s), retrying in %.1fs",
                    status_code,
                    attempt,
                    max_retries,
                    delay,
                )
                await asyncio.sleep(delay)
            except httpx.TransportError as exc:
                if attempt >= max_retries:
                    raise
                delay = self.config.ai_retry_base_delay_seconds * attempt
                logger.warning(
                    "AI request failed on attempt %s/%s, retrying in %.1fs: %r",
                    attempt,
                    max_retries,
                    delay,
                    exc,
                )
                await asyncio.sleep(delay)
        return ""

    async def estimate(
        self,
        area_sq_ft: Decimal,
        location: Location,
        property_type: PropertyType,
        description: Optional[str] = None,
        *,
        lang_code: Optional[str] = None,
    ) -> ValuationEstimate:
        lang = lang_code or self.lang
        if not self.enabled:
            logger.warning("AI API key is not configured. Returning mock valuation.")
            return ValuationEstimate(
                rate=self.config.mock_rate,
                analysis=get_text("ai.valuation.no_key", lang),
                source=ValuationSource.MANUAL,
            )

        unavailable = ValuationEstimate(
            rate=self.config.fallback_rate,
            analysis=get_text("ai.valuation.unavailable", lang),
            source=ValuationSource.MANUAL,
        )
        prompt = _valuation_prompt(area_sq_ft, location, property_type, description)
        try:
            content = await self._complete(prompt, json_mode=True)
        except (httpx.HTTPError, ValueError):
            logger.exception("AI valuation request failed")
            return unavailable

        data = _extract_json_object(content)
        if data is None:
            logger.warning("AI valuation returned malformed JSON: %.200s", content)
            return unavailable

        rate = parse_amount(data.get("ratePerSqFt", data.get("rate_per_sq_ft")))
        analysis = str(data.get("analysis") or "").strip() or get_text("ai.valuation.no_analysis", lang)
        if rate <= 0:
            logger.warning("AI valuation returned no usable rate: %r", data)
            return ValuationEstimate(rate=self.config.fallback_rate, analysis=analysis, source=ValuationSource.MANUAL)
        return ValuationEstimate(rate=rate, analysis=analysis, source=ValuationSource.ESTIMATED)

    async def advise(self, item: EstateProperty, party: Party, *, lang_code: Optional[str] = None) -> str:
        lang = lang_code or self.lang
        if not self.enabled:
            return get_text("ai.advice.no_key", lang)
        try:
            content = await self._complete(_advice_prompt(item, party))
        except (httpx.HTTPError, ValueError):
            logger.exception("AI advice request failed for property %s", item.id)
            return get_text("ai.advice.unavailable", lang)
        return content or get_text("ai.advice.empty", lang)

    async def explain_distribution(
        self,
        parties: Sequence[Party],
        total_value: Decimal,
        *,
        lang_code: Optional[str] = None,
    ) -> str:
        lang = lang_code or self.lang
        if not self.enabled:
            return get_text("ai.explain.no_key", lang)
        try:
            content = await self._complete(_explanation_prompt(parties, total_value))
        except (httpx.HTTPError, ValueError):
            logger.exception("AI distribution explanation failed")
            return get_text("ai.explain.unavailable", lang)
        return content or get_text("ai.explain.unavailable", lang)
