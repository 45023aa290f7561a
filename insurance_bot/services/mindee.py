"""Passport extraction through the Mindee passport API."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from insurance_bot.collaborators import ExtractionError
from insurance_bot.models import UNKNOWN, ExtractedData
from insurance_bot.services.ocr_engine import read_vehicle_id_or_unknown

logger = logging.getLogger(__name__)

MINDEE_PASSPORT_URL = "https://api.mindee.net/v1/products/mindee/passport/v1/predict"


def _value(field: Any) -> str:
    if isinstance(field, dict):
        value = field.get("value")
        if isinstance(value, str) and value.strip():
            return value.strip()
    return UNKNOWN


def parse_prediction(payload: Dict[str, Any]) -> Dict[str, str]:
    """Pull the fields we need out of a Mindee response, ``Unknown`` for anything missing."""
    try:
        prediction = payload["document"]["inference"]["prediction"]
    except (KeyError, TypeError):
        prediction = None
    if not isinstance(prediction, dict):
        logger.warning("Mindee response has no prediction block")
        return {"name": UNKNOWN, "surname": UNKNOWN, "passport_id": UNKNOWN}

    given_names = prediction.get("given_names") or []
    return {
        "name": _value(given_names[0]) if isinstance(given_names, list) and given_names else UNKNOWN,
        "surname": _value(prediction.get("surname")),
        "passport_id": _value(prediction.get("id_number")),
    }


class MindeeExtractor:
    def __init__(
        self,
        api_key: str,
        *,
        url: str = MINDEE_PASSPORT_URL,
        timeout: float = 30.0,
        vehicle_lang: str = "eng",
    ) -> None:
        self._api_key = api_key
        self._url = url
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._vehicle_lang = vehicle_lang

    async def extract(self, image: bytes, vehicle_image: Optional[bytes] = None) -> ExtractedData:
        form = aiohttp.FormData()
        form.add_field("document", image, filename="passport.jpg", content_type="image/jpeg")
        headers = {"Authorization": f"Token {self._api_key}"}

        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.post(self._url, data=form, headers=headers) as resp:
                    body = await resp.text()
                    if resp.status >= 400:
                        raise ExtractionError(f"Mindee returned HTTP {resp.status}")
        except aiohttp.ClientError as exc:
            raise ExtractionError(f"Mindee request failed: {exc}") from exc
        except asyncio.TimeoutError as exc:
            raise ExtractionError("Mindee request timed out") from exc

        try:
            fields = parse_prediction(json.loads(body))
        except json.JSONDecodeError:
            logger.error("Failed to parse Mindee response: %s", body[:500])
            fields = {"name": UNKNOWN, "surname": UNKNOWN, "passport_id": UNKNOWN}

        vehicle_id = await read_vehicle_id_or_unknown(vehicle_image, self._vehicle_lang)
        return ExtractedData(vehicle_id=vehicle_id, **fields)
