"""Free-text answers from a Hugging Face hosted model."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict

import aiohttp

from insurance_bot.collaborators import ResponderError
from insurance_bot.states import Stage

logger = logging.getLogger(__name__)

NO_ANSWER_TEXT = "⚠️ Sorry, I don’t have an answer."

STAGE_HINTS: Dict[Stage, str] = {
    Stage.waiting_passport: "The user has not sent a photo of their passport yet. Remind them to send it.",
    Stage.waiting_vehicle_doc: "The user has sent their passport and still has to send a photo of the vehicle document.",
    Stage.waiting_price: (
        "The user is confirming the extracted data and the price of 100 USD. "
        "Remind them to answer Yes or No."
    ),
    Stage.complete: "The user already received their car insurance policy.",
}

GENERATION_PARAMETERS = {
    "max_new_tokens": 150,
    "return_full_text": False,
    "temperature": 0.7,
    "top_p": 0.9,
}


def build_prompt(text: str, stage: Stage) -> str:
    hint = STAGE_HINTS.get(stage, "")
    return (
        "AI: You are a helpful assistant for a car insurance company. "
        "Answer the user's question politely and clearly. "
        "If you are unsure about the answer, apologize and suggest calling the support line. "
        "Keep the tone friendly and concise. "
        f"{hint}\n\nUser: {text}"
    )


def parse_generation(payload: Any) -> str:
    """Return the generated text of an inference API response."""
    if isinstance(payload, list) and payload:
        payload = payload[0]
    if not isinstance(payload, dict):
        raise ResponderError(f"Unexpected response shape: {type(payload).__name__}")
    generated = payload.get("generated_text")
    if generated is None:
        raise ResponderError("Response has no generated_text")
    generated = str(generated).strip()
    return generated or NO_ANSWER_TEXT


class HuggingFaceResponder:
    def __init__(self, api_url: str, api_token: str, *, timeout: float = 30.0) -> None:
        self._api_url = api_url
        self._api_token = api_token
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def respond(self, text: str, stage: Stage) -> str:
        body = {"inputs": build_prompt(text, stage), "parameters": GENERATION_PARAMETERS}
        headers = {"Authorization": f"Bearer {self._api_token}"}

        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.post(self._api_url, json=body, headers=headers) as resp:
                    raw = await resp.text()
                    if resp.status >= 400:
                        logger.warning("HF error %s: %s", resp.status, raw[:500])
                        raise ResponderError(f"Inference API returned HTTP {resp.status}")
        except aiohttp.ClientError as exc:
            raise ResponderError(f"Inference API request failed: {exc}") from exc
        except asyncio.TimeoutError as exc:
            raise ResponderError("Inference API request timed out") from exc

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Failed to parse HF response: %s", raw[:500])
            raise ResponderError("Inference API returned invalid JSON") from exc
        return parse_generation(payload)
