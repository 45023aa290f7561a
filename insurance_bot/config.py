from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

DEFAULT_HF_API_URL = "https://api-inference.huggingface.co/models/mistralai/Mistral-7B-Instruct-v0.3"


@dataclass
class Config:
    bot_token: str
    hf_api_token: str
    hf_api_url: str
    mindee_api_key: Optional[str]
    tesseract_lang: str
    http_timeout: float
    drain_timeout: float
    log_level: str


def load_config() -> Config:
    load_dotenv()
    token = os.getenv("BOT_TOKEN") or os.getenv("TOKEN_BOT")
    if not token:
        raise RuntimeError("BOT_TOKEN (or TOKEN_BOT) environment variable is required")

    hf_token = os.getenv("HF_API_TOKEN")
    if not hf_token:
        raise RuntimeError("HF_API_TOKEN environment variable is required")

    return Config(
        bot_token=token,
        hf_api_token=hf_token,
        hf_api_url=os.getenv("HF_API_URL") or DEFAULT_HF_API_URL,
        mindee_api_key=os.getenv("MINDEE_API_KEY") or None,
        tesseract_lang=os.getenv("TESSERACT_LANG", "eng"),
        http_timeout=_float_env("HTTP_TIMEOUT", 30.0),
        drain_timeout=_float_env("DRAIN_TIMEOUT", 10.0),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc
