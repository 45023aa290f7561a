from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Hashable, Optional, Sequence

from aiogram import Bot
from aiogram.exceptions import (
    TelegramAPIError,
    TelegramNetworkError,
    TelegramRetryAfter,
    TelegramServerError,
)
from aiogram.types import BufferedInputFile
from aiogram.utils.keyboard import InlineKeyboardBuilder

from insurance_bot.collaborators import TransportError
from insurance_bot.models import Choice

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (TelegramNetworkError, TelegramRetryAfter, TelegramServerError)


@asynccontextmanager
async def _telegram_call(what: str) -> AsyncIterator[None]:
    try:
        yield
    except TRANSIENT_ERRORS as exc:
        raise TransportError(f"{what}: {exc}", transient=True) from exc
    except TelegramAPIError as exc:
        raise TransportError(f"{what}: {exc}", transient=False) from exc


class TelegramTransport:
    """Transport backed by an aiogram ``Bot``."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def send_text(
        self,
        chat_id: Hashable,
        text: str,
        choices: Optional[Sequence[Choice]] = None,
    ) -> None:
        reply_markup = None
        if choices:
            builder = InlineKeyboardBuilder()
            for label, token in choices:
                builder.button(text=label, callback_data=token)
            builder.adjust(len(choices))
            reply_markup = builder.as_markup()

        async with _telegram_call("send_message"):
            await self._bot.send_message(chat_id, text, reply_markup=reply_markup)

    async def send_document(
        self,
        chat_id: Hashable,
        content: bytes,
        filename: str,
        caption: str = "",
    ) -> None:
        async with _telegram_call("send_document"):
            await self._bot.send_document(
                chat_id,
                BufferedInputFile(content, filename=filename),
                caption=caption or None,
            )

    async def acknowledge(self, query_id: str) -> None:
        async with _telegram_call("answer_callback_query"):
            await self._bot.answer_callback_query(query_id)

    async def download_attachment(self, file_id: str) -> bytes:
        async with _telegram_call("download"):
            buffer = await self._bot.download(file_id)
        if buffer is None:
            raise TransportError(f"download: empty file {file_id}", transient=False)
        logger.debug("Downloaded attachment %s", file_id)
        return buffer.read()


__all__ = ["TelegramTransport", "TRANSIENT_ERRORS"]
