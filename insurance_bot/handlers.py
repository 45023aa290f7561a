from __future__ import annotations

import logging

from aiogram import F, Router
from aiogram.types import CallbackQuery, Message

from insurance_bot.models import (
    CallbackAction,
    Command,
    Photo,
    TextMessage,
    Unsupported,
)
from insurance_bot.runner import ConversationRunner

logger = logging.getLogger(__name__)

router = Router()


def event_from_callback(callback: CallbackQuery) -> CallbackAction:
    return CallbackAction(token=callback.data or "", query_id=callback.id)


@router.message(F.photo)
async def handle_photo(message: Message, runner: ConversationRunner) -> None:
    # photo sizes come smallest first
    runner.submit(message.chat.id, Photo(file_id=message.photo[-1].file_id))


@router.message(F.document.mime_type.startswith("image/"))
async def handle_image_document(message: Message, runner: ConversationRunner) -> None:
    runner.submit(message.chat.id, Photo(file_id=message.document.file_id))


@router.message(F.text)
async def handle_text(message: Message, runner: ConversationRunner) -> None:
    text = message.text
    event = Command(text) if text.startswith("/") else TextMessage(text)
    runner.submit(message.chat.id, event)


@router.message()
async def handle_unsupported(message: Message, runner: ConversationRunner) -> None:
    content_type = message.content_type
    kind = getattr(content_type, "value", str(content_type))
    logger.debug("Chat %s sent unsupported %s", message.chat.id, kind)
    runner.submit(message.chat.id, Unsupported(kind=kind))


@router.callback_query()
async def handle_callback(callback: CallbackQuery, runner: ConversationRunner) -> None:
    if callback.message is None:
        logger.warning("Callback %s has no originating message, ignoring", callback.id)
        await callback.answer()
        return
    runner.submit(callback.message.chat.id, event_from_callback(callback))
