"""
Tests for the aiogram backed transport.
"""

import io
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiogram.exceptions import TelegramBadRequest, TelegramNetworkError
from aiogram.types import BufferedInputFile, InlineKeyboardMarkup

from insurance_bot.collaborators import TransportError
from insurance_bot.dispatcher import CONFIRM_CHOICES
from insurance_bot.transport import TelegramTransport


@pytest.fixture
def bot():
    return AsyncMock()


class TestTelegramTransport:

    @pytest.mark.asyncio
    async def test_plain_text(self, bot):
        await TelegramTransport(bot).send_text(42, "hello")

        bot.send_message.assert_awaited_once_with(42, "hello", reply_markup=None)

    @pytest.mark.asyncio
    async def test_choices_become_inline_keyboard(self, bot):
        await TelegramTransport(bot).send_text(42, "Is this correct?", CONFIRM_CHOICES)

        markup = bot.send_message.await_args.kwargs["reply_markup"]
        assert isinstance(markup, InlineKeyboardMarkup)
        buttons = [(b.text, b.callback_data) for row in markup.inline_keyboard for b in row]
        assert buttons == [("Yes", "confirm_yes"), ("No", "confirm_no")]
        assert len(markup.inline_keyboard) == 1

    @pytest.mark.asyncio
    async def test_send_document(self, bot):
        await TelegramTransport(bot).send_document(42, b"%PDF", "CarInsurancePolicy.pdf", "Here it is")

        chat_id, document = bot.send_document.await_args.args
        assert chat_id == 42
        assert isinstance(document, BufferedInputFile)
        assert document.filename == "CarInsurancePolicy.pdf"
        assert bot.send_document.await_args.kwargs["caption"] == "Here it is"

    @pytest.mark.asyncio
    async def test_download(self, bot):
        bot.download.return_value = io.BytesIO(b"jpeg")

        assert await TelegramTransport(bot).download_attachment("file-1") == b"jpeg"
        bot.download.assert_awaited_once_with("file-1")

    @pytest.mark.asyncio
    async def test_acknowledge(self, bot):
        await TelegramTransport(bot).acknowledge("q-1")

        bot.answer_callback_query.assert_awaited_once_with("q-1")

    @pytest.mark.asyncio
    async def test_network_error_is_transient(self, bot):
        bot.send_message.side_effect = TelegramNetworkError(method=MagicMock(), message="timeout")

        with pytest.raises(TransportError) as exc_info:
            await TelegramTransport(bot).send_text(42, "hello")

        assert exc_info.value.transient is True

    @pytest.mark.asyncio
    async def test_bad_request_is_terminal(self, bot):
        bot.send_message.side_effect = TelegramBadRequest(method=MagicMock(), message="chat not found")

        with pytest.raises(TransportError) as exc_info:
            await TelegramTransport(bot).send_text(42, "hello")

        assert exc_info.value.transient is False
