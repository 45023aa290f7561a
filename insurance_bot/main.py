import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.types import BotCommand

from insurance_bot.collaborators import Extractor
from insurance_bot.config import Config, load_config
from insurance_bot.handlers import router
from insurance_bot.runner import ConversationRunner
from insurance_bot.services.chat import HuggingFaceResponder
from insurance_bot.services.mindee import MindeeExtractor
from insurance_bot.services.ocr_engine import TesseractExtractor
from insurance_bot.services.policy import PolicyGenerator
from insurance_bot.store import ConversationStore
from insurance_bot.transport import TelegramTransport

logger = logging.getLogger(__name__)


def build_extractor(config: Config) -> Extractor:
    if config.mindee_api_key:
        logger.info("Using Mindee for passport extraction")
        return MindeeExtractor(
            config.mindee_api_key,
            timeout=config.http_timeout,
            vehicle_lang=config.tesseract_lang,
        )
    logger.info("MINDEE_API_KEY not set, using local Tesseract OCR")
    return TesseractExtractor(lang=config.tesseract_lang)


def build_runner(config: Config, bot: Bot) -> ConversationRunner:
    return ConversationRunner(
        transport=TelegramTransport(bot),
        store=ConversationStore(),
        extractor=build_extractor(config),
        generator=PolicyGenerator(),
        responder=HuggingFaceResponder(
            config.hf_api_url,
            config.hf_api_token,
            timeout=config.http_timeout,
        ),
        drain_timeout=config.drain_timeout,
    )


async def set_commands(bot: Bot) -> None:
    await bot.set_my_commands([
        BotCommand(command="start", description="Start a car insurance request")
    ])


async def main() -> None:
    config = load_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    bot = Bot(token=config.bot_token)
    dp = Dispatcher()
    dp.include_router(router)

    runner = build_runner(config, bot)
    await runner.start()
    try:
        await set_commands(bot)
        logging.info("🤖 Bot started.")
        await dp.start_polling(bot, close_bot_session=False, runner=runner)
    finally:
        await runner.stop()
        await bot.session.close()
        logging.info("Bot stopped.")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
