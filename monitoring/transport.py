"""
============================================================================
UPTIME MONITOR - TELEGRAM TRANSPORT
============================================================================
NotificationTransport implementation on top of aiogram's Bot.  The
destination identifier is a Telegram chat id.  Delivery errors are
reported as ``False``; the Notifier decides what that means for the
cooldown.
============================================================================
"""

from typing import Optional

from aiogram import Bot
from aiogram.client.default import DefaultBotProperties
from aiogram.exceptions import TelegramAPIError

from config.settings import TelegramSettings
from exceptions import ConfigurationError
from utils.logger import get_logger


logger = get_logger("TelegramTransport")


class TelegramTransport:
    """
    Sends alert text to Telegram chats.

    Parameters
    ----------
    settings : TelegramSettings
        Must carry a bot token.
    bot : aiogram.Bot | None
        Pre-built bot, mainly for tests; built from *settings* otherwise.
    """

    def __init__(self, settings: TelegramSettings, bot: Optional[Bot] = None):
        if bot is None:
            if not settings.is_configured:
                raise ConfigurationError(
                    "Telegram bot token is not configured",
                    config_key="TELEGRAM_BOT_TOKEN",
                )
            bot = Bot(
                token=settings.bot_token.get_secret_value(),
                default=DefaultBotProperties(parse_mode=settings.parse_mode),
            )
        self.bot = bot

    async def send(self, destination: str, text: str) -> bool:
        try:
            await self.bot.send_message(chat_id=destination, text=text)
        except TelegramAPIError as e:
            logger.error(f"[Telegram] Error sending to chat {destination}: {e}")
            return False

        logger.debug(f"[Telegram] Message delivered to chat {destination}")
        return True

    async def close(self) -> None:
        await self.bot.session.close()
        logger.debug("[Telegram] Bot session closed")
