from .client import BotClient
from .transport import TelegramTransport

__all__ = ["BotClient", "TelegramTransport"]
