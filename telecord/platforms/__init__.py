"""Platform clients used by the relay."""

from telecord.platforms.destination import DestinationPlatform, DiscordDestination
from telecord.platforms.source import SourcePlatform, TelegramSource

__all__ = [
    "DestinationPlatform",
    "DiscordDestination",
    "SourcePlatform",
    "TelegramSource",
]
