"""Turning Telegram messages into Discord message text."""

from __future__ import annotations

from aiogram.types import Message
from discord.utils import escape_markdown

from telecord.common.tg import sender_name


def display_name(message: Message) -> str:
    return escape_markdown(sender_name(message))


def compose_text(message: Message) -> str:
    """`**sender**: text` for the message text, or its caption."""
    text = message.text if message.text is not None else (message.caption or "")
    return f"**{display_name(message)}**: {text}"


def compose_caption(message: Message, caption: str | None) -> str:
    return f"**{display_name(message)}**:\n{caption or ''}"
