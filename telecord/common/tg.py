import mimetypes

from aiogram.types import Message

from .utils import one_liner

# Preferred extensions where `mimetypes` is ambiguous or platform dependent
_MIME_EXTENSIONS = {
    "audio/ogg": "ogg",
    "audio/mpeg": "mp3",
    "audio/mp4": "m4a",
    "audio/x-wav": "wav",
    "video/mp4": "mp4",
    "video/quicktime": "mov",
    "video/webm": "webm",
    "image/jpeg": "jpg",
    "image/webp": "webp",
}


def message_info(message: Message) -> str:
    prefix = f"{message.message_id} | "
    if message.text:
        return prefix + one_liner(message.text, cut_len=50)
    return prefix + f"type: {message.content_type}"


def sender_name(message: Message) -> str:
    """Name shown on Discord for the author of a Telegram message."""
    # Anonymous admins and channel posts are sent on behalf of a chat
    if chat := message.sender_chat:
        return chat.title or chat.username or str(chat.id)

    if user := message.from_user:
        if user.username:
            return user.username
        return user.full_name

    return message.chat.title or str(message.chat.id)


def is_chatinfo_command(text: str | None, bot_username: str | None) -> bool:
    if not text or not bot_username:
        return False
    return text.strip().lower() == f"@{bot_username} chatinfo".lower()


def extension_from_mime(mime_type: str | None, default: str = "bin") -> str:
    """File extension without the dot for a MIME type."""
    if not mime_type:
        return default

    mime_lower = mime_type.lower().split(";")[0].strip()
    if ext := _MIME_EXTENSIONS.get(mime_lower):
        return ext

    if guessed := mimetypes.guess_extension(mime_lower):
        return guessed.lstrip(".")

    return default
