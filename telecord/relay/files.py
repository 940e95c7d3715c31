"""Relaying Telegram attachments to Discord."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath

import logfire
from aiogram.types import Message

from telecord.errors import RelayError
from telecord.platforms import DestinationPlatform, SourcePlatform
from telecord.relay.convert import compose_caption
from telecord.relay.gate import ReadinessGate


@dataclass(frozen=True)
class RelayJob:
    """One file to move from Telegram to a Discord channel."""

    channel_id: int
    message: Message
    file_id: str
    file_name: str
    caption: str = ""
    # Append the extension of the file as stored on Telegram to `file_name`
    resolve_extension: bool = False


def extension_from_path(file_path: str | None) -> str:
    """`.ext` of the last segment of a Telegram file path, empty if none."""
    if not file_path:
        return ""
    return PurePosixPath(file_path).suffix


class FileRelayPipeline:
    """Downloads a file from Telegram and uploads it to Discord in one message.

    The whole file is buffered in memory before the upload starts.
    """

    def __init__(
        self,
        source: SourcePlatform,
        destination: DestinationPlatform,
        gate: ReadinessGate,
    ) -> None:
        self.source = source
        self.destination = destination
        self.gate = gate

    async def download(self, file_id: str) -> tuple[bytes, str | None]:
        """Full content of a Telegram file and its path on Telegram's servers."""
        file = await self.source.get_file(file_id)
        if not file.file_path:
            raise RelayError(f"Telegram returned no path for file {file_id}")

        chunks = []
        async for chunk in self.source.stream_file(file.file_path):
            chunks.append(chunk)
        return b"".join(chunks), file.file_path

    async def relay(self, job: RelayJob) -> int:
        """Relay the job's file, returns the id of the Discord message."""
        with logfire.span(
            "relay_file",
            channel_id=job.channel_id,
            file_name=job.file_name,
        ):
            await self.gate.wait()

            try:
                data, file_path = await self.download(job.file_id)
            except RelayError:
                raise
            except Exception as exc:
                raise RelayError(f"Could not download file {job.file_id}") from exc

            extension = extension_from_path(file_path) if job.resolve_extension else ""
            filename = f"{job.file_name}{extension}"

            logfire.debug("file_downloaded", filename=filename, size=len(data))

            try:
                return await self.destination.send_file(
                    job.channel_id,
                    data,
                    filename,
                    caption=compose_caption(job.message, job.caption),
                )
            except Exception as exc:
                raise RelayError(f"Discord did not accept {filename}") from exc
