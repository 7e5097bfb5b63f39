"""Gallery view over the stored media: grid and table presentations, preview and delete."""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from media_api.client import MediaClient
from media_api.schemas import FileRecord, ResourceKind

logger = logging.getLogger(__name__)

SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]
PREVIEW_WIDTH = 1200


def format_file_size(size: int) -> str:
    """Human readable size, e.g. `0 Bytes`, `2 KB`, `1.5 MB`."""
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    exponent = 0
    while value >= 1024 and exponent < len(SIZE_UNITS) - 1:
        value /= 1024
        exponent += 1
    return f"{round(value, 2):g} {SIZE_UNITS[exponent]}"


@dataclass(frozen=True)
class Preview:
    """What a lightbox needs to show one item."""
    record: FileRecord
    display_url: str

    @property
    def is_video(self) -> bool:
        return self.record.resource_kind is ResourceKind.VIDEO


class Gallery:
    """
    Client-side view of `GET /files`.

    The gallery never edits its list locally: after a delete it fetches the whole
    list again, so it converges on the server's view instead of guessing it.
    """

    def __init__(self, client: MediaClient):
        self.client = client
        self.files: List[FileRecord] = []
        self.total_files = 0
        self.total_size = 0

    async def refresh(self) -> List[FileRecord]:
        listing = await self.client.list_files()
        self.files = listing.files
        self.total_files = listing.total_files
        self.total_size = listing.total_size
        return self.files

    def find(self, storage_id: str) -> Optional[FileRecord]:
        return next((record for record in self.files if record.storage_id == storage_id), None)

    async def delete(self, storage_id: str, confirm: Callable[[FileRecord], bool]) -> bool:
        """
        Delete an item after `confirm(record)` approves it.

        Returns False when the item is unknown or the user declined; nothing is
        sent to the server in that case.
        """
        record = self.find(storage_id)
        if record is None or not confirm(record):
            return False
        await self.client.delete_file(storage_id)
        logger.info("Deleted %s, refreshing gallery", storage_id)
        await self.refresh()
        return True

    async def preview(self, storage_id: str, width: int = PREVIEW_WIDTH, height: Optional[int] = None) -> Preview:
        record = self.find(storage_id)
        if record is None:
            raise KeyError(storage_id)
        if record.resource_kind is ResourceKind.VIDEO:
            return Preview(record=record, display_url=record.url)
        optimized = await self.client.optimize(storage_id, width=width, height=height)
        return Preview(record=record, display_url=optimized.optimized_url)

    def summary(self) -> str:
        return f"{self.total_files} files, {format_file_size(self.total_size)}"

    def render_table(self) -> str:
        headers = ("Name", "Kind", "Size", "Uploaded", "Id")
        rows = [
            (
                record.original_name,
                record.resource_kind.value,
                format_file_size(record.size),
                record.uploaded_at.strftime("%Y-%m-%d %H:%M"),
                record.storage_id,
            )
            for record in self.files
        ]
        widths = [max(len(str(cell)) for cell in column) for column in zip(headers, *rows)]
        lines = ["  ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip() for row in [headers, *rows]]
        lines.insert(1, "  ".join("-" * width for width in widths))
        lines.append(self.summary())
        return "\n".join(lines)

    def render_grid(self, columns: int = 3, cell_width: int = 24) -> str:
        if columns < 1:
            raise ValueError("columns must be at least 1")
        cells = [
            [
                _fit(("[video] " if record.resource_kind is ResourceKind.VIDEO else "") + record.original_name, cell_width),
                _fit(format_file_size(record.size), cell_width),
            ]
            for record in self.files
        ]
        lines = []
        for start in range(0, len(cells), columns):
            row = cells[start:start + columns]
            for line in range(2):
                lines.append(" | ".join(cell[line] for cell in row).rstrip())
            lines.append("")
        lines.append(self.summary())
        return "\n".join(lines)


def _fit(text: str, width: int) -> str:
    if len(text) > width:
        text = text[: width - 1] + "…"
    return text.ljust(width)
