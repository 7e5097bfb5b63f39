"""
In-memory index of the media uploaded since the process started.

The Cloudinary backend lists and deletes through this index rather than the
remote service. It lives only in process memory: after a restart it is empty
while the remote objects remain, and those objects can no longer be listed or
deleted through the API.
"""

import logging
import threading
from typing import List, Optional

from media_api.errors import MediaNotFound
from media_api.schemas import FileRecord

logger = logging.getLogger(__name__)


class UploadIndex:
    """Ordered, append-only sequence of FileRecords; removal is by storage id."""

    def __init__(self):
        self._records: List[FileRecord] = []
        self._lock = threading.Lock()

    def append(self, record: FileRecord) -> None:
        with self._lock:
            if any(existing.storage_id == record.storage_id for existing in self._records):
                raise ValueError(f"storage id already indexed: {record.storage_id}")
            self._records.append(record)
        logger.debug("Indexed %s", record.storage_id)

    def get(self, storage_id: str) -> Optional[FileRecord]:
        with self._lock:
            return next((r for r in self._records if r.storage_id == storage_id), None)

    def remove(self, storage_id: str) -> FileRecord:
        with self._lock:
            for position, record in enumerate(self._records):
                if record.storage_id == storage_id:
                    del self._records[position]
                    return record
        raise MediaNotFound("File not found", details=f"unknown storage id: {storage_id}")

    def list(self) -> List[FileRecord]:
        with self._lock:
            return list(self._records)
