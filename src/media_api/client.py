"""
Async HTTP client for the Wedding Media API.

Uploads are exposed as async iterators of `UploadProgress` events rather than
callbacks: each upload yields non-decreasing progress percentages and ends with
exactly one terminal event (success or error). Closing the iterator, or
cancelling the task consuming it, cancels the in-flight request.

Example:
    async with MediaClient("http://localhost:3001") as client:
        async for event in client.upload("first_dance.jpg"):
            print(event.name, event.progress, event.status.value)
"""

import asyncio
import logging
import mimetypes
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import AsyncIterator, BinaryIO, Callable, Dict, Iterable, List, Optional, Union

import httpx

from media_api.schemas import FileRecord, GetFilesResponse, OptimizeResponse

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:3001"
DEFAULT_TIMEOUT = 300.0
DEFAULT_MAX_CONCURRENT_UPLOADS = 4


class MediaClientError(Exception):
    """The API answered with an error, or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class UploadStatus(str, Enum):
    UPLOADING = "uploading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class UploadProgress:
    """Snapshot of one file's upload."""
    name: str
    size: int
    mime_type: str
    progress: int
    status: UploadStatus
    file_url: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not UploadStatus.UPLOADING


class UploadTracker:
    """
    Per-file upload state: `uploading -> success` or `uploading -> error`.

    Progress is an int in 0..100 that never goes down. Both outcomes are terminal;
    any further transition raises `RuntimeError`.
    """

    def __init__(self, name: str, size: int, mime_type: str):
        self.name = name
        self.size = size
        self.mime_type = mime_type
        self.progress = 0
        self.status = UploadStatus.UPLOADING
        self.file_url: Optional[str] = None
        self.error: Optional[str] = None

    def _ensure_uploading(self) -> None:
        if self.status is not UploadStatus.UPLOADING:
            raise RuntimeError(f"upload of {self.name} already finished with {self.status.value}")

    def advance(self, percent: int) -> bool:
        """Record transport progress; returns True when the visible progress changed."""
        self._ensure_uploading()
        percent = max(0, min(100, int(percent)))
        if percent <= self.progress:
            return False
        self.progress = percent
        return True

    def succeed(self, file_url: str) -> None:
        self._ensure_uploading()
        self.progress = 100
        self.file_url = file_url
        self.status = UploadStatus.SUCCESS

    def fail(self, error: str) -> None:
        self._ensure_uploading()
        self.error = error
        self.status = UploadStatus.ERROR

    def snapshot(self) -> UploadProgress:
        return UploadProgress(
            name=self.name,
            size=self.size,
            mime_type=self.mime_type,
            progress=self.progress,
            status=self.status,
            file_url=self.file_url,
            error=self.error,
        )


class UploadQueue:
    """The list of uploads a user is looking at; dismissing one never touches the server."""

    def __init__(self):
        self._items: Dict[str, UploadProgress] = {}

    def apply(self, event: UploadProgress) -> None:
        self._items[event.name] = event

    def dismiss(self, name: str) -> None:
        self._items.pop(name, None)

    @property
    def items(self) -> List[UploadProgress]:
        return list(self._items.values())


class _ProgressReader:
    """File wrapper reporting the share of bytes handed to the transport."""

    def __init__(self, fileobj: BinaryIO, total: int, report: Callable[[int], None]):
        self._file = fileobj
        self._total = total
        self._sent = 0
        self._report = report

    def read(self, size: int = -1) -> bytes:
        chunk = self._file.read(size)
        self._sent += len(chunk)
        if self._total:
            self._report(self._sent * 100 // self._total)
        return chunk


def _error_from_response(response: httpx.Response) -> MediaClientError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get("error") or f"HTTP {response.status_code}"
    return MediaClientError(message, status_code=response.status_code, details=body.get("details"))


class MediaClient:
    """API client for the Wedding Media API."""

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_concurrent_uploads: int = DEFAULT_MAX_CONCURRENT_UPLOADS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Create a new client.

        Args:
            api_url: Base URL of the API server
            timeout: Request timeout in seconds, applied to every request including uploads
            max_concurrent_uploads: How many uploads `upload_many` keeps in flight
            transport: Optional httpx transport, e.g. `httpx.ASGITransport(app=app)` in tests
        """
        if max_concurrent_uploads < 1:
            raise ValueError("max_concurrent_uploads must be at least 1")
        self.max_concurrent_uploads = max_concurrent_uploads
        self._client = httpx.AsyncClient(base_url=api_url.rstrip("/"), timeout=timeout, transport=transport)

    async def __aenter__(self) -> "MediaClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise MediaClientError(f"Request failed: {e}") from e
        if response.is_error:
            raise _error_from_response(response)
        return response

    async def health(self) -> dict:
        response = await self._request("GET", "/health")
        return response.json()

    async def list_files(self) -> GetFilesResponse:
        response = await self._request("GET", "/files")
        return GetFilesResponse.model_validate(response.json())

    async def delete_file(self, storage_id: str) -> str:
        response = await self._request("DELETE", f"/files/{storage_id}")
        return response.json()["message"]

    async def optimize(
        self,
        storage_id: str,
        width: Optional[int] = None,
        height: Optional[int] = None,
        quality: str = "auto",
        format: str = "auto",
    ) -> OptimizeResponse:
        params = {"quality": quality, "format": format}
        if width:
            params["width"] = width
        if height:
            params["height"] = height
        response = await self._request("GET", f"/optimize/{storage_id}", params=params)
        return OptimizeResponse.model_validate(response.json())

    async def upload(self, path: Union[str, Path]) -> AsyncIterator[UploadProgress]:
        """Upload one file, yielding progress events and then a single terminal event."""
        path = Path(path)
        mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        try:
            size = path.stat().st_size
        except OSError as e:
            tracker = UploadTracker(path.name, 0, mime_type)
            tracker.fail(f"Cannot read file: {e}")
            yield tracker.snapshot()
            return

        tracker = UploadTracker(path.name, size, mime_type)
        yield tracker.snapshot()

        events: asyncio.Queue = asyncio.Queue()
        response = None
        failure = None
        with open(path, "rb") as fileobj:
            reader = _ProgressReader(fileobj, size, events.put_nowait)
            request = asyncio.ensure_future(
                self._client.post("/upload", files={"file": (path.name, reader, mime_type)})
            )
            request.add_done_callback(lambda _: events.put_nowait(None))
            try:
                while True:
                    percent = await events.get()
                    if percent is None:
                        break
                    if tracker.advance(percent):
                        yield tracker.snapshot()
                response = request.result()
            except (httpx.HTTPError, OSError) as e:
                failure = str(e) or e.__class__.__name__
            finally:
                if not request.done():
                    request.cancel()

        if response is not None and response.is_success:
            record = FileRecord.model_validate(response.json()["file"])
            tracker.succeed(record.url)
            logger.info("Uploaded %s as %s", path.name, record.storage_id)
        else:
            if response is not None:
                failure = str(_error_from_response(response))
            tracker.fail(failure or "Upload failed")
            logger.warning("Upload of %s failed: %s", path.name, tracker.error)
        yield tracker.snapshot()

    async def upload_many(self, paths: Iterable[Union[str, Path]]) -> AsyncIterator[UploadProgress]:
        """
        Upload files independently, at most `max_concurrent_uploads` at a time.

        Events of all uploads are merged in arrival order.
        """
        semaphore = asyncio.Semaphore(self.max_concurrent_uploads)
        events: asyncio.Queue = asyncio.Queue()

        async def run(path):
            async with semaphore:
                async for event in self.upload(path):
                    await events.put(event)

        tasks = [asyncio.create_task(run(path)) for path in paths]
        for task in tasks:
            task.add_done_callback(lambda _: events.put_nowait(None))

        remaining = len(tasks)
        try:
            while remaining:
                event = await events.get()
                if event is None:
                    remaining -= 1
                    continue
                yield event
            await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
