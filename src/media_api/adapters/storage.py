"""
Media store adapters.

One `MediaStore` contract, two implementations selected by configuration:
`LocalMediaStore` keeps files in a directory on disk and `CloudinaryMediaStore`
forwards them to Cloudinary, remembering what it uploaded in an `UploadIndex`.
"""

import logging
import mimetypes
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Tuple
from urllib.parse import urlencode

import cloudinary.uploader
import cloudinary.utils
import pydantic

from media_api.config.settings import Settings
from media_api.errors import MediaNotFound, MediaStoreError, PayloadTooLarge, UploadValidationError
from media_api.index import UploadIndex
from media_api.schemas import DEFAULT_FORMAT, DEFAULT_QUALITY, FileRecord, ResourceKind
from media_api.utils.decorators import log_execution_time
from media_api.utils.naming import (
    build_storage_name,
    decode_original_name,
    original_name_from_storage_name,
    resource_kind_for,
    unique_token,
)

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
RECORDS_DIRNAME = ".records"


class MediaStore:
    """Base class for media stores (to be extended by specific implementations)"""

    backend = ""

    def __init__(self, temp_dir: Path, max_upload_bytes: int):
        self.temp_dir = Path(temp_dir)
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        self.max_upload_bytes = max_upload_bytes

    @property
    def is_configured(self) -> bool:
        return True

    @log_execution_time
    def store(self, stream: BinaryIO, original_name: Optional[str], mime_type: Optional[str]) -> FileRecord:
        """
        Persist an uploaded stream and describe it.

        The content type is checked before anything touches the disk. The stream is
        spooled into a uniquely named temporary file which is handed to `_persist`;
        whatever happens, that temporary file no longer exists when this returns.
        """
        resource_kind = resource_kind_for(mime_type)
        name = decode_original_name(original_name or "")
        if not name:
            raise UploadValidationError("No file uploaded", details="the uploaded file has no name")

        temp_path = self.temp_dir / build_storage_name(name, mime_type)
        try:
            size = self._spool(stream, temp_path)
            record = self._persist(temp_path, name, mime_type, size, resource_kind)
        finally:
            temp_path.unlink(missing_ok=True)

        logger.info("Stored %s as %s (%d bytes)", name, record.storage_id, record.size)
        return record

    def _spool(self, stream: BinaryIO, temp_path: Path) -> int:
        size = 0
        try:
            with open(temp_path, "wb") as spooled:
                while True:
                    chunk = stream.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.max_upload_bytes:
                        raise PayloadTooLarge(
                            f"File too large. Maximum size is {self.max_upload_bytes // (1024 * 1024)}MB.",
                            details=f"limit is {self.max_upload_bytes} bytes",
                        )
                    spooled.write(chunk)
        except OSError as e:
            raise MediaStoreError("Failed to receive upload", details=str(e)) from e
        return size

    def _persist(
        self,
        temp_path: Path,
        original_name: str,
        mime_type: str,
        size: int,
        resource_kind: ResourceKind,
    ) -> FileRecord:
        raise NotImplementedError

    def delete(self, storage_id: str) -> None:
        raise NotImplementedError

    def list(self) -> List[FileRecord]:
        raise NotImplementedError

    def build_display_url(
        self,
        storage_id: str,
        width: Optional[int] = None,
        height: Optional[int] = None,
        quality: str = DEFAULT_QUALITY,
        format: str = DEFAULT_FORMAT,
    ) -> Tuple[str, Dict[str, Any]]:
        raise NotImplementedError


def _transformation(width, height, quality, format) -> Dict[str, Any]:
    transformation: Dict[str, Any] = {"quality": quality, "fetch_format": format}
    if width:
        transformation["width"] = width
    if height:
        transformation["height"] = height
    return transformation


class LocalMediaStore(MediaStore):
    """
    Keeps media as plain files; listings are read straight from the directory.

    Each upload also leaves its FileRecord as JSON under `.records/`, so a listing
    returns exactly what `/upload` answered. Files placed in the directory by other
    means have no saved record and are described from the file itself.
    """

    backend = "local"

    def __init__(self, upload_dir: Path, public_url_prefix: str, temp_dir: Path, max_upload_bytes: int):
        super().__init__(temp_dir, max_upload_bytes)
        self.upload_dir = Path(upload_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self.records_dir = self.upload_dir / RECORDS_DIRNAME
        self.public_url_prefix = "/" + public_url_prefix.strip("/")
        logger.info("LocalMediaStore initialized at: %s", self.upload_dir)

    def _url_for(self, storage_id: str) -> str:
        return f"{self.public_url_prefix}/{storage_id}"

    def _path_for(self, storage_id: str) -> Path:
        if not storage_id or Path(storage_id).name != storage_id or storage_id.startswith("."):
            raise MediaNotFound("File not found", details=f"unknown storage id: {storage_id}")
        return self.upload_dir / storage_id

    def _record_path(self, storage_id: str) -> Path:
        return self.records_dir / f"{storage_id}.json"

    def _persist(self, temp_path, original_name, mime_type, size, resource_kind) -> FileRecord:
        destination = self.upload_dir / temp_path.name
        record = FileRecord(
            original_name=original_name,
            storage_id=destination.name,
            size=size,
            mime_type=mime_type,
            url=self._url_for(destination.name),
            uploaded_at=datetime.now(timezone.utc),
            resource_kind=resource_kind,
        )
        # record before file: a listed upload always has its record
        record_path = self._record_path(record.storage_id)
        try:
            self.records_dir.mkdir(exist_ok=True)
            record_path.write_text(record.model_dump_json(), encoding="utf-8")
            shutil.move(str(temp_path), str(destination))
        except OSError as e:
            record_path.unlink(missing_ok=True)
            raise MediaStoreError("Failed to store file", details=str(e)) from e
        return record

    @log_execution_time
    def delete(self, storage_id: str) -> None:
        path = self._path_for(storage_id)
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise MediaNotFound("File not found", details=f"unknown storage id: {storage_id}") from e
        except OSError as e:
            raise MediaStoreError("Failed to delete file", details=str(e)) from e
        self._record_path(storage_id).unlink(missing_ok=True)
        logger.info("Deleted %s", path)

    def list(self) -> List[FileRecord]:
        records = []
        try:
            for path in sorted(self.upload_dir.iterdir()):
                record = self._record_for(path)
                if record is not None:
                    records.append(record)
        except OSError as e:
            raise MediaStoreError("Failed to read files", details=str(e)) from e
        return records

    def _record_for(self, path: Path) -> Optional[FileRecord]:
        if not path.is_file() or path.name.startswith("."):
            return None
        saved = self._load_record(path.name)
        if saved is not None:
            return saved

        mime_type, _ = mimetypes.guess_type(path.name)
        try:
            resource_kind = resource_kind_for(mime_type)
        except UploadValidationError:
            logger.debug("Skipping %s with unsupported type %s", path.name, mime_type)
            return None

        stat = path.stat()
        return FileRecord(
            original_name=original_name_from_storage_name(path.name),
            storage_id=path.name,
            size=stat.st_size,
            mime_type=mime_type,
            url=self._url_for(path.name),
            uploaded_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            resource_kind=resource_kind,
        )

    def _load_record(self, storage_id: str) -> Optional[FileRecord]:
        try:
            return FileRecord.model_validate_json(self._record_path(storage_id).read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, pydantic.ValidationError) as e:
            logger.warning("Ignoring unreadable record for %s: %s", storage_id, e)
            return None

    def build_display_url(self, storage_id, width=None, height=None, quality=DEFAULT_QUALITY, format=DEFAULT_FORMAT):
        """Files on disk are not transformed; the requested transformation rides along as a query string."""
        transformation = _transformation(width, height, quality, format)
        return f"{self._url_for(storage_id)}?{urlencode(transformation)}", transformation


class CloudinaryMediaStore(MediaStore):
    """Forwards media to Cloudinary and lists what this process has uploaded."""

    backend = "cloudinary"

    def __init__(
        self,
        cloud_name: Optional[str],
        api_key: Optional[str],
        api_secret: Optional[str],
        folder: str,
        temp_dir: Path,
        max_upload_bytes: int,
        timeout: Optional[float] = None,
        index: Optional[UploadIndex] = None,
    ):
        super().__init__(temp_dir, max_upload_bytes)
        self.cloud_name = cloud_name
        self.folder = folder
        self.timeout = timeout
        self.index = index if index is not None else UploadIndex()
        self._api_key = api_key
        self._api_secret = api_secret
        if not self.is_configured:
            logger.warning("Cloudinary credentials are incomplete; uploads will fail until they are set")
        logger.info("CloudinaryMediaStore initialized for cloud: %s", cloud_name)

    @property
    def is_configured(self) -> bool:
        return all([self.cloud_name, self._api_key, self._api_secret])

    @property
    def _credentials(self) -> Dict[str, Any]:
        return {"cloud_name": self.cloud_name, "api_key": self._api_key, "api_secret": self._api_secret}

    def _scrub(self, message: str) -> str:
        """Keep credentials out of anything returned to clients or logged."""
        for secret in (self._api_secret, self._api_key):
            if secret:
                message = message.replace(secret, "*****")
        return message

    def _persist(self, temp_path, original_name, mime_type, size, resource_kind) -> FileRecord:
        options = {
            "resource_type": "auto",
            "folder": self.folder,
            "public_id": unique_token(),
            "use_filename": True,
            "unique_filename": False,
            **self._credentials,
        }
        if self.timeout:
            options["timeout"] = self.timeout

        try:
            result = cloudinary.uploader.upload(str(temp_path), **options)
        except Exception as e:
            raise MediaStoreError("Failed to upload file to Cloudinary", details=self._scrub(str(e))) from e

        remote_kind = result.get("resource_type")
        record = FileRecord(
            original_name=original_name,
            storage_id=result["public_id"],
            size=size,
            mime_type=mime_type,
            url=result.get("secure_url") or result["url"],
            uploaded_at=datetime.now(timezone.utc),
            format=result.get("format"),
            width=result.get("width"),
            height=result.get("height"),
            resource_kind=ResourceKind(remote_kind) if remote_kind in ("image", "video") else resource_kind,
        )
        self.index.append(record)
        logger.info("File uploaded to Cloudinary successfully: %s", record.url)
        return record

    @log_execution_time
    def delete(self, storage_id: str) -> None:
        record = self.index.get(storage_id)
        if record is None:
            raise MediaNotFound("File not found", details=f"unknown storage id: {storage_id}")

        options = {"resource_type": record.resource_kind.value, "invalidate": True, **self._credentials}
        if self.timeout:
            options["timeout"] = self.timeout
        try:
            result = cloudinary.uploader.destroy(storage_id, **options)
        except Exception as e:
            raise MediaStoreError("Failed to delete file from Cloudinary", details=self._scrub(str(e))) from e

        if result.get("result") != "ok":
            logger.warning("Cloudinary reported %r deleting %s", result.get("result"), storage_id)
        self.index.remove(storage_id)
        logger.info("File deleted from Cloudinary: %s", storage_id)

    def list(self) -> List[FileRecord]:
        return self.index.list()

    def build_display_url(self, storage_id, width=None, height=None, quality=DEFAULT_QUALITY, format=DEFAULT_FORMAT):
        transformation = _transformation(width, height, quality, format)
        try:
            url, _ = cloudinary.utils.cloudinary_url(
                storage_id, cloud_name=self.cloud_name, secure=True, **transformation
            )
        except Exception as e:
            raise MediaStoreError("Failed to generate optimized URL", details=self._scrub(str(e))) from e
        return url, transformation


def build_media_store(settings: Settings) -> MediaStore:
    """Initialize the media store selected by `settings.storage_backend`."""
    if settings.storage_backend == "cloudinary":
        return CloudinaryMediaStore(
            cloud_name=settings.cloud_name,
            api_key=settings.cloud_api_key,
            api_secret=settings.cloud_api_secret,
            folder=settings.cloudinary_folder,
            temp_dir=Path(settings.temp_dir),
            max_upload_bytes=settings.max_upload_bytes,
            timeout=settings.cloudinary_timeout,
        )
    if settings.storage_backend == "local":
        return LocalMediaStore(
            upload_dir=Path(settings.upload_dir),
            public_url_prefix=settings.public_url_prefix,
            temp_dir=Path(settings.temp_dir),
            max_upload_bytes=settings.max_upload_bytes,
        )
    raise ValueError(f"Invalid storage_backend: {settings.storage_backend}")
