####################################
# --- Request/response schemas --- #
####################################

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_QUALITY = "auto"
DEFAULT_FORMAT = "auto"


class ResourceKind(str, Enum):
    """Kind of media, as distinguished by content type"""
    IMAGE = "image"
    VIDEO = "video"


class CamelModel(BaseModel):
    """Serializes with camelCase keys while accepting either spelling."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FileRecord(CamelModel):
    """Metadata describing one stored media object."""
    original_name: str = Field(
        description="Display name supplied by the uploader.",
        json_schema_extra={"example": "first_dance.jpg"},
    )
    storage_id: str = Field(
        description="Key addressing the object in the store.",
        json_schema_extra={"example": "wedding-memories/1718000000000-a1b2c3"},
    )
    size: int = Field(ge=0, description="The size of the upload in bytes.")
    mime_type: str = Field(description="Content type asserted by the client.")
    url: str = Field(description="Where the object can be retrieved while it exists.")
    uploaded_at: datetime = Field(description="When the object was stored.")
    format: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    resource_kind: ResourceKind

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "originalName": "first_dance.jpg",
                "storageId": "wedding-memories/1718000000000-a1b2c3",
                "size": 2048,
                "mimeType": "image/jpeg",
                "url": "https://res.cloudinary.com/demo/image/upload/wedding-memories/1718000000000-a1b2c3.jpg",
                "uploadedAt": "2024-06-10T12:00:00Z",
                "format": "jpg",
                "width": 1920,
                "height": 1080,
                "resourceKind": "image",
            }
        }
    )


class GetFilesResponse(CamelModel):
    """Response model for `GET /files`."""
    files: List[FileRecord]
    total_files: int
    total_size: int

    @classmethod
    def from_records(cls, records: List[FileRecord]) -> "GetFilesResponse":
        return cls(
            files=records,
            total_files=len(records),
            total_size=sum(record.size for record in records),
        )


class UploadFileResponse(BaseModel):
    """Response model for `POST /upload`."""
    message: str = Field(description="A message about the operation.")
    file: FileRecord


class DeleteFileResponse(BaseModel):
    """Response model for `DELETE /files/:storage_id`."""
    message: str


class OptimizeQueryParams(BaseModel):
    """Query parameters for `GET /optimize/:storage_id`."""
    width: Optional[int] = Field(None, gt=0, description="Target width in pixels.")
    height: Optional[int] = Field(None, gt=0, description="Target height in pixels.")
    quality: str = Field(DEFAULT_QUALITY, min_length=1, description="Quality setting, e.g. `auto` or `80`.")
    format: str = Field(DEFAULT_FORMAT, min_length=1, description="Delivery format, e.g. `auto` or `webp`.")


class OptimizeResponse(CamelModel):
    """Response model for `GET /optimize/:storage_id`."""
    original_id: str
    optimized_url: str
    transformation: Dict[str, Any]


class HealthResponse(BaseModel):
    """Response model for `GET /health`."""
    status: str
    message: str
    backend: str
    configured: bool
    timestamp: datetime


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
