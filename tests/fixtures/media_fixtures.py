"""Helpers shared by the tests: fake media payloads and a stand-in for the Cloudinary SDK."""
from pathlib import Path

JPEG_HEADER = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00"
JPEG_TRAILER = b"\xff\xd9"
VIDEO_SUFFIXES = (".mp4", ".mov", ".webm")


def make_jpeg(size: int = 2048) -> bytes:
    """Bytes shaped like a JPEG, exactly `size` long."""
    padding = size - len(JPEG_HEADER) - len(JPEG_TRAILER)
    assert padding >= 0
    return JPEG_HEADER + b"\x00" * padding + JPEG_TRAILER


def make_video(size: int = 4096) -> bytes:
    return (b"\x00\x00\x00\x18ftypmp42" + b"\x00" * size)[:size]


class FakeCloudinary:
    """Records uploader calls and keeps uploaded objects in memory."""

    def __init__(self):
        self.objects = {}
        self.upload_calls = []
        self.destroy_calls = []
        self.fail_with = None

    def upload(self, file, **options):
        self.upload_calls.append((file, options))
        if self.fail_with is not None:
            raise self.fail_with

        path = Path(file)
        assert path.exists(), "the temporary upload must exist while Cloudinary reads it"
        public_id = f"{options['folder']}/{options['public_id']}"
        resource_type = "video" if path.suffix in VIDEO_SUFFIXES else "image"
        fmt = path.suffix.lstrip(".")
        self.objects[public_id] = path.read_bytes()
        return {
            "public_id": public_id,
            "secure_url": f"https://res.cloudinary.com/{options['cloud_name']}/{resource_type}/upload/v1/{public_id}.{fmt}",
            "url": f"http://res.cloudinary.com/{options['cloud_name']}/{resource_type}/upload/v1/{public_id}.{fmt}",
            "format": fmt,
            "width": 640,
            "height": 480,
            "resource_type": resource_type,
            "bytes": len(self.objects[public_id]),
        }

    def destroy(self, public_id, **options):
        self.destroy_calls.append((public_id, options))
        if self.fail_with is not None:
            raise self.fail_with
        found = self.objects.pop(public_id, None) is not None
        return {"result": "ok" if found else "not found"}
