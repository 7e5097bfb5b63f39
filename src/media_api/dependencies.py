"""Dependencies injected into the route handlers."""
from fastapi import Request

from media_api.adapters.storage import MediaStore


def get_media_store(request: Request) -> MediaStore:
    """The store chosen at startup; tests swap it by passing their own to `create_app`."""
    return request.app.state.media_store
