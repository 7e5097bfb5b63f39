import mimetypes

import pytest

from media_api.errors import UnsupportedMediaType
from media_api.schemas import ResourceKind
from media_api.utils.naming import (
    build_storage_name,
    decode_original_name,
    original_name_from_storage_name,
    resource_kind_for,
    sanitize_name,
)


@pytest.mark.parametrize(
    "received, expected",
    [
        ("cafÃ©.jpg", "café.jpg"),
        ("café.jpg", "café.jpg"),
        ("plain.jpg", "plain.jpg"),
        ("Свадьба.png".encode("utf-8").decode("latin-1"), "Свадьба.png"),
        ("婚礼.jpg", "婚礼.jpg"),
        ("../../etc/passwd.jpg", "passwd.jpg"),
        ("C:\\Users\\guest\\dance.mov", "dance.mov"),
    ],
)
def test_decode_original_name(received, expected):
    assert decode_original_name(received) == expected


@pytest.mark.parametrize(
    "name, expected",
    [
        ("first dance.JPG", "first_dance.jpg"),
        ("café.jpg", "café.jpg"),
        ("my <best> day?.png", "my_best_day.png"),
        ("....jpg", "file.jpg"),
        ("no_extension", "no_extension"),
    ],
)
def test_sanitize_name(name, expected):
    assert sanitize_name(name) == expected


def test_storage_names_are_unique_and_reversible():
    names = {build_storage_name("cake.jpg") for _ in range(1000)}

    assert len(names) == 1000
    assert all(original_name_from_storage_name(name) == "cake.jpg" for name in names)


@pytest.mark.parametrize(
    "name, mime_type, kind",
    [
        ("photo", "image/jpeg", "image"),
        ("clip", "video/mp4", "video"),
        ("poster.txt", "image/png", "image"),
        ("vows.mp4", "video/mp4; codecs=avc1", "video"),
    ],
)
def test_storage_name_extension_matches_content_type(name, mime_type, kind):
    guessed, _ = mimetypes.guess_type(build_storage_name(name, mime_type))

    assert guessed is not None
    assert guessed.startswith(f"{kind}/")


def test_storage_name_keeps_matching_extension():
    assert build_storage_name("first dance.JPG", "image/jpeg").endswith("-first_dance.jpg")
    assert build_storage_name("cake.png", "image/jpeg").endswith("-cake.png")


def test_original_name_from_foreign_file_name():
    assert original_name_from_storage_name("holiday.jpg") == "holiday.jpg"


@pytest.mark.parametrize(
    "mime_type, kind",
    [("image/jpeg", ResourceKind.IMAGE), ("IMAGE/PNG", ResourceKind.IMAGE), ("video/mp4", ResourceKind.VIDEO)],
)
def test_resource_kind_for(mime_type, kind):
    assert resource_kind_for(mime_type) is kind


@pytest.mark.parametrize("mime_type", ["text/plain", "application/pdf", "", None, "imagex/jpeg"])
def test_resource_kind_for_rejects(mime_type):
    with pytest.raises(UnsupportedMediaType):
        resource_kind_for(mime_type)
