from pathlib import Path

import httpx
import pytest

from media_api.client import (
    MediaClient,
    MediaClientError,
    UploadProgress,
    UploadQueue,
    UploadStatus,
    UploadTracker,
)
from tests.consts import TEST_JPEG_NAME, TEST_TEXT_CONTENT, TEST_TEXT_NAME, TEST_VIDEO_NAME
from tests.fixtures.media_fixtures import make_jpeg, make_video


@pytest.fixture
async def media_client(app):
    async with MediaClient("http://testserver", transport=httpx.ASGITransport(app=app)) as client:
        yield client


@pytest.fixture
def photo(tmp_path) -> Path:
    path = tmp_path / TEST_JPEG_NAME
    path.write_bytes(make_jpeg(8 * 1024))
    return path


async def collect(events):
    return [event async for event in events]


async def test_upload_reports_progress_then_success(media_client: MediaClient, photo: Path):
    events = await collect(media_client.upload(photo))

    assert events[0].status is UploadStatus.UPLOADING
    assert events[0].progress == 0
    progress = [event.progress for event in events]
    assert progress == sorted(progress)
    assert all(0 <= value <= 100 for value in progress)

    terminal = [event for event in events if event.is_terminal]
    assert terminal == [events[-1]]
    assert events[-1].status is UploadStatus.SUCCESS
    assert events[-1].progress == 100
    assert events[-1].file_url.startswith("/uploads/")
    assert events[-1].size == 8 * 1024
    assert events[-1].mime_type == "image/jpeg"


async def test_uploaded_file_is_listed(media_client: MediaClient, photo: Path):
    await collect(media_client.upload(photo))

    listing = await media_client.list_files()

    assert listing.total_files == 1
    assert listing.files[0].original_name == TEST_JPEG_NAME


async def test_upload_rejected_type_ends_with_server_error(media_client: MediaClient, tmp_path: Path):
    path = tmp_path / TEST_TEXT_NAME
    path.write_bytes(TEST_TEXT_CONTENT)

    events = await collect(media_client.upload(path))

    assert events[-1].status is UploadStatus.ERROR
    assert "Only image and video files are allowed!" in events[-1].error
    assert sum(event.is_terminal for event in events) == 1
    assert (await media_client.list_files()).total_files == 0


async def test_upload_missing_file(media_client: MediaClient, tmp_path: Path):
    events = await collect(media_client.upload(tmp_path / "gone.jpg"))

    assert len(events) == 1
    assert events[0].status is UploadStatus.ERROR
    assert "Cannot read file" in events[0].error


async def test_upload_many_runs_every_file(media_client: MediaClient, tmp_path: Path):
    paths = []
    for i in range(3):
        path = tmp_path / f"table_{i}.jpg"
        path.write_bytes(make_jpeg(1024 * (i + 1)))
        paths.append(path)
    video = tmp_path / TEST_VIDEO_NAME
    video.write_bytes(make_video(2048))
    paths.append(video)

    events = await collect(media_client.upload_many(paths))

    successes = {event.name for event in events if event.status is UploadStatus.SUCCESS}
    assert successes == {path.name for path in paths}
    assert (await media_client.list_files()).total_files == 4


async def test_upload_many_failure_does_not_stop_the_others(media_client: MediaClient, photo: Path, tmp_path: Path):
    text = tmp_path / TEST_TEXT_NAME
    text.write_bytes(TEST_TEXT_CONTENT)

    events = await collect(media_client.upload_many([text, photo]))
    outcomes = {event.name: event.status for event in events if event.is_terminal}

    assert outcomes == {TEST_TEXT_NAME: UploadStatus.ERROR, TEST_JPEG_NAME: UploadStatus.SUCCESS}


async def test_delete_and_optimize(media_client: MediaClient, photo: Path):
    await collect(media_client.upload(photo))
    record = (await media_client.list_files()).files[0]

    optimized = await media_client.optimize(record.storage_id, width=300)
    assert optimized.original_id == record.storage_id
    assert "width=300" in optimized.optimized_url

    assert await media_client.delete_file(record.storage_id) == "File deleted successfully"

    with pytest.raises(MediaClientError) as exc_info:
        await media_client.delete_file(record.storage_id)
    assert exc_info.value.status_code == 404


async def test_unreachable_server():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with MediaClient("http://testserver", transport=httpx.MockTransport(refuse)) as client:
        with pytest.raises(MediaClientError) as exc_info:
            await client.health()

    assert exc_info.value.status_code is None


def test_max_concurrent_uploads_must_be_positive():
    with pytest.raises(ValueError):
        MediaClient(max_concurrent_uploads=0)


def test_tracker_progress_never_goes_down():
    tracker = UploadTracker("cake.jpg", 100, "image/jpeg")

    assert tracker.advance(40) is True
    assert tracker.advance(20) is False
    assert tracker.advance(40) is False
    assert tracker.advance(250) is True
    assert tracker.progress == 100


def test_tracker_terminal_states_are_final():
    tracker = UploadTracker("cake.jpg", 100, "image/jpeg")
    tracker.succeed("/uploads/cake.jpg")

    assert tracker.snapshot().is_terminal
    with pytest.raises(RuntimeError):
        tracker.advance(50)
    with pytest.raises(RuntimeError):
        tracker.fail("late failure")

    failed = UploadTracker("speech.txt", 10, "text/plain")
    failed.fail("Only image and video files are allowed!")
    with pytest.raises(RuntimeError):
        failed.succeed("/uploads/speech.txt")


def test_upload_queue_dismiss():
    queue = UploadQueue()
    queue.apply(UploadProgress("a.jpg", 1, "image/jpeg", 0, UploadStatus.UPLOADING))
    queue.apply(UploadProgress("a.jpg", 1, "image/jpeg", 100, UploadStatus.SUCCESS, file_url="/uploads/a"))
    queue.apply(UploadProgress("b.jpg", 1, "image/jpeg", 10, UploadStatus.UPLOADING))

    queue.dismiss("a.jpg")
    queue.dismiss("never-added.jpg")

    assert [item.name for item in queue.items] == ["b.jpg"]
