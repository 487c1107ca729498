"""
Media preview tests

Proves:
1. the preview text is the first script line, truncated, with a placeholder
2. a new preview releases the previous image; stale results are dropped
3. failures toast once and keep the current image
4. one audio handle at a time; toggling the same track never recreates it
"""

import asyncio
import os

import pytest

from api.client import ServiceError
from core.notifications import NotificationQueue, ToastKind
from core.preview import AudioHandle, AudioPreview, ImagePreview, PreviewImage, bgm_track_url
from fake_service import preview_png
from utils.media import preview_text


@pytest.mark.parametrize("script, expected", [
    ("Hello world\nSecond line", "Hello wo"),
    ("  短句\n下一句", "短句"),
    ("", "Preview"),
    ("   \n  ", "Preview"),
])
def test_preview_text(script, expected):
    assert preview_text(script, length=8, placeholder="Preview") == expected


def test_preview_image_reads_size_and_cleans_up():
    image = PreviewImage(preview_png(40, 20))
    assert (image.width, image.height) == (40, 20)
    assert os.path.exists(image.path)
    image.release()
    image.release()
    assert not os.path.exists(image.path)


@pytest.mark.parametrize("data", [b"", b"not a png"])
def test_preview_image_rejects_garbage(data):
    with pytest.raises(ValueError):
        PreviewImage(data)


def test_generate_replaces_and_releases(service, valid_draft):
    async def scenario():
        notes = NotificationQueue(ttl=10)
        async with service.client() as client:
            preview = ImagePreview(client, notes, text_length=8, placeholder="Preview")
            first = await preview.generate(valid_draft)
            first_path_alive = os.path.exists(first.path)
            second = await preview.generate(valid_draft)
            result = first, first_path_alive, second, preview.current, notes.toasts
            preview.dispose()
        notes.dispose()
        return result

    first, first_alive, second, current, toasts = asyncio.run(scenario())
    assert first_alive
    assert first.released
    assert not os.path.exists(first.path)
    assert current is second
    assert second.released  # by dispose
    assert toasts == ()
    assert service.last_preview["text"] == "Hello wo"
    assert service.last_preview["resolution"] == "1080x1920"
    assert service.last_preview["style"]["font"] == "Noto Sans TC"


def test_failed_generate_keeps_current_image(service, valid_draft):
    async def scenario():
        notes = NotificationQueue(ttl=10)
        async with service.client() as client:
            preview = ImagePreview(client, notes)
            first = await preview.generate(valid_draft)
            service.failing.add("preview")
            again = await preview.generate(valid_draft)
            result = first, again, preview.current, [(t.kind, t.message) for t in notes.toasts]
            preview.dispose()
        notes.dispose()
        return result

    first, again, current, toasts = asyncio.run(scenario())
    assert again is None
    assert current is first
    assert toasts == [(ToastKind.ERROR, "Preview generation failed: preview is unavailable")]


class SlowPreviewClient:
    def __init__(self):
        self.pending = []

    async def preview_subtitle(self, request):
        gate = asyncio.get_running_loop().create_future()
        self.pending.append(gate)
        return await gate


def test_stale_preview_is_dropped(valid_draft):
    client = SlowPreviewClient()

    async def scenario():
        notes = NotificationQueue(ttl=10)
        preview = ImagePreview(client, notes)
        older = asyncio.ensure_future(preview.generate(valid_draft))
        newer = asyncio.ensure_future(preview.generate(valid_draft))
        await asyncio.sleep(0)
        client.pending[1].set_result(preview_png(10, 10))
        installed = await newer
        client.pending[0].set_result(preview_png(20, 20))
        dropped = await older
        current = preview.current
        preview.dispose()
        notes.dispose()
        return installed, dropped, current

    installed, dropped, current = asyncio.run(scenario())
    assert dropped is None
    assert current is installed
    assert current.width == 10


# =============================================================================
# Audio
# =============================================================================

def recording_factory(created):
    def factory(track_id, url):
        handle = AudioHandle(track_id, url)
        created.append(handle)
        return handle
    return factory


def test_same_track_toggles_without_recreating():
    created = []
    audio = AudioPreview(recording_factory(created), url_for=lambda t: f"/assets/bgm/{t}")

    assert audio.toggle("calm.mp3")
    assert audio.playing_track == "calm.mp3"
    assert not audio.toggle("calm.mp3")
    assert created[0].paused
    assert audio.toggle("calm.mp3")
    assert len(created) == 1


def test_other_track_replaces_handle():
    created = []
    audio = AudioPreview(recording_factory(created), url_for=lambda t: t)

    audio.toggle("calm.mp3")
    audio.toggle("upbeat.mp3")
    assert len(created) == 2
    assert created[0].closed
    assert audio.playing_track == "upbeat.mp3"


def test_end_of_playback_resets_state():
    created = []
    audio = AudioPreview(recording_factory(created), url_for=lambda t: t)
    audio.toggle("calm.mp3")
    created[0].finish()
    assert not audio.is_playing
    assert audio.playing_track is None


def test_dispose_closes_handle():
    created = []
    audio = AudioPreview(recording_factory(created), url_for=lambda t: t)
    audio.toggle("calm.mp3")
    audio.dispose()
    assert created[0].closed
    assert audio.handle is None


def test_bgm_track_url_is_quoted():
    assert bgm_track_url("my song.mp3").endswith("/assets/bgm/my%20song.mp3")


def test_superseded_failure_stays_quiet(valid_draft):
    client = SlowPreviewClient()

    async def scenario():
        notes = NotificationQueue(ttl=10)
        preview = ImagePreview(client, notes)
        older = asyncio.ensure_future(preview.generate(valid_draft))
        newer = asyncio.ensure_future(preview.generate(valid_draft))
        await asyncio.sleep(0)
        client.pending[1].set_result(preview_png(10, 10))
        installed = await newer
        client.pending[0].set_exception(ServiceError("boom", status_code=500, detail="renderer down"))
        failed = await older
        result = installed, failed, preview.current, notes.toasts
        preview.dispose()
        notes.dispose()
        return result

    installed, failed, current, toasts = asyncio.run(scenario())
    assert failed is None
    assert current is installed
    assert toasts == ()


def test_failure_after_dispose_stays_quiet(valid_draft):
    client = SlowPreviewClient()

    async def scenario():
        notes = NotificationQueue(ttl=10)
        preview = ImagePreview(client, notes)
        in_flight = asyncio.ensure_future(preview.generate(valid_draft))
        await asyncio.sleep(0)
        preview.dispose()
        client.pending[0].set_exception(ServiceError("boom", status_code=500))
        result = await in_flight, notes.toasts
        notes.dispose()
        return result

    result, toasts = asyncio.run(scenario())
    assert result is None
    assert toasts == ()
