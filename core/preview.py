import logging
import os
import tempfile
from typing import Callable, List, Optional
from urllib.parse import quote

import cv2
import numpy as np

from api.client import JobServiceClient, ServiceError
from api.schemas import JobRequest, PreviewSubtitleRequest
from config import settings
from core.notifications import NotificationQueue
from utils.media import preview_text

logger = logging.getLogger(__name__)


class PreviewImage:
    """
    A rendered subtitle preview. The PNG is decoded once to learn its size and
    spilled to a temp file that the host can display; release() deletes it.
    """

    def __init__(self, data: bytes):
        if not data:
            raise ValueError("Preview response is empty")
        try:
            frame = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
        except cv2.error as e:
            raise ValueError(f"Preview response is not a decodable image: {e}") from e
        if frame is None:
            raise ValueError("Preview response is not a decodable image")

        self.data = data
        self.height, self.width = frame.shape[:2]
        fd, self.path = tempfile.mkstemp(prefix="subtitle_preview_", suffix=".png")
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        self.released = False

    def release(self):
        if self.released:
            return
        self.released = True
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass


class ImagePreview:
    def __init__(self, client: JobServiceClient, notifications: NotificationQueue,
                 text_length: int = None, placeholder: str = None):
        self.client = client
        self.notifications = notifications
        self.text_length = text_length or settings.preview_text_length
        self.placeholder = placeholder or settings.preview_placeholder
        self.current: Optional[PreviewImage] = None
        self._issued = 0
        self._installed = 0
        self._disposed = False

    def build_request(self, draft: JobRequest) -> PreviewSubtitleRequest:
        return PreviewSubtitleRequest(
            text=preview_text(draft.script, self.text_length, self.placeholder),
            style=draft.subtitle_style,
            background=draft.video.background,
            resolution=draft.video.resolution.value,
        )

    async def generate(self, draft: JobRequest) -> Optional[PreviewImage]:
        self._issued += 1
        seq = self._issued
        request = self.build_request(draft)

        try:
            data = await self.client.preview_subtitle(request)
            image = PreviewImage(data)
        except (ServiceError, ValueError) as e:
            logger.warning(f"Subtitle preview #{seq} failed: {e}")
            if self._disposed or seq < self._installed:
                return None
            detail = getattr(e, "detail", None) or str(e)
            self.notifications.error(f"Preview generation failed: {detail}")
            return None

        if self._disposed or seq < self._installed:
            # a newer preview is already on screen, or nobody is watching
            image.release()
            return None

        previous = self.current
        if previous is not None:
            previous.release()
        self.current = image
        self._installed = seq
        return image

    def dispose(self):
        self._disposed = True
        if self.current is not None:
            self.current.release()
            self.current = None


class AudioHandle:
    """
    Playback handle for one track. Actual output is up to the host's audio
    backend, which drives play/pause and calls finish() at end of playback.
    """

    def __init__(self, track_id: str, url: str):
        self.track_id = track_id
        self.url = url
        self.paused = True
        self.closed = False
        self._ended: List[Callable[[], None]] = []

    def on_ended(self, listener: Callable[[], None]):
        self._ended.append(listener)

    def play(self):
        if not self.closed:
            self.paused = False

    def pause(self):
        self.paused = True

    def finish(self):
        self.paused = True
        for listener in list(self._ended):
            listener()

    def close(self):
        self.pause()
        self.closed = True
        self._ended.clear()


def bgm_track_url(track_id: str) -> str:
    return f"{settings.api_base_url.rstrip('/')}{settings.bgm_asset_path}/{quote(track_id)}"


class AudioPreview:
    """At most one live handle; switching tracks replaces it, same track toggles it."""

    def __init__(self, handle_factory: Callable[[str, str], AudioHandle] = None,
                 url_for: Callable[[str], str] = None):
        self.handle_factory = handle_factory or AudioHandle
        self.url_for = url_for or bgm_track_url
        self.handle: Optional[AudioHandle] = None
        self.is_playing = False

    @property
    def playing_track(self) -> Optional[str]:
        return self.handle.track_id if self.handle and self.is_playing else None

    def toggle(self, track_id: str) -> bool:
        if self.handle is not None and self.handle.track_id == track_id:
            if self.is_playing:
                self.handle.pause()
                self.is_playing = False
            else:
                self.handle.play()
                self.is_playing = True
            return self.is_playing

        if self.handle is not None:
            self.handle.close()

        handle = self.handle_factory(track_id, self.url_for(track_id))
        handle.on_ended(lambda: self._on_ended(handle))
        self.handle = handle
        handle.play()
        self.is_playing = True
        return True

    def stop(self):
        if self.handle is not None:
            self.handle.close()
            self.handle = None
        self.is_playing = False

    def dispose(self):
        self.stop()

    def _on_ended(self, handle: AudioHandle):
        if handle is self.handle:
            self.is_playing = False


class MediaPreviewSession:
    def __init__(self, client: JobServiceClient, notifications: NotificationQueue,
                 handle_factory: Callable[[str, str], AudioHandle] = None):
        self.image = ImagePreview(client, notifications)
        self.audio = AudioPreview(handle_factory)

    async def generate(self, draft: JobRequest) -> Optional[PreviewImage]:
        return await self.image.generate(draft)

    def toggle(self, track_id: str) -> bool:
        return self.audio.toggle(track_id)

    def dispose(self):
        self.image.dispose()
        self.audio.dispose()
