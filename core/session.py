import logging
from typing import Callable, Optional

from api.client import JobServiceClient, ServiceError
from api.schemas import JobRequest
from config import settings
from core.confirmation import ConfirmationGate
from core.materials import MaterialUploader
from core.notifications import NotificationQueue
from core.pagination import PaginationView
from core.preview import AudioHandle, MediaPreviewSession
from core.request_model import RequestModel
from core.selector import DismissHub, FilterableSelector, Option
from core.synchronizer import JobSynchronizer

logger = logging.getLogger(__name__)


class ComposerSession:
    """
    One view instance: the job form, the synchronized job table and the
    overlays around them. Everything it owns is started and torn down with it,
    so several sessions (or tests) can run side by side.
    """

    def __init__(self, client: JobServiceClient, draft: JobRequest = None,
                 poll_interval: float = None, toast_ttl: float = None, page_size: int = None,
                 handle_factory: Callable[[str, str], AudioHandle] = None):
        self.client = client
        self.notifications = NotificationQueue(ttl=toast_ttl)
        self.gate = ConfirmationGate()
        self.hub = DismissHub()
        self.model = RequestModel(draft)
        self.pagination = PaginationView(page_size=page_size)
        self.preview = MediaPreviewSession(client, self.notifications, handle_factory)
        self.uploader = MaterialUploader(client, self.model, self.notifications)
        self.synchronizer = JobSynchronizer(
            client, self.notifications, self.gate,
            request_model=self.model, interval=poll_interval,
        )
        self.synchronizer.add_listener(self.pagination.update)

        draft = self.model.draft
        self.voice_select = FilterableSelector(
            "tts.voice", value=draft.tts.voice, placeholder="Select a voice", hub=self.hub,
            on_change=lambda v: self.model.update_section("tts", voice=v),
        )
        self.font_select = FilterableSelector(
            "subtitle_style.font", value=draft.subtitle_style.font, placeholder="Select a font", hub=self.hub,
            on_change=lambda v: self.model.update_section("subtitle_style", font=v),
        )
        self.bgm_select = FilterableSelector(
            "bgm.path", value=draft.bgm.path, placeholder="Select background music", hub=self.hub,
            on_change=lambda v: self.model.update_section("bgm", path=v),
        )
        self.model.add_listener(self._sync_selectors)
        self._started = False

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, *exc):
        self.dispose()

    async def start(self):
        if self._started:
            return
        self._started = True
        self.synchronizer.start()
        await self.load_presets()

    def dispose(self):
        self.synchronizer.dispose()
        self.preview.dispose()
        self.gate.cancel()
        for selector in (self.voice_select, self.font_select, self.bgm_select):
            selector.dispose()
        self.notifications.dispose()
        self._started = False

    def _sync_selectors(self, draft: JobRequest):
        # drafts replaced wholesale (copy into draft) must show in the controls
        self.voice_select.value = draft.tts.voice
        self.font_select.value = draft.subtitle_style.font
        self.bgm_select.value = draft.bgm.path

    # ── Presets ──────────────────────────────────────────────────────────

    async def load_presets(self):
        try:
            names = await self.client.list_bgm()
            # "random" lets the service pick a preset at render time
            self.bgm_select.set_options([Option("random", "random")] + [Option(n, n) for n in names])
        except ServiceError as e:
            logger.warning(f"Loading BGM presets failed: {e}")
            self.notifications.error("Failed to load background music presets")

        try:
            fonts = await self.client.list_fonts()
            self.font_select.set_options([Option(f.name, f.name) for f in fonts])
        except ServiceError as e:
            logger.warning(f"Loading fonts failed: {e}")
            self.notifications.error("Failed to load fonts")

        await self.load_voices()

    async def load_voices(self, provider: str = None):
        provider = provider or self.model.draft.tts.provider or settings.default_tts_provider
        try:
            voices = await self.client.list_voices(provider)
        except ServiceError as e:
            logger.warning(f"Loading voices for {provider} failed: {e}")
            self.notifications.error(e.detail or f"Failed to load voices for {provider}")
            self.voice_select.set_options([])
            return
        options = []
        for v in voices:
            label = v.display_name or v.name
            if v.locale:
                label = f"{label} ({v.locale})"
            options.append(Option(label, v.name))
        self.voice_select.set_options(options)

    async def set_provider(self, provider: str):
        """Switch TTS provider; the old voice is meaningless for the new one."""
        self.model.update_section("tts", provider=provider, voice="")
        await self.load_voices(provider)

    # ── Actions ──────────────────────────────────────────────────────────

    @property
    def can_submit(self) -> bool:
        return self.model.is_valid

    async def submit(self) -> Optional[str]:
        if not self.model.is_valid:
            logger.info(f"Submit ignored, draft is invalid: {'; '.join(self.model.issues)}")
            return None
        return await self.synchronizer.create(self.model.snapshot())

    async def generate_preview(self):
        return await self.preview.generate(self.model.draft)

    async def upload_material(self, index: int, file_path: str) -> bool:
        return await self.uploader.upload(index, file_path)

    async def clean_temp_files(self) -> Optional[int]:
        try:
            count = await self.client.clean_temp_files()
        except ServiceError as e:
            logger.warning(f"Cleaning temp files failed: {e}")
            self.notifications.error(e.detail or "Failed to clean temporary files")
            return None
        self.notifications.success(f"Removed {count} temporary file(s)")
        return count
