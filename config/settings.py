from pydantic_settings import BaseSettings
from typing import Optional
import os

class Settings(BaseSettings):
    # Job service
    api_base_url: str = "http://localhost:8080"
    api_prefix: str = "/api/v1"
    request_timeout: float = 30.0
    upload_timeout: float = 300.0  # uploads go up to 500MB on the service side

    # Synchronization
    poll_interval: float = 4.0
    list_page_limit: int = 100  # service caps `limit` at 100
    jobs_server_ordered: bool = False  # service returns jobs in map order

    # Ephemeral UI state
    toast_ttl: float = 3.0
    page_size: int = 10

    # Preview configs
    preview_text_length: int = 8
    preview_placeholder: str = "Preview"
    bgm_asset_path: str = "/assets/bgm"
    default_tts_provider: str = "azure_v1"

    # User preferences file (language, theme)
    preferences_path: Optional[str] = None

    class Config:
        env_file = ".env"
        env_prefix = "VIDEO_SMITH_"
        extra = "ignore"

    @property
    def api_url(self) -> str:
        return self.api_base_url.rstrip("/") + self.api_prefix

    @property
    def resolved_preferences_path(self) -> str:
        if self.preferences_path:
            return self.preferences_path
        return os.path.join(os.path.expanduser("~"), ".video_smith", "preferences.json")

try:
    settings = Settings()
except Exception:
    settings = Settings(_env_file=None)
