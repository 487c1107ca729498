from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MaterialType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class MaterialSource(str, Enum):
    URL = "url"
    UPLOAD = "upload"


class ImageEffect(str, Enum):
    NONE = "none"
    ZOOM_IN = "zoom_in"
    ZOOM_OUT = "zoom_out"
    PAN_LEFT = "pan_left"
    PAN_RIGHT = "pan_right"


class Resolution(str, Enum):
    PORTRAIT_1080 = "1080x1920"
    PORTRAIT_720 = "720x1280"
    SQUARE_1080 = "1080x1080"
    LANDSCAPE_1080 = "1920x1080"


class Transition(str, Enum):
    NONE = "none"
    FADE = "fade"
    WIPE_LEFT = "wipeleft"
    WIPE_RIGHT = "wiperight"
    SLIDE_LEFT = "slideleft"
    SLIDE_RIGHT = "slideright"


class BGMSource(str, Enum):
    PRESET = "preset"
    URL = "url"
    UPLOAD = "upload"
    NONE = "none"


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"


TERMINAL_STATUSES = frozenset({JobStatus.SUCCESS, JobStatus.FAILED, JobStatus.CANCELED})


class _Value(BaseModel):
    # drafts are values: every edit produces a new object via model_copy
    model_config = ConfigDict(frozen=True)


class Material(_Value):
    type: MaterialType = MaterialType.IMAGE
    source: MaterialSource = MaterialSource.URL
    path: str = ""
    duration_sec: float = 3.0
    mute: bool = False  # video only
    volume: float = Field(1.0, ge=0, le=1)  # video only, when unmuted
    effect: ImageEffect = ImageEffect.NONE  # image only

    @field_validator("effect", mode="before")
    @classmethod
    def _blank_effect(cls, v):
        # the service echoes "" for materials that never had an effect
        return v or ImageEffect.NONE


class TTSSetting(_Value):
    provider: str = "azure_v1"
    voice: str = ""
    locale: str = "zh-TW"
    speed: float = 1.0
    pitch: float = 0.0


class VideoSetting(_Value):
    resolution: Resolution = Resolution.PORTRAIT_1080
    fps: int = 30
    transition: Transition = Transition.NONE
    background: str = "000000"
    blur_background: bool = False

    @field_validator("transition", mode="before")
    @classmethod
    def _blank_transition(cls, v):
        return v or Transition.NONE


class BGMSetting(_Value):
    source: BGMSource = BGMSource.PRESET
    path: str = "random"
    volume: float = 0.25


class SubtitleStyle(_Value):
    font: str = "Noto Sans TC"
    size: int = 36
    color: str = "FFFFFF"
    y_offset: int = 70
    max_line_width: int = 16
    outline_width: float = 0.1
    outline_color: str = "000000"


class JobRequest(_Value):
    script: str = ""
    materials: List[Material] = Field(default_factory=list)
    tts: TTSSetting = Field(default_factory=TTSSetting)
    video: VideoSetting = Field(default_factory=VideoSetting)
    bgm: BGMSetting = Field(default_factory=BGMSetting)
    subtitle_style: SubtitleStyle = Field(default_factory=SubtitleStyle)


def default_request() -> JobRequest:
    return JobRequest(
        script="這是一段示範腳本。\n第二句會跟字幕同步。",
        materials=[Material(path="https://picsum.photos/720/1280", duration_sec=3.0)],
    )


class Job(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    status: JobStatus
    progress: int = Field(0, ge=0, le=100)
    created_at: datetime
    updated_at: Optional[datetime] = None
    error_message: Optional[str] = None
    result_url: Optional[str] = None
    request: JobRequest = Field(default_factory=JobRequest)

    @field_validator("error_message", "result_url", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        return v or None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class Voice(BaseModel):
    name: str
    display_name: str = ""
    locale: str = ""
    gender: str = ""


class FontInfo(BaseModel):
    name: str


class UploadResult(BaseModel):
    path: str
    url: str = ""


class PreviewSubtitleRequest(BaseModel):
    text: str
    style: SubtitleStyle
    background: str = ""
    resolution: str = ""
