"""
The two durable client-side preference flags (display language, color theme).

Everything else the client holds is ephemeral; this file is the only thing
written to disk.
"""

import json
import logging
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ValidationError

from config import settings

logger = logging.getLogger(__name__)


class Preferences(BaseModel):
    language: Literal["zh-TW", "en"] = "zh-TW"
    theme: Literal["dark", "light"] = "dark"


def load_preferences(path: Optional[str] = None) -> Preferences:
    p = Path(path or settings.resolved_preferences_path)
    if not p.exists():
        return Preferences()
    try:
        return Preferences.model_validate(json.loads(p.read_text(encoding="utf-8")))
    except (OSError, ValueError, ValidationError) as e:
        # unreadable file falls back to defaults; it is rewritten on next save
        logger.warning(f"Ignoring unreadable preferences file {p}: {e}")
        return Preferences()


def save_preferences(prefs: Preferences, path: Optional[str] = None) -> Path:
    p = Path(path or settings.resolved_preferences_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(prefs.model_dump(), indent=2), encoding="utf-8")
    return p
