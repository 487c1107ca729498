from pathlib import Path
from typing import Optional

from api.schemas import MaterialType
from config import settings

VIDEO_EXTENSIONS = ('mp4', 'mov', 'avi', 'mkv', 'webm')
IMAGE_EXTENSIONS = ('jpg', 'jpeg', 'png', 'gif', 'webp')


def infer_material_type(filename: str) -> Optional[MaterialType]:
    ext = Path(filename).suffix.lower().lstrip('.')
    if ext in VIDEO_EXTENSIONS:
        return MaterialType.VIDEO
    if ext in IMAGE_EXTENSIONS:
        return MaterialType.IMAGE
    return None


def preview_text(script: str, length: int = None, placeholder: str = None) -> str:
    """First line of the script, cut to `length` characters."""
    length = length or settings.preview_text_length
    placeholder = placeholder or settings.preview_placeholder

    lines = (script or '').strip().splitlines()
    if not lines:
        return placeholder
    return lines[0].strip()[:length] or placeholder
