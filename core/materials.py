"""
Ordered editing of the materials list.

Materials are identified by position only; every operation returns a new
list and leaves the input untouched. Moves that would leave the list bounds
are no-ops so callers can bind them straight to up/down buttons and use
`can_move` to disable the affordance.
"""

import logging
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Sequence

from api.client import JobServiceClient, ServiceError
from api.schemas import Material, MaterialType
from core.notifications import NotificationQueue
from utils.media import infer_material_type

logger = logging.getLogger(__name__)

COMMON_FIELDS = frozenset({'type', 'source', 'path', 'duration_sec'})


def default_material() -> Material:
    return Material()


def add_material(materials: Sequence[Material], material: Material = None) -> List[Material]:
    return list(materials) + [material or default_material()]


def remove_material(materials: Sequence[Material], index: int) -> List[Material]:
    if not 0 <= index < len(materials):
        return list(materials)
    return [m for i, m in enumerate(materials) if i != index]


def patch_material(materials: Sequence[Material], index: int, changes: Dict[str, Any]) -> List[Material]:
    unknown = set(changes) - set(Material.model_fields)
    if unknown:
        raise KeyError(f"Unknown material field(s): {sorted(unknown)}")
    if not 0 <= index < len(materials):
        return list(materials)

    updated = list(materials)
    # validate so "video" arrives as MaterialType.VIDEO, not a bare string
    data = updated[index].model_dump()
    data.update(changes)
    updated[index] = Material.model_validate(data)
    return updated


def update_material(materials: Sequence[Material], index: int, field: str, value: Any) -> List[Material]:
    return patch_material(materials, index, {field: value})


def can_move(materials: Sequence[Material], index: int, direction: int) -> bool:
    target = index + direction
    return 0 <= index < len(materials) and 0 <= target < len(materials)


def move_material(materials: Sequence[Material], index: int, direction: int) -> List[Material]:
    if direction not in (-1, 1):
        raise ValueError(f"direction must be -1 or +1, got {direction}")
    if not can_move(materials, index, direction):
        return list(materials)

    moved = list(materials)
    target = index + direction
    moved[index], moved[target] = moved[target], moved[index]
    return moved


def visible_fields(material: Material) -> FrozenSet[str]:
    """Fields the editor shows for this material; the rest are hidden but kept."""
    if material.type == MaterialType.VIDEO:
        if material.mute:
            return COMMON_FIELDS | {'mute'}
        return COMMON_FIELDS | {'mute', 'volume'}
    return COMMON_FIELDS | {'effect'}


class MaterialUploader:
    """Uploads a local file for one material slot and writes the server path back."""

    def __init__(self, client: JobServiceClient, model, notifications: NotificationQueue):
        self.client = client
        self.model = model
        self.notifications = notifications

    async def upload(self, index: int, file_path: str) -> bool:
        file_path = Path(file_path)
        try:
            result = await self.client.upload_file(file_path)
        except ServiceError as e:
            logger.warning(f"Upload of {file_path.name} failed: {e}")
            self.notifications.error(f"Upload failed: {e.detail or file_path.name}")
            return False

        materials = self.model.draft.materials
        if not 0 <= index < len(materials):
            # the slot was removed while the upload was in flight
            logger.info(f"Dropping upload result for removed material #{index + 1}")
            self.notifications.error("Upload discarded: material was removed")
            return False

        changes = {'path': result.path}
        inferred = infer_material_type(file_path.name)
        if inferred is not None:
            changes['type'] = inferred
        self.model.update_material_fields(index, **changes)
        self.notifications.success(f"Uploaded {file_path.name}")
        return True
