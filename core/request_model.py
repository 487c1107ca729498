from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Union

from api.schemas import BGMSource, JobRequest, Material, default_request
from core import materials as ops


SECTIONS = ('tts', 'video', 'bgm', 'subtitle_style')


def validation_issues(draft: JobRequest) -> List[str]:
    """Reasons the draft cannot be submitted; empty when it can."""
    issues = []
    if not draft.script.strip():
        issues.append("script is empty")
    if not draft.materials:
        issues.append("at least one material is required")
    for i, m in enumerate(draft.materials, start=1):
        if not m.path.strip():
            issues.append(f"material #{i} has no path")
        if m.duration_sec <= 0:
            issues.append(f"material #{i} duration must be greater than 0")
    if not draft.tts.voice:
        issues.append("no TTS voice selected")
    if draft.bgm.source != BGMSource.NONE and not draft.bgm.path.strip():
        issues.append("background music path is empty")
    return issues


def is_valid(draft: JobRequest) -> bool:
    return not validation_issues(draft)


# ── Actions ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SetScript:
    script: str


@dataclass(frozen=True)
class UpdateSection:
    section: str
    changes: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AddMaterial:
    material: Material = None


@dataclass(frozen=True)
class RemoveMaterial:
    index: int


@dataclass(frozen=True)
class UpdateMaterial:
    index: int
    field: str
    value: Any


@dataclass(frozen=True)
class PatchMaterial:
    index: int
    changes: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class MoveMaterial:
    index: int
    direction: int


@dataclass(frozen=True)
class ReplaceDraft:
    draft: JobRequest


Action = Union[SetScript, UpdateSection, AddMaterial, RemoveMaterial,
               UpdateMaterial, PatchMaterial, MoveMaterial, ReplaceDraft]


def _update_section(draft: JobRequest, section: str, changes: Dict[str, Any]) -> JobRequest:
    if section not in SECTIONS:
        raise KeyError(f"Unknown draft section: {section}")
    current = getattr(draft, section)
    model = type(current)
    unknown = set(changes) - set(model.model_fields)
    if unknown:
        raise KeyError(f"Unknown {section} field(s): {sorted(unknown)}")
    replaced = model.model_validate({**current.model_dump(), **changes})
    return draft.model_copy(update={section: replaced})


def reduce_draft(draft: JobRequest, action: Action) -> JobRequest:
    """
    Apply one action and return the next draft. Substructures the action does
    not touch are carried over by reference; touched ones are new objects.
    """
    if isinstance(action, SetScript):
        return draft.model_copy(update={'script': action.script})
    if isinstance(action, UpdateSection):
        return _update_section(draft, action.section, action.changes)
    if isinstance(action, AddMaterial):
        return draft.model_copy(update={'materials': ops.add_material(draft.materials, action.material)})
    if isinstance(action, RemoveMaterial):
        return draft.model_copy(update={'materials': ops.remove_material(draft.materials, action.index)})
    if isinstance(action, UpdateMaterial):
        updated = ops.update_material(draft.materials, action.index, action.field, action.value)
        return draft.model_copy(update={'materials': updated})
    if isinstance(action, PatchMaterial):
        updated = ops.patch_material(draft.materials, action.index, action.changes)
        return draft.model_copy(update={'materials': updated})
    if isinstance(action, MoveMaterial):
        moved = ops.move_material(draft.materials, action.index, action.direction)
        return draft.model_copy(update={'materials': moved})
    if isinstance(action, ReplaceDraft):
        return action.draft
    raise TypeError(f"Unsupported action: {action!r}")


class RequestModel:
    def __init__(self, draft: JobRequest = None):
        self._draft = draft if draft is not None else default_request()
        self._listeners: List[Callable[[JobRequest], None]] = []

    @property
    def draft(self) -> JobRequest:
        return self._draft

    @property
    def is_valid(self) -> bool:
        return is_valid(self._draft)

    @property
    def issues(self) -> List[str]:
        return validation_issues(self._draft)

    def add_listener(self, listener: Callable[[JobRequest], None]):
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def dispatch(self, action: Action) -> JobRequest:
        previous = self._draft
        self._draft = reduce_draft(previous, action)
        if self._draft is not previous:
            for listener in list(self._listeners):
                listener(self._draft)
        return self._draft

    def snapshot(self) -> JobRequest:
        """Deep copy handed to the service; later edits never reach it."""
        return self._draft.model_copy(deep=True)

    def set_script(self, script: str) -> JobRequest:
        return self.dispatch(SetScript(script))

    def update_section(self, section: str, **changes) -> JobRequest:
        return self.dispatch(UpdateSection(section, changes))

    def add_material(self, material: Material = None) -> JobRequest:
        return self.dispatch(AddMaterial(material))

    def remove_material(self, index: int) -> JobRequest:
        return self.dispatch(RemoveMaterial(index))

    def update_material(self, index: int, field: str, value: Any) -> JobRequest:
        return self.dispatch(UpdateMaterial(index, field, value))

    def update_material_fields(self, index: int, **changes) -> JobRequest:
        return self.dispatch(PatchMaterial(index, changes))

    def move_material(self, index: int, direction: int) -> JobRequest:
        return self.dispatch(MoveMaterial(index, direction))

    def replace(self, draft: JobRequest) -> JobRequest:
        return self.dispatch(ReplaceDraft(draft))
