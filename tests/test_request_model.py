"""
Draft model tests

Proves:
1. is_valid follows exactly the four submission rules
2. reducer updates are structural: touched parts are new objects, untouched
   parts are shared, the previous draft is never modified
3. snapshots handed to the service are isolated from later edits
"""

import pytest

from api.schemas import BGMSource, JobRequest, Material, MaterialType, default_request
from core.request_model import (
    AddMaterial,
    MoveMaterial,
    RequestModel,
    SetScript,
    UpdateMaterial,
    UpdateSection,
    is_valid,
    reduce_draft,
    validation_issues,
)


# =============================================================================
# Validity
# =============================================================================

def test_valid_draft_passes(valid_draft):
    assert is_valid(valid_draft)
    assert validation_issues(valid_draft) == []


@pytest.mark.parametrize("script", ["", "   ", "\n\t"])
def test_blank_script_is_invalid(valid_draft, script):
    assert not is_valid(valid_draft.model_copy(update={"script": script}))


def test_no_materials_is_invalid(valid_draft):
    assert not is_valid(valid_draft.model_copy(update={"materials": []}))


def test_material_without_path_is_invalid(valid_draft):
    materials = valid_draft.materials + [Material(path="   ", duration_sec=2)]
    draft = valid_draft.model_copy(update={"materials": materials})
    assert not is_valid(draft)
    assert "material #2 has no path" in validation_issues(draft)


@pytest.mark.parametrize("duration", [0, -1, -0.5])
def test_non_positive_duration_is_invalid(valid_draft, duration):
    draft = valid_draft.model_copy(update={"materials": [Material(path="a.jpg", duration_sec=duration)]})
    assert not is_valid(draft)


def test_missing_voice_is_invalid(valid_draft):
    draft = reduce_draft(valid_draft, UpdateSection("tts", {"voice": ""}))
    assert not is_valid(draft)


def test_bgm_path_required_unless_source_is_none(valid_draft):
    no_path = reduce_draft(valid_draft, UpdateSection("bgm", {"source": "url", "path": " "}))
    assert not is_valid(no_path)

    no_bgm = reduce_draft(no_path, UpdateSection("bgm", {"source": "none"}))
    assert no_bgm.bgm.source == BGMSource.NONE
    assert is_valid(no_bgm)


def test_default_request_needs_a_voice():
    draft = default_request()
    assert validation_issues(draft) == ["no TTS voice selected"]


# =============================================================================
# Structural updates
# =============================================================================

def test_set_script_keeps_untouched_sections(valid_draft):
    updated = reduce_draft(valid_draft, SetScript("New script"))

    assert updated is not valid_draft
    assert updated.script == "New script"
    assert valid_draft.script == "Hello world\nSecond line"
    assert updated.tts is valid_draft.tts
    assert updated.materials is valid_draft.materials


def test_update_section_replaces_only_that_section(valid_draft):
    updated = reduce_draft(valid_draft, UpdateSection("video", {"fps": 60, "transition": "fade"}))

    assert updated.video is not valid_draft.video
    assert updated.video.fps == 60
    assert updated.video.transition.value == "fade"
    assert valid_draft.video.fps == 30
    assert updated.subtitle_style is valid_draft.subtitle_style


def test_update_section_rejects_unknown_names(valid_draft):
    with pytest.raises(KeyError):
        reduce_draft(valid_draft, UpdateSection("colour", {"x": 1}))
    with pytest.raises(KeyError):
        reduce_draft(valid_draft, UpdateSection("tts", {"volume": 1}))


def test_material_actions_produce_new_lists(valid_draft):
    added = reduce_draft(valid_draft, AddMaterial())
    assert len(added.materials) == 2
    assert len(valid_draft.materials) == 1

    changed = reduce_draft(added, UpdateMaterial(1, "type", "video"))
    assert changed.materials[1].type == MaterialType.VIDEO
    assert changed.materials[0] is added.materials[0]
    assert added.materials[1].type == MaterialType.IMAGE

    moved = reduce_draft(changed, MoveMaterial(1, -1))
    assert moved.materials[0].type == MaterialType.VIDEO


def test_unknown_action_raises(valid_draft):
    with pytest.raises(TypeError):
        reduce_draft(valid_draft, object())


# =============================================================================
# RequestModel
# =============================================================================

def test_validity_tracks_every_change(valid_draft):
    model = RequestModel(valid_draft)
    seen = []
    model.add_listener(seen.append)

    assert model.is_valid
    model.set_script("  ")
    assert not model.is_valid
    model.set_script("back again")
    assert model.is_valid
    assert len(seen) == 2


def test_snapshot_is_isolated_from_later_edits(valid_draft):
    model = RequestModel(valid_draft)
    snapshot = model.snapshot()

    model.update_material(0, "path", "changed.jpg")
    model.draft.materials.append(Material(path="sneaky.jpg"))

    assert snapshot.materials[0].path == "https://example.com/a.jpg"
    assert len(snapshot.materials) == 1


def test_drafts_are_frozen(valid_draft):
    with pytest.raises(Exception):
        valid_draft.script = "mutated"


def test_replace_installs_given_draft(valid_draft):
    model = RequestModel()
    model.replace(valid_draft)
    assert model.draft is valid_draft
    assert isinstance(model.draft, JobRequest)
