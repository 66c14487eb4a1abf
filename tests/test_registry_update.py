"""
Tests for FormRegistry.update / update_by_id: patch semantics, artifact
invalidation on path changes, hash re-derivation and the bulk form.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from forms_db.errors import Conflict, InvalidInput, NotFound
from forms_db.registry import Filter


def _touch(path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"compiled")
    return path


def test_metadata_patch_preserves_other_fields(registry, write_form):
    path = write_form("survey.xml")
    form_pk = registry.insert({"form_file_path": str(path), "jr_form_id": "survey", "language": "en"})
    before = registry.get(form_pk)

    assert registry.update_by_id(form_pk, {"language": "fr", "description": "Field test"}) == 1

    after = registry.get(form_pk)
    assert after.language == "fr"
    assert after.description == "Field test"
    assert after.form_id == before.form_id
    assert after.form_file_path == before.form_file_path
    assert after.md5_hash == before.md5_hash
    assert after.cache_file_path == before.cache_file_path
    assert after.date == before.date


def test_supplied_hash_is_discarded(registry, write_form, md5):
    path = write_form("survey.xml")
    form_pk = registry.insert({"form_file_path": str(path)})

    registry.update_by_id(form_pk, {"md5_hash": "forged", "language": "en"})

    assert registry.get(form_pk).md5_hash == md5(path)


def test_changing_definition_path_replaces_artifacts(registry, write_form, md5, cache_root):
    old_path = write_form("survey.xml", "<h:html>v1</h:html>")
    new_path = write_form("survey_v2.xml", "<h:html>v2</h:html>")
    form_pk = registry.insert({"form_file_path": str(old_path)})
    old_cache = _touch(registry.get(form_pk).cache_file_path)

    assert registry.update_by_id(form_pk, {"form_file_path": str(new_path)}) == 1

    record = registry.get(form_pk)
    assert not old_path.exists()
    assert not old_cache.exists()
    assert new_path.exists()
    assert record.form_file_path == str(new_path)
    assert record.md5_hash == md5(new_path)
    assert record.cache_file_path == str(cache_root / f"{md5(new_path)}.cache")


def test_same_path_with_new_content_rehashes_and_keeps_file(registry, write_form, md5):
    path = write_form("survey.xml", "<h:html>v1</h:html>")
    form_pk = registry.insert({"form_file_path": str(path)})
    old = registry.get(form_pk)
    old_cache = _touch(old.cache_file_path)

    path.write_text("<h:html>v2</h:html>", encoding="utf-8")
    registry.update_by_id(form_pk, {"form_file_path": str(path)})

    record = registry.get(form_pk)
    assert path.exists()
    assert not old_cache.exists()
    assert record.md5_hash == md5(path)
    assert record.md5_hash != old.md5_hash


def test_media_folder_follows_definition(registry, write_form, forms_root):
    old_path = write_form("survey.xml")
    new_path = write_form("census.xml")
    form_pk = registry.insert({"form_file_path": str(old_path)})
    old_media = forms_root / "survey-media"
    _touch(old_media / "logo.png")

    registry.update_by_id(form_pk, {"form_file_path": str(new_path)})

    assert registry.get(form_pk).form_media_path == str(forms_root / "census-media")
    assert not old_media.exists()


def test_explicit_cache_change_removes_old_cache_only(registry, write_form, cache_root):
    path = write_form("survey.xml")
    form_pk = registry.insert({"form_file_path": str(path)})
    old_cache = _touch(registry.get(form_pk).cache_file_path)

    registry.update_by_id(form_pk, {"jrcache_file_path": "rebuilt.cache"})

    record = registry.get(form_pk)
    assert not old_cache.exists()
    assert path.exists()
    assert record.cache_file_path == str(cache_root / "rebuilt.cache")


def test_update_to_missing_file_has_no_side_effects(registry, write_form, forms_root):
    path = write_form("survey.xml")
    form_pk = registry.insert({"form_file_path": str(path)})
    cache = _touch(registry.get(form_pk).cache_file_path)

    with pytest.raises(InvalidInput):
        registry.update_by_id(form_pk, {"form_file_path": str(forms_root / "ghost.xml")})

    assert path.exists()
    assert cache.exists()
    assert registry.get(form_pk).form_file_path == str(path)


def test_update_onto_another_forms_path_conflicts(registry, write_form):
    first = write_form("a.xml")
    second = write_form("b.xml")
    registry.insert({"form_file_path": str(first)})
    other_pk = registry.insert({"form_file_path": str(second)})

    with pytest.raises(Conflict):
        registry.update_by_id(other_pk, {"form_file_path": str(first)})

    assert first.exists()
    assert second.exists()


def test_immutable_fields_are_rejected(registry, write_form):
    path = write_form("survey.xml")
    form_pk = registry.insert({"form_file_path": str(path)})

    with pytest.raises(InvalidInput):
        registry.update_by_id(form_pk, {"date": 1})
    with pytest.raises(InvalidInput):
        registry.update_by_id(form_pk, {"_id": 99})


def test_update_unknown_id_is_not_found(registry):
    with pytest.raises(NotFound):
        registry.update_by_id(12345, {"language": "en"})


def test_update_soft_deleted_id_is_not_found(registry, write_form):
    path = write_form("survey.xml")
    form_pk = registry.insert({"form_file_path": str(path)})
    registry.soft_delete(form_pk)

    with pytest.raises(NotFound):
        registry.update_by_id(form_pk, {"language": "en"})


def test_bulk_update_patches_every_match(registry, write_form):
    a1 = registry.insert({"form_file_path": str(write_form("a1.xml")), "jr_form_id": "a"})
    a2 = registry.insert({"form_file_path": str(write_form("a2.xml")), "jr_form_id": "a"})
    b1 = registry.insert({"form_file_path": str(write_form("b1.xml")), "jr_form_id": "b"})

    count = registry.update({"auto_send": "true"}, Filter.where(jr_form_id="a"))

    assert count == 2
    assert registry.get(a1).auto_send == "true"
    assert registry.get(a2).auto_send == "true"
    assert registry.get(b1).auto_send is None


def test_bulk_update_without_match_is_a_noop(registry, write_form):
    registry.insert({"form_file_path": str(write_form("a.xml"))})

    assert registry.update({"language": "de"}, Filter.where(jr_form_id="missing")) == 0


def test_bulk_update_cannot_share_one_definition(registry, write_form):
    registry.insert({"form_file_path": str(write_form("a1.xml")), "jr_form_id": "a"})
    registry.insert({"form_file_path": str(write_form("a2.xml")), "jr_form_id": "a"})
    target = write_form("shared.xml")

    with pytest.raises(Conflict):
        registry.update({"form_file_path": str(target)}, Filter.where(jr_form_id="a"))


def test_update_notifies(registry, write_form, recorder):
    form_pk = registry.insert({"form_file_path": str(write_form("a.xml"))})
    recorder.clear()

    registry.update_by_id(form_pk, {"language": "en"})

    assert recorder == ["forms", "latest_by_form_id"]


def test_repointing_keeps_a_cache_another_form_uses(registry, write_form, md5):
    body = "<h:html/>"
    a = registry.insert({"form_file_path": str(write_form("a.xml", body))})
    b = registry.insert({"form_file_path": str(write_form("b.xml", body))})
    shared = _touch(registry.get(b).cache_file_path)
    replacement = write_form("a_v2.xml", "<h:html><h:body/></h:html>")

    registry.update_by_id(a, {"form_file_path": str(replacement)})

    assert shared.exists()
    assert registry.get(b).cache_file_path == str(shared)
    assert registry.get(a).md5_hash == md5(replacement)


def test_explicit_cache_change_keeps_a_shared_cache(registry, write_form, cache_root):
    body = "<h:html/>"
    a = registry.insert({"form_file_path": str(write_form("a.xml", body))})
    b = registry.insert({"form_file_path": str(write_form("b.xml", body))})
    shared = _touch(registry.get(b).cache_file_path)

    registry.update_by_id(a, {"jrcache_file_path": "rebuilt.cache"})

    assert shared.exists()
    assert registry.get(a).cache_file_path == str(cache_root / "rebuilt.cache")
