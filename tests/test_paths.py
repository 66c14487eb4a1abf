"""Tests for storage path translation and naming conventions."""

import os

import pytest

from forms_db.errors import InvalidInput
from forms_db.storage import StoragePathResolver, media_path_for


@pytest.fixture
def resolver(tmp_path):
    return StoragePathResolver(str(tmp_path / "forms"), str(tmp_path / "cache"))


def test_relative_paths_resolve_against_their_root(resolver, tmp_path):
    assert resolver.to_absolute("survey.xml") == str(tmp_path / "forms" / "survey.xml")
    assert resolver.to_absolute("abc.cache", "cache") == str(tmp_path / "cache" / "abc.cache")


def test_absolute_paths_under_root_become_relative(resolver, tmp_path):
    absolute = str(tmp_path / "forms" / "nested" / "survey.xml")

    assert resolver.to_relative(absolute) == "nested/survey.xml"
    assert resolver.to_absolute(resolver.to_relative(absolute)) == absolute


def test_paths_outside_root_stay_absolute(resolver, tmp_path):
    outside = str(tmp_path / "elsewhere" / "survey.xml")

    assert resolver.to_relative(outside) == outside
    assert resolver.to_absolute(outside) == outside


def test_root_prefix_is_not_enough(resolver, tmp_path):
    sibling = str(tmp_path / "forms-archive" / "survey.xml")

    assert resolver.to_relative(sibling) == sibling


def test_none_passes_through(resolver):
    assert resolver.to_absolute(None) is None
    assert resolver.to_relative(None, "cache") is None


def test_unknown_kind(resolver):
    with pytest.raises(InvalidInput):
        resolver.to_absolute("a.xml", "media")


def test_cache_path_for(resolver, tmp_path):
    assert resolver.cache_path_for("d41d8cd9") == str(tmp_path / "cache" / "d41d8cd9.cache")


def test_media_path_for():
    assert media_path_for(os.path.join("data", "survey.xml")) == os.path.join("data", "survey-media")
    assert media_path_for(os.path.join("data", "survey")) == os.path.join("data", "survey-media")
    assert media_path_for(os.path.join("v1.2", "survey.xml")) == os.path.join("v1.2", "survey-media")
