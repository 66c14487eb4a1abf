"""Tests for the forms-db command."""

import json

import pytest

from forms_db.cli import main


@pytest.fixture
def env(monkeypatch, tmp_path):
    monkeypatch.setenv("FORMS_DB_URI", str(tmp_path / "forms.db"))
    monkeypatch.setenv("FORMS_DB_FORMS_ROOT", str(tmp_path / "forms"))
    monkeypatch.setenv("FORMS_DB_CACHE_ROOT", str(tmp_path / "cache"))
    monkeypatch.delenv("FORMS_DB_BACKEND", raising=False)
    monkeypatch.delenv("FORMS_DB_HASH_ALGO", raising=False)
    monkeypatch.delenv("FORMS_DB_ENABLE_LOGGING", raising=False)
    return tmp_path


def _definition(env, name="survey.xml"):
    path = env / "forms" / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("<h:html/>", encoding="utf-8")
    return path


def test_init(env, capsys):
    assert main(["init"]) == 0
    assert "forms catalog ready" in capsys.readouterr().out
    assert (env / "forms").is_dir()
    assert (env / "cache").is_dir()


def test_add_list_show(env, capsys):
    path = _definition(env)

    assert main(["--json", "add", str(path), "--form-id", "household", "--version", "2"]) == 0
    added = json.loads(capsys.readouterr().out)
    assert added[0]["form_id"] == "household"
    assert added[0]["form_file_path"] == str(path)

    assert main(["list"]) == 0
    line = capsys.readouterr().out.strip()
    assert line.split("\t")[:3] == [str(added[0]["id"]), "household", "2"]

    assert main(["show", str(added[0]["id"])]) == 0
    assert json.loads(capsys.readouterr().out)["version"] == "2"


def test_update_and_soft_delete(env, capsys):
    path = _definition(env)
    main(["--json", "add", str(path)])
    form_pk = json.loads(capsys.readouterr().out)[0]["id"]

    assert main(["--json", "update", str(form_pk), "language=fr", "auto_send=TRUE"]) == 0
    updated = json.loads(capsys.readouterr().out)[0]
    assert updated["language"] == "fr"
    assert updated["auto_send"] == "true"

    assert main(["rm", str(form_pk), "--soft"]) == 0
    capsys.readouterr()
    assert path.exists()

    main(["--json", "list"])
    assert json.loads(capsys.readouterr().out) == []
    main(["--json", "list", "--all"])
    assert len(json.loads(capsys.readouterr().out)) == 1


def test_errors_go_to_stderr(env, capsys):
    assert main(["show", "42"]) == 1
    assert "forms-db:" in capsys.readouterr().err

    assert main(["add", str(env / "forms" / "missing.xml")]) == 1


def test_check_reports_missing_definitions(env, capsys):
    path = _definition(env)
    main(["add", str(path)])
    assert main(["check"]) == 0

    path.unlink()
    capsys.readouterr()

    assert main(["check"]) == 1
    assert "survey" in capsys.readouterr().out


def test_list_by_form_id(env, capsys):
    main(["add", str(_definition(env, "h1.xml")), "--form-id", "household"])
    main(["add", str(_definition(env, "h2.xml")), "--form-id", "household"])
    main(["add", str(_definition(env, "other.xml"))])
    capsys.readouterr()

    assert main(["--json", "list", "--form-id", "household"]) == 0
    listed = json.loads(capsys.readouterr().out)

    assert [r["display_name"] for r in listed] == ["h2.xml", "h1.xml"]
