"""End-to-end tests of the ``rt`` command line."""

import json
from pathlib import Path

import pytest

from conftest import TestRepo
from release_tools.cli import main


def run(*argv: str) -> int:
    try:
        main(list(argv))
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 1
    return 0


def test_build_info_json(repo: TestRepo, capsys: pytest.CaptureFixture) -> None:
    repo.tag("v1.0.0-10-iOS")
    repo.tag("v2.0-99-tvOS")
    repo.commit()

    assert run("build-info", "--repo", str(repo.path), "--json") == 0
    result = json.loads(capsys.readouterr().out)
    assert result == {"build": 100, "commit": repo.head(), "version": "2.0"}


def test_build_info_head(repo: TestRepo, capsys: pytest.CaptureFixture) -> None:
    repo.tag("v1.2.3-42")
    assert run("build-info", "--repo", str(repo.path), "--head", "--json") == 0
    assert json.loads(capsys.readouterr().out)["build"] == 42


def test_build_info_head_missing_tag(repo: TestRepo, capsys: pytest.CaptureFixture) -> None:
    repo.tag("v1.2.3-42-iOS")
    assert run("build-info", "--repo", str(repo.path), "--head") == 1
    assert "No version tag found at HEAD" in capsys.readouterr().err


def test_build_info_table(repo: TestRepo, capsys: pytest.CaptureFixture) -> None:
    assert run("build-info", "--repo", str(repo.path)) == 0
    out = capsys.readouterr().out
    assert "Build Number" in out
    assert "1.0.0" in out


def test_tag(repo: TestRepo) -> None:
    repo.tag("v1.0.0-5")
    repo.commit()
    assert run("tag", "--repo", str(repo.path), "--tag-version", "1.1.0") == 0
    assert repo.head_tags() == ["v1.1.0-6"]


def test_tag_quiet_prints_name(repo: TestRepo, capsys: pytest.CaptureFixture) -> None:
    assert run("tag", "-q", "--repo", str(repo.path), "--tag-version", "1.0", "--explicit-build", "3") == 0
    assert capsys.readouterr().out.strip() == "v1.0-3"


def test_tag_already_exists(repo: TestRepo, capsys: pytest.CaptureFixture) -> None:
    repo.tag("v1.0.0-1")
    assert run("tag", "--repo", str(repo.path), "--tag-version", "1.0.0") == 1
    assert "already exists" in capsys.readouterr().err
    assert repo.head_tags() == ["v1.0.0-1"]


def test_tag_invalid_build(repo: TestRepo, capsys: pytest.CaptureFixture) -> None:
    assert run("tag", "--repo", str(repo.path), "--tag-version", "1.0", "--explicit-build", "x1") == 1
    assert "Invalid explicit build number" in capsys.readouterr().err
    assert repo.all_tags() == []


def test_tag_version_from_files(repo: TestRepo) -> None:
    (repo.path / "Version.xcconfig").write_text("MARKETING_VERSION = 4.2\n")
    assert run("tag", "--repo", str(repo.path)) == 0
    assert repo.head_tags() == ["v4.2-1"]


def test_update_build_header(repo: TestRepo) -> None:
    repo.tag("v1.2.3-42")
    assert run("update-build", "--repo", str(repo.path), "--header", "Info.h", "--head") == 0
    assert (repo.path / "Info.h").read_text().startswith("#define RT_BUILD 42\n")


def test_update_build_plist_requires_destination(repo: TestRepo) -> None:
    assert run("update-build", "--repo", str(repo.path), "--plist", "Info.plist") == 2


def test_settings_commands(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    settings = tmp_path / "settings.yaml"
    common = ("--repo", str(tmp_path), "--settings", str(settings))

    assert run("set", "api-key", "ABC", "--scheme", "App", *common) == 0
    assert run("set", "keychain", "login", *common) == 0
    capsys.readouterr()

    assert run("get", "api-key", "--scheme", "App", *common) == 0
    assert capsys.readouterr().out.strip() == "ABC"

    assert run("settings", "--scheme", "App", "--keychain", "ci", *common) == 0
    out = capsys.readouterr().out
    assert "ABC" in out
    assert "ci" in out

    assert run("unset", "api-key", "--scheme", "App", *common) == 0
    capsys.readouterr()
    assert run("get", "api-key", "--scheme", "App", *common) == 0
    assert capsys.readouterr().out.strip() == "<not set>"


def test_unknown_setting(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    assert run("get", "password", "--repo", str(tmp_path)) == 1
    assert "Unknown setting" in capsys.readouterr().err


def test_changes(repo: TestRepo, capsys: pytest.CaptureFixture) -> None:
    repo.tag("v1.0-1")
    repo.commit("Add export")
    repo.commit("Fix crash on launch")
    assert run("changes", "v1.0-1", "--repo", str(repo.path)) == 0
    out = capsys.readouterr().out
    assert "- Fix crash on launch" in out
    assert "- Add export" in out
    assert "initial" not in out


def test_changes_between_versions(repo: TestRepo, capsys: pytest.CaptureFixture) -> None:
    repo.tag("v1.0-1")
    repo.commit("Add export")
    repo.tag("v1.1-2")
    repo.commit("Fix crash on launch")
    assert run("changes", "v1.0-1", "v1.1-2", "--repo", str(repo.path)) == 0
    out = capsys.readouterr().out
    assert "- Add export" in out
    assert "Fix crash" not in out


def test_changes_unknown_version(repo: TestRepo, capsys: pytest.CaptureFixture) -> None:
    assert run("changes", "v9.9-99", "--repo", str(repo.path)) == 1
    assert "Failed to fetch the git log" in capsys.readouterr().err


def test_set_platform_needs_scheme(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    settings = tmp_path / "settings.yaml"
    common = ("--repo", str(tmp_path), "--settings", str(settings))
    assert run("set", "api-key", "ABC", "--platform", "macOS", *common) == 1
    assert "needs a scheme" in capsys.readouterr().err
    assert not settings.exists()
