"""Shared fixtures: an in-memory tag store and throwaway git repositories."""

import os
import shutil
import subprocess
import uuid
from pathlib import Path
from typing import Iterable, List, Optional

import pytest

from release_tools.errors import TagCreationFailed, VcsUnavailable

HEAD = "f13a5c4e2bde037cafdc8706abbd7e93013b2102"


class FakeTagStore:
    """Tag store holding tags in memory, in listing order"""

    def __init__(
        self,
        tags: Iterable[str] = (),
        head_tags: Iterable[str] = (),
        head: Optional[str] = HEAD,
        fetch_fails: bool = False,
    ):
        self.tags: List[str] = list(tags)
        self.head_tags: List[str] = list(head_tags)
        for tag in self.head_tags:
            if tag not in self.tags:
                self.tags.append(tag)
        self.head = head
        self.fetch_fails = fetch_fails
        self.fetches = 0
        self.created: List[tuple] = []
        self.unavailable = False

    def list_tags(self) -> List[str]:
        if self.unavailable:
            raise VcsUnavailable("Failed to list tags.")
        return list(self.tags)

    def tags_at_head(self) -> List[str]:
        if self.unavailable:
            raise VcsUnavailable("Failed to list tags at HEAD.")
        return list(self.head_tags)

    def head_commit(self) -> str:
        if self.head is None:
            raise VcsUnavailable("Failed to resolve HEAD.")
        return self.head

    def fetch_remote_tags(self) -> bool:
        self.fetches += 1
        return not self.fetch_fails

    def create_tag(self, name: str, commit: str) -> None:
        if name in self.tags:
            raise TagCreationFailed(name, f"fatal: tag '{name}' already exists")
        self.tags.append(name)
        if commit == self.head:
            self.head_tags.append(name)
        self.created.append((name, commit))


class TestRepo:
    """A git repository in a temporary directory with one initial commit"""

    __test__ = False

    def __init__(self, path: Path):
        self.path = path
        env = dict(os.environ)
        for name in ("GIT_DIR", "GIT_WORK_TREE", "GIT_INDEX_FILE"):
            env.pop(name, None)
        env.update(
            GIT_AUTHOR_NAME="Test User",
            GIT_AUTHOR_EMAIL="test@example.com",
            GIT_COMMITTER_NAME="Test User",
            GIT_COMMITTER_EMAIL="test@example.com",
            GIT_CONFIG_NOSYSTEM="1",
            HOME=str(path.parent),
        )
        self.env = env

        self.git("init", "-q")
        self.git("config", "user.name", "Test User")
        self.git("config", "user.email", "test@example.com")
        self.git("config", "commit.gpgsign", "false")
        self.git("config", "tag.gpgSign", "false")
        (path / "file.txt").write_text("initial")
        self.git("add", ".")
        self.git("commit", "-q", "-m", "initial")

    def git(self, *args: str) -> str:
        result = subprocess.run(
            ["git", *args],
            cwd=self.path,
            env=self.env,
            capture_output=True,
            text=True,
            check=False,
        )
        assert result.returncode == 0, result.stderr
        return result.stdout

    def commit(self, message: str = "update") -> None:
        (self.path / f"file-{uuid.uuid4().hex}.txt").write_text(message)
        self.git("add", ".")
        self.git("commit", "-q", "-m", message)

    def tag(self, name: str) -> None:
        self.git("tag", name)

    def head(self) -> str:
        return self.git("rev-parse", "HEAD").strip()

    def head_tags(self) -> List[str]:
        return self.git("tag", "--points-at", "HEAD").split()

    def all_tags(self) -> List[str]:
        return self.git("tag", "--list").split()


@pytest.fixture
def repo(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> TestRepo:
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    path = tmp_path / "repo"
    path.mkdir()
    test_repo = TestRepo(path)
    # The code under test runs git with the inherited environment
    for name, value in test_repo.env.items():
        monkeypatch.setenv(name, value)
    for name in ("GIT_DIR", "GIT_WORK_TREE", "GIT_INDEX_FILE", "SOURCE_ROOT"):
        monkeypatch.delenv(name, raising=False)
    return test_repo

