"""Access to the git tag store.

All git work goes through ``GitRunner.run``, a thin wrapper around
``subprocess.run``. Reads that fail raise VcsUnavailable; fetching remote
tags is best effort and never raises.
"""

import os
import re
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from release_tools.console import Reporter, silent_reporter
from release_tools.errors import GenerationFailed, TagCreationFailed, VcsUnavailable

DEFAULT_TIMEOUT = 60.0
DEFAULT_FETCH_TIMEOUT = 30.0

COMMIT_PATTERN = re.compile(r"[0-9a-f]{40}(?:[0-9a-f]{24})?")

# Variables that would point git somewhere other than the working directory
_REPO_OVERRIDE_VARIABLES = ("GIT_DIR", "GIT_WORK_TREE", "GIT_INDEX_FILE")


class TagStore(Protocol):
    """The operations the resolver needs from version control"""

    def list_tags(self) -> List[str]: ...

    def tags_at_head(self) -> List[str]: ...

    def head_commit(self) -> str: ...

    def fetch_remote_tags(self) -> bool: ...

    def create_tag(self, name: str, commit: str) -> None: ...


def timeout_from_environment(name: str, default: float) -> float:
    """Read a timeout in seconds from the environment"""
    value = os.environ.get(name)
    if not value:
        return default
    try:
        timeout = float(value)
    except ValueError:
        return default
    return timeout if timeout > 0 else default


class GitRunner:
    """Runs git commands inside one working tree"""

    def __init__(
        self,
        cwd: Path,
        reporter: Optional[Reporter] = None,
        timeout: Optional[float] = None,
        environment: Optional[Dict[str, str]] = None,
    ):
        self.cwd = Path(cwd)
        self.reporter = reporter or silent_reporter()
        self.timeout = timeout or timeout_from_environment("RT_GIT_TIMEOUT", DEFAULT_TIMEOUT)

        env = dict(os.environ if environment is None else environment)
        for name in _REPO_OVERRIDE_VARIABLES:
            env.pop(name, None)
        # Never wait on a credential prompt
        env["GIT_TERMINAL_PROMPT"] = "0"
        self.environment = env

    def run(self, args: List[str], timeout: Optional[float] = None) -> subprocess.CompletedProcess:
        """Run git with the given arguments, without checking the exit status.

        Raises OSError if git cannot be started and subprocess.TimeoutExpired
        if it does not finish in time; callers map these to their own errors.
        """
        cmd = ["git", *args]
        self.reporter.command(cmd)
        return subprocess.run(
            cmd,
            cwd=self.cwd,
            env=self.environment,
            capture_output=True,
            text=True,
            timeout=timeout or self.timeout,
            check=False,
        )

    def read(self, args: List[str], description: str) -> str:
        """Run a git query and return its stdout, raising VcsUnavailable on failure"""
        cmd = ["git", *args]
        try:
            result = self.run(args)
        except subprocess.TimeoutExpired:
            raise VcsUnavailable(f"Timed out while trying to {description}.", cmd)
        except OSError as e:
            raise VcsUnavailable(f"Could not run git to {description}: {e}", cmd)

        if result.returncode != 0:
            raise VcsUnavailable(f"Failed to {description}.", cmd, result.stderr)
        return result.stdout


class GitTagStore:
    """Tag store backed by the git command line tool"""

    def __init__(
        self,
        git: GitRunner,
        fetch_timeout: Optional[float] = None,
    ):
        self.git = git
        self.fetch_timeout = fetch_timeout or timeout_from_environment(
            "RT_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT
        )

    @classmethod
    def at(cls, root: Path, reporter: Optional[Reporter] = None) -> "GitTagStore":
        return cls(GitRunner(root, reporter=reporter))

    @property
    def reporter(self) -> Reporter:
        return self.git.reporter

    def list_tags(self) -> List[str]:
        output = self.git.read(["tag", "--list"], "list tags")
        return _lines(output)

    def tags_at_head(self) -> List[str]:
        output = self.git.read(["tag", "--points-at", "HEAD"], "list tags at HEAD")
        return _lines(output)

    def head_commit(self) -> str:
        output = self.git.read(["rev-parse", "--verify", "HEAD^{commit}"], "resolve HEAD")
        commit = output.strip()
        if not COMMIT_PATTERN.fullmatch(commit):
            raise VcsUnavailable(f"Unexpected commit hash for HEAD: {commit!r}")
        return commit

    def fetch_remote_tags(self) -> bool:
        """Fetch tags from the remote, ignoring any failure.

        Build numbering has to work offline, so a missing remote or an
        unreachable network just means we carry on with the local tags.
        """
        try:
            result = self.git.run(["fetch", "--tags"], timeout=self.fetch_timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            self.reporter.verbose(f"Skipping tag fetch: {e}")
            return False

        if result.returncode != 0:
            self.reporter.verbose(f"Skipping tag fetch: {result.stderr.strip()}")
            return False
        return True

    def create_tag(self, name: str, commit: str) -> None:
        try:
            result = self.git.run(["tag", name, commit])
        except subprocess.TimeoutExpired:
            raise TagCreationFailed(name, "timed out")
        except OSError as e:
            raise TagCreationFailed(name, str(e))

        if result.returncode != 0:
            raise TagCreationFailed(name, result.stderr)

    def changes(self, since: str, until: Optional[str] = None) -> str:
        """Return the log of commits after since, up to until (default HEAD).

        Each commit is one "- <subject> <body>" entry, newest first.
        """
        revisions = f"{since}..{until or 'HEAD'}"
        return self.git.read(
            ["log", "--pretty=- %s %b", "--end-of-options", revisions], "fetch the git log"
        )

    def assume_unchanged(self, path: Path) -> None:
        """Tell git to ignore local changes to a generated file"""
        try:
            result = self.git.run(["update-index", "--assume-unchanged", str(path)])
        except (OSError, subprocess.TimeoutExpired) as e:
            raise GenerationFailed(path, f"could not update the git index ({e})")

        if result.returncode != 0:
            raise GenerationFailed(
                path, f"could not update the git index ({result.stderr.strip()})"
            )


def _lines(output: str) -> List[str]:
    return [line.strip() for line in output.splitlines() if line.strip()]
