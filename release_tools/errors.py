"""Errors raised by the release tools.

Every error derives from ReleaseError, which the command layer catches and
formats for the user. The engine never retries; all of these are fatal to the
command that raised them.
"""

from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Union

if TYPE_CHECKING:
    from release_tools.resolver import BuildIdentity


class ReleaseError(Exception):
    """Custom exception for release tool errors"""

    pass


class VcsUnavailable(ReleaseError):
    """git could not be run, or failed on a required read"""

    def __init__(self, message: str, command: Optional[List[str]] = None, stderr: str = ""):
        self.command = command
        self.stderr = stderr.strip()
        if self.stderr:
            message = f"{message}\n\n{self.stderr}"
        super().__init__(message)


class NoVersionTagAtHead(ReleaseError):
    def __init__(self) -> None:
        super().__init__(
            "No version tag found at HEAD. "
            "Expected a tag of the form v<version>-<build> (e.g. v1.2.3-42)."
        )


class TagAlreadyExists(ReleaseError):
    """A platform-agnostic version tag already sits at HEAD"""

    def __init__(self, identity: "BuildIdentity"):
        self.identity = identity
        super().__init__(
            f"A version tag already exists at HEAD: "
            f"v{identity.version}-{identity.build} ({identity.commit})"
        )


class NoVersionFound(ReleaseError):
    def __init__(self, root: Path):
        self.root = root
        super().__init__(
            f"Could not determine the version to tag. Pass --tag-version, or add "
            f"MARKETING_VERSION / CFBundleShortVersionString to a file under {root}."
        )


class InvalidVersion(ReleaseError):
    """The version would make a tag that is not recognised as a version tag"""

    def __init__(self, version: str):
        self.version = version
        super().__init__(
            f"Invalid version: {version}. "
            "Must be two or more dot-separated numbers (e.g. 1.2 or 1.2.3)."
        )


class InvalidExplicitBuild(ReleaseError):
    def __init__(self, value: Union[str, int]):
        self.value = value
        super().__init__(
            f"Invalid explicit build number: {value}. Must be a non-negative integer."
        )


class TagCreationFailed(ReleaseError):
    def __init__(self, tag: str, stderr: str = ""):
        self.tag = tag
        self.stderr = stderr.strip()
        message = f"Failed to create the git tag {tag}."
        if self.stderr:
            message = f"{message}\n\n{self.stderr}"
        super().__init__(message)


class GenerationFailed(ReleaseError):
    """A build-info file could not be read or written"""

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Failed to update {path}: {reason}")


class SettingsError(ReleaseError):
    pass
