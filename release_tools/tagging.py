"""Creation of platform-agnostic version tags at HEAD."""

import re
from pathlib import Path
from typing import Optional, Union

from release_tools.console import Reporter, silent_reporter
from release_tools.discovery import discover_version
from release_tools.errors import (
    InvalidExplicitBuild,
    InvalidVersion,
    NoVersionFound,
    NoVersionTagAtHead,
    TagAlreadyExists,
)
from release_tools.git import TagStore
from release_tools.resolver import BuildResolver
from release_tools.tags import AgnosticTag, agnostic_tag_name, parse_tag

_BUILD_PATTERN = re.compile(r"\d+", re.ASCII)


def parse_explicit_build(value: Union[str, int]) -> int:
    """Validate a build number supplied by the user"""
    if isinstance(value, bool):
        raise InvalidExplicitBuild(value)
    if isinstance(value, int):
        if value < 0:
            raise InvalidExplicitBuild(value)
        return value
    if not _BUILD_PATTERN.fullmatch(value):
        raise InvalidExplicitBuild(value)
    return int(value)


class TagCreator:
    def __init__(
        self,
        store: TagStore,
        root: Path,
        reporter: Optional[Reporter] = None,
    ):
        self.store = store
        self.root = Path(root)
        self.reporter = reporter or silent_reporter()
        self.resolver = BuildResolver(store, self.reporter)

    def ensure_no_existing_tag(self) -> None:
        """Raise TagAlreadyExists if a version tag already sits at HEAD.

        Other tags at HEAD are fine; only a platform-agnostic version tag
        conflicts with the one we are about to create.
        """
        try:
            identity = self.resolver.resolve_at_head()
        except NoVersionTagAtHead:
            return
        raise TagAlreadyExists(identity)

    def version(self, explicit_version: Optional[str]) -> str:
        if explicit_version:
            return explicit_version

        version = discover_version(self.root)
        if version is None:
            raise NoVersionFound(self.root)
        self.reporter.verbose(f"Found version {version} in project files.")
        return version

    def create_release_tag(
        self,
        explicit_version: Optional[str] = None,
        explicit_build: Optional[Union[str, int]] = None,
    ) -> str:
        """Tag HEAD as v<version>-<build> and return the tag name"""
        self.ensure_no_existing_tag()
        version = self.version(explicit_version)

        if explicit_build is not None:
            build = parse_explicit_build(explicit_build)
            self.reporter.verbose(f"Using explicit build number: {build}")
        else:
            build = self.resolver.resolve_next().build

        commit = self.store.head_commit()
        tag_name = agnostic_tag_name(version, build)
        if not isinstance(parse_tag(tag_name), AgnosticTag):
            # The new tag must be visible to resolve_at_head and resolve_next
            raise InvalidVersion(version)

        self.reporter.log(f"Creating tag: {tag_name} at commit {commit}")
        self.store.create_tag(tag_name, commit)
        self.reporter.success(f"Successfully created tag: {tag_name}")
        return tag_name
