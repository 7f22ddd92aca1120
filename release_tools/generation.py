"""Generation of build-info files from the resolved build identity.

Three kinds of file can be kept up to date:

- a C header with ``RT_BUILD``, ``RT_COMMIT`` and ``RT_VERSION`` defines
- an ``.xcconfig`` with the same three settings
- a copy of an ``Info.plist`` with ``CFBundleVersion``, ``Commit`` and
  ``Version`` filled in, plus an ``RTInfo.h`` header next to it
"""

import os
from pathlib import Path
from typing import Optional

from release_tools.console import Reporter, silent_reporter
from release_tools.errors import GenerationFailed
from release_tools.git import GitTagStore
from release_tools.plist import (
    PlistError,
    get_string,
    parse_plist,
    set_string,
    top_level_dict,
    write_plist,
)
from release_tools.resolver import BuildIdentity, BuildResolver

DEFAULT_CONFIG_PATH = Path("Configs") / "BuildNumber.xcconfig"
PLIST_HEADER_NAME = "RTInfo.h"


def header_text(identity: BuildIdentity) -> str:
    return (
        f"#define RT_BUILD {identity.build}\n"
        f"#define RT_COMMIT {identity.commit}\n"
        f'#define RT_VERSION "{identity.version}"'
    )


def config_text(identity: BuildIdentity) -> str:
    return (
        f"RT_BUILD = {identity.build}\n"
        f"RT_COMMIT = {identity.commit}\n"
        f"RT_VERSION = {identity.version}"
    )


def _write_text(path: Path, text: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise GenerationFailed(path, str(e)) from e


class Generator:
    def __init__(
        self,
        store: GitTagStore,
        root: Path,
        reporter: Optional[Reporter] = None,
    ):
        self.store = store
        self.root = Path(root)
        self.reporter = reporter or silent_reporter()
        self.resolver = BuildResolver(store, self.reporter)

    def _resolve_path(self, path: Path) -> Path:
        path = Path(path)
        return path if path.is_absolute() else self.root / path

    def default_config_path(self) -> Path:
        source_root = os.environ.get("SOURCE_ROOT")
        if source_root:
            return Path(source_root) / DEFAULT_CONFIG_PATH
        return self.root / DEFAULT_CONFIG_PATH

    def generate_header(self, header: Path, require_head_tag: bool = False) -> BuildIdentity:
        """Write a header containing the build number, commit and version"""
        path = self._resolve_path(header)
        identity = self.resolver.build_identity(require_head_tag)

        self.reporter.log(f"Setting build number to {identity.build}.")
        _write_text(path, header_text(identity))
        self.reporter.success(f"Updated {path.name}.")
        return identity

    def generate_config(self, config: Optional[Path] = None) -> BuildIdentity:
        """Write the xcconfig if its content has changed, and hide it from git"""
        path = self._resolve_path(config) if config else self.default_config_path()
        identity = self.resolver.resolve_next()
        new = config_text(identity)

        try:
            existing = path.read_text(encoding="utf-8")
        except OSError:
            existing = None

        if existing == new:
            self.reporter.log(f"Build number is {identity.build}.")
            return identity

        self.reporter.log(f"Updating build number to {identity.build}.")
        _write_text(path, new)
        self.reporter.success(f"Updated {path.name}.")

        # Local rebuilds rewrite this file; keep it out of `git status`
        self.store.assume_unchanged(path)
        return identity

    def generate_plist(self, source: Path, dest: Path) -> BuildIdentity:
        """Copy an Info.plist with the build identity filled in"""
        source_path = self._resolve_path(source)
        dest_path = self._resolve_path(dest)
        try:
            tree = parse_plist(source_path)
        except PlistError as e:
            raise GenerationFailed(source_path, str(e)) from e

        identity = self.resolver.resolve_next()
        info = top_level_dict(tree)

        if get_string(info, "CFBundleVersion") == str(identity.build):
            self.reporter.log(f"Build number is {identity.build}.")
            return identity

        self.reporter.log(f"Using build number {identity.build}.")
        set_string(info, "CFBundleVersion", str(identity.build))
        set_string(info, "Commit", identity.commit)
        set_string(info, "Version", identity.version)
        try:
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            write_plist(tree, dest_path)
        except OSError as e:
            raise GenerationFailed(dest_path, str(e)) from e
        self.reporter.success(f"Updated {dest_path.name}.")

        header_path = dest_path.parent / PLIST_HEADER_NAME
        _write_text(header_path, header_text(identity))
        self.reporter.success(f"Updated {header_path.name}.")
        return identity
