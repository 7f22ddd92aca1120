"""Discovery of the marketing version from project files.

Used when a tag is created without an explicit version. The working tree is
walked top-down in sorted order, skipping hidden directories, and the first
file that yields a concrete version wins:

- ``*.xcconfig`` and ``project.pbxproj``: a ``MARKETING_VERSION = 1.2.3``
  assignment
- ``Info.plist`` and ``*-Info.plist``: the ``CFBundleShortVersionString`` key

Only values that can appear in a version tag (two or more dot-separated
numbers, such as ``1.2`` or ``1.2.3``) count. Anything else, including
references to other build settings like ``$(MARKETING_VERSION)`` and
single-number versions like ``2``, is passed over and the walk carries on.
"""

import os
import re
from pathlib import Path
from typing import Iterator, Optional

from release_tools.plist import PlistError, get_string, parse_plist, top_level_dict
from release_tools.tags import is_tag_version

CONFIG_VERSION_KEY = "MARKETING_VERSION"
PLIST_VERSION_KEY = "CFBundleShortVersionString"

_ASSIGNMENT_PATTERN = re.compile(
    rf"^\s*{CONFIG_VERSION_KEY}\s*=\s*(?P<value>[^;\n]*?)\s*;?\s*(?://.*)?$", re.MULTILINE
)


def _is_config_file(path: Path) -> bool:
    return path.suffix == ".xcconfig" or path.name == "project.pbxproj"


def _is_plist_file(path: Path) -> bool:
    return path.name == "Info.plist" or path.name.endswith("-Info.plist")


def iter_candidate_files(root: Path) -> Iterator[Path]:
    """Yield the files that may declare a version, in traversal order"""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for filename in sorted(filenames):
            path = Path(dirpath) / filename
            if path.is_file() and (_is_config_file(path) or _is_plist_file(path)):
                yield path


def version_from_config(path: Path) -> Optional[str]:
    """Return the first usable MARKETING_VERSION assigned in a config file"""
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None

    for match in _ASSIGNMENT_PATTERN.finditer(text):
        value = match["value"].strip().strip('"')
        if is_tag_version(value):
            return value
    return None


def version_from_plist(path: Path) -> Optional[str]:
    try:
        tree = parse_plist(path)
    except PlistError:
        # Binary or broken plists can't tell us anything
        return None

    value = get_string(top_level_dict(tree), PLIST_VERSION_KEY)
    if value and is_tag_version(value):
        return value
    return None


def discover_version(root: Path) -> Optional[str]:
    """Find the marketing version declared somewhere under root"""
    for path in iter_candidate_files(root):
        if _is_config_file(path):
            version = version_from_config(path)
        else:
            version = version_from_plist(path)
        if version:
            return version
    return None
