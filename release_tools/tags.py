"""Parsing of version tags.

Two tag shapes are recognised:

- platform-agnostic: ``v<version>-<build>``, e.g. ``v1.2.3-42``
- platform-specific: ``v<version>-<build>-<platform>``, e.g. ``v1.2.3-42-iOS``

where ``version`` is two or more dot-separated numbers and ``build`` is a
non-negative integer. Anything else is ``NoMatch``.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Iterator, Tuple, Union

_VERSION = r"\d+\.\d+(?:\.\d+)*"

VERSION_PATTERN = re.compile(_VERSION, re.ASCII)
AGNOSTIC_TAG_PATTERN = re.compile(rf"v(?P<version>{_VERSION})-(?P<build>\d+)", re.ASCII)
SPECIFIC_TAG_PATTERN = re.compile(
    rf"v(?P<version>{_VERSION})-(?P<build>\d+)-(?P<platform>.+)", re.ASCII
)


@dataclass(frozen=True)
class NoMatch:
    pass


@dataclass(frozen=True)
class AgnosticTag:
    version: str
    build: int


@dataclass(frozen=True)
class SpecificTag:
    version: str
    build: int
    platform: str


TagMatch = Union[NoMatch, AgnosticTag, SpecificTag]

NO_MATCH = NoMatch()


def parse_tag(tag: str) -> TagMatch:
    """Classify a tag string as agnostic, specific or unrecognised"""
    # fullmatch, so the agnostic pattern can never swallow a -<platform> suffix
    match = AGNOSTIC_TAG_PATTERN.fullmatch(tag)
    if match:
        return AgnosticTag(version=match["version"], build=int(match["build"]))

    match = SPECIFIC_TAG_PATTERN.fullmatch(tag)
    if match:
        return SpecificTag(
            version=match["version"],
            build=int(match["build"]),
            platform=match["platform"],
        )

    return NO_MATCH


def is_tag_version(value: str) -> bool:
    """True if value can be the version part of a version tag, e.g. 1.2 or 1.2.3"""
    return VERSION_PATTERN.fullmatch(value) is not None


def agnostic_tag_name(version: str, build: int) -> str:
    return f"v{version}-{build}"


def classify_tags(tags: Iterable[str]) -> Iterator[Tuple[str, TagMatch]]:
    """Yield (tag, match) pairs in listing order, skipping blank lines"""
    for line in tags:
        tag = line.strip()
        if tag:
            yield tag, parse_tag(tag)
