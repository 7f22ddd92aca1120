"""Resolution of the build identity from git tags.

The build identity is the (build, commit, version) triple that labels a
release build. It can be resolved in two ways:

- ``resolve_at_head`` requires a platform-agnostic tag (``v1.2.3-42``) at
  HEAD and reports it. Platform-specific tags at HEAD never count.
- ``resolve_next`` works out what the *next* build should be: one more than
  the highest build number among all recognised tags, agnostic and
  platform-specific together, wherever they point.

When several tags share the highest build within one scheme, the first one
in git's listing order supplies the version.
"""

from dataclasses import dataclass
from typing import Optional

from release_tools.console import Reporter, silent_reporter
from release_tools.errors import NoVersionTagAtHead
from release_tools.git import TagStore
from release_tools.tags import AgnosticTag, SpecificTag, classify_tags

DEFAULT_VERSION = "1.0.0"


@dataclass(frozen=True)
class BuildIdentity:
    """Build number, full commit hash and semantic version of a build"""

    build: int
    commit: str
    version: str

    @property
    def tag_name(self) -> str:
        return f"v{self.version}-{self.build}"

    def as_dict(self) -> dict:
        return {"build": self.build, "commit": self.commit, "version": self.version}


class _HighestTag:
    """Tracks the highest build seen within one tag scheme"""

    def __init__(self) -> None:
        self.build = 0
        self.tag: Optional[str] = None
        self.version: Optional[str] = None

    def offer(self, tag: str, version: str, build: int) -> None:
        # Strictly greater, so ties keep the first tag listed
        if self.tag is None or build > self.build:
            self.build = build
            self.tag = tag
            self.version = version


class BuildResolver:
    def __init__(self, store: TagStore, reporter: Optional[Reporter] = None):
        self.store = store
        self.reporter = reporter or silent_reporter()

    def resolve_at_head(self) -> BuildIdentity:
        """Return the identity recorded by the version tag at HEAD.

        Raises NoVersionTagAtHead if HEAD carries no platform-agnostic tag.
        """
        for tag, match in classify_tags(self.store.tags_at_head()):
            if isinstance(match, AgnosticTag):
                self.reporter.verbose(f"Found version tag at HEAD: {tag} with build {match.build}")
                return BuildIdentity(
                    build=match.build,
                    commit=self.store.head_commit(),
                    version=match.version,
                )

        raise NoVersionTagAtHead()

    def resolve_next(self) -> BuildIdentity:
        """Return the identity the next build at HEAD should have.

        Never fails for lack of tags; with none at all the result is
        build 1, version 1.0.0.
        """
        self.store.fetch_remote_tags()

        agnostic = _HighestTag()
        specific = _HighestTag()
        for tag, match in classify_tags(self.store.list_tags()):
            if isinstance(match, AgnosticTag):
                agnostic.offer(tag, match.version, match.build)
            elif isinstance(match, SpecificTag):
                specific.offer(tag, match.version, match.build)

        if specific.build > agnostic.build:
            # Another platform has moved the counter on; adopt its progress
            highest = specific
            self.reporter.log(
                f"Highest existing tag was {highest.tag} "
                "(converting from platform-specific to platform-agnostic tags)."
            )
        elif agnostic.tag is not None:
            highest = agnostic
            self.reporter.log(f"Highest existing tag was {highest.tag}.")
        else:
            highest = specific
            if highest.tag is None:
                self.reporter.log("No existing tags found.")
            else:
                self.reporter.log(f"Highest existing tag was {highest.tag}.")

        return BuildIdentity(
            build=max(agnostic.build, specific.build) + 1,
            commit=self.store.head_commit(),
            version=highest.version or DEFAULT_VERSION,
        )

    def build_identity(self, require_head_tag: bool = True) -> BuildIdentity:
        if require_head_tag:
            return self.resolve_at_head()
        return self.resolve_next()
