"""Release tools for Apple-platform apps.

Resolves the build identity (build number, commit, version) of a release from
the git tag history, creates version tags and writes build-info files.
"""

__version__ = "0.1.0"
