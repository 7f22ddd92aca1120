"""The ``rt`` command line tool."""

import argparse
import json
import sys
import traceback
from pathlib import Path
from typing import List, Optional

from rich.console import Console  # type: ignore[import]
from rich.markup import escape  # type: ignore[import]
from rich.panel import Panel  # type: ignore[import]
from rich.table import Table  # type: ignore[import]

from release_tools import __version__
from release_tools.console import Reporter
from release_tools.errors import ReleaseError, SettingsError
from release_tools.generation import Generator
from release_tools.git import GitTagStore
from release_tools.resolver import BuildIdentity, BuildResolver
from release_tools.settings import (
    SETTINGS_FILENAME,
    BasicSettings,
    layer_name,
    load_settings,
    save_settings,
)
from release_tools.tagging import TagCreator

# Results go to stdout; progress goes through the Reporter on stderr
output = Console(highlight=False)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--repo", type=Path, default=None, help="Path to the git repository (default: current directory)"
    )
    common.add_argument(
        "--settings", type=Path, help=f"Path to the settings file (default: <repo>/{SETTINGS_FILENAME})"
    )
    common.add_argument("--verbose", "-v", action="store_true", help="Show detailed command output")
    common.add_argument(
        "--quiet", "-q", action="store_true", help="Only show critical errors and final result"
    )
    common.add_argument("--debug", action="store_true", help="Show full stack traces on errors")

    scoped = argparse.ArgumentParser(add_help=False)
    scoped.add_argument("--scheme", help="Scheme the setting applies to")
    scoped.add_argument("--platform", help="Platform the setting applies to (e.g. macOS, iOS)")

    parser = argparse.ArgumentParser(
        prog="rt",
        description="Release tools for Apple-platform apps",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    info = sub.add_parser(
        "build-info",
        parents=[common],
        help="Show the build number, commit and version for HEAD.",
    )
    info.add_argument(
        "--head",
        action="store_true",
        help="Require a version tag at HEAD instead of calculating the next build",
    )
    info.add_argument("--json", action="store_true", help="Print the build identity as JSON")

    tag = sub.add_parser(
        "tag",
        parents=[common],
        help="Create a version tag at HEAD if one doesn't exist.",
    )
    tag.add_argument(
        "--tag-version",
        help=(
            "The version to use for the tag (e.g. 1.2.3). "
            "If not specified, will try to determine from project files."
        ),
    )
    tag.add_argument("--explicit-build", help="Explicit build number to use for the tag.")

    update = sub.add_parser(
        "update-build",
        parents=[common],
        help="Update an .xcconfig, header or .plist file to contain the latest build number.",
    )
    update.add_argument("--config", type=Path, help="The .xcconfig file to update.")
    update.add_argument("--header", type=Path, help="The header file to generate.")
    update.add_argument(
        "--head",
        action="store_true",
        help="With --header, require a version tag at HEAD",
    )
    update.add_argument("--plist", type=Path, help="The .plist file to read.")
    update.add_argument("--plist-dest", type=Path, help="Where to write the updated .plist file.")

    changes = sub.add_parser(
        "changes",
        parents=[common],
        help="Show the change log since a previous version.",
    )
    changes.add_argument("version", help="An older version tag or commit to compare against.")
    changes.add_argument(
        "other",
        nargs="?",
        help="A newer version tag or commit to compare against the older one. Defaults to HEAD.",
    )

    get = sub.add_parser("get", parents=[common, scoped], help="Show a stored setting.")
    get.add_argument("key", help=f"One of: {', '.join(BasicSettings.keys())}")

    set_ = sub.add_parser(
        "set", parents=[common, scoped], help="Store a setting for use by other commands."
    )
    set_.add_argument("key")
    set_.add_argument("value")

    unset = sub.add_parser("unset", parents=[common, scoped], help="Remove a stored setting.")
    unset.add_argument("key")

    show = sub.add_parser(
        "settings",
        parents=[common, scoped],
        help="Show the effective settings for a scheme and platform.",
    )
    show.add_argument("--user", help="Override the stored user")
    show.add_argument("--keychain", help="Override the stored keychain")
    show.add_argument("--api-key", help="Override the stored API key")
    show.add_argument("--api-issuer", help="Override the stored API issuer")

    args = parser.parse_args(argv)

    if args.command == "update-build":
        if (args.plist is None) != (args.plist_dest is None):
            parser.error("--plist and --plist-dest must be used together")
        if args.head and args.header is None:
            parser.error("--head only applies to --header")

    return args


def repo_root(args: argparse.Namespace) -> Path:
    return (args.repo or Path.cwd()).resolve()


def settings_path(args: argparse.Namespace) -> Path:
    return args.settings or repo_root(args) / SETTINGS_FILENAME


def show_build_identity(identity: BuildIdentity, as_json: bool) -> None:
    if as_json:
        output.print_json(json.dumps(identity.as_dict()))
        return

    table = Table(title="Build Information", show_header=True, header_style="bold cyan")
    table.add_column("Field", style="dim")
    table.add_column("Value", style="bold green")
    table.add_row("Version", identity.version)
    table.add_row("Build Number", str(identity.build))
    table.add_row("Commit", identity.commit)
    table.add_row("Tag", identity.tag_name)
    output.print(table)


def cmd_build_info(args: argparse.Namespace, reporter: Reporter) -> None:
    store = GitTagStore.at(repo_root(args), reporter)
    identity = BuildResolver(store, reporter).build_identity(require_head_tag=args.head)
    show_build_identity(identity, args.json)


def cmd_tag(args: argparse.Namespace, reporter: Reporter) -> None:
    root = repo_root(args)
    creator = TagCreator(GitTagStore.at(root, reporter), root, reporter)
    tag_name = creator.create_release_tag(args.tag_version, args.explicit_build)
    if reporter.quiet:
        output.print(tag_name, markup=False)


def cmd_update_build(args: argparse.Namespace, reporter: Reporter) -> None:
    root = repo_root(args)
    generator = Generator(GitTagStore.at(root, reporter), root, reporter)

    if args.header is not None:
        generator.generate_header(args.header, require_head_tag=args.head)
    if args.plist is not None:
        generator.generate_plist(args.plist, args.plist_dest)
    if args.config is not None or (args.header is None and args.plist is None):
        generator.generate_config(args.config)


def cmd_changes(args: argparse.Namespace, reporter: Reporter) -> None:
    store = GitTagStore.at(repo_root(args), reporter)
    log = store.changes(args.version, args.other)
    if not log.strip():
        reporter.log(f"No changes since {args.version}.")
        return
    output.print(log.rstrip("\n"), markup=False, soft_wrap=True)


def cmd_get(args: argparse.Namespace, reporter: Reporter) -> None:
    settings = load_settings(settings_path(args))
    value = settings.get(args.key, args.scheme, args.platform)
    output.print(value if value is not None else "<not set>", markup=False)


def cmd_set(args: argparse.Namespace, reporter: Reporter) -> None:
    path = settings_path(args)
    settings = load_settings(path)
    settings.set(args.key, args.value, args.scheme, args.platform)
    save_settings(settings, path)
    reporter.success(f"Set {args.key} for {layer_name(args.scheme, args.platform)}")


def cmd_unset(args: argparse.Namespace, reporter: Reporter) -> None:
    path = settings_path(args)
    settings = load_settings(path)
    settings.unset(args.key, args.scheme, args.platform)
    save_settings(settings, path)
    reporter.success(f"Removed {args.key} from {layer_name(args.scheme, args.platform)}")


def cmd_settings(args: argparse.Namespace, reporter: Reporter) -> None:
    stored = load_settings(settings_path(args))
    overrides = BasicSettings(
        user=args.user,
        keychain=args.keychain,
        api_key=args.api_key,
        api_issuer=args.api_issuer,
    )
    effective = stored.settings(args.scheme, args.platform, overrides)

    scheme = args.scheme or stored.default_scheme or "(none)"
    table = Table(
        title=f"Settings for {escape(scheme)} {escape(args.platform or '')}".strip(),
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Key", style="dim")
    table.add_column("Value")
    for key in BasicSettings.keys():
        value = getattr(effective, key)
        table.add_row(key, escape(value) if value is not None else "[dim]<not set>[/dim]")
    output.print(table)


COMMANDS = {
    "build-info": cmd_build_info,
    "tag": cmd_tag,
    "update-build": cmd_update_build,
    "changes": cmd_changes,
    "get": cmd_get,
    "set": cmd_set,
    "unset": cmd_unset,
    "settings": cmd_settings,
}


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point"""
    args = parse_arguments(argv)
    reporter = Reporter(verbose=args.verbose, quiet=args.quiet, debug=args.debug)

    try:
        COMMANDS[args.command](args, reporter)
    except ReleaseError as e:
        if reporter.quiet:
            reporter.error(f"Error: {e}")
        else:
            title = "Settings Error" if isinstance(e, SettingsError) else "Release Failed"
            reporter.console.print()
            reporter.console.print(
                Panel(
                    f"[bold red]{title}[/bold red]\n\n{escape(str(e))}",
                    border_style="red",
                    padding=(1, 2),
                )
            )
        sys.exit(1)
    except KeyboardInterrupt:
        reporter.warning("Cancelled by user")
        sys.exit(1)
    except Exception as e:
        reporter.error(f"Unexpected error: {e}")
        if args.debug:
            traceback.print_exc()
        else:
            reporter.console.print("\nRun with --debug flag for full stack trace")
        sys.exit(1)


if __name__ == "__main__":
    main()
