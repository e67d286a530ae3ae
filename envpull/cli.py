#!/usr/bin/env python3
"""
Command Line Interface for envpull

``envpull <source>`` is shorthand for ``envpull pull <source>``.
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .env_pull import EnvPull
from .errors import EnvPullError
from .resolution import DEFAULT_ENV_FILE, DEFAULT_ENVIRONMENT
from .ui import UI

COMMANDS = {
    "pull", "push", "diff", "show", "ls", "list", "rm", "delete", "history", "rollback",
    "sources", "source", "grant", "grants", "init", "login", "whoami", "version",
}

ALIASES = {"list": "ls", "delete": "rm", "source": "sources"}

GLOBAL_FLAGS = {"--no-color", "--verbose", "-v"}

DESCRIPTION = "Sync .env files via GCS buckets"

EPILOG = """examples:
  envpull simon                   pull the default env from a source
  envpull simon --env develop     pull a specific environment
  envpull push simon              push the local .env
  envpull ls simon                list available environments
  envpull grant dev@example.com   share the bucket read-only
  envpull init                    initialize a project"""


def _add_target_args(parser: argparse.ArgumentParser, env_help: str) -> None:
    parser.add_argument("source", nargs="?", help="Source name (defaults to the last used source)")
    parser.add_argument("--env", "-e", default=DEFAULT_ENVIRONMENT, help=env_help)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="envpull",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"envpull {__version__}")
    parser.add_argument("--no-color", action="store_true", help="Disable coloured output")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log git, gcloud and GCS calls")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    pull_parser = subparsers.add_parser("pull", help="Pull an env file from a remote source")
    _add_target_args(pull_parser, "Environment name to pull (e.g., develop, prod)")
    pull_parser.add_argument("--file", "-f", default=DEFAULT_ENV_FILE, help="Local file path to write")
    pull_parser.add_argument("--force", action="store_true",
                             help="Overwrite existing file without confirmation")

    push_parser = subparsers.add_parser("push", help="Push a local env file to a remote source")
    _add_target_args(push_parser, "Environment name to push as")
    push_parser.add_argument("--file", "-f", default=DEFAULT_ENV_FILE, help="Local file path to read")
    push_parser.add_argument("--force", action="store_true",
                             help="Overwrite the remote env without confirmation")

    diff_parser = subparsers.add_parser("diff", help="Compare local env with remote")
    _add_target_args(diff_parser, "Environment name to compare")
    diff_parser.add_argument("--file", "-f", default=DEFAULT_ENV_FILE, help="Local file path to compare")

    show_parser = subparsers.add_parser("show", help="Show remote env contents")
    _add_target_args(show_parser, "Environment name to show")

    list_parser = subparsers.add_parser("ls", aliases=["list"],
                                        help="List available environments from a source")
    list_parser.add_argument("source", nargs="?", help="Source name (defaults to the last used source)")

    rm_parser = subparsers.add_parser("rm", aliases=["delete"], help="Delete a remote environment")
    _add_target_args(rm_parser, "Environment name to delete")
    rm_parser.add_argument("--force", action="store_true", help="Delete without confirmation")

    history_parser = subparsers.add_parser("history", help="Show version history of a remote environment")
    _add_target_args(history_parser, "Environment name")

    rollback_parser = subparsers.add_parser("rollback", help="Roll a remote environment back to a generation")
    rollback_parser.add_argument("generation", type=int, help="Generation to restore (see 'envpull history')")
    _add_target_args(rollback_parser, "Environment name")

    sources_parser = subparsers.add_parser("sources", aliases=["source"], help="Manage configured sources")
    source_commands = sources_parser.add_subparsers(dest="source_command")
    source_commands.add_parser("list", help="List configured sources")
    add_parser = source_commands.add_parser("add", help="Add a new source")
    add_parser.add_argument("name", help="Source name")
    add_parser.add_argument("--bucket", "-b", required=True, help="GCS bucket name (e.g., gs://my-bucket)")
    add_parser.add_argument("--project", "-p", required=True, help="GCP project ID")
    remove_parser = source_commands.add_parser("remove", aliases=["rm", "delete"], help="Remove a source")
    remove_parser.add_argument("name", help="Source name")
    remove_parser.add_argument("--force", action="store_true", help="Remove without confirmation")

    grant_parser = subparsers.add_parser("grant", help="Grant bucket access to a team member by email")
    grant_parser.add_argument("email", help="Email address of the Google account")
    grant_parser.add_argument("--source", "-s", help="Source whose bucket to share")
    grant_parser.add_argument("--read-write", action="store_true",
                              help="Grant read-write access instead of read-only")
    grant_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompt")

    grants_parser = subparsers.add_parser("grants", help="Show who has access to a bucket")
    grants_parser.add_argument("--source", "-s", help="Source whose bucket to inspect")

    subparsers.add_parser("init", help="Initialize envpull configuration")
    subparsers.add_parser("login", help="Authenticate with Google Cloud")
    subparsers.add_parser("whoami", help="Show current gcloud identity")
    subparsers.add_parser("version", help="Print version information")

    return parser


def expand_shorthand(argv: List[str]) -> List[str]:
    """
    Insert the implicit ``pull`` command when no command is named.

    Leading global flags are kept in front; ``envpull simon -e prod`` becomes
    ``envpull pull simon -e prod``.
    """
    i = 0
    while i < len(argv) and argv[i] in GLOBAL_FLAGS:
        i += 1
    rest = argv[i:]
    if not rest or rest[0] in COMMANDS or rest[0] in ("-h", "--help", "--version"):
        return argv
    return argv[:i] + ["pull"] + rest


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        args: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    argv = list(sys.argv[1:] if args is None else args)
    parser = build_parser()
    parsed_args = parser.parse_args(expand_shorthand(argv))

    if parsed_args.command is None:
        parser.print_help()
        return 1

    configure_logging(parsed_args.verbose)
    ui = UI(color=False if parsed_args.no_color else None)
    env_pull = EnvPull(ui=ui)

    try:
        return run_command(env_pull, parsed_args)
    except EnvPullError as e:
        ui.error(str(e))
        return 1


def run_command(env_pull: EnvPull, parsed_args: argparse.Namespace) -> int:
    """Dispatch parsed arguments to the matching EnvPull command."""
    command = ALIASES.get(parsed_args.command, parsed_args.command)

    if command == "pull":
        env_pull.pull(parsed_args.source, parsed_args.env, parsed_args.file, parsed_args.force)

    elif command == "push":
        env_pull.push(parsed_args.source, parsed_args.env, parsed_args.file, parsed_args.force)

    elif command == "diff":
        env_pull.diff(parsed_args.source, parsed_args.env, parsed_args.file)

    elif command == "show":
        env_pull.show(parsed_args.source, parsed_args.env)

    elif command == "ls":
        env_pull.list_envs(parsed_args.source)

    elif command == "rm":
        env_pull.delete(parsed_args.source, parsed_args.env, parsed_args.force)

    elif command == "history":
        env_pull.history(parsed_args.source, parsed_args.env)

    elif command == "rollback":
        env_pull.rollback(str(parsed_args.generation), parsed_args.source, parsed_args.env)

    elif command == "sources":
        source_command = parsed_args.source_command
        if source_command == "add":
            env_pull.add_source(parsed_args.name, parsed_args.bucket, parsed_args.project)
        elif source_command in ("remove", "rm", "delete"):
            env_pull.remove_source(parsed_args.name, parsed_args.force)
        else:
            env_pull.list_sources()

    elif command == "grant":
        env_pull.grant(parsed_args.email, parsed_args.source, parsed_args.read_write, parsed_args.yes)

    elif command == "grants":
        env_pull.grants(parsed_args.source)

    elif command == "init":
        env_pull.init()

    elif command == "login":
        env_pull.login()

    elif command == "whoami":
        env_pull.whoami()

    elif command == "version":
        env_pull.ui.println(f"envpull {__version__}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
