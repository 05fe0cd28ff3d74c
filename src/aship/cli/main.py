"""
Main CLI entrypoint for aship.

Usage:
    aship --version
    aship host add --hostname 10.0.0.1 --user admin --name web-1
    aship inventory generate --filter web -o inventory.yml
    aship run deploy -H web-1,web-2 -i inventory.yml -m merge
    aship exec all ping -H web-1,web-2
"""

import argparse
import platform
import sys
from dataclasses import dataclass

from loguru import logger

from aship import __version__
from aship.cli import exec as exec_cli
from aship.cli import host as host_cli
from aship.cli import inventory as inventory_cli
from aship.cli import playbook as playbook_cli
from aship.config.settings import AshipSettings, DirectoryLayout, load_settings
from aship.engine.errors import AshipError, ConflictDetectedError, ExitCode
from aship.hosts.cache import HostCache
from aship.hosts.store import HostStore
from aship.logger import setup_logger


@dataclass
class CliContext:
    """Objects shared by all command handlers of one invocation."""

    settings: AshipSettings
    layout: DirectoryLayout
    store: HostStore


def get_version_string() -> str:
    """Generate a detailed version string."""
    python_version = platform.python_version()
    os_info = f"{platform.system()} {platform.release()}"
    return (
        f"aship {__version__}\n"
        f"  python: {python_version}\n"
        f"  platform: {os_info}"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for aship."""
    parser = argparse.ArgumentParser(
        prog="aship",
        description="Manage SSH hosts and run ansible against them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  aship host add --name web-1 --hostname 10.0.0.1 --user admin
  aship host list --usage
  aship inventory inject inventory.yml --filter web --backup
  aship run site.yml -H web-1 -i inventory.yml -m inject
  aship exec all -a uptime -H web-1
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=get_version_string(),
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v, -vv, -vvv)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="<command>")
    host_cli.add_parser(subparsers)
    inventory_cli.add_parser(subparsers)
    playbook_cli.add_parser(subparsers)
    exec_cli.add_parser(subparsers)

    return parser


def build_context() -> CliContext:
    settings = load_settings()
    layout = settings.layout
    try:
        layout.initialize()
    except OSError as e:
        logger.warning(f"Cannot create aship directories under {layout.root}: {e}")
    return CliContext(settings=settings, layout=layout, store=HostStore(layout, HostCache()))


def main(args: list[str] | None = None) -> int:
    """Main entrypoint for aship CLI."""
    parser = create_parser()
    parsed, extra = parser.parse_known_args(args)

    if extra and parsed.command not in ("run", "exec"):
        parser.error(f"unrecognized arguments: {' '.join(extra)}")
    parsed.ansible_args = extra

    handler = getattr(parsed, "handler", None)
    if handler is None:
        # "aship" or "aship host" without an action
        help_parser = getattr(parsed, "help_parser", parser)
        help_parser.print_help()
        return ExitCode.SUCCESS

    verbosity = parsed.verbose + getattr(parsed, "run_verbose", 0)
    setup_logger(verbosity)
    try:
        ctx = build_context()
        setup_logger(verbosity, log_file=str(ctx.layout.log_file), file_level=ctx.settings.log_level)
        return int(handler(parsed, ctx))
    except ConflictDetectedError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        for name in e.conflicts:
            print(f"  - {name}", file=sys.stderr)
        return e.exit_code
    except AshipError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return e.exit_code
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return ExitCode.KEYBOARD_INTERRUPT


if __name__ == "__main__":
    sys.exit(main())
