"""
``aship exec``: run one ad-hoc ansible module against registered hosts.

Usage:
    aship exec -H web-1,web-2 -a uptime
    aship exec web ping -H web-1 -i inventory.yml --inventory-mode merge
    aship exec all -m service -a "name=nginx state=started" -H web-1

The module defaults to ``command`` and the host pattern to ``all``.
Options not known to aship are passed through to ansible.
"""

import argparse
import sys
from typing import List

from aship.cli.playbook import passthrough_args, split_hosts, stream_writer
from aship.engine.errors import ExitCode
from aship.engine.executor import parse_extra_vars
from aship.engine.resolver import DEFAULT_MODE, RunMode
from aship.engine.runner import PlaybookRunner


DEFAULT_MODULE = "command"
DEFAULT_PATTERN = "all"


def add_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser(
        "exec",
        help="Run an ad-hoc module",
        description="Run one ansible module against registered hosts and/or an inventory",
    )
    parser.add_argument("pattern", nargs="?", default=DEFAULT_PATTERN, help="Host pattern (default: all)")
    parser.add_argument("module_name", nargs="?", metavar="module", help="Module name (default: command)")
    parser.add_argument("-m", "--module", help="Module name, overrides the positional module")
    parser.add_argument("-a", "--args", dest="module_args", help="Module arguments")
    parser.add_argument("-H", "--hosts", help="Comma-separated registered host names")
    parser.add_argument("-i", "--inventory", help="Inventory file")
    parser.add_argument(
        "--inventory-mode",
        dest="mode",
        choices=[m.value for m in RunMode],
        default=DEFAULT_MODE.value,
        help="How --hosts combine with --inventory (default: inject)",
    )
    parser.add_argument(
        "-e", "--extra-vars",
        action="append",
        default=[],
        help="Extra variables (key=value[,key=value], @file.yml or JSON)",
    )
    parser.add_argument("-l", "--limit", help="Further limit the host pattern")
    parser.add_argument("-C", "--check", action="store_true", help="Don't make any changes")
    parser.add_argument(
        "-v", "--verbose",
        dest="run_verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v, -vv, -vvv)",
    )
    parser.set_defaults(handler=cmd_exec)


def module_ansible_args(args: argparse.Namespace) -> List[str]:
    argv: List[str] = []
    if args.limit:
        argv += ["--limit", args.limit]
    if args.check:
        argv.append("--check")
    return argv + passthrough_args(args)


def cmd_exec(args: argparse.Namespace, ctx) -> int:
    module = args.module or args.module_name or DEFAULT_MODULE

    runner = PlaybookRunner(ctx.store, ctx.layout)
    report = runner.run_module_sync(
        module,
        module_args=args.module_args,
        pattern=args.pattern,
        hosts=split_hosts(args.hosts),
        inventory=args.inventory,
        mode=args.mode,
        extra_vars=parse_extra_vars(args.extra_vars),
        verbosity=args.verbose + args.run_verbose,
        args=module_ansible_args(args),
        on_stdout=stream_writer(sys.stdout),
        on_stderr=stream_writer(sys.stderr),
    )

    if report.success:
        return ExitCode.SUCCESS
    print(
        f"ERROR: ansible {module} failed with exit code {report.result.exit_code}",
        file=sys.stderr,
    )
    return report.result.exit_code or ExitCode.RUN_FAILED
