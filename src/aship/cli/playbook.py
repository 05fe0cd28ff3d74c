"""
``aship run``: run a playbook against registered hosts.

Usage:
    aship run site.yml -H web-1,web-2
    aship run deploy -H web-1 -i inventory.yml -m merge -e app_port=8080
    aship run site.yml -i inventory.yml --limit web -- --forks 10

Options not known to aship are passed through to ansible-playbook.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from aship.config.project import ProjectConfig, find_project_config, load_project_config
from aship.engine.errors import AshipError, ExitCode, NotFoundError
from aship.engine.executor import parse_extra_vars
from aship.engine.resolver import DEFAULT_MODE, RunMode
from aship.engine.runner import PlaybookRunner


def add_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser(
        "run",
        help="Run a playbook",
        description="Run ansible-playbook against registered hosts and/or an inventory",
    )
    parser.add_argument(
        "playbook",
        nargs="?",
        help="Playbook name from aship.yml or a path to a playbook file",
    )
    parser.add_argument("-H", "--hosts", help="Comma-separated registered host names")
    parser.add_argument("-i", "--inventory", help="Inventory file")
    parser.add_argument(
        "-m", "--inventory-mode",
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
    parser.add_argument("-l", "--limit", help="Limit to a host pattern")
    parser.add_argument(
        "-t", "--tags",
        help="Only run these tags; 'default' and aship.yml tag groups expand to their tags",
    )
    parser.add_argument("--skip-tags", help="Skip plays and tasks tagged with these values")
    parser.add_argument("-C", "--check", action="store_true", help="Don't make any changes")
    parser.add_argument("-D", "--diff", action="store_true", help="Show differences")
    parser.add_argument("--project", help="Path to aship.yml (default: search upwards)")
    parser.add_argument(
        "-v", "--verbose",
        dest="run_verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v, -vv, -vvv)",
    )
    parser.set_defaults(handler=cmd_run)


def split_hosts(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def load_project(path: Optional[str]) -> Optional[ProjectConfig]:
    if path:
        return load_project_config(path)
    found = find_project_config()
    return load_project_config(found) if found else None


def choose_playbook(requested: Optional[str], project: Optional[ProjectConfig]) -> str:
    """Resolve the playbook argument against the project file."""
    if requested:
        playbook = project.resolve_playbook(requested) if project else requested
    elif project and len(project.playbooks) == 1:
        playbook = project.resolve_playbook(next(iter(project.playbooks)))
    elif project and project.playbooks:
        raise AshipError(
            "No playbook given",
            f"Choose one of: {', '.join(sorted(project.playbooks))}",
        )
    else:
        raise AshipError("No playbook given")

    if not Path(playbook).is_file():
        raise NotFoundError(playbook, kind="Playbook")
    return playbook


def passthrough_args(args: argparse.Namespace) -> List[str]:
    """Options argparse did not recognize, minus a leading ``--``."""
    extra = list(getattr(args, "ansible_args", None) or [])
    if extra and extra[0] == "--":
        extra = extra[1:]
    return extra


def ansible_args(args: argparse.Namespace, project: Optional[ProjectConfig] = None) -> List[str]:
    """
    Translate pass-through options back into ansible-playbook arguments.

    With a project, ``--tags default`` and tag group names from ``aship.yml``
    are expanded into their tags.
    """
    argv: List[str] = []
    if args.limit:
        argv += ["--limit", args.limit]
    if args.tags:
        tags = [t.strip() for t in args.tags.split(",") if t.strip()]
        if project:
            tags = project.normalize_tags().expand(tags)
        argv += ["--tags", ",".join(tags)]
    if args.skip_tags:
        argv += ["--skip-tags", args.skip_tags]
    if args.check:
        argv.append("--check")
    if args.diff:
        argv.append("--diff")
    return argv + passthrough_args(args)


def stream_writer(stream):
    def emit(text: str) -> None:
        stream.write(text)
        stream.flush()
    return emit


def cmd_run(args: argparse.Namespace, ctx) -> int:
    project = load_project(args.project)
    playbook = choose_playbook(args.playbook, project)

    variables = project.default_variables() if project else {}
    variables.update(parse_extra_vars(args.extra_vars))
    if project:
        missing = project.missing_required(variables)
        if missing:
            raise AshipError(
                f"Missing required variables: {', '.join(missing)}",
                "Pass them with -e name=value",
            )

    runner = PlaybookRunner(ctx.store, ctx.layout)
    report = runner.run_sync(
        playbook,
        hosts=split_hosts(args.hosts),
        inventory=args.inventory,
        mode=args.mode,
        extra_vars=variables,
        verbosity=args.verbose + args.run_verbose,
        args=ansible_args(args, project),
        on_stdout=stream_writer(sys.stdout),
        on_stderr=stream_writer(sys.stderr),
    )

    if report.success:
        return ExitCode.SUCCESS
    print(
        f"ERROR: ansible-playbook failed with exit code {report.result.exit_code}",
        file=sys.stderr,
    )
    return report.result.exit_code or ExitCode.RUN_FAILED
