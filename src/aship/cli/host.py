"""
``aship host`` commands: manage the host registry.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from aship.connections.ssh_probe import DEFAULT_TIMEOUT, probe_sync
from aship.engine.errors import (
    AshipError,
    DuplicateNameError,
    ExitCode,
    NotFoundError,
    ValidationError,
)
from aship.hosts.models import HOST_SOURCES, HostRecord, utc_now, validate_host
from aship.hosts.ssh_config import DEFAULT_SSH_CONFIG, default_user, parse_ssh_config
from aship.hosts.transfer import EXPORT_FORMATS, export_hosts, import_hosts, load_host_file
from aship.inventory.model import DEFAULT_GROUP
from aship.platform import fs
from aship.platform.paths import expand


def add_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser(
        "host",
        help="Manage registered hosts",
        description="Add, edit, list, import and export registered SSH hosts",
    )
    parser.set_defaults(help_parser=parser)
    actions = parser.add_subparsers(dest="host_command", metavar="<action>")

    add = actions.add_parser("add", help="Register a new host")
    _add_host_fields(add)
    add.add_argument("--test", action="store_true", help="Test the SSH connection before saving")
    add.add_argument("--force", action="store_true", help="Replace an existing host of the same name")
    add.set_defaults(handler=cmd_add)

    edit = actions.add_parser("edit", help="Edit a host (replaces the record)")
    edit.add_argument("host", help="Name of the host to edit")
    _add_host_fields(edit)
    edit.set_defaults(handler=cmd_edit)

    list_ = actions.add_parser("list", help="List hosts")
    list_.add_argument("--usage", action="store_true", help="Show usage and sort by last use")
    list_.add_argument("--source", choices=HOST_SOURCES, help="Only hosts from this source")
    list_.add_argument("--format", choices=("table", "json"), default="table")
    list_.add_argument("-q", "--quiet", action="store_true", help="Print host names only")
    list_.set_defaults(handler=cmd_list)

    show = actions.add_parser("show", help="Show one host")
    show.add_argument("host")
    show.add_argument("--format", choices=("table", "json"), default="table")
    show.set_defaults(handler=cmd_show)

    remove = actions.add_parser("remove", help="Remove a host and its usage history")
    remove.add_argument("host")
    remove.set_defaults(handler=cmd_remove)

    imp = actions.add_parser("import", help="Import hosts from ssh config or a file")
    source = imp.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--ssh-config",
        nargs="?",
        const=DEFAULT_SSH_CONFIG,
        metavar="PATH",
        help=f"Read an OpenSSH client config (default: {DEFAULT_SSH_CONFIG})",
    )
    source.add_argument("--file", metavar="PATH", help="Read a JSON or YAML host file")
    imp.add_argument("--filter", help="Only names matching this wildcard pattern (e.g. 'web*')")
    imp.add_argument("--overwrite", action="store_true", help="Replace hosts that already exist")
    imp.set_defaults(handler=cmd_import)

    exp = actions.add_parser("export", help="Export hosts")
    exp.add_argument("--format", choices=EXPORT_FORMATS, default="json")
    exp.add_argument("-o", "--output", help="Write to this file instead of stdout")
    exp.add_argument("--include-usage", action="store_true", help="Embed usage history (json/yaml)")
    exp.add_argument("--group", default=DEFAULT_GROUP, help="Group name for the ansible format")
    exp.add_argument("--source", choices=HOST_SOURCES, help="Only hosts from this source")
    exp.set_defaults(handler=cmd_export)

    clear = actions.add_parser("clear", help="Clear usage history, recent connection or everything")
    clear.add_argument("--usage", action="store_true", help="Clear usage history")
    clear.add_argument("--recent", action="store_true", help="Clear the recent connection")
    clear.add_argument("--all", action="store_true", help="Remove all hosts, usage and recent connection")
    clear.set_defaults(handler=cmd_clear)

    test = actions.add_parser("test", help="Test the SSH connection of a host")
    test.add_argument("host")
    test.add_argument("--timeout", type=int, default=DEFAULT_TIMEOUT)
    test.set_defaults(handler=cmd_test)


def _add_host_fields(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--name", help="Host name (defaults to the hostname)")
    parser.add_argument("--hostname", help="Address or DNS name")
    parser.add_argument("--user", help="SSH user")
    parser.add_argument("--port", type=int, help="SSH port (default: 22)")
    parser.add_argument("--identity-file", dest="identity_file", help="Private key file")
    parser.add_argument("--description", help="Free text description")


def _host_data(args: argparse.Namespace) -> Dict[str, Any]:
    data = {
        "name": args.name,
        "hostname": args.hostname,
        "user": args.user,
        "port": args.port,
        "identity_file": expand(args.identity_file) if args.identity_file else None,
        "description": args.description,
    }
    return {key: value for key, value in data.items() if value is not None}


def _print_record(record: HostRecord) -> None:
    print(f"Name:        {record.name}")
    print(f"Hostname:    {record.hostname}")
    print(f"User:        {record.user}")
    print(f"Port:        {record.port}")
    if record.identity_file:
        print(f"Identity:    {record.identity_file}")
    if record.description:
        print(f"Description: {record.description}")
    print(f"Source:      {record.source}")
    print(f"Created:     {record.created_at}")
    if record.connection_success_at:
        print(f"Last OK:     {record.connection_success_at}")


def cmd_add(args: argparse.Namespace, ctx) -> int:
    """Register a host from command line options."""
    if not args.hostname:
        raise AshipError("--hostname is required")

    data = _host_data(args)
    data.setdefault("user", default_user())
    data["source"] = "manual"
    name = data.get("name") or data["hostname"]

    if ctx.store.exists(name) and not args.force:
        raise DuplicateNameError(name)

    if args.test:
        outcome = validate_host({**data, "name": name, "created_at": utc_now()})
        if not outcome.ok:
            raise ValidationError(f'Invalid host data for "{name}"', outcome.errors)
        candidate = outcome.data
        result = probe_sync(candidate)
        if not result.success:
            print(f"Connection test failed for {candidate.target}: {result.message}", file=sys.stderr)
            return ExitCode.GENERIC_ERROR
        print(f"Connection test passed ({result.duration:.1f}s)")
        data["connection_success_at"] = utc_now()

    if args.force and ctx.store.exists(name):
        ctx.store.remove(name)

    record = ctx.store.add(data, name)
    print(f"Added host {record.name} ({record.target})")
    return ExitCode.SUCCESS


def cmd_edit(args: argparse.Namespace, ctx) -> int:
    data = _host_data(args)
    if not data:
        raise AshipError("Nothing to change", "Pass at least one of --name, --hostname, --user, --port")
    record = ctx.store.replace(args.host, data)
    print(f"Updated host {record.name} ({record.target})")
    return ExitCode.SUCCESS


def _selected(ctx, source: Optional[str]) -> List[HostRecord]:
    records = ctx.store.list()
    if source:
        records = [r for r in records if r.source == source]
    return records


def cmd_list(args: argparse.Namespace, ctx) -> int:
    """List hosts sorted by name, or by last use with --usage."""
    usage = ctx.store.get_usage_history()
    if args.usage:
        records = [r for r in ctx.store.sorted_by_usage() if not args.source or r.source == args.source]
    else:
        records = sorted(_selected(ctx, args.source), key=lambda r: r.name)

    if args.quiet:
        for record in records:
            print(record.name)
        return ExitCode.SUCCESS

    if args.format == "json":
        payload = []
        for record in records:
            item = record.to_dict()
            if args.usage and record.name in usage:
                item["usage"] = usage[record.name].model_dump()
            payload.append(item)
        print(json.dumps(payload, indent=2))
        return ExitCode.SUCCESS

    if not records:
        print("No hosts registered. Add one with: aship host add --hostname <address>")
        return ExitCode.SUCCESS

    width = max(len("NAME"), *(len(r.name) for r in records))
    header = f"{'NAME':<{width}}  {'TARGET':<32}  {'SOURCE':<10}"
    if args.usage:
        header += f"  {'USES':>4}  LAST USED"
    print(header)
    for record in records:
        line = f"{record.name:<{width}}  {record.target:<32}  {record.source:<10}"
        if args.usage:
            entry = usage.get(record.name)
            line += f"  {entry.use_count if entry else 0:>4}  {entry.last_used if entry else '-'}"
        print(line)
    return ExitCode.SUCCESS


def cmd_show(args: argparse.Namespace, ctx) -> int:
    record = ctx.store.require(args.host)
    usage = ctx.store.get_usage(args.host)
    if args.format == "json":
        payload = record.to_dict()
        if usage:
            payload["usage"] = usage.model_dump()
        print(json.dumps(payload, indent=2))
        return ExitCode.SUCCESS

    _print_record(record)
    if usage:
        print(f"Used:        {usage.use_count} time(s), last {usage.last_used}")
    return ExitCode.SUCCESS


def cmd_remove(args: argparse.Namespace, ctx) -> int:
    record = ctx.store.remove(args.host)
    print(f"Removed host {record.name}")
    return ExitCode.SUCCESS


def cmd_import(args: argparse.Namespace, ctx) -> int:
    if args.ssh_config:
        path = expand(args.ssh_config)
        if not Path(path).is_file():
            raise NotFoundError(path, kind="SSH config")
        candidates = parse_ssh_config(fs.read_file(path))
        source = "ssh_config"
    else:
        if not Path(args.file).is_file():
            raise NotFoundError(args.file, kind="File")
        candidates = load_host_file(args.file)
        source = "imported"

    summary = import_hosts(ctx.store, candidates, source, pattern=args.filter, overwrite=args.overwrite)

    for name in summary.imported:
        print(f"  + {name}")
    for name in summary.replaced:
        print(f"  ~ {name}")
    for name in summary.skipped:
        print(f"  = {name} (exists, use --overwrite to replace)")
    for name, reason in summary.failed.items():
        print(f"  ! {name}: {reason}", file=sys.stderr)
    print(
        f"Imported {len(summary.imported)}, replaced {len(summary.replaced)}, "
        f"skipped {len(summary.skipped)}, failed {len(summary.failed)}"
    )
    return ExitCode.GENERIC_ERROR if summary.failed else ExitCode.SUCCESS


def cmd_export(args: argparse.Namespace, ctx) -> int:
    records = _selected(ctx, args.source)
    usage = ctx.store.get_usage_history() if args.include_usage else None
    text = export_hosts(records, args.format, usage=usage, group=args.group)
    if args.output:
        fs.atomic_write(args.output, text)
        print(f"Exported {len(records)} host(s) to {args.output}")
    else:
        sys.stdout.write(text)
    return ExitCode.SUCCESS


def cmd_clear(args: argparse.Namespace, ctx) -> int:
    if not (args.usage or args.recent or args.all):
        raise AshipError("Nothing to clear", "Pass --usage, --recent or --all")
    if args.all:
        count = ctx.store.clear_hosts()
        ctx.store.clear_recent()
        print(f"Removed {count} host(s), usage history and recent connection")
        return ExitCode.SUCCESS
    if args.usage:
        ctx.store.clear_usage()
        print("Cleared usage history")
    if args.recent:
        ctx.store.clear_recent()
        print("Cleared recent connection")
    return ExitCode.SUCCESS


def cmd_test(args: argparse.Namespace, ctx) -> int:
    record = ctx.store.require(args.host)
    result = probe_sync(record, timeout=args.timeout)
    previous = ctx.store.get_recent()
    attempts = 1
    if previous is not None and previous.host == record.name:
        attempts = previous.connection_attempts + 1
    ctx.store.save_recent({
        "host": record.name,
        "user": record.user,
        "port": record.port,
        "lastInputTime": utc_now(),
        "lastConnectionAttempt": utc_now(),
        "lastConnectionSuccess": result.success,
        "connectionAttempts": attempts,
    })
    if result.success:
        print(f"OK   {record.name}: {result.message} ({result.duration:.1f}s)")
        return ExitCode.SUCCESS
    print(f"FAIL {record.name}: {result.message}", file=sys.stderr)
    return ExitCode.GENERIC_ERROR
