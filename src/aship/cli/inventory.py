"""
``aship inventory`` commands: generate, inject and show inventories.

Usage:
    aship inventory generate --filter web -o inventory.yml
    aship inventory inject inventory.yml --backup --force
    aship inventory show inventory.yml --groups-only
"""

import argparse
import json
import sys
from typing import List, Optional

from aship.engine.errors import ExitCode
from aship.hosts.models import HOST_SOURCES
from aship.inventory.codec import InventoryFormat, encode, load_inventory, save_inventory
from aship.inventory.generator import InventoryOptions, generate
from aship.inventory.injector import inject, preview
from aship.inventory.model import DEFAULT_GROUP, InventoryModel


def add_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser(
        "inventory",
        help="Generate or inject Ansible inventories",
        description="Build Ansible inventories from registered hosts",
    )
    parser.set_defaults(help_parser=parser)
    actions = parser.add_subparsers(dest="inventory_command", metavar="<action>")

    gen = actions.add_parser("generate", help="Generate an inventory from registered hosts")
    gen.add_argument("-o", "--output", help="Write to this file instead of stdout")
    gen.add_argument(
        "--format",
        choices=[f.value for f in InventoryFormat],
        help="Output format (default: from --output extension, else yaml)",
    )
    add_filter_arguments(gen)
    gen.set_defaults(handler=cmd_generate)

    inj = actions.add_parser("inject", help="Inject registered hosts into an existing inventory")
    inj.add_argument("file", help="Inventory file (YAML or JSON)")
    inj.add_argument("--backup", action="store_true", help="Copy the file to <file>.backup first")
    inj.add_argument("--dry-run", action="store_true", help="Show what would change without writing")
    inj.add_argument("--force", action="store_true", help="Overwrite hosts already in the inventory")
    add_filter_arguments(inj)
    inj.set_defaults(handler=cmd_inject)

    show = actions.add_parser("show", help="Show an inventory (default: generated from all hosts)")
    show.add_argument("file", nargs="?", help="Inventory file to show")
    what = show.add_mutually_exclusive_group()
    what.add_argument("--hosts-only", action="store_true", help="List host names only")
    what.add_argument("--groups-only", action="store_true", help="List group names only")
    what.add_argument("--count", action="store_true", help="Print host and group counts")
    show.add_argument(
        "--format",
        choices=[f.value for f in InventoryFormat],
        default=InventoryFormat.YAML.value,
    )
    show.set_defaults(handler=cmd_show)


def _csv(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--filter", help="Regex matched against host name or hostname (case-insensitive)")
    parser.add_argument("--source", choices=HOST_SOURCES, help="Only hosts from this source")
    parser.add_argument("--group", default=DEFAULT_GROUP, help=f"Group name (default: {DEFAULT_GROUP})")
    parser.add_argument("--include", help="Comma-separated host names to include")
    parser.add_argument("--exclude", help="Comma-separated host names to exclude")


def options_from_args(args: argparse.Namespace) -> InventoryOptions:
    return InventoryOptions(
        source=args.source,
        filter=args.filter,
        include_hosts=_csv(args.include),
        exclude_hosts=_csv(args.exclude),
        group_name=args.group,
        force=getattr(args, "force", False),
        backup=getattr(args, "backup", False),
    )


def cmd_generate(args: argparse.Namespace, ctx) -> int:
    model = generate(ctx.store.list(), options_from_args(args))

    if args.format:
        fmt = InventoryFormat(args.format)
    elif args.output:
        fmt = InventoryFormat.for_path(args.output)
    else:
        fmt = InventoryFormat.YAML

    if args.output:
        save_inventory(args.output, model, fmt)
        print(f"Generated inventory with {len(model.hosts)} host(s): {args.output}")
    else:
        sys.stdout.write(encode(model, fmt))
    return ExitCode.SUCCESS


def cmd_inject(args: argparse.Namespace, ctx) -> int:
    options = options_from_args(args)
    records = ctx.store.list()

    if args.dry_run:
        plan = preview(args.file, records, options)
        print(f"Dry run for {args.file}:")
        for name in plan.to_add:
            print(f"  + {name}")
        for name in plan.to_update:
            print(f"  ~ {name}")
        for name in plan.to_skip:
            print(f"  = {name} (exists)")
        for group in plan.groups_to_create:
            print(f"  new group: {group}")
        for conflict in plan.conflicts:
            print(f"  conflict: {conflict}")
        if plan.has_conflicts:
            print("Re-run with --force to overwrite existing hosts")
        return ExitCode.SUCCESS

    result = inject(args.file, records, options)
    if result.backup_path:
        print(f"Backup written to {result.backup_path}")
    print(
        f"Injected into {result.path} ({result.format.value}): "
        f"{len(result.added)} added, {len(result.updated)} updated"
    )
    return ExitCode.SUCCESS


def cmd_show(args: argparse.Namespace, ctx) -> int:
    if args.file:
        model = load_inventory(args.file).model
    else:
        model = generate(ctx.store.list())
    _show_model(model, args)
    return ExitCode.SUCCESS


def _show_model(model: InventoryModel, args: argparse.Namespace) -> None:
    if args.count:
        summary = model.summary()
        print(f"Hosts:  {summary['hosts']}")
        print(f"Groups: {len(summary['groups'])}")
        for group, members in summary["groups"].items():
            print(f"  {group}: {members}")
    elif args.hosts_only:
        for name in model.host_names():
            print(name)
    elif args.groups_only:
        for name in model.group_names():
            print(name)
    elif args.format == InventoryFormat.JSON.value:
        print(json.dumps(model.to_dict(), indent=2))
    else:
        sys.stdout.write(encode(model, InventoryFormat.YAML))
