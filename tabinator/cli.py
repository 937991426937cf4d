#!/usr/bin/env python3
"""
Tabinator - rule-based link groups from the command line.

Links carry a name, a URL and tags. Groups select links with blocks of
match values: every include block must match, no exclude block may match.
"""
import sys
import argparse
import json
import csv
import logging
from dataclasses import asdict, fields
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from tabinator.config import init_config, get_config
from tabinator.db import get_db
from tabinator.models import Link
from tabinator.rules import (
    Group,
    MatchBlock,
    MatchType,
    RuleError,
    explain,
    group_members,
)

logger = logging.getLogger(__name__)


console = Console()


def parse_block(text: str) -> MatchBlock:
    """
    Parse a block from the command line.

    Fields are separated by ``;`` and values by ``,``:

        tags=work,home;names=Inbox;urls=https://example.com
    """
    values = {m.value: [] for m in MatchType}
    for part in text.split(";"):
        if not part.strip():
            continue
        key, sep, raw = part.partition("=")
        key = key.strip().lower()
        if not sep or key not in values:
            raise RuleError(f"Invalid block '{text}': expected tags=..., names=... or urls=...")
        values[key].extend(v.strip() for v in raw.split(",") if v.strip())
    return MatchBlock(**values)


def format_block(block: MatchBlock) -> str:
    """One-line description of a block."""
    if block.is_empty:
        return "(any link)"
    parts = []
    for match_type in MatchType:
        block_values = block.values(match_type)
        if block_values:
            parts.append(f"{match_type.value}: {', '.join(block_values)}")
    return " | ".join(parts)


def build_group(args, name: str, base: Optional[Group] = None) -> Group:
    """Build a group from --from/--include/--exclude arguments."""
    if args.from_file:
        with open(args.from_file, "r", encoding="utf-8") as f:
            data = json.load(f)
        data["name"] = name
        return Group.from_dict(data)

    include = [parse_block(text) for text in args.include or []]
    exclude = [parse_block(text) for text in args.exclude or []]
    if base is not None:
        # Keep the side that was not given on the command line
        if args.include is None:
            include = list(base.include)
        if args.exclude is None:
            exclude = list(base.exclude)
    return Group(name=name, include=include, exclude=exclude)


def output_links(links: List[Link], format: str = "table", title: str = "Links"):
    """Output links in the specified format."""
    config = get_config()

    if format == "table":
        table = Table(title=title)
        table.add_column("Name", style="green")
        table.add_column("URL", style="blue")
        table.add_column("Tags", style="yellow")

        for link in links:
            table.add_row(link.name[:50], link.url[:60], ", ".join(link.tag_names)[:40])

        console.print(table)
    elif format == "json":
        data = [link.to_dict() for link in links]
        print(json.dumps(data, indent=2 if config.export_pretty else None, ensure_ascii=False))
    elif format == "csv":
        writer = csv.writer(sys.stdout)
        writer.writerow(["name", "url", "tags"])
        for link in links:
            writer.writerow([link.name, link.url, ",".join(link.tag_names)])
    elif format == "urls":
        for link in links:
            print(link.url)
    else:  # plain
        for link in links:
            tags = " ".join(f"#{t}" for t in link.tag_names)
            print(f"{link.name}\n    {link.url}\n    {tags}")
            print()


def output_group(group: Group, format: str = "table"):
    """Show the blocks of one group."""
    if format == "json":
        print(json.dumps(group.to_dict(), indent=2, ensure_ascii=False))
        return

    table = Table(title=f"Group: {group.name}")
    table.add_column("Kind", style="cyan")
    table.add_column("#", style="magenta")
    table.add_column("Matches", style="white")

    for i, block in enumerate(group.include):
        table.add_row("include", str(i), format_block(block))
    for i, block in enumerate(group.exclude):
        table.add_row("exclude", str(i), format_block(block))
    if group.is_unrestricted:
        table.add_row("-", "-", "(no rules: every link)")

    console.print(table)


# =================
# LINK COMMANDS
# =================

def cmd_link_add(args):
    """Add a link."""
    db = get_db(args.db)
    link = db.add_link(url=args.url, name=args.name, tags=args.tags)
    if args.quiet:
        print(link.url)
    else:
        console.print(f"[green]Added link: {link.name}[/green]")


def cmd_link_list(args):
    """List links."""
    db = get_db(args.db)
    links = db.list_links(order_by=args.sort)
    output_links(links, args.output)


def cmd_link_update(args):
    """Update a link by URL."""
    db = get_db(args.db)
    link = db.update_link(args.url, name=args.name, url=args.new_url, tags=args.tags)
    if link is None:
        console.print(f"[red]Link not found: {args.url}[/red]")
        sys.exit(1)
    if not args.quiet:
        console.print(f"[green]Updated link: {link.url}[/green]")


def cmd_link_delete(args):
    """Delete links by URL."""
    db = get_db(args.db)

    deleted_count = 0
    for url in args.urls:
        if db.delete_link(url):
            deleted_count += 1
            if not args.quiet:
                console.print(f"[green]Deleted link {url}[/green]")
        else:
            console.print(f"[yellow]Link not found: {url}[/yellow]")

    if args.quiet:
        print(deleted_count)


# =================
# TAG COMMANDS
# =================

def cmd_tag_list(args):
    """List tags with usage counts."""
    db = get_db(args.db)
    tags = db.list_tags()

    if args.output == "json":
        print(json.dumps([{"name": name, "count": count} for name, count in tags], indent=2))
        return
    if args.output in ("plain", "urls", "csv"):
        for name, count in tags:
            print(f"{name}\t{count}")
        return

    table = Table(title="Tags")
    table.add_column("Tag", style="yellow")
    table.add_column("Links", style="cyan", justify="right")
    for name, count in tags:
        table.add_row(name, str(count))
    console.print(table)


# =================
# GROUP COMMANDS
# =================

def cmd_group_create(args):
    """Create a group."""
    db = get_db(args.db)
    group = db.create_group(build_group(args, args.name))
    if not args.quiet:
        console.print(f"[green]Created group '{group.name}' ({group.rule_count} rules)[/green]")


def cmd_group_update(args):
    """Replace a group's rules and optionally rename it."""
    db = get_db(args.db)
    current = db.get_group(args.name)
    if current is None:
        console.print(f"[red]Group not found: {args.name}[/red]")
        sys.exit(1)

    group = db.update_group(args.name, build_group(args, args.rename or args.name, base=current))
    if not args.quiet:
        console.print(f"[green]Updated group '{group.name}' ({group.rule_count} rules)[/green]")


def cmd_group_list(args):
    """List groups with their member counts."""
    db = get_db(args.db)
    groups = db.list_groups()
    members = group_members(db.list_links(), groups)

    if args.output == "json":
        data = [dict(group.to_dict(), links=len(members[group.name])) for group in groups]
        print(json.dumps(data, indent=2, ensure_ascii=False))
        return

    table = Table(title="Groups")
    table.add_column("Name", style="green")
    table.add_column("Include", style="cyan", justify="right")
    table.add_column("Exclude", style="red", justify="right")
    table.add_column("Rules", style="magenta", justify="right")
    table.add_column("Links", style="yellow", justify="right")

    for group in groups:
        table.add_row(
            group.name,
            str(len(group.include)),
            str(len(group.exclude)),
            str(group.rule_count),
            str(len(members[group.name])),
        )

    console.print(table)


def cmd_group_show(args):
    """Show a group's blocks."""
    db = get_db(args.db)
    group = db.get_group(args.name)
    if group is None:
        console.print(f"[red]Group not found: {args.name}[/red]")
        sys.exit(1)
    output_group(group, args.output)


def cmd_group_links(args):
    """List the links that belong to a group."""
    db = get_db(args.db)
    links = db.group_links(args.name, order_by=args.sort)
    if links is None:
        console.print(f"[red]Group not found: {args.name}[/red]")
        sys.exit(1)
    output_links(links, args.output, title=f"Links in {args.name}")


def cmd_group_explain(args):
    """Show which blocks of a group match a link."""
    db = get_db(args.db)
    group = db.get_group(args.name)
    if group is None:
        console.print(f"[red]Group not found: {args.name}[/red]")
        sys.exit(1)
    link = db.get_link(args.url)
    if link is None:
        console.print(f"[red]Link not found: {args.url}[/red]")
        sys.exit(1)

    result = explain(link, group)

    if args.output == "json":
        print(json.dumps({
            "group": group.name,
            "url": link.url,
            "include": list(result.include),
            "exclude": list(result.exclude),
            "matches": result.matches,
        }, indent=2))
        return

    table = Table(title=f"{link.url} in '{group.name}'")
    table.add_column("Kind", style="cyan")
    table.add_column("#", style="magenta")
    table.add_column("Block", style="white")
    table.add_column("Matched")

    for i, (block, hit) in enumerate(zip(group.include, result.include)):
        table.add_row("include", str(i), format_block(block), "[green]yes[/green]" if hit else "[red]no[/red]")
    for i, (block, hit) in enumerate(zip(group.exclude, result.exclude)):
        table.add_row("exclude", str(i), format_block(block), "[red]yes[/red]" if hit else "[green]no[/green]")

    console.print(table)
    if result.matches:
        console.print("[green]Link belongs to the group[/green]")
    else:
        console.print("[yellow]Link does not belong to the group[/yellow]")


def cmd_group_delete(args):
    """Delete a group."""
    db = get_db(args.db)
    if db.delete_group(args.name):
        if not args.quiet:
            console.print(f"[green]Deleted group '{args.name}'[/green]")
    else:
        console.print(f"[yellow]Group not found: {args.name}[/yellow]")


# =================
# SETTINGS, CONFIG, DATA
# =================

def cmd_settings(args):
    """Show or change the tab settings stored in the database."""
    db = get_db(args.db)
    if args.action == "set":
        settings = db.set_user_config(warning_tabs_open=args.warning, max_tabs_open=args.max)
    else:
        settings = db.get_user_config()

    for key, value in settings.items():
        print(f"{key} = {value}")


def cmd_config(args):
    """Manage configuration."""
    config = get_config()

    if args.action == "show":
        if args.key:
            if not hasattr(config, args.key):
                console.print(f"[red]Unknown config key: {args.key}[/red]")
                sys.exit(1)
            print(getattr(config, args.key))
        else:
            print(json.dumps(asdict(config), indent=2))

    elif args.action == "set":
        if not args.key or args.value is None:
            console.print("[red]Usage: tabinator config set KEY VALUE[/red]")
            sys.exit(1)
        known = {f.name: f for f in fields(config)}
        if args.key not in known:
            console.print(f"[red]Unknown config key: {args.key}[/red]")
            sys.exit(1)

        current = getattr(config, args.key)
        value = args.value
        if isinstance(current, bool):
            value = value.lower() in ("true", "1", "yes")
        elif isinstance(current, int):
            value = int(value)

        setattr(config, args.key, value)
        config.save()
        if not args.quiet:
            console.print(f"[green]Set {args.key} = {value}[/green]")


def cmd_import(args):
    """Import links, and for bundles also groups and settings."""
    from tabinator.importers import import_file

    db = get_db(args.db)
    path = Path(args.file)

    result = import_file(db, path, args.format)
    if args.output == "json":
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return
    if args.quiet:
        print(result.total)
        return

    console.print(
        f"[green]Imported {result.imported} new and updated {result.updated} links "
        f"from {path}[/green]"
    )
    if result.groups:
        console.print(f"[green]Imported {result.groups} groups[/green]")
    if result.skipped:
        console.print(f"[yellow]Skipped {result.skipped} records[/yellow]")
    for error in result.errors:
        console.print(f"[yellow]  {error}[/yellow]")


def cmd_export(args):
    """Export the library."""
    from tabinator.exporters import export_file, export_to_string

    db = get_db(args.db)
    format = args.format or get_config().export_format

    if args.file == "-":
        sys.stdout.write(export_to_string(db, format))
        return

    export_file(db, Path(args.file), format)
    if not args.quiet:
        console.print(f"[green]Exported to {args.file} ({format})[/green]")


def cmd_data(args):
    """Print the full data bundle: settings, groups and links."""
    db = get_db(args.db)
    print(json.dumps(db.data(), indent=2, ensure_ascii=False))


def cmd_stats(args):
    """Show database statistics."""
    db = get_db(args.db)
    stats = db.stats()

    table = Table(title="Database Statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    for key, value in stats.items():
        table.add_row(key.replace("_", " ").title(), str(value))
    console.print(table)


def _add_group_rule_args(parser):
    parser.add_argument("--include", action="append", metavar="BLOCK",
                        help="Include block, e.g. 'tags=work,home;names=Inbox' (repeatable)")
    parser.add_argument("--exclude", action="append", metavar="BLOCK",
                        help="Exclude block, same syntax as --include (repeatable)")
    parser.add_argument("--from", dest="from_file", metavar="FILE",
                        help="Read include/exclude blocks from a JSON file")


def build_parser() -> argparse.ArgumentParser:
    from tabinator.exporters import EXPORT_FORMATS
    from tabinator.importers import IMPORT_FORMATS

    parser = argparse.ArgumentParser(
        prog="tabinator",
        description="Tabinator - rule-based link groups",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Links
  tabinator link add https://example.com --name "Example" --tags "web,demo"
  tabinator link update https://example.com --tags "web"
  tabinator link delete https://example.com

  # Groups: include blocks are AND-ed, exclude blocks are OR-ed
  tabinator group create Work --include "tags=work" --exclude "tags=archive"
  tabinator group links Work
  tabinator group explain Work https://example.com

  # Import/Export
  tabinator import bookmarks.html
  tabinator export backup.json --format tabinator

Configuration:
  Default database: ./tabinator.db or from config
  Config file: ~/.config/tabinator/config.toml
  Environment: TABINATOR_DATABASE, TABINATOR_OUTPUT_FORMAT
        """
    )

    # Global options
    parser.add_argument("--db", help="Database file (default: tabinator.db)")
    parser.add_argument("--config", help="Config file path")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal output")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("-o", "--output", choices=["table", "json", "csv", "plain", "urls"],
                        help="Output format")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Command groups")

    # =================
    # LINK GROUP
    # =================
    link_parser = subparsers.add_parser("link", help="Link operations")
    link_subparsers = link_parser.add_subparsers(dest="link_command", required=True)

    link_add = link_subparsers.add_parser("add", help="Add a link")
    link_add.add_argument("url", help="URL (http or https)")
    link_add.add_argument("--name", required=True, help="Link name")
    link_add.add_argument("--tags", help="Comma-separated tags")
    link_add.set_defaults(func=cmd_link_add)

    link_list = link_subparsers.add_parser("list", help="List links")
    link_list.add_argument("--sort", default="id",
                           choices=["id", "name", "created_at", "updated_at"],
                           help="Sort order")
    link_list.set_defaults(func=cmd_link_list)

    link_update = link_subparsers.add_parser("update", help="Update a link")
    link_update.add_argument("url", help="Current URL of the link")
    link_update.add_argument("--name", help="New name")
    link_update.add_argument("--url", dest="new_url", help="New URL")
    link_update.add_argument("--tags", help="Replace tags (comma-separated, '' to clear)")
    link_update.set_defaults(func=cmd_link_update)

    link_delete = link_subparsers.add_parser("delete", help="Delete links")
    link_delete.add_argument("urls", nargs="+", help="URLs to delete")
    link_delete.set_defaults(func=cmd_link_delete)

    # =================
    # TAG GROUP
    # =================
    tag_parser = subparsers.add_parser("tag", help="Tag operations")
    tag_subparsers = tag_parser.add_subparsers(dest="tag_command", required=True)

    tag_list = tag_subparsers.add_parser("list", help="List tags")
    tag_list.set_defaults(func=cmd_tag_list)

    # =================
    # GROUP GROUP
    # =================
    group_parser = subparsers.add_parser("group", help="Group operations")
    group_subparsers = group_parser.add_subparsers(dest="group_command", required=True)

    group_create = group_subparsers.add_parser("create", help="Create a group")
    group_create.add_argument("name", help="Group name")
    _add_group_rule_args(group_create)
    group_create.set_defaults(func=cmd_group_create)

    group_update = group_subparsers.add_parser("update", help="Replace a group's rules")
    group_update.add_argument("name", help="Group name")
    group_update.add_argument("--rename", help="New group name")
    _add_group_rule_args(group_update)
    group_update.set_defaults(func=cmd_group_update)

    group_list = group_subparsers.add_parser("list", help="List groups")
    group_list.set_defaults(func=cmd_group_list)

    group_show = group_subparsers.add_parser("show", help="Show a group's blocks")
    group_show.add_argument("name", help="Group name")
    group_show.set_defaults(func=cmd_group_show)

    group_links = group_subparsers.add_parser("links", help="List links in a group")
    group_links.add_argument("name", help="Group name")
    group_links.add_argument("--sort", default="id",
                             choices=["id", "name", "created_at", "updated_at"],
                             help="Sort order")
    group_links.set_defaults(func=cmd_group_links)

    group_explain = group_subparsers.add_parser("explain", help="Explain a membership decision")
    group_explain.add_argument("name", help="Group name")
    group_explain.add_argument("url", help="Link URL")
    group_explain.set_defaults(func=cmd_group_explain)

    group_delete = group_subparsers.add_parser("delete", help="Delete a group")
    group_delete.add_argument("name", help="Group name")
    group_delete.set_defaults(func=cmd_group_delete)

    # =================
    # SETTINGS / CONFIG
    # =================
    settings_parser = subparsers.add_parser("settings", help="Tab settings stored with the data")
    settings_parser.add_argument("action", choices=["show", "set"], nargs="?", default="show")
    settings_parser.add_argument("--warning", type=int, help="Open-tabs warning threshold")
    settings_parser.add_argument("--max", type=int, help="Maximum open tabs")
    settings_parser.set_defaults(func=cmd_settings)

    config_parser = subparsers.add_parser("config", help="Manage configuration")
    config_parser.add_argument("action", choices=["show", "set"])
    config_parser.add_argument("key", nargs="?", help="Config key")
    config_parser.add_argument("value", nargs="?", help="Config value (for set)")
    config_parser.set_defaults(func=cmd_config)

    # =================
    # IMPORT / EXPORT
    # =================
    import_parser = subparsers.add_parser("import", help="Import links (merge)")
    import_parser.add_argument("file", help="File to import")
    import_parser.add_argument("--format", choices=IMPORT_FORMATS,
                               help="Force format (auto-detected by default)")
    import_parser.set_defaults(func=cmd_import)

    export_parser = subparsers.add_parser("export", help="Export the library")
    export_parser.add_argument("file", help="Output file ('-' for stdout)")
    export_parser.add_argument("--format", choices=EXPORT_FORMATS,
                               help="Export format (default from config)")
    export_parser.set_defaults(func=cmd_export)

    data_parser = subparsers.add_parser("data", help="Print settings, groups and links as JSON")
    data_parser.set_defaults(func=cmd_data)

    stats_parser = subparsers.add_parser("stats", help="Show database statistics")
    stats_parser.set_defaults(func=cmd_stats)

    return parser


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Initialize configuration with CLI overrides
    config_args = {}
    if args.output:
        config_args["output_format"] = args.output
    if args.config:
        config_args["config_file"] = Path(args.config)

    config = init_config(database=args.db, **config_args)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.log_level,
        format="%(levelname)s: %(message)s",
    )

    # Set default output format if not specified
    if not args.output:
        args.output = config.output_format

    # Execute command
    try:
        args.func(args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
