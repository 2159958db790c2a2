#!/usr/bin/env python3
"""
roamql - command-line interface.

Run queries against a node store and inspect the query vocabulary.
Output composes with pipes: ``-o ids`` prints one node id per line.
"""
import sys
import argparse
import json
import logging
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from roamql.config import init_config, get_config
from roamql.db import get_store
from roamql.node import Node
from roamql.query.engine import get_engine

logger = logging.getLogger(__name__)

console = Console()


def output_nodes(nodes: List[Node], format: str = "table", title: str = "Nodes"):
    """Output nodes in the specified format."""
    if format == "table":
        table = Table(title=title)
        table.add_column("ID", style="cyan")
        table.add_column("Title", style="green")
        table.add_column("TODO", style="red")
        table.add_column("Tags", style="yellow")
        table.add_column("File", style="blue")

        for node in nodes:
            table.add_row(
                node.id,
                (node.title or "")[:60],
                node.todo or "",
                ", ".join(sorted(node.tags))[:30],
                (node.file_title or node.file or "")[:40],
            )

        console.print(table)
    elif format == "json":
        print(json.dumps([n.to_dict() for n in nodes], indent=2))
    elif format == "ids":
        for node in nodes:
            print(node.id)
    else:
        for node in nodes:
            todo = f"{node.todo} " if node.todo else ""
            tags = " ".join(f":{t}:" for t in sorted(node.tags))
            print(f"[{node.id}] {todo}{node.title} {tags}".rstrip())


def cmd_query(args):
    """Resolve a query and print the ordered result."""
    config = get_config()
    engine = get_engine()
    result = engine.query(args.query, sort=args.sort or config.default_sort)

    limit = config.page_size if args.limit is None else args.limit
    nodes = result.nodes
    if limit and result.count > limit:
        logger.info(f"Showing {limit} of {result.count} nodes")
        nodes = nodes[:limit]

    logger.info(f"{result.count} nodes in {result.metadata['elapsed']:.3f}s")
    output_nodes(nodes, args.output, title=escape(result.metadata["query"]))


def cmd_saved(args):
    """Saved query management."""
    engine = get_engine()
    config = get_config()

    if args.saved_command == "list":
        entries = engine.saved.info()
        if args.output == "json":
            print(json.dumps(entries, indent=2))
            return
        table = Table(title="Saved Queries")
        table.add_column("Name", style="cyan")
        table.add_column("Query", style="green")
        table.add_column("Description", style="white")
        for entry in entries:
            table.add_row(entry["name"], escape(entry["query"]), entry["docstring"])
        console.print(table)

    elif args.saved_command == "show":
        entry = engine.saved.get(args.name)
        if entry is None:
            console.print(f"[red]No saved query named {args.name!r}[/red]")
            sys.exit(1)
        output_nodes(engine.nodes(entry.name, sort=args.sort), args.output, title=entry.name)

    elif args.saved_command == "add":
        engine.add_saved_query(args.name, args.description or "", args.query)
        if config.saved_queries_file:
            engine.saved.save_file(config.saved_queries_file)
            console.print(f"[green]Saved {args.name!r} to {config.saved_queries_file}[/green]")
        else:
            console.print("[yellow]No saved_queries_file configured; query kept for this session only[/yellow]")


def _vocabulary_table(title: str, entries):
    table = Table(title=title)
    table.add_column("Name", style="cyan")
    table.add_column("Description", style="white")
    for entry in entries:
        table.add_row(entry["name"], entry["docstring"])
    console.print(table)


def cmd_vocabulary(args):
    """List predicates, expansions or sorts."""
    engine = get_engine()
    registry = {
        "predicates": engine.predicates,
        "expansions": engine.expansions,
        "sorts": engine.sorts,
    }[args.command]

    if args.output == "json":
        print(json.dumps(registry.info(), indent=2))
    else:
        _vocabulary_table(args.command.capitalize(), registry.info())


def cmd_db_info(args):
    """Show node store statistics."""
    info = get_store().info()
    if args.output == "json":
        print(json.dumps(info, indent=2))
        return
    table = Table(title="Node Store", show_header=False)
    table.add_column("Field", style="cyan bold")
    table.add_column("Value", style="white")
    for key, value in info.items():
        table.add_row(key, str(value))
    console.print(table)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="roamql",
        description="roamql - query knowledge-graph nodes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  roamql query '(and (todo "TODO") (tags "work"))' --sort title
  roamql query '(backlink-to (title "Project Alpha" t))' -o ids
  roamql query '(not (tags "archive"))' --limit 20
  roamql saved add weekly '(and (todo "TODO") (tags "work"))' -d "Open work"
  roamql saved show weekly
  roamql predicates

Configuration:
  Default database: ./roam.db or from config
  Config file: ~/.config/roamql/config.toml
  Environment: ROAMQL_DATABASE, ROAMQL_SAVED_QUERIES_FILE
        """
    )

    parser.add_argument("--db", help="Database file (default: roam.db)")
    parser.add_argument("--config", help="Config file path")
    parser.add_argument("-o", "--output", choices=["table", "json", "ids", "plain"],
                        help="Output format")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Commands")

    query_parser = subparsers.add_parser("query", help="Resolve a query")
    query_parser.add_argument("query", help="Query text or saved query name")
    query_parser.add_argument("--sort", "-s", help="Registered sort name")
    query_parser.add_argument("--limit", "-n", type=int, help="Show at most N nodes (default: page_size, 0 for all)")
    query_parser.set_defaults(func=cmd_query)

    saved_parser = subparsers.add_parser("saved", help="Saved queries")
    saved_subparsers = saved_parser.add_subparsers(dest="saved_command", required=True)

    saved_list = saved_subparsers.add_parser("list", help="List saved queries")
    saved_list.set_defaults(func=cmd_saved)

    saved_show = saved_subparsers.add_parser("show", help="Resolve a saved query")
    saved_show.add_argument("name", help="Saved query name")
    saved_show.add_argument("--sort", "-s", help="Registered sort name")
    saved_show.set_defaults(func=cmd_saved)

    saved_add = saved_subparsers.add_parser("add", help="Add or replace a saved query")
    saved_add.add_argument("name", help="Saved query name")
    saved_add.add_argument("query", help="Query text")
    saved_add.add_argument("--description", "-d", help="Docstring")
    saved_add.set_defaults(func=cmd_saved)

    for name, help_text in [
        ("predicates", "List registered predicates"),
        ("expansions", "List registered expansions"),
        ("sorts", "List registered sorts"),
    ]:
        vocab_parser = subparsers.add_parser(name, help=help_text)
        vocab_parser.set_defaults(func=cmd_vocabulary)

    db_parser = subparsers.add_parser("db", help="Node store operations")
    db_subparsers = db_parser.add_subparsers(dest="db_command", required=True)
    db_info = db_subparsers.add_parser("info", help="Show store statistics")
    db_info.set_defaults(func=cmd_db_info)

    return parser


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    config_file = Path(args.config) if args.config else None

    try:
        config = init_config(database=args.db, config_file=config_file, output_format=args.output)

        level = logging.DEBUG if args.verbose else config.logging_level
        logging.basicConfig(level=level, format='%(levelname)s: %(message)s')

        if not args.output:
            args.output = config.output_format

        args.func(args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
