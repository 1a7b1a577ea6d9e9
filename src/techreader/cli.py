from __future__ import annotations

import argparse
import sys

from .config import load_config, setup_logging
from .history import HistoryError, format_history, read_today_history, sweep_stale_snapshots
from .mcp_server import main as mcp_main


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="techreader",
        description="Tech feed, web search and Chrome history tools over MCP.",
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser(
        "mcp",
        help=(
            "Run the MCP (Model Context Protocol) server over stdio. "
            "Hook this up to any MCP client."
        ),
    )

    serve_parser = subparsers.add_parser("serve", help="Run the MCP server over HTTP (POST /mcp)")
    serve_parser.add_argument("--host", help="Bind address (default: http_host from config)")
    serve_parser.add_argument("--port", type=int, help="Bind port (default: http_port from config)")
    serve_parser.set_defaults(func=serve_command)

    history_parser = subparsers.add_parser("history", help="Print today's Chrome browsing history")
    history_parser.add_argument("--limit", type=int, help="Maximum entries to show (default: 10)")
    history_parser.set_defaults(func=history_command)

    sweep_parser = subparsers.add_parser("sweep", help="Delete stale temporary copies of the history DB")
    sweep_parser.add_argument(
        "--max-age",
        type=int,
        help="Only remove copies older than this many seconds (default: snapshot_max_age_seconds)",
    )
    sweep_parser.set_defaults(func=sweep_command)

    return parser


def serve_command(args: argparse.Namespace) -> int:
    import uvicorn

    from .http_app import create_app

    cfg = load_config()
    setup_logging(cfg["log_level"])
    host = args.host or cfg["http_host"]
    port = args.port or cfg["http_port"]
    uvicorn.run(create_app(cfg), host=host, port=port, log_level=cfg["log_level"].lower())
    return 0


def history_command(args: argparse.Namespace) -> int:
    cfg = load_config()
    setup_logging(cfg["log_level"])
    try:
        entries = read_today_history(
            args.limit,
            default_limit=cfg["history_limit"],
            history_path=cfg["history_path"] or None,
            snapshot_dir=cfg["snapshot_dir"] or None,
        )
    except HistoryError as exc:
        print(f"Error reading Chrome history: {exc}", file=sys.stderr)
        return 1
    print(format_history(entries))
    return 0


def sweep_command(args: argparse.Namespace) -> int:
    cfg = load_config()
    setup_logging(cfg["log_level"])
    max_age = args.max_age if args.max_age is not None else cfg["snapshot_max_age_seconds"]
    removed = sweep_stale_snapshots(cfg["snapshot_dir"] or None, max_age)
    print(f"Removed {len(removed)} stale history cop{'y' if len(removed) == 1 else 'ies'}.")
    return 0


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    if args.command == "mcp":
        mcp_main()
        return
    if hasattr(args, "func"):
        sys.exit(args.func(args))
    parser.print_help()
    sys.exit(2)


if __name__ == "__main__":
    main()
