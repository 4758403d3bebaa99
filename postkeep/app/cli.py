"""Command-line interface for archiving posts."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import asdict
from typing import Any, Callable, Sequence

from ..core.http_client import HttpClient
from ..errors import ArchiveError
from ..platforms.telegraph import TelegraphClient
from ..services import Archiver, JsonResultCache
from ..settings import AppConfig, load_config
from ..utils.logging import configure_logging, get_logger

LOGGER = get_logger(__name__)


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(structured=None)

    handler: Callable[[argparse.Namespace], int] | None = getattr(args, "handler", None)
    if handler is None:
        parser.print_help(sys.stderr)
        return 1
    try:
        return handler(args)
    except ArchiveError as exc:
        LOGGER.error(
            "%s",
            exc,
            extra={"event": "cli.error", "code": exc.code, "command": args.command},
        )
        return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="postkeep", description="Archive posts as Telegraph pages")
    parser.add_argument("--config", help="Path to configuration file", default=None)
    parser.add_argument(
        "--log-plain",
        action="store_true",
        help="Use plain-text logs even when JSON logs are configured",
    )

    subparsers = parser.add_subparsers(dest="command")

    _add_backup_command(subparsers)
    _add_account_commands(subparsers)

    return parser


def _add_backup_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    backup_parser = subparsers.add_parser("backup", help="Archive a post and print the result")
    backup_parser.add_argument("url", help="Locator of the post to archive")
    backup_parser.add_argument("--force", action="store_true", help="Ignore cached results")
    backup_parser.add_argument(
        "--plain-text",
        action="store_true",
        help="Store structured text instead of markup as content",
    )
    backup_parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail instead of substituting placeholders for media",
    )
    backup_parser.add_argument("--upload-videos", action="store_true", help="Re-host videos too")
    backup_parser.add_argument("--no-reposts", action="store_true", help="Skip reposted content")
    backup_parser.add_argument("--no-pages", action="store_true", help="Do not publish pages")
    backup_parser.add_argument("--source", help="Force a specific source key", default=None)
    backup_parser.add_argument("--verbose", action="store_true", help="Log pipeline progress")
    backup_parser.set_defaults(handler=_handle_backup)


def _add_account_commands(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    account_parser = subparsers.add_parser("account", help="Manage publishing accounts")
    account_subparsers = account_parser.add_subparsers(dest="account_command", required=True)

    create_parser = account_subparsers.add_parser("create", help="Create a Telegraph account")
    create_parser.add_argument("short_name", help="Account short name")
    create_parser.add_argument("--author-name", default=None)
    create_parser.add_argument("--author-url", default=None)
    create_parser.set_defaults(handler=_handle_account_create)


def _handle_backup(args: argparse.Namespace) -> int:
    config = _load(args)
    cache = JsonResultCache(config.paths.cache_dir)
    options = _backup_overrides(args)
    options["check_existing"] = cache.check_existing

    LOGGER.info(
        "Backup requested",
        extra={"event": "cli.command", "command": "backup", "url": args.url},
    )
    archiver = Archiver.from_config(config)
    result = asyncio.run(archiver.backup(args.url, options))
    path = cache.save(result)
    LOGGER.info(
        "Backup stored",
        extra={"event": "cli.command", "command": "backup", "path": str(path)},
    )
    print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2, default=str))
    return 0


def _handle_account_create(args: argparse.Namespace) -> int:
    config = _load(args)
    host = TelegraphClient(HttpClient(http_settings=config.http))
    account = asyncio.run(
        host.create_account(args.short_name, author_name=args.author_name, author_url=args.author_url)
    )
    LOGGER.info(
        "Account created",
        extra={"event": "cli.command", "command": "account.create", "short_name": account.short_name},
    )
    print(json.dumps(asdict(account), ensure_ascii=False, indent=2))
    return 0


def _load(args: argparse.Namespace) -> AppConfig:
    config = load_config(args.config)
    configure_logging(
        structured=False if args.log_plain else config.structured_logs,
        verbose=getattr(args, "verbose", False) or config.verbose,
    )
    return config


def _backup_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Translate CLI flags into option overrides; unset flags keep configured defaults."""
    overrides: dict[str, Any] = {"source_key": args.source}
    if args.force:
        overrides["force"] = True
    if args.plain_text:
        overrides["plain_text"] = True
    if args.strict:
        overrides["allow_missing_content"] = False
    if args.upload_videos:
        overrides["upload_videos"] = True
    if args.no_reposts:
        overrides["backup_reposted"] = False
    if args.no_pages:
        overrides["create_pages"] = False
    if args.verbose:
        overrides["verbose"] = True
    return overrides


__all__ = ["main"]
