from __future__ import annotations

import argparse
import asyncio
import hashlib
import json
import sys
from typing import Any, Sequence

from .accounts import AccountResolver
from .aggregate import PhotoAggregator
from .api_client import PixelfedClient
from .auth import AccessTokenProvider, EnvTokenProvider, StaticTokenProvider
from .config import load_config
from .config_schema import AppConfig
from .dispatch import QueryDispatcher
from .errors import (
    AuthError,
    ConfigError,
    PixelfreeError,
    UpstreamError,
    ValidationError,
    error_payload,
)
from .event_log import EventLogger


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pixelfree")
    parser.add_argument("--config", required=True, help="Path to YAML config file.")
    parser.add_argument("--log", help="Append JSONL events to this file.")
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Serve canned statuses in-process instead of calling the instance.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    query = subparsers.add_parser("query", help="Fetch recent photos by tag and/or account.")
    query.add_argument("--tag", action="append", default=[], help="Hashtag (repeatable).")
    query.add_argument("--user", action="append", default=[], help="Handle or profile URL (repeatable).")
    query.add_argument("--account-id", action="append", default=[], help="Account id (repeatable).")
    query.add_argument("--tag-mode", choices=("any", "all"), default="any")
    query.add_argument("--limit", type=int, default=None)
    query.add_argument("--public", action="store_true", help="Use the public timeline.")
    query.add_argument("--local-only", action="store_true", help="With --public, local posts only.")
    query.set_defaults(_handler=_cmd_query)

    resolve = subparsers.add_parser("resolve", help="Resolve handles to account ids.")
    resolve.add_argument("handles", nargs="+")
    resolve.set_defaults(_handler=_cmd_resolve)

    return parser


def _config_fingerprint(cfg: AppConfig) -> str:
    canonical = json.dumps(cfg.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _eprint(message: str) -> None:
    print(message, file=sys.stderr)


def _payload_from_args(args: argparse.Namespace) -> dict[str, Any]:
    tags = list(args.tag)
    users = list(args.user)
    ids = list(args.account_id)

    if args.public:
        kind = "public"
    elif tags and (users or ids):
        kind = "compound"
    elif users or ids:
        kind = "user"
    else:
        kind = "tag"

    return {
        "type": kind,
        "limit": args.limit,
        "tags": tags,
        "accts": users,
        "accountIds": ids,
        "tagMode": args.tag_mode,
        "localOnly": bool(args.local_only),
    }


def _token_provider(cfg: AppConfig, offline: bool) -> AccessTokenProvider:
    if offline:
        from .offline import OFFLINE_TOKEN

        return StaticTokenProvider(OFFLINE_TOKEN)
    return EnvTokenProvider(cfg.instance.token_env)


def _client(cfg: AppConfig, offline: bool, log: EventLogger | None) -> PixelfedClient:
    transport = None
    if offline:
        from .offline import offline_transport

        transport = offline_transport()
    return PixelfedClient.from_config(
        cfg.instance,
        retry=cfg.retry.to_retry_config(),
        transport=transport,
        logger=log,
    )


async def _run_query(args: argparse.Namespace, cfg: AppConfig, log: EventLogger | None) -> Any:
    tokens = _token_provider(cfg, args.offline)
    async with _client(cfg, args.offline, log) as client:
        resolver = AccountResolver(client, tokens, logger=log)
        aggregator = PhotoAggregator(client, tokens, config=cfg.query, logger=log)
        dispatcher = QueryDispatcher(aggregator, resolver, logger=log)
        result = await dispatcher.dispatch(_payload_from_args(args))
        return result.to_json()


async def _run_resolve(args: argparse.Namespace, cfg: AppConfig, log: EventLogger | None) -> Any:
    tokens = _token_provider(cfg, args.offline)
    async with _client(cfg, args.offline, log) as client:
        resolver = AccountResolver(client, tokens, logger=log)
        batch = await resolver.resolve_many(args.handles)
        return {
            "account_ids": list(batch.account_ids),
            "errors": [e.to_json() for e in batch.errors],
        }


def _cmd_query(args: argparse.Namespace, cfg: AppConfig, log: EventLogger | None) -> int:
    print(json.dumps(asyncio.run(_run_query(args, cfg, log)), indent=2, ensure_ascii=False))
    return 0


def _cmd_resolve(args: argparse.Namespace, cfg: AppConfig, log: EventLogger | None) -> int:
    print(json.dumps(asyncio.run(_run_resolve(args, cfg, log)), indent=2, ensure_ascii=False))
    return 0


def _exit_code(exc: PixelfreeError) -> int:
    if isinstance(exc, (ConfigError, ValidationError)):
        return 2
    if isinstance(exc, (AuthError, UpstreamError)):
        return 3
    return 2 if exc.http_status < 500 else 1


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    log = EventLogger.open(args.log) if args.log else None
    try:
        cfg = load_config(args.config)
        if log is not None:
            log.info(
                "config_loaded",
                config_path=str(args.config),
                config_sha256=_config_fingerprint(cfg),
                base_url=cfg.instance.base_url,
                offline=bool(args.offline),
            )
        handler = getattr(args, "_handler")
        return int(handler(args, cfg, log))
    except PixelfreeError as e:
        if log is not None:
            log.error("command_failed", code=e.code, message=e.message)
        _eprint(json.dumps(error_payload(e)[1], ensure_ascii=False))
        return _exit_code(e)
    except KeyboardInterrupt:
        _eprint("Interrupted")
        return 130
    except Exception as e:
        if log is not None:
            log.exception("command_failed", exc=e)
        _eprint(json.dumps(error_payload(e)[1], ensure_ascii=False))
        return 1
    finally:
        if log is not None:
            log.close()
