from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from registration_dashboard.config import YamlConfigLoader
from registration_dashboard.config.models import AppConfig, ConfigLoadRequest
from registration_dashboard.data_service import DataServiceClient
from registration_dashboard.datasets import DashboardSnapshot, build_snapshot_fetch
from registration_dashboard.loader import GuardedLoader, LoaderSettings, TransportFailure
from registration_dashboard.logging import init_logging

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="registration-dashboard",
        description="Registration dashboard data loading tools",
    )
    parser.add_argument(
        "--config",
        default="data/config/config.yaml",
        help="Path to config.yaml (default: data/config/config.yaml)",
    )
    parser.add_argument(
        "--no-dotenv",
        action="store_true",
        help="Disable loading .env (env overrides still apply)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")

    # Command: check_connection
    check_parser = subparsers.add_parser("check_connection", help="Probe the remote data service")
    check_parser.add_argument(
        "--table",
        default=None,
        help="Table to probe (default: app.health_table)",
    )

    # Command: load
    load_parser = subparsers.add_parser("load", help="Load the dashboard datasets once")
    load_parser.add_argument(
        "--dataset",
        action="append",
        default=None,
        help="Dataset name to load; repeatable (default: all configured datasets)",
    )
    load_parser.add_argument(
        "--timeout-seconds",
        type=float,
        default=None,
        help="Override loader.timeout_seconds for this run.",
    )

    return parser


async def _load_config(args: argparse.Namespace) -> AppConfig:
    loader = YamlConfigLoader()
    request = ConfigLoadRequest(
        yaml_path=args.config,
        dotenv_path=None if args.no_dotenv else ".env",
    )
    return await loader.load(request)


async def _check_connection(args: argparse.Namespace) -> int:
    config = await _load_config(args)
    init_logging(config.logging)
    table = args.table or config.app.health_table
    logger.info("app.check_connection url=%s table=%s", config.data_service.url, table)

    try:
        async with DataServiceClient(config.data_service) as client:
            response = await client.check_connection(table)
    except TransportFailure as exc:
        logger.error("app.check_connection_unreachable table=%s error=%s", table, exc)
        return 1

    if response.error is not None:
        logger.error(
            "app.check_connection_failed table=%s code=%s message=%s",
            table,
            response.error.code,
            response.error.message,
        )
        return 1
    logger.info("app.check_connection_ok table=%s", table)
    return 0


def _select_datasets(config: AppConfig, names: list[str] | None):
    if not names:
        return list(config.datasets)
    by_name = {dataset.name: dataset for dataset in config.datasets}
    unknown = [name for name in names if name not in by_name]
    if unknown:
        raise SystemExit(f"Unknown dataset(s): {', '.join(unknown)}. Known: {', '.join(by_name)}")
    return [by_name[name] for name in names]


async def _load(args: argparse.Namespace) -> int:
    config = await _load_config(args)
    init_logging(config.logging)
    datasets = _select_datasets(config, args.dataset)

    # A one-shot CLI run always loads on start.
    overrides: dict = {"auto_load": True}
    if args.timeout_seconds is not None:
        overrides["timeout_seconds"] = args.timeout_seconds
    settings = LoaderSettings.model_validate({**config.loader.model_dump(), **overrides})

    logger.info(
        "app.load_starting datasets=%s timeout_seconds=%s",
        [dataset.name for dataset in datasets],
        settings.timeout_seconds,
    )
    async with DataServiceClient(config.data_service) as client:
        loader: GuardedLoader[DashboardSnapshot] = GuardedLoader(
            build_snapshot_fetch(client, datasets),
            settings=settings,
            name="dashboard",
        )
        async with loader:
            state = await loader.join()

    summary = {
        "ok": state.error is None and state.data is not None,
        "error": state.error,
        "error_kind": state.error_kind.value if state.error_kind is not None else None,
        "is_stale": state.is_stale,
        "counts": state.data.counts() if state.data is not None else {},
    }
    print(json.dumps(summary, indent=2, sort_keys=True))
    return 0 if summary["ok"] else 1


async def _main_async() -> int:
    parser = _build_parser()
    args = parser.parse_args()

    if args.command == "check_connection":
        return await _check_connection(args)
    if args.command == "load":
        return await _load(args)
    parser.error(f"Unknown command: {args.command}")
    return 2


def main() -> None:
    try:
        exit_code = asyncio.run(_main_async())
    except KeyboardInterrupt:
        logger.info("app.interrupted_by_user")
        exit_code = 130
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
