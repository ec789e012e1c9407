"""CLI entry point for the avalanche forecast cache."""

import argparse
import json
import logging
from pathlib import Path

from avalanche.config.loader import get_config_value, load_config, load_forecast_schema
from avalanche.config.schema import AppConfig
from avalanche.ingest.drive_client import DriveClient, FetchError, find_file_by_name
from avalanche.ingest.forecast_cache import ForecastCache, UnsupportedContentKind
from avalanche.ingest.name_decoder import ForecastNameError, decode_forecast_name
from avalanche.ingest.spreadsheet_parser import ParseError
from avalanche.models.forecast import RequestedData
from avalanche.storage import forecast_file_repo
from avalanche.storage.database import connect, run_migrations
from avalanche.storage.forecast_file_repo import StorageError

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="avalanche",
        description="Avalanche forecast fetcher and cache",
    )
    parser.add_argument("--config", default=None, help="Config YAML path")
    parser.add_argument("--db", default=None, help="SQLite DB path (overrides config)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command")

    # list
    sub.add_parser("list", help="List files in the published folder")

    # decode
    decode_p = sub.add_parser("decode", help="Decode a forecast file name")
    decode_p.add_argument("name", help="File name, e.g. Gudauri_2023-01-24T17:00_LF.en.pdf")

    # fetch
    fetch_p = sub.add_parser("fetch", help="Fetch a published forecast through the cache")
    fetch_p.add_argument("name", help="File name in the published folder")
    fetch_p.add_argument("--output", help="Where to write downloaded files")

    # cache list
    cache_p = sub.add_parser("cache", help="Cache operations")
    cache_sub = cache_p.add_subparsers(dest="cache_command")
    cache_sub.add_parser("list", help="List cached files")

    # config show / config get
    config_p = sub.add_parser("config", help="Config operations")
    config_sub = config_p.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Display current config")
    get_p = config_sub.add_parser("get", help="Get a config value")
    get_p.add_argument("key", help="Dotted key, e.g. drive.timeout")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config) if args.config else AppConfig()
    if args.db:
        config = config.model_copy(
            update={"storage": config.storage.model_copy(update={"db_path": args.db})}
        )

    if args.command == "list":
        return _cmd_list(config)
    elif args.command == "decode":
        return _cmd_decode(config, args)
    elif args.command == "fetch":
        return _cmd_fetch(config, args)
    elif args.command == "cache":
        return _cmd_cache(config, args)
    elif args.command == "config":
        return _cmd_config(config, args)
    else:
        parser.print_help()
        return 1


def _drive_client(config: AppConfig) -> DriveClient:
    return DriveClient(
        api_key=config.drive.api_key or None,
        base_url=config.drive.base_url,
        timeout=config.drive.timeout,
    )


def _cmd_list(config: AppConfig) -> int:
    schema = load_forecast_schema(config)
    try:
        files = _drive_client(config).list_files(config.drive.published_folder_id)
    except FetchError as e:
        print(f"Error: {e}")
        return 1

    for file in files:
        try:
            details = decode_forecast_name(file.display_name, schema)
        except ForecastNameError as e:
            print(f"{file.display_name}  (not a forecast: {e})")
            continue
        print(
            f"{file.display_name}  area={details.area} "
            f"forecaster={details.forecaster} time={details.time.isoformat()} "
            f"language={details.language or '-'}"
        )
    print(f"{len(files)} files")
    return 0


def _cmd_decode(config: AppConfig, args) -> int:
    schema = load_forecast_schema(config)
    try:
        details = decode_forecast_name(args.name, schema)
    except ForecastNameError as e:
        print(f"Error: {e}")
        return 2
    print(json.dumps(details.to_dict(), indent=2))
    return 0


def _cmd_fetch(config: AppConfig, args) -> int:
    schema = load_forecast_schema(config)
    conn = connect(config.storage.db_path)
    run_migrations(conn)
    try:
        drive = _drive_client(config)
        # Only files in the published folder may be served
        files = drive.list_files(config.drive.published_folder_id)
        file = find_file_by_name(args.name, files)
        if file is None:
            print(f"Not found: {args.name}")
            return 2

        requested = RequestedData.FORECAST if file.is_spreadsheet else RequestedData.FILE
        data = ForecastCache(drive, conn).get_file_data(file, requested, schema)
    except UnsupportedContentKind as e:
        print(f"Error: {e}")
        return 2
    except (FetchError, ParseError, StorageError) as e:
        logger.error("Failed to fetch %s: %s", args.name, e)
        print(f"Error: {e}")
        return 1
    finally:
        conn.close()

    if data.forecast is not None:
        print(data.forecast.model_dump_json(indent=2))
    else:
        assert data.file_bytes is not None
        output = Path(args.output or file.display_name)
        output.write_bytes(data.file_bytes)
        print(f"Wrote {len(data.file_bytes)} bytes to {output}")
    return 0


def _cmd_cache(config: AppConfig, args) -> int:
    if args.cache_command != "list":
        print("Use: cache list")
        return 1

    conn = connect(config.storage.db_path)
    run_migrations(conn)
    try:
        records = forecast_file_repo.list_forecast_files(conn)
    finally:
        conn.close()

    for r in records:
        print(
            f"{r['remote_id']}  modified={r['last_modified']} "
            f"size={r['size_bytes']}B schema={r['schema_version'] or '-'}"
        )
    print(f"{len(records)} cached files")
    return 0


def _cmd_config(config: AppConfig, args) -> int:
    if config.drive.api_key:
        config = config.model_copy(
            update={"drive": config.drive.model_copy(update={"api_key": "***"})}
        )
    if args.config_command == "show":
        print(config.model_dump_json(indent=2))
        return 0
    elif args.config_command == "get":
        try:
            print(get_config_value(config, args.key))
            return 0
        except (KeyError, IndexError, ValueError) as e:
            print(f"Error: {e}")
            return 1
    else:
        print("Use: config show | config get key")
        return 1
