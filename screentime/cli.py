"""screentime CLI: inspect and populate the date-keyed usage cache."""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path

from screentime.activity.aggregator import (
    format_time,
    summarize_usage_events,
    time_range_for_period,
    usage_event_from_mapping,
)
from screentime.config import AppConfig
from screentime.constants import PERIOD_DAYS
from screentime.errors import ScreenTimeError, ValidationError
from screentime.storage.date_key_cache import parse_timestamp, resolve_timezone
from screentime.storage.sqlite_cache import SqliteDateKeyCache
from screentime.utils import ScreenTimeUtils

logger = logging.getLogger("screentime.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="screentime",
        description="Date-keyed cache for per-app screen time records",
    )
    parser.add_argument("--data-dir", default=None, help="Data directory (default: $SCREENTIME_DATA_DIR or ~/.screentime)")
    parser.add_argument("--verbose", action="store_true", help="Enable DEBUG logging")
    parser.add_argument("--quiet", action="store_true", help="Only show WARNING and above")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    key_parser = subparsers.add_parser("key", help="Print the cache key for a date")
    key_parser.add_argument("date", help="ISO 8601 date or timestamp")

    get_parser = subparsers.add_parser("get", help="Read a cached payload")
    get_parser.add_argument("key")
    get_parser.add_argument("--out", default=None, help="Write payload to FILE instead of stdout")

    put_parser = subparsers.add_parser("put", help="Cache the contents of a file under a key")
    put_parser.add_argument("key")
    put_parser.add_argument("file")

    transform_parser = subparsers.add_parser("transform", help="Normalize a JSON list of raw observations")
    transform_parser.add_argument("file", help="JSON file holding a list of observations")
    transform_parser.add_argument("--bundle-id", required=True, help="Application identifier")
    transform_parser.add_argument("--day", required=True, help="Start of the day the observations belong to")
    transform_parser.add_argument("--store", action="store_true", help="Also cache the records for the day")

    show_parser = subparsers.add_parser("show", help="Print the records cached for a day")
    show_parser.add_argument("day")
    show_parser.add_argument("--json", action="store_true", dest="json_output", help="Output as JSON")

    summarize_parser = subparsers.add_parser("summarize", help="Summarize a JSON list of usage events")
    summarize_parser.add_argument("file")
    summarize_parser.add_argument("--now", default=None, help="Reference instant (default: current time)")

    history_parser = subparsers.add_parser("history", help="Print cached records over a range of days")
    history_parser.add_argument("--days", type=int, default=None, help="Days ending today (default: lookback_days, 7)")
    history_parser.add_argument("--period", choices=sorted(PERIOD_DAYS), default=None, help="Named period instead of --days")
    history_parser.add_argument("--now", default=None, help="Reference instant (default: current time)")
    history_parser.add_argument("--json", action="store_true", dest="json_output", help="Output as JSON")

    subparsers.add_parser("mirror", help="Copy every cached payload into the SQLite database")

    icon_parser = subparsers.add_parser("icon", help="Resolve an app icon")
    icon_parser.add_argument("bundle_id")
    icon_parser.add_argument("--base64", action="store_true", help="Print the base64 PNG encoding")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    log_level = "INFO"
    if args.verbose:
        log_level = "DEBUG"
    elif args.quiet:
        log_level = "WARNING"
    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    sys.exit(_dispatch(args))


def _init(args) -> tuple[AppConfig, ScreenTimeUtils]:
    """Build config and service, honouring --data-dir."""
    config = AppConfig.from_env()
    if args.data_dir:
        config.paths = replace(config.paths, data_dir=Path(args.data_dir).expanduser())
    config.paths.ensure_dirs()
    return config, ScreenTimeUtils.from_config(config)


def _dispatch(args) -> int:
    """Route CLI commands. Returns the process exit code."""
    commands = {
        "key": _cmd_key,
        "get": _cmd_get,
        "put": _cmd_put,
        "transform": _cmd_transform,
        "show": _cmd_show,
        "summarize": _cmd_summarize,
        "history": _cmd_history,
        "mirror": _cmd_mirror,
        "icon": _cmd_icon,
    }
    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1
    try:
        config, utils = _init(args)
        return handler(args, config, utils)
    except (ScreenTimeError, OSError, json.JSONDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


def _cmd_key(args, config, utils) -> int:
    print(utils.cache_key_for_date(args.date))
    return 0


def _cmd_get(args, config, utils) -> int:
    payload = utils.cached_data(args.key)
    if payload is None:
        print(f"No cached data for {args.key}", file=sys.stderr)
        return 1
    if args.out:
        Path(args.out).write_bytes(payload)
    else:
        sys.stdout.buffer.write(payload)
        sys.stdout.flush()
    return 0


def _cmd_put(args, config, utils) -> int:
    data = Path(args.file).read_bytes()
    utils.cache_data(data, args.key)
    print(f"Cached {len(data)} bytes under {args.key}")
    return 0


def _load_json_list(path) -> list:
    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ScreenTimeError(f"{path}: expected a JSON list")
    return data


def _cmd_transform(args, config, utils) -> int:
    observations = _load_json_list(args.file)
    records = utils.transformer.transform_batch(observations, args.bundle_id, args.day)
    print(json.dumps([r.to_dict() for r in records], indent=2))
    if args.store:
        key = utils.store_day([(args.bundle_id, obs) for obs in observations], args.day)
        print(f"Stored {len(records)} records under {key}", file=sys.stderr)
    return 0


def _cmd_show(args, config, utils) -> int:
    records = utils.load_day(args.day)
    if records is None:
        print(f"No records cached for {args.day}", file=sys.stderr)
        return 1
    if args.json_output:
        print(json.dumps([r.to_dict() for r in records], indent=2))
        return 0
    print(f"{utils.day_key(args.day)}: {len(records)} records")
    for r in records:
        pickups = "-" if r.pickups is None else r.pickups
        print(f"  {r.bundle_id:<40} {format_time(r.duration_seconds * 1000):>8}  pickups={pickups}")
    return 0


def _cmd_summarize(args, config, utils) -> int:
    tz = resolve_timezone(config.cache.timezone)
    now = parse_timestamp(args.now) if args.now else datetime.now(timezone.utc)
    events = [usage_event_from_mapping(raw) for raw in _load_json_list(args.file)]
    summaries = summarize_usage_events(events, now, tz)
    output = []
    for s in summaries:
        entry = s.to_dict()
        entry["formatted_time"] = format_time(s.today_time_ms)
        output.append(entry)
    print(json.dumps(output, indent=2))
    return 0


def _cmd_history(args, config, utils) -> int:
    tz = resolve_timezone(config.cache.timezone)
    now = parse_timestamp(args.now) if args.now else datetime.now(tz)
    if args.period:
        start, end = time_range_for_period(args.period, now)
        first = start.date()
        # "yesterday" ends exactly at today's midnight
        last = first if args.period == "yesterday" else end.date()
    else:
        days = config.usage.lookback_days if args.days is None else args.days
        if days < 1:
            raise ValidationError(f"--days must be at least 1, got {days}")
        last = now.date()
        first = last - timedelta(days=days - 1)

    records = utils.load_days(first, last)
    if args.json_output:
        print(json.dumps([r.to_dict() for r in records], indent=2))
        return 0
    print(f"{first.isoformat()} .. {last.isoformat()}: {len(records)} records")
    for r in records:
        print(f"  {r.date.isoformat()}  {r.bundle_id:<40} {format_time(r.duration_seconds * 1000):>8}")
    return 0


def _cmd_mirror(args, config, utils) -> int:
    keys = utils.cache.store.keys()

    async def run():
        db = SqliteDateKeyCache.from_config(config)
        await db.initialize()
        try:
            for key in keys:
                payload = utils.cached_data(key)
                if payload is not None:
                    await db.put(key, payload)
        finally:
            await db.close()

    asyncio.run(run())
    print(f"Mirrored {len(keys)} entries into {config.paths.db_path}")
    return 0


def _cmd_icon(args, config, utils) -> int:
    if args.base64:
        encoded = utils.base64_icon(args.bundle_id)
        if encoded is None:
            print(f"No icon for {args.bundle_id}", file=sys.stderr)
            return 1
        print(encoded)
        return 0
    image = utils.app_icon(args.bundle_id)
    if image is None:
        print(f"No icon for {args.bundle_id}", file=sys.stderr)
        return 1
    print(f"{args.bundle_id}: {image.width}x{image.height} {image.mode}")
    return 0


if __name__ == "__main__":
    main()
