"""
flightlog command line

    python -m flightlog import FLY001.DAT FLY002.DAT
    python -m flightlog list
    python -m flightlog stats 3
"""
import argparse
import asyncio
import logging
import sys

import orjson

from flightlog.config import Settings, setup_logging
from flightlog.context import AppContext, build_context
from flightlog.exceptions import FlightLogError

logger = logging.getLogger(__name__)


def _print(data) -> None:
    print(orjson.dumps(data, option=orjson.OPT_INDENT_2).decode())


async def _run(args: argparse.Namespace, ctx: AppContext) -> int:
    repo = ctx.repository

    if args.command == "import":
        results = await asyncio.gather(*(ctx.importer.import_file(p) for p in args.files))
        _print([r.to_json() for r in results])
        return 0 if all(r.success for r in results) else 1

    if args.command == "list":
        _print([f.to_json() for f in await repo.list_flights()])
    elif args.command == "show":
        max_points = args.max_points if args.max_points is not None else ctx.settings.max_chart_points
        data = await repo.get_flight_data(args.flight_id, max_points=max_points)
        _print(data.to_json())
    elif args.command == "stats":
        _print((await repo.get_stats(args.flight_id)).to_json())
    elif args.command == "delete":
        if not await repo.delete_flight(args.flight_id):
            print(f"Flight {args.flight_id} not found", file=sys.stderr)
            return 1
    elif args.command == "set-key":
        path = ctx.key_resolver.save(args.api_key)
        print(f"API key saved to {path}")
    return 0


async def _main(args: argparse.Namespace, settings: Settings) -> int:
    ctx = build_context(settings)
    await ctx.start()
    try:
        return await _run(args, ctx)
    finally:
        await ctx.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="flightlog", description="Drone flight log importer")
    parser.add_argument("--log-level", default=None, help="Override FLIGHTLOG_LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("import", help="Import one or more log files")
    p.add_argument("files", nargs="+")

    sub.add_parser("list", help="List imported flights")

    p = sub.add_parser("show", help="Print chart and track data for a flight")
    p.add_argument("flight_id", type=int)
    p.add_argument("--max-points", type=int, default=None, help="0 prints every sample")

    p = sub.add_parser("stats", help="Print statistics for a flight")
    p.add_argument("flight_id", type=int)

    p = sub.add_parser("delete", help="Delete a flight and its telemetry")
    p.add_argument("flight_id", type=int)

    p = sub.add_parser("set-key", help="Store the DJI API key in config.json")
    p.add_argument("api_key")

    p = sub.add_parser("serve", help="Run the HTTP API")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8000)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings()
    if args.log_level:
        settings.log_level = args.log_level
    setup_logging(settings.log_level, settings.resolved_log_file)

    if args.command == "serve":
        import uvicorn
        from flightlog.api.api_main import create_app

        uvicorn.run(create_app(settings), host=args.host, port=args.port)
        return 0

    try:
        return asyncio.run(_main(args, settings))
    except FlightLogError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logging.info("Program terminated")
        return 130


if __name__ == "__main__":
    sys.exit(main())
