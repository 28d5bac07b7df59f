import argparse
import sys


def _fail(e):
    print(f"Error: {e}", file=sys.stderr)
    sys.exit(1)


def _load_config_or_defaults(path=None):
    from gbworkouts.config import default_config, load_config
    from gbworkouts.errors import ConfigurationError

    try:
        return load_config(path)
    except FileNotFoundError as e:
        if path:
            _fail(e)
        return default_config()
    except ConfigurationError as e:
        _fail(e)


def cmd_db_init(args):
    from gbworkouts.db import init_db

    config = _load_config_or_defaults(args.config)
    if args.db:
        config["paths"]["db"] = args.db
    init_db(config)


def _print_gpx_summary(result: dict):
    print("GPX files:")
    print(f"  Seen:             {result['seen']}")
    print(f"  Bad filename:     {result['bad_name']}")
    print(f"  Empty:            {result['empty']}")
    print(f"  Duration known:   {result['duration_known']}")
    print(f"  Duration unknown: {result['duration_unknown']}")


def _print_db_summary(result: dict):
    print("Database:")
    print(f"  Tables:   {result['tables']}")
    for c in result["candidates"]:
        note = ""
        if c.get("skipped"):
            note = f" ({c['skipped']})"
        elif c.get("error"):
            note = f" (error: {c['error']})"
        elif "adjusted" in c:
            note = f" adjusted={c['adjusted']}"
        print(f"    {c['table']}: score={c['score']} rows={c['rows']}{note}")
    print(f"  Selected: {result['selected'] or '-'}")


def cmd_list(args):
    from gbworkouts.errors import GbWorkoutsError
    from gbworkouts.export import open_export
    from gbworkouts.report import print_workouts
    from gbworkouts.workouts import collect_workouts

    config = _load_config_or_defaults(args.config)
    export = args.export or config["paths"]["export"]
    count = args.count if args.count is not None else config["list"]["count"]

    try:
        with open_export(export, verbose=args.verbose) as export_dir:
            result = collect_workouts(
                export_dir,
                use_db=not args.no_db,
                use_gpx=not args.no_gpx,
                summary_table=args.summary_table,
                row_limit=config["scan"]["row_limit"],
                min_rows=config["scan"]["min_rows"],
                verbose=args.verbose,
            )
    except GbWorkoutsError as e:
        _fail(e)

    if args.verbose:
        if result["gpx"] is not None:
            _print_gpx_summary(result["gpx"])
        if result["db"] is not None:
            _print_db_summary(result["db"])
        print()

    print_workouts(result["workouts"], count, details=args.details)


def _print_ingest_summary(result: dict, dry_run: bool = False):
    prefix = "[DRY RUN] " if dry_run else ""
    print(f"\n{prefix}Ingest complete:")
    print(f"  Workouts upserted:  {result['upserted']}")
    print(f"  With points:        {result['with_points']}")
    print(f"  Points imported:    {result['points']}")
    print(f"  Missing GPX:        {result['missing_gpx']}")
    print(f"  Distances:          {result['distances']}")
    print(f"  Errors:             {result['errors']}")

    if result["errors"] > 0:
        print("\nErrors:")
        for d in result["details"]:
            if d["status"] == "error":
                print(f"  {d['file']}: {d['error']}")


def cmd_ingest(args):
    from gbworkouts.errors import GbWorkoutsError
    from gbworkouts.ingest.store import ingest_export

    config = _load_config_or_defaults(args.config)
    if args.db:
        config["paths"]["db"] = args.db
    export = args.export or config["paths"]["export"]

    try:
        result = ingest_export(
            config,
            export,
            with_points=not args.no_points,
            store_raw_details=not args.no_raw_details,
            dry_run=args.dry_run,
            verbose=args.verbose,
        )
    except GbWorkoutsError as e:
        _fail(e)
    _print_ingest_summary(result, dry_run=args.dry_run)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="gbworkouts", description="Extract workouts from a Gadgetbridge export (ZIP or dir)")
    parser.add_argument("--config", help="Path to config.yaml (default: config/config.yaml)")
    subparsers = parser.add_subparsers(dest="command")

    # list subcommand
    list_parser = subparsers.add_parser("list", help="Print the most recent workouts")
    list_parser.add_argument("export", nargs="?", help="Export ZIP or extracted export directory")
    list_parser.add_argument("--count", type=int, help="How many recent workouts to print")
    list_parser.add_argument("--details", action="store_true",
                             help="Print start time + source along with duration")
    list_parser.add_argument("--no-db", action="store_true",
                             help="Disable reading from the SQLite database (database/Gadgetbridge)")
    list_parser.add_argument("--no-gpx", action="store_true",
                             help="Disable reading from GPX files (files/*.gpx)")
    list_parser.add_argument("--summary-table", action="store_true",
                             help="Read BASE_ACTIVITY_SUMMARY instead of inferring the workout table")
    list_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    list_parser.set_defaults(func=cmd_list)

    # ingest subcommand
    ingest_parser = subparsers.add_parser("ingest", help="Import workouts and GPS points into the store")
    ingest_parser.add_argument("export", nargs="?", help="Export ZIP or extracted export directory")
    ingest_parser.add_argument("--db", help="SQLite store path (overrides config paths.db)")
    ingest_parser.add_argument("--no-points", action="store_true", help="Skip GPX point import")
    ingest_parser.add_argument("--no-raw-details", action="store_true",
                               help="Do not store rawDetails/*.bin blobs")
    ingest_parser.add_argument("--dry-run", action="store_true",
                               help="Show what would be imported without writing")
    ingest_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    ingest_parser.set_defaults(func=cmd_ingest)

    # db subcommand with its own subcommands
    db_parser = subparsers.add_parser("db", help="Database operations")
    db_sub = db_parser.add_subparsers(dest="db_command")
    db_init = db_sub.add_parser("init", help="Initialize the store schema")
    db_init.add_argument("--db", help="SQLite store path (overrides config paths.db)")
    db_init.set_defaults(func=cmd_db_init)

    return parser, db_parser


def main(argv=None):
    parser, db_parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        sys.exit(1)
    if args.command == "db" and not getattr(args, "db_command", None):
        db_parser.print_help()
        sys.exit(1)
    args.func(args)


if __name__ == "__main__":
    main()
