import argparse
import json
import logging
import sys

from mintclock import EventBundle, MintPipeline
from mintclock.conf import ROUNDING_GRIDS, WINDOW_MODES, SettingValidationError


def _build_settings(args):
    mod_settings = {}
    if args.timezone:
        mod_settings["TIMEZONE"] = args.timezone
    if args.window_mode:
        mod_settings["WINDOW_MODE"] = args.window_mode
    if args.window_hours is not None:
        mod_settings["WINDOW_HOURS"] = args.window_hours
    if args.rounding_grid:
        mod_settings["ROUNDING_GRID"] = args.rounding_grid
    return mod_settings


def entrance(argv=None):
    mintclock_argparse = argparse.ArgumentParser(
        description="mintclock: resolve scraped mint listings into today's events."
    )
    mintclock_argparse.add_argument(
        "input",
        nargs="?",
        default="-",
        help="JSON file holding a list of bundles, '-' for stdin",
    )
    mintclock_argparse.add_argument(
        "--timezone", type=str, help="IANA zone bounding the calendar day (default UTC)"
    )
    mintclock_argparse.add_argument("--window-mode", choices=WINDOW_MODES)
    mintclock_argparse.add_argument(
        "--window-hours", type=int, help="Rolling window length in hours"
    )
    mintclock_argparse.add_argument("--rounding-grid", choices=ROUNDING_GRIDS)
    mintclock_argparse.add_argument(
        "--scraped-at",
        type=int,
        help="Epoch seconds used as 'now' for every bundle",
    )
    mintclock_argparse.add_argument(
        "--show-excluded",
        help="Also print excluded rows with their exclusion reason",
        action="store_true",
    )
    mintclock_argparse.add_argument("-v", "--verbose", action="store_true")

    args = mintclock_argparse.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        pipeline = MintPipeline(settings=_build_settings(args))
    except SettingValidationError as e:
        mintclock_argparse.error("mintclock: %s" % e)

    try:
        if args.input == "-":
            payload = json.load(sys.stdin)
        else:
            with open(args.input, encoding="utf-8") as f:
                payload = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        mintclock_argparse.error("mintclock: cannot read bundles: %s" % e)

    try:
        bundles = [EventBundle.from_dict(item) for item in payload]
    except (TypeError, ValueError, AttributeError) as e:
        mintclock_argparse.error("mintclock: invalid bundle: %s" % e)

    result = pipeline.run(bundles, scraped_at=args.scraped_at)
    logging.info(
        "mintclock: %d event(s) kept, %d excluded, %d duplicate(s) dropped",
        len(result.events),
        len(result.excluded),
        result.collisions,
    )

    output = [event.to_dict(diagnostics=args.show_excluded) for event in result.events]
    if args.show_excluded:
        output.extend(event.to_dict(diagnostics=True) for event in result.excluded)
    json.dump(output, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")
