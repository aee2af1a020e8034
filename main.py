"""Auto-categorical outlook tracker — CLI entrypoint."""

from __future__ import annotations

import argparse
import os
import sys

from dotenv import load_dotenv


def main(argv: list[str] | None = None) -> int:
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Derive SPC-style categorical outlooks from probabilistic outlooks",
    )
    parser.add_argument(
        "--quiet", action="store_true",
        help="Suppress stderr progress messages",
    )
    subparsers = parser.add_subparsers(dest="command")

    # derive command
    derive_parser = subparsers.add_parser(
        "derive", help="Regenerate the categorical layer of a saved forecast",
    )
    derive_parser.add_argument("file", help="Forecast JSON file")
    derive_parser.add_argument("--day", type=int, choices=(1, 2, 3),
                               help="Forecast day (default: the file's current day)")
    derive_parser.add_argument("--output", metavar="PATH",
                               help="Write the updated forecast to PATH")

    # check command
    check_parser = subparsers.add_parser(
        "check", help="Report whether a saved categorical layer is stale or badly nested",
    )
    check_parser.add_argument("file", help="Forecast JSON file")
    check_parser.add_argument("--day", type=int, choices=(1, 2, 3))

    # spc command
    spc_parser = subparsers.add_parser(
        "spc", help="Derive a categorical layer from the live SPC probabilistic outlook",
    )
    spc_parser.add_argument("--day", type=int, choices=(1, 2, 3), default=1)
    spc_parser.add_argument("--output", metavar="PATH",
                            help="Save the fetched and derived outlook to PATH")

    args = parser.parse_args(argv)

    if args.quiet:
        sys.stderr = open(os.devnull, "w")

    if args.command == "derive":
        return _cmd_derive(args)
    if args.command == "check":
        return _cmd_check(args)
    if args.command == "spc":
        return _cmd_spc(args)
    parser.print_help()
    return 0


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def _load_store(path: str):
    """Load a forecast file into a fresh store. Returns None after reporting an error."""
    from sources.geojson import ForecastFileError, load_forecast
    from store import OutlookStore

    try:
        days, current_day = load_forecast(path)
    except ForecastFileError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return None

    store = OutlookStore(current_day=current_day)
    for outlook_day in days.values():
        store.import_day(outlook_day)
    return store


def _cmd_derive(args: argparse.Namespace) -> int:
    """Regenerate the categorical layer and optionally save it."""
    from categorical import check_nesting
    from output.console import render_categorical
    from sources.geojson import save_forecast
    from sync import CategoricalSync, stored_features

    store = _load_store(args.file)
    if store is None:
        return 1
    if args.day:
        store.set_current_day(args.day)

    guard = CategoricalSync(store)
    changed = guard.run()
    if not changed:
        print("  Categorical layer already up to date.", file=sys.stderr)

    snapshot = store.read()
    derived = stored_features(snapshot)
    render_categorical(snapshot, derived, violations=check_nesting(derived))

    if args.output:
        days = {day: store.read(day) for day in store.days()}
        save_forecast(args.output, days, store.current_day)
    return 0


def _cmd_check(args: argparse.Namespace) -> int:
    """Compare the stored categorical layer to what the probabilistic layers produce."""
    from categorical import check_nesting, derive_categorical
    from output.console import render_categorical
    from sync import layer_signature, stored_features

    store = _load_store(args.file)
    if store is None:
        return 1

    snapshot = store.read(args.day)
    stored = stored_features(snapshot)
    expected = derive_categorical(snapshot)
    in_sync = layer_signature(expected) == layer_signature(stored)
    violations = check_nesting(stored)

    render_categorical(snapshot, stored, in_sync=in_sync, violations=violations)
    return 0 if in_sync and not violations else 1


def _cmd_spc(args: argparse.Namespace) -> int:
    """Fetch SPC probabilistic layers, derive, and show beside SPC's own TSTM."""
    from categorical import check_nesting
    from config import CATEGORICAL_TYPE, USER_DRAWN_LEVEL
    from output.console import render_categorical
    from sources.geojson import save_forecast
    from sources.spc import fetch_spc_day
    from store import OutlookStore
    from sync import CategoricalSync, stored_features

    print(f"Fetching SPC Day {args.day} outlook...", file=sys.stderr)
    outlook_day, any_data = fetch_spc_day(args.day)
    if not any_data:
        print("  WARNING: No SPC data available. Cannot derive categorical risk.",
              file=sys.stderr)
        return 1

    # Only SPC's TSTM is kept; everything above it is re-derived
    official = outlook_day.outlooks.get(CATEGORICAL_TYPE, {})
    outlook_day.outlooks[CATEGORICAL_TYPE] = (
        {USER_DRAWN_LEVEL: official[USER_DRAWN_LEVEL]} if USER_DRAWN_LEVEL in official else {}
    )

    store = OutlookStore(current_day=args.day)
    store.import_day(outlook_day)
    CategoricalSync(store).run()

    snapshot = store.read()
    derived = stored_features(snapshot)
    print(file=sys.stderr)
    render_categorical(snapshot, derived, violations=check_nesting(derived))

    if args.output:
        save_forecast(args.output, {args.day: snapshot}, args.day)
    return 0


if __name__ == "__main__":
    sys.exit(main())
