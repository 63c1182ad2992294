"""
Rack Planner — entry point.

Usage:
    python -m rackplanner serve                    # start web server on :8000
    python -m rackplanner serve --port 3000
    python -m rackplanner check layout.json        # audit a saved layout
    python -m rackplanner check layout.json --catalog ./my-devices
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="rackplanner",
                                description="Rack elevation placement engine")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    sv = sub.add_parser("serve", help="Start the web API server")
    sv.add_argument("--host", default=None, help="Host to bind (default RACKPLANNER_HOST)")
    sv.add_argument("--port", type=int, default=None, help="Port to bind (default RACKPLANNER_PORT)")

    ck = sub.add_parser("check", help="Validate a saved layout file")
    ck.add_argument("layout", type=Path, help="Path to layout .json")
    ck.add_argument("--catalog", type=Path, default=None,
                    help="Directory of extra device-type .json libraries")

    return p


def _check(layout_path: Path, catalog_dir: Path | None) -> int:
    from rackplanner.catalog import DeviceCatalog, load_catalog
    from rackplanner.engine import validate_layout
    from rackplanner.layout import load_layout_file

    try:
        rack, types = load_layout_file(layout_path)
    except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        print(f"Cannot read {layout_path}: {e}")
        return 1

    extra = []
    problems = [str(e) for e in types.errors]
    if catalog_dir is not None:
        lib = load_catalog(catalog_dir)
        problems += [str(e) for e in lib.errors]
        extra.append(lib.device_types)

    catalog = DeviceCatalog.with_starter_library(types.device_types, extra)
    problems += validate_layout(rack, catalog)

    if problems:
        print(f"{layout_path}: {len(problems)} problem(s)")
        for msg in problems:
            print(f"  - {msg}")
        return 1
    print(f"{layout_path}: OK ({len(rack.devices)} devices in {rack.height}U)")
    return 0


def main() -> int:
    args = build_parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "serve":
        from rackplanner.config import load_settings
        from rackplanner.web.server import main as serve

        settings = load_settings()
        serve(host=args.host or settings.host, port=args.port or settings.port)
        return 0
    if args.cmd == "check":
        return _check(args.layout, args.catalog)
    return 1


if __name__ == "__main__":
    sys.exit(main())
