#!/usr/bin/env python3
"""
CLI tool to drive the map controller against a running backend.
Requests one safest route (two "clicks") or runs one place search, printing
every notification the controller emits.

Usage:
    python tools/cli_route.py --from 23.81,90.41 --to 23.70,90.35 --mode walk
    python tools/cli_route.py --search "Dhanmondi"
"""

import os
import sys
import asyncio
import argparse
from pathlib import Path

# Ensure the backend directory (parent of tools/) is on sys.path so "nirapod_map" imports from a checkout.
script_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.abspath(os.path.join(script_dir, ".."))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from nirapod_map.config_loader import load_map_settings
from nirapod_map.controller import MapController
from nirapod_map.logging_config import setup_logging
from nirapod_map.notifications import NotificationChannel
from nirapod_map.route_selection import SelectionPhase
from nirapod_map.schemas import GeoPoint


def parse_point(text: str) -> GeoPoint:
    try:
        lat, lng = (float(part) for part in text.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected LAT,LNG, got {text!r}")
    try:
        return GeoPoint(lat=lat, lng=lng)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def parse_args():
    parser = argparse.ArgumentParser(description="CLI: request a safest route or search places via the map controller.")
    parser.add_argument("--from", dest="source", type=parse_point, help="Source point as LAT,LNG")
    parser.add_argument("--to", dest="destination", type=parse_point, help="Destination point as LAT,LNG")
    parser.add_argument("--mode", choices=["drive", "walk"], default=None, help="Route mode (defaults to config)")
    parser.add_argument("--search", "-s", default=None, help="Free-text place search instead of a route")
    parser.add_argument("--config", "-c", type=Path, default=None, help="Path to map.yaml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    args = parser.parse_args()
    if not args.search and not (args.source and args.destination):
        parser.error("give --search TEXT or both --from and --to")
    return args


async def run(args) -> int:
    settings = load_map_settings(args.config)
    channel = NotificationChannel()
    channel.subscribe(lambda n: print(f"[{n.kind.value}] {n.message}"))

    controller = MapController.from_settings(settings, notifications=channel)
    try:
        if args.search:
            suggestions = await controller.suggest(args.search)
            for i, s in enumerate(suggestions, 1):
                where = f"{s.location.lat:.5f}, {s.location.lng:.5f}" if s.location else "no location"
                print(f"{i:2d}. {s.label} ({where})")
            return 0 if suggestions else 1

        if args.mode:
            controller.set_route_mode(args.mode)
        controller.begin_route_selection()
        await controller.map_clicked(args.source)
        state = await controller.map_clicked(args.destination)

        if state.phase != SelectionPhase.RESOLVED:
            print(f"Route selection ended in phase {state.phase.value}: {state.error or 'rejected'}")
            return 1
        for p in state.route.points:
            print(f"{p.lat:.6f},{p.lng:.6f}")
        return 0
    finally:
        await controller.close()


def main():
    args = parse_args()
    setup_logging(level="DEBUG" if args.verbose else os.getenv("LOG_LEVEL", "WARNING"))
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
