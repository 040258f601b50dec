"""
HeritageTrail CLI entrypoint.

This CLI is intended for local demos and debugging without the mobile client.
Positions are supplied on the command line and fed through the same location
gateway and proximity verifier the API uses.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any

from heritagetrail.catalog.loader import load_sites, sites_by_id
from heritagetrail.config.settings import get_settings
from heritagetrail.core.geo import GeoPoint
from heritagetrail.core.logging import configure_logging
from heritagetrail.domain.models import Site
from heritagetrail.location.gateway import PermissionStatus
from heritagetrail.location.platforms import StaticLocationPlatform
from heritagetrail.progress.engine import compute
from heritagetrail.session import build_verifier, open_store


def _load_site(site_id: str) -> Site:
    settings = get_settings()
    site = sites_by_id(load_sites(settings.catalog.path)).get(site_id)
    if site is None:
        raise ValueError(f"Unknown site '{site_id}'")
    return site


def _cmd_verify(args: argparse.Namespace) -> int:
    """Handle the `verify` subcommand."""
    settings = get_settings()
    site = _load_site(args.site)
    platform = StaticLocationPlatform(
        lat=float(args.lat),
        lon=float(args.lon),
        accuracy_m=args.accuracy,
        service_enabled=not args.service_disabled,
        permission=PermissionStatus(args.permission),
        timezone=settings.app.timezone,
    )
    verifier = build_verifier(platform, settings=settings)
    store = open_store(args.user, settings=settings)
    outcome, record = asyncio.run(verifier.verify_and_record(site, store))

    if args.json:
        payload = {
            "outcome": outcome.model_dump(mode="json"),
            "record": record.model_dump(mode="json") if record else None,
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 0 if outcome.ok else 1

    if outcome.ok:
        print(f"Visit recorded: {site.name} ({outcome.distance_km * 1000:.0f} m away)")
        return 0
    if outcome.status == "too_far":
        print(
            f"Too far from {site.name}: {outcome.distance_km * 1000:.0f} m away, "
            f"need <= {outcome.radius_km * 1000:.0f} m"
        )
    else:
        print(f"Could not verify {site.name}: {outcome.status}")
    return 1


def _cmd_progress(args: argparse.Namespace) -> int:
    """Handle the `progress` subcommand."""
    settings = get_settings()
    catalog = load_sites(settings.catalog.path)
    store = open_store(args.user, settings=settings)

    origin = None
    if args.origin_lat is not None and args.origin_lon is not None:
        origin = GeoPoint(lat=float(args.origin_lat), lon=float(args.origin_lon))
    report = compute(store.snapshot(), catalog, origin=origin)

    if args.json:
        print(json.dumps(report.model_dump(mode="json"), ensure_ascii=False, indent=2))
        return 0

    names = {s.id: s.name for s in catalog}
    print(f"Visited {report.visited_count}/{report.total_count} ({report.percent * 100:.0f}%)")
    print(report.motivational_message)
    if report.recommended_next_site_id:
        line = f"Recommended next: {names.get(report.recommended_next_site_id, report.recommended_next_site_id)}"
        if report.recommended_next_distance_km is not None:
            line += f" ({report.recommended_next_distance_km:.1f} km)"
        print(line)
    else:
        print("Recommended next: none")
    return 0


def _cmd_favorite(args: argparse.Namespace) -> int:
    site = _load_site(args.site)
    member = open_store(args.user).toggle_favorite(site)
    print(f"{site.name}: {'added to' if member else 'removed from'} favorites")
    return 0


def _cmd_journal(args: argparse.Namespace) -> int:
    related = _load_site(args.site) if args.site else None
    entry = open_store(args.user).add_journal_entry(
        args.text, related, title=args.title, rating=args.rating
    )
    print(f"Journal entry {entry.id} saved")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the HeritageTrail CLI."""
    parser = argparse.ArgumentParser(prog="heritagetrail")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    sub = parser.add_subparsers(dest="command", required=True)

    ver = sub.add_parser("verify", help="Verify presence at a site from a position and record the visit.")
    ver.add_argument("--user", required=True)
    ver.add_argument("--site", required=True, help="Site id from the catalog")
    ver.add_argument("--lat", required=True, type=float)
    ver.add_argument("--lon", required=True, type=float)
    ver.add_argument("--accuracy", type=float, default=None, help="Reported accuracy in meters")
    ver.add_argument(
        "--permission",
        choices=[p.value for p in PermissionStatus],
        default=PermissionStatus.WHILE_IN_USE.value,
        help="Simulated location permission state",
    )
    ver.add_argument("--service-disabled", action="store_true", help="Simulate location services switched off")
    ver.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    ver.set_defaults(func=_cmd_verify)

    prog = sub.add_parser("progress", help="Show completion and the next recommended site.")
    prog.add_argument("--user", required=True)
    prog.add_argument("--origin-lat", type=float, default=None)
    prog.add_argument("--origin-lon", type=float, default=None)
    prog.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    prog.set_defaults(func=_cmd_progress)

    fav = sub.add_parser("favorite", help="Toggle a site in the favorites list.")
    fav.add_argument("--user", required=True)
    fav.add_argument("--site", required=True)
    fav.set_defaults(func=_cmd_favorite)

    jr = sub.add_parser("journal", help="Append a journal entry.")
    jr.add_argument("--user", required=True)
    jr.add_argument("--text", required=True)
    jr.add_argument("--title", default=None)
    jr.add_argument("--site", default=None)
    jr.add_argument("--rating", type=int, default=None, choices=range(1, 6))
    jr.set_defaults(func=_cmd_journal)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m heritagetrail.cli`."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging("DEBUG" if args.verbose else None)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
