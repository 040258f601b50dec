from __future__ import annotations

import argparse
import json
from collections import Counter
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from heritagetrail.catalog.loader import load_sites
from heritagetrail.core.env import resolve_project_path


def _read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Validate the HeritageTrail site catalog (offline).")
    p.add_argument("--catalog", type=str, default="data/catalogs/sites.json")
    args = p.parse_args(argv)

    catalog_path = resolve_project_path(args.catalog)
    if not catalog_path.exists():
        print("Catalog file not found:", catalog_path)
        return 2

    payload = _read_json(catalog_path)
    if not isinstance(payload, list):
        print("Invalid catalog shape: expected a list of site objects.")
        return 2

    raw_ids = [str(row.get("id", "")).strip() for row in payload if isinstance(row, dict)]
    duplicates = sorted(site_id for site_id, n in Counter(raw_ids).items() if n > 1)
    if duplicates:
        print("Duplicate ids:", len(duplicates), "example:", ", ".join(duplicates[:8]))
        return 2

    try:
        sites = load_sites(catalog_path)
    except ValidationError as e:
        print("Invalid site rows:", e.error_count())
        print(e)
        return 2

    unlocated = [s.id for s in sites if s.location is None]
    unclassified = [s.id for s in sites if not s.heritage_classification]

    print("Catalog:", catalog_path)
    print("Sites:", len(sites))
    print("Sites with coordinates:", len(sites) - len(unlocated))
    if unlocated:
        print("Missing coordinates (cannot be verified):", len(unlocated), "example:", ", ".join(unlocated[:8]))
    if unclassified:
        print("No heritage classification:", len(unclassified), "example:", ", ".join(unclassified[:8]))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
