"""
Site catalog loader.

The catalog is a local JSON file (default: `data/catalogs/sites.json`) that lists every
heritage site with optional coordinates. We validate it into typed Pydantic models so
verification and progress code can assume a consistent shape.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import TypeAdapter

from heritagetrail.core.env import resolve_project_path
from heritagetrail.domain.models import Site


_SITES_ADAPTER = TypeAdapter(list[Site])


def load_sites(path: str | Path) -> list[Site]:
    """Load and validate a site catalog JSON file.

    Raises:
        ValueError: If two entries share the same id.
    """
    resolved = resolve_project_path(path)
    payload = json.loads(resolved.read_text(encoding="utf-8"))
    sites = _SITES_ADAPTER.validate_python(payload)

    seen: set[str] = set()
    for site in sites:
        if site.id in seen:
            raise ValueError(f"Duplicate site id in catalog: '{site.id}'")
        seen.add(site.id)
    return sites


def sites_by_id(sites: list[Site]) -> dict[str, Site]:
    """Index a catalog by site id (catalog order preserved)."""
    return {s.id: s for s in sites}
