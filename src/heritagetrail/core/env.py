"""
Project root and `.env` handling.

The catalog (`data/catalogs/sites.json`) and the default storage dir are repo-relative
paths. The CLI, uvicorn and pytest all start from different working directories, so
relative paths are resolved against a detected project root instead of the CWD.

Root detection order:
1. `HERITAGETRAIL_PROJECT_ROOT`
2. the parent dir of `HERITAGETRAIL_ENV_FILE`
3. the nearest ancestor (of the CWD, then of this module) holding a root marker
4. the CWD
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

ROOT_MARKERS = (".env", ".git", "pyproject.toml")
CATALOG_MARKER = Path("data") / "catalogs"


def is_project_root(path: Path) -> bool:
    if any((path / marker).exists() for marker in ROOT_MARKERS):
        return True
    return (path / "src" / "heritagetrail").is_dir() and (path / CATALOG_MARKER).is_dir()


def _find_root_above(start: Path) -> Path | None:
    start = start.resolve()
    for candidate in (start, *start.parents):
        if is_project_root(candidate):
            return candidate
    return None


@lru_cache
def get_project_root() -> Path:
    """Return the project root directory (cached for the process)."""
    override = os.getenv("HERITAGETRAIL_PROJECT_ROOT")
    if override:
        return Path(override).expanduser().resolve()

    env_file = os.getenv("HERITAGETRAIL_ENV_FILE")
    if env_file:
        return Path(env_file).expanduser().resolve().parent

    return _find_root_above(Path.cwd()) or _find_root_above(Path(__file__).parent) or Path.cwd().resolve()


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load the `.env` file once, without overriding variables already set.

    Returns the path that was loaded, or None when there is no file.
    """
    explicit = os.getenv("HERITAGETRAIL_ENV_FILE")
    env_path = Path(explicit).expanduser().resolve() if explicit else get_project_root() / ".env"
    if not env_path.is_file():
        return None
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path


def resolve_project_path(path: str | Path) -> Path:
    """Resolve `path` against the project root unless it is already absolute."""
    p = Path(path).expanduser()
    if p.is_absolute():
        return p
    return (get_project_root() / p).resolve()
