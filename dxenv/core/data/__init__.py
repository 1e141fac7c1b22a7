"""
Static package catalog.

Loads ``catalog.yml`` from this directory once and caches it for the
process lifetime.  The CLI, the installer and the default configuration
all read from this single source of truth.

Usage::

    from dxenv.core.data import load_default_catalog

    packages = load_default_catalog()   # list[Package]
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

import yaml

from dxenv.core.errors import ConfigurationError
from dxenv.core.models.package import Package

logger = logging.getLogger(__name__)

_DATA_DIR = Path(__file__).parent
CATALOG_FILE = _DATA_DIR / "catalog.yml"


def parse_catalog(raw: str, source: str = "<string>") -> list[Package]:
    """Parse catalog YAML into validated packages.

    Raises:
        ConfigurationError: On invalid YAML, bad entries, duplicate ids,
            or dependencies that name no catalog entry.
    """
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {source}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("packages"), list):
        raise ConfigurationError(f"Expected a 'packages' list in {source}")

    try:
        packages = [Package.model_validate(entry) for entry in data["packages"]]
    except ValueError as e:
        raise ConfigurationError(f"Invalid package entry in {source}: {e}") from e

    errors = validate_catalog(packages)
    if errors:
        raise ConfigurationError(f"Invalid catalog {source}: " + "; ".join(errors))

    logger.debug("Loaded %d packages from %s", len(packages), source)
    return packages


def validate_catalog(packages: list[Package]) -> list[str]:
    """Check id uniqueness and dependency references.

    Returns:
        List of error strings (empty = valid).
    """
    errors: list[str] = []
    ids: set[str] = set()
    for pkg in packages:
        if pkg.id in ids:
            errors.append(f"Duplicate package id: {pkg.id}")
        ids.add(pkg.id)

    for pkg in packages:
        for dep in pkg.dependencies:
            if dep not in ids:
                errors.append(f"Package '{pkg.id}' depends on unknown package '{dep}'")
    return errors


@lru_cache(maxsize=1)
def _cached_catalog() -> tuple[Package, ...]:
    return tuple(parse_catalog(CATALOG_FILE.read_text(encoding="utf-8"), str(CATALOG_FILE)))


def load_default_catalog() -> list[Package]:
    """The built-in catalog, in install order."""
    return list(_cached_catalog())
