#!/usr/bin/env python3
"""
KUBEBUNDLE TRANSFORM CATALOG
----------------------------
A snapshot of the available pipeline functions, grouped by name so the
synthesizer can ask for the latest published image of a transform.
The snapshot is handed to the synthesizer explicitly; there is no global
catalog.

Author: KubeBundle Team
Date: 2026-10-17
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from packaging.version import InvalidVersion, Version
from ruamel.yaml import YAMLError

from kubebundle.core.config import DEFAULT_CATALOG
from kubebundle.core.errors import FunctionNotFound, KubeBundleError
from kubebundle.core.models import CatalogFunction, FunctionRef
from kubebundle.resources import codec

logger = logging.getLogger("kubebundle.catalog")


def _version_key(function: CatalogFunction) -> Tuple[int, Any]:
    try:
        return (1, Version(function.version))
    except InvalidVersion:
        # Unparseable tags sort below every real version
        return (0, function.version)


def _from_record(record: Mapping[str, Any]) -> CatalogFunction:
    """Accepts flat records and catalog Function resources ({metadata, spec.image})."""
    spec = record.get("spec") if isinstance(record.get("spec"), dict) else {}
    image = str(record.get("image") or spec.get("image") or "")
    if not image:
        raise KubeBundleError(f"Catalog entry without an image: {dict(record)}")

    ref = FunctionRef(image=image)
    version = record.get("version") or (image.rsplit(":", 1)[1] if ":" in image.rsplit("/", 1)[-1] else "")
    return CatalogFunction(
        name=str(record.get("name") or ref.function_name),
        version=str(version),
        image=image,
        description=str(record.get("description") or spec.get("description") or ""),
        keywords=tuple(record.get("keywords") or spec.get("keywords") or ()),
    )


class TransformCatalog:

    def __init__(self, functions: Iterable[CatalogFunction]):
        self.functions: List[CatalogFunction] = list(functions)
        self._by_name = group_functions_by_name(self.functions)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "TransformCatalog":
        return cls(_from_record(r) for r in records)

    @classmethod
    def default(cls) -> "TransformCatalog":
        return cls.from_records(DEFAULT_CATALOG)

    @classmethod
    def from_file(cls, path) -> "TransformCatalog":
        """Loads a YAML or JSON catalog: a list of records, or {items: [...]}."""
        catalog_path = Path(path)
        try:
            data = codec.load(catalog_path.read_text(encoding="utf-8-sig"))
        except (OSError, YAMLError) as e:
            logger.error(f"Unable to load catalog from {catalog_path}")
            raise KubeBundleError(f"Failed to load catalog: {e}") from e

        if isinstance(data, dict):
            data = data.get("items", [])
        if not isinstance(data, list):
            raise KubeBundleError(f"Catalog {catalog_path} must hold a list of functions")
        return cls.from_records(r for r in data if isinstance(r, dict))

    def names(self) -> List[str]:
        return list(self._by_name)

    def versions(self, name: str) -> List[CatalogFunction]:
        """All versions of 'name', latest first."""
        return list(self._by_name.get(name, []))

    def latest(self, name: str) -> CatalogFunction:
        versions = self._by_name.get(name)
        if not versions:
            raise FunctionNotFound(name)
        return versions[0]

    def image(self, name: str) -> str:
        return self.latest(name).image


def group_functions_by_name(functions: Iterable[CatalogFunction]) -> Dict[str, List[CatalogFunction]]:
    grouped: Dict[str, List[CatalogFunction]] = {}
    for function in functions:
        grouped.setdefault(function.name, []).append(function)
    for name in grouped:
        grouped[name].sort(key=_version_key, reverse=True)
    return grouped
