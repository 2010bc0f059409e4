"""CatalogStore — the single persisted catalog blob.

The blob is a JSON object with three arrays (``costItems``,
``specCategories``, ``optionCategories``) plus ``unitPrices`` and a
``version``.  Loading is backward compatible:

* a bare JSON array is read as a version-1 blob holding only cost items;
* a missing section falls back to the built-in section;
* missing fields on a record take the model defaults (``profitMargin`` 0.35,
  ``pricing`` "quantity", ...).

A blob that cannot be parsed never reaches the caller as an error: the store
logs a warning and hands out the built-in catalog instead.
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from planestimator.catalog.models import Catalog
from planestimator.catalog.seed_data import DEFAULT_CATALOG_DATA, default_catalog
from planestimator.config import CATALOG_SCHEMA_VERSION, DEFAULT_CATALOG_PATH
from planestimator.errors import CatalogLoadError

logger = logging.getLogger(__name__)

_SECTIONS = ("costItems", "specCategories", "optionCategories", "unitPrices")


def _strip_nulls(records: Any) -> Any:
    """Drop ``None`` values so that the model defaults apply to them.

    Category records are cleaned down into their ``options`` lists.
    """
    if not isinstance(records, list):
        return records
    cleaned = []
    for rec in records:
        if isinstance(rec, dict):
            rec = {
                k: _strip_nulls(v) if k == "options" else v
                for k, v in rec.items()
                if v is not None
            }
        cleaned.append(rec)
    return cleaned


def parse_catalog(data: Any) -> Catalog:
    """Build a :class:`Catalog` from a decoded blob.

    Raises
    ------
    CatalogLoadError
        If *data* does not have the catalog shape.
    """
    if isinstance(data, list):
        data = {"version": "1", "costItems": data}
    if not isinstance(data, dict):
        raise CatalogLoadError(f"Catalog blob must be an object, got {type(data).__name__}")

    merged: dict[str, Any] = {"version": str(data.get("version", "1"))}
    for section in _SECTIONS:
        value = data.get(section)
        if value is None:
            logger.debug("Catalog blob has no '%s', using built-in section", section)
            value = DEFAULT_CATALOG_DATA[section]
        merged[section] = _strip_nulls(value) if section != "unitPrices" else value

    try:
        return Catalog.model_validate(merged)
    except ValidationError as exc:
        raise CatalogLoadError(f"Invalid catalog blob: {exc}") from exc


def loads_catalog(text: str) -> Catalog:
    """Parse a JSON string into a :class:`Catalog` (strict)."""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as exc:
        raise CatalogLoadError(f"Catalog blob is not valid JSON: {exc}") from exc
    return parse_catalog(data)


def dumps_catalog(catalog: Catalog) -> str:
    """Serialise *catalog* to the persisted JSON layout."""
    payload = catalog.to_dict()
    payload["version"] = CATALOG_SCHEMA_VERSION
    return json.dumps(payload, ensure_ascii=False, indent=2)


class CatalogStore:
    """Read/write access to the persisted catalog file.

    Parameters
    ----------
    path:
        Location of the JSON blob.  Parent directories are created on save.
    """

    def __init__(self, path: str | Path = DEFAULT_CATALOG_PATH) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Catalog:
        """Return the persisted catalog, or the built-in one.

        Never raises for a missing or corrupt blob.
        """
        if not self.path.is_file():
            logger.debug("No persisted catalog at %s, using built-in catalog", self.path)
            return default_catalog()
        try:
            text = self.path.read_text(encoding="utf-8")
            return loads_catalog(text)
        except (CatalogLoadError, OSError) as exc:
            logger.warning("Corrupt catalog at %s — using built-in catalog (%s)", self.path, exc)
            return default_catalog()

    def save(self, catalog: Catalog) -> None:
        """Atomically replace the persisted blob with *catalog*."""
        root = self.path.parent
        root.mkdir(parents=True, exist_ok=True)
        # Atomic write: temp file + rename
        fd, tmp = tempfile.mkstemp(dir=root, prefix=".catalog_", suffix=".json")
        try:
            with open(fd, "w", encoding="utf-8") as fh:
                fh.write(dumps_catalog(catalog))
            Path(tmp).replace(self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        logger.info("Saved catalog (%d cost items) to %s", len(catalog.cost_items), self.path)

    def reset(self) -> Catalog:
        """Delete the persisted blob and return the built-in catalog."""
        self.path.unlink(missing_ok=True)
        return default_catalog()
