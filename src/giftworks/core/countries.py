"""Bundled country list.

The list ships as ``giftworks/data/countryList.csv``.  Rows are returned as
dictionaries keyed by the header row, with every value kept as a string.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def load_countries(path: Path) -> list[dict[str, str]]:
    """Read the country CSV at ``path``.

    Blank lines are skipped and surrounding whitespace is stripped from every
    cell.
    """
    with open(path, newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        rows = []
        for row in reader:
            cleaned = {
                key.strip(): (value or "").strip()
                for key, value in row.items()
                if isinstance(key, str)
            }
            if any(cleaned.values()):
                rows.append(cleaned)
    logger.debug("Loaded %d countries from %s", len(rows), path)
    return rows
