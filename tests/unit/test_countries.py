"""Tests for giftworks.core.countries: bundled country list."""

from __future__ import annotations

from pathlib import Path

import pytest

from giftworks.core.config import DEFAULT_COUNTRIES_CSV
from giftworks.core.countries import load_countries


def test_bundled_list_loads():
    countries = load_countries(DEFAULT_COUNTRIES_CSV)
    assert len(countries) > 150
    assert {"name": "United States", "code": "US"} in countries


def test_rows_keyed_by_header(temp_dir: Path):
    path = temp_dir / "countries.csv"
    path.write_text("name, code ,region\nFrance, FR ,Europe\n\nJapan,JP,Asia\n")

    assert load_countries(path) == [
        {"name": "France", "code": "FR", "region": "Europe"},
        {"name": "Japan", "code": "JP", "region": "Asia"},
    ]


def test_short_rows_fill_with_empty_strings(temp_dir: Path):
    path = temp_dir / "countries.csv"
    path.write_text("name,code\nNowhere\n")

    assert load_countries(path) == [{"name": "Nowhere", "code": ""}]


def test_missing_file(temp_dir: Path):
    with pytest.raises(FileNotFoundError):
        load_countries(temp_dir / "absent.csv")
