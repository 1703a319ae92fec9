"""Tests for the tiered DataStore."""

from __future__ import annotations

import json
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from birdbase.store import DataStore


def test_tier_paths(tmp_path: Path) -> None:
    store = DataStore(tmp_path)
    assert store.reference == tmp_path / "reference"
    assert store.historical == tmp_path / "historical"
    assert store.derived == tmp_path / "derived"


class TestWrite:
    """Metadata envelopes."""

    def test_envelope(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path)
        store.write(
            Path("reference/ebird_taxonomy.json"),
            {"Mallard": {"species_code": "mallar3"}},
            source="api.ebird.org",
            ttl=timedelta(days=90),
            locale="en",
        )

        data = json.loads((tmp_path / "reference" / "ebird_taxonomy.json").read_text())
        assert data["meta"]["source"] == "api.ebird.org"
        fetched = datetime.fromisoformat(data["meta"]["fetched_at"])
        valid_until = datetime.fromisoformat(data["meta"]["valid_until"])
        assert valid_until - fetched == timedelta(days=90)
        assert data["meta"]["locale"] == "en"
        assert "fetched_at" in data["meta"]
        assert data["data"] == {"Mallard": {"species_code": "mallar3"}}

    def test_derived_output_has_no_expiry(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path)
        store.write(Path("derived/tables/species.json"), [], source="birdbase", rows=0)

        data = json.loads((tmp_path / "derived" / "tables" / "species.json").read_text())
        assert "valid_until" not in data["meta"]
        assert data["meta"]["rows"] == 0

    def test_dates_serialized_as_strings(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path)
        store.write(Path("derived/x.json"), {"when": datetime(2022, 6, 1, 7, 42)}, source="test")
        assert store.read(Path("derived/x.json")) == {"when": "2022-06-01 07:42:00"}

    def test_refuses_paths_outside_base(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path / "data")
        with pytest.raises(ValueError, match="escapes"):
            store.write(Path("../elsewhere.json"), {}, source="test")


class TestRead:
    def test_read_returns_payload(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path)
        store.write(Path("historical/locations.json"), [{"id": "L1"}], source="birdbase")
        assert store.read(Path("historical/locations.json")) == [{"id": "L1"}]

    def test_missing_file(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path)
        assert store.read(Path("historical/locations.json")) is None
        assert store.read_raw(Path("historical/locations.json")) is None

    def test_read_raw_keeps_meta(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path)
        store.write(Path("derived/report.json"), {"failures": []}, source="birdbase")
        raw = store.read_raw(Path("derived/report.json"))
        assert raw is not None
        assert raw["meta"]["source"] == "birdbase"


class TestIsFresh:
    def test_missing_file(self, tmp_path: Path) -> None:
        assert DataStore(tmp_path).is_fresh(Path("reference/ebird_taxonomy.json")) is False

    def test_expired(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path)
        store.write(Path("reference/t.json"), {}, source="test", ttl=timedelta(days=-1))
        assert store.is_fresh(Path("reference/t.json")) is False

    def test_within_ttl(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path)
        store.write(Path("reference/t.json"), {}, source="test", ttl=timedelta(days=90))
        assert store.is_fresh(Path("reference/t.json")) is True

    def test_no_expiry_is_never_fresh(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path)
        store.write(Path("derived/t.json"), {}, source="test")
        assert store.is_fresh(Path("derived/t.json")) is False


class TestWriteCsv:
    def test_header_and_blank_nulls(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path)
        path = store.write_csv(
            Path("derived/tables/locations.csv"),
            ["id", "biome"],
            [{"id": "L1", "biome": "Deserts"}, {"id": "L2", "biome": None}],
        )

        assert path.read_text().splitlines() == ["id,biome", "L1,Deserts", "L2,"]

    def test_no_temporary_files_left(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path)
        store.write_csv(Path("derived/a.csv"), ["id"], [{"id": "S1"}])
        store.write(Path("derived/a.json"), [], source="test")

        assert sorted(p.name for p in (tmp_path / "derived").iterdir()) == ["a.csv", "a.json"]

    def test_failed_write_keeps_previous_file(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path)
        store.write_csv(Path("derived/a.csv"), ["id"], [{"id": "S1"}])

        with pytest.raises(ValueError, match="dict contains fields not in fieldnames"):
            store.write_csv(Path("derived/a.csv"), ["id"], [{"id": "S2", "extra": 1}])

        assert (tmp_path / "derived" / "a.csv").read_text().splitlines() == ["id", "S1"]
        assert len(list((tmp_path / "derived").iterdir())) == 1
