"""
Tests for the dataset build flow.
"""

from __future__ import annotations

import csv
import json
from datetime import date, timedelta
from typing import TYPE_CHECKING, Any
from unittest.mock import Mock, patch

import geopandas as gpd
import requests
from conftest import hourly_payload
from shapely.geometry import box

from birdbase.config import Settings
from birdbase.datasources.ebird import HotspotInfo, TaxonRecord, taxonomy_to_dict
from birdbase.flows import pipeline as flow_module
from birdbase.schemas import CoordinateSource, Location
from birdbase.store import DataStore

if TYPE_CHECKING:
    from pathlib import Path

EXPORT = """\
Submission ID,Common Name,Scientific Name,Location ID,Location,Date,Time
S1,California Scrub-Jay,Aphelocoma californica,L1,Mt. Tabor Park,2022-06-01,07:42 AM
S1,White-breasted Nuthatch,Sitta carolinensis,L1,Mt. Tabor Park,2022-06-01,07:42 AM
S2,White-breasted Nuthatch,Sitta carolinensis,L2,Backyard,2022-06-02,06:10 PM
"""

TAXA = {
    "California Scrub-Jay": TaxonRecord("cowscj1", "California Scrub-Jay", "Aphelocoma californica", "Corvidae"),
    "White-breasted Nuthatch": TaxonRecord("whbnut", "White-breasted Nuthatch", "Sitta carolinensis", "Sittidae"),
}


def _hotspot(loc_id: str, **_kwargs: Any) -> HotspotInfo:
    if loc_id == "L1":
        return HotspotInfo(loc_id="L1", name="Mt. Tabor Park", latitude=45.5113, longitude=-122.5943)
    raise requests.HTTPError("400 Client Error")


def _weather(lat: float, lon: float, start: date, end: date, **_kwargs: Any) -> dict[str, Any]:
    return hourly_payload(start, end)


def _settings(tmp_path: Path) -> Settings:
    export = tmp_path / "MyEBirdData.csv"
    export.write_text(EXPORT, encoding="utf-8")

    layer = gpd.GeoDataFrame(
        {
            "BIOME_NAME": ["Temperate Conifer Forests"],
            "ECO_NAME": ["Central Pacific Northwest coastal forests"],
        },
        geometry=[box(-125, 40, -120, 50)],
        crs="EPSG:4326",
    )
    layer_path = tmp_path / "biomes.geojson"
    layer.to_file(layer_path, driver="GeoJSON")

    overrides = tmp_path / "overrides.csv"
    overrides.write_text("loc_id,latitude,longitude\nL2,44.0582,-121.3153\n")

    return Settings(
        data_dir=tmp_path / "data",
        export_path=export,
        biome_layer_path=layer_path,
        overrides_path=overrides,
        max_workers=2,
    )


class TestLoadTaxonomy:
    """Reference-tier caching of the eBird taxonomy."""

    def test_fresh_copy_skips_service(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path)
        store.write(
            flow_module.TAXONOMY_PATH,
            taxonomy_to_dict(TAXA),
            source="api.ebird.org",
            ttl=timedelta(days=1),
        )

        with patch("birdbase.flows.pipeline.ebird.fetch_taxonomy") as mock_fetch:
            taxa = flow_module.load_taxonomy(store, None, 30.0)

        mock_fetch.assert_not_called()
        assert taxa == TAXA

    def test_refresh_writes_reference_tier(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path)

        with patch("birdbase.flows.pipeline.ebird.fetch_taxonomy", return_value=TAXA):
            flow_module.load_taxonomy(store, "key", 30.0)

        assert store.is_fresh(flow_module.TAXONOMY_PATH)

    def test_failed_refresh_uses_stale_copy(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path)
        store.write(
            flow_module.TAXONOMY_PATH,
            taxonomy_to_dict(TAXA),
            source="api.ebird.org",
            ttl=timedelta(days=-1),
        )

        with patch(
            "birdbase.flows.pipeline.ebird.fetch_taxonomy",
            side_effect=requests.ConnectionError("offline"),
        ):
            taxa = flow_module.load_taxonomy(store, None, 30.0)

        assert taxa == TAXA

    def test_failed_refresh_without_copy_is_empty(self, tmp_path: Path) -> None:
        with patch(
            "birdbase.flows.pipeline.ebird.fetch_taxonomy",
            side_effect=requests.ConnectionError("offline"),
        ):
            assert flow_module.load_taxonomy(DataStore(tmp_path), None, 30.0) == {}


class TestPreviousLocations:
    def test_round_trip(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path)
        location = Location(
            id="L2",
            name="Backyard",
            latitude=44.0582,
            longitude=-121.3153,
            coordinate_source=CoordinateSource.OVERRIDE,
        )
        flow_module.save_locations(store, {"L2": location})

        assert flow_module.load_previous_locations(store) == {"L2": location}

    def test_first_run_is_empty(self, tmp_path: Path) -> None:
        assert flow_module.load_previous_locations(DataStore(tmp_path)) == {}


class TestBuildDatasetFlow:
    """End-to-end flow against local files and mocked services."""

    def test_writes_tables_state_and_report(self, tmp_path: Path) -> None:
        settings = _settings(tmp_path)

        with (
            patch("birdbase.flows.pipeline.ebird.fetch_taxonomy", return_value=TAXA),
            patch("birdbase.flows.pipeline.ebird.fetch_hotspot_info", side_effect=_hotspot),
            patch("birdbase.flows.pipeline.fetch_historical_hourly", side_effect=_weather),
        ):
            summary = flow_module.build_dataset(settings=settings)

        assert summary["counts"] == {
            "species": 2,
            "observations": 3,
            "locations": 2,
            "checklists": 2,
        }
        assert summary["unresolved"] == {}

        data_dir = tmp_path / "data"
        with (data_dir / "derived" / "tables" / "checklists.csv").open() as f:
            checklists = {row["id"]: row for row in csv.DictReader(f)}
        assert float(checklists["S1"]["temperature_c"]) == 18.0
        assert float(checklists["S2"]["temperature_c"]) == 28.0

        with (data_dir / "derived" / "tables" / "locations.csv").open() as f:
            locations = {row["id"]: row for row in csv.DictReader(f)}
        assert locations["L2"]["coordinate_source"] == "override"
        assert locations["L1"]["biome"] == "Temperate Conifer Forests"

        assert (data_dir / "historical" / "locations.json").exists()
        report = json.loads((data_dir / "derived" / "report.json").read_text())
        assert report["data"]["attempted"]["coordinates"] == 2

    def test_second_run_skips_resolved_work(self, tmp_path: Path) -> None:
        settings = _settings(tmp_path)
        hotspot = Mock(side_effect=_hotspot)

        with (
            patch("birdbase.flows.pipeline.ebird.fetch_taxonomy", return_value=TAXA),
            patch("birdbase.flows.pipeline.ebird.fetch_hotspot_info", hotspot),
            patch("birdbase.flows.pipeline.fetch_historical_hourly", side_effect=_weather),
        ):
            flow_module.build_dataset(settings=settings)
            calls_after_first = hotspot.call_count
            flow_module.build_dataset(settings=settings)

        assert calls_after_first == 2
        assert hotspot.call_count == calls_after_first
