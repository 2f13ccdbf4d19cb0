"""
Tests for exporter module.

Run with: pytest tests/test_exporter.py -v

Most tests swap in a fake grid and a recording topology builder so the
assembled GeoJSON can be checked directly; TestBuildTopology runs the real
topojson library.
"""

import json
import pytest

from exporter import (
    DEFAULT_QUANTIZATION,
    DISTRIBUTION_NAME,
    OBJECT_ID,
    ExportConfig,
    Exporter,
    __version__,
    build_topology,
)
from geography import GeographyResource
from hexgrid import GridGeometry
from tile_model import ConfigError, DatasetError, RegionLookupError, Tile, TilePosition


class FakeGrid:
    """Grid returning a diamond around center (10 * x, 10 * y)."""

    def tile_center_point(self, position):
        return [position["x"] * 10, position["y"] * 10]

    def get_points_around(self, center, contiguous):
        cx, cy = center
        return [[cx, cy - 1], [cx + 1, cy], [cx, cy + 1], [cx - 1, cy]]

    def get_tile_dimensions(self):
        return {"width": 2, "height": 2}


class RecordingBuilder:
    """Topology builder that records its input instead of compressing it."""

    def __init__(self):
        self.calls = []

    def __call__(self, objects, property_transform=None, quantization=None):
        self.calls.append({
            "objects": objects,
            "property_transform": property_transform,
            "quantization": quantization,
        })
        return {"type": "Topology", "objects": {}, "arcs": []}

    @property
    def features(self):
        (collection,) = self.calls[-1]["objects"].values()
        return collection["features"]


TEST_TABLES = {
    "Testland": {
        "X": {"name": "Region X"},
        "Y": {"name": "Region Y"},
        "Z": {"name": "Region Z"},
    },
}


def make_tile(region_id, x, y):
    return Tile(id=region_id, position=TilePosition(x=x, y=y))


@pytest.fixture
def builder():
    return RecordingBuilder()


@pytest.fixture
def exporter(builder):
    return Exporter(
        grid=FakeGrid(),
        geography=GeographyResource(TEST_TABLES),
        topology_builder=builder,
    )


class TestExportConfig:
    """Tests for ExportConfig."""

    def test_defaults(self):
        """Documented defaults."""
        config = ExportConfig()
        assert config.object_id == OBJECT_ID == "tiles"
        assert config.geojson_object_id == "states"
        assert config.quantization == DEFAULT_QUANTIZATION == 10 ** 10
        assert config.version == __version__

    def test_from_dict(self):
        """Known keys override defaults."""
        config = ExportConfig.from_dict({"object_id": "hexes", "quantization": 1000})
        assert config.object_id == "hexes"
        assert config.quantization == 1000

    def test_from_dict_unknown_key(self):
        """Unknown keys are rejected."""
        with pytest.raises(ConfigError, match="objectid"):
            ExportConfig.from_dict({"objectid": "typo"})

    def test_from_dict_requires_object(self):
        """A non-object config is rejected."""
        with pytest.raises(ConfigError):
            ExportConfig.from_dict(["tiles"])

    def test_from_json_invalid(self, tmp_path):
        """Unparseable JSON is a config error."""
        path = tmp_path / "config.json"
        path.write_text("{object_id:")
        with pytest.raises(ConfigError):
            ExportConfig.from_json(path)

    def test_version_from_distribution(self):
        """Version is looked up under the installed distribution name."""
        assert DISTRIBUTION_NAME == "tilegram-export"
        assert isinstance(__version__, str) and __version__

    def test_from_json(self, tmp_path):
        """Config loads from a JSON file."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"geojson_object_id": ""}))
        assert ExportConfig.from_json(path).geojson_object_id == ""


class TestToTopoJSON:
    """Tests for Exporter.to_topojson with a recording builder."""

    def test_multipolygon_scenario(self, exporter, builder):
        """Two tiles of one region give a two-part MultiPolygon."""
        tiles = [make_tile("X", 0, 0), make_tile("X", 1, 0)]
        exporter.to_topojson(tiles, [("X", 5)], 1, "Testland")

        (feature,) = builder.features
        assert feature["id"] == "X"
        assert feature["geometry"]["type"] == "MultiPolygon"
        parts = feature["geometry"]["coordinates"]
        assert len(parts) == 2
        for part in parts:
            assert len(part) == 1
            ring = part[0]
            assert ring[0] == ring[-1]
        assert feature["properties"] == {"name": "Region X", "tilegramValue": 5}

    def test_geometry_type_selection(self, exporter, builder):
        """One tile -> Polygon, several -> MultiPolygon, none -> null."""
        tiles = [make_tile("X", 0, 0), make_tile("Y", 1, 0), make_tile("Y", 2, 0), make_tile("Y", 3, 0)]
        exporter.to_topojson(tiles, [("X", 1), ("Y", 3), ("Z", 0)], 1, "Testland")

        by_id = {f["id"]: f for f in builder.features}
        assert by_id["X"]["geometry"]["type"] == "Polygon"
        assert by_id["Y"]["geometry"]["type"] == "MultiPolygon"
        assert len(by_id["Y"]["geometry"]["coordinates"]) == 3
        assert by_id["Z"]["geometry"] is None
        assert by_id["Z"]["properties"] == {"name": "Region Z", "tilegramValue": 0}

    def test_feature_order(self, exporter, builder):
        """Tile regions first, then dataset-only regions."""
        tiles = [make_tile("Y", 0, 0), make_tile("X", 1, 0)]
        exporter.to_topojson(tiles, [("Z", 0), ("X", 1), ("Y", 2)], 1, "Testland")
        assert [f["id"] for f in builder.features] == ["Y", "X", "Z"]

    def test_vertical_flip(self, exporter, builder):
        """Rows are flipped against the maximum row with parity correction."""
        tiles = [make_tile("X", 0, 0), make_tile("Y", 0, 3)]
        exporter.to_topojson(tiles, [("X", 1), ("Y", 1)], 1, "Testland")

        by_id = {f["id"]: f for f in builder.features}
        # max_y = 3: row 0 -> 2, row 3 -> -1
        assert by_id["X"]["geometry"]["coordinates"][0][0] == [0, 19]
        assert by_id["Y"]["geometry"]["coordinates"][0][0] == [0, -11]

    def test_empty_tiles(self, exporter, builder):
        """No tiles still emits every dataset region with null geometry."""
        exporter.to_topojson([], [("Y", 1)], 1, "Testland")
        (feature,) = builder.features
        assert feature["id"] == "Y"
        assert feature["geometry"] is None
        assert feature["properties"]["tilegramValue"] == 1

    def test_builder_options(self, exporter, builder):
        """Builder gets one named collection, the property transform and quantization."""
        exporter.to_topojson([make_tile("X", 0, 0)], [("X", 1)], 1, "Testland")
        call = builder.calls[0]
        assert list(call["objects"].keys()) == ["tiles"]
        assert call["objects"]["tiles"]["type"] == "FeatureCollection"
        assert call["quantization"] == DEFAULT_QUANTIZATION
        feature = builder.features[0]
        assert call["property_transform"](feature) is feature["properties"]

    def test_configured_object_id(self, builder):
        """object_id comes from the config."""
        exporter = Exporter(
            grid=FakeGrid(),
            geography=GeographyResource(TEST_TABLES),
            topology_builder=builder,
            config=ExportConfig(object_id="hexes", quantization=1e4),
        )
        exporter.to_topojson([make_tile("X", 0, 0)], [("X", 1)], 1, "Testland")
        assert list(builder.calls[0]["objects"].keys()) == ["hexes"]
        assert builder.calls[0]["quantization"] == 1e4

    def test_metadata(self, exporter):
        """Export metadata is attached to the result."""
        topology = exporter.to_topojson([make_tile("X", 0, 0)], [("X", 1)], 250000, "Testland")
        assert topology["properties"] == {
            "tilegramMetricPerTile": 250000,
            "tilegramVersion": __version__,
            "tilegramTileSize": {"width": 2, "height": 2},
            "tilegramGeography": "Testland",
        }

    def test_region_missing_from_dataset(self, exporter, builder):
        """Tiles for an unlisted region abort the export."""
        tiles = [make_tile("X", 0, 0), make_tile("Y", 1, 0)]
        with pytest.raises(RegionLookupError):
            exporter.to_topojson(tiles, [("X", 1)], 1, "Testland")
        assert builder.calls == []

    def test_region_missing_from_geography(self, exporter, builder):
        """A region without a name aborts the export."""
        with pytest.raises(LookupError):
            exporter.to_topojson([make_tile("Q", 0, 0)], [("Q", 1)], 1, "Testland")
        assert builder.calls == []

    def test_duplicate_dataset_ids(self, exporter, builder):
        """A region listed twice in the dataset aborts the export."""
        tiles = [make_tile("X", 0, 0)]
        with pytest.raises(DatasetError, match="X"):
            exporter.to_topojson(tiles, [("X", 1), ("Y", 2), ("X", 3)], 1, "Testland")
        assert builder.calls == []

    def test_unknown_geography(self, exporter):
        """Unknown geography is a lookup error."""
        with pytest.raises(RegionLookupError):
            exporter.to_topojson([], [], 1, "Atlantis")

    def test_deterministic(self, exporter, builder):
        """Same input gives identical builder input."""
        tiles = [make_tile("X", 0, 0), make_tile("X", 1, 1), make_tile("Y", 2, 0)]
        dataset = [("X", 2), ("Y", 1), ("Z", 0)]
        exporter.to_topojson(tiles, dataset, 1, "Testland")
        exporter.to_topojson(tiles, dataset, 1, "Testland")
        first, second = (json.dumps(call["objects"]) for call in builder.calls)
        assert first == second


class TestFromGeoJSON:
    """Tests for Exporter.from_geojson."""

    FC = {
        "type": "FeatureCollection",
        "features": [{
            "type": "Feature",
            "id": "A",
            "geometry": {"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 0]]]},
        }],
    }

    def test_default_object_id_from_config(self, exporter):
        """Defaults to the configured geojson object id."""
        assert list(exporter.from_geojson(self.FC)["objects"].keys()) == ["states"]

    def test_explicit_empty_object_id(self, exporter):
        """An explicit empty id is respected."""
        assert list(exporter.from_geojson(self.FC, "")["objects"].keys()) == [""]


class TestBuildTopology:
    """Tests for the default topojson-backed builder."""

    def test_real_export(self):
        """Full export through the topojson library."""
        exporter = Exporter(grid=GridGeometry(tile_edge=10), geography=GeographyResource(TEST_TABLES))
        tiles = [make_tile("X", 0, 0), make_tile("X", 1, 0), make_tile("Y", 0, 1)]
        topology = exporter.to_topojson(tiles, [("X", 2), ("Y", 1), ("Z", 0)], 1, "Testland")

        assert topology["type"] == "Topology"
        assert len(topology["arcs"]) > 0
        geometries = topology["objects"]["tiles"]["geometries"]
        assert [g["id"] for g in geometries] == ["X", "Y", "Z"]
        assert geometries[0]["type"] == "MultiPolygon"
        assert geometries[1]["type"] == "Polygon"
        assert geometries[2]["type"] is None
        assert geometries[0]["properties"] == {"name": "Region X", "tilegramValue": 2}
        assert topology["properties"]["tilegramGeography"] == "Testland"
        json.dumps(topology)

    def test_all_null_geometries(self):
        """Collections without any geometry skip the library."""
        objects = {"tiles": {"type": "FeatureCollection", "features": [
            {"type": "Feature", "id": "Y", "geometry": None, "properties": {"name": "Y"}},
        ]}}
        topology = build_topology(objects)
        assert topology["arcs"] == []
        assert topology["objects"]["tiles"]["geometries"] == [
            {"type": None, "id": "Y", "properties": {"name": "Y"}},
        ]

    def test_requires_single_object(self):
        """Only one named collection per topology."""
        with pytest.raises(ValueError):
            build_topology({"a": {"features": []}, "b": {"features": []}})
