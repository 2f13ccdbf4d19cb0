"""
topology_codec.py - Delta-encoded TopoJSON from GeoJSON polygons

Each polygon path becomes one arc: the first point is absolute and every
following point is the displacement from the point before it. There is no
quantization and no arc sharing; the transform is the identity, so a
decoder only has to prefix-sum each arc.

Primary reference:
https://github.com/topojson/topojson-specification
"""

from typing import Any, Dict, Iterable, List, Sequence

import numpy as np

from tile_model import MalformedGeometryError


DEFAULT_GEOJSON_OBJECT_ID = "states"

IDENTITY_TRANSFORM = {
    "scale": [1.0, 1.0],
    "translate": [0.0, 0.0],
}


def _as_point_array(points: Sequence[Sequence[float]], min_points: int) -> np.ndarray:
    try:
        coords = np.asarray(points)
    except ValueError as e:
        raise MalformedGeometryError(f"Ragged coordinate path: {e}") from None

    if coords.ndim != 2 or coords.shape[1] < 2 or not np.issubdtype(coords.dtype, np.number):
        raise MalformedGeometryError("Coordinate path must be a sequence of [x, y] points")
    if coords.shape[0] < min_points:
        raise MalformedGeometryError(
            f"Coordinate path has {coords.shape[0]} point(s), need at least {min_points}"
        )
    return coords[:, :2]


def encode_arc(points: Sequence[Sequence[float]]) -> List[List[float]]:
    """
    Delta-encode one path.

    Args:
        points: Absolute [x, y] points, at least two

    Returns:
        Arc with the first point absolute and the rest as displacements
        from the previous original point
    """
    coords = _as_point_array(points, min_points=2)
    arc = np.empty_like(coords)
    arc[0] = coords[0]
    arc[1:] = np.diff(coords, axis=0)
    return arc.tolist()


def decode_arc(arc: Sequence[Sequence[float]]) -> List[List[float]]:
    """Absolute points of a delta-encoded arc (left-to-right prefix sum)."""
    coords = _as_point_array(arc, min_points=1)
    return np.cumsum(coords, axis=0).tolist()


def _features(geojson: Any) -> List[Dict[str, Any]]:
    """Feature dicts from a FeatureCollection, a feature list or a __geo_interface__ object."""
    if hasattr(geojson, "__geo_interface__"):
        geojson = geojson.__geo_interface__

    if isinstance(geojson, dict):
        geojson_type = geojson.get("type")
        if geojson_type == "FeatureCollection":
            return list(geojson.get("features", []))
        if geojson_type == "Feature":
            return [geojson]
        if geojson_type is not None:
            return [{"type": "Feature", "geometry": geojson}]
        raise MalformedGeometryError("GeoJSON object has no type")

    return [_list_item_feature(item) for item in geojson]


def _list_item_feature(item: Any) -> Dict[str, Any]:
    # Items may be Feature dicts, bare geometries or __geo_interface__ objects
    if hasattr(item, "__geo_interface__"):
        item = item.__geo_interface__
    if isinstance(item, dict) and item.get("type") not in (None, "Feature"):
        return {"type": "Feature", "geometry": item}
    return item


def _feature_paths(feature: Dict[str, Any]) -> List[Sequence[Sequence[float]]]:
    """
    Outer ring of each polygon part.

    Polygons with holes are not supported and raise rather than being
    encoded as extra parts.
    """
    geometry = feature.get("geometry")
    label = f"Feature {feature.get('id')!r}"
    if geometry is None:
        raise MalformedGeometryError(f"{label} has no geometry")

    geometry_type = geometry.get("type")
    coordinates = geometry.get("coordinates") or []

    if geometry_type == "Polygon":
        polygons = [coordinates] if len(coordinates) else []
    elif geometry_type == "MultiPolygon":
        polygons = list(coordinates)
    else:
        raise MalformedGeometryError(f"{label} has unsupported geometry type {geometry_type!r}")

    if not polygons:
        raise MalformedGeometryError(f"{label} has no coordinate paths")

    paths = []
    for rings in polygons:
        if len(rings) == 0:
            raise MalformedGeometryError(f"{label} has an empty polygon part")
        if len(rings) > 1:
            raise MalformedGeometryError(f"{label} has polygon holes, which cannot be encoded")
        paths.append(rings[0])
    return paths


def from_geojson(geojson: Any, object_id: str = DEFAULT_GEOJSON_OBJECT_ID) -> Dict[str, Any]:
    """
    Format TopoJSON from GeoJSON polygons.

    Every path gets its own arc, appended in feature/path order. A feature
    with one path becomes a Polygon referencing that arc; a feature with
    several paths becomes a MultiPolygon of single-ring parts.

    Args:
        geojson: FeatureCollection dict, list of features, or an object
            exposing __geo_interface__
        object_id: Name of the geometry collection in "objects"

    Returns:
        Topology dict

    Raises:
        MalformedGeometryError: If any feature cannot be encoded; nothing is
            returned for the other features
    """
    arcs: List[List[List[float]]] = []
    geometries = []

    for feature in _features(geojson):
        paths = _feature_paths(feature)
        has_multiple_paths = len(paths) > 1

        arc_indexes = []
        for path in paths:
            arcs.append(encode_arc(path))
            arc_indexes.append(len(arcs) - 1)

        geometry: Dict[str, Any] = {
            "type": "MultiPolygon" if has_multiple_paths else "Polygon",
        }
        if feature.get("id") is not None:
            geometry["id"] = feature["id"]
        if has_multiple_paths:
            geometry["arcs"] = [[[index]] for index in arc_indexes]
        else:
            geometry["arcs"] = [arc_indexes]
        geometries.append(geometry)

    return {
        "type": "Topology",
        "transform": {
            "scale": list(IDENTITY_TRANSFORM["scale"]),
            "translate": list(IDENTITY_TRANSFORM["translate"]),
        },
        "objects": {
            object_id: {
                "type": "GeometryCollection",
                "geometries": geometries,
            },
        },
        "arcs": arcs,
    }


# === Decoding ===

def _absolute_arcs(topology: Dict[str, Any]) -> List[List[List[float]]]:
    """Arcs as absolute points, undoing delta encoding and the transform."""
    transform = topology.get("transform")
    if transform is None:
        # Without a transform TopoJSON arcs are stored as absolute positions
        return [[list(point[:2]) for point in arc] for arc in topology.get("arcs", [])]

    scale = transform.get("scale", [1.0, 1.0])
    translate = transform.get("translate", [0.0, 0.0])
    is_identity = list(scale) == [1, 1] and list(translate) == [0, 0]

    decoded = []
    for arc in topology.get("arcs", []):
        points = decode_arc(arc)
        if not is_identity:
            points = [
                [x * scale[0] + translate[0], y * scale[1] + translate[1]]
                for x, y in points
            ]
        decoded.append(points)
    return decoded


def _ring_coordinates(arc_indexes: Iterable[int], arcs: List[List[List[float]]]) -> List[List[float]]:
    """Stitch a ring from arc references; ~index means the arc reversed."""
    ring: List[List[float]] = []
    for index in arc_indexes:
        points = arcs[index] if index >= 0 else arcs[~index][::-1]
        # Consecutive arcs share their joining point
        ring.extend(points[1:] if ring else points)
    return ring


def _geometry_to_geojson(geometry: Dict[str, Any], arcs: List[List[List[float]]]) -> Any:
    geometry_type = geometry.get("type")
    if geometry_type is None:
        return None
    if geometry_type == "Polygon":
        return {
            "type": "Polygon",
            "coordinates": [_ring_coordinates(ring, arcs) for ring in geometry["arcs"]],
        }
    if geometry_type == "MultiPolygon":
        return {
            "type": "MultiPolygon",
            "coordinates": [
                [_ring_coordinates(ring, arcs) for ring in polygon]
                for polygon in geometry["arcs"]
            ],
        }
    raise MalformedGeometryError(f"Cannot decode geometry type {geometry_type!r}")


def to_geojson(topology: Dict[str, Any], object_id: str = DEFAULT_GEOJSON_OBJECT_ID) -> Dict[str, Any]:
    """
    Decode one object of a topology back into a GeoJSON FeatureCollection.

    Raises:
        KeyError: If the topology has no object named object_id
    """
    arcs = _absolute_arcs(topology)
    collection = topology["objects"][object_id]

    features = []
    for geometry in collection.get("geometries", []):
        feature: Dict[str, Any] = {
            "type": "Feature",
            "geometry": _geometry_to_geojson(geometry, arcs),
            "properties": dict(geometry.get("properties") or {}),
        }
        if geometry.get("id") is not None:
            feature["id"] = geometry["id"]
        features.append(feature)

    return {"type": "FeatureCollection", "features": features}
