"""
geography.py - Region-code-to-name tables

Each geography maps region codes to display metadata, e.g. the
"United States" table maps two-digit state FIPS codes to state names.

Usage:
    from geography import GeographyResource

    geo = GeographyResource()
    geo.get_geo_code_hash("United States")["06"]["name"]
    # Returns: 'California'
"""

import copy
import json
from pathlib import Path
from typing import Dict, List, Optional

from tile_model import ConfigError, RegionLookupError


GeoCodeHash = Dict[str, Dict[str, str]]

DEFAULT_GEOGRAPHY = "United States"

# State FIPS code -> (name, postal abbreviation)
US_STATES = {
    "01": ("Alabama", "AL"),
    "02": ("Alaska", "AK"),
    "04": ("Arizona", "AZ"),
    "05": ("Arkansas", "AR"),
    "06": ("California", "CA"),
    "08": ("Colorado", "CO"),
    "09": ("Connecticut", "CT"),
    "10": ("Delaware", "DE"),
    "11": ("District of Columbia", "DC"),
    "12": ("Florida", "FL"),
    "13": ("Georgia", "GA"),
    "15": ("Hawaii", "HI"),
    "16": ("Idaho", "ID"),
    "17": ("Illinois", "IL"),
    "18": ("Indiana", "IN"),
    "19": ("Iowa", "IA"),
    "20": ("Kansas", "KS"),
    "21": ("Kentucky", "KY"),
    "22": ("Louisiana", "LA"),
    "23": ("Maine", "ME"),
    "24": ("Maryland", "MD"),
    "25": ("Massachusetts", "MA"),
    "26": ("Michigan", "MI"),
    "27": ("Minnesota", "MN"),
    "28": ("Mississippi", "MS"),
    "29": ("Missouri", "MO"),
    "30": ("Montana", "MT"),
    "31": ("Nebraska", "NE"),
    "32": ("Nevada", "NV"),
    "33": ("New Hampshire", "NH"),
    "34": ("New Jersey", "NJ"),
    "35": ("New Mexico", "NM"),
    "36": ("New York", "NY"),
    "37": ("North Carolina", "NC"),
    "38": ("North Dakota", "ND"),
    "39": ("Ohio", "OH"),
    "40": ("Oklahoma", "OK"),
    "41": ("Oregon", "OR"),
    "42": ("Pennsylvania", "PA"),
    "44": ("Rhode Island", "RI"),
    "45": ("South Carolina", "SC"),
    "46": ("South Dakota", "SD"),
    "47": ("Tennessee", "TN"),
    "48": ("Texas", "TX"),
    "49": ("Utah", "UT"),
    "50": ("Vermont", "VT"),
    "51": ("Virginia", "VA"),
    "53": ("Washington", "WA"),
    "54": ("West Virginia", "WV"),
    "55": ("Wisconsin", "WI"),
    "56": ("Wyoming", "WY"),
}


def _us_states_table() -> GeoCodeHash:
    return {
        code: {"name": name, "abbreviation": abbreviation}
        for code, (name, abbreviation) in US_STATES.items()
    }


class GeographyResource:
    """Registry of region-code-to-name tables keyed by geography name."""

    def __init__(self, tables: Optional[Dict[str, GeoCodeHash]] = None):
        """
        Args:
            tables: Extra geography tables; the built-in United States table
                is always available unless overridden here
        """
        self._tables: Dict[str, GeoCodeHash] = {DEFAULT_GEOGRAPHY: _us_states_table()}
        for geography, table in (tables or {}).items():
            self.register(geography, table)

    def register(self, geography: str, table: GeoCodeHash) -> None:
        """
        Add or replace a geography table.

        Raises:
            ConfigError: If an entry is not a mapping with a name
        """
        if not isinstance(table, dict):
            raise ConfigError(f"Geography {geography!r} must map codes to entries")
        for code, entry in table.items():
            if not isinstance(entry, dict) or "name" not in entry:
                raise ConfigError(f"Entry {code!r} in geography {geography!r} has no name")
        self._tables[geography] = {str(code): dict(entry) for code, entry in table.items()}

    def load_json(self, json_path: Path) -> List[str]:
        """
        Register tables from a JSON file of {geography: {code: {"name": ..}}}.

        Returns:
            Names of the geographies loaded
        """
        with open(json_path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigError(f"Invalid JSON in geographies file {json_path}: {e}") from None
        if not isinstance(data, dict):
            raise ConfigError(f"Geographies file {json_path} must hold a JSON object")
        for geography, table in data.items():
            self.register(geography, table)
        return list(data.keys())

    def geographies(self) -> List[str]:
        return list(self._tables.keys())

    def get_geo_code_hash(self, geography: str) -> GeoCodeHash:
        """
        Region code -> metadata table for a geography.

        Raises:
            RegionLookupError: If the geography is unknown
        """
        try:
            return copy.deepcopy(self._tables[geography])
        except KeyError:
            raise RegionLookupError(
                f"Unknown geography {geography!r} (available: {', '.join(self._tables)})"
            ) from None

    def region_name(self, geography: str, region_id: str) -> str:
        """
        Display name of a region.

        Raises:
            RegionLookupError: If the geography or region code is unknown
        """
        return lookup_region_name(self.get_geo_code_hash(geography), region_id, geography)


def lookup_region_name(geo_code_to_name: GeoCodeHash, region_id: str, geography: str = "") -> str:
    """Name for region_id from an already-resolved table."""
    entry = geo_code_to_name.get(region_id)
    if entry is None:
        where = f" in geography {geography!r}" if geography else ""
        raise RegionLookupError(f"No name for region {region_id!r}{where}")
    return entry["name"]
