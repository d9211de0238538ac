"""
Edge file export

Writes the edge rows to a GeoJSON or GeoPackage file for inspection in a
GIS or with the `visualize` command.
"""

from pathlib import Path
from typing import Iterable, Union
from loguru import logger

import geopandas as gpd
from shapely import wkt

from ..errors import SinkError
from ..models import EdgeRow

DRIVERS = {
    ".geojson": "GeoJSON",
    ".json": "GeoJSON",
    ".gpkg": "GPKG",
}


def edges_to_geodataframe(rows: Iterable[EdgeRow]) -> gpd.GeoDataFrame:
    records = []
    geometries = []
    for row in rows:
        record = row.model_dump()
        geometries.append(wkt.loads(record.pop("the_geom")))
        records.append(record)
    return gpd.GeoDataFrame(records, geometry=geometries, crs="EPSG:4326")


def write_edges(rows: Iterable[EdgeRow], output_path: Union[str, Path]) -> int:
    """
    Write edges to a GeoJSON (.geojson/.json) or GeoPackage (.gpkg) file

    Returns:
        Number of edges written
    """
    output_path = Path(output_path)
    driver = DRIVERS.get(output_path.suffix.lower())
    if driver is None:
        raise SinkError(f"Unsupported edge file type {output_path.suffix!r}, use one of {sorted(DRIVERS)}")

    rows = list(rows)
    if not rows:
        logger.warning(f"No edges to write to {output_path}")
        return 0
    gdf = edges_to_geodataframe(rows)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        gdf.to_file(output_path, driver=driver)
    except Exception as e:
        raise SinkError(f"Failed to write {output_path}: {e}") from e
    logger.info(f"Saved {len(gdf)} edges to {output_path}")
    return len(gdf)
