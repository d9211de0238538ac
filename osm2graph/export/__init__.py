"""
Graph export

- Projection: row sequences for nodes, edges, types, classes, tags, relations
- Sink: persistence interface and export order
- SQLite sink: database tables and vertex topology
- Geofile: GeoJSON / GeoPackage edge files
"""

from .projection import ExportOptions, ExportProjection
from .sink import GraphSink, export_graph
from .sqlite_sink import SQLiteGraphSink

__all__ = [
    "ExportOptions",
    "ExportProjection",
    "GraphSink",
    "export_graph",
    "SQLiteGraphSink",
]
