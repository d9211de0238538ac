"""
SQLite persistence sink

Writes the routable graph into a SQLite database with R-tree indexed
vertices. Table names follow the usual routing schema:

    <prefix>osm_nodes<suffix>            raw nodes (only with --addnodes)
    <prefix>osm_way_types<suffix>        configuration types
    <prefix>osm_way_classes<suffix>      configuration classes
    <prefix>osm_relations_ways<suffix>   relation -> way membership
    <prefix>osm_way_tags<suffix>         tags of each edge
    <prefix>ways<suffix>                 edges
    <prefix>ways<suffix>_vertices_pgr    topology vertices
"""

import itertools
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union
from loguru import logger
from pydantic import BaseModel

from ..config import DatabaseConfig, get_config
from ..errors import SinkError, SinkConnectionError
from ..models import NodeRow, EdgeRow, TypeRow, ClassRow, TagRow, RelationWayRow


class SQLiteGraphSink:
    """Graph sink backed by a SQLite file"""

    def __init__(self, config: Optional[DatabaseConfig] = None, dbname: Optional[Union[str, Path]] = None):
        self.config = config or get_config().database
        self.dbname = str(dbname or self.config.dbname)
        self.prefix = self.config.prefix
        self.suffix = self.config.suffix
        self._conn: Optional[sqlite3.Connection] = None
        self._vertex_count = 0

    # ------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------

    def connect(self) -> None:
        if self._conn is not None:
            return
        try:
            # Autocommit mode; transactions are explicit, see transaction()
            self._conn = sqlite3.connect(self.dbname, isolation_level=None)
            self._conn.execute("PRAGMA synchronous=NORMAL")
            self._conn.execute("PRAGMA temp_store=MEMORY")
        except sqlite3.Error as e:
            self._conn = None
            raise SinkConnectionError(f"Cannot open database {self.dbname}: {e}") from e
        logger.info(f"Connected to database {self.dbname}")

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise SinkConnectionError("Sink is not connected, call connect() first")
        return self._conn

    def has_spatial_support(self) -> bool:
        """True if the SQLite build ships the R*Tree module"""
        try:
            self.conn.execute(
                "CREATE VIRTUAL TABLE temp.__rtree_probe USING rtree(id, minx, maxx, miny, maxy)"
            )
            self.conn.execute("DROP TABLE temp.__rtree_probe")
        except sqlite3.OperationalError as e:
            logger.error(f"SQLite R*Tree module unavailable: {e}")
            return False
        return True

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """All or nothing: a failure rolls back every table of the run"""
        self.conn.execute("BEGIN")
        try:
            yield
        except BaseException:
            self.conn.execute("ROLLBACK")
            logger.error("Export failed, database changes rolled back")
            raise
        self.conn.execute("COMMIT")

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # ------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------

    def table(self, name: str) -> str:
        return f"{self.prefix}{name}{self.suffix}"

    @property
    def ways_table(self) -> str:
        return self.table("ways")

    @property
    def vertices_table(self) -> str:
        return f"{self.ways_table}_vertices_pgr"

    @property
    def vertices_rtree(self) -> str:
        return f"{self.ways_table}_vertices_rtree"

    def all_tables(self) -> List[str]:
        return [
            self.table("osm_nodes"),
            self.table("osm_way_types"),
            self.table("osm_way_classes"),
            self.table("osm_relations_ways"),
            self.table("osm_way_tags"),
            self.ways_table,
            self.vertices_table,
            self.vertices_rtree,
        ]

    def drop_tables(self) -> None:
        for name in self.all_tables():
            self._execute(f'DROP TABLE IF EXISTS "{name}"')
        logger.info(f"Dropped {len(self.all_tables())} tables")

    def create_tables(self) -> None:
        statements = [
            f'''CREATE TABLE IF NOT EXISTS "{self.table("osm_nodes")}" (
                node_id INTEGER PRIMARY KEY,
                lon REAL NOT NULL,
                lat REAL NOT NULL,
                numofuse INTEGER NOT NULL,
                the_geom TEXT
            )''',
            f'''CREATE TABLE IF NOT EXISTS "{self.table("osm_way_types")}" (
                type_id INTEGER PRIMARY KEY,
                name TEXT NOT NULL
            )''',
            f'''CREATE TABLE IF NOT EXISTS "{self.table("osm_way_classes")}" (
                class_id INTEGER PRIMARY KEY,
                type_id INTEGER NOT NULL,
                name TEXT NOT NULL,
                priority REAL,
                default_maxspeed REAL,
                reverse_maxspeed REAL,
                bidirectional INTEGER
            )''',
            f'''CREATE TABLE IF NOT EXISTS "{self.table("osm_relations_ways")}" (
                relation_id INTEGER NOT NULL,
                sequence INTEGER NOT NULL,
                way_id INTEGER NOT NULL,
                role TEXT,
                type TEXT,
                PRIMARY KEY (relation_id, sequence)
            )''',
            f'''CREATE TABLE IF NOT EXISTS "{self.table("osm_way_tags")}" (
                gid INTEGER NOT NULL,
                "key" TEXT NOT NULL,
                "value" TEXT,
                PRIMARY KEY (gid, "key")
            )''',
            f'''CREATE TABLE IF NOT EXISTS "{self.ways_table}" (
                gid INTEGER PRIMARY KEY,
                osm_id INTEGER NOT NULL,
                class_id INTEGER NOT NULL,
                name TEXT,
                one_way INTEGER,
                maxspeed_forward REAL,
                maxspeed_backward REAL,
                source_osm INTEGER NOT NULL,
                target_osm INTEGER NOT NULL,
                source INTEGER,
                target INTEGER,
                x1 REAL, y1 REAL, x2 REAL, y2 REAL,
                length_m REAL,
                cost REAL,
                reverse_cost REAL,
                the_geom TEXT
            )''',
            f'''CREATE TABLE IF NOT EXISTS "{self.vertices_table}" (
                id INTEGER PRIMARY KEY,
                osm_id INTEGER,
                cnt INTEGER DEFAULT 0,
                lon REAL NOT NULL,
                lat REAL NOT NULL,
                the_geom TEXT
            )''',
            f'''CREATE VIRTUAL TABLE IF NOT EXISTS "{self.vertices_rtree}" USING rtree(
                id, minx, maxx, miny, maxy
            )''',
            f'CREATE INDEX IF NOT EXISTS "{self.ways_table}_source_osm_idx" ON "{self.ways_table}"(source_osm)',
            f'CREATE INDEX IF NOT EXISTS "{self.ways_table}_target_osm_idx" ON "{self.ways_table}"(target_osm)',
        ]
        for statement in statements:
            self._execute(statement)
        logger.info(f"Created tables {', '.join(self.all_tables())}")

    # ------------------------------------------------------------
    # Bulk loading
    # ------------------------------------------------------------

    def export_nodes(self, rows: Iterable[NodeRow]) -> int:
        return self._insert(self.table("osm_nodes"), rows)

    def export_types(self, rows: Iterable[TypeRow]) -> int:
        return self._insert(self.table("osm_way_types"), rows)

    def export_classes(self, rows: Iterable[ClassRow]) -> int:
        return self._insert(self.table("osm_way_classes"), rows)

    def export_relations_ways(self, rows: Iterable[RelationWayRow]) -> int:
        return self._insert(self.table("osm_relations_ways"), rows)

    def export_tags(self, rows: Iterable[TagRow]) -> int:
        return self._insert(self.table("osm_way_tags"), rows)

    def export_ways(self, rows: Iterable[EdgeRow]) -> int:
        return self._insert(self.ways_table, rows)

    def _insert(self, table: str, rows: Iterable[BaseModel]) -> int:
        rows = iter(rows)
        first = next(rows, None)
        if first is None:
            return 0
        columns = list(first.model_dump().keys())
        column_list = ", ".join('"%s"' % c for c in columns)
        placeholders = ", ".join("?" for _ in columns)
        sql = f'INSERT OR REPLACE INTO "{table}" ({column_list}) VALUES ({placeholders})'

        total = 0
        batch_iter = itertools.chain([first], rows)
        while True:
            batch = [tuple(row.model_dump().values()) for row in itertools.islice(batch_iter, self.config.batch_size)]
            if not batch:
                break
            self._executemany(sql, batch)
            total += len(batch)
        return total

    # ------------------------------------------------------------
    # Topology
    # ------------------------------------------------------------

    def create_topology(self) -> int:
        """
        Build the vertex table and fill ways.source / ways.target

        Endpoints sharing an OSM node share a vertex. With a positive
        topology_tolerance, an endpoint within tolerance (degrees) of an
        existing vertex snaps onto it.

        Returns:
            Number of vertices
        """
        tolerance = self.config.topology_tolerance
        self._execute(f'DELETE FROM "{self.vertices_table}"')
        self._execute(f'DELETE FROM "{self.vertices_rtree}"')
        self._vertex_count = 0

        by_osm: Dict[int, int] = {}
        degree: Dict[int, int] = {}
        updates: List[Tuple[int, int, int]] = []
        cursor = self.conn.execute(
            f'SELECT gid, source_osm, target_osm, x1, y1, x2, y2 FROM "{self.ways_table}" ORDER BY gid'
        )
        for gid, source_osm, target_osm, x1, y1, x2, y2 in cursor.fetchall():
            source = self._vertex_for(by_osm, source_osm, x1, y1, tolerance)
            target = self._vertex_for(by_osm, target_osm, x2, y2, tolerance)
            degree[source] = degree.get(source, 0) + 1
            degree[target] = degree.get(target, 0) + 1
            updates.append((source, target, gid))

        self._executemany(f'UPDATE "{self.ways_table}" SET source = ?, target = ? WHERE gid = ?', updates)
        self._executemany(
            f'UPDATE "{self.vertices_table}" SET cnt = ? WHERE id = ?',
            [(count, vertex_id) for vertex_id, count in degree.items()]
        )
        logger.info(f"Topology: {self._vertex_count} vertices for {len(updates)} edges")
        return self._vertex_count

    def _vertex_for(self, by_osm: Dict[int, int], osm_id: int, x: float, y: float, tolerance: float) -> int:
        vertex_id = by_osm.get(osm_id)
        if vertex_id is not None:
            return vertex_id

        if tolerance > 0:
            row = self.conn.execute(
                f'SELECT id FROM "{self.vertices_rtree}" '
                f'WHERE minx >= ? AND maxx <= ? AND miny >= ? AND maxy <= ? ORDER BY id LIMIT 1',
                (x - tolerance, x + tolerance, y - tolerance, y + tolerance)
            ).fetchone()
            if row is not None:
                by_osm[osm_id] = row[0]
                return row[0]

        self._vertex_count += 1
        vertex_id = self._vertex_count
        self._execute(
            f'INSERT INTO "{self.vertices_table}" (id, osm_id, lon, lat, the_geom) VALUES (?, ?, ?, ?, ?)',
            (vertex_id, osm_id, x, y, f"POINT ({x} {y})")
        )
        self._execute(
            f'INSERT INTO "{self.vertices_rtree}" (id, minx, maxx, miny, maxy) VALUES (?, ?, ?, ?, ?)',
            (vertex_id, x, x, y, y)
        )
        by_osm[osm_id] = vertex_id
        return vertex_id

    # ------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------

    def count(self, table: str) -> int:
        return self.conn.execute(f'SELECT COUNT(*) FROM "{table}"').fetchone()[0]

    def fetch_all(self, sql: str, params: Sequence = ()) -> List[tuple]:
        return self.conn.execute(sql, params).fetchall()

    def _execute(self, sql: str, params: Sequence = ()) -> None:
        try:
            self.conn.execute(sql, params)
        except sqlite3.Error as e:
            raise SinkError(f"SQLite error: {e} [{sql.split(chr(10))[0]}]") from e

    def _executemany(self, sql: str, params: List[Sequence]) -> None:
        try:
            self.conn.executemany(sql, params)
        except sqlite3.Error as e:
            raise SinkError(f"SQLite error: {e} [{sql.split(chr(10))[0]}]") from e
