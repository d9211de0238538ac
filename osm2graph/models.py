"""
Pydantic models for the exported graph rows
Each model is one row of a table written by the persistence sink
"""

from typing import Optional
from pydantic import BaseModel


# ============================================================
# Raw data
# ============================================================

class NodeRow(BaseModel):
    node_id: int
    lon: float
    lat: float
    numofuse: int  # Reference count
    the_geom: str  # WKT POINT


class RelationWayRow(BaseModel):
    relation_id: int
    sequence: int  # Position in the relation member list
    way_id: int
    role: str = ""
    type: Optional[str] = None  # The relation's "type" tag


# ============================================================
# Classification
# ============================================================

class TypeRow(BaseModel):
    type_id: int
    name: str


class ClassRow(BaseModel):
    class_id: int
    type_id: int
    name: str
    priority: float = 1.0
    default_maxspeed: float
    reverse_maxspeed: float
    bidirectional: bool = True


# ============================================================
# Topology
# ============================================================

class EdgeRow(BaseModel):
    gid: int
    osm_id: int
    class_id: int
    name: Optional[str] = None
    one_way: int = 0  # 1 forward only, -1 reverse only, 0 both
    maxspeed_forward: float
    maxspeed_backward: float
    source_osm: int
    target_osm: int
    x1: float
    y1: float
    x2: float
    y2: float
    length_m: float
    cost: float  # Seconds, negative when untraversable
    reverse_cost: float
    the_geom: str  # WKT LINESTRING


class TagRow(BaseModel):
    gid: int
    key: str
    value: str
