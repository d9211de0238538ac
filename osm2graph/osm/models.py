"""
OSM data models

Data classes for representing raw OSM nodes, ways and relations
"""

from typing import List, Dict, Tuple
from dataclasses import dataclass, field


@dataclass
class OSMNode:
    """Represents an OSM node (point)"""
    id: int
    lat: float
    lon: float
    ref_count: int = 0  # Written once by RawMapModel.finalize()


@dataclass(frozen=True)
class OSMWay:
    """Represents an OSM way (ordered node references)"""
    id: int
    node_ids: Tuple[int, ...]
    tags: Dict[str, str] = field(default_factory=dict)

    @property
    def is_closed(self) -> bool:
        """First and last node are the same and there is something in between"""
        collapsed = self.collapsed_node_ids()
        return len(collapsed) > 2 and collapsed[0] == collapsed[-1]

    def collapsed_node_ids(self) -> List[int]:
        """Node ids with immediately-repeated duplicates removed"""
        return collapse_repeats(self.node_ids)

    def counted_node_ids(self) -> List[int]:
        """
        Node occurrences that count towards reference counts

        Consecutive repeats count once and a closed way counts its
        closing node once.
        """
        collapsed = self.collapsed_node_ids()
        if len(collapsed) > 2 and collapsed[0] == collapsed[-1]:
            return collapsed[:-1]
        return collapsed


@dataclass(frozen=True)
class RelationMember:
    """One member of a relation"""
    type: str  # node, way or relation
    ref: int
    role: str = ""


@dataclass(frozen=True)
class OSMRelation:
    """Represents an OSM relation"""
    id: int
    members: Tuple[RelationMember, ...]
    tags: Dict[str, str] = field(default_factory=dict)

    def way_members(self) -> List[RelationMember]:
        return [m for m in self.members if m.type == "way"]


def collapse_repeats(node_ids) -> List[int]:
    collapsed: List[int] = []
    for node_id in node_ids:
        if not collapsed or collapsed[-1] != node_id:
            collapsed.append(node_id)
    return collapsed
