"""
Raw map model

Holds every node, way and relation delivered by the parser and computes
per-node reference counts once ingestion is complete.
"""

from typing import Dict, Iterator, List, Optional, Set
from loguru import logger

from .models import OSMNode, OSMWay, OSMRelation
from ..context import (
    RunContext, UNRESOLVED_WAY, DUPLICATE_NODE, DUPLICATE_WAY, DUPLICATE_RELATION
)
from ..errors import ModelStateError


class RawMapModel:
    """
    In-memory OSM extract

    Nodes, ways and relations live in separate flat dicts keyed by id.
    Elements may arrive in any order; nothing is resolved until finalize().

    Usage:
        model = RawMapModel(context)
        model.add_node(OSMNode(1, 51.5, -0.12))
        model.add_way(OSMWay(10, (1, 2), {"highway": "residential"}))
        model.finalize()
        model.ref_count(1)
    """

    def __init__(self, context: Optional[RunContext] = None):
        self.context = context or RunContext()
        self._nodes: Dict[int, OSMNode] = {}
        self._ways: Dict[int, OSMWay] = {}
        self._relations: Dict[int, OSMRelation] = {}
        self._unresolved: Set[int] = set()
        self._sorted_way_ids: List[int] = []
        self._finalized = False

    # ------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------

    def add_node(self, node: OSMNode) -> None:
        self._check_mutable()
        if node.id in self._nodes:
            self.context.record_defect(DUPLICATE_NODE, f"node {node.id} seen again, keeping the last one")
        self._nodes[node.id] = node

    def add_way(self, way: OSMWay) -> None:
        self._check_mutable()
        if way.id in self._ways:
            self.context.record_defect(DUPLICATE_WAY, f"way {way.id} seen again, keeping the last one")
        self._ways[way.id] = way

    def add_relation(self, relation: OSMRelation) -> None:
        self._check_mutable()
        if relation.id in self._relations:
            self.context.record_defect(DUPLICATE_RELATION, f"relation {relation.id} seen again, keeping the last one")
        self._relations[relation.id] = relation

    def _check_mutable(self) -> None:
        if self._finalized:
            raise ModelStateError("RawMapModel is finalized and can no longer be modified")

    # ------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------

    def finalize(self) -> None:
        """
        Resolve node references and compute reference counts, then freeze

        A way referencing an unknown node is flagged unresolved and gets no
        edges, but its known nodes are still counted. Calling finalize()
        again is a no-op.
        """
        if self._finalized:
            return

        self._sorted_way_ids = sorted(self._ways)
        for way_id in self._sorted_way_ids:
            way = self._ways[way_id]
            missing = [node_id for node_id in way.node_ids if node_id not in self._nodes]
            if missing:
                self._unresolved.add(way_id)
                self.context.record_defect(
                    UNRESOLVED_WAY,
                    f"way {way_id} references {len(missing)} unknown node(s), first is {missing[0]}"
                )
            for node_id in way.counted_node_ids():
                node = self._nodes.get(node_id)
                if node is not None:
                    node.ref_count += 1

        self._finalized = True
        logger.info(f"Model finalized: {len(self._nodes)} nodes, {len(self._ways)} ways "
                    f"({len(self._unresolved)} unresolved), {len(self._relations)} relations")

    @property
    def finalized(self) -> bool:
        return self._finalized

    # ------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------

    def ref_count(self, node_id: int) -> int:
        """Number of ways using the node (see OSMWay.counted_node_ids)"""
        if not self._finalized:
            raise ModelStateError("Reference counts are undefined before finalize()")
        return self._nodes[node_id].ref_count

    def node_by_id(self, node_id: int) -> Optional[OSMNode]:
        return self._nodes.get(node_id)

    def way_by_id(self, way_id: int) -> Optional[OSMWay]:
        return self._ways.get(way_id)

    def relation_by_id(self, relation_id: int) -> Optional[OSMRelation]:
        return self._relations.get(relation_id)

    def has_node(self, node_id: int) -> bool:
        return node_id in self._nodes

    def is_unresolved(self, way_id: int) -> bool:
        return way_id in self._unresolved

    def nodes(self) -> Iterator[OSMNode]:
        """Nodes in arrival order"""
        return iter(self._nodes.values())

    def ways(self) -> Iterator[OSMWay]:
        """All ways in ascending id order"""
        way_ids = self._sorted_way_ids if self._finalized else sorted(self._ways)
        return (self._ways[way_id] for way_id in way_ids)

    def resolved_ways(self) -> Iterator[OSMWay]:
        """Ways whose node references all resolved, ascending id"""
        if not self._finalized:
            raise ModelStateError("Unresolved ways are only known after finalize()")
        return (way for way in self.ways() if way.id not in self._unresolved)

    def relations(self) -> Iterator[OSMRelation]:
        """Relations in ascending id order"""
        return (self._relations[rel_id] for rel_id in sorted(self._relations))

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def way_count(self) -> int:
        return len(self._ways)

    @property
    def relation_count(self) -> int:
        return len(self._relations)

    @property
    def unresolved_count(self) -> int:
        return len(self._unresolved)
