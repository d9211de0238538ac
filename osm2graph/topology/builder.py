"""
Topology builder

Splits classified ways into maximal routable edges.

A way is cut at its first and last node and at every interior node whose
reference count is above one, i.e. a node another way also uses or one
this way passes through twice. Each run between two cuts becomes an edge.
Edge ids come from one counter walked in ascending way id order, so the
same input always yields the same ids.
"""

import itertools
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple
import numpy as np
from loguru import logger

from .geometry import LengthCalculator
from ..classification.engine import ResolvedWay
from ..classification.rules import UNTRAVERSABLE
from ..config import TopologyConfig, get_config
from ..context import RunContext, DEGENERATE_EDGE
from ..errors import ModelStateError
from ..osm.model import RawMapModel
from ..osm.models import collapse_repeats


@dataclass(frozen=True)
class Edge:
    """A split way: the part of a way between two boundary nodes"""
    id: int
    parent_way_id: int
    source_node_id: int
    target_node_id: int
    geometry: Tuple[int, ...]  # Node ids, source first
    length: float
    cost: float
    reverse_cost: float
    class_id: int

    @property
    def is_self_loop(self) -> bool:
        return self.source_node_id == self.target_node_id

    @property
    def interior_node_ids(self) -> Tuple[int, ...]:
        return self.geometry[1:-1]


def scaled_cost(cost_per_unit_length: float, length: float) -> float:
    """Edge cost; untraversable directions stay negative"""
    if cost_per_unit_length < 0:
        return UNTRAVERSABLE * length if length > 0 else UNTRAVERSABLE
    return cost_per_unit_length * length


class TopologyBuilder:
    """
    Builds the edge list from a finalized RawMapModel

    Usage:
        builder = TopologyBuilder()
        edges = builder.build(model, resolved_ways)
    """

    def __init__(self, config: Optional[TopologyConfig] = None):
        self.config = config or get_config().topology
        self.length_calculator = LengthCalculator(self.config)

    def build(
        self,
        model: RawMapModel,
        resolved_ways: Iterable[ResolvedWay],
        context: Optional[RunContext] = None
    ) -> List[Edge]:
        """
        Split every resolved way into edges

        Args:
            model: Finalized raw model (reference counts, node coordinates)
            resolved_ways: Classified ways, any order
            context: Defect counters (defaults to the model's)

        Returns:
            Edges in id order
        """
        if not model.finalized:
            raise ModelStateError("TopologyBuilder needs a finalized RawMapModel")
        context = context or model.context

        edge_ids = itertools.count(self.config.first_edge_id)
        edges: List[Edge] = []
        way_count = 0
        for resolved in sorted(resolved_ways, key=lambda r: r.id):
            if model.is_unresolved(resolved.id):
                # Already counted when the model was finalized
                continue
            way_count += 1
            edges.extend(self.split_way(model, resolved, edge_ids, context))

        logger.info(f"Split {way_count} ways into {len(edges)} edges "
                    f"({context.defect_count(DEGENERATE_EDGE)} degenerate segments skipped)")
        return edges

    def split_way(
        self,
        model: RawMapModel,
        resolved: ResolvedWay,
        edge_ids: Iterator[int],
        context: RunContext
    ) -> List[Edge]:
        """Edges of one way, taking ids from edge_ids as they are produced"""
        node_ids = resolved.node_ids
        if len(node_ids) < 2:
            context.record_defect(DEGENERATE_EDGE, f"way {resolved.id} has fewer than two nodes")
            return []

        coords = []
        for node_id in node_ids:
            node = model.node_by_id(node_id)
            coords.append((node.lon, node.lat))
        segment_lengths = self.length_calculator.segment_lengths(coords)

        edges = []
        for start, end in self.runs(model, node_ids):
            run = node_ids[start:end + 1]
            if len(collapse_repeats(run)) < 2:
                context.record_defect(
                    DEGENERATE_EDGE,
                    f"way {resolved.id}: segment at node {run[0]} collapses to a single point"
                )
                continue

            length = float(np.sum(segment_lengths[start:end]))
            edges.append(Edge(
                id=next(edge_ids),
                parent_way_id=resolved.id,
                source_node_id=run[0],
                target_node_id=run[-1],
                geometry=tuple(run),
                length=length,
                cost=scaled_cost(resolved.forward_cost_per_unit_length, length),
                reverse_cost=scaled_cost(resolved.reverse_cost_per_unit_length, length),
                class_id=resolved.class_id
            ))
        return edges

    @staticmethod
    def boundary_positions(model: RawMapModel, node_ids: Tuple[int, ...]) -> List[int]:
        """Positions where an edge must start or end"""
        last = len(node_ids) - 1
        positions = [0]
        for position in range(1, last):
            if model.ref_count(node_ids[position]) > 1:
                positions.append(position)
        if last > 0:
            positions.append(last)
        return positions

    def runs(self, model: RawMapModel, node_ids: Tuple[int, ...]) -> List[Tuple[int, int]]:
        """(start, end) positions of the maximal runs between boundaries, inclusive"""
        positions = self.boundary_positions(model, node_ids)
        return list(zip(positions, positions[1:]))
