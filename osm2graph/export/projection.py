"""
Export projection

Reshapes the model, configuration and edges into the row sequences the
persistence sink loads. Pure field projection, nothing is filtered here.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional

from shapely.geometry import LineString, Point

from ..classification.engine import ResolvedWay
from ..classification.rules import MapConfiguration
from ..models import NodeRow, EdgeRow, TypeRow, ClassRow, TagRow, RelationWayRow
from ..osm.model import RawMapModel
from ..topology.builder import Edge


@dataclass
class ExportOptions:
    """Flags handed through to the sink"""
    skip_nodes: bool = True  # Omit the raw node table
    clean: bool = False  # Drop tables before creating them


class ExportProjection:
    """Row sequences for one conversion run"""

    def __init__(
        self,
        model: RawMapModel,
        configuration: MapConfiguration,
        resolved_ways: Iterable[ResolvedWay],
        edges: List[Edge],
        options: Optional[ExportOptions] = None
    ):
        self.model = model
        self.configuration = configuration
        self.resolved_by_id: Dict[int, ResolvedWay] = {r.id: r for r in resolved_ways}
        self.edges_list = edges
        self.options = options or ExportOptions()

    def nodes(self) -> Iterator[NodeRow]:
        if self.options.skip_nodes:
            return
        for node in self.model.nodes():
            yield NodeRow(
                node_id=node.id,
                lon=node.lon,
                lat=node.lat,
                numofuse=node.ref_count,
                the_geom=Point(node.lon, node.lat).wkt
            )

    def types(self) -> Iterator[TypeRow]:
        for way_type in self.configuration.types:
            yield TypeRow(type_id=way_type.id, name=way_type.name)

    def classes(self) -> Iterator[ClassRow]:
        for rule in self.configuration.rules:
            yield ClassRow(
                class_id=rule.class_id,
                type_id=rule.type_id,
                name=rule.tag_value,
                priority=rule.penalty,
                default_maxspeed=rule.default_maxspeed,
                reverse_maxspeed=rule.reverse_maxspeed,
                bidirectional=rule.bidirectional
            )

    def relation_ways(self) -> Iterator[RelationWayRow]:
        for relation in self.model.relations():
            relation_type = relation.tags.get("type")
            for sequence, member in enumerate(relation.members):
                if member.type != "way":
                    continue
                yield RelationWayRow(
                    relation_id=relation.id,
                    sequence=sequence,
                    way_id=member.ref,
                    role=member.role,
                    type=relation_type
                )

    def edges(self) -> Iterator[EdgeRow]:
        for edge in self.edges_list:
            resolved = self.resolved_by_id[edge.parent_way_id]
            coords = self._coords(edge)
            yield EdgeRow(
                gid=edge.id,
                osm_id=edge.parent_way_id,
                class_id=edge.class_id,
                name=resolved.tags.get("name"),
                one_way=resolved.way_class.one_way,
                maxspeed_forward=resolved.way_class.forward_maxspeed,
                maxspeed_backward=resolved.way_class.reverse_maxspeed,
                source_osm=edge.source_node_id,
                target_osm=edge.target_node_id,
                x1=coords[0][0],
                y1=coords[0][1],
                x2=coords[-1][0],
                y2=coords[-1][1],
                length_m=edge.length,
                cost=edge.cost,
                reverse_cost=edge.reverse_cost,
                the_geom=LineString(coords).wkt
            )

    def tags(self) -> Iterator[TagRow]:
        """Parent way tags for every edge, one row per distinct key/value"""
        for edge in self.edges_list:
            # Tag keys are unique per way, so the pairs are too
            for key, value in self.resolved_by_id[edge.parent_way_id].tags.items():
                yield TagRow(gid=edge.id, key=key, value=value)

    def _coords(self, edge: Edge) -> List[List[float]]:
        coords = []
        for node_id in edge.geometry:
            node = self.model.node_by_id(node_id)
            coords.append([node.lon, node.lat])
        return coords
