"""
Element sink

The parser only knows this four-method interface; the model builder
implements it.
"""

from typing import Iterable, Mapping, Protocol, Sequence, Tuple

from .model import RawMapModel
from .models import OSMNode, OSMWay, OSMRelation, RelationMember


class ElementSink(Protocol):
    """Receives parsed OSM elements in document order"""

    def on_node(self, id: int, lat: float, lon: float) -> None:
        ...

    def on_way(self, id: int, node_ids: Sequence[int], tags: Mapping[str, str]) -> None:
        ...

    def on_relation(
        self,
        id: int,
        members: Iterable[Tuple[str, int, str]],
        tags: Mapping[str, str]
    ) -> None:
        ...

    def on_end(self) -> None:
        ...


class ModelIngestor:
    """ElementSink that populates a RawMapModel and finalizes it at the end"""

    def __init__(self, model: RawMapModel):
        self.model = model

    def on_node(self, id: int, lat: float, lon: float) -> None:
        self.model.add_node(OSMNode(id=id, lat=lat, lon=lon))

    def on_way(self, id: int, node_ids: Sequence[int], tags: Mapping[str, str]) -> None:
        self.model.add_way(OSMWay(id=id, node_ids=tuple(node_ids), tags=dict(tags)))

    def on_relation(
        self,
        id: int,
        members: Iterable[Tuple[str, int, str]],
        tags: Mapping[str, str]
    ) -> None:
        self.model.add_relation(OSMRelation(
            id=id,
            members=tuple(RelationMember(type=t, ref=ref, role=role) for t, ref, role in members),
            tags=dict(tags)
        ))

    def on_end(self) -> None:
        self.model.finalize()
