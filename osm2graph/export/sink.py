"""
Persistence sink interface and the export sequence that drives it
"""

from typing import ContextManager, Iterable, Protocol
from loguru import logger

from .projection import ExportOptions, ExportProjection
from ..context import RunContext
from ..models import NodeRow, EdgeRow, TypeRow, ClassRow, TagRow, RelationWayRow


class GraphSink(Protocol):
    """Destination store of the routable graph"""

    def connect(self) -> None: ...

    def has_spatial_support(self) -> bool: ...

    def transaction(self) -> ContextManager[None]: ...

    def drop_tables(self) -> None: ...

    def create_tables(self) -> None: ...

    def export_nodes(self, rows: Iterable[NodeRow]) -> int: ...

    def export_types(self, rows: Iterable[TypeRow]) -> int: ...

    def export_classes(self, rows: Iterable[ClassRow]) -> int: ...

    def export_relations_ways(self, rows: Iterable[RelationWayRow]) -> int: ...

    def export_tags(self, rows: Iterable[TagRow]) -> int: ...

    def export_ways(self, rows: Iterable[EdgeRow]) -> int: ...

    def create_topology(self) -> int: ...

    def close(self) -> None: ...


def export_graph(
    sink: GraphSink,
    projection: ExportProjection,
    options: ExportOptions,
    context: RunContext
) -> None:
    """Write every row sequence in one transaction"""
    with sink.transaction():
        if options.clean:
            with context.stage("Dropping tables"):
                sink.drop_tables()

        with context.stage("Creating tables"):
            sink.create_tables()

        with context.stage("Adding auxiliary tables to database"):
            if not options.skip_nodes:
                logger.info(f"  nodes: {sink.export_nodes(projection.nodes())}")
            logger.info(f"  types: {sink.export_types(projection.types())}")
            logger.info(f"  classes: {sink.export_classes(projection.classes())}")
            logger.info(f"  relation ways: {sink.export_relations_ways(projection.relation_ways())}")
            logger.info(f"  tags: {sink.export_tags(projection.tags())}")
            logger.info(f"  ways: {sink.export_ways(projection.edges())}")

        with context.stage("Creating topology"):
            logger.info(f"  vertices: {sink.create_topology()}")
