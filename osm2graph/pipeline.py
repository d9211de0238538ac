"""
Main Pipeline Orchestrator for osm2graph

Runs the conversion phases strictly in order, each one complete before
the next starts:

  1. Sink pre-flight (connection + spatial capability)
  2. Parse the class configuration document
  3. Parse the OSM data file into the RawMapModel, then finalize it
  4. Classify ways
  5. Split ways into edges
  6. Export rows to the sink and build its topology
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union
from loguru import logger

from .config import get_config, validate_config, PipelineConfig
from .context import RunContext
from .errors import SpatialSupportError
from .classification import ClassificationEngine, MapConfigParser, MapConfiguration, ResolvedWay
from .export import ExportOptions, ExportProjection, GraphSink, export_graph
from .osm import ModelIngestor, OSMXMLParser, RawMapModel
from .topology import Edge, TopologyBuilder


@dataclass
class ConversionResult:
    """Everything one run produced"""
    model: RawMapModel
    configuration: MapConfiguration
    resolved_ways: List[ResolvedWay]
    edges: List[Edge]
    context: RunContext = field(default_factory=RunContext)

    def projection(self, options: Optional[ExportOptions] = None) -> ExportProjection:
        return ExportProjection(self.model, self.configuration, self.resolved_ways, self.edges, options)


class Osm2GraphPipeline:
    """
    Converts an OSM extract into a routable graph

    Usage:
        pipeline = Osm2GraphPipeline(sink=SQLiteGraphSink())
        result = pipeline.run("map.osm", "mapconfig.xml")
    """

    def __init__(self, config: Optional[PipelineConfig] = None, sink: Optional[GraphSink] = None):
        self.config = config or get_config()
        self.sink = sink
        self.config_parser = MapConfigParser()
        self.data_parser = OSMXMLParser()

    @property
    def export_options(self) -> ExportOptions:
        return ExportOptions(skip_nodes=self.config.skip_nodes, clean=self.config.clean)

    def run(
        self,
        data_file: Union[str, Path],
        conf_file: Union[str, Path],
        edges_file: Optional[Union[str, Path]] = None,
        context: Optional[RunContext] = None
    ) -> ConversionResult:
        """
        Run the complete conversion

        Args:
            data_file: OSM XML extract
            conf_file: Class configuration document
            edges_file: Optional GeoJSON/GeoPackage copy of the edges
            context: Run context (a fresh one by default)

        Returns:
            ConversionResult with the model, classified ways and edges
        """
        validate_config(self.config)
        context = context or RunContext()

        if self.sink is not None:
            with context.stage("Connecting to the database"):
                self.sink.connect()
                if not self.sink.has_spatial_support():
                    raise SpatialSupportError("Spatial index support not found in the destination store")

        with context.stage("Parsing configuration"):
            configuration = self.config_parser.parse(conf_file)

        model = RawMapModel(context)
        with context.stage("Parsing data"):
            self.data_parser.parse(data_file, ModelIngestor(model))

        result = self.build_graph(model, configuration, context)

        if self.sink is not None:
            export_graph(self.sink, result.projection(self.export_options), self.export_options, context)

        if edges_file is not None:
            # Imported here so geopandas is only loaded when a file is requested
            from .export.geofile import write_edges
            with context.stage("Writing edge file"):
                write_edges(result.projection().edges(), edges_file)

        logger.info(f"size of streets: {model.way_count}")
        logger.info(f"size of split ways : {len(result.edges)}")
        context.log_summary()
        return result

    def build_graph(
        self,
        model: RawMapModel,
        configuration: MapConfiguration,
        context: Optional[RunContext] = None
    ) -> ConversionResult:
        """Classify and split an already finalized model"""
        context = context or model.context
        if not model.finalized:
            model.finalize()

        with context.stage("Classifying ways"):
            engine = ClassificationEngine(configuration.rules, self.config.classification)
            resolved_ways = engine.resolve_all(model)

        with context.stage("Splitting ways"):
            builder = TopologyBuilder(self.config.topology)
            edges = builder.build(model, resolved_ways, context)

        return ConversionResult(
            model=model,
            configuration=configuration,
            resolved_ways=resolved_ways,
            edges=edges,
            context=context
        )
