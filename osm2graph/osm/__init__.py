"""
Raw OpenStreetMap data

- Models: Data structures (OSMNode, OSMWay, OSMRelation)
- Model: RawMapModel with reference counting
- Ingest: ElementSink interface and the model builder implementing it
- Parser: Streaming OSM XML parser
"""

from .models import OSMNode, OSMWay, OSMRelation, RelationMember
from .model import RawMapModel
from .ingest import ElementSink, ModelIngestor
from .parser import OSMXMLParser

__all__ = [
    "OSMNode",
    "OSMWay",
    "OSMRelation",
    "RelationMember",
    "RawMapModel",
    "ElementSink",
    "ModelIngestor",
    "OSMXMLParser",
]
