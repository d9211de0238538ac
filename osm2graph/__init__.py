"""
osm2graph - OpenStreetMap extract to routable graph converter
"""

from .pipeline import Osm2GraphPipeline, ConversionResult

__version__ = "2.1.0"

__all__ = [
    "Osm2GraphPipeline",
    "ConversionResult",
]
