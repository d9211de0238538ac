"""
Topology construction

- Geometry: great-circle and projected length calculations
- Builder: way splitting into routable edges
"""

from .builder import Edge, TopologyBuilder
from .geometry import LengthCalculator

__all__ = [
    "Edge",
    "TopologyBuilder",
    "LengthCalculator",
]
