"""
Tag classification

- Rules: ClassRule / WayType models and cost sentinels
- Config parser: reads the XML class configuration
- Engine: ordered first-match classification and cost derivation
"""

from .rules import ClassRule, WayType, MapConfiguration, UNTRAVERSABLE, UNCLASSIFIED_CLASS_ID
from .config_parser import MapConfigParser
from .engine import ClassificationEngine, ResolvedWay, ResolvedWayClass, cost_per_unit_length

__all__ = [
    "ClassRule",
    "WayType",
    "MapConfiguration",
    "UNTRAVERSABLE",
    "UNCLASSIFIED_CLASS_ID",
    "MapConfigParser",
    "ClassificationEngine",
    "ResolvedWay",
    "ResolvedWayClass",
    "cost_per_unit_length",
]
