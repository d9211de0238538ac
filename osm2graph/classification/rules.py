"""
Classification rule models
"""

from typing import Dict, List, Optional
from dataclasses import dataclass, field

# Cost per unit length of a direction that cannot be traversed.
# Negative costs mean "no edge" to pgRouting style consumers.
UNTRAVERSABLE = -1.0

# Class id given to ways no rule matched (sentinel policy only)
UNCLASSIFIED_CLASS_ID = 0
UNCLASSIFIED_TYPE_ID = 0

DEFAULT_MAXSPEED = 50.0  # km/h, when a <class> has no maxspeed attribute


@dataclass(frozen=True)
class WayType:
    """A <type> of the configuration document, i.e. a tag key"""
    id: int
    name: str


@dataclass(frozen=True)
class ClassRule:
    """
    One <class> of the configuration document

    `priority` is the position in the document and decides which rule wins
    when several match. `penalty` is the document's own priority attribute,
    exported unchanged on the class row.
    """
    priority: int
    tag_key: str
    tag_value: str
    class_id: int
    default_maxspeed: float
    reverse_maxspeed: float
    bidirectional: bool = True
    type_id: int = UNCLASSIFIED_TYPE_ID
    penalty: float = 1.0

    def matches(self, tags: Dict[str, str]) -> bool:
        return tags.get(self.tag_key) == self.tag_value


@dataclass
class MapConfiguration:
    """Parsed configuration document"""
    types: List[WayType] = field(default_factory=list)
    rules: List[ClassRule] = field(default_factory=list)

    def type_by_id(self, type_id: int) -> Optional[WayType]:
        for way_type in self.types:
            if way_type.id == type_id:
                return way_type
        return None

    def rule_by_class_id(self, class_id: int) -> Optional[ClassRule]:
        for rule in self.rules:
            if rule.class_id == class_id:
                return rule
        return None
