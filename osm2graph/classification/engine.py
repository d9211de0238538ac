"""
Classification engine

Resolves each way's tags to a class, speeds and a one-way policy by
walking the configured rules top to bottom. The first rule whose
tag key/value appears verbatim in the way's tags wins.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple
from loguru import logger

from .rules import ClassRule, UNTRAVERSABLE, UNCLASSIFIED_CLASS_ID, UNCLASSIFIED_TYPE_ID
from ..config import ClassificationConfig, get_config
from ..context import RunContext, UNCLASSIFIED_WAY
from ..osm.model import RawMapModel
from ..osm.models import OSMWay

MPH_TO_KMH = 1.609344

_SPEED_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(mph|km/h|kmh|kph)?\s*$")


def cost_per_unit_length(speed_kmh: float) -> float:
    """Seconds needed per metre at the given speed"""
    return 3.6 / speed_kmh


@dataclass(frozen=True)
class ResolvedWayClass:
    """Outcome of classifying one way"""
    class_id: int
    type_id: int
    forward_maxspeed: float
    reverse_maxspeed: float
    forward_cost_per_unit_length: float
    reverse_cost_per_unit_length: float
    rule: Optional[ClassRule] = None

    @property
    def forward_traversable(self) -> bool:
        return self.forward_cost_per_unit_length >= 0

    @property
    def reverse_traversable(self) -> bool:
        return self.reverse_cost_per_unit_length >= 0

    @property
    def one_way(self) -> int:
        """1 forward only, -1 reverse only, 0 both ways"""
        if self.forward_traversable and not self.reverse_traversable:
            return 1
        if self.reverse_traversable and not self.forward_traversable:
            return -1
        return 0


@dataclass(frozen=True)
class ResolvedWay:
    """A way together with its resolved class"""
    way: OSMWay
    way_class: ResolvedWayClass

    @property
    def id(self) -> int:
        return self.way.id

    @property
    def node_ids(self) -> Tuple[int, ...]:
        return self.way.node_ids

    @property
    def tags(self) -> Dict[str, str]:
        return self.way.tags

    @property
    def class_id(self) -> int:
        return self.way_class.class_id

    @property
    def forward_cost_per_unit_length(self) -> float:
        return self.way_class.forward_cost_per_unit_length

    @property
    def reverse_cost_per_unit_length(self) -> float:
        return self.way_class.reverse_cost_per_unit_length


class ClassificationEngine:
    """
    Ordered first-match rule engine

    Usage:
        engine = ClassificationEngine(configuration.rules)
        resolved = engine.resolve_all(model)
    """

    def __init__(self, rules: Sequence[ClassRule], config: Optional[ClassificationConfig] = None):
        self.rules = list(rules)
        self.config = config or get_config().classification

    def match(self, way: OSMWay, rules: Optional[Sequence[ClassRule]] = None) -> Optional[ClassRule]:
        """First rule whose tag is present on the way"""
        for rule in self.rules if rules is None else rules:
            if rule.matches(way.tags):
                return rule
        return None

    def classify(self, way: OSMWay, rules: Optional[Sequence[ClassRule]] = None) -> Optional[ResolvedWayClass]:
        """Class, speeds and costs of a way, or None when no rule matches"""
        rule = self.match(way, rules)
        if rule is None:
            return None
        return self._resolve_class(way, rule)

    def resolve(self, way: OSMWay, context: Optional[RunContext] = None) -> Optional[ResolvedWay]:
        """
        Classify a way and apply the unclassified policy

        Returns:
            ResolvedWay, or None when the way is dropped
        """
        way_class = self.classify(way)
        if way_class is None:
            if self.config.unclassified_policy == "sentinel":
                way_class = self._resolve_class(way, self.unclassified_rule())
            else:
                if context is not None:
                    context.record_defect(UNCLASSIFIED_WAY)
                logger.debug(f"Way {way.id} matches no class rule, dropped")
                return None
        return ResolvedWay(way=way, way_class=way_class)

    def resolve_all(self, model: RawMapModel) -> List[ResolvedWay]:
        """Resolve every way with resolved node references, ascending id"""
        resolved = []
        for way in model.resolved_ways():
            resolved_way = self.resolve(way, model.context)
            if resolved_way is not None:
                resolved.append(resolved_way)
        logger.info(f"Classified {len(resolved)} ways "
                    f"({model.context.defect_count(UNCLASSIFIED_WAY)} unclassified dropped)")
        return resolved

    def unclassified_rule(self) -> ClassRule:
        speed = self.config.unclassified_maxspeed
        return ClassRule(
            priority=len(self.rules),
            tag_key="",
            tag_value="",
            class_id=UNCLASSIFIED_CLASS_ID,
            default_maxspeed=speed,
            reverse_maxspeed=speed,
            bidirectional=True,
            type_id=UNCLASSIFIED_TYPE_ID
        )

    # ------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------

    def _resolve_class(self, way: OSMWay, rule: ClassRule) -> ResolvedWayClass:
        forward, backward = self._direction(way.tags, rule)
        forward_speed, reverse_speed = self._speeds(way.tags, rule)
        return ResolvedWayClass(
            class_id=rule.class_id,
            type_id=rule.type_id,
            forward_maxspeed=forward_speed,
            reverse_maxspeed=reverse_speed,
            forward_cost_per_unit_length=cost_per_unit_length(forward_speed) if forward else UNTRAVERSABLE,
            reverse_cost_per_unit_length=cost_per_unit_length(reverse_speed) if backward else UNTRAVERSABLE,
            rule=rule
        )

    def _direction(self, tags: Dict[str, str], rule: ClassRule) -> Tuple[bool, bool]:
        forward = True
        backward = rule.bidirectional
        if not self.config.honor_oneway_tags:
            return forward, backward

        if tags.get("junction") in ("roundabout", "circular"):
            backward = False

        oneway = tags.get("oneway")
        if oneway in ("yes", "true", "1"):
            forward, backward = True, False
        elif oneway in ("-1", "reverse"):
            forward, backward = False, True
        elif oneway == "no":
            forward, backward = True, True
        return forward, backward

    def _speeds(self, tags: Dict[str, str], rule: ClassRule) -> Tuple[float, float]:
        forward = rule.default_maxspeed
        reverse = rule.reverse_maxspeed
        if not self.config.honor_maxspeed_tags:
            return forward, reverse

        both = parse_maxspeed(tags.get("maxspeed"))
        if both is not None:
            forward = reverse = both
        forward = parse_maxspeed(tags.get("maxspeed:forward")) or forward
        reverse = parse_maxspeed(tags.get("maxspeed:backward")) or reverse
        return forward, reverse


def parse_maxspeed(value: Optional[str]) -> Optional[float]:
    """
    Parse an OSM maxspeed value into km/h

    Handles "50", "50 km/h", "30 mph" and the first of several
    ";"-separated values. Symbolic values ("none", "walk", "RU:urban")
    give None.
    """
    if not value:
        return None
    match = _SPEED_RE.match(value.split(";")[0])
    if not match:
        return None
    speed = float(match.group(1))
    if match.group(2) == "mph":
        speed *= MPH_TO_KMH
    return speed if speed > 0 else None
