"""
Configuration document parser

Reads the XML class configuration (mapconfig.xml):

    <configuration>
      <type name="highway" id="1">
        <class name="motorway" id="101" priority="1.0" maxspeed="130" oneway="yes"/>
        <class name="primary" id="106" priority="1.15" maxspeed="90" maxspeed_backward="80"/>
      </type>
    </configuration>

Document order is rule priority.
"""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Set, Union
from loguru import logger

from .rules import ClassRule, MapConfiguration, WayType, DEFAULT_MAXSPEED
from ..errors import ConfigFileError

TRUE_VALUES = ("yes", "true", "1")


class MapConfigParser:
    """Parses the classification configuration document"""

    def parse(self, path: Union[str, Path]) -> MapConfiguration:
        """
        Parse a configuration file

        Raises:
            ConfigFileError: If the file is unreadable or malformed
        """
        path = Path(path)
        logger.info(f"Opening configuration file: {path}")
        try:
            root = ET.parse(path).getroot()
        except ET.ParseError as e:
            raise ConfigFileError(path, f"malformed XML: {e}") from e
        except OSError as e:
            raise ConfigFileError(path, f"cannot read file: {e}") from e

        configuration = self.parse_element(root, source=path)
        logger.info(f"Parsed configuration: {len(configuration.types)} types, {len(configuration.rules)} classes")
        return configuration

    def parse_string(self, text: str) -> MapConfiguration:
        try:
            root = ET.fromstring(text)
        except ET.ParseError as e:
            raise ConfigFileError("<string>", f"malformed XML: {e}") from e
        return self.parse_element(root)

    def parse_element(self, root: ET.Element, source: Union[str, Path] = "<string>") -> MapConfiguration:
        if root.tag != "configuration":
            raise ConfigFileError(source, f"root element is <{root.tag}>, expected <configuration>")

        configuration = MapConfiguration()
        type_ids: Set[int] = set()
        class_ids: Set[int] = set()

        for type_elem in root.iter("type"):
            way_type = WayType(
                id=self._int(type_elem, "id", source),
                name=self._required(type_elem, "name", source)
            )
            if way_type.id in type_ids:
                raise ConfigFileError(source, f"duplicate type id {way_type.id}")
            type_ids.add(way_type.id)
            configuration.types.append(way_type)

            for class_elem in type_elem.iter("class"):
                class_id = self._int(class_elem, "id", source)
                if class_id in class_ids:
                    raise ConfigFileError(source, f"duplicate class id {class_id}")
                class_ids.add(class_id)

                maxspeed = self._float(class_elem, "maxspeed", source, DEFAULT_MAXSPEED)
                reverse_maxspeed = self._float(class_elem, "maxspeed_backward", source, maxspeed)
                if maxspeed <= 0 or reverse_maxspeed <= 0:
                    raise ConfigFileError(source, f"class {class_id}: speeds must be positive")

                configuration.rules.append(ClassRule(
                    priority=len(configuration.rules),
                    tag_key=way_type.name,
                    tag_value=self._required(class_elem, "name", source),
                    class_id=class_id,
                    default_maxspeed=maxspeed,
                    reverse_maxspeed=reverse_maxspeed,
                    bidirectional=class_elem.get("oneway", "no").lower() not in TRUE_VALUES,
                    type_id=way_type.id,
                    penalty=self._float(class_elem, "priority", source, 1.0)
                ))

        if not configuration.rules:
            logger.warning(f"{source}: configuration has no <class> rules, every way will be unclassified")
        return configuration

    @staticmethod
    def _required(elem: ET.Element, attr: str, source) -> str:
        value = elem.get(attr)
        if value is None or value == "":
            raise ConfigFileError(source, f"<{elem.tag}> is missing the '{attr}' attribute")
        return value

    def _int(self, elem: ET.Element, attr: str, source) -> int:
        value = self._required(elem, attr, source)
        try:
            return int(value)
        except ValueError as e:
            raise ConfigFileError(source, f"<{elem.tag}> {attr}={value!r} is not an integer") from e

    @staticmethod
    def _float(elem: ET.Element, attr: str, source, default: float) -> float:
        value = elem.get(attr)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError as e:
            raise ConfigFileError(source, f"<{elem.tag}> {attr}={value!r} is not a number") from e
