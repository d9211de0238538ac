"""
OSM XML parser

Streams an .osm document (optionally gzip or bzip2 compressed) and feeds
every node, way and relation to an ElementSink in document order.
"""

import bz2
import gzip
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, IO, Union
from loguru import logger

from .ingest import ElementSink
from ..errors import DataFileError


class OSMXMLParser:
    """Parses OSM XML into element events"""

    def parse(self, path: Union[str, Path], sink: ElementSink) -> Dict[str, int]:
        """
        Parse a data file and drive the sink

        Args:
            path: .osm, .osm.gz or .osm.bz2 file
            sink: receiver of the element events

        Returns:
            Element counts by type

        Raises:
            DataFileError: If the file is unreadable or malformed
        """
        path = Path(path)
        logger.info(f"Opening data file: {path}")
        try:
            with self._open(path) as fh:
                counts = self.parse_stream(fh, sink, source=path)
        except ET.ParseError as e:
            raise DataFileError(path, f"malformed XML: {e}") from e
        except (OSError, EOFError) as e:
            raise DataFileError(path, f"cannot read file: {e}") from e

        logger.info(f"Parsed {counts['node']} nodes, {counts['way']} ways, {counts['relation']} relations")
        return counts

    def parse_stream(self, fh: IO[bytes], sink: ElementSink, source: Union[str, Path] = "<stream>") -> Dict[str, int]:
        """Parse an already opened binary stream"""
        counts = {"node": 0, "way": 0, "relation": 0}
        context = ET.iterparse(fh, events=("start", "end"))
        _, root = next(context)
        if root.tag != "osm":
            raise DataFileError(source, f"root element is <{root.tag}>, expected <osm>")

        for event, elem in context:
            if event != "end" or elem.tag not in counts:
                continue
            try:
                if elem.tag == "node":
                    sink.on_node(int(elem.attrib["id"]), float(elem.attrib["lat"]), float(elem.attrib["lon"]))
                elif elem.tag == "way":
                    node_ids = [int(nd.attrib["ref"]) for nd in elem.iter("nd")]
                    sink.on_way(int(elem.attrib["id"]), node_ids, self._tags(elem))
                else:
                    members = [
                        (m.attrib["type"], int(m.attrib["ref"]), m.attrib.get("role", ""))
                        for m in elem.iter("member")
                    ]
                    sink.on_relation(int(elem.attrib["id"]), members, self._tags(elem))
            except (KeyError, ValueError) as e:
                raise DataFileError(source, f"bad <{elem.tag} id={elem.attrib.get('id')!r}>: {e!r}") from e
            counts[elem.tag] += 1
            # Drop finished elements so memory stays flat
            root.clear()

        sink.on_end()
        return counts

    @staticmethod
    def _tags(elem: ET.Element) -> Dict[str, str]:
        return {t.attrib["k"]: t.attrib.get("v", "") for t in elem.iter("tag")}

    @staticmethod
    def _open(path: Path) -> IO[bytes]:
        if path.suffix == ".gz":
            return gzip.open(path, "rb")
        if path.suffix == ".bz2":
            return bz2.open(path, "rb")
        return open(path, "rb")
