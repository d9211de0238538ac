import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from osm2graph.classification import MapConfigParser
from osm2graph.config import PipelineConfig
from osm2graph.context import RunContext
from osm2graph.osm import OSMNode, OSMWay, OSMRelation, RawMapModel, RelationMember


CONFIG_XML = """<?xml version="1.0"?>
<configuration>
  <type name="highway" id="1">
    <class name="motorway" id="101" priority="1.0" maxspeed="120" oneway="yes"/>
    <class name="primary" id="106" priority="1.15" maxspeed="90" maxspeed_backward="72"/>
    <class name="residential" id="110" priority="2.5" maxspeed="36"/>
  </type>
  <type name="junction" id="4">
    <class name="roundabout" id="401" priority="1.0" maxspeed="30" oneway="yes"/>
  </type>
</configuration>
"""

# Ten nodes spaced 0.001 degrees of longitude apart on the equator,
# plus a short column north of node 3.
#
#   5 (3, 0.001)     6 (3, 0.002)
#   |
#   1 - 2 - 3 - 4
OSM_XML = """<?xml version="1.0" encoding="UTF-8"?>
<osm version="0.6" generator="test">
  <node id="1" lat="0.0" lon="0.000"/>
  <node id="2" lat="0.0" lon="0.001"/>
  <node id="3" lat="0.0" lon="0.002"/>
  <node id="4" lat="0.0" lon="0.003"/>
  <node id="5" lat="0.001" lon="0.002"/>
  <node id="6" lat="0.002" lon="0.002">
    <tag k="highway" v="traffic_signals"/>
  </node>
  <way id="100">
    <nd ref="1"/><nd ref="2"/><nd ref="3"/><nd ref="4"/>
    <tag k="highway" v="primary"/>
    <tag k="name" v="Main Street"/>
  </way>
  <way id="200">
    <nd ref="3"/><nd ref="5"/><nd ref="6"/>
    <tag k="highway" v="residential"/>
    <tag k="oneway" v="yes"/>
  </way>
  <way id="300">
    <nd ref="4"/><nd ref="99"/>
    <tag k="highway" v="residential"/>
  </way>
  <way id="400">
    <nd ref="2"/><nd ref="5"/>
    <tag k="waterway" v="ditch"/>
  </way>
  <relation id="900">
    <member type="way" ref="100" role="forward"/>
    <member type="node" ref="3" role="via"/>
    <member type="way" ref="200" role=""/>
    <tag k="type" v="route"/>
  </relation>
</osm>
"""


@pytest.fixture
def map_configuration():
    return MapConfigParser().parse_string(CONFIG_XML)


@pytest.fixture
def rules(map_configuration):
    return map_configuration.rules


@pytest.fixture
def run_context():
    return RunContext()


@pytest.fixture
def pipeline_config(tmp_path):
    config = PipelineConfig()
    config.database.dbname = str(tmp_path / "graph.sqlite")
    config.database.prefix = ""
    config.database.suffix = ""
    return config


@pytest.fixture
def osm_file(tmp_path):
    path = tmp_path / "map.osm"
    path.write_text(OSM_XML, encoding="utf-8")
    return path


@pytest.fixture
def conf_file(tmp_path):
    path = tmp_path / "mapconfig.xml"
    path.write_text(CONFIG_XML, encoding="utf-8")
    return path


@pytest.fixture
def build_model():
    """
    Factory: build_model(nodes, ways, relations=(), finalize=True)

    nodes: {id: (lon, lat)}
    ways: [(id, [node ids], {tags})]
    """
    def _build(nodes, ways, relations=(), finalize=True, context=None):
        model = RawMapModel(context or RunContext())
        for node_id, (lon, lat) in nodes.items():
            model.add_node(OSMNode(id=node_id, lat=lat, lon=lon))
        for way_id, node_ids, tags in ways:
            model.add_way(OSMWay(id=way_id, node_ids=tuple(node_ids), tags=dict(tags)))
        for rel_id, members, tags in relations:
            model.add_relation(OSMRelation(
                id=rel_id,
                members=tuple(RelationMember(*m) for m in members),
                tags=dict(tags)
            ))
        if finalize:
            model.finalize()
        return model
    return _build


def line_nodes(count, start_id=1, lat=0.0, step=0.001):
    """count nodes on a parallel, step degrees of longitude apart"""
    return {start_id + i: (i * step, lat) for i in range(count)}


class RecordingSink:
    """ElementSink that keeps the raw event stream"""

    def __init__(self):
        self.events = []

    def on_node(self, id, lat, lon):
        self.events.append(("node", id, lat, lon))

    def on_way(self, id, node_ids, tags):
        self.events.append(("way", id, tuple(node_ids), dict(tags)))

    def on_relation(self, id, members, tags):
        self.events.append(("relation", id, tuple(members), dict(tags)))

    def on_end(self):
        self.events.append(("end",))

    def counts(self):
        result = {}
        for event in self.events:
            result[event[0]] = result.get(event[0], 0) + 1
        return result
