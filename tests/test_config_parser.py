import pytest

from osm2graph.classification import MapConfigParser
from osm2graph.config import DEFAULT_MAPCONFIG
from osm2graph.errors import ConfigFileError, InputError


def test_rules_follow_document_order(map_configuration):
    assert [r.class_id for r in map_configuration.rules] == [101, 106, 110, 401]
    assert [r.priority for r in map_configuration.rules] == [0, 1, 2, 3]
    assert [t.name for t in map_configuration.types] == ["highway", "junction"]


def test_rule_attributes(map_configuration):
    motorway = map_configuration.rule_by_class_id(101)
    assert motorway.tag_key == "highway"
    assert motorway.tag_value == "motorway"
    assert motorway.type_id == 1
    assert not motorway.bidirectional

    primary = map_configuration.rule_by_class_id(106)
    assert primary.default_maxspeed == 90
    assert primary.reverse_maxspeed == 72
    assert primary.penalty == pytest.approx(1.15)
    assert primary.bidirectional

    residential = map_configuration.rule_by_class_id(110)
    assert residential.reverse_maxspeed == residential.default_maxspeed == 36

    assert map_configuration.type_by_id(4).name == "junction"
    assert map_configuration.type_by_id(99) is None


def test_missing_maxspeed_uses_default():
    configuration = MapConfigParser().parse_string(
        '<configuration><type name="highway" id="1">'
        '<class name="track" id="5"/>'
        '</type></configuration>'
    )
    assert configuration.rules[0].default_maxspeed == 50.0


def test_parse_file(conf_file):
    configuration = MapConfigParser().parse(conf_file)
    assert len(configuration.rules) == 4


def test_shipped_configuration_parses():
    configuration = MapConfigParser().parse(DEFAULT_MAPCONFIG)
    assert configuration.rule_by_class_id(101).tag_value == "motorway"
    assert configuration.rule_by_class_id(401).tag_key == "junction"


def test_missing_file(tmp_path):
    with pytest.raises(ConfigFileError) as exc_info:
        MapConfigParser().parse(tmp_path / "nope.xml")
    assert exc_info.value.path.endswith("nope.xml")
    assert isinstance(exc_info.value, InputError)


def test_malformed_xml(tmp_path):
    path = tmp_path / "broken.xml"
    path.write_text("<configuration><type name='highway' id='1'>", encoding="utf-8")
    with pytest.raises(ConfigFileError, match="malformed XML"):
        MapConfigParser().parse(path)


@pytest.mark.parametrize("document,message", [
    ("<osm/>", "expected <configuration>"),
    ('<configuration><type id="1"/></configuration>', "'name'"),
    ('<configuration><type name="highway" id="x"/></configuration>', "not an integer"),
    ('<configuration><type name="highway" id="1"><class name="a"/></type></configuration>', "'id'"),
    ('<configuration><type name="highway" id="1">'
     '<class name="a" id="1" maxspeed="fast"/></type></configuration>', "not a number"),
    ('<configuration><type name="highway" id="1">'
     '<class name="a" id="1" maxspeed="0"/></type></configuration>', "positive"),
    ('<configuration><type name="highway" id="1">'
     '<class name="a" id="1"/><class name="b" id="1"/></type></configuration>', "duplicate class id"),
    ('<configuration><type name="highway" id="1"/><type name="junction" id="1"/></configuration>',
     "duplicate type id"),
])
def test_invalid_documents(document, message):
    with pytest.raises(ConfigFileError, match=message):
        MapConfigParser().parse_string(document)


def test_empty_configuration_has_no_rules():
    configuration = MapConfigParser().parse_string("<configuration/>")
    assert configuration.rules == []
