"""Tests for the topology loader."""

from pathlib import Path

import pytest

from topograph.models import Fqn, TopologyError, UnknownComponentTypeError
from topograph.topology import (
    load_assembly,
    load_component_defs,
    load_connections,
    load_instances,
    load_topology,
)

EXAMPLES_DIR = Path(__file__).parent.parent / "examples"
REF_APP = "Ref/Top/RefTopologyAppAi.xml"

COMPONENT_XML = """<?xml version="1.0" encoding="UTF-8"?>
<component name="Blinker" kind="active" namespace="Demo">
    <ports>
        <port name="run" data_type="Svc::Sched" kind="async_input" />
        <port name="ledOut" data_type="Toggle" kind="output" />
        <port name="unnamedKind" data_type="Fw::Cmd" />
    </ports>
</component>
"""


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


def _assembly(body: str) -> str:
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<assembly name="Demo">
    <import_component_type>
        Demo/Blinker/BlinkerComponentAi.xml
    </import_component_type>
    {body}
</assembly>
"""


def test_load_component_defs(tmp_path: Path) -> None:
    """Test parsing of an imported component definition."""
    _write(tmp_path / "Demo/Blinker/BlinkerComponentAi.xml", COMPONENT_XML)
    _write(tmp_path / "App.xml", _assembly(""))

    assembly = load_assembly(tmp_path, "App.xml")
    defs = load_component_defs(tmp_path, assembly)

    blinker = defs[Fqn(namespace="Demo", name="Blinker")]
    assert blinker.kind == "active"
    assert list(blinker.ports) == ["run", "ledOut", "unnamedKind"]
    assert blinker.ports["run"].data_type == Fqn(namespace="Svc", name="Sched")
    assert blinker.ports["ledOut"].data_type == Fqn(namespace="Demo", name="Toggle")
    assert blinker.ports["unnamedKind"].kind == ""


def test_load_instances_and_connections(tmp_path: Path) -> None:
    """Test instance and connection records."""
    _write(tmp_path / "Demo/Blinker/BlinkerComponentAi.xml", COMPONENT_XML)
    _write(
        tmp_path / "App.xml",
        _assembly(
            """
    <instance namespace="Demo" name="left" type="Blinker" />
    <instance namespace="Demo" name="right" type="Blinker" />
    <connection name="c1">
        <source component="left" port="ledOut" />
        <target component="right" port="run" />
    </connection>
"""
        ),
    )

    assembly = load_assembly(tmp_path, "App.xml")
    instances = load_instances(assembly, load_component_defs(tmp_path, assembly))
    connections = load_connections(assembly)

    assert set(instances) == {"left", "right"}
    assert instances["left"] is instances["right"]
    assert len(connections) == 1
    assert connections[0].source_component == "left"
    assert connections[0].source_port == "ledOut"
    assert connections[0].target_component == "right"
    assert connections[0].target_port == "run"


def test_unknown_instance_type(tmp_path: Path) -> None:
    """Test that instances of types never imported are rejected."""
    _write(tmp_path / "Demo/Blinker/BlinkerComponentAi.xml", COMPONENT_XML)
    _write(tmp_path / "App.xml", _assembly('<instance namespace="Demo" name="x" type="Nope" />'))

    with pytest.raises(UnknownComponentTypeError, match="Demo::Nope"):
        load_topology(tmp_path, "App.xml")


def test_connection_without_target(tmp_path: Path) -> None:
    """Test that a connection must have both endpoints."""
    _write(tmp_path / "Demo/Blinker/BlinkerComponentAi.xml", COMPONENT_XML)
    _write(
        tmp_path / "App.xml",
        _assembly('<connection name="broken"><source component="a" port="b" /></connection>'),
    )

    with pytest.raises(TopologyError, match="broken"):
        load_topology(tmp_path, "App.xml")


def test_missing_import(tmp_path: Path) -> None:
    """Test that an unreadable import names the file."""
    _write(tmp_path / "App.xml", _assembly(""))

    with pytest.raises(TopologyError, match="BlinkerComponentAi.xml"):
        load_topology(tmp_path, "App.xml")


def test_malformed_xml(tmp_path: Path) -> None:
    """Test that malformed XML is reported as a topology error."""
    _write(tmp_path / "App.xml", "<assembly><instance></assembly>")

    with pytest.raises(TopologyError, match="Malformed XML"):
        load_assembly(tmp_path, "App.xml")


def test_absolute_app_xml_ignores_fprime_dir(tmp_path: Path) -> None:
    """Test that an absolute topology path is not joined to the checkout root."""
    app_xml = _write(tmp_path / "App.xml", _assembly(""))

    assembly = load_assembly(tmp_path / "elsewhere", app_xml.resolve())
    assert assembly.get("name") == "Demo"


def test_example_topology() -> None:
    """Test loading the bundled example."""
    topology = load_topology(EXAMPLES_DIR, REF_APP)

    assert topology.name == "Ref"
    assert len(topology.component_types) == 4
    assert topology.component_types[Fqn(namespace="Ref", name="SignalGen")].kind == "queued"
    assert len(topology.instances) == 5
    assert len(topology.connections) == 6
    assert topology.instances["SG1"].short_name == "SignalGen"
    assert [str(c) for c in topology.unresolved_connections()] == [
        "SG1.cmdRegOut -> cmdDisp.compCmdReg"
    ]
