"""Tests for the command line interface."""

import shutil
from pathlib import Path

import pytest
from click.testing import CliRunner

from topograph.__main__ import cli

EXAMPLES_DIR = Path(__file__).parent.parent / "examples"
REF_APP = "Ref/Top/RefTopologyAppAi.xml"


def test_info() -> None:
    """Test the topology summary."""
    result = CliRunner().invoke(cli, ["info", REF_APP, "--fprime-dir", str(EXAMPLES_DIR)])

    assert result.exit_code == 0
    assert "Topology: Ref" in result.output
    assert "Instances: 5" in result.output
    assert "Connections: 6" in result.output
    assert "active: 3" in result.output
    assert "SG1.cmdRegOut -> cmdDisp.compCmdReg" in result.output


def test_dot_source() -> None:
    """Test printing the Graphviz source without running Graphviz."""
    result = CliRunner().invoke(cli, ["dot", REF_APP, "--fprime-dir", str(EXAMPLES_DIR)])

    assert result.exit_code == 0
    assert result.output.startswith("digraph Ref {")
    assert "shape=record" in result.output
    assert "rateGroupDriverComp -> rateGroup1Comp" in result.output


def test_missing_input(tmp_path: Path) -> None:
    """Test that an unreadable topology exits with an error."""
    result = CliRunner().invoke(cli, ["info", "nope.xml", "--fprime-dir", str(tmp_path)])

    assert result.exit_code == 1
    assert "❌" in result.output


@pytest.mark.skipif(shutil.which("dot") is None, reason="Graphviz not installed")
def test_render(tmp_path: Path) -> None:
    """Test writing an SVG file."""
    output_file = tmp_path / "ref.svg"
    result = CliRunner().invoke(
        cli,
        ["render", REF_APP, str(output_file), "--fprime-dir", str(EXAMPLES_DIR), "--theme", "mono"],
    )

    assert result.exit_code == 0, result.output
    assert "Skipped connections: 1" in result.output
    assert output_file.read_text().startswith("<svg")
