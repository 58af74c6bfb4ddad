"""
Tests for the JSON wire format and IL text files.
"""

import json
import tempfile
from pathlib import Path

import pytest

from ladderplc.constants import ElementType, Operator
from ladderplc.converter import build_network
from ladderplc.errors import ValidationError
from ladderplc.il_parser import parse_program
from ladderplc.json_io import (
    il_to_json,
    json_to_il,
    json_to_network,
    load_il_from_file,
    load_network_from_file,
    network_to_json,
    save_il_to_file,
    save_network_to_file,
)
from ladderplc.models import Instruction


SAMPLE_NETWORK = {
    "id": "net-1",
    "elements": [
        {
            "type": "contact",
            "id": "c1",
            "position": {"x": 1, "y": 1},
            "inputs": [{"id": "in"}],
            "outputs": [{"id": "out"}],
            "properties": {"variable": "X1"},
        },
        {
            "type": "coil",
            "id": "y1",
            "position": {"x": 3, "y": 1},
            "inputs": [{"id": "in"}],
            "outputs": [{"id": "out"}],
            "properties": {"variable": "Y1"},
        },
    ],
    "connections": [
        {"source": {"element": "c1", "port": "out"}, "target": {"element": "y1", "port": "in"}},
    ],
}


class TestILJson:
    """Test IL program JSON conversion."""

    def test_il_to_json_shape(self):
        """Test the program/instructions layout."""
        data = il_to_json([Instruction(Operator.LD, "X1"), Instruction(Operator.NOT)])
        assert data == {
            "program": {
                "instructions": [
                    {"operator": "LD", "operand": "X1", "modifier": None},
                    {"operator": "NOT", "operand": None, "modifier": None},
                ]
            }
        }

    def test_json_to_il(self):
        """Test reading instructions, with missing optional keys."""
        data = {"program": {"instructions": [{"operator": "LD", "operand": "X1"}, {"operator": "ST", "operand": "Y1"}]}}
        assert json_to_il(data) == parse_program("LD X1\nST Y1")

    def test_json_to_il_reports_every_problem(self):
        """Test all bad instructions are reported together."""
        data = {"program": {"instructions": [{"operator": "JMP"}, {"operand": "X"}, "LD X1"]}}
        with pytest.raises(ValidationError) as exc_info:
            json_to_il(data)
        assert len(exc_info.value.errors) == 3

    def test_json_to_il_bad_shape(self):
        """Test a document without program.instructions is rejected."""
        with pytest.raises(ValidationError):
            json_to_il({"instructions": []})


class TestNetworkJson:
    """Test LD network JSON conversion."""

    def test_type_key_renamed(self):
        """Test on-disk 'type' maps to element_type and back."""
        network = json_to_network(SAMPLE_NETWORK)
        assert network.elements[0].element_type == ElementType.CONTACT
        assert network.elements[0].inputs == ("in",)

        data = network_to_json(network)
        assert data["elements"][0]["type"] == "contact"
        assert "element_type" not in data["elements"][0]
        assert data == SAMPLE_NETWORK

    def test_built_network_round_trip(self):
        """Test a built network survives conversion to JSON and back."""
        network = build_network(parse_program("LD X1\nAND X2\nTON T#1s\nST Y1"))
        assert json_to_network(json.loads(json.dumps(network_to_json(network)))) == network

    def test_missing_keys_reported(self):
        """Test structural problems are collected into one error."""
        data = {
            "elements": [
                {"type": "contact", "id": "c1"},
                {"type": "bogus", "id": "b", "position": {"x": 0, "y": 0}, "inputs": [], "outputs": []},
            ],
            "connections": [{"source": {"element": "c1"}}],
        }
        with pytest.raises(ValidationError) as exc_info:
            json_to_network(data)
        errors = exc_info.value.errors
        assert any("missing 'id'" in e for e in errors)
        assert any("elements[0]" in e for e in errors)
        assert any("elements[1]" in e and "bogus" in e for e in errors)
        assert any("connections[0]" in e for e in errors)

    def test_dangling_connection(self):
        """Test a connection to an unknown element is rejected."""
        data = json.loads(json.dumps(SAMPLE_NETWORK))
        data["connections"][0]["target"]["element"] = "nowhere"
        with pytest.raises(ValidationError) as exc_info:
            json_to_network(data)
        assert "nowhere" in str(exc_info.value)


class TestFiles:
    """Test reading and writing files."""

    def test_network_file_round_trip(self):
        """Test saving and loading a network file."""
        network = build_network(parse_program("LD X1\nST Y1"))
        with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
            path = f.name
        try:
            save_network_to_file(network, path)
            assert load_network_from_file(path) == network
        finally:
            Path(path).unlink(missing_ok=True)

    @pytest.mark.parametrize("suffix", [".json", ".il", ".txt"])
    def test_il_file_round_trip(self, suffix):
        """Test IL files as JSON and as text."""
        program = parse_program("LD X1\nANDN X2\nST Y1")
        with tempfile.NamedTemporaryFile(mode='w', suffix=suffix, delete=False) as f:
            path = f.name
        try:
            save_il_to_file(program, path)
            content = Path(path).read_text()
            if suffix == ".json":
                assert json.loads(content)["program"]["instructions"][1]["operator"] == "ANDN"
            else:
                assert content.splitlines() == ["LD X1", "ANDN X2", "ST Y1"]
            assert load_il_from_file(path) == program
        finally:
            Path(path).unlink(missing_ok=True)
