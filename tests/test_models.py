"""
Tests for the data model and its validation.
"""

import pytest

from ladderplc.constants import ELEMENT_PORTS, ElementType, Operator, VariableType
from ladderplc.errors import ValidationError
from ladderplc.models import (
    Connection,
    Element,
    ElementStateStore,
    Instruction,
    Network,
    Position,
    TimerState,
    Variable,
    VariableStore,
)


class TestInstruction:
    """Test the IL instruction value type."""

    def test_operator_coerced_from_string(self):
        """Test plain strings are accepted as operators."""
        assert Instruction("LD", "X1").operator is Operator.LD

    def test_structural_equality(self):
        """Test instructions compare by value."""
        assert Instruction(Operator.ST, "Y1") == Instruction("ST", "Y1")
        assert Instruction(Operator.ST, "Y1") != Instruction(Operator.ST, "Y2")

    def test_invalid_fields_all_reported(self):
        """Test every invalid field is listed."""
        with pytest.raises(ValidationError) as exc_info:
            Instruction("JMP", 5, "")
        assert len(exc_info.value.errors) == 3

    def test_immutable(self):
        """Test instructions cannot be changed."""
        instruction = Instruction(Operator.LD, "X1")
        with pytest.raises(AttributeError):
            instruction.operand = "X2"


class TestElement:
    """Test LD element construction and validation."""

    def test_create_uses_port_table(self):
        """Test factory-created elements get the ports of their type."""
        for element_type, (inputs, outputs) in ELEMENT_PORTS.items():
            element = Element.create(element_type)
            assert element.inputs == inputs
            assert element.outputs == outputs
            assert element.id

    def test_primary_ports(self):
        """Test primary ports are the first declared ones."""
        timer = Element.create(ElementType.TIMER_ON)
        assert (timer.primary_input, timer.primary_output) == ("in", "q")
        counter = Element.create(ElementType.COUNTER_DOWN)
        assert (counter.primary_input, counter.primary_output) == ("cd", "q")

    def test_wrong_ports_rejected(self):
        """Test ports must match the element type."""
        with pytest.raises(ValidationError) as exc_info:
            Element(id="c", element_type=ElementType.CONTACT, inputs=("in1",), outputs=("out",))
        assert "inputs of contact" in str(exc_info.value)

    def test_unknown_type_and_bad_position(self):
        """Test several problems are reported at once."""
        with pytest.raises(ValidationError) as exc_info:
            Element(id="", element_type="relay", position=Position("a", 1))
        errors = exc_info.value.errors
        assert any("id" in e for e in errors)
        assert any("relay" in e for e in errors)
        assert any("position" in e for e in errors)

    def test_property_types(self):
        """Test variable must be a string and presets strings or numbers."""
        with pytest.raises(ValidationError):
            Element.create(ElementType.CONTACT, properties={"variable": 3})
        with pytest.raises(ValidationError):
            Element.create(ElementType.TIMER_ON, properties={"preset": ["T#1s"]})
        assert Element.create(ElementType.COUNTER_UP, properties={"preset": 5}).preset == 5


class TestNetwork:
    """Test network-level invariants."""

    def setup_method(self):
        """Set up test fixtures."""
        self.contact = Element.create(ElementType.CONTACT, properties={"variable": "X1"}, element_id="c")
        self.coil = Element.create(ElementType.COIL, properties={"variable": "Y1"}, element_id="y")

    def test_valid_network(self):
        """Test a well-formed network and its lookup helpers."""
        network = Network("n", [self.contact, self.coil], [Connection.between("c", "out", "y", "in")])
        assert network.get_element("y") is self.coil
        assert len(network.incoming("y", "in")) == 1
        assert len(network.outgoing("c")) == 1
        assert network.get_element("missing") is None

    def test_duplicate_ids(self):
        """Test element ids must be unique."""
        with pytest.raises(ValidationError, match="duplicate"):
            Network("n", [self.contact, self.contact])

    def test_unknown_endpoints(self):
        """Test connections must reference existing elements."""
        with pytest.raises(ValidationError) as exc_info:
            Network("n", [self.contact], [Connection.between("c", "out", "ghost", "in")])
        assert "ghost" in str(exc_info.value)

    def test_empty_id(self):
        """Test network ids must be non-empty."""
        with pytest.raises(ValidationError):
            Network("", [])

    def test_duplicate_connections_allowed(self):
        """Test the same wire may appear twice."""
        wire = Connection.between("c", "out", "y", "in")
        network = Network("n", [self.contact, self.coil], [wire, wire])
        assert len(network.connections) == 2


class TestVariables:
    """Test variables and the variable store."""

    def test_value_must_match_type(self):
        """Test type/value agreement."""
        assert Variable("X", "BOOL", True).var_type is VariableType.BOOL
        Variable("T", VariableType.TIME, "T#1s")
        Variable("R", VariableType.REAL, 3)
        for var_type, value in [("BOOL", 1), ("INT", True), ("INT", 1.5), ("REAL", "x"), ("TIME", None)]:
            with pytest.raises(ValidationError):
                Variable("V", var_type, value)

    def test_unknown_type(self):
        """Test unknown variable types are rejected."""
        with pytest.raises(ValidationError):
            Variable("V", "STRING", "x")

    def test_store_set_and_get(self):
        """Test writing existing and new variables."""
        store = VariableStore.from_definitions([{"name": "X1", "type": "BOOL", "value": False}])
        store.set("X1", True)
        store.set("COUNT", 4)
        assert store.get("X1") is True
        assert store.variable("COUNT").var_type is VariableType.INT
        assert store.get("missing", "default") == "default"
        assert "COUNT" in store
        assert [v.name for v in store] == ["X1", "COUNT"]
        assert store.snapshot() == {"X1": True, "COUNT": 4}
        assert len(store) == 2

    def test_store_rejects_mismatched_write(self):
        """Test writing a value of the wrong type to a declared variable."""
        store = VariableStore.from_definitions([
            {"name": "Y1", "type": "BOOL", "value": False},
            {"name": "COUNT", "type": "INT", "value": 3},
        ])
        with pytest.raises(ValidationError, match="non-boolean"):
            store.set("Y1", 5)
        with pytest.raises(ValidationError, match="non-integer"):
            store.set("COUNT", True)
        assert store.get("Y1") is False
        assert store.get("COUNT") == 3

    def test_element_state_store(self):
        """Test storing and clearing element state."""
        states = ElementStateStore()
        states.put("t1", TimerState(running=True))
        assert "t1" in states
        assert states.get("t1").running
        states.reset()
        assert states.get("t1") is None
        assert len(states) == 0
