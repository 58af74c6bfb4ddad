"""
Tests for the IL <-> LD converter.
"""

import logging

from ladderplc.constants import ElementType, Operator
from ladderplc.converter import IL2LDConverter, LD2ILConverter, TraceOptions, build_network, trace_network
from ladderplc.il_parser import parse_program
from ladderplc.models import Connection, Element, Instruction, Network, Position
from ladderplc.network_ops import add_connection, add_element


def _types(network):
    return [el.element_type for el in network.elements]


class TestBuildNetwork:
    """Test IL -> LD network construction."""

    def setup_method(self):
        """Set up test fixtures."""
        self.converter = IL2LDConverter()

    def test_load_and_store(self):
        """Test LD/ST become a contact wired into a coil."""
        network = self.converter.build_network(parse_program("LD X1\nST Y1"))

        contact, coil = network.elements
        assert contact.element_type == ElementType.CONTACT
        assert contact.variable == "X1"
        assert coil.element_type == ElementType.COIL
        assert coil.variable == "Y1"
        assert [c.as_tuple() for c in network.connections] == [(contact.id, "out", coil.id, "in")]

    def test_and_builds_four_elements(self):
        """Test LD X1 / AND X2 / ST Y1 gives two contacts, an and block and a coil."""
        network = build_network(parse_program("LD X1\nAND X2\nST Y1"))

        assert _types(network) == [
            ElementType.CONTACT, ElementType.CONTACT, ElementType.AND, ElementType.COIL
        ]
        x1, x2, gate, coil = network.elements
        assert gate.inputs == ("in1", "in2")
        assert {c.as_tuple() for c in network.connections} == {
            (x1.id, "out", gate.id, "in1"),
            (x2.id, "out", gate.id, "in2"),
            (gate.id, "out", coil.id, "in"),
        }

    def test_negated_variants(self):
        """Test LDN/ANDN/STN produce negated contacts and coils."""
        network = build_network(parse_program("LDN X1\nANDN X2\nSTN Y1"))
        assert _types(network) == [
            ElementType.CONTACT_NEGATED, ElementType.CONTACT_NEGATED, ElementType.AND, ElementType.COIL_NEGATED
        ]

    def test_or_block(self):
        """Test OR/ORN produce an or block."""
        network = build_network(parse_program("LD X1\nORN X2\nST Y1"))
        assert _types(network)[1:3] == [ElementType.CONTACT_NEGATED, ElementType.OR]

    def test_gate_without_accumulator_is_unwired(self):
        """Test AND with nothing loaded adds the elements without wiring them."""
        network = build_network([Instruction(Operator.AND, "X2")])
        assert len(network.elements) == 2
        assert network.connections == ()

    def test_timer_defaults_and_wiring(self):
        """Test TON without operand gets the default preset and is fed on 'in'."""
        network = build_network([Instruction(Operator.LD, "X1"), Instruction(Operator.TON), Instruction(Operator.ST, "Y1")])
        contact, timer, coil = network.elements
        assert timer.element_type == ElementType.TIMER_ON
        assert timer.preset == "T#1s"
        assert (contact.id, "out", timer.id, "in") in [c.as_tuple() for c in network.connections]
        assert (timer.id, "q", coil.id, "in") in [c.as_tuple() for c in network.connections]

    def test_timer_off_preset(self):
        """Test TOF keeps its operand as preset."""
        network = build_network(parse_program("LD X1\nTOF T#2s\nST Y1"))
        timer = network.elements[1]
        assert timer.element_type == ElementType.TIMER_OFF
        assert timer.preset == "T#2s"

    def test_counters(self):
        """Test CTU/CTD wire the accumulator into cu/cd."""
        up = build_network(parse_program("LD X1\nCTU\nST Y1"))
        assert up.elements[1].preset == "10"
        assert (up.elements[0].id, "out", up.elements[1].id, "cu") in [c.as_tuple() for c in up.connections]

        down = build_network(parse_program("LD X1\nCTD 5\nST Y1"))
        assert down.elements[1].element_type == ElementType.COUNTER_DOWN
        assert down.elements[1].preset == "5"
        assert (down.elements[0].id, "out", down.elements[1].id, "cd") in [c.as_tuple() for c in down.connections]

    def test_math_and_compare_blocks(self):
        """Test math/compare blocks store their operand and take the accumulator on in1."""
        network = build_network(parse_program("LD COUNT\nADD 5\nGT LIMIT\nST Y1"))
        contact, add, compare, coil = network.elements
        assert add.element_type == ElementType.ADD
        assert add.operand == "5"
        assert compare.element_type == ElementType.GREATER_THAN
        assert compare.operand == "LIMIT"
        assert (add.id, "out", compare.id, "in1") in [c.as_tuple() for c in network.connections]

    def test_not_block(self):
        """Test NOT inserts a not block."""
        network = build_network(parse_program("LD X1\nNOT\nST Y1"))
        assert _types(network) == [ElementType.CONTACT, ElementType.NOT, ElementType.COIL]

    def test_unsupported_operator_is_skipped(self, caplog):
        """Test XOR is logged and skipped without changing the accumulator."""
        with caplog.at_level(logging.WARNING, logger="ladderplc.converter"):
            network = build_network(parse_program("LD X1\nXOR X2\nST Y1"))
        assert _types(network) == [ElementType.CONTACT, ElementType.COIL]
        assert len(network.connections) == 1
        assert "XOR" in caplog.text

    def test_store_starts_new_rung(self):
        """Test that ST moves the layout to a new row and clears the accumulator."""
        network = build_network(parse_program("LD X1\nST Y1\nST Y2"))
        first_coil, second_coil = network.elements[1], network.elements[2]
        assert second_coil.position.y > first_coil.position.y
        # second ST has nothing to store
        assert len(network.connections) == 1

    def test_unique_ids(self):
        """Test that element and network ids are unique."""
        a = build_network(parse_program("LD X1\nAND X2\nST Y1"))
        b = build_network(parse_program("LD X1\nAND X2\nST Y1"))
        assert a.id != b.id
        ids = [el.id for el in a.elements] + [el.id for el in b.elements]
        assert len(ids) == len(set(ids))


class TestTraceNetwork:
    """Test LD -> IL tracing."""

    def setup_method(self):
        """Set up test fixtures."""
        self.converter = LD2ILConverter()

    def _round_trip(self, text):
        program = parse_program(text)
        return program, self.converter.trace_network(build_network(program))

    def test_simple_rung(self):
        """Test LD/ST round trip."""
        program, traced = self._round_trip("LD X1\nST Y1")
        assert traced == program

    def test_and_rung_has_no_stray_load(self):
        """Test that the AND operand contact is folded into the AND instruction."""
        program, traced = self._round_trip("LD X1\nAND X2\nST Y1")
        assert traced == program

    def test_negated_operand_traces_to_andn(self):
        """Test a negated operand contact gives ANDN/ORN."""
        program, traced = self._round_trip("LD X1\nANDN X2\nORN X3\nSTN Y1")
        assert traced == program

    def test_function_blocks(self):
        """Test timers, counters, math, compare and NOT round trip."""
        program, traced = self._round_trip("LD X1\nTON T#500ms\nCTU 3\nNOT\nST Y1")
        assert traced == program

        program, traced = self._round_trip("LD COUNT\nMUL 2\nLE 10\nST Y2")
        assert traced == program

    def test_multiple_rungs_in_order(self):
        """Test independent rungs are emitted rung by rung."""
        program, traced = self._round_trip("LD X1\nST Y1\nLDN X2\nAND X3\nST Y2")
        assert traced == program

    def test_each_element_emitted_once(self):
        """Test a contact feeding two coils is emitted once."""
        network = build_network(parse_program("LD X1\nST Y1"))
        contact = network.elements[0]
        coil = Element.create(ElementType.COIL, Position(3, 3), {"variable": "Y2"})
        network = add_element(network, coil)
        network = add_connection(network, contact.id, "out", coil.id, "in")

        traced = trace_network(network)
        assert traced == [
            Instruction(Operator.LD, "X1"),
            Instruction(Operator.ST, "Y1"),
            Instruction(Operator.ST, "Y2"),
        ]

    def test_cycle_terminates(self):
        """Test tracing terminates on a cyclic network."""
        contact = Element.create(ElementType.CONTACT, properties={"variable": "X1"}, element_id="c")
        gate = Element.create(ElementType.OR, element_id="g")
        not_block = Element.create(ElementType.NOT, element_id="n")
        network = Network(
            id="loop",
            elements=[contact, gate, not_block],
            connections=[
                Connection.between("c", "out", "n", "in"),
                Connection.between("n", "out", "g", "in1"),
                Connection.between("g", "out", "n", "in"),
            ],
        )
        traced = trace_network(network)
        assert [i.operator for i in traced] == [Operator.LD, Operator.NOT, Operator.OR]

    def test_unknown_element_stops_walk(self, caplog):
        """Test an element with no IL form is skipped and its successors are not reached."""
        contact = Element.create(ElementType.CONTACT, properties={"variable": "X1"}, element_id="c")
        pulse = Element.create(ElementType.TIMER_PULSE, properties={"preset": "T#1s"}, element_id="tp")
        coil = Element.create(ElementType.COIL, properties={"variable": "Y1"}, element_id="y")
        network = Network(
            id="net",
            elements=[contact, pulse, coil],
            connections=[
                Connection.between("c", "out", "tp", "in"),
                Connection.between("tp", "q", "y", "in"),
            ],
        )

        with caplog.at_level(logging.WARNING, logger="ladderplc.converter"):
            assert trace_network(network) == [Instruction(Operator.LD, "X1")]
        assert "timer_pulse" in caplog.text

        continued = trace_network(network, TraceOptions(continue_past_unknown=True))
        assert continued == [Instruction(Operator.LD, "X1"), Instruction(Operator.ST, "Y1")]

    def test_numeric_properties_trace_as_strings(self):
        """Test numeric presets and operands become string operands."""
        contact = Element.create(ElementType.CONTACT, properties={"variable": "X1"}, element_id="c")
        counter = Element.create(ElementType.COUNTER_UP, properties={"preset": 3}, element_id="k")
        network = Network(id="net", elements=[contact, counter],
                          connections=[Connection.between("c", "out", "k", "cu")])
        assert trace_network(network)[1] == Instruction(Operator.CTU, "3")
