"""
IL <-> LD converter.

``IL2LDConverter`` builds a ladder network from a list of IL instructions by
threading an accumulator element through the program. ``LD2ILConverter`` walks
a network back into instructions.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set

from ordered_set import OrderedSet

from .constants import (
    COMPARE_OPERATORS,
    DEFAULT_COUNTER_PRESET,
    DEFAULT_TIMER_PRESET,
    GATE_TYPES,
    MATH_OPERATORS,
    ElementType,
    Operator,
)
from .models import Connection, Element, Instruction, Network, Position, generate_id

logger = logging.getLogger(__name__)


def _check_dispatch_table(name: str, table: Dict, enum_cls, unsupported: Set):
    """Fail at import time if an enum member is neither handled nor listed as unsupported."""
    missing = set(enum_cls) - set(table) - set(unsupported)
    if missing:
        raise RuntimeError(f"{name} does not handle: {sorted(m.value for m in missing)}")


@dataclass
class TraceOptions:
    """Options for LD -> IL tracing."""
    # Keep walking into the successors of elements that cannot be traced
    continue_past_unknown: bool = False


# Operators with no LD counterpart; build logs a warning and skips them
UNSUPPORTED_OPERATORS = {Operator.XOR, Operator.TP, Operator.CTUD, Operator.R, Operator.S}

# Element types with no IL counterpart; trace logs a warning
UNSUPPORTED_ELEMENT_TYPES = {ElementType.TIMER_PULSE, ElementType.COUNTER_UPDOWN}


class IL2LDConverter:
    """Converts IL instruction lists into LD networks."""

    _BUILDERS = {
        Operator.LD: "_build_load",
        Operator.LDN: "_build_load",
        Operator.ST: "_build_store",
        Operator.STN: "_build_store",
        Operator.AND: "_build_gate",
        Operator.ANDN: "_build_gate",
        Operator.OR: "_build_gate",
        Operator.ORN: "_build_gate",
        Operator.NOT: "_build_not",
        Operator.TON: "_build_timer",
        Operator.TOF: "_build_timer",
        Operator.CTU: "_build_counter",
        Operator.CTD: "_build_counter",
        **{op: "_build_binary_block" for op in MATH_OPERATORS},
        **{op: "_build_binary_block" for op in COMPARE_OPERATORS},
    }

    def __init__(self):
        self._reset()

    def _reset(self):
        self.elements: List[Element] = []
        self.connections: List[Connection] = []
        self.current: Optional[Element] = None
        self.x = 1
        self.y = 1

    def build_network(self, instructions: Iterable[Instruction]) -> Network:
        """
        Build an LD network from IL instructions.

        Args:
            instructions: The IL program, in execution order

        Returns:
            A new, validated Network
        """
        self._reset()
        for instruction in instructions:
            method_name = self._BUILDERS.get(instruction.operator)
            if method_name is None:
                logger.warning(f"Unsupported IL operator {instruction.operator.value}, instruction skipped")
                continue
            getattr(self, method_name)(instruction)

        network = Network(id=generate_id(), elements=self.elements, connections=self.connections)
        logger.info(
            f"Built LD network {network.id} with {len(network.elements)} elements "
            f"and {len(network.connections)} connections"
        )
        return network

    def _add(self, element_type: ElementType, dx: float = 0, properties: Optional[Dict] = None) -> Element:
        element = Element.create(element_type, Position(self.x + dx, self.y), properties)
        self.elements.append(element)
        logger.debug(f"Added {element} at ({element.position.x}, {element.position.y})")
        return element

    def _connect_current(self, target: Element, port: Optional[str] = None):
        if self.current is not None:
            self.connections.append(Connection.between(
                self.current.id, self.current.primary_output, target.id, port or target.primary_input
            ))

    def _build_load(self, instruction: Instruction):
        negated = instruction.operator == Operator.LDN
        contact = self._add(
            ElementType.CONTACT_NEGATED if negated else ElementType.CONTACT,
            properties={"variable": instruction.operand},
        )
        self.current = contact
        self.x += 2

    def _build_store(self, instruction: Instruction):
        negated = instruction.operator == Operator.STN
        coil = self._add(
            ElementType.COIL_NEGATED if negated else ElementType.COIL,
            properties={"variable": instruction.operand},
        )
        self._connect_current(coil)
        self.current = None
        # next rung
        self.x = 1
        self.y += 2

    def _build_gate(self, instruction: Instruction):
        op = instruction.operator
        negated = op in (Operator.ANDN, Operator.ORN)
        block_type = ElementType.AND if op in (Operator.AND, Operator.ANDN) else ElementType.OR

        contact = self._add(
            ElementType.CONTACT_NEGATED if negated else ElementType.CONTACT,
            properties={"variable": instruction.operand},
        )
        block = self._add(block_type, dx=2)
        if self.current is not None:
            self._connect_current(block, "in1")
            self.connections.append(Connection.between(contact.id, "out", block.id, "in2"))
        self.current = block
        self.x += 4

    def _build_not(self, instruction: Instruction):
        block = self._add(ElementType.NOT)
        self._connect_current(block)
        self.current = block
        self.x += 2

    def _build_timer(self, instruction: Instruction):
        timer_type = ElementType.TIMER_ON if instruction.operator == Operator.TON else ElementType.TIMER_OFF
        timer = self._add(timer_type, properties={"preset": instruction.operand or DEFAULT_TIMER_PRESET})
        self._connect_current(timer)
        self.current = timer
        self.x += 3

    def _build_counter(self, instruction: Instruction):
        counter_type = ElementType.COUNTER_UP if instruction.operator == Operator.CTU else ElementType.COUNTER_DOWN
        counter = self._add(counter_type, properties={"preset": instruction.operand or DEFAULT_COUNTER_PRESET})
        # cu / cd
        self._connect_current(counter)
        self.current = counter
        self.x += 3

    def _build_binary_block(self, instruction: Instruction):
        op = instruction.operator
        block_type = MATH_OPERATORS.get(op) or COMPARE_OPERATORS[op]
        block = self._add(block_type, properties={"operand": instruction.operand})
        self._connect_current(block, "in1")
        self.current = block
        self.x += 3


class LD2ILConverter:
    """Converts LD networks back into IL instruction lists."""

    _TRACERS = {
        ElementType.CONTACT: "_trace_contact",
        ElementType.CONTACT_NEGATED: "_trace_contact",
        ElementType.COIL: "_trace_coil",
        ElementType.COIL_NEGATED: "_trace_coil",
        ElementType.AND: "_trace_gate",
        ElementType.OR: "_trace_gate",
        ElementType.NOT: "_trace_not",
        ElementType.TIMER_ON: "_trace_preset_block",
        ElementType.TIMER_OFF: "_trace_preset_block",
        ElementType.COUNTER_UP: "_trace_preset_block",
        ElementType.COUNTER_DOWN: "_trace_preset_block",
        **{block: "_trace_operand_block" for block in MATH_OPERATORS.values()},
        **{block: "_trace_operand_block" for block in COMPARE_OPERATORS.values()},
    }

    _PRESET_OPERATORS = {
        ElementType.TIMER_ON: Operator.TON,
        ElementType.TIMER_OFF: Operator.TOF,
        ElementType.COUNTER_UP: Operator.CTU,
        ElementType.COUNTER_DOWN: Operator.CTD,
    }

    _BLOCK_OPERATORS = {
        **{block: op for op, block in MATH_OPERATORS.items()},
        **{block: op for op, block in COMPARE_OPERATORS.items()},
    }

    def __init__(self, options: Optional[TraceOptions] = None):
        self.options = options or TraceOptions()

    def trace_network(self, network: Network) -> List[Instruction]:
        """
        Walk a network into IL instructions.

        Each entry element (nothing wired into its primary input) seeds a
        breadth-first walk along primary outputs. Every element is emitted at
        most once, so shared nodes and cycles terminate.
        """
        operand_contacts = self._find_operand_contacts(network)
        fed = {conn.target.element for conn in network.connections
               if self._is_primary_input(network, conn)}
        entries = [el for el in network.elements if el.id not in fed and el.id not in operand_contacts]

        visited = OrderedSet()
        instructions: List[Instruction] = []
        for entry in entries:
            queue = deque([entry])
            while queue:
                element = queue.popleft()
                if element.id in visited:
                    continue
                visited.add(element.id)

                instruction = self._trace_element(element, network)
                if instruction is None:
                    if not self.options.continue_past_unknown:
                        continue
                else:
                    instructions.append(instruction)

                for conn in network.outgoing(element.id, element.primary_output):
                    successor = network.get_element(conn.target.element)
                    if successor is not None and successor.id not in visited:
                        queue.append(successor)

        logger.info(f"Traced {len(instructions)} IL instructions from network {network.id}")
        return instructions

    @staticmethod
    def _is_primary_input(network: Network, conn: Connection) -> bool:
        target = network.get_element(conn.target.element)
        return target is not None and conn.target.port == target.primary_input

    @staticmethod
    def _find_operand_contacts(network: Network) -> Set[str]:
        """Contacts that only feed the ``in2`` port of and/or blocks."""
        operand_ids = set()
        for element in network.elements:
            if element.element_type not in (ElementType.CONTACT, ElementType.CONTACT_NEGATED):
                continue
            if network.incoming(element.id):
                continue
            outgoing = network.outgoing(element.id)
            if not outgoing:
                continue
            if all(
                conn.target.port == "in2"
                and getattr(network.get_element(conn.target.element), "element_type", None) in GATE_TYPES
                for conn in outgoing
            ):
                operand_ids.add(element.id)
        return operand_ids

    def _trace_element(self, element: Element, network: Network) -> Optional[Instruction]:
        method_name = self._TRACERS.get(element.element_type)
        if method_name is None:
            logger.warning(f"Cannot convert {element} to IL, element skipped")
            return None
        return getattr(self, method_name)(element, network)

    def _trace_contact(self, element: Element, network: Network) -> Instruction:
        op = Operator.LDN if element.element_type == ElementType.CONTACT_NEGATED else Operator.LD
        return Instruction(op, element.variable)

    def _trace_coil(self, element: Element, network: Network) -> Instruction:
        op = Operator.STN if element.element_type == ElementType.COIL_NEGATED else Operator.ST
        return Instruction(op, element.variable)

    def _trace_gate(self, element: Element, network: Network) -> Instruction:
        feeder = None
        feeders = network.incoming(element.id, "in2")
        if feeders:
            feeder = network.get_element(feeders[0].source.element)

        negated = feeder is not None and feeder.element_type == ElementType.CONTACT_NEGATED
        if element.element_type == ElementType.AND:
            op = Operator.ANDN if negated else Operator.AND
        else:
            op = Operator.ORN if negated else Operator.OR
        return Instruction(op, feeder.variable if feeder is not None else None)

    def _trace_not(self, element: Element, network: Network) -> Instruction:
        return Instruction(Operator.NOT)

    def _trace_preset_block(self, element: Element, network: Network) -> Instruction:
        preset = element.preset
        return Instruction(self._PRESET_OPERATORS[element.element_type], None if preset is None else str(preset))

    def _trace_operand_block(self, element: Element, network: Network) -> Instruction:
        operand = element.operand
        return Instruction(self._BLOCK_OPERATORS[element.element_type], None if operand is None else str(operand))


_check_dispatch_table("IL2LDConverter", IL2LDConverter._BUILDERS, Operator, UNSUPPORTED_OPERATORS)
_check_dispatch_table("LD2ILConverter", LD2ILConverter._TRACERS, ElementType, UNSUPPORTED_ELEMENT_TYPES)


def build_network(instructions: Iterable[Instruction]) -> Network:
    """Convenience function to build an LD network from IL instructions."""
    return IL2LDConverter().build_network(instructions)


def trace_network(network: Network, options: Optional[TraceOptions] = None) -> List[Instruction]:
    """Convenience function to trace an LD network into IL instructions."""
    return LD2ILConverter(options).trace_network(network)
