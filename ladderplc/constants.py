"""
Enumerations and fixed tables shared by the parser, converter and simulator.
"""

from enum import Enum
from typing import Dict, List, Tuple


class Operator(Enum):
    """IL operators understood by the instruction model."""
    LD = "LD"
    LDN = "LDN"
    ST = "ST"
    STN = "STN"
    AND = "AND"
    ANDN = "ANDN"
    OR = "OR"
    ORN = "ORN"
    XOR = "XOR"
    NOT = "NOT"
    ADD = "ADD"
    SUB = "SUB"
    MUL = "MUL"
    DIV = "DIV"
    GT = "GT"
    GE = "GE"
    EQ = "EQ"
    NE = "NE"
    LE = "LE"
    LT = "LT"
    TON = "TON"
    TOF = "TOF"
    TP = "TP"
    CTU = "CTU"
    CTD = "CTD"
    CTUD = "CTUD"
    R = "R"
    S = "S"


class ElementType(Enum):
    """LD element kinds. The value is the on-disk ``type`` string."""
    CONTACT = "contact"
    CONTACT_NEGATED = "contact_negated"
    COIL = "coil"
    COIL_NEGATED = "coil_negated"
    AND = "and"
    OR = "or"
    NOT = "not"
    TIMER_ON = "timer_on"
    TIMER_OFF = "timer_off"
    TIMER_PULSE = "timer_pulse"
    COUNTER_UP = "counter_up"
    COUNTER_DOWN = "counter_down"
    COUNTER_UPDOWN = "counter_updown"
    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    DIVIDE = "divide"
    GREATER_THAN = "greater_than"
    GREATER_EQUAL = "greater_equal"
    EQUAL = "equal"
    NOT_EQUAL = "not_equal"
    LESS_EQUAL = "less_equal"
    LESS_THAN = "less_than"


class VariableType(Enum):
    """Simulation variable types."""
    BOOL = "BOOL"
    INT = "INT"
    REAL = "REAL"
    TIME = "TIME"


_LOGIC_PORTS = (("in",), ("out",))
_BINARY_PORTS = (("in1", "in2"), ("out",))
_TIMER_PORTS = (("in", "preset"), ("q", "et"))

# element type -> (inputs, outputs); the first entry of each is the primary port
ELEMENT_PORTS: Dict[ElementType, Tuple[Tuple[str, ...], Tuple[str, ...]]] = {
    ElementType.CONTACT: _LOGIC_PORTS,
    ElementType.CONTACT_NEGATED: _LOGIC_PORTS,
    ElementType.COIL: _LOGIC_PORTS,
    ElementType.COIL_NEGATED: _LOGIC_PORTS,
    ElementType.AND: _BINARY_PORTS,
    ElementType.OR: _BINARY_PORTS,
    ElementType.NOT: _LOGIC_PORTS,
    ElementType.TIMER_ON: _TIMER_PORTS,
    ElementType.TIMER_OFF: _TIMER_PORTS,
    ElementType.TIMER_PULSE: _TIMER_PORTS,
    ElementType.COUNTER_UP: (("cu", "r", "pv"), ("q", "cv")),
    ElementType.COUNTER_DOWN: (("cd", "ld", "pv"), ("q", "cv")),
    ElementType.COUNTER_UPDOWN: (("cu", "cd", "r", "ld", "pv"), ("qu", "qd", "cv")),
    ElementType.ADD: _BINARY_PORTS,
    ElementType.SUBTRACT: _BINARY_PORTS,
    ElementType.MULTIPLY: _BINARY_PORTS,
    ElementType.DIVIDE: _BINARY_PORTS,
    ElementType.GREATER_THAN: _BINARY_PORTS,
    ElementType.GREATER_EQUAL: _BINARY_PORTS,
    ElementType.EQUAL: _BINARY_PORTS,
    ElementType.NOT_EQUAL: _BINARY_PORTS,
    ElementType.LESS_EQUAL: _BINARY_PORTS,
    ElementType.LESS_THAN: _BINARY_PORTS,
}

CONTACT_TYPES = {ElementType.CONTACT, ElementType.CONTACT_NEGATED}
COIL_TYPES = {ElementType.COIL, ElementType.COIL_NEGATED}
GATE_TYPES = {ElementType.AND, ElementType.OR}
TIMER_TYPES = {ElementType.TIMER_ON, ElementType.TIMER_OFF, ElementType.TIMER_PULSE}
COUNTER_TYPES = {ElementType.COUNTER_UP, ElementType.COUNTER_DOWN, ElementType.COUNTER_UPDOWN}

MATH_OPERATORS: Dict[Operator, ElementType] = {
    Operator.ADD: ElementType.ADD,
    Operator.SUB: ElementType.SUBTRACT,
    Operator.MUL: ElementType.MULTIPLY,
    Operator.DIV: ElementType.DIVIDE,
}

COMPARE_OPERATORS: Dict[Operator, ElementType] = {
    Operator.GT: ElementType.GREATER_THAN,
    Operator.GE: ElementType.GREATER_EQUAL,
    Operator.EQ: ElementType.EQUAL,
    Operator.NE: ElementType.NOT_EQUAL,
    Operator.LE: ElementType.LESS_EQUAL,
    Operator.LT: ElementType.LESS_THAN,
}

DEFAULT_TIMER_PRESET = "T#1s"
DEFAULT_COUNTER_PRESET = "10"
DEFAULT_TIME_PRESET_MS = 1000

TIME_UNIT_MS: Dict[str, int] = {
    "ms": 1,
    "s": 1000,
    "m": 60000,
    "h": 3600000,
}

# Variables a fresh simulation session starts with
DEFAULT_VARIABLES: List[Dict[str, object]] = [
    {"name": "X1", "type": "BOOL", "value": False},
    {"name": "X2", "type": "BOOL", "value": False},
    {"name": "X3", "type": "BOOL", "value": False},
    {"name": "Y1", "type": "BOOL", "value": False},
    {"name": "Y2", "type": "BOOL", "value": False},
    {"name": "COUNT", "type": "INT", "value": 0},
    {"name": "TIMER", "type": "TIME", "value": 0},
]


def primary_input(element_type: ElementType) -> str:
    """Return the first declared input port of an element type."""
    return ELEMENT_PORTS[element_type][0][0]


def primary_output(element_type: ElementType) -> str:
    """Return the first declared output port of an element type."""
    return ELEMENT_PORTS[element_type][1][0]
