"""
Data model shared by the IL parser, the IL/LD converter and the simulator.

Instructions and networks are immutable value types; the variable and element
state stores are the mutable pieces a simulation session works on.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from .constants import ELEMENT_PORTS, ElementType, Operator, VariableType, primary_input, primary_output
from .validation import (
    connection_errors,
    element_errors,
    ensure_valid,
    instruction_errors,
    network_errors,
    variable_errors,
)


def generate_id() -> str:
    """Generate a unique id for elements and networks."""
    return str(uuid.uuid4())


def _coerce_enum(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        # left as-is so validation can report it alongside other problems
        return value


# ---- IL ----

@dataclass(frozen=True)
class Instruction:
    """One IL instruction: ``OPERATOR(modifier) operand``."""
    operator: Operator
    operand: Optional[str] = None
    modifier: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "operator", _coerce_enum(Operator, self.operator))
        ensure_valid("IL instruction", instruction_errors(self))

    def __str__(self) -> str:
        text = self.operator.value
        if self.modifier:
            text += f"({self.modifier})"
        if self.operand is not None:
            text += f" {self.operand}"
        return text


# ---- LD ----

@dataclass(frozen=True)
class Position:
    """Layout coordinates; no semantic effect."""
    x: float = 1
    y: float = 1

    def moved(self, dx: float = 0, dy: float = 0) -> "Position":
        return Position(self.x + dx, self.y + dy)


@dataclass(frozen=True)
class PortRef:
    """One end of a connection."""
    element: str
    port: str


@dataclass(frozen=True)
class Connection:
    """A directed wire from an output port to an input port."""
    source: PortRef
    target: PortRef

    def __post_init__(self):
        ensure_valid("LD connection", connection_errors(self))

    @classmethod
    def between(cls, source_id: str, source_port: str, target_id: str, target_port: str) -> "Connection":
        return cls(PortRef(source_id, source_port), PortRef(target_id, target_port))

    def as_tuple(self) -> Tuple[str, str, str, str]:
        return (self.source.element, self.source.port, self.target.element, self.target.port)


@dataclass(frozen=True)
class Element:
    """A node of an LD network: contact, coil or function block."""
    id: str
    element_type: ElementType
    position: Position = field(default_factory=Position)
    inputs: Tuple[str, ...] = ()
    outputs: Tuple[str, ...] = ()
    properties: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "element_type", _coerce_enum(ElementType, self.element_type))
        if isinstance(self.position, dict):
            object.__setattr__(self, "position", Position(self.position.get("x"), self.position.get("y")))
        object.__setattr__(self, "inputs", tuple(self.inputs))
        object.__setattr__(self, "outputs", tuple(self.outputs))
        ensure_valid("LD element", element_errors(self))

    @classmethod
    def create(
        cls,
        element_type: Union[ElementType, str],
        position: Optional[Position] = None,
        properties: Optional[Dict[str, Any]] = None,
        element_id: Optional[str] = None,
    ) -> "Element":
        """Create an element with a generated id and the port layout of its type."""
        element_type = _coerce_enum(ElementType, element_type)
        inputs, outputs = ELEMENT_PORTS.get(element_type, ((), ()))
        return cls(
            id=element_id or generate_id(),
            element_type=element_type,
            position=position or Position(),
            inputs=inputs,
            outputs=outputs,
            properties=dict(properties or {}),
        )

    @property
    def variable(self) -> Optional[str]:
        return self.properties.get("variable")

    @property
    def preset(self) -> Optional[Union[str, int]]:
        return self.properties.get("preset")

    @property
    def operand(self) -> Optional[Union[str, int, float]]:
        return self.properties.get("operand")

    @property
    def primary_input(self) -> str:
        return primary_input(self.element_type)

    @property
    def primary_output(self) -> str:
        return primary_output(self.element_type)

    def __str__(self) -> str:
        return f"{self.element_type.value}[{self.id}]"


@dataclass(frozen=True)
class Network:
    """An LD network: ordered elements and the wires between their ports."""
    id: str
    elements: Tuple[Element, ...] = ()
    connections: Tuple[Connection, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "elements", tuple(self.elements))
        object.__setattr__(self, "connections", tuple(self.connections))
        ensure_valid("LD network", network_errors(self))

    def get_element(self, element_id: str) -> Optional[Element]:
        for element in self.elements:
            if element.id == element_id:
                return element
        return None

    def incoming(self, element_id: str, port: Optional[str] = None) -> List[Connection]:
        """Connections ending at ``element_id`` (optionally at one port)."""
        return [
            conn for conn in self.connections
            if conn.target.element == element_id and (port is None or conn.target.port == port)
        ]

    def outgoing(self, element_id: str, port: Optional[str] = None) -> List[Connection]:
        """Connections leaving ``element_id`` (optionally from one port)."""
        return [
            conn for conn in self.connections
            if conn.source.element == element_id and (port is None or conn.source.port == port)
        ]

    def __str__(self) -> str:
        return f"Network({self.id}, elements={len(self.elements)}, connections={len(self.connections)})"


# ---- Simulation state ----

def infer_variable_type(value: Any) -> VariableType:
    """Pick a variable type for a value written to an undeclared variable."""
    if isinstance(value, bool):
        return VariableType.BOOL
    if isinstance(value, int):
        return VariableType.INT
    if isinstance(value, float):
        return VariableType.REAL
    return VariableType.TIME


@dataclass
class Variable:
    """A named, typed simulation variable."""
    name: str
    var_type: VariableType
    value: Any

    def __post_init__(self):
        self.var_type = _coerce_enum(VariableType, self.var_type)
        ensure_valid("variable", variable_errors(self))


class VariableStore:
    """Name -> Variable mapping shared by contacts, coils and math blocks.

    Mutated in place by the simulator; see ``SimulationContext`` for the
    locking contract.
    """

    def __init__(self, variables: Optional[List[Variable]] = None):
        self._variables: Dict[str, Variable] = {}
        for variable in variables or []:
            self._variables[variable.name] = variable

    @classmethod
    def from_definitions(cls, definitions: List[Dict[str, Any]]) -> "VariableStore":
        """Build a store from ``{"name", "type", "value"}`` mappings."""
        return cls([Variable(d.get("name"), d.get("type"), d.get("value")) for d in definitions])

    def declare(self, name: str, var_type: Union[VariableType, str], value: Any) -> Variable:
        variable = Variable(name, var_type, value)
        self._variables[name] = variable
        return variable

    def variable(self, name: str) -> Optional[Variable]:
        return self._variables.get(name)

    def get(self, name: str, default: Any = None) -> Any:
        variable = self._variables.get(name)
        return variable.value if variable is not None else default

    def set(self, name: str, value: Any):
        """
        Write a value, declaring the variable with an inferred type if needed.

        A value that does not match a declared variable's type raises
        ValidationError and leaves the variable unchanged.
        """
        variable = self._variables.get(name)
        if variable is None:
            self.declare(name, infer_variable_type(value), value)
            return
        # validates the new value against the declared type
        Variable(name, variable.var_type, value)
        variable.value = value

    def snapshot(self) -> Dict[str, Any]:
        """Copy of all current values, safe to read without holding a lock."""
        return {name: variable.value for name, variable in list(self._variables.items())}

    def __contains__(self, name: str) -> bool:
        return name in self._variables

    def __iter__(self) -> Iterator[Variable]:
        return iter(list(self._variables.values()))

    def __len__(self) -> int:
        return len(self._variables)


@dataclass
class TimerState:
    running: bool = False
    start_time: float = 0
    elapsed: float = 0
    was_on: bool = False


@dataclass
class CounterState:
    count: int = 0
    prev_edge: bool = False


class ElementStateStore:
    """Per-element timer/counter state, keyed by element id."""

    def __init__(self):
        self._states: Dict[str, Union[TimerState, CounterState]] = {}

    def get(self, element_id: str, default=None):
        return self._states.get(element_id, default)

    def put(self, element_id: str, state: Union[TimerState, CounterState]):
        self._states[element_id] = state

    def reset(self):
        """Discard all state, e.g. when a new network is loaded."""
        self._states.clear()

    def snapshot(self) -> Dict[str, Union[TimerState, CounterState]]:
        return dict(self._states)

    def __contains__(self, element_id: str) -> bool:
        return element_id in self._states

    def __len__(self) -> int:
        return len(self._states)
