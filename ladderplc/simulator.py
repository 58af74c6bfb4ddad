"""
Scan-cycle simulator for LD networks.

One cycle evaluates every coil in element order by evaluating the elements
wired into it and writes the boolean result into the variable store. Timer
and counter state persists across cycles in the context's ElementStateStore.
"""

import re
import time
import logging
import operator
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .constants import (
    COIL_TYPES,
    COUNTER_TYPES,
    DEFAULT_TIME_PRESET_MS,
    DEFAULT_VARIABLES,
    TIME_UNIT_MS,
    TIMER_TYPES,
    ElementType,
    VariableType,
)
from .errors import CyclicNetworkError, ValidationError
from .models import (
    Connection,
    CounterState,
    Element,
    ElementStateStore,
    Network,
    PortRef,
    TimerState,
    VariableStore,
)

logger = logging.getLogger(__name__)

_TIME_PRESET = re.compile(r'T#(\d+)(ms|s|m|h)')

_MATH_FUNCTIONS = {
    ElementType.ADD: operator.add,
    ElementType.SUBTRACT: operator.sub,
    ElementType.MULTIPLY: operator.mul,
}

_COMPARE_FUNCTIONS = {
    ElementType.GREATER_THAN: operator.gt,
    ElementType.GREATER_EQUAL: operator.ge,
    ElementType.EQUAL: operator.eq,
    ElementType.NOT_EQUAL: operator.ne,
    ElementType.LESS_EQUAL: operator.le,
    ElementType.LESS_THAN: operator.lt,
}

# Element types with no simulation semantics; they evaluate to False
UNSUPPORTED_ELEMENT_TYPES = {ElementType.TIMER_PULSE, ElementType.COUNTER_UPDOWN}


def monotonic_ms() -> float:
    return time.monotonic() * 1000


def parse_time_preset(preset: Any) -> int:
    """
    Convert an IEC time literal (``T#500ms``, ``T#2s``, ``T#1m``, ``T#1h``) to
    milliseconds. Anything else yields the default of 1000 ms.
    """
    if isinstance(preset, str):
        match = _TIME_PRESET.fullmatch(preset.strip())
        if match:
            return int(match.group(1)) * TIME_UNIT_MS[match.group(2)]
    return DEFAULT_TIME_PRESET_MS


def parse_count_preset(preset: Any) -> int:
    """Convert a counter preset to an int; unparseable values give 0."""
    if isinstance(preset, int) and not isinstance(preset, bool):
        return preset
    if isinstance(preset, str):
        try:
            return int(preset.strip())
        except ValueError:
            pass
    logger.warning(f"Invalid counter preset {preset!r}, using 0")
    return 0


def _divide(a, b):
    if b == 0:
        logger.warning(f"Division by zero ({a} / {b}), result set to 0")
        return 0
    if isinstance(a, int) and isinstance(b, int):
        # truncate toward zero
        quotient = abs(a) // abs(b)
        return quotient if (a >= 0) == (b >= 0) else -quotient
    return a / b


class SimulationContext:
    """
    Everything a simulation carries between cycles.

    ``run_cycle`` and ``set_variable`` hold ``lock``. Display code may read
    ``output_snapshot()`` and ``variables.snapshot()`` without it.
    """

    def __init__(
        self,
        variables: Optional[VariableStore] = None,
        clock: Optional[Callable[[], float]] = None,
        memoize_stateful: bool = False,
    ):
        if variables is None:
            variables = VariableStore.from_definitions(DEFAULT_VARIABLES)
        self.variables = variables
        self.element_states = ElementStateStore()
        self.clock = clock or monotonic_ms
        self.memoize_stateful = memoize_stateful
        self.lock = threading.RLock()
        self.element_outputs: Dict[str, Any] = {}

    def set_variable(self, name: str, value: Any):
        with self.lock:
            self.variables.set(name, value)

    def output_snapshot(self) -> Dict[str, Any]:
        """Outputs of each element from the last completed cycle."""
        return dict(self.element_outputs)

    def reset_state(self):
        """Forget timer/counter state and outputs, e.g. when a new network is loaded."""
        with self.lock:
            self.element_states.reset()
            self.element_outputs = {}


@dataclass
class _Frame:
    """An element whose wired inputs are still being evaluated."""
    element: Element
    pending: List[Tuple[str, PortRef]]
    inputs: Dict[str, Any] = field(default_factory=dict)
    waiting: Optional[Tuple[str, PortRef]] = None


class LDSimulator:
    """Evaluates one network against a SimulationContext."""

    _EVALUATORS = {
        ElementType.CONTACT: "_eval_contact",
        ElementType.CONTACT_NEGATED: "_eval_contact",
        ElementType.COIL: "_eval_coil",
        ElementType.COIL_NEGATED: "_eval_coil",
        ElementType.AND: "_eval_gate",
        ElementType.OR: "_eval_gate",
        ElementType.NOT: "_eval_not",
        ElementType.TIMER_ON: "_eval_timer_on",
        ElementType.TIMER_OFF: "_eval_timer_off",
        ElementType.COUNTER_UP: "_eval_counter_up",
        ElementType.COUNTER_DOWN: "_eval_counter_down",
        ElementType.ADD: "_eval_math",
        ElementType.SUBTRACT: "_eval_math",
        ElementType.MULTIPLY: "_eval_math",
        ElementType.DIVIDE: "_eval_math",
        **{block: "_eval_compare" for block in _COMPARE_FUNCTIONS},
    }

    # Input ports each evaluator reads, in evaluation order
    _READ_PORTS = {
        ElementType.COIL: ("in",),
        ElementType.COIL_NEGATED: ("in",),
        ElementType.AND: ("in1", "in2"),
        ElementType.OR: ("in1", "in2"),
        ElementType.NOT: ("in",),
        ElementType.TIMER_ON: ("in",),
        ElementType.TIMER_OFF: ("in",),
        ElementType.COUNTER_UP: ("cu", "r"),
        ElementType.COUNTER_DOWN: ("cd", "ld"),
        **{block: ("in1", "in2") for block in _MATH_FUNCTIONS},
        ElementType.DIVIDE: ("in1", "in2"),
        **{block: ("in1", "in2") for block in _COMPARE_FUNCTIONS},
    }

    def __init__(self, network: Network, context: SimulationContext):
        self.network = network
        self.context = context
        self._elements: Dict[str, Element] = {el.id: el for el in network.elements}
        self._inputs: Dict[Tuple[str, str], List[Connection]] = {}
        for conn in network.connections:
            self._inputs.setdefault((conn.target.element, conn.target.port), []).append(conn)
        self._cache: Dict[str, Any] = {}
        self._outputs: Dict[str, Any] = {}
        self._now: float = 0

    def run_cycle(self) -> VariableStore:
        """Run one scan cycle and return the (updated) variable store."""
        context = self.context
        with context.lock:
            self._now = context.clock()
            self._cache = {}
            self._outputs = {}

            for coil in self.network.elements:
                if coil.element_type not in COIL_TYPES:
                    continue
                feeds = self._inputs.get((coil.id, "in"))
                if not feeds or not coil.variable:
                    continue
                value = bool(self._read_port(feeds[0].source))
                if coil.element_type == ElementType.COIL_NEGATED:
                    value = not value
                self._outputs[coil.id] = value
                try:
                    context.variables.set(coil.variable, value)
                except ValidationError as e:
                    logger.error(f"{coil} cannot write {coil.variable}: {e}")
                    continue
                logger.debug(f"{coil} wrote {coil.variable} = {value!r}")

            context.element_outputs = self._outputs
        return context.variables

    def evaluate(self, element: Element) -> Any:
        """
        Evaluate an element's primary output after everything wired into it.

        Feeders are walked depth-first with an explicit stack of frames, so a
        rung of any length evaluates without deep Python recursion. The ids of
        the open frames form the current path; reaching an id already on it
        raises CyclicNetworkError.
        """
        if self._is_cached(element):
            return self._cache[element.id]

        frames = [self._open_frame(element)]
        path = [element.id]
        on_path = {element.id}
        while True:
            frame = frames[-1]
            if frame.pending:
                port, ref = frame.pending.pop(0)
                source = self._elements[ref.element]
                if source.id in on_path:
                    raise CyclicNetworkError(path[path.index(source.id):] + [source.id])
                if self._is_cached(source):
                    frame.inputs[port] = self._port_value(source, ref.port, self._cache[source.id])
                    continue
                frame.waiting = (port, ref)
                frames.append(self._open_frame(source))
                path.append(source.id)
                on_path.add(source.id)
                continue

            frames.pop()
            path.pop()
            on_path.discard(frame.element.id)
            result = self._apply(frame.element, frame.inputs)
            if not frames:
                return result
            parent = frames[-1]
            port, ref = parent.waiting
            parent.inputs[port] = self._port_value(frame.element, ref.port, result)

    def _open_frame(self, element: Element) -> _Frame:
        pending = []
        for port in self._READ_PORTS.get(element.element_type, ()):
            feeds = self._inputs.get((element.id, port))
            if feeds:
                pending.append((port, feeds[0].source))
        return _Frame(element, pending)

    def _is_stateful(self, element: Element) -> bool:
        return element.element_type in TIMER_TYPES or element.element_type in COUNTER_TYPES

    def _is_cached(self, element: Element) -> bool:
        return self.context.memoize_stateful and self._is_stateful(element) and element.id in self._cache

    def _apply(self, element: Element, inputs: Dict[str, Any]) -> Any:
        """Run an element's evaluator on its already evaluated inputs."""
        method_name = self._EVALUATORS.get(element.element_type)
        if method_name is None:
            logger.warning(f"Unknown element type for evaluation: {element}")
            result = False
        else:
            try:
                result = getattr(self, method_name)(element, inputs)
            except (TypeError, ValueError, ArithmeticError, KeyError) as e:
                logger.error(f"Error evaluating {element}: {e}")
                result = False

        if self.context.memoize_stateful and self._is_stateful(element):
            self._cache[element.id] = result
        self._outputs[element.id] = result
        return result

    def _port_value(self, element: Element, port: str, value: Any) -> Any:
        """Value seen on an output port: elapsed time on ``et``, count on ``cv``."""
        if port == "et" and element.element_type in TIMER_TYPES:
            state = self.context.element_states.get(element.id)
            return state.elapsed if state is not None else 0
        if port == "cv" and element.element_type in COUNTER_TYPES:
            state = self.context.element_states.get(element.id)
            return state.count if state is not None else 0
        return value

    def _read_port(self, ref: PortRef) -> Any:
        element = self._elements[ref.element]
        return self._port_value(element, ref.port, self.evaluate(element))

    def _resolve_operand(self, element: Element, inputs: Dict[str, Any]) -> Union[int, float]:
        """Second operand of a math/compare block: ``in2`` wire, else the ``operand`` property."""
        if "in2" in inputs:
            return inputs["in2"]

        operand = element.operand
        if operand is None:
            logger.warning(f"{element} has no second operand, using 0")
            return 0
        if not isinstance(operand, str):
            return operand

        text = operand.strip()
        for convert in (int, float):
            try:
                return convert(text)
            except ValueError:
                pass
        if text.startswith("T#"):
            return parse_time_preset(text)

        variable = self.context.variables.variable(text)
        if variable is None:
            logger.warning(f"Variable {text} not found for {element}, using 0")
            return 0
        if variable.var_type == VariableType.TIME and isinstance(variable.value, str):
            return parse_time_preset(variable.value)
        return variable.value

    # ---- evaluators ----

    def _eval_contact(self, element: Element, inputs: Dict[str, Any]) -> bool:
        value = bool(self.context.variables.get(element.variable, False)) if element.variable else False
        return not value if element.element_type == ElementType.CONTACT_NEGATED else value

    def _eval_coil(self, element: Element, inputs: Dict[str, Any]) -> bool:
        # a coil read as a source passes its input through
        value = bool(inputs.get("in", False))
        return not value if element.element_type == ElementType.COIL_NEGATED else value

    def _eval_gate(self, element: Element, inputs: Dict[str, Any]) -> bool:
        # both sides were evaluated, so stateful feeders on either side advance
        left = bool(inputs.get("in1", False))
        right = bool(inputs.get("in2", False))
        return left and right if element.element_type == ElementType.AND else left or right

    def _eval_not(self, element: Element, inputs: Dict[str, Any]) -> bool:
        return not bool(inputs.get("in", False))

    def _eval_timer_on(self, element: Element, inputs: Dict[str, Any]) -> bool:
        enabled = bool(inputs.get("in", False))
        preset_ms = parse_time_preset(element.preset)
        states = self.context.element_states
        state = states.get(element.id) or TimerState()
        now = self._now

        if enabled and not state.running:
            state = TimerState(running=True, start_time=now, elapsed=0)
        elif enabled:
            state = TimerState(running=True, start_time=state.start_time, elapsed=now - state.start_time)
        else:
            state = TimerState()
        states.put(element.id, state)
        return state.elapsed >= preset_ms

    def _eval_timer_off(self, element: Element, inputs: Dict[str, Any]) -> bool:
        enabled = bool(inputs.get("in", False))
        preset_ms = parse_time_preset(element.preset)
        states = self.context.element_states
        state = states.get(element.id) or TimerState()
        now = self._now

        if not enabled and state.was_on:
            # falling edge
            state = TimerState(running=True, start_time=now, elapsed=0, was_on=False)
        elif state.running:
            elapsed = now - state.start_time
            if elapsed >= preset_ms:
                state = TimerState(running=False, start_time=0, elapsed=preset_ms, was_on=enabled)
            else:
                state = TimerState(running=True, start_time=state.start_time, elapsed=elapsed, was_on=enabled)
        else:
            state = TimerState(was_on=enabled)
        states.put(element.id, state)
        return enabled or state.running

    def _eval_counter_up(self, element: Element, inputs: Dict[str, Any]) -> bool:
        pulse = bool(inputs.get("cu", False))
        reset = bool(inputs.get("r", False))
        preset = parse_count_preset(element.preset)
        states = self.context.element_states
        state = states.get(element.id) or CounterState()

        if reset:
            state = CounterState(count=0, prev_edge=pulse)
        elif pulse and not state.prev_edge:
            state = CounterState(count=min(state.count + 1, preset), prev_edge=True)
        else:
            state = CounterState(count=state.count, prev_edge=pulse)
        states.put(element.id, state)
        return state.count >= preset

    def _eval_counter_down(self, element: Element, inputs: Dict[str, Any]) -> bool:
        pulse = bool(inputs.get("cd", False))
        load = bool(inputs.get("ld", False))
        preset = parse_count_preset(element.preset)
        states = self.context.element_states
        state = states.get(element.id) or CounterState(count=preset)

        if load:
            state = CounterState(count=preset, prev_edge=pulse)
        elif pulse and not state.prev_edge:
            state = CounterState(count=max(state.count - 1, 0), prev_edge=True)
        else:
            state = CounterState(count=state.count, prev_edge=pulse)
        states.put(element.id, state)
        return state.count == 0

    def _eval_math(self, element: Element, inputs: Dict[str, Any]) -> Union[int, float]:
        left = inputs.get("in1", 0)
        right = self._resolve_operand(element, inputs)
        if element.element_type == ElementType.DIVIDE:
            return _divide(left, right)
        return _MATH_FUNCTIONS[element.element_type](left, right)

    def _eval_compare(self, element: Element, inputs: Dict[str, Any]) -> bool:
        left = inputs.get("in1", 0)
        right = self._resolve_operand(element, inputs)
        return bool(_COMPARE_FUNCTIONS[element.element_type](left, right))


_unhandled = set(ElementType) - set(LDSimulator._EVALUATORS) - UNSUPPORTED_ELEMENT_TYPES
if _unhandled:
    raise RuntimeError(f"LDSimulator does not handle: {sorted(t.value for t in _unhandled)}")


def run_cycle(network: Network, context: SimulationContext) -> VariableStore:
    """Run one scan cycle of ``network`` against ``context``."""
    return LDSimulator(network, context).run_cycle()
