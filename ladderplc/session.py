"""
Interactive simulation session.

Drives an LD network from a prompt: single cycles, manual variable writes,
a textual visualization of element outputs and a background runner that
scans the network periodically.
"""

import time
import logging
import threading
from typing import Any, Callable, Optional

import click

from .config import SimulationSettings
from .constants import VariableType
from .errors import ValidationError
from .graph_export import element_label
from .models import Network
from .simulator import LDSimulator, SimulationContext, parse_time_preset

logger = logging.getLogger(__name__)

HELP_TEXT = """Commands:
  <Enter>            run one scan cycle
  set VAR VALUE      set a variable (VALUE defaults to false)
  visual             toggle element output display
  continuous         toggle continuous scanning
  exit               leave the simulator"""

_TRUE_WORDS = {"true", "1", "on", "yes"}
_FALSE_WORDS = {"false", "0", "off", "no"}


def parse_value(text: str, var_type: Optional[VariableType] = None) -> Any:
    """
    Parse a value typed at the prompt.

    With a declared type the text must fit it; without one the type is
    inferred (bool, int, float, then a time literal).

    Raises:
        ValueError: If the text does not fit the type
    """
    lowered = text.strip().lower()
    if var_type == VariableType.BOOL or (var_type is None and lowered in ("true", "false")):
        if lowered in _TRUE_WORDS:
            return True
        if lowered in _FALSE_WORDS:
            return False
        raise ValueError(f"'{text}' is not a boolean")
    if var_type == VariableType.INT:
        return int(text)
    if var_type == VariableType.REAL:
        return float(text)
    if var_type == VariableType.TIME:
        if text.strip().upper().startswith("T#"):
            return parse_time_preset(text.strip())
        return int(text)

    for convert in (int, float):
        try:
            return convert(text)
        except ValueError:
            pass
    if text.strip().upper().startswith("T#"):
        return parse_time_preset(text.strip())
    raise ValueError(f"cannot infer a type for '{text}'")


class ContinuousRunner(threading.Thread):
    """Calls ``step`` every ``scan_interval_ms`` until stopped.

    The stop flag is checked every ``poll_interval_ms``; a step in progress
    always completes.
    """

    def __init__(self, step: Callable[[], None], scan_interval_ms: int = 200, poll_interval_ms: int = 50):
        super().__init__(name="ladderplc-scan", daemon=True)
        self._step = step
        self.scan_interval = scan_interval_ms / 1000
        self.poll_interval = poll_interval_ms / 1000
        self._stop_event = threading.Event()
        self.cycles = 0

    def run(self):
        next_scan = time.monotonic()
        while not self._stop_event.is_set():
            now = time.monotonic()
            if now >= next_scan:
                try:
                    self._step()
                except Exception as e:
                    logger.exception(f"Continuous simulation stopped: {e}")
                    self._stop_event.set()
                    break
                self.cycles += 1
                next_scan = now + self.scan_interval
            self._stop_event.wait(self.poll_interval)

    def stop(self, timeout: Optional[float] = None):
        self._stop_event.set()
        if self.is_alive() and threading.current_thread() is not self:
            self.join(timeout)

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()


class SimulationSession:
    """Prompt-driven simulation of one network."""

    def __init__(
        self,
        network: Network,
        context: Optional[SimulationContext] = None,
        settings: Optional[SimulationSettings] = None,
        echo: Callable[[str], None] = click.echo,
        visual: bool = False,
    ):
        self.settings = settings or SimulationSettings()
        self.context = context or SimulationContext(memoize_stateful=self.settings.memoize_stateful)
        self.echo = echo
        self.visual = visual
        self.runner: Optional[ContinuousRunner] = None
        self.load_network(network)

    def load_network(self, network: Network):
        """Switch to a new network; timer and counter state starts over."""
        self.network = network
        self.simulator = LDSimulator(network, self.context)
        self.context.reset_state()
        logger.info(f"Session loaded network {network.id}")

    @property
    def continuous(self) -> bool:
        return self.runner is not None and self.runner.is_alive()

    def step(self):
        """Run one scan cycle and print the result."""
        self.simulator.run_cycle()
        self.show_variables()
        if self.visual:
            self.show_elements()

    def show_variables(self):
        values = self.context.variables.snapshot()
        self.echo("Variables: " + ", ".join(f"{name}={value}" for name, value in values.items()))

    def show_elements(self):
        outputs = self.context.output_snapshot()
        for element in self.network.elements:
            if element.id not in outputs:
                state = "-"
            else:
                value = outputs[element.id]
                state = ("ON" if value else "OFF") if isinstance(value, bool) else str(value)
            self.echo(f"  {element_label(element):<28} {state}")

    def start_continuous(self):
        if self.continuous:
            return
        self.runner = ContinuousRunner(
            self.step, self.settings.scan_interval_ms, self.settings.poll_interval_ms
        )
        self.runner.start()
        self.echo("▶️  Continuous simulation started")

    def stop_continuous(self):
        if self.runner is None:
            return
        self.runner.stop()
        self.runner = None
        self.echo("⏹️  Continuous simulation stopped")

    def handle_command(self, line: str) -> bool:
        """
        Execute one prompt command.

        Returns:
            False when the session should end, True otherwise
        """
        parts = line.strip().split()
        if not parts:
            self.step()
            return True

        command = parts[0].lower()
        if command == "exit":
            self.stop_continuous()
            return False
        if command == "continuous":
            if self.continuous:
                self.stop_continuous()
            else:
                self.start_continuous()
        elif command == "visual":
            self.visual = not self.visual
            self.echo(f"Visualization {'on' if self.visual else 'off'}")
            if self.visual:
                self.show_elements()
        elif command == "set":
            self._set(parts[1:])
        elif command == "help":
            self.echo(HELP_TEXT)
        else:
            self.echo(f"❌ Unknown command: {parts[0]}")
        return True

    def _set(self, args):
        if not args:
            self.echo("❌ Usage: set VAR VALUE")
            return
        name = args[0]
        variable = self.context.variables.variable(name)
        var_type = variable.var_type if variable is not None else None
        text = " ".join(args[1:])
        if not text:
            if var_type not in (None, VariableType.BOOL):
                self.echo(f"❌ A value is required for {var_type.value} variable {name}")
                return
            value = False
        else:
            try:
                value = parse_value(text, var_type)
            except ValueError as e:
                self.echo(f"❌ Invalid value for {name}: {e}")
                return
        try:
            self.context.set_variable(name, value)
        except ValidationError as e:
            self.echo(f"❌ Invalid value for {name}: {e}")
            return
        self.echo(f"{name} = {value}")

    def run_interactive(self, input_fn: Callable[[str], str] = input):
        """Read commands until ``exit`` or end of input."""
        self.echo(f"LD simulation of network {self.network.id}")
        self.echo(HELP_TEXT)
        try:
            while True:
                try:
                    line = input_fn("> ")
                except EOFError:
                    break
                if not self.handle_command(line):
                    break
        finally:
            self.stop_continuous()
