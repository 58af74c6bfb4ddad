"""
ladderplc: IEC 61131-3 Instruction List <-> Ladder Diagram translator and simulator.

Supports:
- Parsing and formatting IL programs
- Building LD networks from IL and tracing them back to IL
- Cycle-based simulation of LD networks with timers and counters
- JSON import/export and DOT/GraphML graph export
"""

from .constants import ElementType, Operator, VariableType
from .errors import CyclicNetworkError, LadderError, ParseError, ValidationError
from .models import (
    Connection, CounterState, Element, ElementStateStore, Instruction, Network,
    PortRef, Position, TimerState, Variable, VariableStore,
)
from .il_parser import format_instruction, format_program, parse_instruction, parse_program
from .converter import IL2LDConverter, LD2ILConverter, TraceOptions, build_network, trace_network
from .simulator import LDSimulator, SimulationContext, run_cycle
from .json_io import load_il_from_file, load_network_from_file, save_il_to_file, save_network_to_file

__version__ = "1.0.0"
__all__ = [
    "ElementType",
    "Operator",
    "VariableType",
    "LadderError",
    "ParseError",
    "ValidationError",
    "CyclicNetworkError",
    "Instruction",
    "Position",
    "PortRef",
    "Connection",
    "Element",
    "Network",
    "Variable",
    "VariableStore",
    "TimerState",
    "CounterState",
    "ElementStateStore",
    "parse_instruction",
    "parse_program",
    "format_instruction",
    "format_program",
    "IL2LDConverter",
    "LD2ILConverter",
    "TraceOptions",
    "build_network",
    "trace_network",
    "LDSimulator",
    "SimulationContext",
    "run_cycle",
    "load_il_from_file",
    "load_network_from_file",
    "save_il_to_file",
    "save_network_to_file",
]
