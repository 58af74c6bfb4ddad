"""
YAML configuration for simulation sessions and tracing.

Example ``ladderplc.yaml``::

    log_level: INFO
    simulation:
      scan_interval_ms: 200
      poll_interval_ms: 50
      memoize_stateful: false
      variables:
        - {name: START, type: BOOL, value: false}
    trace:
      continue_past_unknown: false
"""

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .constants import DEFAULT_VARIABLES
from .converter import TraceOptions
from .models import VariableStore

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "ladderplc.yaml"


@dataclass
class SimulationSettings:
    """Timing and initial variables for simulation sessions."""
    scan_interval_ms: int = 200
    poll_interval_ms: int = 50
    memoize_stateful: bool = False
    variables: List[Dict[str, Any]] = field(default_factory=lambda: copy.deepcopy(DEFAULT_VARIABLES))


@dataclass
class TraceSettings:
    continue_past_unknown: bool = False

    def to_options(self) -> TraceOptions:
        return TraceOptions(continue_past_unknown=self.continue_past_unknown)


@dataclass
class LadderConfig:
    simulation: SimulationSettings = field(default_factory=SimulationSettings)
    trace: TraceSettings = field(default_factory=TraceSettings)
    log_level: str = "WARNING"

    def create_variables(self) -> VariableStore:
        """Build a fresh, validated variable store from the configured definitions."""
        return VariableStore.from_definitions(self.simulation.variables)


def load_config(config_path: Union[str, Path]) -> LadderConfig:
    """Load configuration from a YAML file, falling back to defaults on any problem."""
    try:
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}

        simulation_data = config_data.get('simulation', {}) or {}
        trace_data = config_data.get('trace', {}) or {}
        defaults = SimulationSettings()

        config = LadderConfig(
            simulation=SimulationSettings(
                scan_interval_ms=int(simulation_data.get('scan_interval_ms', defaults.scan_interval_ms)),
                poll_interval_ms=int(simulation_data.get('poll_interval_ms', defaults.poll_interval_ms)),
                memoize_stateful=bool(simulation_data.get('memoize_stateful', defaults.memoize_stateful)),
                variables=list(simulation_data.get('variables', defaults.variables)),
            ),
            trace=TraceSettings(
                continue_past_unknown=bool(trace_data.get('continue_past_unknown', False)),
            ),
            log_level=str(config_data.get('log_level', 'WARNING')).upper(),
        )
        logger.info(f"Loaded configuration from {config_path}")
        return config
    except (OSError, yaml.YAMLError, AttributeError, TypeError, ValueError) as e:
        logger.warning(f"Could not load config from {config_path}: {e}")
        return LadderConfig()


def find_config(directory: Optional[Union[str, Path]] = None) -> Optional[Path]:
    """Return ``ladderplc.yaml`` in ``directory`` (default: cwd) if it exists."""
    candidate = Path(directory or Path.cwd()) / CONFIG_FILENAME
    return candidate if candidate.is_file() else None
