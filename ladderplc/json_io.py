"""
JSON wire format for IL programs and LD networks, plus IL text files.

On disk an element's kind is stored under ``type``; in memory it is
``Element.element_type``.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from .errors import ValidationError
from .il_parser import format_program, parse_program
from .models import Connection, Element, Instruction, Network, PortRef, Position

logger = logging.getLogger(__name__)

IL_TEXT_SUFFIXES = {'.il', '.txt'}

PathLike = Union[str, Path]


# ---- IL ----

def il_to_json(instructions: List[Instruction]) -> Dict[str, Any]:
    return {
        "program": {
            "instructions": [
                {
                    "operator": instruction.operator.value,
                    "operand": instruction.operand,
                    "modifier": instruction.modifier,
                }
                for instruction in instructions
            ]
        }
    }


def json_to_il(data: Any) -> List[Instruction]:
    """Read ``{"program": {"instructions": [...]}}`` into Instructions."""
    program = data.get("program") if isinstance(data, dict) else None
    raw_instructions = program.get("instructions") if isinstance(program, dict) else None
    if not isinstance(raw_instructions, list):
        raise ValidationError("IL JSON", ["expected an object with program.instructions as a list"])

    errors = []
    instructions = []
    for index, raw in enumerate(raw_instructions):
        if not isinstance(raw, dict):
            errors.append(f"instructions[{index}]: expected an object, got {type(raw).__name__}")
            continue
        if "operator" not in raw:
            errors.append(f"instructions[{index}]: missing 'operator'")
            continue
        try:
            instructions.append(Instruction(raw["operator"], raw.get("operand"), raw.get("modifier")))
        except ValidationError as e:
            errors.extend(f"instructions[{index}]: {msg}" for msg in e.errors)

    if errors:
        raise ValidationError("IL JSON", errors)
    return instructions


def save_il_to_file(instructions: List[Instruction], path: PathLike):
    """Write IL as JSON, or as plain text for ``.il`` / ``.txt`` files."""
    path = Path(path)
    if path.suffix.lower() in IL_TEXT_SUFFIXES:
        path.write_text(format_program(instructions) + '\n', encoding='utf-8')
    else:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(il_to_json(instructions), f, indent=2)
    logger.info(f"Saved {len(instructions)} IL instructions to {path}")


def load_il_from_file(path: PathLike) -> List[Instruction]:
    """Read IL from JSON, or from plain text for ``.il`` / ``.txt`` files."""
    path = Path(path)
    text = path.read_text(encoding='utf-8')
    if path.suffix.lower() in IL_TEXT_SUFFIXES:
        instructions = parse_program(text)
    else:
        instructions = json_to_il(json.loads(text))
    logger.info(f"Loaded {len(instructions)} IL instructions from {path}")
    return instructions


# ---- LD ----

def _element_to_json(element: Element) -> Dict[str, Any]:
    return {
        "type": element.element_type.value,
        "id": element.id,
        "position": {"x": element.position.x, "y": element.position.y},
        "inputs": [{"id": port} for port in element.inputs],
        "outputs": [{"id": port} for port in element.outputs],
        "properties": dict(element.properties),
    }


def _port_ref_to_json(ref: PortRef) -> Dict[str, str]:
    return {"element": ref.element, "port": ref.port}


def network_to_json(network: Network) -> Dict[str, Any]:
    return {
        "id": network.id,
        "elements": [_element_to_json(el) for el in network.elements],
        "connections": [
            {"source": _port_ref_to_json(conn.source), "target": _port_ref_to_json(conn.target)}
            for conn in network.connections
        ],
    }


def _ports_from_json(raw: Any, where: str, errors: List[str]) -> List[str]:
    if not isinstance(raw, list):
        errors.append(f"{where}: expected a list of {{\"id\": ...}} objects")
        return []
    ports = []
    for index, port in enumerate(raw):
        if isinstance(port, dict) and "id" in port:
            ports.append(port["id"])
        else:
            errors.append(f"{where}[{index}]: expected an object with 'id'")
    return ports


def _element_from_json(raw: Any, where: str, errors: List[str]):
    if not isinstance(raw, dict):
        errors.append(f"{where}: expected an object, got {type(raw).__name__}")
        return None

    missing = [key for key in ("type", "id", "position", "inputs", "outputs") if key not in raw]
    if missing:
        errors.append(f"{where}: missing {', '.join(missing)}")
        return None

    position = raw["position"]
    if not isinstance(position, dict) or "x" not in position or "y" not in position:
        errors.append(f"{where}.position: expected an object with x and y")
        return None

    problems: List[str] = []
    inputs = _ports_from_json(raw["inputs"], f"{where}.inputs", problems)
    outputs = _ports_from_json(raw["outputs"], f"{where}.outputs", problems)
    if problems:
        errors.extend(problems)
        return None

    try:
        return Element(
            id=raw["id"],
            element_type=raw["type"],
            position=Position(position["x"], position["y"]),
            inputs=inputs,
            outputs=outputs,
            properties=raw.get("properties") if raw.get("properties") is not None else {},
        )
    except ValidationError as e:
        errors.extend(f"{where}: {msg}" for msg in e.errors)
        return None


def _connection_from_json(raw: Any, where: str, errors: List[str]):
    refs = []
    for side in ("source", "target"):
        end = raw.get(side) if isinstance(raw, dict) else None
        if not isinstance(end, dict) or "element" not in end or "port" not in end:
            errors.append(f"{where}.{side}: expected an object with element and port")
            return None
        refs.append(PortRef(end["element"], end["port"]))
    try:
        return Connection(*refs)
    except ValidationError as e:
        errors.extend(f"{where}: {msg}" for msg in e.errors)
        return None


def json_to_network(data: Any) -> Network:
    """
    Read an LD network from its JSON form.

    Raises:
        ValidationError: Listing every structural problem found
    """
    if not isinstance(data, dict):
        raise ValidationError("LD network JSON", [f"expected an object, got {type(data).__name__}"])

    errors: List[str] = []
    if "id" not in data:
        errors.append("missing 'id'")

    raw_elements = data.get("elements", [])
    raw_connections = data.get("connections", [])
    if not isinstance(raw_elements, list):
        errors.append("'elements' must be a list")
        raw_elements = []
    if not isinstance(raw_connections, list):
        errors.append("'connections' must be a list")
        raw_connections = []

    elements = [_element_from_json(raw, f"elements[{i}]", errors) for i, raw in enumerate(raw_elements)]
    connections = [_connection_from_json(raw, f"connections[{i}]", errors) for i, raw in enumerate(raw_connections)]
    if errors:
        raise ValidationError("LD network JSON", errors)

    return Network(id=data["id"], elements=elements, connections=connections)


def save_network_to_file(network: Network, path: PathLike):
    path = Path(path)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(network_to_json(network), f, indent=2)
    logger.info(f"Saved LD network {network.id} to {path}")


def load_network_from_file(path: PathLike) -> Network:
    path = Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        network = json_to_network(json.load(f))
    logger.info(f"Loaded LD network {network.id} from {path} ({len(network.elements)} elements)")
    return network
