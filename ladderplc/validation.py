"""
Structural invariant checks applied when entities are constructed.

Each ``*_errors`` function returns a list of human-readable problems (empty when
the entity is valid) so callers can report every failing field at once.
"""

from typing import Any, List

from .constants import ELEMENT_PORTS, ElementType, Operator, VariableType
from .errors import ValidationError


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_name(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def instruction_errors(instruction) -> List[str]:
    """Validate an IL instruction."""
    errors = []
    if not isinstance(instruction.operator, Operator):
        errors.append(f"operator {instruction.operator!r} is not a known IL operator")
    if instruction.operand is not None and not isinstance(instruction.operand, str):
        errors.append(f"operand must be a string, got {type(instruction.operand).__name__}")
    if instruction.modifier is not None and not _is_name(instruction.modifier):
        errors.append(f"modifier must be a non-empty string, got {instruction.modifier!r}")
    return errors


def variable_errors(variable) -> List[str]:
    """Validate a simulation variable and that its value matches its type."""
    errors = []
    if not _is_name(variable.name):
        errors.append("name must be a non-empty string")
    if not isinstance(variable.var_type, VariableType):
        errors.append(f"type {variable.var_type!r} must be one of BOOL, INT, REAL, TIME")
        return errors

    value = variable.value
    if variable.var_type == VariableType.BOOL and not isinstance(value, bool):
        errors.append(f"BOOL variable '{variable.name}' has non-boolean value {value!r}")
    elif variable.var_type == VariableType.INT and (not isinstance(value, int) or isinstance(value, bool)):
        errors.append(f"INT variable '{variable.name}' has non-integer value {value!r}")
    elif variable.var_type == VariableType.REAL and not _is_number(value):
        errors.append(f"REAL variable '{variable.name}' has non-numeric value {value!r}")
    elif variable.var_type == VariableType.TIME and not (_is_number(value) or isinstance(value, str)):
        errors.append(f"TIME variable '{variable.name}' has invalid value {value!r}")
    return errors


def element_errors(element) -> List[str]:
    """Validate an LD element against the port layout of its type."""
    errors = []
    if not _is_name(element.id):
        errors.append("id must be a non-empty string")

    known_type = isinstance(element.element_type, ElementType)
    if not known_type:
        errors.append(f"element_type {element.element_type!r} is not a known element type")

    position = element.position
    if not (_is_number(getattr(position, "x", None)) and _is_number(getattr(position, "y", None))):
        errors.append(f"position must have numeric x and y, got {position!r}")

    for field_name in ("inputs", "outputs"):
        ports = getattr(element, field_name)
        if not all(_is_name(port) for port in ports):
            errors.append(f"{field_name} must be non-empty port ids, got {list(ports)!r}")
        elif known_type:
            expected = ELEMENT_PORTS[element.element_type][0 if field_name == "inputs" else 1]
            if tuple(ports) != expected:
                errors.append(
                    f"{field_name} of {element.element_type.value} must be {list(expected)}, "
                    f"got {list(ports)}"
                )

    if not isinstance(element.properties, dict):
        errors.append("properties must be a mapping")
        return errors

    for key in element.properties:
        if not isinstance(key, str):
            errors.append(f"property key {key!r} must be a string")

    variable = element.properties.get("variable")
    if variable is not None and not isinstance(variable, str):
        errors.append(f"property 'variable' must be a string, got {variable!r}")

    preset = element.properties.get("preset")
    if preset is not None and not (isinstance(preset, str) or _is_number(preset)):
        errors.append(f"property 'preset' must be a string or number, got {preset!r}")

    operand = element.properties.get("operand")
    if operand is not None and not (isinstance(operand, str) or _is_number(operand)):
        errors.append(f"property 'operand' must be a string or number, got {operand!r}")
    return errors


def connection_errors(connection) -> List[str]:
    """Validate the shape of a connection (endpoints are checked by the network)."""
    errors = []
    for side in ("source", "target"):
        ref = getattr(connection, side)
        if not _is_name(getattr(ref, "element", None)):
            errors.append(f"{side}.element must be a non-empty string")
        if not _is_name(getattr(ref, "port", None)):
            errors.append(f"{side}.port must be a non-empty string")
    return errors


def network_errors(network) -> List[str]:
    """Validate network-level invariants: unique ids and resolvable connections."""
    errors = []
    if not _is_name(network.id):
        errors.append("network id must be a non-empty string")

    elements_by_id = {}
    for element in network.elements:
        if element.id in elements_by_id:
            errors.append(f"duplicate element id '{element.id}'")
        elements_by_id[element.id] = element

    for index, connection in enumerate(network.connections):
        source = elements_by_id.get(connection.source.element)
        target = elements_by_id.get(connection.target.element)
        if source is None:
            errors.append(f"connection {index}: unknown source element '{connection.source.element}'")
        elif connection.source.port not in source.outputs:
            errors.append(
                f"connection {index}: '{connection.source.port}' is not an output of "
                f"{source.element_type.value} '{source.id}'"
            )
        if target is None:
            errors.append(f"connection {index}: unknown target element '{connection.target.element}'")
        elif connection.target.port not in target.inputs:
            errors.append(
                f"connection {index}: '{connection.target.port}' is not an input of "
                f"{target.element_type.value} '{target.id}'"
            )
    return errors


def ensure_valid(entity: str, errors: List[str]):
    """Raise ``ValidationError`` if ``errors`` is not empty."""
    if errors:
        raise ValidationError(entity, errors)
