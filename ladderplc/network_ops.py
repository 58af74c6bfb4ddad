"""
Editing operations on LD networks.

Networks are immutable; each operation returns a new, re-validated Network.
"""

import logging
from dataclasses import replace
from typing import Any, Callable

from .models import Connection, Element, Network, Position

logger = logging.getLogger(__name__)


def add_element(network: Network, element: Element) -> Network:
    """Append an element to the network."""
    return replace(network, elements=network.elements + (element,))


def remove_element(network: Network, element_id: str) -> Network:
    """Remove an element and every connection that touches it."""
    if network.get_element(element_id) is None:
        logger.warning(f"Element {element_id} not found in network {network.id}")
        return network
    return replace(
        network,
        elements=tuple(el for el in network.elements if el.id != element_id),
        connections=tuple(
            conn for conn in network.connections
            if conn.source.element != element_id and conn.target.element != element_id
        ),
    )


def add_connection(network: Network, source_id: str, source_port: str, target_id: str, target_port: str) -> Network:
    """Wire ``source_id.source_port`` to ``target_id.target_port``."""
    connection = Connection.between(source_id, source_port, target_id, target_port)
    return replace(network, connections=network.connections + (connection,))


def remove_connection(network: Network, source_id: str, source_port: str, target_id: str, target_port: str) -> Network:
    """Remove every connection matching the given endpoints."""
    key = (source_id, source_port, target_id, target_port)
    return replace(network, connections=tuple(conn for conn in network.connections if conn.as_tuple() != key))


def _update_element(network: Network, element_id: str, update: Callable[[Element], Element]) -> Network:
    if network.get_element(element_id) is None:
        logger.warning(f"Element {element_id} not found in network {network.id}, nothing updated")
        return network
    return replace(
        network,
        elements=tuple(update(el) if el.id == element_id else el for el in network.elements),
    )


def update_position(network: Network, element_id: str, position: Position) -> Network:
    """Move an element; layout only."""
    if isinstance(position, dict):
        position = Position(position.get("x"), position.get("y"))
    return _update_element(network, element_id, lambda el: replace(el, position=position))


def update_property(network: Network, element_id: str, key: str, value: Any) -> Network:
    """Set one entry of an element's properties."""
    return _update_element(
        network, element_id, lambda el: replace(el, properties={**el.properties, key: value})
    )
