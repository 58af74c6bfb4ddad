"""
Export LD networks to DOT and GraphML.

Elements become nodes and connections become edges labelled ``port->port``.
When element outputs from a simulation cycle are given, nodes are coloured by
whether their output is active.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union
from xml.sax.saxutils import escape

from .models import Element, Network

logger = logging.getLogger(__name__)

ACTIVE_COLOR = "palegreen"
INACTIVE_COLOR = "lightgrey"
DEFAULT_COLOR = "lightblue"


def element_label(element: Element) -> str:
    """Type plus the variable, preset or operand the element carries."""
    label = element.element_type.value
    for key in ("variable", "preset", "operand"):
        value = element.properties.get(key)
        if value is not None:
            label += f" {value}"
            break
    return label


def _dot_quote(text: str) -> str:
    return text.replace('\\', '\\\\').replace('"', '\\"')


class GraphExporter:
    """Export LD networks to DOT and GraphML formats."""

    def __init__(self, outputs: Optional[Dict[str, Any]] = None):
        self.outputs = outputs

    def _state(self, element: Element) -> str:
        if self.outputs is None or element.id not in self.outputs:
            return "unknown"
        return "active" if self.outputs[element.id] else "inactive"

    def _color(self, element: Element) -> str:
        return {"active": ACTIVE_COLOR, "inactive": INACTIVE_COLOR}.get(self._state(element), DEFAULT_COLOR)

    def export_network_to_dot(self, network: Network, output_path: Union[str, Path]) -> str:
        """Export a network to DOT format."""
        dot_content = []
        dot_content.append("digraph LD {")
        dot_content.append("  rankdir=LR;")
        dot_content.append("  node [shape=box, style=filled];")
        dot_content.append(f"  label=\"{_dot_quote(network.id)}\";")
        dot_content.append("")

        for element in network.elements:
            label = _dot_quote(element_label(element))
            dot_content.append(
                f"  \"{element.id}\" [label=\"{label}\", fillcolor=\"{self._color(element)}\"];"
            )

        dot_content.append("")
        for conn in network.connections:
            dot_content.append(
                f"  \"{conn.source.element}\" -> \"{conn.target.element}\" "
                f"[label=\"{conn.source.port}->{conn.target.port}\"];"
            )
        dot_content.append("}")

        with open(output_path, 'w') as f:
            f.write('\n'.join(dot_content))

        return '\n'.join(dot_content)

    def export_network_to_graphml(self, network: Network, output_path: Union[str, Path]) -> str:
        """Export a network to GraphML format."""
        graphml_content = []
        graphml_content.append('<?xml version="1.0" encoding="UTF-8"?>')
        graphml_content.append('<graphml xmlns="http://graphml.graphdrawing.org/xmlns"')
        graphml_content.append('         xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"')
        graphml_content.append('         xsi:schemaLocation="http://graphml.graphdrawing.org/xmlns')
        graphml_content.append('         http://graphml.graphdrawing.org/xmlns/1.0/graphml.xsd">')
        graphml_content.append('')

        graphml_content.append('  <key id="label" for="node" attr.name="label" attr.type="string"/>')
        graphml_content.append('  <key id="type" for="node" attr.name="type" attr.type="string"/>')
        graphml_content.append('  <key id="state" for="node" attr.name="state" attr.type="string"/>')
        graphml_content.append('  <key id="ports" for="edge" attr.name="ports" attr.type="string"/>')
        graphml_content.append('')

        graphml_content.append(f'  <graph id="{escape(network.id)}" edgedefault="directed">')
        for element in network.elements:
            graphml_content.append(f'    <node id="{escape(element.id)}">')
            graphml_content.append(f'      <data key="label">{escape(element_label(element))}</data>')
            graphml_content.append(f'      <data key="type">{element.element_type.value}</data>')
            graphml_content.append(f'      <data key="state">{self._state(element)}</data>')
            graphml_content.append('    </node>')

        for edge_id, conn in enumerate(network.connections):
            graphml_content.append(
                f'    <edge id="e{edge_id}" source="{escape(conn.source.element)}" '
                f'target="{escape(conn.target.element)}">'
            )
            graphml_content.append(
                f'      <data key="ports">{escape(conn.source.port)}-&gt;{escape(conn.target.port)}</data>'
            )
            graphml_content.append('    </edge>')

        graphml_content.append('  </graph>')
        graphml_content.append('</graphml>')

        with open(output_path, 'w') as f:
            f.write('\n'.join(graphml_content))

        return '\n'.join(graphml_content)


def export_network(network: Network, output_path: Union[str, Path], outputs: Optional[Dict[str, Any]] = None) -> str:
    """Export to GraphML for ``.graphml`` paths, DOT otherwise."""
    exporter = GraphExporter(outputs)
    if Path(output_path).suffix.lower() == '.graphml':
        content = exporter.export_network_to_graphml(network, output_path)
    else:
        content = exporter.export_network_to_dot(network, output_path)
    logger.info(f"Exported network {network.id} to {output_path}")
    return content
