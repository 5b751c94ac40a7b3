"""Graph descriptions for visualization tools.

Nodes are identified by their display labels, never by offsets. Every edge
reads dependent -> dependency, the reverse of the stored graph, so the
synthetic root points at the natural roots it lists as dependencies.
"""

import re
from collections.abc import Iterator

import structlog

from leveldag.errors import ExportError
from leveldag.graph.model import GraphSnapshot, SyntheticRoot

logger = structlog.get_logger(__name__)

SUPPORTED_FORMATS = ("dot", "mermaid")

_DOT_IDENTIFIER = re.compile(r"^[a-zA-Z\x80-\xff_][a-zA-Z\x80-\xff_0-9]*$")
_DOT_NUMERAL = re.compile(r"^-?(\.[0-9]+|[0-9]+(\.[0-9]*)?)$")
_DOT_QUOTED = re.compile(r'^"(?:[^"\\]|\\.)*"$', re.DOTALL)
_DOT_KEYWORDS = {"node", "edge", "graph", "digraph", "subgraph", "strict"}
_MERMAID_UNSAFE = re.compile(r"[^a-zA-Z0-9_]")


def dot_id(value: str) -> str:
    """Return ``value`` as a DOT ID, quoting it unless it is already valid.

    Plain identifiers, numerals, well-formed quoted strings and HTML strings
    pass through unchanged; anything else is wrapped in double quotes with
    inner quotes escaped. DOT keywords are always quoted.
    """
    if value.lower() in _DOT_KEYWORDS:
        return f'"{value}"'
    if _DOT_IDENTIFIER.match(value) or _DOT_NUMERAL.match(value):
        return value
    if _DOT_QUOTED.match(value):
        return value
    if len(value) > 1 and value[0] == "<" and value[-1] == ">":
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _dependency_edges(snapshot: GraphSnapshot) -> Iterator[tuple[int, int]]:
    """Yield ``(dependent, dependency)`` offset pairs."""
    for source, target in snapshot.graph.edges():
        if isinstance(snapshot.object_at(source), SyntheticRoot):
            yield source, target
        else:
            yield target, source


def _labels(snapshot: GraphSnapshot) -> dict[int, str]:
    labels: dict[int, str] = {}
    seen: dict[str, int] = {}
    for node in snapshot.graph.nodes():
        label = snapshot.graph.label(node)
        if not isinstance(label, str) or not label:
            msg = f"node {snapshot.names[node]} has no usable label: {label!r}"
            raise ExportError(msg)
        if label in seen:
            msg = (
                f"duplicate label {label!r} on {snapshot.names[seen[label]]} "
                f"and {snapshot.names[node]}"
            )
            raise ExportError(msg)
        seen[label] = node
        labels[node] = label
    return labels


def _to_dot(snapshot: GraphSnapshot, name: str, indent: str) -> str:
    labels = _labels(snapshot)
    header = f"strict digraph {dot_id(name)} {{" if name else "strict digraph {"
    lines = [header]

    if labels:
        lines.append(f"{indent}// Node definitions.")
        lines.extend(f"{indent}{dot_id(label)};" for label in labels.values())

    edges = list(_dependency_edges(snapshot))
    if edges:
        lines.append("")
        lines.append(f"{indent}// Edge definitions.")
        lines.extend(
            f"{indent}{dot_id(labels[dependent])} -> {dot_id(labels[dependency])};"
            for dependent, dependency in edges
        )

    lines.append("}")
    return "\n".join(lines)


def _to_mermaid(snapshot: GraphSnapshot, name: str, indent: str) -> str:
    labels = _labels(snapshot)
    ids: dict[int, str] = {}
    used: set[str] = set()
    for node, label in labels.items():
        candidate = _MERMAID_UNSAFE.sub("_", label)
        if candidate in used:
            candidate = f"{candidate}_{node}"
        used.add(candidate)
        ids[node] = candidate

    lines = []
    if name:
        lines.extend(["---", f"title: {name}", "---"])
    lines.append("graph TD")
    for node, label in labels.items():
        text = label.replace('"', "#quot;")
        lines.append(f'{indent}{ids[node]}["{text}"]')
    lines.extend(
        f"{indent}{ids[dependent]} --> {ids[dependency]}"
        for dependent, dependency in _dependency_edges(snapshot)
    )
    return "\n".join(lines)


def describe(
    snapshot: GraphSnapshot,
    name: str,
    output_format: str = "dot",
    indent: str = "    ",
) -> bytes:
    """Serialize ``snapshot`` as a graph description.

    Args:
        snapshot: Built graph snapshot
        name: Graph name placed in the output header
        output_format: ``"dot"`` (Graphviz) or ``"mermaid"``, case-insensitive
        indent: Indentation placed before each statement

    Returns:
        UTF-8 encoded description

    Raises:
        ExportError: If the format is unknown or a label can't be serialized
    """
    output_format = output_format.lower().strip()

    if output_format == "dot":
        text = _to_dot(snapshot, name, indent)
    elif output_format == "mermaid":
        text = _to_mermaid(snapshot, name, indent)
    else:
        msg = f"Unsupported format: {output_format}. Use 'dot' or 'mermaid'."
        raise ExportError(msg)

    try:
        data = text.encode("utf-8")
    except UnicodeEncodeError as e:
        msg = f"error marshaling graph to {output_format}: {e}"
        raise ExportError(msg) from e

    logger.debug(
        "graph_described",
        graph_name=name,
        output_format=output_format,
        size_bytes=len(data),
    )
    return data
