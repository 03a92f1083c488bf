"""Workflow normalizer.

Turns an untrusted candidate workflow into a ``WorkflowDefinition`` or a
list of field-level errors. Defaulting and coercion never produce
errors; only problems that cannot be defaulted do:

- empty or missing workflow name
- zero nodes
- duplicate node names
- a connection that names a node not in ``nodes``
- a connection port other than ``main``

Errors are deduplicated to one per field and ordered by significance
(workflow > name > active > nodes > connections > settings) so the first
error is the one most worth fixing.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from weaver.exceptions import NormalizationError
from weaver.schema.workflow import (
    NodeConnections,
    WorkflowDefinition,
    clean_connection_keys,
)

logger = logging.getLogger(__name__)

FIELD_ORDER = ("workflow", "name", "active", "nodes", "connections", "settings")

# pydantic appends the union member to locations for ``int | float`` fields
_UNION_LOC_PARTS = frozenset({"int", "float"})


class SchemaError(BaseModel):
    """A single normalization error.

    Attributes:
        field: Path of the offending field (e.g., "nodes[0].name").
        message: Human-readable error description.
        fix: Suggested correction, phrased for a model or a user.
    """

    field: str
    message: str
    fix: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message} (fix: {self.fix})"


class NormalizationResult(BaseModel):
    """Result of normalizing a candidate workflow."""

    valid: bool
    workflow: WorkflowDefinition | None = None
    errors: list[SchemaError] = Field(default_factory=list)


def field_path(loc: tuple[Any, ...]) -> str:
    """Render a pydantic error location as ``nodes[0].name``."""
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        elif part in _UNION_LOC_PARTS:
            continue
        else:
            path = f"{path}.{part}" if path else str(part)
    return path or "workflow"


def _top_level(field: str) -> str:
    return field.split(".", 1)[0].split("[", 1)[0]


def _rank(error: SchemaError) -> int:
    top = _top_level(error.field)
    return FIELD_ORDER.index(top) if top in FIELD_ORDER else len(FIELD_ORDER)


def _message(field: str, kind: str, msg: str) -> str:
    if field == "name" and kind in ("missing", "string_too_short", "string_type"):
        return "Workflow name is required"
    if field == "name" and kind == "string_too_long":
        return "Workflow name must be 128 characters or fewer"
    if field == "nodes" and kind in ("missing", "too_short"):
        return "Workflow must contain at least one node"
    if field == "workflow" and kind in ("model_type", "model_attributes_type", "dict_type"):
        return "Workflow definition must be a mapping"
    if kind == "extra_forbidden" and _top_level(field) == "connections":
        port = field.rsplit(".", 1)[-1]
        return f"Unsupported connection port '{port}'; only 'main' outputs can be connected"
    return msg.removeprefix("Value error, ")


def suggest_fix(field: str, kind: str = "") -> str:
    """Suggest a correction for an error on ``field``."""
    top = _top_level(field)
    if field == "workflow":
        return "Provide the workflow as key/value pairs with name, nodes and connections"
    if field == "name":
        if kind == "string_too_long":
            return "Shorten the workflow name to 128 characters or fewer"
        return 'Add "name: Workflow Title" to the workflow definition'
    if field == "active":
        return "Use true or false"
    if field == "nodes":
        if kind in ("missing", "too_short"):
            return "Workflow must contain at least one node, usually a trigger"
        if kind == "duplicate_name":
            return "Ensure all node names are unique within the workflow"
        return "Provide nodes as a list of node definitions"
    if top == "nodes":
        if field.endswith(".name"):
            return "Give every node a non-empty, unique name"
        if field.endswith(".type"):
            return 'Use a full node type such as "n8n-nodes-base.httpRequest"'
        if field.endswith(".typeVersion"):
            return "Use a positive number such as 1"
        if ".parameters" in field:
            return "Use a key/value mapping for parameters, or omit it"
        if ".credentials" in field:
            return "Map each credential type to {id, name}"
        return "Check the node definition against the node type's documentation"
    if top == "connections":
        if kind == "extra_forbidden":
            return "Connect the nodes through main outputs (Source: {main: [[{node: Target}]]}) or remove this port"
        if field.endswith(".node") or kind == "unknown_node":
            return "Ensure target node name matches a node in the workflow"
        if kind == "unknown_source":
            return "Ensure source node name matches a node in the workflow"
        return "Use format: connections: {Source: {main: [[{node: Target, type: main, index: 0}]]}}"
    if top == "settings":
        return "Use a key/value mapping for settings, or omit it"
    return "Check the value of this field"


def _error(field: str, message: str, kind: str = "") -> SchemaError:
    return SchemaError(field=field, message=message, fix=suggest_fix(field, kind))


def _from_pydantic(exc: PydanticValidationError) -> list[SchemaError]:
    errors = []
    for detail in exc.errors():
        field = field_path(tuple(detail["loc"]))
        errors.append(_error(field, _message(field, detail["type"], detail["msg"]), detail["type"]))
    return errors


def check_references(workflow: WorkflowDefinition) -> list[SchemaError]:
    """Check node-name uniqueness and connection referential integrity."""
    return _reference_errors(workflow.node_names, workflow.connections)


def _reference_errors(names: list[str], connections: Mapping[str, NodeConnections]) -> list[SchemaError]:
    errors: list[SchemaError] = []

    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        errors.append(
            _error("nodes", f"Duplicate node names: {', '.join(duplicates)}", "duplicate_name")
        )

    known = set(names)
    for source, outputs in connections.items():
        if source not in known:
            errors.append(
                _error(
                    f"connections.{source}",
                    f"Connection source '{source}' is not a node in this workflow",
                    "unknown_source",
                )
            )
        for port_index, port in enumerate(outputs.main):
            for item_index, item in enumerate(port):
                if item.node not in known:
                    errors.append(
                        _error(
                            f"connections.{source}.main[{port_index}][{item_index}].node",
                            f"Connection target '{item.node}' is not a node in this workflow",
                            "unknown_node",
                        )
                    )
    return errors


def _partial_references(data: Mapping[str, Any]) -> list[SchemaError]:
    """Reference checks for a candidate that failed model validation.

    Node names are read as given; connection entries that do not
    validate on their own are skipped (their errors are already reported).
    """
    nodes = data.get("nodes")
    if not isinstance(nodes, list):
        return []
    names = []
    for node in nodes:
        name = node.get("name") if isinstance(node, Mapping) else None
        if isinstance(name, int | float) and not isinstance(name, bool):
            name = str(name)
        if isinstance(name, str) and name:
            names.append(name)
    if not names:
        return []

    raw_connections = clean_connection_keys(data.get("connections"))
    connections: dict[str, NodeConnections] = {}
    if isinstance(raw_connections, Mapping):
        for source, outputs in raw_connections.items():
            try:
                connections[source] = NodeConnections.model_validate(outputs)
            except PydanticValidationError:
                continue
    return _reference_errors(names, connections)


def order_errors(errors: list[SchemaError]) -> list[SchemaError]:
    """Keep the first error per field and sort by significance."""
    unique: dict[str, SchemaError] = {}
    for error in errors:
        unique.setdefault(error.field, error)
    return sorted(unique.values(), key=_rank)


def _as_candidate(candidate: Any) -> Any:
    if isinstance(candidate, WorkflowDefinition):
        return candidate.to_api_payload()
    if isinstance(candidate, BaseModel):
        return candidate.model_dump(mode="json", by_alias=True, exclude_none=True)
    return candidate


def normalize_workflow(candidate: Any) -> NormalizationResult:
    """Normalize a candidate workflow.

    Args:
        candidate: A mapping, a ``WorkflowDraft`` or a ``WorkflowDefinition``

    Returns:
        NormalizationResult with ``workflow`` set when valid, otherwise
        the ordered field-level errors.
    """
    data = _as_candidate(candidate)
    if not isinstance(data, Mapping):
        return NormalizationResult(
            valid=False,
            errors=[_error("workflow", "Workflow definition must be a mapping")],
        )

    try:
        workflow = WorkflowDefinition.model_validate(dict(data))
    except PydanticValidationError as e:
        errors = order_errors([*_from_pydantic(e), *_partial_references(data)])
        logger.debug("Workflow normalization failed with %d error(s)", len(errors))
        return NormalizationResult(valid=False, errors=errors)

    reference_errors = check_references(workflow)
    if reference_errors:
        return NormalizationResult(valid=False, errors=order_errors(reference_errors))

    return NormalizationResult(valid=True, workflow=workflow)


def format_errors(errors: list[SchemaError]) -> str:
    """Render errors as one line each, for models and terminals."""
    return "\n".join(f"- {error}" for error in errors)


def require_valid_workflow(candidate: Any, *, stage: str = "normalization") -> WorkflowDefinition:
    """Normalize a candidate workflow or raise.

    Raises:
        NormalizationError: With the ordered field-level errors
    """
    result = normalize_workflow(candidate)
    if result.valid and result.workflow is not None:
        return result.workflow

    first = result.errors[0] if result.errors else None
    raise NormalizationError(
        "Workflow failed validation:\n" + format_errors(result.errors),
        errors=result.errors,
        stage=stage,
        context=first.field if first else None,
        snippet=json.dumps(_as_candidate(candidate), default=str),
    )
