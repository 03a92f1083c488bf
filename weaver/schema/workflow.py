"""n8n workflow definition models.

These models accept the loose shapes language models tend to produce
and coerce them into the structure the n8n public API expects. Only
coercion lives here; cross-field rules (unique names, connection
targets) are checked by ``weaver.schema.normalizer``.
"""

from __future__ import annotations

import math
import re
import uuid
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MAX_WORKFLOW_NAME = 128


def new_node_id() -> str:
    return str(uuid.uuid4())


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def _to_number(value: Any) -> int | float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def coerce_position(value: Any) -> list[int | float]:
    """Coerce a position to ``[x, y]``, falling back to ``[0, 0]``."""
    if isinstance(value, str):
        value = [part for part in re.split(r"[,\s]+", value.strip("[]() ")) if part]
    elif isinstance(value, Mapping):
        value = [value.get("x"), value.get("y")]

    if not isinstance(value, list | tuple) or len(value) != 2:
        return [0, 0]

    pair: list[int | float] = []
    for item in value:
        number = _to_number(item)
        if number is None:
            return [0, 0]
        pair.append(number)
    return pair


def nest_ports(value: Any) -> Any:
    """Coerce an output-port value to a list of lists of connection items."""
    if value is None:
        return []
    if isinstance(value, str | Mapping):
        return [[value]]
    if isinstance(value, list):
        if not value:
            return []
        if all(not isinstance(item, list) for item in value):
            return [list(value)]
        return [item if isinstance(item, list) else [item] for item in value]
    return value


def clean_connection_keys(value: Any) -> Any:
    """Strip list markers a model left on connection source names."""
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return {re.sub(r"^-\s+", "", str(key)).strip(): ports for key, ports in value.items()}
    return value


class CredentialReference(BaseModel):
    """Reference from a node to a stored n8n credential."""

    id: str | None = None
    name: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _from_name(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"name": value}
        return value


class ConnectionItem(BaseModel):
    """One edge from an output port to a target node input."""

    node: str = Field(min_length=1)
    type: Literal["main"] = "main"
    index: int = Field(default=0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, value: Any) -> Any:
        if _is_number(value):
            value = str(value)
        if isinstance(value, str):
            return {"node": value}
        if isinstance(value, Mapping):
            data = dict(value)
            for key in ("index", "type"):
                if data.get(key) is None:
                    data.pop(key, None)
            if _is_number(data.get("node")):
                data["node"] = str(data["node"])
            return data
        return value


class NodeConnections(BaseModel):
    """Outputs of one source node: ports, each an ordered list of items."""

    model_config = ConfigDict(extra="forbid")

    main: list[list[ConnectionItem]] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, value: Any) -> Any:
        if isinstance(value, str | list):
            value = {"main": value}
        elif isinstance(value, Mapping) and "main" not in value and "node" in value:
            # A bare connection item given directly under the source name
            value = {"main": value}
        if isinstance(value, Mapping) and "main" in value:
            data = dict(value)
            data["main"] = nest_ports(data["main"])
            return data
        return value


class WorkflowNode(BaseModel):
    """A single node in an n8n workflow."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_node_id)
    name: str = Field(min_length=1)
    type: str = Field(min_length=1)
    type_version: int | float = Field(default=1, gt=0, alias="typeVersion")
    position: list[int | float] = Field(default_factory=lambda: [0, 0])
    parameters: dict[str, Any] = Field(default_factory=dict)
    credentials: dict[str, CredentialReference] | None = None
    webhook_id: str | None = Field(default=None, alias="webhookId")
    disabled: bool | None = None
    notes: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _ensure_id(cls, value: Any) -> Any:
        if isinstance(value, str) and _is_uuid(value):
            return value
        return new_node_id()

    @field_validator("name", mode="before")
    @classmethod
    def _name_to_text(cls, value: Any) -> Any:
        if _is_number(value):
            return str(value)
        return value

    @field_validator("type_version", mode="before")
    @classmethod
    def _coerce_type_version(cls, value: Any) -> Any:
        if value is None:
            return 1
        number = _to_number(value)
        if number is None:
            raise ValueError("typeVersion must be a positive number")
        return number

    @field_validator("position", mode="before")
    @classmethod
    def _coerce_position(cls, value: Any) -> Any:
        return coerce_position(value)

    @field_validator("parameters", mode="before")
    @classmethod
    def _default_parameters(cls, value: Any) -> Any:
        return {} if value is None else value


class WorkflowDefinition(BaseModel):
    """A normalized workflow ready for the n8n public API."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1, max_length=MAX_WORKFLOW_NAME)
    active: bool = False
    nodes: list[WorkflowNode] = Field(min_length=1)
    connections: dict[str, NodeConnections] = Field(default_factory=dict)
    settings: dict[str, Any] = Field(default_factory=dict)

    @field_validator("name", mode="before")
    @classmethod
    def _clean_name(cls, value: Any) -> Any:
        if _is_number(value):
            value = str(value)
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("active", mode="before")
    @classmethod
    def _default_active(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("settings", mode="before")
    @classmethod
    def _default_settings(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("connections", mode="before")
    @classmethod
    def _clean_connection_keys(cls, value: Any) -> Any:
        return clean_connection_keys(value)

    @model_validator(mode="after")
    def _unique_ids(self) -> WorkflowDefinition:
        seen: set[str] = set()
        for node in self.nodes:
            if node.id in seen:
                node.id = new_node_id()
            seen.add(node.id)
        return self

    @property
    def node_names(self) -> list[str]:
        return [node.name for node in self.nodes]

    def to_api_payload(self) -> dict[str, Any]:
        """Dump in the camelCase shape the n8n API accepts."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
