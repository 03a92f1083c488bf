"""Plan and workflow schemas, conversion and normalization."""

from weaver.schema.converter import plan_from_payload, plan_to_loom
from weaver.schema.normalizer import (
    NormalizationResult,
    SchemaError,
    normalize_workflow,
    require_valid_workflow,
)
from weaver.schema.plan import CredentialRequirement, Plan, WorkflowDraft
from weaver.schema.workflow import (
    ConnectionItem,
    NodeConnections,
    WorkflowDefinition,
    WorkflowNode,
)

__all__ = [
    "ConnectionItem",
    "CredentialRequirement",
    "NodeConnections",
    "NormalizationResult",
    "Plan",
    "SchemaError",
    "WorkflowDefinition",
    "WorkflowDraft",
    "WorkflowNode",
    "normalize_workflow",
    "plan_from_payload",
    "plan_to_loom",
    "require_valid_workflow",
]
