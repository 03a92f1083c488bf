"""Built-in n8n node-type catalog.

n8n does not expose node type descriptions through its public API, so
the planner works from this curated list of common nodes. Each entry
carries the parameters a planner most often needs and the credential
types the node authenticates with.
"""

import difflib
from typing import Any

from pydantic import BaseModel, Field


class NodeProperty(BaseModel):
    """A configurable parameter of a node type."""

    name: str
    display_name: str
    type: str = "string"
    required: bool = False
    options: list[str] = Field(default_factory=list)
    default: Any = None


class NodeTypeInfo(BaseModel):
    """Description of one n8n node type."""

    name: str
    display_name: str
    description: str
    group: list[str]
    version: int | float = 1
    default_name: str
    inputs: list[str] = Field(default_factory=lambda: ["main"])
    outputs: list[str] = Field(default_factory=lambda: ["main"])
    properties: list[NodeProperty] = Field(default_factory=list)
    credentials: list[str] = Field(default_factory=list)

    def summary(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "displayName": self.display_name,
            "description": self.description,
            "group": self.group,
        }


def _prop(
    name: str,
    display_name: str,
    type: str = "string",
    *,
    required: bool = False,
    options: list[str] | None = None,
    default: Any = None,
) -> NodeProperty:
    return NodeProperty(
        name=name,
        display_name=display_name,
        type=type,
        required=required,
        options=options or [],
        default=default,
    )


def _node(
    name: str,
    display_name: str,
    description: str,
    group: str,
    *,
    version: int | float = 1,
    default_name: str | None = None,
    trigger: bool = False,
    outputs: list[str] | None = None,
    properties: list[NodeProperty] | None = None,
    credentials: list[str] | None = None,
) -> NodeTypeInfo:
    return NodeTypeInfo(
        name=name,
        display_name=display_name,
        description=description,
        group=[group],
        version=version,
        default_name=default_name or display_name,
        inputs=[] if trigger else ["main"],
        outputs=outputs or ["main"],
        properties=properties or [],
        credentials=credentials or [],
    )


_MESSAGE_RESOURCES = ["message", "channel", "user"]

NODE_TYPES: dict[str, NodeTypeInfo] = {
    node.name: node
    for node in [
        # Triggers
        _node(
            "n8n-nodes-base.manualTrigger",
            "Manual Trigger",
            "Runs the workflow on clicking a button in n8n",
            "trigger",
            default_name='When clicking "Test workflow"',
            trigger=True,
        ),
        _node(
            "n8n-nodes-base.scheduleTrigger",
            "Schedule Trigger",
            "Triggers the workflow on a fixed interval or cron schedule",
            "trigger",
            version=1.2,
            trigger=True,
            properties=[
                _prop("rule", "Rule", "json", required=True, default={}),
                _prop("cronExpression", "Cron Expression"),
            ],
        ),
        _node(
            "n8n-nodes-base.webhook",
            "Webhook",
            "Starts the workflow when an HTTP request is received",
            "trigger",
            version=2,
            trigger=True,
            properties=[
                _prop("path", "Path", required=True),
                _prop("httpMethod", "HTTP Method", "options", options=["GET", "POST", "PUT", "DELETE"]),
                _prop("responseMode", "Response Mode", "options", options=["onReceived", "lastNode"]),
            ],
        ),
        _node(
            "n8n-nodes-base.errorTrigger",
            "Error Trigger",
            "Triggers when another workflow fails",
            "trigger",
            trigger=True,
        ),
        # Core
        _node(
            "n8n-nodes-base.httpRequest",
            "HTTP Request",
            "Makes an HTTP request and returns the response data",
            "core",
            version=4.2,
            properties=[
                _prop("url", "URL", required=True),
                _prop("method", "Method", "options", options=["GET", "POST", "PUT", "PATCH", "DELETE"]),
                _prop("authentication", "Authentication", "options"),
                _prop("sendHeaders", "Send Headers", "boolean"),
                _prop("sendBody", "Send Body", "boolean"),
            ],
            credentials=["httpHeaderAuth", "httpBasicAuth"],
        ),
        _node(
            "n8n-nodes-base.code",
            "Code",
            "Runs custom JavaScript or Python code",
            "transform",
            version=2,
            properties=[
                _prop("language", "Language", "options", options=["javaScript", "python"]),
                _prop("jsCode", "JavaScript Code"),
                _prop("pythonCode", "Python Code"),
            ],
        ),
        _node(
            "n8n-nodes-base.set",
            "Edit Fields (Set)",
            "Adds, modifies or removes item fields",
            "transform",
            version=3.4,
            default_name="Edit Fields",
            properties=[
                _prop("mode", "Mode", "options", options=["manual", "raw"]),
                _prop("assignments", "Fields to Set", "fixedCollection"),
            ],
        ),
        _node(
            "n8n-nodes-base.merge",
            "Merge",
            "Merges data of multiple streams once data from both is available",
            "transform",
            version=3,
            properties=[_prop("mode", "Mode", "options", options=["append", "combine", "chooseBranch"])],
        ),
        _node(
            "n8n-nodes-base.splitInBatches",
            "Loop Over Items",
            "Splits data into batches and iterates over each batch",
            "transform",
            version=3,
            outputs=["main", "main"],
            properties=[_prop("batchSize", "Batch Size", "number", default=10)],
        ),
        _node(
            "n8n-nodes-base.aggregate",
            "Aggregate",
            "Combines a field from many items into a list in a single item",
            "transform",
            properties=[_prop("aggregate", "Aggregate", "options", options=["individualFields", "aggregateAllItemData"])],
        ),
        _node(
            "n8n-nodes-base.sort",
            "Sort",
            "Changes the order of items",
            "transform",
            properties=[_prop("sortFieldsUi", "Fields To Sort By", "fixedCollection")],
        ),
        _node(
            "n8n-nodes-base.limit",
            "Limit",
            "Restricts the number of items",
            "transform",
            properties=[_prop("maxItems", "Max Items", "number", default=1)],
        ),
        # Flow
        _node(
            "n8n-nodes-base.if",
            "If",
            "Routes items to different branches (true/false)",
            "flow",
            version=2,
            outputs=["main", "main"],
            properties=[_prop("conditions", "Conditions", "filter", required=True)],
        ),
        _node(
            "n8n-nodes-base.switch",
            "Switch",
            "Routes items depending on defined expression or rules",
            "flow",
            version=3,
            properties=[
                _prop("mode", "Mode", "options", options=["rules", "expression"]),
                _prop("rules", "Routing Rules", "fixedCollection"),
            ],
        ),
        _node(
            "n8n-nodes-base.filter",
            "Filter",
            "Removes items matching a condition",
            "flow",
            version=2,
            properties=[_prop("conditions", "Conditions", "filter", required=True)],
        ),
        _node(
            "n8n-nodes-base.wait",
            "Wait",
            "Waits before continuing with execution",
            "flow",
            version=1.1,
            properties=[
                _prop("resume", "Resume", "options", options=["timeInterval", "specificTime", "webhook"]),
                _prop("amount", "Amount", "number"),
                _prop("unit", "Unit", "options", options=["seconds", "minutes", "hours", "days"]),
            ],
        ),
        _node(
            "n8n-nodes-base.stopAndError",
            "Stop and Error",
            "Throws an error in the workflow",
            "flow",
            properties=[_prop("errorMessage", "Error Message")],
        ),
        _node(
            "n8n-nodes-base.noOp",
            "No Operation, do nothing",
            "Does nothing; useful as a placeholder branch",
            "flow",
            default_name="No Operation",
        ),
        # Communication
        _node(
            "n8n-nodes-base.slack",
            "Slack",
            "Sends messages and manages channels in Slack",
            "communication",
            version=2.2,
            properties=[
                _prop("resource", "Resource", "options", options=_MESSAGE_RESOURCES),
                _prop("operation", "Operation", "options", options=["post", "update", "delete"]),
                _prop("select", "Send Message To", "options", options=["channel", "user"]),
                _prop("channelId", "Channel", "resourceLocator"),
                _prop("text", "Message Text", required=True),
            ],
            credentials=["slackApi", "slackOAuth2Api"],
        ),
        _node(
            "n8n-nodes-base.gmail",
            "Gmail",
            "Sends and reads email through Gmail",
            "communication",
            version=2.1,
            properties=[
                _prop("resource", "Resource", "options", options=["message", "draft", "label"]),
                _prop("operation", "Operation", "options", options=["send", "get", "getAll", "reply"]),
                _prop("sendTo", "To", required=True),
                _prop("subject", "Subject"),
                _prop("message", "Message"),
            ],
            credentials=["gmailOAuth2"],
        ),
        _node(
            "n8n-nodes-base.emailSend",
            "Send Email",
            "Sends an email over SMTP",
            "communication",
            version=2.1,
            properties=[
                _prop("fromEmail", "From Email", required=True),
                _prop("toEmail", "To Email", required=True),
                _prop("subject", "Subject"),
                _prop("text", "Text"),
            ],
            credentials=["smtp"],
        ),
        _node(
            "n8n-nodes-base.discord",
            "Discord",
            "Sends messages to Discord channels",
            "communication",
            version=2,
            properties=[
                _prop("resource", "Resource", "options", options=["message", "channel", "member"]),
                _prop("operation", "Operation", "options"),
                _prop("content", "Content"),
            ],
            credentials=["discordBotApi", "discordWebhookApi"],
        ),
        _node(
            "n8n-nodes-base.telegram",
            "Telegram",
            "Sends messages through a Telegram bot",
            "communication",
            version=1.2,
            properties=[
                _prop("chatId", "Chat ID", required=True),
                _prop("text", "Text", required=True),
            ],
            credentials=["telegramApi"],
        ),
        # Productivity
        _node(
            "n8n-nodes-base.googleSheets",
            "Google Sheets",
            "Reads, appends and updates rows in Google Sheets",
            "productivity",
            version=4.5,
            properties=[
                _prop("operation", "Operation", "options", options=["append", "read", "update", "delete", "appendOrUpdate"]),
                _prop("documentId", "Document", "resourceLocator", required=True),
                _prop("sheetName", "Sheet", "resourceLocator", required=True),
            ],
            credentials=["googleSheetsOAuth2Api"],
        ),
        _node(
            "n8n-nodes-base.airtable",
            "Airtable",
            "Reads and writes Airtable records",
            "productivity",
            version=2.1,
            properties=[
                _prop("operation", "Operation", "options", options=["create", "update", "delete", "get", "search"]),
                _prop("base", "Base", "resourceLocator", required=True),
                _prop("table", "Table", "resourceLocator", required=True),
            ],
            credentials=["airtableTokenApi"],
        ),
        _node(
            "n8n-nodes-base.notion",
            "Notion",
            "Works with Notion databases, pages and blocks",
            "productivity",
            version=2.2,
            properties=[
                _prop("resource", "Resource", "options", options=["database", "databasePage", "page", "block"]),
                _prop("operation", "Operation", "options"),
            ],
            credentials=["notionApi"],
        ),
        _node(
            "n8n-nodes-base.github",
            "GitHub",
            "Works with GitHub issues, repositories and releases",
            "development",
            properties=[
                _prop("resource", "Resource", "options", options=["issue", "repository", "release", "file"]),
                _prop("operation", "Operation", "options"),
                _prop("owner", "Repository Owner", required=True),
                _prop("repository", "Repository Name", required=True),
            ],
            credentials=["githubApi", "githubOAuth2Api"],
        ),
    ]
}


def get_node_type(name: str) -> NodeTypeInfo | None:
    """Look up a node type by its full name (e.g., "n8n-nodes-base.slack")."""
    return NODE_TYPES.get(name)


def list_node_types(group: str | None = None, search: str | None = None) -> list[NodeTypeInfo]:
    """List catalog node types, optionally filtered.

    Args:
        group: Only node types in this group (e.g., "trigger", "communication")
        search: Case-insensitive substring of the name, display name or description

    Returns:
        Matching node types in catalog order
    """
    nodes = list(NODE_TYPES.values())
    if group:
        nodes = [n for n in nodes if group.lower() in n.group]
    if search:
        needle = search.lower()
        nodes = [
            n
            for n in nodes
            if needle in n.name.lower()
            or needle in n.display_name.lower()
            or needle in n.description.lower()
        ]
    return nodes


def is_trigger_node(name: str) -> bool:
    node = get_node_type(name)
    if node is not None:
        return "trigger" in node.group
    return name.lower().endswith("trigger") or name.endswith(".webhook")


def get_required_parameters(name: str) -> list[str]:
    node = get_node_type(name)
    if node is None:
        return []
    return [prop.name for prop in node.properties if prop.required]


def get_credential_types(name: str) -> list[str]:
    node = get_node_type(name)
    return list(node.credentials) if node else []


def suggest_node_types(name: str, limit: int = 3) -> list[str]:
    """Suggest catalog names close to an unknown node type name."""
    candidates = list(NODE_TYPES)
    matches = difflib.get_close_matches(name, candidates, n=limit, cutoff=0.5)
    if matches:
        return matches
    short = name.rsplit(".", 1)[-1].lower()
    by_short = {key.rsplit(".", 1)[-1].lower(): key for key in candidates}
    close = difflib.get_close_matches(short, list(by_short), n=limit, cutoff=0.5)
    return [by_short[match] for match in close]
