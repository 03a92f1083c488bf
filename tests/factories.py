"""Factory Boy factories for test data generation.

Plans are built as the camelCase payloads a model would write, so they
can be rendered to Loom for scripted model responses or fed straight to
the converter and normalizer.
"""

from typing import Any

import factory

from weaver import loom


class NodeFactory(factory.DictFactory):
    """Factory for workflow node payloads."""

    name = factory.Sequence(lambda n: f"Node {n}")
    type = "n8n-nodes-base.noOp"
    typeVersion = 1
    position = factory.Sequence(lambda n: [250 + 200 * n, 300])
    parameters = factory.LazyFunction(dict)


def chain(*names: str) -> dict[str, Any]:
    """Connections linking nodes one after another."""
    return {
        source: {"main": [[{"node": target, "type": "main", "index": 0}]]}
        for source, target in zip(names, names[1:], strict=False)
    }


class WorkflowFactory(factory.DictFactory):
    """Factory for workflow payloads."""

    name = "Test workflow"
    nodes = factory.LazyFunction(
        lambda: [NodeFactory(name="Start", type="n8n-nodes-base.manualTrigger")]
    )
    connections = factory.LazyFunction(dict)


class PlanPayloadFactory(factory.DictFactory):
    """Factory for plan payloads."""

    title = "Test workflow"
    summary = "A workflow for tests"
    credentialsNeeded = factory.LazyFunction(list)
    credentialsAvailable = factory.LazyFunction(list)
    workflow = factory.SubFactory(WorkflowFactory)


def poller_plan() -> dict[str, Any]:
    """Schedule -> HTTP request; needs no credentials."""
    return PlanPayloadFactory(
        title="Status poller",
        summary="Fetches the status endpoint every hour",
        workflow=WorkflowFactory(
            name="Status poller",
            nodes=[
                NodeFactory(name="Every hour", type="n8n-nodes-base.scheduleTrigger", typeVersion=1.2),
                NodeFactory(
                    name="Fetch status",
                    type="n8n-nodes-base.httpRequest",
                    typeVersion=4.2,
                    parameters={"url": "https://api.example.com/status"},
                ),
            ],
            connections=chain("Every hour", "Fetch status"),
        ),
    )


def slack_plan(target: str = "Post to Slack", title: str = "Webhook to Slack") -> dict[str, Any]:
    """Webhook -> Slack; needs a slackApi credential.

    Args:
        target: Connection target name (anything but "Post to Slack" is broken)
        title: Plan and workflow title
    """
    return PlanPayloadFactory(
        title=title,
        summary="Posts incoming webhook events to #alerts",
        credentialsNeeded=[{"type": "slackApi", "name": "Slack account", "requiredFor": "Post to Slack"}],
        workflow=WorkflowFactory(
            name=title,
            nodes=[
                NodeFactory(
                    name="Webhook",
                    type="n8n-nodes-base.webhook",
                    typeVersion=2,
                    parameters={"path": "alerts", "httpMethod": "POST"},
                ),
                NodeFactory(
                    name="Post to Slack",
                    type="n8n-nodes-base.slack",
                    typeVersion=2.2,
                    parameters={"channelId": "#alerts", "text": "={{ $json.body.message }}"},
                ),
            ],
            connections={"Webhook": {"main": [[{"node": target, "type": "main", "index": 0}]]}},
        ),
    )


def as_loom(payload: dict[str, Any]) -> str:
    """Render a payload as Loom text."""
    return loom.format(payload)
