"""Unit tests for the credential checker and execution tools."""

import json

import pytest

from tests.helpers.fake_platform import FakePlatformClient
from weaver.exceptions import ToolExecutionError
from weaver.schema import normalize_workflow
from weaver.tools.execution_tools import (
    CHECK_CREDENTIALS_TOOL,
    CREATE_WORKFLOW_TOOL,
    CredentialChecker,
    get_execution_tools,
)


def _checker(available=("httpHeaderAuth",)):
    client = FakePlatformClient()
    return CredentialChecker(available, client.credential_setup_url, names={"slackApi": "Slack account"})


def _workflow():
    return normalize_workflow(
        {
            "name": "Ping",
            "nodes": [{"name": "Start", "type": "n8n-nodes-base.manualTrigger"}],
        }
    ).workflow


class TestCredentialChecker:
    """CredentialChecker.check() and guidance()."""

    def test_check_splits_available_and_missing(self):
        checker = _checker()

        result = checker.check(["httpHeaderAuth", "slackApi", "slackApi", ""])

        assert result == {
            "available": ["httpHeaderAuth"],
            "missing": ["slackApi"],
            "setupLinks": [{"type": "slackApi", "url": "http://n8n.test/credentials/new/slackApi"}],
        }
        assert checker.checked == ["httpHeaderAuth", "slackApi"]

    def test_guidance_for_missing(self):
        guidance = _checker().guidance(["slackApi", "gmailOAuth2"])

        assert [(m.name, m.type) for m in guidance.missing] == [
            ("Slack account", "slackApi"),
            ("gmailOAuth2", "gmailOAuth2"),
        ]
        assert guidance.setup_links[0].url == "http://n8n.test/credentials/new/slackApi"

    def test_no_guidance_when_all_available(self):
        assert _checker().guidance(["httpHeaderAuth"]) is None
        assert _checker().guidance([]) is None


class TestExecutionTools:
    """check_credentials and create_workflow tools."""

    async def test_tool_names(self):
        tools = get_execution_tools(FakePlatformClient(), _workflow(), _checker())

        assert [t.name for t in tools] == [CHECK_CREDENTIALS_TOOL, CREATE_WORKFLOW_TOOL]

    async def test_check_credentials(self):
        checker = _checker()
        check, _ = get_execution_tools(FakePlatformClient(), _workflow(), checker)

        result = json.loads(await check.ainvoke({"credential_types": ["slackApi"]}))

        assert result["missing"] == ["slackApi"]
        assert checker.checked == ["slackApi"]

    async def test_create_workflow_submits_bound_definition(self):
        client = FakePlatformClient()
        workflow = _workflow()
        _, create = get_execution_tools(client, workflow, _checker())

        result = json.loads(await create.ainvoke({}))

        assert result == {"id": "wf1", "name": "Ping", "url": "http://n8n.test/workflow/wf1", "active": False}
        assert client.workflows["wf1"]["nodes"][0]["name"] == "Start"

    async def test_create_workflow_failure_is_tool_error(self):
        client = FakePlatformClient()
        client.fail_with = "invalid node type"
        _, create = get_execution_tools(client, _workflow(), _checker())

        with pytest.raises(ToolExecutionError, match="invalid node type"):
            await create.ainvoke({})

    async def test_create_workflow_posts_once_per_turn(self):
        client = FakePlatformClient()
        _, create = get_execution_tools(client, _workflow(), _checker())

        first = json.loads(await create.ainvoke({}))
        second = json.loads(await create.ainvoke({}))

        assert second == first
        assert list(client.workflows) == ["wf1"]

    async def test_create_workflow_retries_after_failure(self):
        client = FakePlatformClient()
        client.fail_with = "n8n unavailable"
        _, create = get_execution_tools(client, _workflow(), _checker())

        with pytest.raises(ToolExecutionError):
            await create.ainvoke({})
        client.fail_with = None
        result = json.loads(await create.ainvoke({}))

        assert result["id"] == "wf1"
        assert list(client.workflows) == ["wf1"]
