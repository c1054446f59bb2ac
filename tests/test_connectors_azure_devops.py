"""
Tests for the Azure DevOps connector.

HTTP is served by httpx.MockTransport; no network access.
"""

import base64
import json

import httpx
import pytest

from boardsync.core.config.models import BoardsyncConfig
from boardsync.core.connectors import get_connector
from boardsync.core.connectors.azure_devops import (
    AzureDevOpsConnector,
    build_wiql,
    parse_tags,
)
from boardsync.core.connectors.http import RetryPolicy
from boardsync.core.sync.exceptions import AuthenticationError, ConnectorError
from boardsync.core.sync.models import Integration
from boardsync.core.tasks.models import RemoteSystem

BASE = "https://dev.azure.test"


def _work_item(item_id, title, state, **fields):
    return {
        "id": item_id,
        "rev": fields.pop("rev", 1),
        "fields": {
            "System.Title": title,
            "System.State": state,
            "System.WorkItemType": fields.pop("type", "Bug"),
            **fields,
        },
        "_links": {"html": {"href": f"{BASE}/fabrikam/Fabrikam/_workitems/edit/{item_id}"}},
    }


class FakeAzureDevOps:
    """Routes requests by method and path suffix to canned responses."""

    def __init__(self, routes):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for (method, suffix), handler in self.routes.items():
            if request.method == method and request.url.path.endswith(suffix):
                result = handler(request) if callable(handler) else handler
                if isinstance(result, httpx.Response):
                    return result
                return httpx.Response(200, json=result)
        return httpx.Response(404, json={"message": f"no route for {request.url.path}"})


@pytest.fixture
def make_connector():
    def _make(routes, batch_size=200):
        api = FakeAzureDevOps(routes)
        client = httpx.Client(transport=httpx.MockTransport(api))
        connector = AzureDevOpsConnector(
            organization="fabrikam",
            pat="secret-pat",
            base_url=BASE,
            batch_size=batch_size,
            retry=RetryPolicy(max_retries=0),
            client=client,
        )
        return connector, api

    return _make


@pytest.fixture
def ado_integration():
    return Integration(
        id="ado_abc",
        remote_system=RemoteSystem.AZURE_DEVOPS,
        remote_project_id="Fabrikam",
        remote_project_name="Fabrikam",
        local_board_id="b-1",
        type_filter=["Bug", "Task"],
    )


class TestWiql:
    def test_type_filter(self):
        assert build_wiql(["Bug", "Task"]) == (
            "SELECT [System.Id] FROM WorkItems "
            "WHERE [System.TeamProject] = @project "
            "AND ([System.WorkItemType] = 'Bug' OR [System.WorkItemType] = 'Task') "
            "ORDER BY [System.ChangedDate] DESC"
        )

    def test_no_filter_still_scoped_to_project(self):
        assert build_wiql(None) == (
            "SELECT [System.Id] FROM WorkItems WHERE [System.TeamProject] = @project "
            "ORDER BY [System.ChangedDate] DESC"
        )

    def test_quotes_escaped(self):
        assert "= 'Product''s Backlog Item'" in build_wiql(["Product's Backlog Item"])

    def test_parse_tags(self):
        assert parse_tags("frontend; urgent ;") == ["frontend", "urgent"]
        assert parse_tags(None) == []


# ==============================================================================
# fetch_items
# ==============================================================================


class TestFetchItems:
    """Test WIQL selection and batched retrieval."""

    def test_query_then_batches(self, make_connector, ado_integration):
        def workitems(request):
            ids = [int(i) for i in request.url.params["ids"].split(",")]
            return {"value": [_work_item(i, f"Item {i}", "Active") for i in ids]}

        connector, api = make_connector(
            {
                ("POST", "/_apis/wit/wiql"): {"workItems": [{"id": i} for i in range(1, 6)]},
                ("GET", "/_apis/wit/workitems"): workitems,
            },
            batch_size=2,
        )

        items = connector.fetch_items(ado_integration)

        assert [i.id for i in items] == ["1", "2", "3", "4", "5"]
        wiql_request, *batches = api.requests
        assert json.loads(wiql_request.content) == {"query": build_wiql(["Bug", "Task"])}
        assert wiql_request.url.path == "/fabrikam/Fabrikam/_apis/wit/wiql"
        assert wiql_request.url.params["api-version"] == "7.0"
        assert [b.url.params["ids"] for b in batches] == ["1,2", "3,4", "5"]
        assert batches[0].url.params["$expand"] == "all"

    def test_parses_fields(self, make_connector, ado_integration):
        item = _work_item(
            42,
            "Fix bug",
            "In Progress",
            rev=7,
            type="Task",
            **{
                "System.Description": "<p>Crash on save</p>",
                "System.AssignedTo": {"displayName": "Mona Kane", "uniqueName": "mona@fabrikam"},
                "Microsoft.VSTS.Common.Priority": 2,
                "System.Tags": "backend; crash",
            },
        )
        connector, _ = make_connector(
            {
                ("POST", "/_apis/wit/wiql"): {"workItems": [{"id": 42}]},
                ("GET", "/_apis/wit/workitems"): {"value": [item]},
            }
        )

        [parsed] = connector.fetch_items(ado_integration)

        assert parsed.id == "42"
        assert parsed.title == "Fix bug"
        assert parsed.status_field_value == "In Progress"
        assert parsed.type_or_kind == "Task"
        assert parsed.description == "<p>Crash on save</p>"
        assert parsed.assignees == ["Mona Kane"]
        assert parsed.priority_value == "2"
        assert parsed.revision == 7
        assert parsed.tags == ["backend", "crash"]
        assert parsed.url.endswith("/_workitems/edit/42")

    def test_custom_query(self, make_connector, ado_integration):
        query = "SELECT [System.Id] FROM WorkItems WHERE [System.AreaPath] UNDER 'Fabrikam\\Web'"
        connector, api = make_connector({("POST", "/_apis/wit/wiql"): {"workItems": []}})

        items = connector.fetch_items(ado_integration.model_copy(update={"remote_query": query}))

        assert items == []
        assert json.loads(api.requests[0].content) == {"query": query}
        assert len(api.requests) == 1

    def test_basic_auth_with_empty_user(self, make_connector, ado_integration):
        connector, api = make_connector({("POST", "/_apis/wit/wiql"): {"workItems": []}})

        connector.fetch_items(ado_integration)

        expected = base64.b64encode(b":secret-pat").decode()
        assert api.requests[0].headers["Authorization"] == f"Basic {expected}"


class TestErrors:
    def test_sign_in_page_is_auth_error(self, make_connector, ado_integration):
        connector, _ = make_connector(
            {("POST", "/_apis/wit/wiql"): httpx.Response(203, text="<html>Sign in</html>")}
        )
        with pytest.raises(AuthenticationError, match="Token expired or invalid"):
            connector.fetch_items(ado_integration)

    def test_non_json_response(self, make_connector, ado_integration):
        connector, _ = make_connector(
            {("POST", "/_apis/wit/wiql"): httpx.Response(200, text="<html>Maintenance</html>")}
        )
        with pytest.raises(ConnectorError, match="Invalid JSON response"):
            connector.fetch_items(ado_integration)

    def test_unauthorized(self, make_connector, ado_integration):
        connector, _ = make_connector({("POST", "/_apis/wit/wiql"): httpx.Response(401)})
        with pytest.raises(AuthenticationError):
            connector.fetch_items(ado_integration)

    def test_bad_query(self, make_connector, ado_integration):
        connector, _ = make_connector(
            {
                ("POST", "/_apis/wit/wiql"): httpx.Response(
                    400, json={"message": "TF51005: The query references a field that does not exist."}
                )
            }
        )
        with pytest.raises(ConnectorError, match="TF51005") as exc_info:
            connector.fetch_items(ado_integration)
        assert exc_info.value.status_code == 400


# ==============================================================================
# Projects and updates
# ==============================================================================


class TestProjects:
    def test_list_projects(self, make_connector):
        connector, _ = make_connector(
            {
                ("GET", "/_apis/projects"): {
                    "value": [{"id": "p-1", "name": "Fabrikam"}, {"id": "p-2", "name": "Web App"}]
                }
            }
        )

        projects = connector.list_projects()

        assert [p.name for p in projects] == ["Fabrikam", "Web App"]
        assert projects[1].url == f"{BASE}/fabrikam/Web%20App"
        assert projects[0].system == RemoteSystem.AZURE_DEVOPS

    def test_get_project_with_types_and_states(self, make_connector):
        connector, _ = make_connector(
            {
                ("GET", "/_apis/projects/Fabrikam"): {"id": "p-1", "name": "Fabrikam"},
                ("GET", "/workitemtypes/Bug/states"): {
                    "value": [
                        {"name": "New", "category": "Proposed"},
                        {"name": "Active", "category": "InProgress"},
                        {"name": "Closed", "category": "Completed"},
                    ]
                },
                ("GET", "/workitemtypes/Task/states"): {
                    "value": [{"name": "To Do", "category": "Proposed"}]
                },
                ("GET", "/_apis/wit/workitemtypes"): {"value": [{"name": "Bug"}, {"name": "Task"}]},
            }
        )

        project = connector.get_project("Fabrikam")

        assert project.id == "p-1"
        assert [t.name for t in project.item_types] == ["Bug", "Task"]
        bug = project.item_types[0]
        assert [(s.id, s.name, s.category) for s in bug.states] == [
            ("New", "New", "Proposed"),
            ("Active", "Active", "InProgress"),
            ("Closed", "Closed", "Completed"),
        ]

    def test_update_field_sends_json_patch(self, make_connector):
        connector, api = make_connector(
            {("PATCH", "/_apis/wit/workitems/42"): {"id": 42, "rev": 8}}
        )

        connector.update_field("Fabrikam", "42", "System.State", "Resolved")

        request = api.requests[0]
        assert request.headers["Content-Type"] == "application/json-patch+json"
        assert json.loads(request.content) == [
            {"op": "add", "path": "/fields/System.State", "value": "Resolved"}
        ]
        assert request.url.params["api-version"] == "7.0"


class TestFromConfig:
    def test_requires_organization(self, monkeypatch):
        monkeypatch.setenv("AZURE_DEVOPS_PAT", "pat")
        with pytest.raises(ConnectorError, match="organization not set"):
            get_connector(RemoteSystem.AZURE_DEVOPS, BoardsyncConfig())

    def test_requires_pat(self, monkeypatch):
        monkeypatch.delenv("AZURE_DEVOPS_PAT", raising=False)
        config = BoardsyncConfig(azure_devops="fabrikam")
        with pytest.raises(AuthenticationError, match="AZURE_DEVOPS_PAT"):
            get_connector(RemoteSystem.AZURE_DEVOPS, config)

    def test_builds_connector(self, monkeypatch):
        monkeypatch.setenv("AZURE_DEVOPS_PAT", "pat")
        config = BoardsyncConfig(azure_devops={"organization": "fabrikam", "batch_size": 50})

        connector = get_connector(RemoteSystem.AZURE_DEVOPS, config)

        assert isinstance(connector, AzureDevOpsConnector)
        assert connector.organization == "fabrikam"
        assert connector.batch_size == 50
        connector.close()
