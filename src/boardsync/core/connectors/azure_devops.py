"""
Azure DevOps Work Items connector.

Talks to the Azure DevOps REST API with a personal access token (basic
auth, empty user name). Items are selected with a WIQL query and then
fetched in batches; a work item's status value is its System.State name.
"""

import json
import logging
import os
from collections.abc import Iterator, Sequence
from typing import Any
from urllib.parse import quote

import httpx

from boardsync.core.config.models import BoardsyncConfig
from boardsync.core.connectors.base import register_connector
from boardsync.core.connectors.http import HttpConnector, RetryPolicy
from boardsync.core.sync.exceptions import AuthenticationError, ConnectorError
from boardsync.core.sync.models import (
    Integration,
    RemoteFieldOption,
    RemoteItem,
    RemoteItemType,
    RemoteProject,
)
from boardsync.core.tasks.models import RemoteSystem

logger = logging.getLogger(__name__)

STATE_FIELD = "System.State"
PRIORITY_FIELD = "Microsoft.VSTS.Common.Priority"


def _wiql_literal(value: str) -> str:
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


def build_wiql(type_filter: Sequence[str] | None) -> str:
    """
    Build the default WIQL query for a set of work item types.

    The query is limited to the project it is posted to (`@project`);
    WIQL otherwise matches work items across the whole organization.

    Example:
        >>> build_wiql(["Bug", "Task"])
        "SELECT [System.Id] FROM WorkItems WHERE [System.TeamProject] = @project AND ([System.WorkItemType] = 'Bug' OR [System.WorkItemType] = 'Task') ORDER BY [System.ChangedDate] DESC"
    """
    where = " WHERE [System.TeamProject] = @project"
    if type_filter:
        clauses = " OR ".join(f"[System.WorkItemType] = {_wiql_literal(t)}" for t in type_filter)
        where += f" AND ({clauses})"
    return f"SELECT [System.Id] FROM WorkItems{where} ORDER BY [System.ChangedDate] DESC"


def parse_tags(value: str | None) -> list[str]:
    """Split a System.Tags value ("a; b; c") into tags."""
    if not value:
        return []
    return [tag.strip() for tag in value.split(";") if tag.strip()]


def _chunks(ids: Sequence[int], size: int) -> Iterator[Sequence[int]]:
    for start in range(0, len(ids), size):
        yield ids[start : start + size]


def _identity_name(value: Any) -> str | None:
    if isinstance(value, dict):
        return value.get("displayName") or value.get("uniqueName")
    if isinstance(value, str) and value:
        return value
    return None


def _parse_work_item(data: dict[str, Any]) -> RemoteItem:
    fields = data.get("fields") or {}
    priority = fields.get(PRIORITY_FIELD)
    assignee = _identity_name(fields.get("System.AssignedTo"))
    html = ((data.get("_links") or {}).get("html") or {}).get("href")

    return RemoteItem(
        id=str(data["id"]),
        title=fields.get("System.Title") or "",
        description=fields.get("System.Description"),
        status_field_value=fields.get(STATE_FIELD),
        status_label=fields.get(STATE_FIELD),
        type_or_kind=fields.get("System.WorkItemType"),
        url=html,
        assignees=[assignee] if assignee else [],
        revision=data.get("rev"),
        priority_value=str(priority) if priority is not None else None,
        tags=parse_tags(fields.get("System.Tags")),
    )


@register_connector(RemoteSystem.AZURE_DEVOPS)
class AzureDevOpsConnector(HttpConnector):
    """
    Connector for Azure DevOps work items over REST.

    Project ids may be project GUIDs or names; both are accepted in
    Azure DevOps URLs.
    """

    system = RemoteSystem.AZURE_DEVOPS

    def __init__(
        self,
        organization: str,
        pat: str,
        base_url: str = "https://dev.azure.com",
        api_version: str = "7.0",
        batch_size: int = 200,
        timeout: float = 30.0,
        retry: RetryPolicy | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        """
        Initialize the connector.

        Args:
            organization: Azure DevOps organization name
            pat: Personal access token (Work Items read & write)
            base_url: Service root URL
            api_version: REST api-version parameter
            batch_size: Work items per batch request (at most 200)
            timeout: Request timeout in seconds
            retry: Retry policy for transient failures
            client: Pre-built httpx client (tests inject a MockTransport)
        """
        if client is None:
            client = httpx.Client(timeout=timeout)
        # Basic auth with an empty user name
        client.auth = httpx.BasicAuth("", pat)
        super().__init__(client, retry)
        self.organization = organization
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self.batch_size = batch_size

    @classmethod
    def from_config(cls, config: BoardsyncConfig) -> "AzureDevOpsConnector":
        """Build a connector from configuration and the PAT env variable."""
        settings = config.azure_devops
        if not settings.organization:
            raise ConnectorError(
                RemoteSystem.AZURE_DEVOPS.value,
                "Azure DevOps organization not set (azure_devops.organization or BOARDSYNC_ADO_ORG)",
            )
        pat = os.environ.get(settings.pat_env)
        if not pat:
            raise AuthenticationError(
                RemoteSystem.AZURE_DEVOPS.value,
                f"Azure DevOps PAT not found (set {settings.pat_env})",
            )
        return cls(
            organization=settings.organization,
            pat=pat,
            base_url=settings.base_url,
            api_version=settings.api_version,
            batch_size=settings.batch_size,
            timeout=settings.timeout,
            retry=RetryPolicy.from_config(config.retry),
        )

    def _url(self, *parts: str) -> str:
        path = "/".join(quote(p, safe="") for p in parts)
        return f"{self.base_url}/{quote(self.organization, safe='')}/{path}"

    def _params(self, **extra: str) -> dict[str, str]:
        return {"api-version": self.api_version, **extra}

    def raise_for_response(self, response: httpx.Response) -> None:
        # A 203 carries the HTML sign-in page instead of JSON
        if response.status_code == 203:
            raise AuthenticationError(
                self.system_name, "Token expired or invalid", status_code=203
            )
        super().raise_for_response(response)

    def _project_url(self, project_name: str) -> str:
        return f"{self.base_url}/{quote(self.organization, safe='')}/{quote(project_name)}"

    # ------------------------------------------------------------------
    # RemoteConnector
    # ------------------------------------------------------------------

    def list_projects(self) -> list[RemoteProject]:
        response = self.request("GET", self._url("_apis", "projects"), params=self._params())
        return [
            RemoteProject(
                id=p["id"],
                name=p["name"],
                system=RemoteSystem.AZURE_DEVOPS,
                url=self._project_url(p["name"]),
            )
            for p in self.parse_json(response).get("value", [])
        ]

    def get_project(self, project_id: str) -> RemoteProject:
        response = self.request(
            "GET", self._url("_apis", "projects", project_id), params=self._params()
        )
        data = self.parse_json(response)
        return RemoteProject(
            id=data["id"],
            name=data["name"],
            system=RemoteSystem.AZURE_DEVOPS,
            url=self._project_url(data["name"]),
            item_types=self.get_work_item_types(project_id),
        )

    def get_work_item_types(self, project_id: str) -> list[RemoteItemType]:
        """Work item types of a project, each with its states and state categories."""
        response = self.request(
            "GET",
            self._url(project_id, "_apis", "wit", "workitemtypes"),
            params=self._params(),
        )

        item_types = []
        for wit in self.parse_json(response).get("value", []):
            states = self.parse_json(
                self.request(
                    "GET",
                    self._url(project_id, "_apis", "wit", "workitemtypes", wit["name"], "states"),
                    params=self._params(),
                )
            )
            item_types.append(
                RemoteItemType(
                    name=wit["name"],
                    states=[
                        RemoteFieldOption(id=s["name"], name=s["name"], category=s.get("category"))
                        for s in states.get("value", [])
                    ],
                )
            )
        return item_types

    def fetch_items(self, integration: Integration) -> list[RemoteItem]:
        project = integration.remote_project_id
        wiql = integration.remote_query or build_wiql(integration.type_filter)

        response = self.request(
            "POST",
            self._url(project, "_apis", "wit", "wiql"),
            params=self._params(),
            json={"query": wiql},
        )
        ids = [wi["id"] for wi in self.parse_json(response).get("workItems") or []]
        if not ids:
            return []

        items: list[RemoteItem] = []
        for chunk in _chunks(ids, self.batch_size):
            response = self.request(
                "GET",
                self._url(project, "_apis", "wit", "workitems"),
                params=self._params(ids=",".join(str(i) for i in chunk), **{"$expand": "all"}),
            )
            batch = self.parse_json(response).get("value", [])
            items.extend(_parse_work_item(wi) for wi in batch)

        logger.debug("Fetched %d work items from Azure DevOps project %s", len(items), project)
        return items

    def update_field(
        self,
        remote_project_id: str,
        remote_item_id: str,
        field_id: str,
        new_value: str,
    ) -> None:
        patch = [{"op": "add", "path": f"/fields/{field_id}", "value": new_value}]
        self.request(
            "PATCH",
            self._url(remote_project_id, "_apis", "wit", "workitems", remote_item_id),
            params=self._params(),
            content=json.dumps(patch),
            headers={"Content-Type": "application/json-patch+json"},
        )
        logger.debug("Set %s on work item %s to %s", field_id, remote_item_id, new_value)
