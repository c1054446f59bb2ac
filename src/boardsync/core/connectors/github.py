"""
GitHub Projects (v2) connector.

Talks to the GitHub GraphQL API with a personal access token. Project
items are paged by cursor; each item's status is the option id of the
single-select field the integration maps (usually "Status").
"""

import logging
import os
from typing import Any

import httpx

from boardsync.core.config.models import BoardsyncConfig
from boardsync.core.connectors.base import register_connector
from boardsync.core.connectors.http import HttpConnector, RetryPolicy, error_detail
from boardsync.core.sync.exceptions import (
    AuthenticationError,
    ConnectorError,
    PermissionDeniedError,
    RateLimitError,
)
from boardsync.core.sync.models import (
    Integration,
    RemoteField,
    RemoteFieldOption,
    RemoteItem,
    RemoteProject,
)
from boardsync.core.tasks.models import RemoteSystem

logger = logging.getLogger(__name__)

# Item content types a project can hold
CONTENT_TYPES = ("Issue", "PullRequest", "DraftIssue")

_PROJECT_FIELDS = """
    id
    title
    url
    closed
    fields(first: 20) {
      nodes {
        ... on ProjectV2SingleSelectField {
          id
          name
          options {
            id
            name
          }
        }
      }
    }
"""

VIEWER_PROJECTS_QUERY = (
    """
query GetViewerProjects {
  viewer {
    login
    projectsV2(first: 20, orderBy: {field: UPDATED_AT, direction: DESC}) {
      nodes {"""
    + _PROJECT_FIELDS
    + """      }
    }
    organizations(first: 20) {
      nodes {
        login
        projectsV2(first: 20, orderBy: {field: UPDATED_AT, direction: DESC}) {
          nodes {"""
    + _PROJECT_FIELDS
    + """          }
        }
      }
    }
  }
}
"""
)

PROJECT_QUERY = (
    """
query GetProject($projectId: ID!) {
  node(id: $projectId) {
    ... on ProjectV2 {"""
    + _PROJECT_FIELDS
    + """    }
  }
}
"""
)

PROJECT_ITEMS_QUERY = """
query GetProjectItems($projectId: ID!, $first: Int!, $cursor: String) {
  node(id: $projectId) {
    ... on ProjectV2 {
      items(first: $first, after: $cursor) {
        pageInfo {
          hasNextPage
          endCursor
        }
        nodes {
          id
          fieldValues(first: 20) {
            nodes {
              ... on ProjectV2ItemFieldSingleSelectValue {
                field {
                  ... on ProjectV2SingleSelectField {
                    id
                    name
                  }
                }
                name
                optionId
              }
            }
          }
          content {
            __typename
            ... on Issue {
              title
              body
              url
              assignees(first: 10) { nodes { login } }
              labels(first: 20) { nodes { name } }
            }
            ... on PullRequest {
              title
              body
              url
              assignees(first: 10) { nodes { login } }
              labels(first: 20) { nodes { name } }
            }
            ... on DraftIssue {
              title
              body
            }
          }
        }
      }
    }
  }
}
"""

UPDATE_ITEM_FIELD_MUTATION = """
mutation UpdateProjectItemField($projectId: ID!, $itemId: ID!, $fieldId: ID!, $optionId: String!) {
  updateProjectV2ItemFieldValue(
    input: {
      projectId: $projectId
      itemId: $itemId
      fieldId: $fieldId
      value: { singleSelectOptionId: $optionId }
    }
  ) {
    projectV2Item {
      id
    }
  }
}
"""


def _nodes(container: dict[str, Any] | None) -> list[dict[str, Any]]:
    if not container:
        return []
    return [n for n in container.get("nodes") or [] if n]


def _parse_project(node: dict[str, Any]) -> RemoteProject:
    fields = [
        RemoteField(
            id=f["id"],
            name=f["name"],
            options=[RemoteFieldOption(id=o["id"], name=o["name"]) for o in f.get("options") or []],
        )
        for f in _nodes(node.get("fields"))
        if f.get("id") and f.get("name")
    ]
    return RemoteProject(
        id=node["id"],
        name=node["title"],
        system=RemoteSystem.GITHUB,
        url=node.get("url"),
        fields=fields,
    )


def _parse_item(node: dict[str, Any], status_field_id: str | None) -> RemoteItem | None:
    """Convert a project item node; None for items without content."""
    content = node.get("content")
    if not content:
        return None

    status_value = None
    status_label = None
    for value in _nodes(node.get("fieldValues")):
        field = value.get("field") or {}
        if status_field_id is not None and field.get("id") == status_field_id:
            status_value = value.get("optionId")
            status_label = value.get("name")
            break

    return RemoteItem(
        id=node["id"],
        title=content.get("title") or "",
        description=content.get("body"),
        status_field_value=status_value,
        status_label=status_label,
        type_or_kind=content.get("__typename"),
        url=content.get("url"),
        assignees=[a["login"] for a in _nodes(content.get("assignees"))],
        tags=[label["name"] for label in _nodes(content.get("labels"))],
    )


@register_connector(RemoteSystem.GITHUB)
class GitHubProjectsConnector(HttpConnector):
    """
    Connector for GitHub Projects (v2) over GraphQL.

    Example:
        >>> connector = GitHubProjectsConnector(token="ghp_...")
        >>> [p.name for p in connector.list_projects()]
        ['Roadmap', 'Sprint board']
    """

    system = RemoteSystem.GITHUB

    def __init__(
        self,
        token: str,
        api_url: str = "https://api.github.com/graphql",
        page_size: int = 50,
        timeout: float = 30.0,
        retry: RetryPolicy | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        """
        Initialize the connector.

        Args:
            token: GitHub personal access token (project scope)
            api_url: GraphQL endpoint
            page_size: Items per page when fetching project items
            timeout: Request timeout in seconds
            retry: Retry policy for transient failures
            client: Pre-built httpx client (tests inject a MockTransport)
        """
        if client is None:
            client = httpx.Client(timeout=timeout)
        client.headers["Authorization"] = f"Bearer {token}"
        client.headers["Content-Type"] = "application/json"
        super().__init__(client, retry)
        self.api_url = api_url
        self.page_size = page_size

    @classmethod
    def from_config(cls, config: BoardsyncConfig) -> "GitHubProjectsConnector":
        """Build a connector from configuration and the token env variable."""
        settings = config.github
        token = os.environ.get(settings.token_env)
        if not token:
            raise AuthenticationError(
                RemoteSystem.GITHUB.value,
                f"GitHub token not found (set {settings.token_env})",
            )
        return cls(
            token=token,
            api_url=settings.api_url,
            page_size=settings.page_size,
            timeout=settings.timeout,
            retry=RetryPolicy.from_config(config.retry),
        )

    def raise_for_response(self, response: httpx.Response) -> None:
        if response.status_code == 403:
            if response.headers.get("X-RateLimit-Remaining") == "0":
                reset = response.headers.get("X-RateLimit-Reset")
                reset_at = int(reset) if reset and reset.isdigit() else None
                raise RateLimitError(
                    self.system_name,
                    "Rate limit exceeded. Try again later.",
                    status_code=403,
                    reset_at=reset_at,
                )
            raise PermissionDeniedError(
                self.system_name,
                f"Access forbidden. Check token permissions. ({error_detail(response)})",
                status_code=403,
            )
        super().raise_for_response(response)

    def query(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Run a GraphQL query or mutation.

        Returns:
            The `data` object of the response

        Raises:
            ConnectorError: On HTTP failure or when the response carries `errors`
        """
        response = self.request(
            "POST", self.api_url, json={"query": query, "variables": variables or {}}
        )
        payload = self.parse_json(response)

        errors = payload.get("errors")
        if errors:
            message = errors[0].get("message") or "GraphQL error"
            raise ConnectorError(self.system_name, message, errors=errors)

        data: dict[str, Any] = payload.get("data") or {}
        return data

    # ------------------------------------------------------------------
    # RemoteConnector
    # ------------------------------------------------------------------

    def list_projects(self) -> list[RemoteProject]:
        data = self.query(VIEWER_PROJECTS_QUERY)
        viewer = data.get("viewer") or {}

        nodes = _nodes(viewer.get("projectsV2"))
        for org in _nodes(viewer.get("organizations")):
            nodes.extend(_nodes(org.get("projectsV2")))

        projects: dict[str, RemoteProject] = {}
        for node in nodes:
            if node.get("id") and node["id"] not in projects:
                projects[node["id"]] = _parse_project(node)
        return list(projects.values())

    def get_project(self, project_id: str) -> RemoteProject:
        data = self.query(PROJECT_QUERY, {"projectId": project_id})
        node = data.get("node")
        if not node or not node.get("id"):
            raise ConnectorError(self.system_name, f"Project not found: {project_id}")
        return _parse_project(node)

    def fetch_items(self, integration: Integration) -> list[RemoteItem]:
        status_field_id = integration.status_field_id
        if status_field_id is None and integration.status_mapping is not None:
            status_field_id = integration.status_mapping.remote_field_id

        wanted = set(integration.type_filter) if integration.type_filter else None
        items: list[RemoteItem] = []
        cursor: str | None = None

        while True:
            data = self.query(
                PROJECT_ITEMS_QUERY,
                {
                    "projectId": integration.remote_project_id,
                    "first": self.page_size,
                    "cursor": cursor,
                },
            )
            node = data.get("node")
            if not node:
                raise ConnectorError(
                    self.system_name, f"Project not found: {integration.remote_project_id}"
                )

            page = node["items"]
            for item_node in _nodes(page):
                item = _parse_item(item_node, status_field_id)
                if item is None:
                    continue
                if wanted is not None and item.type_or_kind not in wanted:
                    continue
                items.append(item)

            page_info = page.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                break
            cursor = page_info.get("endCursor")
            if not cursor:
                logger.warning(
                    "GitHub reported more items for %s without a cursor; stopping",
                    integration.remote_project_id,
                )
                break

        logger.debug(
            "Fetched %d items from GitHub project %s", len(items), integration.remote_project_id
        )
        return items

    def update_field(
        self,
        remote_project_id: str,
        remote_item_id: str,
        field_id: str,
        new_value: str,
    ) -> None:
        self.query(
            UPDATE_ITEM_FIELD_MUTATION,
            {
                "projectId": remote_project_id,
                "itemId": remote_item_id,
                "fieldId": field_id,
                "optionId": new_value,
            },
        )
        logger.debug("Set %s on GitHub item %s to %s", field_id, remote_item_id, new_value)
