"""
Remote connectors.

One connector per remote system, behind the RemoteConnector protocol.
Connectors register themselves with `@register_connector` and are built
from configuration with `get_connector`.
"""

from .base import RemoteConnector, get_connector, list_connectors, register_connector
from .http import HttpConnector, RetryPolicy, is_retryable_error, with_retry

# Import connector implementations to trigger registration
from .azure_devops import AzureDevOpsConnector  # noqa: E402
from .github import GitHubProjectsConnector  # noqa: E402

__all__ = [
    "RemoteConnector",
    "register_connector",
    "get_connector",
    "list_connectors",
    "HttpConnector",
    "RetryPolicy",
    "is_retryable_error",
    "with_retry",
    "AzureDevOpsConnector",
    "GitHubProjectsConnector",
]
