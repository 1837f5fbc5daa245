"""Workflow backend HTTP client."""

from workflow_builder.client.config import Settings
from workflow_builder.client.workflow_client import WorkflowClient, WorkflowClientError

__all__ = ["Settings", "WorkflowClient", "WorkflowClientError"]
