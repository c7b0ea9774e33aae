"""Workflow server models package."""

from .workflow_models import (
    CancelWorkflowResponse,
    DescribeWorkflowResponse,
    HealthCheckResponse,
    ListWorkflowsResponse,
    PausedWorkflowResponse,
    ReloadWorkflowsResponse,
    RunWorkflowResponse,
)

__all__ = [
    "RunWorkflowResponse",
    "ListWorkflowsResponse",
    "DescribeWorkflowResponse",
    "ReloadWorkflowsResponse",
    "PausedWorkflowResponse",
    "CancelWorkflowResponse",
    "HealthCheckResponse",
]
