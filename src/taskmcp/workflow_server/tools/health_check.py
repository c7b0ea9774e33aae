"""Health check implementation for workflow server."""

import logging
from datetime import UTC, datetime
from typing import Any

from ..models.workflow_models import HealthCheckResponse
from ..workflow.registry import WorkflowRegistry

logger = logging.getLogger(__name__)


def health_check_impl(
    registry: WorkflowRegistry, state_store: Any, tool_caller: Any = None, schema_provider: Any = None
) -> HealthCheckResponse:
    """Check health of workflow server components.

    Returns:
        HealthCheckResponse with component health status
    """
    logger.info("Performing health check")

    try:
        workflows = registry.list()
        store_stats = state_store.get_stats() if hasattr(state_store, "get_stats") else {}

        components: dict[str, Any] = {
            "workflows": {"status": "healthy", "registered": len(workflows)},
            "state_store": {"status": "healthy", **store_stats},
            "tool_caller": {
                "status": "healthy" if tool_caller is not None else "not_configured",
            },
            "schema_provider": {
                "status": "healthy" if schema_provider is not None else "not_configured",
            },
        }
        if tool_caller is not None and hasattr(tool_caller, "list_tools"):
            components["tool_caller"]["tools"] = len(tool_caller.list_tools())
        if schema_provider is not None and hasattr(schema_provider, "list_templates"):
            components["schema_provider"]["templates"] = len(schema_provider.list_templates())

        response = HealthCheckResponse(
            status="healthy",
            components=components,
            timestamp=datetime.now(UTC).isoformat(),
        )
        logger.info(f"Health check completed successfully: {response.status}")
        return response

    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        return HealthCheckResponse(
            status="unhealthy",
            error=f"Health check failed: {str(e)}",
            components={},
        )
