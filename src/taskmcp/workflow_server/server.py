"""Workflow MCP Server - stored task workflows exposed as tools."""

import asyncio
import logging
import sys

from fastmcp import FastMCP

from .config import WorkflowServerConfig, get_config
from .schemas import SchemaProvider, StaticSchemaProvider
from .state.store import create_state_store
from .tool_caller import FunctionToolCaller, ToolCaller
from .tools import register_workflow_tools
from .workflow.loader import WorkflowLoader
from .workflow.registry import WorkflowRegistry
from .workflow.runner import WorkflowRunner
from .yaml_loader import YAMLLoader

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


class WorkflowServer:
    """Workflow server with lifecycle management."""

    def __init__(
        self,
        config: WorkflowServerConfig | None = None,
        tool_caller: ToolCaller | None = None,
        schema_provider: SchemaProvider | None = None,
    ):
        self.config = config or get_config()
        self.mcp = FastMCP(
            name="TaskMCP Workflow Server",
            version=__version__,
            instructions="""
                Runs stored task workflows: named, multi-step procedures over the task store.

                Tools:
                - run_workflow: Run a workflow, or continue a paused one
                - list_workflows / describe_workflow: Discover workflows and their inputs
                - reload_workflows: Pick up edited workflow files
                - get_paused_workflow / cancel_workflow: Inspect or discard paused runs
                - health_check: Check server components

                Pausing:
                - A workflow pauses when it needs you to create an object
                - Create it from property_schemas and property_values, then call
                  run_workflow again with the same inputs

                Best Practices:
                - Define workflows in .taskmcp/workflows/
                - Use invocation_id when running the same workflow more than once at a time
            """,
        )
        self.yaml_loader = YAMLLoader(cache_ttl=self.config.yaml_cache_ttl)
        self.tool_caller = tool_caller
        self.schema_provider = schema_provider
        self.registry: WorkflowRegistry | None = None
        self.runner: WorkflowRunner | None = None

    def initialize(self):
        """Load workflows, build the runner and register MCP tools."""
        logger.info(f"Initializing workflow server: {self.config.server_name}")

        loader = WorkflowLoader(self.config.workflow_definitions_path, self.yaml_loader)
        self.registry = WorkflowRegistry(loader)
        errors = self.registry.load()
        for error in errors:
            logger.warning(f"Workflow failed to load: {error}")

        if self.tool_caller is None:
            self.tool_caller = FunctionToolCaller()
        if self.schema_provider is None:
            self.schema_provider = StaticSchemaProvider.from_yaml(self.config.templates_path, self.yaml_loader)

        self.runner = WorkflowRunner(
            self.registry,
            create_state_store(self.config),
            tool_caller=self.tool_caller,
            schema_provider=self.schema_provider,
            lock_timeout=self.config.lock_timeout,
        )

        logger.info("Registering workflow tools")
        register_workflow_tools(
            self.mcp,
            self.registry,
            self.runner,
            tool_caller=self.tool_caller,
            schema_provider=self.schema_provider,
        )

        logger.info(f"Workflow server initialized successfully: {self.config.server_name}")

    async def run(self):
        """Run the MCP server on stdio."""
        self.initialize()

        logger.info("Starting MCP server on stdio")
        await self.mcp.run_async()


def main():
    """Entry point for the workflow server."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Load configuration from environment
    config = get_config()

    # Apply log level from configuration
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if config.debug_mode else getattr(logging, config.log_level))

    logger.info(
        f"Starting workflow server with configuration: workflows={config.workflow_definitions_path}, "
        f"state_store={config.state_store}"
    )

    server = WorkflowServer(config)

    try:
        asyncio.run(server.run())
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Server failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
