"""Settings for the task workflow server, read from the environment."""

import os
from dataclasses import dataclass

STATE_STORE_KINDS = ("memory", "file")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class WorkflowServerConfig:
    """Server settings; invalid combinations raise ValueError on construction."""

    server_name: str = "taskmcp-workflows"

    # Where workflows and entity templates are read from
    workflow_definitions_path: str = "./.taskmcp/workflows/"
    templates_path: str = "./.taskmcp/templates.yaml"
    yaml_cache_ttl: int = 300  # seconds

    # Paused workflow snapshots
    state_store: str = "memory"
    state_directory: str = "./.taskmcp/state/"
    max_paused_workflows: int = 50
    lock_timeout: float = 30.0  # seconds

    debug_mode: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_environment(cls) -> "WorkflowServerConfig":
        """Build settings from WORKFLOW_* and related environment variables."""
        env = os.environ
        return cls(
            server_name=env.get("WORKFLOW_SERVER_NAME", "taskmcp-workflows"),
            workflow_definitions_path=env.get("WORKFLOW_DEFINITIONS_PATH", "./.taskmcp/workflows/"),
            templates_path=env.get("WORKFLOW_TEMPLATES_PATH", "./.taskmcp/templates.yaml"),
            yaml_cache_ttl=int(env.get("YAML_CACHE_TTL", "300")),
            state_store=env.get("WORKFLOW_STATE_STORE", "memory").lower(),
            state_directory=env.get("WORKFLOW_STATE_DIR", "./.taskmcp/state/"),
            max_paused_workflows=int(env.get("MAX_PAUSED_WORKFLOWS", "50")),
            lock_timeout=float(env.get("WORKFLOW_LOCK_TIMEOUT", "30")),
            debug_mode=env.get("DEBUG_MODE", "false").lower() == "true",
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )

    def validate(self) -> tuple[bool, list[str]]:
        """Check the settings, returning (ok, problems)."""
        problems = []

        for name in ("yaml_cache_ttl", "max_paused_workflows", "lock_timeout"):
            if getattr(self, name) <= 0:
                problems.append(f"{name} must be positive")

        if self.state_store not in STATE_STORE_KINDS:
            problems.append(f"state_store must be one of {list(STATE_STORE_KINDS)}")

        if not self.workflow_definitions_path:
            problems.append("workflow_definitions_path cannot be empty")

        if self.state_store == "file" and not self.state_directory:
            problems.append("state_directory cannot be empty for the file state store")

        if self.log_level not in LOG_LEVELS:
            problems.append(f"log_level must be one of {list(LOG_LEVELS)}")

        return not problems, problems

    def __post_init__(self):
        ok, problems = self.validate()
        if not ok:
            raise ValueError(f"Invalid configuration: {', '.join(problems)}")


_config: WorkflowServerConfig | None = None


def get_config() -> WorkflowServerConfig:
    """Process-wide settings, read from the environment on first use."""
    global _config
    if _config is None:
        _config = WorkflowServerConfig.from_environment()
    return _config


def set_config(config: WorkflowServerConfig) -> None:
    global _config
    _config = config


def reset_config() -> None:
    global _config
    _config = None
