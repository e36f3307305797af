"""
Configuration management for GAIA SemSearch.

Loads settings from environment variables and optional YAML config file.
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class SemSearchConfig(BaseSettings):
    """Configuration for the semantic-search index lifecycle manager."""

    # Workspace layout
    workspace_dir: Path = Field(
        default=Path("/workspace"),
        description="Project root watched by the indexer"
    )
    index_dir_name: str = Field(
        default=".grepai",
        description="Index directory name inside the workspace"
    )

    # Indexer binary and template
    indexer_bin: Path = Field(
        default=Path("/usr/local/bin/grepai"),
        description="Indexer executable"
    )
    config_template: Path = Field(
        default=Path("/etc/grepai/config.yaml"),
        description="Instance configuration template baked into the image"
    )

    # Inference backend
    default_endpoint: str = Field(
        default="host.docker.internal:11434",
        description="Backend host:port probed when no override responds"
    )
    endpoint_override: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "endpoint_override", "SEMSEARCH_ENDPOINT_OVERRIDE", "OLLAMA_HOST",
        ),
        description="Best-effort backend host:port probed first"
    )
    probe_timeout_seconds: float = Field(
        default=3.0,
        gt=0,
        description="Timeout for each liveness probe"
    )

    # Log destinations
    daemon_log: Path = Field(
        default=Path("/tmp/grepai.log"),
        description="stdout/stderr of the supervised daemon"
    )
    watchdog_log: Optional[Path] = Field(
        default=Path("/tmp/grepai-init.log"),
        description="Diagnostic log for initialization and watchdog lines"
    )
    watchdog_pid_file: Path = Field(
        default=Path("/tmp/grepai-watchdog.pid"),
        description="PID file written by the watchdog for discoverability"
    )

    # Watchdog timing
    watchdog_initial_delay_seconds: float = Field(
        default=30.0,
        ge=0,
        description="Grace delay before the first watchdog cycle"
    )
    watchdog_interval_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Seconds between watchdog cycles"
    )
    deferred_log_every: int = Field(
        default=5,
        gt=0,
        description="Log every Nth deferred-init retry after the first"
    )

    # Daemon start/stop
    start_confirm_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Max time to wait for a launched daemon to appear"
    )
    start_poll_interval_seconds: float = Field(
        default=0.5,
        gt=0,
        description="Process-table poll interval while confirming start"
    )
    restart_settle_seconds: float = Field(
        default=3.0,
        gt=0,
        description="Confirmation window for watchdog restarts"
    )
    stop_grace_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Wait after SIGTERM before escalating to SIGKILL"
    )
    stop_kill_wait_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Wait after SIGKILL"
    )

    # Subprocess timeouts
    version_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for '<indexer> version'"
    )
    generator_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Timeout for '<indexer> init' when the template is missing"
    )

    class Config:
        env_prefix = "SEMSEARCH_"
        env_file = ".env"
        populate_by_name = True

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    @property
    def index_dir(self) -> Path:
        return self.workspace_dir / self.index_dir_name

    @property
    def instance_config_path(self) -> Path:
        return self.index_dir / "config.yaml"

    @property
    def health_record_path(self) -> Path:
        return self.index_dir / ".health-stamp"

    @property
    def legacy_record_path(self) -> Path:
        return self.index_dir / ".model-stamp"

    @property
    def index_file(self) -> Path:
        return self.index_dir / "index.gob"

    @property
    def symbols_file(self) -> Path:
        return self.index_dir / "symbols.gob"

    @property
    def lock_file(self) -> Path:
        return self.index_dir / "index.gob.lock"

    @property
    def daemon_signature(self) -> str:
        """Command-line substring identifying the watch daemon."""
        return f"{self.indexer_bin} watch"


def load_yaml_config(config_path: Optional[Path] = None) -> dict:
    """Load configuration from YAML file if it exists."""
    if config_path is None:
        env_path = os.getenv("SEMSEARCH_CONFIG_FILE")
        if env_path:
            config_path = Path(env_path)
        else:
            config_path = Path(__file__).parent.parent / "config" / "semsearch.yaml"

    if config_path.exists():
        with open(config_path) as f:
            return yaml.safe_load(f) or {}
    return {}


_config: Optional[SemSearchConfig] = None


def get_config(config_path: Optional[Path] = None) -> SemSearchConfig:
    """Get the singleton configuration instance."""
    global _config
    if _config is None:
        # YAML supplies defaults; SEMSEARCH_* variables (and OLLAMA_HOST for
        # the override) win, so drop YAML keys that are shadowed by env.
        yaml_config = load_yaml_config(config_path)
        env_prefix = "SEMSEARCH_"
        filtered = {
            k: v for k, v in yaml_config.items()
            if os.getenv(f"{env_prefix}{k.upper()}") is None
            and not (k == "endpoint_override" and os.getenv("OLLAMA_HOST"))
        }
        _config = SemSearchConfig(**filtered)
    return _config


def reset_config() -> None:
    """Reset config singleton (useful for testing)."""
    global _config
    _config = None
