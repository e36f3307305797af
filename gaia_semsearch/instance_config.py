"""
Instance configuration sync.

The instance config is always regenerated from the image template with the
resolved endpoint substituted, so the endpoint is the only field that can
drift from the template.
"""

import logging
import re
from pathlib import Path

from .config import SemSearchConfig
from .process_table import run_command

logger = logging.getLogger("GAIA.SemSearch.InstanceConfig")

_ENDPOINT_RE = re.compile(r"(endpoint:\s*http://)[^\s]+")


def substitute_endpoint(text: str, endpoint: str) -> str:
    """Point every ``endpoint: http://...`` at ``endpoint``."""
    return _ENDPOINT_RE.sub(lambda m: m.group(1) + endpoint, text)


class InstanceConfigSync:
    """Materializes ``<index_dir>/config.yaml`` from the template."""

    def __init__(self, config: SemSearchConfig) -> None:
        self.config = config

    @property
    def path(self) -> Path:
        return self.config.instance_config_path

    def _write_from_template(self, endpoint: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        text = self.config.config_template.read_text(encoding="utf-8")
        self.path.write_text(substitute_endpoint(text, endpoint), encoding="utf-8")

    def _substitute_in_place(self, endpoint: str) -> None:
        text = self.path.read_text(encoding="utf-8")
        self.path.write_text(substitute_endpoint(text, endpoint), encoding="utf-8")

    async def _run_generator(self) -> bool:
        """Fall back to ``<indexer> init`` when the template is missing."""
        cmd = [
            str(self.config.indexer_bin), "init",
            "--provider", "ollama", "--backend", "gob", "--yes",
        ]
        result = await run_command(
            cmd, timeout=self.config.generator_timeout_seconds, cwd=self.config.workspace_dir,
        )
        if result is None:
            logger.warning("Indexer init failed")
            return False
        returncode, _, stderr = result
        if returncode != 0:
            logger.warning("Indexer init exited %d: %s", returncode, stderr.strip()[:200])
        return self.path.is_file()

    async def sync(self, endpoint: str, quiet: bool = False) -> bool:
        """
        Overwrite the instance config from the template for ``endpoint``.

        Args:
            endpoint: Resolved backend host:port.
            quiet: Log the routine success line at debug level.

        Returns:
            True if an up-to-date instance config exists afterwards. A
            template or config that cannot be read or written yields False.
        """
        try:
            if self.config.config_template.is_file():
                self._write_from_template(endpoint)
                logger.log(
                    logging.DEBUG if quiet else logging.INFO,
                    "Indexer config synced from template (endpoint: http://%s)", endpoint,
                )
                return True

            logger.log(
                logging.DEBUG if quiet else logging.WARNING,
                "Config template not found at %s, using indexer init...",
                self.config.config_template,
            )
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if await self._run_generator() or self.path.is_file():
                self._substitute_in_place(endpoint)
                return True
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Indexer config sync failed: %s", e)
        return False

    def preinitialize(self) -> bool:
        """
        Partial setup while the backend is unreachable.

        Copies the template with the default endpoint so the config is ready
        once the backend appears. Best-effort.
        """
        if not (self.config.indexer_bin.is_file() and self.config.config_template.is_file()):
            return False
        try:
            self._write_from_template(self.config.default_endpoint)
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Config pre-initialization failed: %s", e)
            return False
        return True
