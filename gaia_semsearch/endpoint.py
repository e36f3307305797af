"""
Endpoint resolution for the inference backend (Ollama).

Probes an optional override, then the default host address, with a short
bounded timeout per candidate. Nothing is cached: reachability is re-verified
on every call.
"""

import logging
from typing import Optional

import httpx

from .config import SemSearchConfig
from .models.schemas import EndpointResolution

logger = logging.getLogger("GAIA.SemSearch.Endpoint")

TAGS_PATH = "/api/tags"


class EndpointResolver:
    """Locates a reachable inference backend."""

    def __init__(self, config: SemSearchConfig) -> None:
        self.config = config

    def _tags_url(self, endpoint: str) -> str:
        return f"http://{endpoint}{TAGS_PATH}"

    async def probe(self, endpoint: str) -> bool:
        """GET /api/tags and return True on any 2xx."""
        try:
            async with httpx.AsyncClient(timeout=self.config.probe_timeout_seconds) as client:
                resp = await client.get(self._tags_url(endpoint))
                return 200 <= resp.status_code < 300
        except Exception as exc:
            logger.debug("Probe failed for %s: %s", endpoint, exc)
            return False

    async def resolve(self) -> Optional[EndpointResolution]:
        """Return the first endpoint that answers, or None when unreachable."""
        override = _strip_scheme(self.config.endpoint_override or "")
        if override:
            if await self.probe(override):
                return EndpointResolution(endpoint=override, source="override")
            logger.warning("Endpoint override %s not responding, trying default", override)

        default = self.config.default_endpoint
        if await self.probe(default):
            return EndpointResolution(endpoint=default, source="default")

        return None

    async def model_available(self, endpoint: str, model: str) -> bool:
        """Check whether ``model`` is listed by the backend's /api/tags."""
        try:
            async with httpx.AsyncClient(timeout=self.config.probe_timeout_seconds) as client:
                resp = await client.get(self._tags_url(endpoint))
                resp.raise_for_status()
                payload = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("Model listing failed on %s: %s", endpoint, exc)
            return False

        if not isinstance(payload, dict):
            return False
        models = payload.get("models") or []
        if not isinstance(models, list):
            return False
        names = [m.get("name") for m in models if isinstance(m, dict)]
        return any(_model_matches(model, name) for name in names if isinstance(name, str))


def _strip_scheme(endpoint: str) -> str:
    """Accept OLLAMA_HOST in either host:port or http://host:port form."""
    endpoint = endpoint.strip()
    for prefix in ("http://", "https://"):
        if endpoint.startswith(prefix):
            endpoint = endpoint[len(prefix):]
    return endpoint.rstrip("/")


def _model_matches(wanted: str, listed: str) -> bool:
    """Match model names, treating an omitted ':tag' as a wildcard."""
    if not wanted or not listed:
        return False
    if wanted == listed:
        return True
    wanted_base, _, wanted_tag = wanted.partition(":")
    listed_base, _, _ = listed.partition(":")
    return not wanted_tag and wanted_base == listed_base


def log_backend_instructions(default_endpoint: str) -> None:
    """Tell the user how to bring the backend up on the host."""
    rule = "=" * 79
    logger.warning(rule)
    logger.warning("  Ollama not running - semantic search will be disabled")
    logger.warning(rule)
    logger.info("Expected on the host at %s", default_endpoint)
    logger.info("Start it manually on your host machine:")
    logger.info("  macOS:  brew services start ollama   (or: ollama serve)")
    logger.info("  Linux:  sudo systemctl start ollama  (or: ollama serve)")
    logger.info("Semantic search initializes automatically once it responds.")
    logger.warning(rule)
