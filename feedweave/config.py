"""
Engine Configuration

Plain dataclasses, one per layer, gathered in EngineConfig.
Every field has a working default; EngineConfig.from_env() overlays
FEEDWEAVE_* environment variables.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Mapping, Optional
import os


NULL_IMAGE = "&" + "0" * 43 + "=.sha256"


@dataclass
class LogConfig:
    """Where the log gateway lives and how to talk to it."""
    base_url: str = "http://localhost:8989"
    # None means no client-side timeout; callers impose request deadlines
    timeout_seconds: Optional[float] = None


@dataclass
class QueryConfig:
    """Configuration for the query layer."""
    max_messages: int = 64
    popular_window_hours: float = 24.0


@dataclass
class EnrichmentConfig:
    max_concurrency: int = 16
    avatar_url_template: str = "/image/32/{avatar}"
    null_image: str = NULL_IMAGE


@dataclass
class ObservabilityConfig:
    enable_audit: bool = True
    enable_metrics: bool = True


@dataclass
class EngineConfig:
    """Unified configuration for the whole engine."""
    log: LogConfig = None
    query: QueryConfig = None
    enrichment: EnrichmentConfig = None
    observability: ObservabilityConfig = None

    def __post_init__(self):
        self.log = self.log or LogConfig()
        self.query = self.query or QueryConfig()
        self.enrichment = self.enrichment or EnrichmentConfig()
        self.observability = self.observability or ObservabilityConfig()

    @staticmethod
    def from_env(environ: Optional[Mapping[str, str]] = None) -> EngineConfig:
        """
        Build configuration from environment variables.

        FEEDWEAVE_LOG_URL, FEEDWEAVE_LOG_TIMEOUT, FEEDWEAVE_MAX_MESSAGES,
        FEEDWEAVE_POPULAR_WINDOW_HOURS, FEEDWEAVE_MAX_CONCURRENCY,
        FEEDWEAVE_AVATAR_URL_TEMPLATE. Unset variables keep the defaults.
        """
        env = os.environ if environ is None else environ
        config = EngineConfig()

        if env.get("FEEDWEAVE_LOG_URL"):
            config.log.base_url = env["FEEDWEAVE_LOG_URL"]
        if env.get("FEEDWEAVE_LOG_TIMEOUT"):
            config.log.timeout_seconds = float(env["FEEDWEAVE_LOG_TIMEOUT"])
        if env.get("FEEDWEAVE_MAX_MESSAGES"):
            config.query.max_messages = int(env["FEEDWEAVE_MAX_MESSAGES"])
        if env.get("FEEDWEAVE_POPULAR_WINDOW_HOURS"):
            config.query.popular_window_hours = float(env["FEEDWEAVE_POPULAR_WINDOW_HOURS"])
        if env.get("FEEDWEAVE_MAX_CONCURRENCY"):
            config.enrichment.max_concurrency = int(env["FEEDWEAVE_MAX_CONCURRENCY"])
        if env.get("FEEDWEAVE_AVATAR_URL_TEMPLATE"):
            config.enrichment.avatar_url_template = env["FEEDWEAVE_AVATAR_URL_TEMPLATE"]

        return config
