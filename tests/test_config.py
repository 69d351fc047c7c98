"""
Configuration Tests
"""

from feedweave.config import NULL_IMAGE, EngineConfig, QueryConfig


class TestEngineConfig:

    def test_defaults(self):
        config = EngineConfig()
        assert config.log.base_url == "http://localhost:8989"
        assert config.log.timeout_seconds is None
        assert config.query.max_messages == 64
        assert config.query.popular_window_hours == 24.0
        assert config.enrichment.avatar_url_template == "/image/32/{avatar}"
        assert config.observability.enable_audit is True

    def test_null_image_shape(self):
        assert NULL_IMAGE.startswith("&")
        assert NULL_IMAGE.endswith("=.sha256")
        assert len(NULL_IMAGE) == 1 + 43 + len("=.sha256")

    def test_partial_override_keeps_other_defaults(self):
        config = EngineConfig(query=QueryConfig(max_messages=10))
        assert config.query.max_messages == 10
        assert config.enrichment.max_concurrency == 16

    def test_from_env(self):
        config = EngineConfig.from_env({
            "FEEDWEAVE_LOG_URL": "http://gateway:9000",
            "FEEDWEAVE_LOG_TIMEOUT": "2.5",
            "FEEDWEAVE_MAX_MESSAGES": "32",
            "FEEDWEAVE_POPULAR_WINDOW_HOURS": "6",
            "FEEDWEAVE_MAX_CONCURRENCY": "4",
            "FEEDWEAVE_AVATAR_URL_TEMPLATE": "https://img.test/{avatar}",
        })
        assert config.log.base_url == "http://gateway:9000"
        assert config.log.timeout_seconds == 2.5
        assert config.query.max_messages == 32
        assert config.query.popular_window_hours == 6.0
        assert config.enrichment.max_concurrency == 4
        assert config.enrichment.avatar_url_template == "https://img.test/{avatar}"

    def test_from_env_empty(self):
        assert EngineConfig.from_env({}) == EngineConfig()
