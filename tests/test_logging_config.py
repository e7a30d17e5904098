"""
Tests for logging configuration.
"""
import logging


class TestLoggingConfiguration:
    """Test logging setup and configuration."""

    def test_setup_logging_default_level(self, monkeypatch):
        """Test that setup_logging defaults to INFO level."""
        monkeypatch.delenv("LOG_LEVEL", raising=False)

        from voice_pos.logging_config import setup_logging
        setup_logging()

        logger = logging.getLogger("voice_pos")
        assert logger.level == logging.INFO

    def test_setup_logging_respects_env_var(self, monkeypatch):
        """Test that LOG_LEVEL env var is respected."""
        monkeypatch.setenv("LOG_LEVEL", "WARNING")

        from voice_pos.logging_config import setup_logging
        setup_logging()

        logger = logging.getLogger("voice_pos")
        assert logger.level == logging.WARNING

    def test_setup_logging_lowercase_level(self):
        """Level names are case-insensitive."""
        from voice_pos.logging_config import setup_logging
        setup_logging(level="error")

        logger = logging.getLogger("voice_pos")
        assert logger.level == logging.ERROR

    def test_setup_logging_invalid_level_defaults_to_info(self):
        """Test that invalid level falls back to INFO."""
        from voice_pos.logging_config import setup_logging
        setup_logging(level="INVALID_LEVEL")

        logger = logging.getLogger("voice_pos")
        assert logger.level == logging.INFO

    def test_transport_loggers_quiet_unless_debug(self):
        """websockets frame logging is suppressed at INFO and enabled at DEBUG."""
        from voice_pos.logging_config import setup_logging

        setup_logging(level="INFO")
        assert logging.getLogger("websockets").level == logging.WARNING

        logging.getLogger("websockets").setLevel(logging.NOTSET)
        setup_logging(level="DEBUG")
        assert logging.getLogger("websockets").level == logging.NOTSET

    def test_relay_frames_off_by_default(self, monkeypatch):
        """Relay loggers follow the application level unless frames are requested."""
        monkeypatch.delenv("LOG_RELAY_FRAMES", raising=False)

        from voice_pos.logging_config import setup_logging
        setup_logging(level="INFO")

        assert logging.getLogger("voice_pos.relay").level == logging.NOTSET
        assert not logging.getLogger("voice_pos.relay.endpoint").isEnabledFor(logging.DEBUG)

    def test_relay_frames_env_var(self, monkeypatch):
        """LOG_RELAY_FRAMES turns on relay DEBUG while the app stays at INFO."""
        monkeypatch.setenv("LOG_RELAY_FRAMES", "true")

        from voice_pos.logging_config import setup_logging
        setup_logging(level="INFO")

        assert logging.getLogger("voice_pos").level == logging.INFO
        assert logging.getLogger("voice_pos.relay").level == logging.DEBUG
        assert logging.getLogger("voice_pos.relay.hub").isEnabledFor(logging.DEBUG)
        assert not logging.getLogger("voice_pos.cart").isEnabledFor(logging.DEBUG)

        setup_logging(level="INFO", relay_frames=False)
        assert logging.getLogger("voice_pos.relay").level == logging.NOTSET


class TestApiKeyRedaction:
    """The model key must be masked wherever a stream URL is logged."""

    def _record(self, msg, *args):
        return logging.LogRecord("websockets.client", logging.DEBUG, __file__, 1, msg, args, None)

    def test_key_masked_in_formatted_message(self):
        from voice_pos.logging_config import RedactApiKeyFilter

        record = self._record("> GET %s HTTP/1.1", "/ws/live?key=AIza-secret&alt=json")
        assert RedactApiKeyFilter().filter(record) is True
        assert record.getMessage() == "> GET /ws/live?key=***&alt=json HTTP/1.1"

    def test_messages_without_key_untouched(self):
        from voice_pos.logging_config import RedactApiKeyFilter

        record = self._record("Sent %d of %d items to POS", 2, 3)
        RedactApiKeyFilter().filter(record)
        assert record.args == (2, 3)
        assert record.getMessage() == "Sent 2 of 3 items to POS"

    def test_setup_installs_filter_once(self):
        from voice_pos.logging_config import RedactApiKeyFilter, setup_logging

        setup_logging(level="INFO")
        setup_logging(level="INFO")

        handlers = logging.getLogger().handlers
        assert handlers
        for handler in handlers:
            assert sum(isinstance(f, RedactApiKeyFilter) for f in handler.filters) == 1


class TestNoSensitiveDataInLogs:
    """Test that the model credential is not logged at INFO level or higher."""

    def test_model_stream_url_not_logged(self, caplog):
        """The key travels in the stream URL; the URL must not show up in logs."""
        import asyncio

        from voice_pos.model_stream import ModelStreamClient

        class _Session:
            model = "models/test"
            model_ready = True

            def build_setup_message(self):
                return {"setup": {}}

            async def handle_model_message(self, message):
                return 0

        class _Conn:
            async def send(self, message):
                pass

            async def close(self):
                pass

            async def __aiter__(self):
                return
                yield

        async def connector(url):
            return _Conn()

        client = ModelStreamClient(api_key="secret-key-123", connector=connector)
        with caplog.at_level(logging.DEBUG, logger="voice_pos"):
            asyncio.run(client.run(_Session()))

        for record in caplog.records:
            assert "secret-key-123" not in record.getMessage()
