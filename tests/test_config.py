"""ServerConfig defaults, environment parsing and validation."""

import logging

import pytest

from path_walker.config import MAX_CONTENT_LENGTH, ServerConfig
from path_walker.logging_utils import LOG_FORMAT, setup_logging


class TestServerConfig:
    def test_defaults(self):
        config = ServerConfig()
        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.backend == "opencl"
        assert config.platform_index == 0
        assert config.device_index == 0
        assert config.early_exit is False
        assert config.max_content_length == MAX_CONTENT_LENGTH == 16 * 1024 * 1024
        assert config.log_level == "INFO"
        assert config.log_file is None

    def test_from_env(self):
        config = ServerConfig.from_env({
            "PATH_WALKER_HOST": "0.0.0.0",
            "PATH_WALKER_PORT": "9000",
            "PATH_WALKER_BACKEND": "cpu",
            "PATH_WALKER_DEVICE_INDEX": "1",
            "PATH_WALKER_EARLY_EXIT": "yes",
            "PATH_WALKER_LOG_LEVEL": "debug",
            "UNRELATED": "ignored",
        })
        assert config == ServerConfig(
            host="0.0.0.0", port=9000, backend="cpu", device_index=1,
            early_exit=True, log_level="debug",
        )

    def test_from_empty_env(self):
        assert ServerConfig.from_env({}) == ServerConfig()

    @pytest.mark.parametrize("env", [
        {"PATH_WALKER_PORT": "http"},
        {"PATH_WALKER_PORT": "70000"},
        {"PATH_WALKER_BACKEND": "vulkan"},
        {"PATH_WALKER_EARLY_EXIT": "maybe"},
        {"PATH_WALKER_PLATFORM_INDEX": "-1"},
        {"PATH_WALKER_MAX_CONTENT_LENGTH": "0"},
        {"PATH_WALKER_LOG_LEVEL": "LOUD"},
    ])
    def test_invalid_env(self, env):
        with pytest.raises(ValueError):
            ServerConfig.from_env(env)

    def test_overrides_skip_none(self):
        base = ServerConfig(port=9000)
        config = base.with_overrides(port=None, backend="cpu", early_exit=None)
        assert config.port == 9000
        assert config.backend == "cpu"
        assert config.early_exit is False

    def test_frozen(self):
        with pytest.raises(AttributeError):
            ServerConfig().port = 1


class TestLogging:
    def test_console_handler(self, restore_logging):
        setup_logging("DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert root.handlers[0].formatter._fmt == LOG_FORMAT

    def test_rotating_file(self, restore_logging, tmp_path):
        log_file = tmp_path / "logs" / "path-walker.log"
        setup_logging("INFO", str(log_file))
        logging.getLogger("path_walker.test").info("hello from the test")
        for handler in logging.getLogger().handlers:
            handler.flush()

        content = log_file.read_text(encoding="utf-8")
        assert "INFO] path_walker.test: hello from the test" in content
