"""Tests for structured logging."""

import json
import logging
from pathlib import Path

import pytest
import structlog

from searchplane.config.models import LoggingConfig, LogOutputConfig
from searchplane.core.logging import (
    configure_logging,
    get_log_file_path,
    get_logger,
    get_pass_id,
    pass_context,
)


class TestPassCorrelation:
    """Pass id context tests."""

    def test_given_explicit_id_when_in_pass_then_id_visible(self) -> None:
        """An explicit pass id is visible inside the block."""
        # When
        with pass_context("pass-123") as pass_id:
            # Then
            assert pass_id == "pass-123"
            assert get_pass_id() == "pass-123"

    def test_given_no_id_when_in_pass_then_generates_one(self) -> None:
        """A 12-character id is generated when none is given."""
        with pass_context() as pass_id:
            assert len(pass_id) == 12
            assert get_pass_id() == pass_id

    def test_given_pass_when_block_exits_then_id_cleared(self) -> None:
        """Leaving the block clears the id, even on error."""
        with pytest.raises(RuntimeError), pass_context("to-clear"):
            raise RuntimeError("boom")

        assert get_pass_id() is None

    def test_given_nested_passes_when_inner_exits_then_outer_restored(self) -> None:
        with pass_context("outer"):
            with pass_context("inner"):
                assert get_pass_id() == "inner"
            assert get_pass_id() == "outer"


class TestLoggingConfiguration:
    """Logging configuration tests."""

    def setup_method(self) -> None:
        """Reset structlog and stdlib logging before each test."""
        structlog.reset_defaults()
        logging.getLogger().handlers.clear()

    def teardown_method(self) -> None:
        for handler in list(logging.getLogger().handlers):
            logging.getLogger().removeHandler(handler)
            handler.close()

    def test_given_json_format_when_log_then_valid_json_output(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """JSON format produces valid JSON with required fields."""
        # Given
        configure_logging(json_format=True, level="INFO")
        logger = get_logger("test")

        # When
        logger.info("repository_index_built", repository="alpha", commits=3)

        # Then
        captured = capsys.readouterr()
        lines = [line for line in captured.err.strip().split("\n") if line]
        data = json.loads(lines[-1])
        assert data["event"] == "repository_index_built"
        assert data["repository"] == "alpha"
        assert data["commits"] == 3
        assert data["level"] == "info"
        assert "timestamp" in data

    def test_given_pass_when_log_then_event_carries_pass_id(self, tmp_path: Path) -> None:
        """Events logged during a pass share its id."""
        # Given
        log_file = tmp_path / "pass.log"
        configure_logging(
            config=LoggingConfig(
                level="INFO",
                outputs=[LogOutputConfig(format="json", destination=str(log_file))],
            )
        )
        # When
        with pass_context("abc123def456"):
            get_logger().info("scheduler_pass_completed")

        # Then
        data = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert data["pass_id"] == "abc123def456"

    def test_given_config_object_when_configure_then_takes_precedence(self, tmp_path: Path) -> None:
        """LoggingConfig object takes precedence over simple params."""
        # Given
        log_file = tmp_path / "test.log"
        config = LoggingConfig(
            level="DEBUG",
            outputs=[LogOutputConfig(format="json", destination=str(log_file))],
        )

        # When - config's DEBUG overrides the level="ERROR" param
        configure_logging(config=config, json_format=False, level="ERROR")
        get_logger().debug("debug msg")

        # Then
        assert "debug msg" in log_file.read_text()
        assert get_log_file_path() == log_file

    def test_given_multi_output_config_when_configure_then_logs_to_all(
        self, tmp_path: Path
    ) -> None:
        """Multiple outputs receive logs according to their levels."""
        # Given
        debug_file = tmp_path / "debug.log"
        info_file = tmp_path / "info.log"
        config = LoggingConfig(
            level="DEBUG",
            outputs=[
                LogOutputConfig(format="json", destination=str(info_file), level="INFO"),
                LogOutputConfig(format="json", destination=str(debug_file)),
            ],
        )

        # When
        configure_logging(config=config)
        logger = get_logger()
        logger.debug("debug only")
        logger.info("info msg")

        # Then
        info_content = info_file.read_text()
        assert "info msg" in info_content
        assert "debug only" not in info_content

        debug_content = debug_file.read_text()
        assert "debug only" in debug_content
        assert "info msg" in debug_content

    def test_given_console_only_when_configure_then_no_log_file(self) -> None:
        """Console outputs do not set a log file path."""
        configure_logging(level="INFO")

        assert get_log_file_path() is None
