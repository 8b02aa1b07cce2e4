"""Tests for config models."""

import pytest
from pydantic import ValidationError

from searchplane.config.constants import ISSUES_BRANCH
from searchplane.config.models import (
    IndexConfig,
    LogOutputConfig,
    SchedulerConfig,
    SearchPlaneConfig,
)


class TestIndexConfig:
    """IndexConfig validation tests."""

    def test_given_defaults_then_issues_branch_excluded(self) -> None:
        config = IndexConfig()

        assert config.excluded_branches == [ISSUES_BRANCH]
        assert config.max_file_size_mb == 10

    def test_given_mixed_extensions_when_validated_then_normalized(self) -> None:
        """Extensions are lower-cased, undotted, deduplicated and sorted."""
        config = IndexConfig(excluded_extensions=[".PNG", "zip", "Zip", "", "."])

        assert config.excluded_extensions == ["png", "zip"]

    def test_given_small_heap_when_validated_then_rejected(self) -> None:
        with pytest.raises(ValidationError):
            IndexConfig(writer_heap_size=1_000_000)


class TestSchedulerConfig:
    """SchedulerConfig validation tests."""

    def test_given_defaults_then_disabled(self) -> None:
        config = SchedulerConfig()

        assert config.enabled is False
        assert config.polling_mode is False

    @pytest.mark.parametrize("interval", [0, -1.5])
    def test_given_non_positive_interval_when_validated_then_rejected(
        self, interval: float
    ) -> None:
        with pytest.raises(ValidationError):
            SchedulerConfig(interval_sec=interval)


class TestLogOutputConfig:
    """LogOutputConfig validation tests."""

    def test_given_relative_file_when_validated_then_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LogOutputConfig(destination="relative/path.log")

    def test_given_stream_when_validated_then_accepted(self) -> None:
        assert LogOutputConfig(destination="stdout").destination == "stdout"


class TestSearchPlaneConfig:
    def test_given_nested_dict_when_validated_then_sections_built(self) -> None:
        config = SearchPlaneConfig.model_validate(
            {"search": {"max_hits_default": 5}, "scheduler": {"enabled": True}}
        )

        assert config.search.max_hits_default == 5
        assert config.scheduler.enabled is True
        assert config.index == IndexConfig()
