"""
Tests for dependency wiring.
"""
import pytest

from tv_aggregator.dependencies import (
    get_notification_center,
    get_pipeline,
    get_scheduler,
    reset_dependencies,
)
from tv_aggregator.services.pipeline_service import ChannelPipeline


@pytest.fixture(autouse=True)
def fresh_dependencies():
    reset_dependencies()
    yield
    reset_dependencies()


class TestDependencies:
    """Test the shared application instances."""

    def test_pipeline_is_shared(self):
        pipeline = get_pipeline()

        assert isinstance(pipeline, ChannelPipeline)
        assert get_pipeline() is pipeline

    def test_scheduler_drives_shared_pipeline(self):
        assert get_scheduler().pipeline is get_pipeline()
        assert not get_scheduler().running

    def test_reset_drops_instances(self):
        pipeline = get_pipeline()
        notifications = get_notification_center()

        reset_dependencies()

        assert get_pipeline() is not pipeline
        assert get_notification_center() is not notifications
