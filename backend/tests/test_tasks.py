"""
Tests for Celery Background Tasks

Tests cover:
- Celery app configuration
- process_profile_task
- process_all_profiles_task fan-out
- refresh_matches_task
- Task retries and metrics
"""

import pytest
from unittest.mock import MagicMock, patch

from app.tasks.pipeline import (
    process_profile_task,
    process_all_profiles_task,
    refresh_matches_task,
)
from app.celery import celery_app


class TestCeleryApp:
    """Test Celery app configuration."""

    def test_celery_app_exists(self):
        assert celery_app is not None
        assert celery_app.main == "jobcompass"

    def test_celery_uses_redis_broker(self):
        assert "redis" in celery_app.conf.broker_url

    def test_celery_uses_redis_backend(self):
        assert "redis" in celery_app.conf.result_backend

    def test_pipeline_tasks_routed(self):
        routes = celery_app.conf.task_routes
        assert routes["app.tasks.pipeline.process_profile_task"] == {"queue": "processing"}
        assert routes["app.tasks.pipeline.refresh_matches_task"] == {"queue": "scoring"}


class TestProcessProfileTask:
    """Test process_profile_task."""

    def test_is_celery_task(self):
        assert hasattr(process_profile_task, "delay")
        assert hasattr(process_profile_task, "apply_async")

    def test_has_retry_policy(self):
        assert process_profile_task.max_retries == 3

    @patch("app.scheduler.run_profile_pipeline", new_callable=MagicMock)
    @patch("app.tasks.pipeline.run_async")
    def test_runs_pipeline_for_profile(self, mock_run_async, mock_pipeline):
        mock_run_async.return_value = {"profile_id": "p-1", "listings_saved": 3}

        result = process_profile_task.run("p-1")

        mock_pipeline.assert_called_once_with("p-1")
        mock_run_async.assert_called_once_with(mock_pipeline.return_value)
        assert result["listings_saved"] == 3

    @patch("app.scheduler.run_profile_pipeline", new_callable=MagicMock)
    @patch("app.tasks.pipeline.run_async")
    def test_failure_is_retried(self, mock_run_async, mock_pipeline):
        mock_run_async.side_effect = ConnectionError("database is locked")

        # Called directly, Celery re-raises instead of scheduling a retry
        with pytest.raises(ConnectionError):
            process_profile_task.run("p-1")

    @patch("app.scheduler.run_profile_pipeline", new_callable=MagicMock)
    @patch("app.tasks.pipeline.run_async")
    @patch("app.tasks.pipeline.TASK_DURATION")
    def test_records_duration(self, mock_metric, mock_run_async, mock_pipeline):
        mock_run_async.return_value = {}

        process_profile_task.run("p-1")

        mock_metric.labels.assert_called_with(task_name="process_profile_task")


class TestProcessAllProfilesTask:
    """Test process_all_profiles_task fan-out."""

    @patch("app.tasks.pipeline.get_active_profile_ids")
    @patch("app.tasks.pipeline.process_profile_task")
    def test_queues_one_task_per_profile(self, mock_task, mock_get_ids):
        mock_get_ids.return_value = ["p-1", "p-2"]

        result = process_all_profiles_task.run()

        assert result == {"queued": 2}
        assert [call.args for call in mock_task.delay.call_args_list] == [("p-1",), ("p-2",)]

    @patch("app.tasks.pipeline.get_active_profile_ids")
    @patch("app.tasks.pipeline.process_profile_task")
    def test_no_profiles(self, mock_task, mock_get_ids):
        mock_get_ids.return_value = []

        assert process_all_profiles_task.run() == {"queued": 0}
        mock_task.delay.assert_not_called()


class TestRefreshMatchesTask:
    """Test refresh_matches_task."""

    def test_is_celery_task(self):
        assert hasattr(refresh_matches_task, "delay")
        assert refresh_matches_task.max_retries == 3

    @patch("app.tasks.pipeline._refresh_matches", new_callable=MagicMock)
    @patch("app.tasks.pipeline.run_async")
    def test_passes_status_filter(self, mock_run_async, mock_refresh):
        mock_run_async.return_value = {"profile_id": "p-1", "listings": 4, "failed": 0}

        result = refresh_matches_task.run("p-1", status="viewed")

        mock_refresh.assert_called_once_with("p-1", "viewed")
        assert result["listings"] == 4

    @patch("app.tasks.pipeline._refresh_matches", new_callable=MagicMock)
    @patch("app.tasks.pipeline.run_async")
    def test_missing_profile_reported(self, mock_run_async, mock_refresh):
        mock_run_async.return_value = {"error": "Profile not found"}

        assert refresh_matches_task.run("missing") == {"error": "Profile not found"}
