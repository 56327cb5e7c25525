"""Unit tests for the Celery application configuration."""


class TestTaskRegistration:
    """All lane tasks should be registered under their public names."""

    def test_tasks_registered(self, mock_celery_app):
        import redwatch_worker.tasks  # noqa: F401

        for name in (
            "monitor.run_all",
            "monitor.run_user",
            "search.scrape_keyword",
            "enrich.process_post",
        ):
            assert name in mock_celery_app.tasks


class TestRouting:
    """Task routing onto lanes."""

    def test_routes_each_prefix_to_its_lane(self, mock_celery_app):
        routes = mock_celery_app.conf.task_routes

        assert routes["monitor.*"] == {"queue": "monitoring"}
        assert routes["search.*"] == {"queue": "search"}
        assert routes["enrich.*"] == {"queue": "post_processing"}

    def test_prefetch_one_task_at_a_time(self, mock_celery_app):
        """Long renders must not hold queued jobs hostage."""
        assert mock_celery_app.conf.worker_prefetch_multiplier == 1

    def test_acks_late(self, mock_celery_app):
        assert mock_celery_app.conf.task_acks_late is True


class TestBeatSchedule:
    """Periodic monitoring."""

    def test_monitoring_scheduled(self, mock_celery_app):
        entries = [
            entry for entry in mock_celery_app.conf.beat_schedule.values()
            if entry["task"] == "monitor.run_all"
        ]

        assert len(entries) == 1
        assert entries[0]["schedule"] > 0


class TestTimeLimits:
    """Per-lane time limits."""

    def test_search_soft_limit(self, mock_celery_app):
        from redwatch_worker.tasks.search import scrape_keyword

        assert scrape_keyword.soft_time_limit == 600

    def test_enrichment_soft_limit(self, mock_celery_app):
        from redwatch_worker.tasks.enrichment import process_post

        assert process_post.soft_time_limit == 240

    def test_monitoring_soft_limit(self, mock_celery_app):
        from redwatch_worker.tasks.monitoring import run_all

        assert run_all.soft_time_limit == 300


class TestSignals:
    """Worker lifecycle hooks."""

    def test_process_init_resets_db_pool(self):
        from unittest.mock import patch

        from redwatch_worker.celery_app import _reset_db_pool

        with patch("redwatch_core.infra.db.reset_session_factory") as reset:
            _reset_db_pool()

        reset.assert_called_once()

    def test_setup_logging_uses_structured_logging(self):
        from unittest.mock import patch

        from redwatch_worker.celery_app import _configure_logging

        with patch("redwatch_core.observability.configure_logging") as configure:
            _configure_logging()

        configure.assert_called_once()
        assert configure.call_args.kwargs["service_name"] == "redwatch-worker"
