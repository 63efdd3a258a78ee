"""OpenTelemetry gauges for periodic metrics collection."""

import logging
from typing import Callable, Iterable, List

from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.metrics import CallbackOptions, Meter, Observation
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource

from . import __version__
from .ai_usage import BuilderUserStats, CursorUserStats
from .models import UserPrs
from .stats import compute_activity_stats, compute_review_stats_for_team


METER_NAME = 'engineering.metrics'

# (gauge name, stats attribute, description, unit)
PR_ACTIVITY_GAUGES = [
    ('engmetrics_github_prs_total', 'total', 'Total number of PRs by user', '{pr}'),
    ('engmetrics_github_prs_open', 'open', 'Number of open PRs by user', '{pr}'),
    ('engmetrics_github_prs_merged', 'merged', 'Number of merged PRs by user', '{pr}'),
    ('engmetrics_github_prs_avg_days_open', 'avg_days_open', 'Average days PRs are open by user', 'd'),
    ('engmetrics_github_prs_median_days_open', 'median_days_open', 'Median days PRs are open by user', 'd'),
    ('engmetrics_github_prs_comments', 'comments', 'Total comments on PRs by user', '{comment}'),
    ('engmetrics_github_prs_lines_added', 'additions', 'Total lines added in PRs by user', '{line}'),
    ('engmetrics_github_prs_lines_deleted', 'deletions', 'Total lines deleted in PRs by user', '{line}'),
    ('engmetrics_github_prs_files_changed', 'files_changed', 'Total files changed in PRs by user', '{file}'),
]

REVIEW_GAUGES = [
    ('engmetrics_github_reviews_prs_reviewed', 'prs_reviewed', 'Number of PRs reviewed by user', '{pr}'),
    ('engmetrics_github_reviews_comments_left', 'comments_left', 'Number of review comments left by user', '{comment}'),
    ('engmetrics_github_reviews_prs_approved', 'prs_approved', 'Number of PRs approved by user', '{pr}'),
    ('engmetrics_github_reviews_changes_requested', 'prs_requested_changes',
     'Number of PRs where changes were requested by user', '{pr}'),
]

CURSOR_GAUGES = [
    ('engmetrics_cursor_days_active', 'days_active', 'Number of days user was active in Cursor', 'd'),
    ('engmetrics_cursor_chat_requests', 'chat_requests', 'Total chat requests by user', '{request}'),
    ('engmetrics_cursor_agent_requests', 'agent_requests', 'Total agent requests by user', '{request}'),
    ('engmetrics_cursor_lines_added', 'lines_added', 'Total lines added via Cursor by user', '{line}'),
    ('engmetrics_cursor_lines_deleted', 'lines_deleted', 'Total lines deleted via Cursor by user', '{line}'),
]

BUILDER_GAUGES = [
    ('engmetrics_builder_design_exports', 'design_exports', 'Number of design exports by user', '{export}'),
    ('engmetrics_builder_lines_added', 'lines_added', 'Total lines added by user', '{line}'),
    ('engmetrics_builder_lines_removed', 'lines_removed', 'Total lines removed by user', '{line}'),
    ('engmetrics_builder_lines_accepted', 'lines_accepted', 'Total lines accepted by user', '{line}'),
    ('engmetrics_builder_total_lines', 'total_lines', 'Total lines by user', '{line}'),
    ('engmetrics_builder_events', 'events', 'Total events by user', '{event}'),
    ('engmetrics_builder_user_prompts', 'user_prompts', 'Total user prompts', '{prompt}'),
    ('engmetrics_builder_credits_used', 'credits_used', 'Total credits used by user', '{credit}'),
    ('engmetrics_builder_prs_merged', 'prs_merged', 'Total PRs merged by user', '{pr}'),
    ('engmetrics_builder_tokens_total', 'tokens_total', 'Total tokens used by user', '{token}'),
]


def create_meter_provider(endpoint: str, interval_seconds: float = 5) -> MeterProvider:
    """Build a meter provider exporting over OTLP/HTTP on a fixed interval.

    Args:
        endpoint: OTLP metrics endpoint (e.g. a Grafana Alloy receiver)
        interval_seconds: Export interval

    Returns:
        Configured MeterProvider; call shutdown() to flush
    """
    exporter = OTLPMetricExporter(endpoint=endpoint)
    reader = PeriodicExportingMetricReader(exporter, export_interval_millis=interval_seconds * 1000)
    resource = Resource.create({SERVICE_NAME: 'engineering-metrics', SERVICE_VERSION: __version__})
    logging.info(f"Exporting metrics to {endpoint} every {interval_seconds}s")
    return MeterProvider(metric_readers=[reader], resource=resource)


class MetricsPublisher:
    """Registers observable gauges whose callbacks read from an in-memory snapshot."""

    def __init__(self, meter: Meter, days: int):
        """Initialize the publisher.

        Args:
            meter: Meter to register gauges on
            days: Lookback window, attached to every observation
        """
        self.meter = meter
        self.days = days

    def _attributes(self, user: str) -> dict:
        return {'user': user, 'days': str(self.days)}

    def _register(self, gauges: list, compute: Callable[[], Iterable], user_attr: str):
        for name, attr, description, unit in gauges:
            self.meter.create_observable_gauge(
                name,
                callbacks=[self._callback(compute, attr, user_attr)],
                unit=unit,
                description=description
            )

    def _callback(self, compute: Callable[[], Iterable], attr: str, user_attr: str):
        def observe(options: CallbackOptions) -> Iterable[Observation]:
            # Recomputed on every export
            for stat in compute():
                yield Observation(float(getattr(stat, attr)), self._attributes(getattr(stat, user_attr)))
        return observe

    def publish_pr_activity(self, user_prs: List[UserPrs]):
        self._register(PR_ACTIVITY_GAUGES, lambda: compute_activity_stats(user_prs), 'user')
        logging.info(f"Published PR activity metrics for {len(user_prs)} user(s)")

    def publish_review_stats(self, user_prs: List[UserPrs], excluded_users=None):
        self._register(REVIEW_GAUGES, lambda: compute_review_stats_for_team(user_prs, excluded_users), 'user')
        logging.info("Published review participation metrics")

    def publish_cursor_usage(self, stats: List[CursorUserStats]):
        self._register(CURSOR_GAUGES, lambda: stats, 'email')
        logging.info(f"Published Cursor metrics for {len(stats)} user(s)")

    def publish_builder_usage(self, stats: List[BuilderUserStats]):
        self._register(BUILDER_GAUGES, lambda: stats, 'user_email')
        logging.info(f"Published Builder.io Fusion metrics for {len(stats)} user(s)")
