"""
Engineering Metrics CLI
Reports PR throughput, review participation and AI assistant usage, and
exports them as OpenTelemetry gauges.
"""

import argparse
import logging
import os
import sys
from datetime import date, timedelta
from typing import List, Optional

import anthropic
import requests
from dotenv import load_dotenv

from . import __version__
from .ai_usage import BuilderAPIClient, CursorAPIClient, aggregate_cursor_usage, builder_user_stats
from .analyzer import GitHubActivityLoader
from .api_client import GitHubAPIClient
from .credentials import (ANTHROPIC_API_KEY, BUILDER_PRIVATE_KEY, CURSOR_API_KEY, GITHUB_TOKEN,
                          CredentialStore)
from .errors import ConfigurationError, EngMetricsError
from .llm_reports import (CHANGELOG_PROMPT, DEFAULT_MODEL, QA_PLAN_PROMPT, changelog_request, generate_report,
                          qa_plan_request)
from .output import OutputFormatter
from .stats import (compute_activity_stats, compute_repo_stats, compute_review_activity_for_user,
                    compute_review_stats_for_team, sort_stats)
from .telemetry import MetricsPublisher, METER_NAME, create_meter_provider
from .user_filters import build_excluded_users


DEFAULT_ORG = 'builderio'
DEFAULT_DAYS = 30
DEFAULT_REPORT_DAYS = 7

ACTIVITY_SORT_KEYS = ['total', 'open', 'merged', 'avg_days_open', 'median_days_open', 'comments',
                      'additions', 'deletions', 'files_changed']
REVIEW_SORT_KEYS = ['prs_reviewed', 'comments_left', 'prs_approved', 'prs_requested_changes', 'reviews_pending']

# Stored key -> prompt label
CREDENTIAL_PROMPTS = [
    (GITHUB_TOKEN, 'GitHub token'),
    (ANTHROPIC_API_KEY, 'Anthropic API key'),
    (CURSOR_API_KEY, 'Cursor API key'),
    (BUILDER_PRIVATE_KEY, 'Builder.io private key'),
]


def configure_logging(level: Optional[str] = None):
    """Configure root logging from --log-level or the LOG_LEVEL environment variable."""
    log_level = (level or os.environ.get('LOG_LEVEL', 'INFO')).upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format='%(asctime)s %(levelname)s: %(message)s',
        datefmt='%m/%d/%Y %I:%M:%S %p'
    )


def excluded_users_from_env() -> set:
    """Default bot list plus the comma-separated EXCLUDED_USERS variable."""
    extra = [u for u in os.environ.get('EXCLUDED_USERS', '').split(',') if u.strip()]
    if extra:
        logging.info(f"Excluding users: {', '.join(extra)}")
    return build_excluded_users(extra)


def _formatter(args, full_details: bool = False) -> OutputFormatter:
    return OutputFormatter(
        days=args.days,
        full_details=full_details,
        output_format=args.format,
        use_color=sys.stdout.isatty()
    )


def _loader(args, client: GitHubAPIClient, excluded_users: set = None, **kwargs) -> GitHubActivityLoader:
    return GitHubActivityLoader(
        client,
        org=args.org,
        days=args.days,
        excluded_users=excluded_users if excluded_users is not None else excluded_users_from_env(),
        **kwargs
    )


def _github_client(store: CredentialStore) -> GitHubAPIClient:
    return GitHubAPIClient(store.get(GITHUB_TOKEN))


def cmd_config(args, store: CredentialStore) -> int:
    """Prompt for each credential and store the ones entered."""
    print("Engineering Metrics configuration")
    print("=" * 80)
    print(f"Credentials are stored in {store.path}")

    entered = {}
    for key, label in CREDENTIAL_PROMPTS:
        status = 'configured' if store.is_stored(key) else 'not configured'
        value = input(f"\nEnter {label} [{status}] (or press Enter to keep): ").strip()
        if value:
            entered[key] = value

    if entered:
        store.update(entered)
        print("\nCredentials saved.")
    else:
        print("\nNo changes.")
    return 0


def cmd_rate_limit(args, store: CredentialStore) -> int:
    with _github_client(store) as client:
        status = client.rate_limit()

    if args.format == 'json':
        print(OutputFormatter.to_json(status))
        return 0

    for name, resource in sorted(status.get('resources', {}).items()):
        print(f"{name:<25} {resource.get('remaining', 0):>6}/{resource.get('limit', 0):<6} "
              f"resets at {resource.get('reset')}")
    return 0


def cmd_team_pr_stats(args, store: CredentialStore) -> int:
    with _github_client(store) as client:
        loader = _loader(args, client, team=args.team, author=args.author, full_details=args.full_details)
        user_prs = loader.load_prs()

    stats = sort_stats(compute_activity_stats(user_prs), args.sort_by or 'total')
    _formatter(args, args.full_details).print_activity_stats(stats)
    return 0


def cmd_user_pr_stats(args, store: CredentialStore) -> int:
    if not args.author:
        raise ConfigurationError("user-pr-stats requires --author")

    with _github_client(store) as client:
        loader = _loader(args, client, author=args.author, full_details=args.full_details)
        user_prs = loader.load_prs(filter_for_org=False)

    stats = sort_stats(compute_repo_stats(user_prs), args.sort_by or 'total')
    _formatter(args, args.full_details).print_repo_stats(args.author, stats)
    return 0


def cmd_team_review_participation(args, store: CredentialStore) -> int:
    excluded_users = excluded_users_from_env()
    with _github_client(store) as client:
        loader = _loader(args, client, excluded_users=excluded_users, team=args.team, author=args.author,
                         full_details=True, fetch_reviews=True, fetch_comments=True)
        user_prs = loader.load_prs()

    stats = compute_review_stats_for_team(user_prs, excluded_users)
    stats = sort_stats(stats, args.sort_by or 'prs_reviewed')
    _formatter(args).print_review_stats(stats)
    return 0


def cmd_user_review_activity(args, store: CredentialStore) -> int:
    if not args.reviewer:
        raise ConfigurationError("user-review-activity requires --reviewer")

    with _github_client(store) as client:
        loader = _loader(args, client, team=args.team, author=args.author,
                         full_details=True, fetch_reviews=True, fetch_comments=True)
        user_prs = loader.load_prs()

    activity = compute_review_activity_for_user(user_prs, args.reviewer)
    _formatter(args).print_review_activity(args.reviewer, activity)
    return 0


def _write_report(args, store: CredentialStore, prefix: str, system_prompt: str, build_request) -> int:
    api_key = store.get(ANTHROPIC_API_KEY)
    if not api_key:
        raise ConfigurationError("An Anthropic API key is required; run the config command or set ANTHROPIC_API_KEY")

    with _github_client(store) as client:
        loader = _loader(args, client, team=args.team, author=args.author,
                         merged_only=True, repo=args.repo)
        prs = loader.load_issues()
        since = loader.start_date

    if not prs:
        print(f"No merged PRs found in the last {args.days} days.")
        return 0

    report = generate_report(api_key, system_prompt, build_request(prs), model=args.model)
    filename = os.path.join(args.output_dir, f"{prefix}_{since.isoformat()}_{date.today().isoformat()}.md")
    with open(filename, 'w', encoding='utf-8') as f:
        f.write(report)

    print(f"Wrote {filename} from {len(prs)} merged PR(s)")
    return 0


def cmd_changelog(args, store: CredentialStore) -> int:
    return _write_report(args, store, 'changelog', CHANGELOG_PROMPT, changelog_request)


def cmd_qa_plan(args, store: CredentialStore) -> int:
    return _write_report(args, store, 'qa_plan', QA_PLAN_PROMPT, qa_plan_request)


def _collect_ai_usage(store: CredentialStore, days: int):
    """Fetch Cursor and Builder.io usage for the sources that have credentials."""
    end = date.today()
    start = end - timedelta(days=days)
    cursor_stats = builder_stats = None

    cursor_key = store.get(CURSOR_API_KEY)
    if cursor_key:
        cursor = CursorAPIClient(cursor_key)
        try:
            cursor_stats = aggregate_cursor_usage(cursor.get_daily_usage(start, end))
        finally:
            cursor.close()
    else:
        logging.info("No Cursor API key configured, skipping Cursor metrics")

    builder_key = store.get(BUILDER_PRIVATE_KEY)
    if builder_key:
        builder = BuilderAPIClient(builder_key)
        try:
            builder_stats = builder_user_stats(builder.get_organization_user_metrics(start, end))
        finally:
            builder.close()
    else:
        logging.info("No Builder.io private key configured, skipping Builder.io metrics")

    return cursor_stats, builder_stats


def cmd_collect_metrics(args, store: CredentialStore) -> int:
    if not args.dry_run and not args.otlp_url:
        raise ConfigurationError("collect-metrics requires --otlp-url unless --dry-run is given")

    excluded_users = excluded_users_from_env()
    with _github_client(store) as client:
        loader = _loader(args, client, excluded_users=excluded_users,
                         full_details=True, fetch_reviews=True, fetch_comments=True)
        user_prs = loader.load_prs_for_teams(args.team or [])

    cursor_stats, builder_stats = _collect_ai_usage(store, args.days)

    if args.dry_run:
        formatter = _formatter(args, full_details=True)
        formatter.print_activity_stats(sort_stats(compute_activity_stats(user_prs), 'total'))
        formatter.print_review_stats(
            sort_stats(compute_review_stats_for_team(user_prs, excluded_users), 'prs_reviewed'))
        if cursor_stats is not None:
            formatter.print_cursor_usage(cursor_stats)
        if builder_stats is not None:
            formatter.print_builder_usage(builder_stats)
        return 0

    provider = create_meter_provider(args.otlp_url, args.interval)
    try:
        publisher = MetricsPublisher(provider.get_meter(METER_NAME, __version__), args.days)
        publisher.publish_pr_activity(user_prs)
        publisher.publish_review_stats(user_prs, excluded_users)
        if cursor_stats is not None:
            publisher.publish_cursor_usage(cursor_stats)
        if builder_stats is not None:
            publisher.publish_builder_usage(builder_stats)
        provider.force_flush()
    finally:
        provider.shutdown()

    logging.info("Metrics collection complete")
    return 0


def _add_pr_options(parser: argparse.ArgumentParser, default_days: int = DEFAULT_DAYS, team: bool = True):
    parser.add_argument('--org', default=os.environ.get('GITHUB_ORG', DEFAULT_ORG),
                        help='GitHub organization (default: $GITHUB_ORG or %(default)s)')
    if team:
        parser.add_argument('--team', help='Team slug whose members are searched')
    parser.add_argument('--author', help='Only PRs authored by this login')
    parser.add_argument('--days', type=int, default=default_days, help='Lookback window in days (default: %(default)s)')


def _add_format_option(parser: argparse.ArgumentParser):
    parser.add_argument('--format', choices=['table', 'json'], default='table', help='Output format')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='engmetrics', description='Engineering metrics reports')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--log-level', help='Logging level (default: $LOG_LEVEL or INFO)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    sub = subparsers.add_parser('config', help='Store API credentials')
    sub.set_defaults(handler=cmd_config)

    sub = subparsers.add_parser('rate-limit', help='Show the GitHub API rate limit status')
    _add_format_option(sub)
    sub.set_defaults(handler=cmd_rate_limit)

    sub = subparsers.add_parser('team-pr-stats', help='PR activity per user')
    _add_pr_options(sub)
    _add_format_option(sub)
    sub.add_argument('--full-details', action='store_true', help='Include lines and files changed')
    sub.add_argument('--sort-by', choices=ACTIVITY_SORT_KEYS, help='Ranking column (default: total)')
    sub.set_defaults(handler=cmd_team_pr_stats)

    sub = subparsers.add_parser('user-pr-stats', help='PR activity of one user per repository')
    _add_pr_options(sub, team=False)
    _add_format_option(sub)
    sub.add_argument('--full-details', action='store_true', help='Include lines and files changed')
    sub.add_argument('--sort-by', choices=ACTIVITY_SORT_KEYS + ['closed_without_merge'],
                     help='Ranking column (default: total)')
    sub.set_defaults(handler=cmd_user_pr_stats)

    sub = subparsers.add_parser('team-review-participation', help='Review participation per reviewer')
    _add_pr_options(sub)
    _add_format_option(sub)
    sub.add_argument('--sort-by', choices=REVIEW_SORT_KEYS, help='Ranking column (default: prs_reviewed)')
    sub.set_defaults(handler=cmd_team_review_participation)

    sub = subparsers.add_parser('user-review-activity', help='Reviews and comments left by one reviewer')
    _add_pr_options(sub)
    _add_format_option(sub)
    sub.add_argument('--reviewer', help='Login of the reviewer')
    sub.set_defaults(handler=cmd_user_review_activity)

    for name, handler, help_text in [
        ('changelog', cmd_changelog, 'Generate a changelog from merged PRs'),
        ('qa-plan', cmd_qa_plan, 'Generate a QA test plan from merged PRs'),
    ]:
        sub = subparsers.add_parser(name, help=help_text)
        _add_pr_options(sub, default_days=DEFAULT_REPORT_DAYS)
        sub.add_argument('--repo', help="Only PRs from this 'owner/name' repository")
        sub.add_argument('--model', default=DEFAULT_MODEL, help='Anthropic model (default: %(default)s)')
        sub.add_argument('--output-dir', default='.', help='Directory for the generated file')
        sub.set_defaults(handler=handler)

    sub = subparsers.add_parser('collect-metrics', help='Export metrics over OTLP')
    sub.add_argument('--org', default=os.environ.get('GITHUB_ORG', DEFAULT_ORG),
                     help='GitHub organization (default: $GITHUB_ORG or %(default)s)')
    sub.add_argument('--team', action='append', help='Team slug (repeatable; default: whole organization)')
    sub.add_argument('--days', type=int, default=DEFAULT_DAYS, help='Lookback window in days (default: %(default)s)')
    sub.add_argument('--otlp-url', help='OTLP/HTTP metrics endpoint')
    sub.add_argument('--interval', type=float, default=5, help='Export interval in seconds (default: %(default)s)')
    sub.add_argument('--dry-run', action='store_true', help='Print the values instead of exporting them')
    sub.set_defaults(handler=cmd_collect_metrics, format='table')

    return parser


def main(argv: Optional[List[str]] = None, store: Optional[CredentialStore] = None) -> int:
    """Main entry point for the CLI."""
    # Load environment variables from .env file if it exists
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if store is None:
        store = CredentialStore()

    try:
        return args.handler(args, store)
    except ConfigurationError as e:
        parser.error(str(e))
    except (requests.RequestException, anthropic.APIError, EngMetricsError) as e:
        logging.error(f"{args.command} failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
