"""AI assistant usage sources: Cursor team usage and Builder.io Fusion metrics."""

import base64
import logging
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Dict, List, Optional

import requests


CURSOR_API_URL = 'https://api.cursor.com'
BUILDER_API_URL = 'https://api.builder.io'


def _epoch_millis(day: date) -> int:
    return int(datetime.combine(day, time.min, tzinfo=timezone.utc).timestamp() * 1000)


class CursorAPIClient:
    """Client for the Cursor team admin API."""

    def __init__(self, api_key: str, base_url: str = CURSOR_API_URL, timeout: float = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()
        # Basic auth with the API key as user name and an empty password
        credentials = base64.b64encode(f"{api_key}:".encode()).decode()
        self.session.headers.update({
            'Authorization': f'Basic {credentials}',
            'Content-Type': 'application/json'
        })

    def close(self):
        self.session.close()

    def get_daily_usage(self, start_date: date, end_date: date) -> List[Dict]:
        """Fetch per-user daily usage rows for the team.

        Args:
            start_date: First day (UTC midnight)
            end_date: Last day (UTC midnight)

        Returns:
            Daily usage rows, one per user and day
        """
        response = self.session.post(
            f"{self.base_url}/teams/daily-usage-data",
            json={'startDate': _epoch_millis(start_date), 'endDate': _epoch_millis(end_date)},
            timeout=self.timeout
        )
        response.raise_for_status()
        rows = response.json().get('data', [])
        logging.info(f"Received {len(rows)} Cursor daily usage record(s)")
        return rows


class BuilderAPIClient:
    """Client for the Builder.io Fusion organization metrics API."""

    def __init__(self, private_key: str, base_url: str = BUILDER_API_URL, timeout: float = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            'Authorization': f'Bearer {private_key}',
            'Content-Type': 'application/json'
        })

    def close(self):
        self.session.close()

    def get_organization_user_metrics(self, start_date: date, end_date: date) -> List[Dict]:
        """Fetch per-user Fusion metrics for a date range."""
        response = self.session.get(
            f"{self.base_url}/api/v1/orgs/fusion/users",
            params={
                'startDate': start_date.isoformat(),
                'endDate': end_date.isoformat(),
                'granularity': 'day'
            },
            timeout=self.timeout
        )
        response.raise_for_status()
        rows = response.json().get('data', [])
        logging.info(f"Received Builder.io metrics for {len(rows)} user(s)")
        return rows


@dataclass
class CursorUserStats:
    """Cursor usage for one user, aggregated over the lookback window."""
    email: str
    days_active: int = 0
    lines_added: int = 0
    lines_deleted: int = 0
    accepted_lines_added: int = 0
    accepted_lines_deleted: int = 0
    applies: int = 0
    accepts: int = 0
    rejects: int = 0
    acceptance_rate: float = 0.0
    tabs_shown: int = 0
    tabs_accepted: int = 0
    tab_acceptance_rate: float = 0.0
    composer_requests: int = 0
    chat_requests: int = 0
    agent_requests: int = 0
    total_ai_requests: int = 0
    cmdk_usages: int = 0
    subscription_included_reqs: int = 0
    api_key_reqs: int = 0
    usage_based_reqs: int = 0
    bugbot_usages: int = 0
    most_common_model: str = 'N/A'
    most_common_apply_extension: str = 'N/A'
    most_common_tab_extension: str = 'N/A'
    latest_client_version: str = 'N/A'


@dataclass
class BuilderUserStats:
    """Builder.io Fusion usage for one user."""
    user_id: str
    user_email: str
    last_active: Optional[str] = None
    design_exports: int = 0
    lines_added: int = 0
    lines_removed: int = 0
    lines_accepted: int = 0
    total_lines: int = 0
    events: int = 0
    user_prompts: int = 0
    credits_used: float = 0.0
    prs_merged: int = 0
    tokens_total: int = 0
    tokens_input: int = 0
    tokens_output: int = 0
    tokens_cache_write: int = 0
    tokens_cache_input: int = 0


def _rate(numerator: int, denominator: int) -> float:
    return numerator / denominator * 100 if denominator > 0 else 0.0


def _most_common(rows: List[Dict], key: str) -> str:
    values = Counter(row.get(key) for row in rows if row.get(key))
    if not values:
        return 'N/A'
    return values.most_common(1)[0][0]


def _total(rows: List[Dict], key: str) -> int:
    return sum(row.get(key, 0) or 0 for row in rows)


def aggregate_cursor_usage(rows: List[Dict]) -> List[CursorUserStats]:
    """Aggregate daily Cursor rows per user email.

    Returns:
        One CursorUserStats per email, most AI requests first
    """
    by_email: Dict[str, List[Dict]] = defaultdict(list)
    for row in rows:
        by_email[row['email']].append(row)

    stats = []
    for email, user_rows in by_email.items():
        applies = _total(user_rows, 'totalApplies')
        accepts = _total(user_rows, 'totalAccepts')
        tabs_shown = _total(user_rows, 'totalTabsShown')
        tabs_accepted = _total(user_rows, 'totalTabsAccepted')
        composer = _total(user_rows, 'composerRequests')
        chat = _total(user_rows, 'chatRequests')
        agent = _total(user_rows, 'agentRequests')
        latest = max(user_rows, key=lambda r: r.get('date', 0))

        stats.append(CursorUserStats(
            email=email,
            days_active=sum(1 for r in user_rows if r.get('isActive')),
            lines_added=_total(user_rows, 'totalLinesAdded'),
            lines_deleted=_total(user_rows, 'totalLinesDeleted'),
            accepted_lines_added=_total(user_rows, 'acceptedLinesAdded'),
            accepted_lines_deleted=_total(user_rows, 'acceptedLinesDeleted'),
            applies=applies,
            accepts=accepts,
            rejects=_total(user_rows, 'totalRejects'),
            acceptance_rate=_rate(accepts, applies),
            tabs_shown=tabs_shown,
            tabs_accepted=tabs_accepted,
            tab_acceptance_rate=_rate(tabs_accepted, tabs_shown),
            composer_requests=composer,
            chat_requests=chat,
            agent_requests=agent,
            total_ai_requests=composer + chat + agent,
            cmdk_usages=_total(user_rows, 'cmdkUsages'),
            subscription_included_reqs=_total(user_rows, 'subscriptionIncludedReqs'),
            api_key_reqs=_total(user_rows, 'apiKeyReqs'),
            usage_based_reqs=_total(user_rows, 'usageBasedReqs'),
            bugbot_usages=_total(user_rows, 'bugbotUsages'),
            most_common_model=_most_common(user_rows, 'mostUsedModel'),
            most_common_apply_extension=_most_common(user_rows, 'applyMostUsedExtension'),
            most_common_tab_extension=_most_common(user_rows, 'tabMostUsedExtension'),
            latest_client_version=latest.get('clientVersion') or 'N/A',
        ))

    return sorted(stats, key=lambda s: s.total_ai_requests, reverse=True)


def _parse_credits(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def builder_user_stats(rows: List[Dict]) -> List[BuilderUserStats]:
    """Convert Builder.io user metric rows, dropping rows without an email.

    Returns:
        BuilderUserStats, most events first
    """
    stats = []
    for row in rows:
        metrics = row.get('metrics') or {}
        tokens = metrics.get('tokens') or {}
        stats.append(BuilderUserStats(
            user_id=row.get('userId', ''),
            user_email=row.get('userEmail') or '',
            last_active=row.get('lastActive'),
            design_exports=row.get('designExports', 0),
            lines_added=metrics.get('linesAdded', 0),
            lines_removed=metrics.get('linesRemoved', 0),
            lines_accepted=metrics.get('linesAccepted', 0),
            total_lines=metrics.get('totalLines', 0),
            events=metrics.get('events', 0),
            user_prompts=metrics.get('userPrompts', 0),
            credits_used=_parse_credits(metrics.get('creditsUsed', '0')),
            prs_merged=metrics.get('prsMerged', 0),
            tokens_total=tokens.get('total', 0),
            tokens_input=tokens.get('input', 0),
            tokens_output=tokens.get('output', 0),
            tokens_cache_write=tokens.get('cacheWrite', 0),
            tokens_cache_input=tokens.get('cacheInput', 0),
        ))

    stats = [s for s in stats if s.user_email.strip()]
    return sorted(stats, key=lambda s: s.events, reverse=True)
