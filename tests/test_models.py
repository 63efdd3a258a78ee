"""
Unit tests for the data models
"""

from datetime import datetime, timezone

from engmetrics.models import Issue, PullRequestDetails, User, parse_timestamp

from conftest import issue_data, make_details, make_issue


class TestParseTimestamp:
    """Test cases for GitHub timestamp parsing."""

    def test_parses_to_aware_utc(self):
        """Timestamps become timezone-aware UTC datetimes."""
        parsed = parse_timestamp('2024-05-01T12:30:00Z')
        assert parsed == datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)

    def test_missing_value(self):
        assert parse_timestamp(None) is None
        assert parse_timestamp('') is None


class TestIssueFromApi:
    """Test cases for building Issue records from search results."""

    def test_fields(self):
        issue = Issue.from_api(issue_data(number=7, login='bob', repo='acme/api', comments=3))

        assert issue.number == 7
        assert issue.user == User('bob')
        assert issue.repository_url == 'https://api.github.com/repos/acme/api'
        assert issue.html_url == 'https://github.com/acme/api/pull/7'
        assert issue.comments == 3
        assert issue.details is None

    def test_merged_at_comes_from_pull_request(self):
        issue = make_issue(merged_at='2024-05-02T00:00:00Z')
        assert issue.is_merged
        assert not issue.is_open

    def test_closed_without_merge(self):
        issue = make_issue()
        assert not issue.is_merged
        assert not issue.is_open

    def test_open_issue(self):
        issue = make_issue(state='open')
        assert issue.is_open
        assert issue.closed_at is None

    def test_deleted_author_becomes_ghost(self):
        data = issue_data()
        data['user'] = None
        assert Issue.from_api(data).user.login == 'ghost'


class TestDaysOpen:
    """Test cases for elapsed time calculation."""

    def test_closed_pr_uses_close_time(self):
        issue = make_issue(created_at='2024-05-01T00:00:00Z', closed_at='2024-05-03T12:00:00Z')
        assert issue.days_open() == 2.5

    def test_partial_hours_are_truncated(self):
        issue = make_issue(created_at='2024-05-01T00:00:00Z', closed_at='2024-05-01T01:59:59Z')
        assert issue.days_open() == 1 / 24

    def test_open_pr_uses_reference_time(self, now):
        issue = make_issue(state='open', created_at='2024-05-30T00:00:00Z')
        assert issue.days_open(now) == 2.0

    def test_never_negative(self, now):
        issue = make_issue(state='open', created_at='2024-06-03T00:00:00Z')
        assert issue.days_open(now) == 2.0


class TestDetails:
    """Test cases for enrichment payloads."""

    def test_with_details_returns_copy(self):
        issue = make_issue()
        details = make_details(issue, additions=10)

        enriched = issue.with_details(details)

        assert enriched.details is details
        assert issue.details is None

    def test_from_api_collects_thread_comments(self):
        data = {
            'number': 1,
            'url': 'https://github.com/acme/web/pull/1',
            'additions': 5,
            'deletions': 2,
            'changedFiles': 1,
            'totalCommentsCount': 3,
            'title': 'Change',
            'author': {'login': 'alice'},
            'comments': {'nodes': [{'author': {'login': 'bob'}, 'bodyText': 'LGTM', 'createdAt': '2024-05-01T00:00:00Z'}]},
            'reviewThreads': {'nodes': [
                {'comments': {'nodes': [{'author': {'login': 'carol'}, 'bodyText': 'nit'},
                                        {'author': None, 'bodyText': 'old'}]}},
            ]},
            'reviews': {'nodes': [{'author': {'login': 'bob'}, 'state': 'APPROVED', 'body': ''}]},
        }

        details = PullRequestDetails.from_api(data)

        assert details.changed_files == 1
        assert [c.author.login for c in details.all_comments()] == ['bob', 'carol', 'ghost']
        assert details.reviews[0].state == 'APPROVED'

    def test_from_api_without_nested_selections(self):
        details = PullRequestDetails.from_api({'number': 1, 'url': 'u', 'additions': 1})
        assert details.comments == []
        assert details.reviews == []
        assert details.all_comments() == []
