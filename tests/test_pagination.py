"""
Unit tests for search pagination and the organization post-filter
"""

from datetime import date
from unittest.mock import Mock, call

import pytest
import requests

from engmetrics.analyzer import GitHubActivityLoader, filter_for_org
from engmetrics.api_client import SearchPage
from engmetrics.models import User

from conftest import make_issue


@pytest.fixture
def api_client():
    return Mock()


@pytest.fixture
def loader(api_client):
    return GitHubActivityLoader(api_client, org='acme', days=30, per_page=2, today=date(2024, 6, 1))


class TestFetchAllIssues:
    """Test cases for Link-header driven pagination."""

    def test_follows_next_relation(self, loader, api_client):
        """Two pages where only the first announces a next page make two requests."""
        first, second, third = make_issue(number=1), make_issue(number=2), make_issue(number=3)
        api_client.search_issues.side_effect = [
            SearchPage(items=[first, second], has_next=True),
            SearchPage(items=[third], has_next=False),
        ]

        issues = loader._fetch_all_issues('is:pr')

        assert [i.number for i in issues] == [1, 2, 3]
        assert api_client.search_issues.call_args_list == [
            call('is:pr', page=1, per_page=2),
            call('is:pr', page=2, per_page=2),
        ]

    def test_empty_page_stops(self, loader, api_client):
        api_client.search_issues.side_effect = [
            SearchPage(items=[make_issue(number=1)], has_next=True),
            SearchPage(items=[], has_next=True),
        ]

        issues = loader._fetch_all_issues('is:pr')

        assert len(issues) == 1
        assert api_client.search_issues.call_count == 2

    def test_no_results(self, loader, api_client):
        api_client.search_issues.return_value = SearchPage()

        assert loader._fetch_all_issues('is:pr') == []

    def test_errors_propagate_without_retry(self, loader, api_client):
        api_client.search_issues.side_effect = [
            SearchPage(items=[make_issue(number=1)], has_next=True),
            requests.exceptions.ConnectionError("reset"),
        ]

        with pytest.raises(requests.exceptions.ConnectionError):
            loader._fetch_all_issues('is:pr')
        assert api_client.search_issues.call_count == 2


class TestFilterForOrg:
    """Test cases for the organization post-filter."""

    def test_keeps_matching_records_in_order(self):
        issues = [make_issue(number=1, repo='acme/web'), make_issue(number=2, repo='other/web'),
                  make_issue(number=3, repo='acme/api')]

        assert [i.number for i in filter_for_org(issues, 'acme')] == [1, 3]

    def test_case_insensitive(self):
        issues = [make_issue(repo='Acme/web')]
        assert filter_for_org(issues, 'ACME') == issues

    def test_substring_match_accepts_similar_org_names(self):
        issues = [make_issue(repo='acme-labs/web')]
        assert filter_for_org(issues, 'acme') == issues

    def test_matches_repository_url_not_issue_path(self):
        issues = [make_issue(repo='acme/web')]
        assert filter_for_org(issues, 'issues') == []


class TestLoader:
    """Test cases for the full loading pipeline."""

    def test_query_uses_lookback_window(self, loader, api_client):
        assert loader.build_query() == 'is:pr org:acme created:>2024-05-02'
        api_client.get_team_members.assert_not_called()

    def test_team_members_become_author_terms(self, loader, api_client):
        api_client.get_team_members.return_value = [User('alice'), User('bob')]

        query = loader.build_query(team='frontend')

        assert query == 'is:pr org:acme author:alice author:bob created:>2024-05-02'
        api_client.get_team_members.assert_called_once_with('acme', 'frontend')

    def test_empty_team_searches_nothing(self, loader, api_client):
        api_client.get_team_members.return_value = []

        assert loader.load_prs(team='nobody') == []
        api_client.search_issues.assert_not_called()

    def test_without_org_filter(self, api_client):
        loader = GitHubActivityLoader(api_client, org='acme', author='alice', today=date(2024, 6, 1))
        api_client.search_issues.return_value = SearchPage(items=[make_issue(repo='other/web', login='alice')])

        user_prs = loader.load_prs(filter_for_org=False)

        assert api_client.search_issues.call_args[0][0] == 'is:pr author:alice created:>2024-05-02'
        assert len(user_prs) == 1

    def test_groups_by_user_and_drops_bots(self, loader, api_client):
        api_client.search_issues.return_value = SearchPage(items=[
            make_issue(number=1, login='alice'),
            make_issue(number=2, login='github-actions'),
            make_issue(number=3, repo='other/web', login='bob'),
            make_issue(number=4, login='alice'),
        ])

        user_prs = loader.load_prs()

        assert [g.user.login for g in user_prs] == ['alice']
        assert [pr.number for pr in user_prs[0].prs] == [1, 4]
        api_client.post_graphql.assert_not_called()
