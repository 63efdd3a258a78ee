"""
Unit tests for the GitHub API client
"""

from datetime import date
from unittest.mock import Mock

import pytest
import requests

from engmetrics.api_client import GitHubAPIClient, build_search_query, has_next_page
from engmetrics.errors import GitHubAPIError

from conftest import issue_data


class TestBuildSearchQuery:
    """Test cases for search query construction."""

    def test_org_and_team_members(self):
        query = build_search_query(org='acme', team_members=['alice', 'bob'], start_date=date(2024, 5, 1))
        assert query == 'is:pr org:acme author:alice author:bob created:>2024-05-01'

    def test_author_replaces_team_members(self):
        query = build_search_query(org='acme', team_members=['alice', 'bob'], author='carol')
        assert query == 'is:pr org:acme author:carol'

    def test_all_terms(self):
        query = build_search_query(
            org='acme',
            author='alice',
            start_date=date(2024, 5, 1),
            end_date=date(2024, 6, 1),
            merged_only=True,
            repo='acme/web'
        )
        assert query == ('is:pr org:acme author:alice created:>2024-05-01 created:<2024-06-01 '
                         'is:merged repo:acme/web')

    def test_minimal(self):
        assert build_search_query() == 'is:pr'


class TestHasNextPage:
    """Test cases for Link header continuation."""

    def test_next_relation(self):
        link = ('<https://api.github.com/search/issues?page=2>; rel="next", '
                '<https://api.github.com/search/issues?page=5>; rel="last"')
        assert has_next_page(link)

    def test_last_page(self):
        link = '<https://api.github.com/search/issues?page=1>; rel="first", <...>; rel="prev"'
        assert not has_next_page(link)

    def test_missing_header(self):
        assert not has_next_page(None)


class TestClientSetup:
    """Test cases for session configuration."""

    def test_token_header(self):
        client = GitHubAPIClient(token='secret')
        assert client.session.headers['Authorization'] == 'Bearer secret'
        assert client.session.headers['Accept'] == 'application/vnd.github.v3+json'

    def test_no_token(self):
        client = GitHubAPIClient()
        assert 'Authorization' not in client.session.headers

    def test_requests_are_not_retried(self):
        client = GitHubAPIClient(token='secret')
        assert client.session.get_adapter('https://api.github.com').max_retries.total == 0

    def test_context_manager_closes_session(self):
        with GitHubAPIClient(token='secret') as client:
            client.session = Mock()
        client.session.close.assert_called_once()


class TestSearchIssues:
    """Test cases for a single search page."""

    @pytest.fixture
    def client(self):
        client = GitHubAPIClient(token='secret')
        client.session = Mock()
        return client

    def test_parses_page(self, client, mock_response):
        client.session.get.return_value = mock_response(
            {'total_count': 2, 'items': [issue_data(number=1), issue_data(number=2)]},
            headers={'Link': '<https://api.github.com/search/issues?page=2>; rel="next"'}
        )

        page = client.search_issues('is:pr org:acme', page=1, per_page=2)

        assert [issue.number for issue in page.items] == [1, 2]
        assert page.has_next
        assert page.total_count == 2
        client.session.get.assert_called_once_with(
            'https://api.github.com/search/issues',
            params={'q': 'is:pr org:acme', 'page': 1, 'per_page': 2},
            timeout=None
        )

    def test_http_error_propagates(self, client, mock_response):
        response = mock_response({})
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("422 Unprocessable Entity")
        client.session.get.return_value = response

        with pytest.raises(requests.exceptions.HTTPError):
            client.search_issues('is:pr')

    def test_network_error_propagates(self, client):
        client.session.get.side_effect = requests.exceptions.ConnectionError("Network error")

        with pytest.raises(requests.exceptions.ConnectionError):
            client.search_issues('is:pr')

    def test_rate_limit_exhausted(self, client, mock_response):
        client.session.get.return_value = mock_response(
            {}, status_code=403, headers={'X-RateLimit-Remaining': '0', 'X-RateLimit-Reset': '1700000000'}
        )

        with pytest.raises(GitHubAPIError):
            client.search_issues('is:pr')

    def test_get_team_members(self, client, mock_response):
        client.session.get.return_value = mock_response([{'login': 'alice'}, {'login': 'bob'}])

        members = client.get_team_members('acme', 'frontend')

        assert [m.login for m in members] == ['alice', 'bob']
        assert client.session.get.call_args[0][0] == 'https://api.github.com/orgs/acme/teams/frontend/members'


class TestGraphQL:
    """Test cases for GraphQL requests."""

    @pytest.fixture
    def client(self):
        client = GitHubAPIClient(token='secret')
        client.session = Mock()
        return client

    def test_returns_data(self, client, mock_response):
        client.session.post.return_value = mock_response({'data': {'repo1': {}}})

        assert client.post_graphql('query { viewer { login } }') == {'repo1': {}}
        assert client.session.post.call_args[1]['json'] == {'query': 'query { viewer { login } }'}

    def test_errors_raise(self, client, mock_response):
        client.session.post.return_value = mock_response({'data': None, 'errors': [{'message': 'Bad query'}]})

        with pytest.raises(GitHubAPIError, match='Bad query'):
            client.post_graphql('query { nope }')

    def test_pr_details_query_aliases(self):
        query = GitHubAPIClient.build_pr_details_query('acme', 'web', [5, 9])

        assert query.startswith('repository(owner: "acme", name: "web") {')
        assert 'pullRequest1: pullRequest(number: 5)' in query
        assert 'pullRequest2: pullRequest(number: 9)' in query
        assert 'additions deletions changedFiles totalCommentsCount' in query
        assert 'reviews(' not in query
        assert 'comments(first' not in query

    def test_pr_details_query_nested_selections(self):
        query = GitHubAPIClient.build_pr_details_query('acme', 'web', [5], fetch_reviews=True, fetch_comments=True)

        assert 'reviews(first: 100)' in query
        assert 'comments(first: 100)' in query
        assert 'reviewThreads(first: 50)' in query
