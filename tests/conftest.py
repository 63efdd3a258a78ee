"""Shared fixtures building GitHub search and GraphQL payloads."""

from datetime import datetime, timezone

import pytest

from engmetrics.models import Comment, Issue, PullRequestDetails, Review, User, UserPrs


NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def issue_data(number=1, login='alice', repo='acme/web', state='closed',
               created_at='2024-05-01T00:00:00Z', closed_at='2024-05-03T00:00:00Z',
               merged_at=None, comments=0, title='Change', body='Body'):
    """A search/issues item as returned by the REST API."""
    return {
        'url': f'https://api.github.com/repos/{repo}/issues/{number}',
        'repository_url': f'https://api.github.com/repos/{repo}',
        'html_url': f'https://github.com/{repo}/pull/{number}',
        'number': number,
        'title': title,
        'user': {'login': login},
        'state': state,
        'created_at': created_at,
        'updated_at': closed_at or created_at,
        'closed_at': closed_at if state == 'closed' else None,
        'comments': comments,
        'pull_request': {'merged_at': merged_at},
        'body': body,
    }


def make_issue(**kwargs) -> Issue:
    return Issue.from_api(issue_data(**kwargs))


def make_details(issue: Issue, additions=0, deletions=0, changed_files=0, reviews=(), comments=()):
    """Details for an issue; reviews are (login, state) pairs, comments are logins."""
    return PullRequestDetails(
        number=issue.number,
        url=issue.html_url,
        additions=additions,
        deletions=deletions,
        changed_files=changed_files,
        author=issue.user,
        reviews=[Review(author=User(login), state=state) for login, state in reviews],
        comments=[Comment(author=User(login), body=f'comment by {login}') for login in comments],
    )


def group(login, *prs) -> UserPrs:
    return UserPrs(user=User(login), prs=list(prs))


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def mock_response():
    """Factory for a successful requests.Response double."""
    from unittest.mock import Mock

    def _build(payload, status_code=200, headers=None):
        response = Mock()
        response.status_code = status_code
        response.headers = headers or {}
        response.json.return_value = payload
        return response
    return _build
