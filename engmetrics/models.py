"""Data models for GitHub PR activity analysis."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, List, Optional


GITHUB_TIMESTAMP_FORMAT = '%Y-%m-%dT%H:%M:%SZ'


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a GitHub timestamp (e.g. '2024-05-01T12:00:00Z') into an aware UTC datetime."""
    if not value:
        return None
    return datetime.strptime(value, GITHUB_TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


class ReviewState:
    """Review states reported by the GitHub GraphQL API."""
    PENDING = 'PENDING'
    COMMENTED = 'COMMENTED'
    APPROVED = 'APPROVED'
    CHANGES_REQUESTED = 'CHANGES_REQUESTED'
    DISMISSED = 'DISMISSED'


@dataclass(frozen=True)
class User:
    """A GitHub identity."""
    login: str

    @classmethod
    def from_api(cls, data: Optional[Dict]) -> 'User':
        # Deleted accounts come back as null authors
        if not data:
            return cls(login='ghost')
        return cls(login=data['login'])


@dataclass(frozen=True)
class Comment:
    """A PR comment (top-level or inside a review thread)."""
    author: User
    body: str = ''
    created_at: Optional[datetime] = None

    @classmethod
    def from_api(cls, data: Dict) -> 'Comment':
        return cls(
            author=User.from_api(data.get('author')),
            body=data.get('bodyText') or data.get('body') or '',
            created_at=parse_timestamp(data.get('createdAt')),
        )


@dataclass(frozen=True)
class Review:
    """A submitted (or pending) PR review."""
    author: User
    state: str
    body: str = ''
    created_at: Optional[datetime] = None

    @classmethod
    def from_api(cls, data: Dict) -> 'Review':
        return cls(
            author=User.from_api(data.get('author')),
            state=data.get('state', ReviewState.COMMENTED),
            body=data.get('body') or '',
            created_at=parse_timestamp(data.get('createdAt')),
        )


def _nodes(data: Dict, key: str) -> List[Dict]:
    return (data.get(key) or {}).get('nodes') or []


@dataclass(frozen=True)
class PullRequestDetails:
    """Enrichment payload fetched through GraphQL for a single PR."""
    number: int
    url: str
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    total_comments_count: int = 0
    title: str = ''
    author: Optional[User] = None
    comments: List[Comment] = field(default_factory=list)
    reviews: List[Review] = field(default_factory=list)
    thread_comments: List[Comment] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict) -> 'PullRequestDetails':
        thread_comments = [
            Comment.from_api(comment)
            for thread in _nodes(data, 'reviewThreads')
            for comment in _nodes(thread, 'comments')
        ]
        return cls(
            number=data['number'],
            url=data['url'],
            additions=data.get('additions', 0),
            deletions=data.get('deletions', 0),
            changed_files=data.get('changedFiles', 0),
            total_comments_count=data.get('totalCommentsCount', 0),
            title=data.get('title', ''),
            author=User.from_api(data.get('author')),
            comments=[Comment.from_api(c) for c in _nodes(data, 'comments')],
            reviews=[Review.from_api(r) for r in _nodes(data, 'reviews')],
            thread_comments=thread_comments,
        )

    def all_comments(self) -> List[Comment]:
        """Top-level conversation comments plus inline review-thread comments."""
        return self.comments + self.thread_comments


@dataclass(frozen=True)
class Issue:
    """An issue/PR record as returned by the search API.

    Records are immutable; enrichment data is attached with ``with_details``,
    which returns a new record.
    """
    url: str
    repository_url: str
    html_url: str
    number: int
    title: str
    user: User
    state: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    comments: int = 0
    merged_at: Optional[datetime] = None
    body: Optional[str] = None
    details: Optional[PullRequestDetails] = None

    @classmethod
    def from_api(cls, data: Dict) -> 'Issue':
        pull_request = data.get('pull_request') or {}
        return cls(
            url=data['url'],
            repository_url=data['repository_url'],
            html_url=data['html_url'],
            number=data['number'],
            title=data.get('title', ''),
            user=User.from_api(data.get('user')),
            state=data['state'],
            created_at=parse_timestamp(data['created_at']),
            updated_at=parse_timestamp(data.get('updated_at')),
            closed_at=parse_timestamp(data.get('closed_at')),
            comments=data.get('comments', 0),
            merged_at=parse_timestamp(pull_request.get('merged_at')),
            body=data.get('body'),
        )

    @property
    def is_open(self) -> bool:
        return self.state == 'open'

    @property
    def is_merged(self) -> bool:
        return self.merged_at is not None

    def days_open(self, now: Optional[datetime] = None) -> float:
        """Whole hours between creation and close (or now), expressed in days."""
        end = self.closed_at or now or datetime.now(timezone.utc)
        hours = int((end - self.created_at).total_seconds() / 3600)
        return abs(hours) / 24.0

    def with_details(self, details: Optional[PullRequestDetails]) -> 'Issue':
        return replace(self, details=details)


@dataclass
class UserPrs:
    """A user paired with the PRs attributed to them."""
    user: User
    prs: List[Issue] = field(default_factory=list)


@dataclass
class ActivityStats:
    """PR activity for one user across all matched repositories."""
    user: str
    total: int = 0
    open: int = 0
    merged: int = 0
    avg_days_open: float = 0.0
    median_days_open: float = 0.0
    comments: int = 0
    additions: int = 0
    deletions: int = 0
    files_changed: int = 0


@dataclass
class RepoStats:
    """PR activity for one user inside a single repository."""
    user: str
    repo: str
    total: int = 0
    open: int = 0
    merged: int = 0
    closed_without_merge: int = 0
    avg_days_open: float = 0.0
    median_days_open: float = 0.0
    comments: int = 0
    additions: int = 0
    deletions: int = 0
    files_changed: int = 0


@dataclass
class ReviewStats:
    """Review participation for one reviewer."""
    user: str
    prs_reviewed: int = 0
    comments_left: int = 0
    prs_approved: int = 0
    prs_requested_changes: int = 0
    reviews_pending: int = 0


@dataclass
class UserReviewActivity:
    """A PR paired with one reviewer's own reviews and comments on it."""
    pr: Issue
    reviews: List[Review] = field(default_factory=list)
    comments: List[Comment] = field(default_factory=list)
