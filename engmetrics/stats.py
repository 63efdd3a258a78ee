"""Statistics over user-grouped PR sets.

Every function here is a pure reduction: inputs are not modified and the
results are new lists, returned in first-seen order. Callers rank them with
``sort_stats`` before handing them to presentation or export.
"""

from collections import defaultdict
from datetime import datetime
from typing import Callable, Dict, List, Optional, Set, Tuple

from .models import (
    ActivityStats, Comment, Issue, RepoStats, Review, ReviewState, ReviewStats,
    UserPrs, UserReviewActivity,
)
from .user_filters import DEFAULT_EXCLUDED_BOT_USERS


API_REPOS_PREFIX = 'https://api.github.com/repos/'


def repo_label(repository_url: str) -> str:
    """Turn an API repository URL into 'owner/name'."""
    if repository_url.startswith(API_REPOS_PREFIX):
        return repository_url[len(API_REPOS_PREFIX):]
    return repository_url


def average_days_open(prs: List[Issue], now: Optional[datetime] = None) -> float:
    """Mean days open across open and closed PRs; 0.0 for an empty list."""
    if not prs:
        return 0.0
    return sum(pr.days_open(now) for pr in prs) / len(prs)


def median_days_open(prs: List[Issue], now: Optional[datetime] = None) -> float:
    """Middle element of the sorted days-open values.

    Even-sized lists return the element at index n // 2 of the ascending
    list, not the mean of the two middle values.
    """
    if not prs:
        return 0.0
    values = sorted(pr.days_open(now) for pr in prs)
    return values[len(values) // 2]


def _size_totals(prs: List[Issue]) -> Tuple[int, int, int]:
    additions = sum(pr.details.additions if pr.details else 0 for pr in prs)
    deletions = sum(pr.details.deletions if pr.details else 0 for pr in prs)
    files_changed = sum(pr.details.changed_files if pr.details else 0 for pr in prs)
    return additions, deletions, files_changed


def _summarize(prs: List[Issue], now: Optional[datetime]) -> Dict:
    open_prs = [pr for pr in prs if pr.is_open]
    closed_prs = [pr for pr in prs if not pr.is_open]
    additions, deletions, files_changed = _size_totals(prs)
    return {
        'total': len(prs),
        'open': len(open_prs),
        'merged': sum(1 for pr in closed_prs if pr.is_merged),
        'avg_days_open': average_days_open(prs, now),
        'median_days_open': median_days_open(prs, now),
        'comments': sum(pr.comments for pr in prs),
        'additions': additions,
        'deletions': deletions,
        'files_changed': files_changed,
    }


def compute_activity_stats(user_prs: List[UserPrs], now: Optional[datetime] = None) -> List[ActivityStats]:
    """Activity statistics per user across all of their PRs.

    Args:
        user_prs: User-grouped PR sets
        now: Reference time for still-open PRs (defaults to the current time)

    Returns:
        One ActivityStats per user group
    """
    return [ActivityStats(user=group.user.login, **_summarize(group.prs, now)) for group in user_prs]


def compute_repo_stats(user_prs: List[UserPrs], now: Optional[datetime] = None) -> List[RepoStats]:
    """Activity statistics per user and repository.

    Adds the number of PRs closed without being merged.

    Args:
        user_prs: User-grouped PR sets
        now: Reference time for still-open PRs

    Returns:
        One RepoStats per (user, repository) pair
    """
    results = []
    for group in user_prs:
        by_repo: Dict[str, List[Issue]] = defaultdict(list)
        for pr in group.prs:
            by_repo[pr.repository_url].append(pr)

        for repository_url, prs in by_repo.items():
            summary = _summarize(prs, now)
            closed_without_merge = sum(1 for pr in prs if not pr.is_open and not pr.is_merged)
            results.append(RepoStats(
                user=group.user.login,
                repo=repo_label(repository_url),
                closed_without_merge=closed_without_merge,
                **summary
            ))
    return results


def _index_by_author(user_prs: List[UserPrs],
                     items: Callable[[Issue], list]) -> Dict[str, List[Tuple[object, Issue]]]:
    indexed: Dict[str, List[Tuple[object, Issue]]] = defaultdict(list)
    for group in user_prs:
        for pr in group.prs:
            if pr.details is None:
                continue
            for item in items(pr):
                indexed[item.author.login].append((item, pr))
    return indexed


def _pr_key(pr: Issue) -> Tuple[str, int]:
    return pr.repository_url, pr.number


def compute_review_stats_for_team(user_prs: List[UserPrs],
                                  excluded_users: Optional[Set[str]] = None) -> List[ReviewStats]:
    """Review participation per reviewer across every fetched PR.

    Reviews and comments a user left on their own PRs are ignored, as is all
    activity by excluded (bot) accounts.

    Args:
        user_prs: User-grouped PR sets, enriched with reviews and comments
        excluded_users: Logins to leave out (defaults to the bot list)

    Returns:
        One ReviewStats per reviewer
    """
    if excluded_users is None:
        excluded_users = DEFAULT_EXCLUDED_BOT_USERS

    reviews_by_author = _index_by_author(user_prs, lambda pr: pr.details.reviews)
    # Conversation comments only; inline thread comments belong to a review already counted
    comments_by_author = _index_by_author(user_prs, lambda pr: pr.details.comments)

    authors = list(reviews_by_author)
    authors.extend(a for a in comments_by_author if a not in reviews_by_author)

    results = []
    for author in authors:
        if author in excluded_users:
            continue

        reviews = [(r, pr) for r, pr in reviews_by_author.get(author, []) if pr.user.login != author]
        comments = [(c, pr) for c, pr in comments_by_author.get(author, []) if pr.user.login != author]
        # Keyed by repository too, so equal numbers in different repositories stay distinct
        touched = {_pr_key(pr) for _, pr in reviews} | {_pr_key(pr) for _, pr in comments}

        results.append(ReviewStats(
            user=author,
            prs_reviewed=len(touched),
            comments_left=len(comments) + sum(1 for r, _ in reviews if r.state == ReviewState.COMMENTED),
            prs_approved=sum(1 for r, _ in reviews if r.state == ReviewState.APPROVED),
            prs_requested_changes=sum(1 for r, _ in reviews if r.state == ReviewState.CHANGES_REQUESTED),
            reviews_pending=sum(1 for r, _ in reviews if r.state == ReviewState.PENDING),
        ))
    return results


def compute_review_activity_for_user(user_prs: List[UserPrs], reviewer: str) -> List[UserReviewActivity]:
    """PRs on which a reviewer left reviews or comments, with only that reviewer's items.

    Args:
        user_prs: User-grouped PR sets, enriched with reviews and comments
        reviewer: Login of the reviewer to drill into

    Returns:
        One UserReviewActivity per PR the reviewer touched
    """
    activity = []
    for group in user_prs:
        for pr in group.prs:
            if pr.details is None:
                continue
            reviews: List[Review] = [r for r in pr.details.reviews if r.author.login == reviewer]
            comments: List[Comment] = [c for c in pr.details.all_comments() if c.author.login == reviewer]
            if reviews or comments:
                activity.append(UserReviewActivity(pr=pr, reviews=reviews, comments=comments))
    return activity


def sort_stats(stats: list, key: str, descending: bool = True) -> list:
    """Sort statistics records by one of their attributes.

    Args:
        stats: ActivityStats, RepoStats or ReviewStats records
        key: Attribute name to rank by (e.g. 'total', 'merged', 'prs_reviewed')
        descending: Highest first (the default ranking order)

    Returns:
        New sorted list
    """
    return sorted(stats, key=lambda s: getattr(s, key), reverse=descending)
