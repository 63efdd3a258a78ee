"""Grouping of PRs by author and merging of per-team results."""

from collections import OrderedDict
from typing import Dict, Iterable, List, Tuple

from ..models import Issue, User, UserPrs


PrKey = Tuple[str, int]


def pr_key(pr: Issue) -> PrKey:
    """Identity of a PR across team queries: (repository URL, PR number)."""
    return pr.repository_url, pr.number


def group_by_user(issues: List[Issue]) -> List[UserPrs]:
    """Group issues by author login, keeping first-seen order."""
    groups: Dict[str, UserPrs] = OrderedDict()
    for issue in issues:
        group = groups.get(issue.user.login)
        if group is None:
            group = groups[issue.user.login] = UserPrs(user=issue.user)
        group.prs.append(issue)
    return list(groups.values())


def merge_team_user_prs(team_results: Iterable[List[UserPrs]]) -> List[UserPrs]:
    """Merge per-team user groups into one view without counting a PR twice.

    A user who belongs to several teams gets the union of their PRs; the first
    occurrence of each (repository, number) pair is kept.

    Args:
        team_results: One user-grouped PR list per team

    Returns:
        One UserPrs per distinct login
    """
    users: Dict[str, User] = OrderedDict()
    prs_by_user: Dict[str, Dict[PrKey, Issue]] = {}

    for user_prs in team_results:
        for group in user_prs:
            login = group.user.login
            users.setdefault(login, group.user)
            seen = prs_by_user.setdefault(login, OrderedDict())
            for pr in group.prs:
                seen.setdefault(pr_key(pr), pr)

    return [UserPrs(user=user, prs=list(prs_by_user[login].values())) for login, user in users.items()]
