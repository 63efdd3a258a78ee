"""Exclusion of bots and service accounts from activity statistics."""

import logging
from typing import Iterable, List, Optional, Set

from .models import UserPrs


# Known non-human accounts that comment on or open PRs
DEFAULT_EXCLUDED_BOT_USERS = frozenset({
    'github-actions',
    'relativeci',
    'nx-cloud',
    'changeset-bot',
    'gitguardian',
    'netlify',
    'cloudflare-pages',
    'vercel',
    'sentry-io',
    'aws-amplify-us-east-1',
    'VitaliyHr',
    'cloudflare-workers-and-pages',
})


def build_excluded_users(extra_users: Optional[Iterable[str]] = None) -> Set[str]:
    """Combine the default bot list with additional configured logins.

    Args:
        extra_users: Additional logins to exclude (e.g. from EXCLUDED_USERS)

    Returns:
        Set of excluded logins
    """
    excluded = set(DEFAULT_EXCLUDED_BOT_USERS)
    if extra_users:
        excluded.update(u.strip() for u in extra_users if u and u.strip())
    return excluded


def is_excluded_user(login: str, excluded_users: Optional[Set[str]] = None) -> bool:
    """Exact, case-sensitive match of a login against the exclusion list."""
    if excluded_users is None:
        excluded_users = DEFAULT_EXCLUDED_BOT_USERS
    return login in excluded_users


def exclude_users(user_prs: List[UserPrs], excluded_users: Optional[Set[str]] = None) -> List[UserPrs]:
    """Drop user groups whose identity is on the exclusion list.

    Args:
        user_prs: User-grouped PR sets
        excluded_users: Logins to drop (defaults to the bot list)

    Returns:
        New list without excluded users
    """
    kept = []
    for group in user_prs:
        if is_excluded_user(group.user.login, excluded_users):
            logging.debug(f"Excluding {len(group.prs)} PR(s) by {group.user.login}")
            continue
        kept.append(group)
    return kept
