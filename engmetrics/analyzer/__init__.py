"""PR loading pipeline: search pagination, detail enrichment and team merging."""

from .core import GitHubActivityLoader
from .dedup import group_by_user, merge_team_user_prs
from .enrichment import parse_repo_url
from .pagination import filter_for_org

__all__ = [
    'GitHubActivityLoader',
    'group_by_user',
    'merge_team_user_prs',
    'parse_repo_url',
    'filter_for_org',
]
