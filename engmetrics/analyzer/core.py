"""Loads PRs from GitHub and groups them by author."""

import logging
from datetime import date, timedelta
from typing import List, Optional, Set

from ..api_client import GitHubAPIClient, build_search_query
from ..models import UserPrs
from ..user_filters import DEFAULT_EXCLUDED_BOT_USERS, exclude_users


class GitHubActivityLoader:
    """Runs the search -> org filter -> enrichment -> group-by-user pipeline."""

    def __init__(
        self,
        api_client: GitHubAPIClient,
        org: Optional[str] = None,
        team: Optional[str] = None,
        author: Optional[str] = None,
        days: int = 30,
        full_details: bool = False,
        fetch_reviews: bool = False,
        fetch_comments: bool = False,
        excluded_users: Set[str] = None,
        merged_only: bool = False,
        repo: Optional[str] = None,
        per_page: int = 100,
        today: Optional[date] = None
    ):
        """Initialize the loader.

        Args:
            api_client: Client used for every GitHub call
            org: Organization to search in (and post-filter by)
            team: Team slug whose members become author filters
            author: Single author to search for
            days: Look back this many days from today
            full_details: Enrich PRs with size data through GraphQL
            fetch_reviews: Include reviews in the enrichment payload
            fetch_comments: Include comments in the enrichment payload
            excluded_users: Logins dropped from the grouped results
            merged_only: Only search merged PRs
            repo: Restrict the search to one 'owner/name' repository
            per_page: Search page size
            today: Reference date for the lookback window
        """
        self.api_client = api_client
        self.org = org
        self.team = team
        self.author = author
        self.days = days
        self.full_details = full_details
        self.fetch_reviews = fetch_reviews
        self.fetch_comments = fetch_comments
        self.excluded_users = DEFAULT_EXCLUDED_BOT_USERS if excluded_users is None else excluded_users
        self.merged_only = merged_only
        self.repo = repo
        self.per_page = per_page
        self.today = today

    @property
    def start_date(self) -> date:
        return (self.today or date.today()) - timedelta(days=self.days)

    def build_query(self, filter_for_org: bool = True, team: Optional[str] = None) -> Optional[str]:
        """Build the issue search query, resolving team members if needed.

        Returns:
            The search query, or None when the team has no members
        """
        org = self.org if filter_for_org else None
        team_members = None
        if team and org and self.author is None:
            team_members = [member.login for member in self.api_client.get_team_members(org, team)]
            if not team_members:
                logging.warning(f"Team '{team}' has no members, nothing to search for")
                return None

        return build_search_query(
            org=org,
            team_members=team_members,
            author=self.author,
            start_date=self.start_date,
            merged_only=self.merged_only,
            repo=self.repo
        )

    def load_issues(self, filter_for_org: bool = True, team: Optional[str] = None):
        """Fetch, org-filter and optionally enrich all matching PRs.

        Args:
            filter_for_org: Scope the search to the organization and re-check each result
            team: Team to expand into author filters (defaults to the loader's team)

        Returns:
            List of Issue records
        """
        team = self.team if team is None else team
        query = self.build_query(filter_for_org, team)
        if query is None:
            return []

        issues = self._fetch_all_issues(query)
        if filter_for_org and self.org:
            issues = filter_for_org_fn(issues, self.org)
        logging.info(f"Found {len(issues)} PR(s) in the last {self.days} days")

        if self.full_details and issues:
            details_by_url = self._fetch_pr_details(issues)
            issues = self._attach_details(issues, details_by_url)

        return issues

    def load_prs(self, filter_for_org: bool = True, team: Optional[str] = None) -> List[UserPrs]:
        """Load PRs and group them by author, leaving out excluded users.

        Args:
            filter_for_org: Scope the search to the organization
            team: Team to expand into author filters (defaults to the loader's team)

        Returns:
            User-grouped PR sets
        """
        issues = self.load_issues(filter_for_org, team)
        return exclude_users(group_by_user(issues), self.excluded_users)

    def load_prs_for_teams(self, teams: List[str]) -> List[UserPrs]:
        """Load PRs for several teams and merge them into one per-user view.

        A PR reached through more than one team is counted once per user.
        Without teams the whole organization is loaded.

        Args:
            teams: Team slugs

        Returns:
            Deduplicated user-grouped PR sets
        """
        if not teams:
            logging.info(f"Processing entire organization {self.org}")
            return self.load_prs(filter_for_org=True, team=None)

        team_results = []
        for team in teams:
            logging.info(f"Loading PRs for team: {team}")
            team_results.append(self.load_prs(filter_for_org=True, team=team))
        return merge_team_user_prs(team_results)


# Import and attach methods from submodules
from .pagination import _fetch_all_issues, filter_for_org as filter_for_org_fn
from .enrichment import _fetch_pr_details, _attach_details
from .dedup import group_by_user, merge_team_user_prs

GitHubActivityLoader._fetch_all_issues = _fetch_all_issues
GitHubActivityLoader._fetch_pr_details = _fetch_pr_details
GitHubActivityLoader._attach_details = staticmethod(_attach_details)
