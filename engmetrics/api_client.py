"""GitHub API client for issue search, team lookups and GraphQL detail queries."""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter

from .errors import GitHubAPIError
from .models import Issue, User


GITHUB_API_URL = 'https://api.github.com'
NEXT_PAGE_MARKER = 'rel="next"'


@dataclass
class SearchPage:
    """One page of issue search results."""
    items: List[Issue] = field(default_factory=list)
    has_next: bool = False
    total_count: int = 0


def has_next_page(link_header: Optional[str]) -> bool:
    """Check the Link header for a next-page relation."""
    return link_header is not None and NEXT_PAGE_MARKER in link_header


def build_search_query(
    org: Optional[str] = None,
    team_members: Optional[List[str]] = None,
    author: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    merged_only: bool = False,
    repo: Optional[str] = None
) -> str:
    """Build the `q` parameter for the issue search endpoint.

    Args:
        org: Organization to scope the search to
        team_members: Logins to add as individual author filters (ignored when author is set)
        author: Single author to filter by
        start_date: Only PRs created after this date
        end_date: Only PRs created before this date
        merged_only: Only merged PRs
        repo: Single repository to search, in 'owner/name' form

    Returns:
        Space-separated search terms
    """
    terms = ['is:pr']
    if org:
        terms.append(f'org:{org}')
    if team_members and author is None:
        terms.extend(f'author:{member}' for member in team_members)
    if author:
        terms.append(f'author:{author}')
    if start_date:
        terms.append(f'created:>{start_date.isoformat()}')
    if end_date:
        terms.append(f'created:<{end_date.isoformat()}')
    if merged_only:
        terms.append('is:merged')
    if repo:
        terms.append(f'repo:{repo}')
    return ' '.join(terms)


class GitHubAPIClient:
    """Handles GitHub REST and GraphQL requests over a shared session."""

    def __init__(self, token: str = None, base_url: str = GITHUB_API_URL, timeout: float = None):
        """Initialize the GitHub API client.

        Args:
            token: GitHub personal access token for authentication
            base_url: API root, overridable for GitHub Enterprise
            timeout: Optional per-request timeout in seconds (None waits indefinitely)
        """
        self.token = token
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()

        # Sized for the concurrent GraphQL batches; requests are never retried
        adapter = HTTPAdapter(pool_connections=20, pool_maxsize=20, max_retries=0)
        self.session.mount('https://', adapter)
        self.session.mount('http://', adapter)
        self.session.headers.update({'Accept': 'application/vnd.github.v3+json'})

        if self.token:
            self.session.headers.update({'Authorization': f'Bearer {self.token}'})
            logging.info("Initialized GitHub API client with token")
        else:
            logging.warning("No GitHub token provided. Rate limits will be much lower.")
            logging.warning("Run the config command or set GITHUB_TOKEN.")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        """Release the underlying HTTP session."""
        self.session.close()

    def _check_rate_limit(self, response: requests.Response):
        if response.status_code == 403 and response.headers.get('X-RateLimit-Remaining') == '0':
            logging.error(f"Rate limit exceeded. Resets at {response.headers.get('X-RateLimit-Reset')}")
            raise GitHubAPIError("GitHub API rate limit exceeded")

    def search_issues(self, query: str, page: int = 1, per_page: int = 100) -> SearchPage:
        """Fetch a single page of issue search results.

        Args:
            query: Search query built with build_search_query
            page: 1-based page number
            per_page: Page size (GitHub caps this at 100)

        Returns:
            SearchPage with parsed items and the continuation signal
        """
        logging.debug(f"Searching issues page {page}: {query}")
        response = self.session.get(
            f"{self.base_url}/search/issues",
            params={'q': query, 'page': page, 'per_page': per_page},
            timeout=self.timeout
        )
        self._check_rate_limit(response)
        response.raise_for_status()
        data = response.json()

        return SearchPage(
            items=[Issue.from_api(item) for item in data.get('items', [])],
            has_next=has_next_page(response.headers.get('Link')),
            total_count=data.get('total_count', 0)
        )

    def get_team_members(self, org: str, team: str) -> List[User]:
        """Fetch the members of an organization team.

        Args:
            org: Organization login
            team: Team slug

        Returns:
            List of team members
        """
        response = self.session.get(
            f"{self.base_url}/orgs/{org}/teams/{team}/members",
            params={'per_page': 100},
            timeout=self.timeout
        )
        self._check_rate_limit(response)
        response.raise_for_status()
        members = [User.from_api(member) for member in response.json()]
        logging.info(f"Team {org}/{team} has {len(members)} member(s)")
        return members

    def rate_limit(self) -> Dict:
        """Return the current rate limit status for the token."""
        response = self.session.get(f"{self.base_url}/rate_limit", timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def post_graphql(self, query: str, variables: Dict = None) -> Dict:
        """Make a GraphQL query to the GitHub API.

        Args:
            query: GraphQL query string
            variables: Optional query variables

        Returns:
            The `data` member of the response

        Raises:
            GitHubAPIError: If the response carries GraphQL errors
        """
        payload = {"query": query}
        if variables:
            payload["variables"] = variables

        response = self.session.post(f"{self.base_url}/graphql", json=payload, timeout=self.timeout)
        self._check_rate_limit(response)
        response.raise_for_status()
        result = response.json()

        if result.get("errors"):
            logging.error(f"GraphQL errors: {result['errors']}")
            raise GitHubAPIError(f"GraphQL query failed: {result['errors']}")

        return result.get("data") or {}

    @staticmethod
    def build_pr_details_query(repo_owner: str, repo_name: str, pr_numbers: List[int],
                               fetch_reviews: bool = False, fetch_comments: bool = False) -> str:
        """Build the repository selection fetching details for several PRs.

        PRs are addressed as pullRequest1..N within the repository selection.

        Args:
            repo_owner: Repository owner
            repo_name: Repository name
            pr_numbers: PR numbers to query
            fetch_reviews: Include submitted reviews
            fetch_comments: Include conversation and review-thread comments

        Returns:
            GraphQL selection for one repository (without the outer `query` block)
        """
        nested = []
        if fetch_comments:
            nested.append("comments(first: 100) { nodes { author { login } bodyText createdAt } }")
            nested.append("reviewThreads(first: 50) { nodes { comments(first: 50) "
                          "{ nodes { author { login } bodyText createdAt } } } }")
        if fetch_reviews:
            nested.append("reviews(first: 100) { nodes { author { login } body state createdAt } }")

        pr_queries = []
        for index, pr_num in enumerate(pr_numbers, start=1):
            pr_queries.append(
                f"pullRequest{index}: pullRequest(number: {pr_num}) {{ "
                f"number additions deletions changedFiles totalCommentsCount title "
                f"author {{ login }} url {' '.join(nested)} }}"
            )

        return (f'repository(owner: "{repo_owner}", name: "{repo_name}") {{\n  '
                + '\n  '.join(pr_queries) + '\n}')
