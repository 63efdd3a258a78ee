"""GraphQL detail enrichment methods for GitHubActivityLoader."""

import logging
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse

from ..errors import MalformedRepositoryUrl
from ..models import Issue, PullRequestDetails


# Repository selections per GraphQL request
REPO_BATCH_SIZE = 10
# PRs per repository selection; larger repositories get several selections
PRS_PER_SELECTION = 50
MAX_WORKERS = 10


def parse_repo_url(repository_url: str) -> Tuple[str, str]:
    """Extract (owner, name) from a '.../repos/{owner}/{repo}' URL.

    Raises:
        MalformedRepositoryUrl: If the URL does not have that shape
    """
    segments = [s for s in urlparse(repository_url).path.split('/') if s]
    if 'repos' in segments:
        index = segments.index('repos')
        if len(segments) >= index + 3:
            return segments[index + 1], segments[index + 2]
    raise MalformedRepositoryUrl(
        f"Expected a repository URL like https://api.github.com/repos/OWNER/REPO, got '{repository_url}'"
    )


def _build_selections(self, prs: List[Issue]) -> List[str]:
    """One aliased repository selection per repository (chunked for large ones)."""
    by_repo: Dict[str, List[int]] = OrderedDict()
    for pr in prs:
        by_repo.setdefault(pr.repository_url, []).append(pr.number)

    selections = []
    for repository_url, numbers in by_repo.items():
        owner, name = parse_repo_url(repository_url)
        for start in range(0, len(numbers), PRS_PER_SELECTION):
            chunk = numbers[start:start + PRS_PER_SELECTION]
            selection = self.api_client.build_pr_details_query(
                owner, name, chunk,
                fetch_reviews=self.fetch_reviews,
                fetch_comments=self.fetch_comments
            )
            selections.append(f"repo{len(selections) + 1}: {selection}")
    return selections


def _parse_batch_result(data: Dict) -> Dict[str, PullRequestDetails]:
    details = {}
    for repo_data in data.values():
        for pr_data in (repo_data or {}).values():
            # Unknown or inaccessible PRs come back as null
            if not pr_data:
                continue
            pr_details = PullRequestDetails.from_api(pr_data)
            details[pr_details.url] = pr_details
    return details


def _fetch_pr_details(self, prs: List[Issue]) -> Dict[str, PullRequestDetails]:
    """Fetch enrichment payloads for PRs with concurrent GraphQL batches.

    All batches must succeed; the first failing batch cancels the batches that
    have not started yet and its exception is re-raised.

    Args:
        prs: PRs to enrich

    Returns:
        Mapping of PR html URL to its details
    """
    selections = _build_selections(self, prs)
    batches = [selections[i:i + REPO_BATCH_SIZE] for i in range(0, len(selections), REPO_BATCH_SIZE)]
    if not batches:
        return {}

    logging.info(f"Fetching details for {len(prs)} PR(s) in {len(batches)} GraphQL batch(es)")

    def fetch_batch(batch: List[str], batch_index: int) -> Dict[str, PullRequestDetails]:
        logging.debug(f"Executing GraphQL query for batch {batch_index + 1}")
        query = "query {\n" + "\n".join(batch) + "\n}"
        return _parse_batch_result(self.api_client.post_graphql(query))

    all_results: Dict[str, PullRequestDetails] = {}
    with ThreadPoolExecutor(max_workers=min(len(batches), MAX_WORKERS)) as executor:
        futures = [executor.submit(fetch_batch, batch, idx) for idx, batch in enumerate(batches)]

        for future in as_completed(futures):
            try:
                all_results.update(future.result())
            except Exception:
                for pending in futures:
                    pending.cancel()
                logging.error("PR detail enrichment failed, aborting")
                raise

    logging.info(f"Fetched details for {len(all_results)} PR(s)")
    return all_results


def _attach_details(issues: List[Issue], details_by_url: Dict[str, PullRequestDetails]) -> List[Issue]:
    """Return copies of the issues carrying their details, matched by html URL.

    Issues without a match are returned unenriched.
    """
    enriched = []
    missing = 0
    for issue in issues:
        details: Optional[PullRequestDetails] = details_by_url.get(issue.html_url)
        if details is None:
            missing += 1
        enriched.append(issue.with_details(details))
    if missing:
        logging.debug(f"{missing} PR(s) had no detail match")
    return enriched
