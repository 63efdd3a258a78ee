"""Search pagination methods for GitHubActivityLoader."""

import logging
from typing import List

from ..models import Issue


def _fetch_all_issues(self, query: str) -> List[Issue]:
    """Fetch every page of a search query.

    Pages are requested one after another; the Link header of each response
    decides whether another page follows. Errors are not retried.

    Args:
        query: Issue search query

    Returns:
        All items in fetch order
    """
    results = []
    page = 1

    while True:
        search_page = self.api_client.search_issues(query, page=page, per_page=self.per_page)
        results.extend(search_page.items)
        logging.debug(f"Page {page}: {len(search_page.items)} item(s), next page: {search_page.has_next}")

        if not search_page.items or not search_page.has_next:
            break
        page += 1

    logging.info(f"Fetched {len(results)} search result(s) in {page} page(s)")
    return results


def filter_for_org(issues: List[Issue], org: str) -> List[Issue]:
    """Keep issues whose repository URL mentions the organization.

    Search results are not always strictly scoped to the organization, so each
    record is re-checked. This is a case-insensitive substring test on the
    whole repository URL, not an owner-segment match: an org named 'acme' also accepts
    records from 'acme-labs'.

    Args:
        issues: Search results
        org: Organization login

    Returns:
        Matching issues, order preserved
    """
    needle = org.lower()
    kept = [issue for issue in issues if needle in issue.repository_url.lower()]
    if len(kept) != len(issues):
        logging.debug(f"Dropped {len(issues) - len(kept)} result(s) outside of org '{org}'")
    return kept
