"""Console rendering methods for OutputFormatter."""

from typing import List

from ..ai_usage import BuilderUserStats, CursorUserStats
from ..models import ActivityStats, RepoStats, ReviewStats, UserReviewActivity
from ..stats import repo_label
from .formatter_base import GREEN, YELLOW


def _size_headers(self) -> List[str]:
    if not self.full_details:
        return []
    return ['Lines Added', 'Lines Deleted', 'Changed Files']


def _size_cells(self, stat) -> List:
    if not self.full_details:
        return []
    return [f"{stat.additions:,}", f"{stat.deletions:,}", f"{stat.files_changed:,}"]


def print_activity_stats(self, stats: List[ActivityStats]):
    """Print PR activity per user."""
    if self.is_json:
        return self.print_json(stats)

    headers = ['User', 'Total PRs', 'Open', 'Merged', 'Avg Days Open', 'Median Days Open',
               'Comments'] + self._size_headers()
    rows = [
        [s.user, s.total, s.open, s.merged, f"{s.avg_days_open:.2f}", f"{s.median_days_open:.2f}",
         s.comments] + self._size_cells(s)
        for s in stats
    ]
    print(self._format_table(f"Last {self.days} days of PRs", headers, rows))
    if not stats:
        print("\nNo PR activity found.")


def print_repo_stats(self, author: str, stats: List[RepoStats]):
    """Print one user's PR activity broken out by repository."""
    if self.is_json:
        return self.print_json(stats)

    headers = ['Repo', 'Total PRs', 'Open', 'Merged', 'Closed Unmerged', 'Avg Days Open',
               'Median Days Open', 'Comments'] + self._size_headers()
    rows = [
        [s.repo, s.total, s.open, s.merged, s.closed_without_merge, f"{s.avg_days_open:.2f}",
         f"{s.median_days_open:.2f}", s.comments] + self._size_cells(s)
        for s in stats
    ]
    print(self._format_table(f"Last {self.days} days of PRs for {author}", headers, rows))
    if not stats:
        print(f"\nNo PRs found for {author}.")


def print_review_stats(self, stats: List[ReviewStats]):
    """Print review participation per reviewer."""
    if self.is_json:
        return self.print_json(stats)

    headers = ['User', 'Total PRs Reviewed', 'Comments Left', 'PRs Approved', 'Requested Changes', 'Pending']
    rows = [
        [s.user, s.prs_reviewed, s.comments_left, s.prs_approved, s.prs_requested_changes, s.reviews_pending]
        for s in stats
    ]
    print(self._format_table(f"Last {self.days} days of PR review activity", headers, rows))
    if not stats:
        print("\nNo review activity found.")


def _first_line(text: str, limit: int = 100) -> str:
    line = text.strip().splitlines()[0] if text.strip() else ''
    return line if len(line) <= limit else line[:limit - 3] + '...'


def print_review_activity(self, reviewer: str, activity: List[UserReviewActivity]):
    """Print every PR a reviewer touched with their own reviews and comments."""
    if self.is_json:
        return self.print_json(activity)

    print("\n" + "=" * 80)
    print(f"REVIEW ACTIVITY FOR {reviewer} (last {self.days} days)")
    print("=" * 80)

    if not activity:
        print("\nNo review activity found.")
        return

    for item in activity:
        pr = item.pr
        print(f"\n{self._color(f'[{repo_label(pr.repository_url)}] #{pr.number}: {pr.title}', GREEN)}")
        print(f"  {pr.html_url} (by {pr.user.login})")
        for review in item.reviews:
            when = review.created_at.strftime('%Y-%m-%d') if review.created_at else '?'
            print(f"  {self._color(review.state, YELLOW)} {when} {_first_line(review.body)}")
        for comment in item.comments:
            when = comment.created_at.strftime('%Y-%m-%d') if comment.created_at else '?'
            print(f"  COMMENT {when} {_first_line(comment.body)}")

    print(f"\nTotal PRs: {len(activity)}")


def print_cursor_usage(self, stats: List[CursorUserStats]):
    """Print aggregated Cursor usage per user."""
    if self.is_json:
        return self.print_json(stats)

    print(f"\n=== Cursor Usage Metrics (last {self.days} days) ===")
    for stat in stats:
        print(f"\nUser: {stat.email}")
        print(f"  Days Active: {stat.days_active}")
        print(f"  Total AI Requests: {stat.total_ai_requests}")
        print(f"  Chat Requests: {stat.chat_requests}")
        print(f"  Agent Requests: {stat.agent_requests}")
        print(f"  Composer Requests: {stat.composer_requests}")
        print(f"  Lines Added: {stat.lines_added:,}")
        print(f"  Lines Deleted: {stat.lines_deleted:,}")
        print(f"  Acceptance Rate: {stat.acceptance_rate:.2f}%")
        print(f"  Tab Acceptance Rate: {stat.tab_acceptance_rate:.2f}%")
        print(f"  Most Common Model: {stat.most_common_model}")
        print(f"  Latest Version: {stat.latest_client_version}")


def print_builder_usage(self, stats: List[BuilderUserStats]):
    """Print Builder.io Fusion usage per user."""
    if self.is_json:
        return self.print_json(stats)

    print(f"\n=== Builder.io Fusion Metrics (last {self.days} days) ===")
    for stat in stats:
        print(f"\nUser: {stat.user_email}")
        print(f"  Design Exports: {stat.design_exports}")
        print(f"  Events: {stat.events}")
        print(f"  User Prompts: {stat.user_prompts}")
        print(f"  Lines Added: {stat.lines_added:,}")
        print(f"  Lines Removed: {stat.lines_removed:,}")
        print(f"  Lines Accepted: {stat.lines_accepted:,}")
        print(f"  PRs Merged: {stat.prs_merged}")
        print(f"  Credits Used: {stat.credits_used:.2f}")
        print(f"  Total Tokens: {stat.tokens_total:,}")
        print(f"  Last Active: {stat.last_active}")
