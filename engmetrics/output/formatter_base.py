"""Output formatting for PR activity and review statistics.

Statistics arrive already ranked; the formatter renders them in the order
given.
"""

from typing import List


# ANSI color codes
GREEN = '\033[92m'
YELLOW = '\033[93m'
RED = '\033[91m'
CYAN = '\033[96m'
BOLD = '\033[1m'
RESET = '\033[0m'

OUTPUT_FORMATS = ('table', 'json')


class OutputFormatter:
    """Formats and prints engineering metrics."""

    def __init__(self, days: int = 30, full_details: bool = False, output_format: str = 'table',
                 use_color: bool = True):
        """Initialize the output formatter.

        Args:
            days: Lookback window shown in titles
            full_details: Whether size columns (lines, files) are shown
            output_format: 'table' or 'json'
            use_color: Whether to emit ANSI colors in tables
        """
        if output_format not in OUTPUT_FORMATS:
            raise ValueError(f"Unknown output format '{output_format}', expected one of {OUTPUT_FORMATS}")
        self.days = days
        self.full_details = full_details
        self.output_format = output_format
        self.use_color = use_color

    @property
    def is_json(self) -> bool:
        return self.output_format == 'json'

    def _color(self, text: str, color: str) -> str:
        if not self.use_color:
            return text
        return f"{color}{text}{RESET}"

    def _format_table(self, title: str, headers: List[str], rows: List[List]) -> str:
        """Lay out a fixed-width table sized to its widest cells."""
        cells = [[str(c) for c in row] for row in rows]
        widths = [len(h) for h in headers]
        for row in cells:
            for i, cell in enumerate(row):
                widths[i] = max(widths[i], len(cell))

        line_width = sum(widths) + 3 * (len(widths) - 1)
        lines = [
            self._color(title.center(line_width), CYAN + BOLD),
            '-' * line_width,
            ' | '.join(h.ljust(widths[i]) for i, h in enumerate(headers)),
            '-' * line_width,
        ]
        for row in cells:
            lines.append(' | '.join(
                cell.ljust(widths[i]) if i == 0 else cell.rjust(widths[i])
                for i, cell in enumerate(row)
            ))
        return '\n'.join(lines)


# Import and attach methods from submodules
from .console import (print_activity_stats, print_repo_stats, print_review_stats,
                      print_review_activity, print_cursor_usage, print_builder_usage,
                      _size_headers, _size_cells)
from .json_output import to_json, print_json

OutputFormatter.print_activity_stats = print_activity_stats
OutputFormatter.print_repo_stats = print_repo_stats
OutputFormatter.print_review_stats = print_review_stats
OutputFormatter.print_review_activity = print_review_activity
OutputFormatter.print_cursor_usage = print_cursor_usage
OutputFormatter.print_builder_usage = print_builder_usage
OutputFormatter._size_headers = _size_headers
OutputFormatter._size_cells = _size_cells
OutputFormatter.to_json = staticmethod(to_json)
OutputFormatter.print_json = print_json
