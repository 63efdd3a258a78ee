#!/usr/bin/env python3
"""
Engineering Metrics
Reports PR throughput, review participation and AI assistant usage.
"""

import sys

from engmetrics.cli import main


if __name__ == "__main__":
    sys.exit(main())
