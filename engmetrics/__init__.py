"""Engineering metrics: PR throughput, review participation and AI usage reports."""

__version__ = '1.0.0'
