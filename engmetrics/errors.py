"""Exception types raised by engmetrics."""


class EngMetricsError(Exception):
    """Base class for all engmetrics errors."""


class ConfigurationError(EngMetricsError):
    """A required option, identity or credential is missing or invalid."""


class GitHubAPIError(EngMetricsError):
    """GitHub answered with an error payload (GraphQL errors, rate limiting)."""


class MalformedRepositoryUrl(EngMetricsError, ValueError):
    """A repository URL does not have the expected '.../repos/{owner}/{repo}' shape."""
