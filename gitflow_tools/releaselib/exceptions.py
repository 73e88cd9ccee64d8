class ReleaseError(Exception):
    """Base exception for all release-related errors."""

    def __init__(self, message, cause=None):
        super().__init__(message)
        self.cause = cause


class GitStateError(ReleaseError):
    """Exception for errors related to the Git repository's state."""
    pass


class GitServiceError(ReleaseError):
    """Exception for errors originating from the Git service wrapper."""
    pass


class BuildToolError(ReleaseError):
    """Exception for errors originating from the Maven service wrapper or the project model."""
    pass


class VersionParseError(ReleaseError):
    """Exception for version strings that cannot be parsed."""
    pass


class ConfigurationError(ReleaseError):
    """Exception for configuration-related errors (e.g., in gitflow.yaml)."""
    pass


class SnapshotDependencyError(ReleaseError):
    """The project still depends on SNAPSHOT artifacts."""
    pass


class PrompterError(ReleaseError):
    """The interactive prompt could not read an answer."""
    pass
