"""
Exception hierarchy for the release build.

All build exceptions inherit from BuildError so callers can catch broadly or
narrowly. Each carries structured details for logging; the step runner
attaches `pipeline_step` and `pipeline_path` once the error leaves a step.
"""

from __future__ import annotations


class BuildError(Exception):
    """Base exception for all build errors."""

    def __init__(
        self,
        message: str,
        *,
        details: dict | None = None,
    ) -> None:
        self.details = details or {}
        super().__init__(message)


class ManifestError(BuildError):
    """The package manifest could not be read or is malformed."""


class InstallError(BuildError):
    """The dependency installation pass failed."""

    def __init__(self, message: str, *, returncode: int | None = None, **kwargs) -> None:
        self.returncode = returncode
        super().__init__(message, **kwargs)


class LicenseDocumentError(BuildError):
    """A license document is unreadable or its front matter is malformed."""


class LicenseDumpError(BuildError):
    """Aggregating third-party license information failed."""


class ValidationFailedError(BuildError):
    """The rendered application failed a post-build check."""


class PackagingError(BuildError):
    """The native packaging backend failed to produce a bundle."""


class BuildTerminated(Exception):
    """Stops the run with a specific process exit status."""

    def __init__(self, exit_code: int, cause: BaseException | None = None) -> None:
        if exit_code == 0:
            raise ValueError("BuildTerminated requires a non-zero exit code")
        self.exit_code = exit_code
        self.cause = cause
        super().__init__(f"Build terminated with status {exit_code}: {cause}")
