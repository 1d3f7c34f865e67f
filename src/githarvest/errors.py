"""Error taxonomy shared by every component."""

from __future__ import annotations

from typing import List, Sequence


class GitHarvestError(Exception):
    """Base class for all githarvest errors."""


class RepositoryNotFoundError(GitHarvestError):
    """The repository path does not exist."""


class NotAVersionControlledDirectoryError(GitHarvestError):
    """The path exists but has no .git metadata."""


class RepositoryNotBoundError(GitHarvestError):
    """An operation was attempted before bind()."""


class CommitNotFoundError(GitHarvestError):
    """No strategy could find the requested commit."""


class StrategyFailedError(GitHarvestError):
    """One strategy failed. Always recovered by escalating to the next one."""

    def __init__(self, strategy: str, reason: str) -> None:
        super().__init__(f"{strategy}: {reason}")
        self.strategy = strategy
        self.reason = reason


class AllStrategiesExhaustedError(GitHarvestError):
    """Every strategy for an operation failed."""

    def __init__(self, operation: str, failures: Sequence[StrategyFailedError]) -> None:
        self.operation = operation
        self.failures: List[StrategyFailedError] = list(failures)
        detail = "; ".join(str(f) for f in self.failures) or "no strategy available"
        super().__init__(f"{operation} failed: {detail}")
