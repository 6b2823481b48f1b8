"""Error types raised by the projection engine."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List


@dataclass(frozen=True)
class ConfigIssue:
    """One rejected input: the offending field, a reason code and a readable message."""

    field: str
    reason: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


class ProjectionError(Exception):
    """Base class for projection engine errors."""


class ConfigurationError(ProjectionError, ValueError):
    """Raised before a simulation starts when its inputs cannot be simulated.

    Carries every issue found so the caller can fix them in one pass.
    """

    def __init__(self, issues: Iterable[ConfigIssue]):
        self.issues: List[ConfigIssue] = list(issues)
        super().__init__("; ".join(f"{issue.field}: {issue.message}" for issue in self.issues))

    @classmethod
    def single(cls, field: str, reason: str, message: str) -> "ConfigurationError":
        return cls([ConfigIssue(field=field, reason=reason, message=message)])

    @property
    def reasons(self) -> List[str]:
        return [issue.reason for issue in self.issues]
