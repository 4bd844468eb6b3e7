from enum import Enum


class IssuePriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


class IssueStatus(str, Enum):
    """
    `resolved` and `closed` issues are settled: they record who settled them and when.
    """

    open = "open"
    in_progress = "in_progress"
    resolved = "resolved"
    closed = "closed"

    @property
    def is_settled(self) -> bool:
        return self in (IssueStatus.resolved, IssueStatus.closed)
