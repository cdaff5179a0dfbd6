"""Role families and status enums.

Each role family is declared once, strongest role first; rank is derived from
declaration order so every comparison in the codebase goes through
``satisfies`` instead of an ad hoc lookup table.
"""

from __future__ import annotations

import enum


class _RankedRole(str, enum.Enum):
    """String enum whose members are totally ordered by declaration (first = highest)."""

    @property
    def rank(self) -> int:
        members = list(type(self))
        return len(members) - members.index(self)

    def satisfies(self, minimum: "_RankedRole") -> bool:
        """True when this role is at least as strong as ``minimum``."""
        if type(minimum) is not type(self):
            raise TypeError(f"cannot compare {type(self).__name__} with {type(minimum).__name__}")
        return self.rank >= minimum.rank

    @classmethod
    def top(cls):
        return next(iter(cls))


class WorkspaceRole(_RankedRole):
    OWNER = "OWNER"
    MEMBER = "MEMBER"
    VIEWER = "VIEWER"


class ProjectRole(_RankedRole):
    PROJECT_LEAD = "PROJECT_LEAD"
    CONTRIBUTOR = "CONTRIBUTOR"
    VIEWER = "VIEWER"


class GlobalStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    BANNED = "BANNED"
    ADMIN = "ADMIN"


class TaskStatus(str, enum.Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"

    @property
    def sort_order(self) -> int:
        return list(TaskStatus).index(self)


class NotificationStatus(str, enum.Enum):
    DELIVERED = "DELIVERED"
    SEEN = "SEEN"
