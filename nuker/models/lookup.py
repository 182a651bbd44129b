"""Tri-state lookup result.

Distinguishes "value present", "value absent" and "query failed" so that a
failed provider call is never mistaken for an empty answer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class LookupStatus(Enum):
    PRESENT = "present"
    ABSENT = "absent"
    FAILED = "failed"


@dataclass(frozen=True)
class LookupResult:
    """Outcome of a tag, type or metric lookup.

    Attributes:
        status: Whether the lookup produced a value, no value, or failed
        value: Looked-up value when status is PRESENT
        error: Error description when status is FAILED
    """

    status: LookupStatus
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def present(cls, value: Any) -> "LookupResult":
        return cls(status=LookupStatus.PRESENT, value=value)

    @classmethod
    def absent(cls) -> "LookupResult":
        return cls(status=LookupStatus.ABSENT)

    @classmethod
    def failed(cls, error: str) -> "LookupResult":
        return cls(status=LookupStatus.FAILED, error=error)

    @property
    def is_present(self) -> bool:
        return self.status == LookupStatus.PRESENT

    @property
    def is_failed(self) -> bool:
        return self.status == LookupStatus.FAILED
