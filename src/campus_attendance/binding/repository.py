from __future__ import annotations

from typing import Protocol

from .model import ClaimResult


class BindingRepository(Protocol):
    def claim_student(self, *, user_id: int, student_id: str, expected_name: str) -> ClaimResult:
        """Re-check every binding precondition and write the binding in one transaction.

        Must never raise for a lost race: a unique-index conflict is
        reported as ``ClaimResult.ALREADY_CLAIMED``.
        """

        raise NotImplementedError
