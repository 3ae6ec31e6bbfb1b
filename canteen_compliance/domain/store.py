"""Record store contract consumed by the compliance engine"""

from dataclasses import dataclass
from typing import ContextManager, Iterable, List, Optional, Protocol

from canteen_compliance.domain.models import OUTSTANDING_STATUSES, Student, Transaction, TransactionStatus


@dataclass(frozen=True)
class TransactionFilter:
    """Selection criteria for find_transactions"""

    statuses: Iterable[TransactionStatus] = OUTSTANDING_STATUSES
    is_overdue: Optional[bool] = None
    student_id: Optional[str] = None


class RecordStore(Protocol):
    """
    Storage operations the engine depends on.

    Every method may raise StoreFailureError. Updates raise NotFoundError subclasses
    when the target record is missing.
    """

    def find_transactions(self, criteria: TransactionFilter) -> List[Transaction]:
        ...

    def find_transaction_by_id(self, transaction_id: str) -> Transaction:
        ...

    def update_transaction(self, transaction_id: str, **fields) -> None:
        ...

    def find_student_by_id(self, student_id: str) -> Student:
        ...

    def update_student(self, student_id: str, **fields) -> None:
        ...

    def atomic(self) -> ContextManager["RecordStore"]:
        """Group updates so they commit together or not at all"""
        ...
