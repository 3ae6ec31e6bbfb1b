"""Domain models - pure Python dataclasses representing canteen credit entities"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class TransactionStatus(str, Enum):
    """Settlement state of a canteen purchase"""

    PAID = "Paid"
    PARTIAL = "Partial"
    CREDIT = "Credit"

    @property
    def tracks_payment(self) -> bool:
        """Only unsettled purchases carry a due date and deductions"""
        return self in (TransactionStatus.PARTIAL, TransactionStatus.CREDIT)


OUTSTANDING_STATUSES = (TransactionStatus.PARTIAL, TransactionStatus.CREDIT)


@dataclass
class PaymentTracking:
    """Due-date and deduction state carried by Partial/Credit transactions"""

    due_date: Optional[datetime] = None
    is_overdue: bool = False
    loyalty_deductions: int = 0
    last_deduction_date: Optional[datetime] = None


@dataclass
class Transaction:
    """Canteen purchase as seen by the compliance engine"""

    id: str
    student_id: str
    total_amount: Decimal
    status: TransactionStatus
    created_at: datetime
    tracking: Optional[PaymentTracking] = None


@dataclass
class Student:
    """Student account fields the compliance engine reads and writes"""

    student_id: str
    loyalty: int
    is_active: bool = True
    suspension_date: Optional[datetime] = None


@dataclass(frozen=True)
class BanDecision:
    """Outcome of the ban check"""

    ban: bool
    ban_days: int


@dataclass(frozen=True)
class AccountAction:
    """Account-state changes triggered by a loyalty balance"""

    suspend: bool
    ban: BanDecision

    @property
    def any(self) -> bool:
        return self.suspend or self.ban.ban


class AlarmLevel(str, Enum):
    """Display severity of an outstanding transaction"""

    NONE = "none"
    GRACE = "grace"
    WARNING = "warning"
    ESCALATED = "escalated"
    CRITICAL = "critical"


@dataclass(frozen=True)
class DeductionSummary:
    """Read-only view of a transaction's deduction state"""

    is_overdue: bool
    days_overdue: int
    alarm_level: AlarmLevel
    next_deduction: int
    total_deducted: int
    processed_today: bool
    last_deduction_date: Optional[datetime]


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ExecutedBy(str, Enum):
    SYSTEM = "system"
    MANUAL = "manual"


@dataclass
class SweepError:
    """A per-record failure collected during a sweep"""

    transaction_id: str
    student_id: Optional[str]
    stage: str  # "overdue_flag" | "deduction"
    message: str


@dataclass
class SweepResult:
    """Aggregate outcome of one sweep"""

    started_at: datetime
    finished_at: Optional[datetime] = None
    status: RunStatus = RunStatus.RUNNING
    processed_count: int = 0
    flag_updates: int = 0
    overdue_count: int = 0
    deducted_count: int = 0
    points_deducted: int = 0
    suspended_students: List[str] = field(default_factory=list)
    banned_students: List[str] = field(default_factory=list)
    errors: List[SweepError] = field(default_factory=list)
    failure_reason: Optional[str] = None

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()


@dataclass
class JobExecution:
    """Audit trail entry for one sweep run"""

    id: str
    job_type: str
    execution_date: str  # YYYY-MM-DD
    status: RunStatus
    start_time: datetime
    executed_by: ExecutedBy
    end_time: Optional[datetime] = None
    processed_transactions: int = 0
    deducted_transactions: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class StudentPaymentStatus:
    """Outstanding obligations and restriction state for one student"""

    student: Student
    overdue_transactions: List[Transaction]
    total_overdue: Decimal
    can_make_new_transactions: bool
    restriction_reason: Optional[str] = None
