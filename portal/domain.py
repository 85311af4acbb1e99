from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import FrozenSet, Optional

ZERO = Decimal("0.00")


class ExamPeriod(Enum):
    PRELIM = "PRELIM"
    MIDTERM = "MIDTERM"
    FINAL = "FINAL"


class PaymentStatus(Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    FOR_POSTING = "For Posting"
    POSTED = "Posted"
    COMPLETED = "Completed"
    FAILED = "Failed"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"

    @property
    def display_name(self) -> str:
        return self.value

    @property
    def is_successful(self) -> bool:
        return self in (PaymentStatus.POSTED, PaymentStatus.COMPLETED)

    @property
    def is_in_progress(self) -> bool:
        return self in (PaymentStatus.PENDING, PaymentStatus.PROCESSING, PaymentStatus.FOR_POSTING)


class FeeType(Enum):
    TUITION = "Tuition Fee"
    LABORATORY = "Laboratory Fee"
    MISCELLANEOUS = "Miscellaneous Fee"
    LIBRARY = "Library Fee"
    REGISTRATION = "Registration Fee"
    ATHLETIC = "Athletic Fee"
    MEDICAL = "Medical/Dental Fee"
    GUIDANCE = "Guidance Fee"
    PUBLICATION = "Publication Fee"
    INTERNET = "Internet Fee"
    ENERGY = "Energy Fee"
    INSURANCE = "Insurance Fee"
    DEVELOPMENT = "Development Fee"
    CULTURAL = "Cultural Fee"
    DISCOUNT = "Discount/Scholarship"
    PENALTY = "Late Payment Penalty"
    OTHER = "Other Fees"


@dataclass(frozen=True)
class ArticleRecord:
    title: str
    authors: str
    journal_name: str
    publication_type: str
    year: int
    keywords: FrozenSet[str] = frozenset()
    volume: str = ""
    issue: str = ""
    pages: str = ""
    current_issue: bool = False


# One debit line of a statement
@dataclass(frozen=True)
class FeeBreakdown:
    description: str
    amount: Decimal
    date_posted: Optional[date] = None
    code: str = ""
    fee_type: FeeType = FeeType.OTHER


# One credit line of a statement
@dataclass(frozen=True)
class PaymentTransaction:
    date: datetime
    amount: Decimal
    reference: str
    channel: str
    status: PaymentStatus = PaymentStatus.PROCESSING


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    message: str
    transaction: Optional[PaymentTransaction] = None
    new_balance: Decimal = ZERO
    overpayment: Decimal = ZERO
    periods_paid: tuple = field(default_factory=tuple)  # periods that flipped to PAID
