import threading
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from portal.domain import (
    ZERO,
    ExamPeriod,
    FeeBreakdown,
    FeeType,
    PaymentResult,
    PaymentStatus,
    PaymentTransaction,
)
from portal.functional import parse_amount, validate_channel
from portal.logging_config import get_logger
from portal.transforms import format_peso, make_reference

logger = get_logger(__name__)

ONSITE_MARKERS = ("cashier", "onsite")


def initial_status(channel: str) -> PaymentStatus:
    lowered = channel.lower()
    if any(m in lowered for m in ONSITE_MARKERS):
        return PaymentStatus.FOR_POSTING
    return PaymentStatus.PROCESSING


def status_at(tx: PaymentTransaction, now: datetime) -> PaymentStatus:
    """Simulated clearing: onsite payments wait for the cashier, online ones settle on their own."""
    minutes = (now - tx.date).total_seconds() / 60
    if tx.status is PaymentStatus.FOR_POSTING:
        return PaymentStatus.FOR_POSTING if minutes < 5 else PaymentStatus.POSTED
    if tx.status is PaymentStatus.PROCESSING:
        if minutes < 2:
            return PaymentStatus.PROCESSING
        if minutes < 5:
            return PaymentStatus.FOR_POSTING
        return PaymentStatus.COMPLETED
    return tx.status


class AccountStatement:
    """Fee/payment ledger of one student for one semester.

    balance = max(0, fees - payments). Payments are allocated to exam periods
    in PRELIM, MIDTERM, FINAL order; a period flips to PAID once its allocation
    covers its due amount and stays PAID. Dues are capped to the fees still owed
    (see effective_due), so a scholarship never leaves a period unpayable.
    """

    def __init__(
        self,
        student_id: str,
        period_dues: Optional[Dict[ExamPeriod, Decimal]] = None,
        fees: Iterable[FeeBreakdown] = (),
        semester: str = "",
        academic_year: str = "",
    ):
        self.student_id = student_id
        self.semester = semester
        self.academic_year = academic_year
        self._period_dues: Dict[ExamPeriod, Decimal] = dict(period_dues or {})
        self._fees: List[FeeBreakdown] = list(fees)
        self._payments: List[PaymentTransaction] = []
        self._paid_periods: set = set()
        self._lock = threading.RLock()
        self.last_updated = date.today()
        self._refresh_paid_periods()

    # -- totals

    def total_fees(self) -> Decimal:
        return sum((f.amount for f in self._fees), ZERO)

    def total_tuition(self) -> Decimal:
        return sum((f.amount for f in self._fees if f.fee_type is FeeType.TUITION), ZERO)

    def total_paid(self) -> Decimal:
        return sum((p.amount for p in self._payments), ZERO)

    def get_balance(self) -> Decimal:
        with self._lock:
            return max(ZERO, self.total_fees() - self.total_paid())

    def get_overpayment(self) -> Decimal:
        with self._lock:
            return max(ZERO, self.total_paid() - self.total_fees())

    def get_fee_breakdowns(self) -> Tuple[FeeBreakdown, ...]:
        with self._lock:
            return tuple(self._fees)

    def get_payment_history(self) -> Tuple[PaymentTransaction, ...]:
        with self._lock:
            return tuple(self._payments)

    # -- exam periods

    def get_exam_period_due(self, period: ExamPeriod) -> Decimal:
        return self._period_dues.get(period, ZERO)

    def effective_due(self, period: ExamPeriod) -> Decimal:
        """Configured due, capped so the dues never ask for more than the fees owe.

        After a scholarship or other credit, later periods shrink first.
        """
        with self._lock:
            unassigned = max(ZERO, self.total_fees())
            for p in ExamPeriod:
                due = min(unassigned, self.get_exam_period_due(p))
                if p is period:
                    return due
                unassigned -= due
        return ZERO

    def allocated_to(self, period: ExamPeriod) -> Decimal:
        with self._lock:
            remaining = self.total_paid()
            for p in ExamPeriod:
                share = min(remaining, self.effective_due(p))
                if p is period:
                    return share
                remaining -= share
        return ZERO

    def get_remaining_due(self, period: ExamPeriod) -> Decimal:
        return max(ZERO, self.effective_due(period) - self.allocated_to(period))

    def is_period_paid(self, period: ExamPeriod) -> bool:
        with self._lock:
            return period in self._paid_periods

    def is_prelim_paid(self) -> bool:
        return self.is_period_paid(ExamPeriod.PRELIM)

    def is_midterm_paid(self) -> bool:
        return self.is_period_paid(ExamPeriod.MIDTERM)

    def is_final_paid(self) -> bool:
        return self.is_period_paid(ExamPeriod.FINAL)

    def _refresh_paid_periods(self) -> Tuple[ExamPeriod, ...]:
        flipped = []
        for period in ExamPeriod:
            if period in self._paid_periods:
                continue
            if self.allocated_to(period) >= self.effective_due(period):
                self._paid_periods.add(period)
                flipped.append(period)
        return tuple(flipped)

    def exam_eligibility_message(self, period: ExamPeriod, now: Optional[datetime] = None) -> str:
        now = now or datetime.now()
        name = period.value.lower()
        due = self.get_remaining_due(period)
        if due > 0:
            return f"✗ Payment required ({format_peso(due)}) to take {name} examination"
        pending = any(status_at(p, now).is_in_progress for p in self.get_payment_history())
        if pending:
            return "Payment processing - Eligibility pending"
        return f"✓ Eligible to take {name} examination"

    # -- mutation

    def add_fee(self, fee: FeeBreakdown) -> None:
        with self._lock:
            self._fees.append(fee)
            self._refresh_paid_periods()
            self.last_updated = date.today()

    def apply_scholarship(self, percent: Decimal, name: str) -> FeeBreakdown:
        with self._lock:
            self._fees = [f for f in self._fees if f.fee_type is not FeeType.DISCOUNT]
            discount = (self.total_tuition() * Decimal(percent) / Decimal(100)).quantize(Decimal("0.01"))
            fee = FeeBreakdown(
                description=name,
                amount=-discount,
                date_posted=date.today(),
                code="SCHOLARSHIP",
                fee_type=FeeType.DISCOUNT,
            )
            self.add_fee(fee)
            return fee

    def process_payment(self, amount, channel: str, reference: Optional[str] = None, now: Optional[datetime] = None) -> PaymentResult:
        parsed = parse_amount(amount).bind(lambda a: validate_channel(channel).map(lambda c: (a, c)))
        if parsed.is_left():
            error = parsed.get_error()
            logger.warning("Rejected payment for %s: %s", self.student_id, error["error"])
            return PaymentResult(
                success=False,
                message=error["message"],
                new_balance=self.get_balance(),
                overpayment=self.get_overpayment(),
            )

        value, channel = parsed.get_or_else(None)
        now = now or datetime.now()
        reference = reference or make_reference(channel, now)

        with self._lock:
            before = self.get_balance()
            tx = PaymentTransaction(
                date=now,
                amount=value,
                reference=reference,
                channel=channel,
                status=initial_status(channel),
            )
            self._payments.append(tx)
            flipped = self._refresh_paid_periods()
            self.last_updated = now.date()
            balance = self.get_balance()
            overpayment = self.get_overpayment()

        head = f"Payment {tx.status.display_name.lower()}! Amount: {format_peso(value)}"
        if before <= 0:
            message = f"{head}\nAdded to overpayment. Total overpayment: {format_peso(overpayment)}"
        elif value >= before:
            message = f"{head}\nBalance fully paid. Overpayment: {format_peso(overpayment)}"
        else:
            message = f"{head}\nRemaining balance: {format_peso(balance)}"

        logger.info("Payment %s of %s via %s for %s", reference, value, channel, self.student_id)
        return PaymentResult(
            success=True,
            message=message,
            transaction=tx,
            new_balance=balance,
            overpayment=overpayment,
            periods_paid=flipped,
        )

    # -- views

    def fee_allocations(self) -> List[Tuple[FeeBreakdown, Decimal, Decimal]]:
        """(fee, paid, remaining) per line; payments and credits settle charges in order."""
        with self._lock:
            credits = sum((-f.amount for f in self._fees if f.amount < 0), ZERO)
            pool = self.total_paid() + credits
            rows = []
            for fee in self._fees:
                if fee.amount <= 0:
                    rows.append((fee, ZERO, ZERO))
                    continue
                paid = min(pool, fee.amount)
                pool -= paid
                rows.append((fee, paid, fee.amount - paid))
            return rows

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "student_id": self.student_id,
                "semester": self.semester,
                "academic_year": self.academic_year,
                "total_tuition": self.total_tuition(),
                "total_amount": self.total_fees(),
                "amount_paid": self.total_paid(),
                "balance": self.get_balance(),
                "overpayment": self.get_overpayment(),
                "fees": self.fee_allocations(),
                "payments": self.get_payment_history(),
                "periods": {
                    p: {
                        "due": self.effective_due(p),
                        "allocated": self.allocated_to(p),
                        "remaining": self.get_remaining_due(p),
                        "paid": p in self._paid_periods,
                    }
                    for p in ExamPeriod
                },
                "last_updated": self.last_updated,
            }


def with_posting_date(fees: Iterable[FeeBreakdown], posted: date) -> Tuple[FeeBreakdown, ...]:
    return tuple(replace(f, date_posted=f.date_posted or posted) for f in fees)
