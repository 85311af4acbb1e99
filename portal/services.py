from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Sequence

from portal.domain import PaymentResult
from portal.events import BALANCE_CLEARED, PAYMENT_POSTED, PERIOD_PAID, EventBus
from portal.functional import parse_amount
from portal.logging_config import get_logger
from portal.repository import StatementRepository
from portal.statement import AccountStatement
from portal.transforms import format_peso, make_reference

logger = get_logger(__name__)


def max_single_payment(limit):
    """Validator factory: reject payments above `limit`."""
    ceiling = Decimal(str(limit))

    def _validator(statement: AccountStatement, amount, channel: str) -> Sequence[str]:
        # unparsable amounts are reported by the statement itself
        value = parse_amount(amount).get_or_else(None)
        if value is not None and value > ceiling:
            return [f"Payments above {format_peso(ceiling)} must be made at the cashier."]
        return []

    _validator.__name__ = "max_single_payment"
    return _validator


def known_channel(channels: Sequence[str]):
    """Validator factory: only the listed payment channels are accepted."""
    allowed = {c.lower() for c in channels}

    def _validator(statement: AccountStatement, amount, channel: str) -> Sequence[str]:
        if allowed and (channel or "").strip().lower() not in allowed:
            return [f"Unknown payment channel: {channel}"]
        return []

    _validator.__name__ = "known_channel"
    return _validator


class PaymentService:
    """Facade for submitting payments against a student's statement.

    validators: sequence of functions taking (statement, amount, channel) -> Sequence[str];
    any message rejects the payment before the ledger is touched.
    """

    def __init__(
        self,
        statements: StatementRepository,
        validators: Sequence[Callable[..., Sequence[str]]] = (),
        bus: Optional[EventBus] = None,
    ):
        self.statements = statements
        self.validators = validators
        self.bus = bus

    def process_payment(
        self,
        student_id: str,
        amount,
        channel: str,
        reference: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PaymentResult:
        found = self.statements.get(student_id)
        if found.is_none():
            return PaymentResult(success=False, message=f"Student {student_id} not found.")
        statement = found.get_or_else(None)

        messages = []
        for v in self.validators:
            try:
                messages.extend(v(statement, amount, channel))
            except Exception as e:
                messages.append(f"validator_error: {e}")
        if messages:
            logger.warning("Payment for %s rejected by validators: %s", student_id, messages)
            return PaymentResult(
                success=False,
                message="\n".join(messages),
                new_balance=statement.get_balance(),
                overpayment=statement.get_overpayment(),
            )

        now = now or datetime.now()
        reference = reference or make_reference(channel or "", now)
        result = statement.process_payment(amount, channel, reference, now=now)
        if result.success:
            self._publish(student_id, result)
        return result

    def _publish(self, student_id: str, result: PaymentResult) -> None:
        if self.bus is None:
            return
        tx = result.transaction
        self.bus.publish(PAYMENT_POSTED, {
            "student_id": student_id,
            "amount": tx.amount,
            "channel": tx.channel,
            "reference": tx.reference,
            "balance": result.new_balance,
        })
        for period in result.periods_paid:
            self.bus.publish(PERIOD_PAID, {"student_id": student_id, "period": period.value})
        if result.new_balance == 0:
            self.bus.publish(BALANCE_CLEARED, {"student_id": student_id, "overpayment": result.overpayment})


class StatementReportService:
    """Builds a statement report by running injected calculators in sequence.

    calculators: sequence of functions taking (snapshot, acc) -> dict (partial results)
    """

    def __init__(self, statements: StatementRepository, calculators: Sequence[Callable[..., Dict[str, Any]]]):
        self.statements = statements
        self.calculators = calculators

    def statement_report(self, student_id: str) -> Dict[str, Any]:
        report = {"student_id": student_id, "found": False, "steps": [], "result": {}}
        snapshot = self.statements.get(student_id).map(lambda s: s.snapshot()).get_or_else(None)
        if snapshot is None:
            return report

        report["found"] = True
        acc: Dict[str, Any] = {}
        for calc in self.calculators:
            out = calc(snapshot, acc)
            report["steps"].append({"calculator": getattr(calc, "__name__", str(calc)), "output": out})
            if isinstance(out, dict):
                acc.update(out)
        report["result"] = acc
        return report


def totals_calculator(snapshot: dict, acc: dict) -> dict:
    return {
        "total_amount": snapshot["total_amount"],
        "amount_paid": snapshot["amount_paid"],
        "balance": snapshot["balance"],
        "overpayment": snapshot["overpayment"],
    }


def exam_status_calculator(snapshot: dict, acc: dict) -> dict:
    return {
        "exam_status": {p.value: info["paid"] for p, info in snapshot["periods"].items()},
        "next_due": next(
            ((p.value, info["remaining"]) for p, info in snapshot["periods"].items() if info["remaining"] > 0),
            None,
        ),
    }


def history_calculator(snapshot: dict, acc: dict) -> dict:
    payments = snapshot["payments"]
    return {
        "payment_count": len(payments),
        "channels": sorted({p.channel for p in payments}),
        "last_payment": payments[-1].reference if payments else None,
    }


DEFAULT_CALCULATORS = (totals_calculator, exam_status_calculator, history_calculator)
