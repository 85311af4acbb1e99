from datetime import datetime
from decimal import Decimal

from portal.domain import ExamPeriod, FeeBreakdown
from portal.events import BALANCE_CLEARED, PAYMENT_POSTED, PERIOD_PAID, EventBus, register_default_handlers
from portal.repository import StatementRepository
from portal.services import (
    DEFAULT_CALCULATORS,
    PaymentService,
    StatementReportService,
    known_channel,
    max_single_payment,
)

NOW = datetime(2025, 9, 1, 10, 0)


def make_repo() -> StatementRepository:
    return StatementRepository(
        roster=["2255146"],
        fee_schedule=[FeeBreakdown("Tuition Fee", Decimal("5000.00"), code="TF001")],
        period_dues={ExamPeriod.PRELIM: Decimal("2000.00"), ExamPeriod.MIDTERM: Decimal("3000.00")},
    )


def recording_bus():
    bus = EventBus()
    seen = []

    def record(event, payload):
        seen.append((event.name, payload))
        return {}

    for name in (PAYMENT_POSTED, PERIOD_PAID, BALANCE_CLEARED):
        bus.subscribe(name, record)
    return bus, seen


def test_prelim_scenario_through_service():
    repo = StatementRepository(
        roster=["2255146"],
        fee_schedule=[FeeBreakdown("Tuition Fee", Decimal("5000.00"))],
        period_dues={ExamPeriod.PRELIM: Decimal("5000.00")},
    )
    svc = PaymentService(repo)
    result = svc.process_payment("2255146", Decimal("5000.00"), "BDO", "PAY-1")
    statement = repo.get("2255146").get_or_else(None)
    assert result.success
    assert statement.get_balance() == Decimal("0.00")
    assert statement.is_prelim_paid()
    assert len(statement.get_payment_history()) == 1


def test_unknown_student_fails_without_raising():
    svc = PaymentService(make_repo())
    result = svc.process_payment("0000000", "100", "BDO Online")
    assert result.success is False
    assert "not found" in result.message


def test_validators_reject_before_ledger_changes():
    repo = make_repo()
    svc = PaymentService(repo, validators=[known_channel(["BDO Online"]), max_single_payment(1000)])

    bad_channel = svc.process_payment("2255146", "100", "Crypto Wallet")
    too_big = svc.process_payment("2255146", "1500", "BDO Online")

    assert not bad_channel.success and "Unknown payment channel" in bad_channel.message
    assert not too_big.success and "cashier" in too_big.message
    assert repo.get("2255146").get_or_else(None).get_payment_history() == ()


def test_max_single_payment_reads_form_amounts():
    validator = max_single_payment(1000)
    statement = make_repo().get("2255146").get_or_else(None)

    for raw in ("1,500.00", "P 1500", "₱1,000.01", Decimal("1000.01")):
        assert validator(statement, raw, "BDO Online"), raw
    for raw in ("1,000.00", "999.999", "P 250"):
        assert validator(statement, raw, "BDO Online") == [], raw
    # left for the statement to reject with its own message
    assert validator(statement, "abc", "BDO Online") == []
    assert validator(statement, "-5000", "BDO Online") == []


def test_validator_error_is_reported():
    def broken(statement, amount, channel):
        raise RuntimeError("oops")

    svc = PaymentService(make_repo(), validators=[broken])
    result = svc.process_payment("2255146", "100", "BDO Online")
    assert result.success is False
    assert "validator_error: oops" in result.message


def test_reference_is_generated_from_channel():
    svc = PaymentService(make_repo())
    result = svc.process_payment("2255146", "100", "BDO Bills Payment", now=NOW)
    assert result.transaction.reference.startswith("BDO")
    assert result.transaction.reference == f"BDO{int(NOW.timestamp() * 1000)}"


def test_events_published_on_success():
    bus, seen = recording_bus()
    svc = PaymentService(make_repo(), bus=bus)

    svc.process_payment("2255146", "2500", "BDO Online", "R1", now=NOW)
    names = [name for name, _ in seen]
    assert names == [PAYMENT_POSTED, PERIOD_PAID]
    assert seen[1][1]["period"] == "PRELIM"

    seen.clear()
    svc.process_payment("2255146", "2600", "BDO Online", "R2", now=NOW)
    names = [name for name, _ in seen]
    assert names == [PAYMENT_POSTED, PERIOD_PAID, BALANCE_CLEARED]
    assert seen[2][1]["overpayment"] == Decimal("100.00")


def test_no_events_for_rejected_payment():
    bus, seen = recording_bus()
    svc = PaymentService(make_repo(), bus=bus)
    svc.process_payment("2255146", "-5", "BDO Online", "R1")
    assert seen == []


def test_default_handlers():
    bus = register_default_handlers(EventBus())
    results = bus.publish(PERIOD_PAID, {"student_id": "2255146", "period": "PRELIM"})
    assert results[0]["notice"] == "2255146 is cleared for prelim examinations"
    cleared = bus.publish(BALANCE_CLEARED, {"student_id": "2255146", "overpayment": Decimal("50")})
    assert "Overpayment" in cleared[0]["alert"]


def test_event_bus_unsubscribe():
    bus = EventBus()

    def handler(event, payload):
        return {"ok": True}

    bus.subscribe(PAYMENT_POSTED, handler)
    assert bus.publish(PAYMENT_POSTED, {}) == [{"ok": True}]
    bus.unsubscribe(PAYMENT_POSTED, handler)
    assert bus.publish(PAYMENT_POSTED, {}) == []
    assert bus.publish("UNKNOWN", {}) == []


def test_statement_report_steps():
    repo = make_repo()
    PaymentService(repo).process_payment("2255146", "2500", "BDO Online", "R1", now=NOW)
    svc = StatementReportService(repo, DEFAULT_CALCULATORS)

    rpt = svc.statement_report("2255146")
    assert rpt["found"] is True
    assert [s["calculator"] for s in rpt["steps"]] == [
        "totals_calculator",
        "exam_status_calculator",
        "history_calculator",
    ]
    result = rpt["result"]
    assert result["balance"] == Decimal("2500.00")
    assert result["exam_status"] == {"PRELIM": True, "MIDTERM": False, "FINAL": True}
    assert result["next_due"] == ("MIDTERM", Decimal("2500.00"))
    assert result["payment_count"] == 1
    assert result["last_payment"] == "R1"


def test_statement_report_unknown_student():
    rpt = StatementReportService(make_repo(), DEFAULT_CALCULATORS).statement_report("nobody")
    assert rpt["found"] is False
    assert rpt["steps"] == []
    assert rpt["result"] == {}
