import json
import os
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from portal.domain import ArticleRecord, ExamPeriod, FeeBreakdown, FeeType, PaymentTransaction

DEFAULT_SEED = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "data", "seed.json")

DATE_FMT = "%m/%d/%Y"
DATETIME_FMT = "%m/%d/%Y %I:%M %p"

# channel keyword -> reference prefix, first match wins
REFERENCE_PREFIXES = (
    ("DragonPay", "DP"),
    ("UPay", "UP"),
    ("BPI", "BPI"),
    ("BDO", "BDO"),
    ("Bukas", "BKS"),
)


class Seed(NamedTuple):
    articles: Tuple[ArticleRecord, ...]
    fee_schedule: Tuple[FeeBreakdown, ...]
    period_dues: Dict[ExamPeriod, Decimal]
    students: Tuple[str, ...]
    channels: Tuple[str, ...]
    semester: str
    academic_year: str


def load_seed(path: str = DEFAULT_SEED) -> Seed:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f, parse_float=Decimal)

    articles = tuple(
        ArticleRecord(**{**a, "keywords": frozenset(a.get("keywords", ()))}) for a in data["articles"]
    )
    fee_schedule = tuple(
        FeeBreakdown(
            code=fee["code"],
            description=fee["description"],
            amount=Decimal(fee["amount"]),
            fee_type=FeeType[fee.get("fee_type", "OTHER")],
        )
        for fee in data["fee_schedule"]
    )
    period_dues = {ExamPeriod[k]: Decimal(v) for k, v in data.get("period_dues", {}).items()}

    return Seed(
        articles=articles,
        fee_schedule=fee_schedule,
        period_dues=period_dues,
        students=tuple(str(s) for s in data.get("students", ())),
        channels=tuple(data.get("payment_channels", ())),
        semester=data.get("semester", ""),
        academic_year=data.get("academic_year", ""),
    )


def format_peso(amount: Decimal) -> str:
    if amount < 0:
        return f"(P {abs(amount):,.2f})"
    return f"P {amount:,.2f}"


def make_reference(channel: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    prefix = next((p for key, p in REFERENCE_PREFIXES if key.lower() in channel.lower()), "PAY")
    return f"{prefix}{int(now.timestamp() * 1000)}"


def fee_status(fee: FeeBreakdown, paid: Decimal, remaining: Decimal) -> str:
    if fee.amount <= 0:
        return "Credit"
    if remaining <= 0:
        return "Paid"
    if paid > 0:
        return "Partial"
    return "Unpaid"


def fee_rows(allocations: Iterable[Tuple[FeeBreakdown, Decimal, Decimal]]) -> List[dict]:
    rows = []
    for fee, paid, remaining in allocations:
        rows.append({
            "Date": fee.date_posted.strftime(DATE_FMT) if fee.date_posted else "",
            "Code": fee.code,
            "Description": fee.description,
            "Amount": format_peso(fee.amount),
            "Balance": format_peso(remaining),
            "Status": fee_status(fee, paid, remaining),
        })
    return rows


def payment_rows(payments: Iterable[PaymentTransaction], statuses: Optional[Iterable] = None) -> List[dict]:
    payments = list(payments)
    statuses = list(statuses) if statuses is not None else [p.status for p in payments]
    return [
        {
            "Date": p.date.strftime(DATETIME_FMT),
            "Channel": p.channel,
            "Reference": p.reference,
            "Amount": format_peso(p.amount),
            "Status": s.display_name,
        }
        for p, s in zip(payments, statuses)
    ]


def article_rows(articles: Iterable[ArticleRecord]) -> List[dict]:
    return [
        {
            "Title": a.title,
            "Authors": a.authors,
            "Journal": a.journal_name,
            "Type": a.publication_type,
            "Year": a.year,
            "Keywords": ", ".join(sorted(a.keywords)),
        }
        for a in articles
    ]


def statement_report_text(summary: dict, today: Optional[date] = None) -> str:
    """Plain-text statement of account built from AccountStatement.snapshot()."""
    today = today or date.today()
    as_of = today.strftime("%B %d, %Y")
    rule = "-" * 43

    lines = [
        "STATEMENT OF ACCOUNT",
        "=" * 43,
        f"Student ID: {summary['student_id']}",
        f"Semester: {summary['semester']} {summary['academic_year']}".rstrip(),
        f"As of: {as_of}",
        "",
        "FEES BREAKDOWN:",
        rule,
    ]
    for fee, _, _ in summary["fees"]:
        posted = fee.date_posted.strftime(DATE_FMT) if fee.date_posted else ""
        lines.append(f"{fee.code} | {posted} | {fee.description} | {format_peso(fee.amount)}")

    lines += [
        rule,
        f"TOTAL AMOUNT: {format_peso(summary['total_amount'])}",
        f"Amount Paid: {format_peso(summary['amount_paid'])}",
        f"BALANCE: {format_peso(summary['balance'])}",
    ]
    if summary["overpayment"] > 0:
        lines.append(f"Overpayment: {format_peso(summary['overpayment'])}")

    lines += ["", "EXAM PAYMENT STATUS:", rule]
    for period in ExamPeriod:
        paid = summary["periods"][period]["paid"]
        lines.append(f"{period.value.title()} Exams: {'PAID' if paid else 'UNPAID'}")

    if summary["payments"]:
        lines += ["", "PAYMENT HISTORY:", rule]
        for p in summary["payments"]:
            lines.append(f"{p.date.strftime(DATETIME_FMT)} | {p.channel} | {p.reference} | {format_peso(p.amount)}")

    return "\n".join(lines) + "\n"


def print_preview(search_label: str, articles: Iterable[ArticleRecord], now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    articles = list(articles)
    lines = [
        "SAINT LOUIS UNIVERSITY LIBRARIES",
        "PERIODICAL ARTICLE INDEXES",
        "=" * 32,
        "",
        f"Search Results for: {search_label}",
        f"Date: {now.strftime('%B %d, %Y %I:%M %p')}",
        f"Total Results: {len(articles)}",
        "",
    ]
    if not articles:
        lines.append("No results found.")
    for i, a in enumerate(articles, start=1):
        lines += [
            f"{i}. {a.title}",
            f"   Type: {a.publication_type}",
            f"   Authors: {a.authors}",
            f"   Journal: {a.journal_name}",
            f"   Volume: {a.volume}, Issue: {a.issue}, Pages: {a.pages}",
            f"   Year: {a.year}",
            "",
        ]
    return "\n".join(lines).rstrip() + "\n"
