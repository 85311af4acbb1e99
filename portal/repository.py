import threading
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, Optional, Tuple

from portal.articles import ArticleCriteria, by_criteria, by_term, iter_articles
from portal.domain import ArticleRecord, ExamPeriod, FeeBreakdown
from portal.functional import Maybe, Nothing, Some
from portal.logging_config import get_logger
from portal.statement import AccountStatement, with_posting_date
from portal.transforms import Seed

logger = get_logger(__name__)


class ArticleRepository:
    """Read-only article catalogue. Results keep catalogue order."""

    def __init__(self, articles: Iterable[ArticleRecord]):
        self._articles: Tuple[ArticleRecord, ...] = tuple(articles)

    def all(self) -> Tuple[ArticleRecord, ...]:
        return self._articles

    def search(self, term: str) -> Tuple[ArticleRecord, ...]:
        return tuple(iter_articles(self._articles, by_term(term)))

    def advanced_search(self, criteria: ArticleCriteria) -> Tuple[ArticleRecord, ...]:
        return tuple(iter_articles(self._articles, by_criteria(criteria)))

    def publication_types(self) -> Tuple[str, ...]:
        seen = dict.fromkeys(a.publication_type for a in self._articles)
        return tuple(seen)

    def __len__(self) -> int:
        return len(self._articles)


class StatementRepository:
    """In-memory statements keyed by student id.

    Statements are opened lazily for rostered students; an unknown id is a
    caller error and comes back as Nothing().
    """

    def __init__(
        self,
        roster: Iterable[str],
        fee_schedule: Iterable[FeeBreakdown],
        period_dues: Dict[ExamPeriod, Decimal],
        semester: str = "",
        academic_year: str = "",
    ):
        self._roster = set(roster)
        self._fee_schedule = tuple(fee_schedule)
        self._period_dues = dict(period_dues)
        self._semester = semester
        self._academic_year = academic_year
        self._statements: Dict[str, AccountStatement] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_seed(cls, seed: Seed) -> "StatementRepository":
        return cls(seed.students, seed.fee_schedule, seed.period_dues, seed.semester, seed.academic_year)

    def enroll(self, student_id: str) -> None:
        with self._lock:
            self._roster.add(student_id)

    def student_ids(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(sorted(self._roster))

    def get(self, student_id: Optional[str], today: Optional[date] = None) -> Maybe[AccountStatement]:
        key = (student_id or "").strip()
        with self._lock:
            if key not in self._roster:
                logger.info("No statement for unknown student %r", student_id)
                return Nothing()
            if key not in self._statements:
                self._statements[key] = AccountStatement(
                    key,
                    period_dues=self._period_dues,
                    fees=with_posting_date(self._fee_schedule, today or date.today()),
                    semester=self._semester,
                    academic_year=self._academic_year,
                )
                logger.info("Opened statement for %s", key)
            return Some(self._statements[key])
