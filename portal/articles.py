from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Iterable, Iterator

from portal.domain import ArticleRecord
from portal.functional import Maybe, Nothing, Some

ALL_TYPES = "All"


def _non_blank(text) -> Maybe[str]:
    cleaned = "" if text is None else str(text).strip()
    return Some(cleaned) if cleaned else Nothing()


def _to_int(text: str) -> Maybe[int]:
    try:
        return Some(int(text))
    except ValueError:
        return Nothing()


@lru_cache(maxsize=256)
def parse_year_bound(text: str) -> Maybe[int]:
    """Blank or unparsable year text means "no bound"."""
    return _non_blank(text).bind(_to_int)


def _contains(haystack: str, needle: str) -> bool:
    return haystack is not None and needle.lower() in haystack.lower()


def matches_search(article: ArticleRecord, term: str) -> bool:
    if term is None or not term.strip():
        return True

    needle = term.strip().lower()
    fields = (article.title, article.authors, article.journal_name, article.publication_type)
    return any(_contains(f, needle) for f in fields) or any(_contains(k, needle) for k in article.keywords)


def matches_advanced_search(
    article: ArticleRecord,
    title_fragment: str = "",
    author_fragment: str = "",
    journal_fragment: str = "",
    year_from: str = "",
    year_to: str = "",
    pub_type: str = ALL_TYPES,
) -> bool:
    for fragment, value in (
        (title_fragment, article.title),
        (author_fragment, article.authors),
        (journal_fragment, article.journal_name),
    ):
        if fragment and fragment.strip() and not _contains(value, fragment.strip()):
            return False

    if pub_type and pub_type.strip() and pub_type != ALL_TYPES:
        if article.publication_type != pub_type:
            return False

    low = parse_year_bound(year_from).get_or_else(float("-inf"))
    high = parse_year_bound(year_to).get_or_else(float("inf"))
    return low <= article.year <= high


@dataclass(frozen=True)
class ArticleCriteria:
    """The advanced-search form, as entered."""

    title: str = ""
    author: str = ""
    journal: str = ""
    year_from: str = ""
    year_to: str = ""
    pub_type: str = ALL_TYPES

    def is_blank(self) -> bool:
        texts = (self.title, self.author, self.journal, self.year_from, self.year_to)
        return all(not (t or "").strip() for t in texts) and self.pub_type in ("", ALL_TYPES)

    def describe(self) -> str:
        parts = []
        for label, value in (("title", self.title), ("author", self.author), ("journal", self.journal)):
            if value and value.strip():
                parts.append(f'{label}: "{value.strip()}"')
        if self.pub_type and self.pub_type != ALL_TYPES:
            parts.append(f"type: {self.pub_type}")
        low = parse_year_bound(self.year_from)
        high = parse_year_bound(self.year_to)
        if low.is_some() or high.is_some():
            parts.append(f"years: {low.get_or_else('…')}-{high.get_or_else('…')}")
        return "Advanced Search" + (f" ({', '.join(parts)})" if parts else "")


def by_term(term: str) -> Callable[[ArticleRecord], bool]:
    def _filter(a: ArticleRecord) -> bool:
        return matches_search(a, term)

    return _filter


def by_criteria(criteria: ArticleCriteria) -> Callable[[ArticleRecord], bool]:
    def _filter(a: ArticleRecord) -> bool:
        return matches_advanced_search(
            a,
            criteria.title,
            criteria.author,
            criteria.journal,
            criteria.year_from,
            criteria.year_to,
            criteria.pub_type,
        )

    return _filter


def iter_articles(
    articles: Iterable[ArticleRecord], pred: Callable[[ArticleRecord], bool]
) -> Iterator[ArticleRecord]:
    for a in articles:
        if pred(a):
            yield a
