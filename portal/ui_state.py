from dataclasses import dataclass, replace
from enum import Enum
from typing import FrozenSet, Tuple

from portal.articles import ArticleCriteria
from portal.domain import ArticleRecord
from portal.repository import ArticleRepository


class UIState(Enum):
    SEARCH_FORM = "search_form"
    RESULTS_VIEW = "results_view"


CONTROLS = {
    UIState.SEARCH_FORM: frozenset({"search", "advanced"}),
    UIState.RESULTS_VIEW: frozenset({"search_again", "print"}),
}


@dataclass(frozen=True)
class SearchView:
    """What the journal page shows; every transition returns a new view."""

    state: UIState = UIState.SEARCH_FORM
    label: str = ""
    results: Tuple[ArticleRecord, ...] = ()

    def visible_controls(self) -> FrozenSet[str]:
        return CONTROLS[self.state]

    def submit(self, term: str, repo: ArticleRepository) -> "SearchView":
        term = (term or "").strip()
        if not term:
            return self.search_again()
        return replace(self, state=UIState.RESULTS_VIEW, label=term, results=repo.search(term))

    def submit_advanced(self, criteria: ArticleCriteria, repo: ArticleRepository) -> "SearchView":
        return replace(
            self,
            state=UIState.RESULTS_VIEW,
            label=criteria.describe(),
            results=repo.advanced_search(criteria),
        )

    def search_again(self) -> "SearchView":
        return SearchView()

    @property
    def can_print(self) -> bool:
        return self.state is UIState.RESULTS_VIEW
