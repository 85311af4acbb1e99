from portal.articles import (
    ArticleCriteria,
    by_term,
    iter_articles,
    matches_advanced_search,
    matches_search,
    parse_year_bound,
)
from portal.domain import ArticleRecord
from portal.functional import Nothing, Some
from portal.repository import ArticleRepository
from portal.transforms import load_seed


def sample_repo() -> ArticleRepository:
    return ArticleRepository(load_seed().articles)


def make_article(**overrides) -> ArticleRecord:
    fields = dict(
        title="Sustainable Tourism Development in Asia",
        authors="Raj Patel, Ming Zhang",
        journal_name="Asia Pacific Journal of Tourism Research",
        publication_type="SUSTAINABLE TOURISM",
        year=2024,
        keywords=frozenset({"sustainable", "Asia"}),
    )
    fields.update(overrides)
    return ArticleRecord(**fields)


def test_empty_term_matches_every_sample():
    repo = sample_repo()
    assert all(matches_search(a, "") for a in repo.all())
    assert all(matches_search(a, "   ") for a in repo.all())
    assert repo.search("") == repo.all()


def test_search_is_case_insensitive():
    repo = sample_repo()
    upper = repo.search("TOURISM")
    lower = repo.search("tourism")
    assert upper == lower
    assert len(upper) > 0


def test_search_covers_keywords_and_type():
    article = make_article()
    assert matches_search(article, "asia")
    assert matches_search(article, "SUSTAINABLE TOUR")
    assert matches_search(article, "ming")
    assert not matches_search(article, "airbnb")


def test_search_covid_and_nonexistent():
    repo = sample_repo()
    covid = repo.search("covid")
    assert len(covid) >= 1
    assert any(a.publication_type == "PANDEMIC" for a in covid)
    assert repo.search("zzz-nonexistent") == ()


def test_advanced_blank_returns_everything_in_order():
    repo = sample_repo()
    result = repo.advanced_search(ArticleCriteria())
    assert result == repo.all()
    assert [a.title for a in result] == [a.title for a in repo.all()]


def test_advanced_inverted_year_range_is_empty():
    repo = sample_repo()
    assert repo.advanced_search(ArticleCriteria(year_from="2024", year_to="2015")) == ()


def test_advanced_year_range_is_inclusive():
    repo = sample_repo()
    result = repo.advanced_search(ArticleCriteria(year_from="2023", year_to="2023"))
    assert len(result) == 3
    assert all(a.year == 2023 for a in result)


def test_advanced_malformed_year_means_no_bound():
    repo = sample_repo()
    assert repo.advanced_search(ArticleCriteria(year_from="20x5", year_to="soon")) == repo.all()
    only_upper = repo.advanced_search(ArticleCriteria(year_from="abc", year_to="2015"))
    assert only_upper and all(a.year <= 2015 for a in only_upper)


def test_advanced_type_must_match_exactly():
    repo = sample_repo()
    assert len(repo.advanced_search(ArticleCriteria(pub_type="BIOGRAPHY"))) == 3
    assert repo.advanced_search(ArticleCriteria(pub_type="BIO")) == ()
    assert repo.advanced_search(ArticleCriteria(pub_type="All")) == repo.all()


def test_advanced_fields_are_conjunctive():
    article = make_article()
    assert matches_advanced_search(article, "tourism", "patel", "pacific", "2020", "2024", "SUSTAINABLE TOURISM")
    assert not matches_advanced_search(article, "tourism", "smith")
    assert not matches_advanced_search(article, journal_fragment="europe")
    assert not matches_advanced_search(article, year_from="2025")


def test_advanced_author_fragment():
    repo = sample_repo()
    result = repo.advanced_search(ArticleCriteria(author="brown"))
    assert {a.title for a in result} == {
        "Women in Tourism: Biographical Perspectives",
        "COVID-19 Impact on Global Tourism",
    }


def test_parse_year_bound():
    assert parse_year_bound("2015") == Some(2015)
    assert parse_year_bound(" 2024 ") == Some(2024)
    assert parse_year_bound("") == Nothing()
    assert parse_year_bound("twenty") == Nothing()
    assert parse_year_bound(None) == Nothing()
    assert parse_year_bound("   ") == Nothing()
    assert parse_year_bound("2015.5") == Nothing()


def test_iter_articles_is_lazy():
    repo = sample_repo()
    calls = {"n": 0}

    def pred(a):
        calls["n"] += 1
        return True

    gen = iter_articles(repo.all(), pred)
    first = next(gen)
    assert first == repo.all()[0]
    assert calls["n"] == 1


def test_by_term_predicate():
    arts = (make_article(), make_article(title="Airbnb study", keywords=frozenset()))
    assert len(list(filter(by_term("airbnb"), arts))) == 1


def test_criteria_describe_and_blank():
    assert ArticleCriteria().is_blank()
    assert ArticleCriteria().describe() == "Advanced Search"
    criteria = ArticleCriteria(title="tourism", pub_type="BIOGRAPHY", year_from="2020")
    assert not criteria.is_blank()
    text = criteria.describe()
    assert 'title: "tourism"' in text
    assert "type: BIOGRAPHY" in text
    assert "2020" in text


def test_publication_types_keep_first_seen_order():
    repo = sample_repo()
    types = repo.publication_types()
    assert types[0] == "TRAVEL DECISION MAKING"
    assert len(types) == len(set(types))
    assert "BIOGRAPHY" in types
