from __future__ import annotations

import pytest

from restaurant_directory.errors import DirectoryValidationError
from restaurant_directory.query.predicates import AllOf, AnyOf, Contains, TextSearch
from restaurant_directory.query.text_search import (
    SEARCH_FIELDS,
    SearchMode,
    autocomplete_query,
    choose_strategy,
    group_suggestions,
    tag_match,
)


@pytest.mark.parametrize("raw", [None, "", "   ", '""'])
def test_blank_query_has_no_strategy(raw):
    assert choose_strategy(raw) is None


def test_quoted_query_is_phrase_search():
    strategy = choose_strategy('"tacos al pastor"')
    assert strategy.mode is SearchMode.phrase
    assert strategy.predicate == TextSearch("tacos al pastor", phrase=True)
    assert strategy.scores_relevance


def test_multiple_tokens_require_every_token():
    strategy = choose_strategy("tacos  pastor")
    assert strategy.mode is SearchMode.all_terms
    assert isinstance(strategy.predicate, AllOf)
    assert len(strategy.predicate.clauses) == 2
    first = strategy.predicate.clauses[0]
    assert first == AnyOf(tuple(Contains(field, "tacos") for field in SEARCH_FIELDS))
    assert not strategy.scores_relevance


def test_single_token_is_relevance_search():
    strategy = choose_strategy("  mariscos ")
    assert strategy.mode is SearchMode.relevance
    assert strategy.predicate == TextSearch("mariscos")
    assert strategy.describe() == {"query": "mariscos", "mode": "relevance"}


def test_autocomplete_rejects_single_character():
    with pytest.raises(DirectoryValidationError) as exc_info:
        autocomplete_query("t")
    assert exc_info.value.details[0]["field"] == "q"


def test_autocomplete_accepts_two_characters():
    assert autocomplete_query(" ta ") == "ta"


def test_tag_match_prefers_name_over_other_fields():
    record = {"name": "Mariscos El Puerto", "cuisine_type": "Mariscos", "category": ["Mariscos"]}
    assert tag_match(record, "mar") == ("restaurants", "Mariscos El Puerto")


def test_tag_match_city_before_neighborhood_before_category():
    record = {
        "name": "Contramar",
        "cuisine_type": "Mariscos",
        "city": "Roma",
        "neighborhood": "Roma Norte",
        "category": ["Romántico"],
    }
    assert tag_match(record, "rom") == ("locations", "Roma")


def test_tag_match_none_when_nothing_matches():
    assert tag_match({"name": "Pujol", "category": []}, "xyz") is None


def test_group_suggestions_dedupes_and_limits():
    records = [
        {"id": "a", "name": "Sushi Uno", "cuisine_type": "Japonesa", "city": "Puebla"},
        {"id": "b", "name": "Sushi Dos", "cuisine_type": "Japonesa", "city": "Puebla"},
        {"id": "c", "name": "Otro", "cuisine_type": "Japonesa", "city": "Puebla"},
        {"id": "d", "name": "Otro Más", "cuisine_type": "Japonesa", "city": "Puebla"},
    ]
    suggestions = group_suggestions(records, "jap", limit=5)
    assert suggestions["cuisines"] == ["Japonesa"]
    assert suggestions["restaurants"] == []

    by_name = group_suggestions(records, "sushi", limit=1)
    assert by_name["restaurants"] == [
        {"id": "a", "name": "Sushi Uno", "cuisine_type": "Japonesa", "city": "Puebla"},
    ]
