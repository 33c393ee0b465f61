from __future__ import annotations

import types

from dlc_catalog.models.app_entry import AppEntry
from dlc_catalog.services.search_service import comparable_name, find_exact, search, tokenize

ENTRIES = [AppEntry(1, "Half-Life 2"), AppEntry(2, "Half-Life"), AppEntry(3, "Portal 2")]


def test_comparable_name_strips_special_characters() -> None:
    assert comparable_name("Half-Life 2: Episode One™") == "halflife2episodeone"
    assert comparable_name("Pokémon") == "pokmon"
    assert comparable_name("") == ""


def test_tokenize_splits_on_any_whitespace() -> None:
    assert tokenize("  Half\tLIFE  2 ") == ["half", "life", "2"]


def test_find_exact_first_match_wins() -> None:
    entries = [AppEntry(7, "DOOM"), AppEntry(8, "Doom")]

    assert find_exact(entries, "doom").app_id == 7
    assert find_exact(entries, "quake") is None


def test_search_is_lazy_and_matches_tokens_in_any_order() -> None:
    result = search(ENTRIES, "2 portal")

    assert isinstance(result, types.GeneratorType)
    assert [e.app_id for e in result] == [3]


def test_empty_query_matches_everything() -> None:
    assert [e.app_id for e in search(ENTRIES, "   ")] == [1, 2, 3]
