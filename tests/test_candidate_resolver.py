"""Tests for find_candidates tiered matching."""

from __future__ import annotations

from src.commands.resolver import find_candidates
from src.tasks.models import Task


def _tasks(*titles: str) -> list[Task]:
    return [Task(title=t) for t in titles]


class TestTiers:
    def test_exact_match_wins_over_substring(self) -> None:
        tasks = _tasks("Write report draft", "Write report")
        result = find_candidates("write report", tasks)
        assert [t.title for t in result] == ["Write report"]

    def test_exact_match_ignores_surrounding_whitespace(self) -> None:
        tasks = _tasks("  Call mom  ")
        assert len(find_candidates("call mom", tasks)) == 1

    def test_substring_tier(self) -> None:
        tasks = _tasks("Buy groceries and milk", "Walk the dog")
        result = find_candidates("buy groceries", tasks)
        assert [t.title for t in result] == ["Buy groceries and milk"]

    def test_substring_keeps_store_order(self) -> None:
        tasks = _tasks("Write blog post", "Walk the dog", "Write tests")
        result = find_candidates("write", tasks)
        assert [t.title for t in result] == ["Write blog post", "Write tests"]

    def test_token_overlap_ranked_descending(self) -> None:
        tasks = _tasks("Plan team offsite", "Email the team about offsite plan", "Gym")
        result = find_candidates("team offsite plan", tasks)
        # 3/3 tokens shared with the first, 3/6 with the second
        assert [t.title for t in result] == [
            "Plan team offsite",
            "Email the team about offsite plan",
        ]

    def test_token_overlap_ties_keep_store_order(self) -> None:
        tasks = _tasks("alpha one", "beta one")
        result = find_candidates("one two", tasks)
        assert [t.title for t in result] == ["alpha one", "beta one"]


class TestNoMatch:
    def test_empty_payload(self) -> None:
        assert find_candidates("   ", _tasks("Anything")) == []

    def test_no_overlap(self) -> None:
        assert find_candidates("dentist", _tasks("Walk the dog")) == []

    def test_empty_store(self) -> None:
        assert find_candidates("dentist", []) == []
