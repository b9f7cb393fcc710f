"""Tests for pattern aggregation and review state."""

import threading
from pathlib import Path

import pytest

from calibrator.core.errors import InvalidInputError
from calibrator.store import CalibratorStore


class TestUpsertPattern:
    def test_new_pattern_starts_at_one(self, store: CalibratorStore) -> None:
        pattern = store.upsert_pattern("missing null check", "Add a null guard")

        assert pattern.count == 1
        assert pattern.promoted is False
        assert pattern.dismissed is False
        assert pattern.skill_path is None
        assert pattern.first_seen is not None
        assert pattern.first_seen == pattern.last_seen

    def test_identical_pair_increments(self, store: CalibratorStore) -> None:
        first = store.upsert_pattern("missing null check", "Add a null guard")
        second = store.upsert_pattern("missing null check", "Add a null guard")

        assert second.id == first.id
        assert second.count == 2
        assert second.first_seen == first.first_seen
        assert second.last_seen >= first.last_seen
        assert len(store.get_all_patterns()) == 1

    def test_distinct_instruction_is_new_pattern(self, store: CalibratorStore) -> None:
        a = store.upsert_pattern("missing null check", "Add a null guard")
        b = store.upsert_pattern("missing null check", "Use optional chaining")

        assert a.id != b.id
        assert {p.count for p in store.get_all_patterns()} == {1}

    def test_review_state_untouched(self, store: CalibratorStore) -> None:
        pattern = store.upsert_pattern("s", "i")
        store.dismiss_pattern(pattern.id)

        again = store.upsert_pattern("s", "i")

        assert again.count == 2
        assert again.dismissed is True

    @pytest.mark.parametrize(
        ("situation", "instruction"),
        [
            ("", "i"),
            ("s", ""),
            ("s" * 501, "i"),
            ("s", "i" * 2001),
        ],
    )
    def test_invalid_input_rejected(
        self, store: CalibratorStore, situation: str, instruction: str
    ) -> None:
        with pytest.raises(InvalidInputError):
            store.upsert_pattern(situation, instruction)
        assert store.get_all_patterns() == []

    def test_limits_are_inclusive(self, store: CalibratorStore) -> None:
        pattern = store.upsert_pattern("s" * 500, "i" * 2000)
        assert pattern.count == 1

    def test_concurrent_upserts_never_duplicate(self, store: CalibratorStore) -> None:
        errors: list[Exception] = []

        def upsert() -> None:
            try:
                for _ in range(10):
                    store.upsert_pattern("race", "hold the lock")
            except Exception as e:  # pragma: no cover - surfaced below
                errors.append(e)

        threads = [threading.Thread(target=upsert) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        [pattern] = store.get_all_patterns()
        assert pattern.count == 40


class TestPromotionCandidates:
    def test_ordered_by_count(self, store: CalibratorStore) -> None:
        store.upsert_pattern("rare", "i")
        for _ in range(3):
            store.upsert_pattern("common", "i")
        for _ in range(2):
            store.upsert_pattern("medium", "i")

        candidates = store.get_promotion_candidates()
        assert [p.situation for p in candidates] == ["common", "medium", "rare"]

    def test_min_count_and_limit(self, store: CalibratorStore) -> None:
        for n in range(1, 5):
            for _ in range(n):
                store.upsert_pattern(f"s{n}", "i")

        candidates = store.get_promotion_candidates(min_count=2, limit=2)
        assert [p.situation for p in candidates] == ["s4", "s3"]

    def test_excludes_promoted_and_dismissed(
        self, store: CalibratorStore, tmp_path: Path
    ) -> None:
        promoted = store.upsert_pattern("promoted", "i")
        dismissed = store.upsert_pattern("dismissed", "i")
        store.upsert_pattern("pending", "i")

        store.mark_promoted(promoted.id, tmp_path / "skills" / "promoted")
        store.dismiss_pattern(dismissed.id)

        assert [p.situation for p in store.get_promotion_candidates()] == ["pending"]


class TestReviewState:
    def test_dismiss_unknown_pattern(self, store: CalibratorStore) -> None:
        assert store.dismiss_pattern(999) is False

    def test_dismiss_keeps_counts(self, store: CalibratorStore) -> None:
        pattern = store.upsert_pattern("s", "i")
        store.upsert_pattern("s", "i")

        assert store.dismiss_pattern(pattern.id) is True

        stored = store.get_pattern(pattern.id)
        assert stored is not None
        assert stored.dismissed is True
        assert stored.count == 2

    def test_promotion_clears_dismissal(
        self, store: CalibratorStore, tmp_path: Path
    ) -> None:
        pattern = store.upsert_pattern("s", "i")
        store.dismiss_pattern(pattern.id)
        skill_dir = tmp_path / "skills" / "s"

        assert store.mark_promoted(pattern.id, skill_dir) is True

        stored = store.get_pattern(pattern.id)
        assert stored is not None
        assert stored.promoted is True
        assert stored.dismissed is False
        assert stored.skill_path == skill_dir

    def test_mark_promoted_unknown_pattern(
        self, store: CalibratorStore, tmp_path: Path
    ) -> None:
        assert store.mark_promoted(42, tmp_path) is False

    def test_get_pattern_missing(self, store: CalibratorStore) -> None:
        assert store.get_pattern(1) is None


class TestStats:
    def test_empty(self, store: CalibratorStore) -> None:
        stats = store.get_stats()
        assert stats.to_dict() == {
            "observations": 0,
            "patterns": 0,
            "promoted": 0,
            "dismissed": 0,
            "pending": 0,
            "schema_version": "1.1",
        }

    def test_counts(self, store: CalibratorStore, tmp_path: Path) -> None:
        a = store.upsert_pattern("a", "i")
        b = store.upsert_pattern("b", "i")
        store.upsert_pattern("c", "i")
        store.mark_promoted(a.id, tmp_path / "a")
        store.dismiss_pattern(b.id)
        store.record_observation("other", "a", "e")

        stats = store.get_stats()
        assert (stats.observations, stats.patterns) == (1, 3)
        assert (stats.promoted, stats.dismissed, stats.pending) == (1, 1, 1)
