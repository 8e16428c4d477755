"""
Unit tests for learning goals: creation defaults, progress and suitability scoring.

Run with: python -m pytest tests/test_learning_goal.py -v
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.models.enums import (
    LearningCategory,
    LearningDifficulty,
    LearningGoalStatus,
    CharacterTraitType,
)
from src.models.errors import DomainValidationError
from src.models.learning import LearningGoal
from src.models.tables import reset_domain_tables

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def make_goal(category=LearningCategory.SOCIAL_SKILLS, difficulty=LearningDifficulty.ELEMENTARY,
              target_age=6, description="Learn to share toys with friends") -> LearningGoal:
    return LearningGoal.create(
        "Sharing", description, category,
        difficulty=difficulty, target_age=target_age, now=NOW,
    )


class TestCreation:

    def setup_method(self):
        reset_domain_tables()

    def test_category_defaults_applied(self):
        goal = make_goal()

        assert goal.id.startswith("goal_")
        assert goal.status == LearningGoalStatus.NOT_STARTED
        assert goal.related_traits == [CharacterTraitType.EMPATHY, CharacterTraitType.KINDNESS]
        assert goal.requires_reflection
        assert goal.requires_discussion
        assert len(goal.success_criteria) == 2

    def test_category_without_defaults(self):
        goal = make_goal(category=LearningCategory.HISTORY)

        assert goal.success_criteria == []
        assert goal.related_traits == []
        assert not goal.requires_reflection

    def test_target_age_range(self):
        with pytest.raises(DomainValidationError):
            make_goal(target_age=2)
        with pytest.raises(DomainValidationError):
            make_goal(target_age=19)

    def test_priority_range(self):
        with pytest.raises(DomainValidationError):
            LearningGoal.create("Sharing", "Share toys", LearningCategory.SOCIAL_SKILLS, priority=6)

    def test_description_required(self):
        with pytest.raises(DomainValidationError):
            make_goal(description="  ")


class TestProgress:

    def setup_method(self):
        reset_domain_tables()
        self.goal = make_goal()

    def test_start_progress_once(self):
        assert self.goal.start_progress(now=NOW)
        assert not self.goal.start_progress(now=NOW)
        assert self.goal.status == LearningGoalStatus.IN_PROGRESS
        assert self.goal.attempts_count == 1

    def test_status_follows_percentage(self):
        self.goal.update_progress(50, now=NOW)
        assert self.goal.status == LearningGoalStatus.IN_PROGRESS
        assert self.goal.started_at == NOW

        self.goal.update_progress(85, now=NOW)
        assert self.goal.status == LearningGoalStatus.MASTERED
        assert not self.goal.is_completed

    def test_completion_stamped_once(self):
        assert self.goal.update_progress(100, "Shared the red ball", now=NOW)
        assert self.goal.is_completed
        assert self.goal.completed_at == NOW

        later = NOW + timedelta(days=2)
        assert not self.goal.update_progress(100, now=later)
        assert self.goal.completed_at == NOW

    def test_evidence_is_dated(self):
        self.goal.update_progress(30, "  Talked about feelings ", now=NOW)
        self.goal.update_progress(40, "   ", now=NOW)

        assert self.goal.evidence == ["2026-03-15: Talked about feelings"]

    def test_out_of_range_progress_rejected(self):
        with pytest.raises(DomainValidationError):
            self.goal.update_progress(120, now=NOW)
        assert self.goal.progress_percentage == 0.0

    def test_mark_for_review(self):
        self.goal.mark_for_review("Struggled with turn-taking", now=NOW)

        assert self.goal.status == LearningGoalStatus.NEEDS_REVIEW
        assert self.goal.evidence[-1] == "2026-03-15: Review needed - Struggled with turn-taking"

    def test_content_helpers_deduplicate(self):
        self.goal.add_vocabulary_word("Generous")
        self.goal.add_vocabulary_word("generous ")
        self.goal.add_key_concept("Taking turns")
        self.goal.add_key_concept("Taking turns")
        self.goal.add_related_trait(CharacterTraitType.EMPATHY)

        assert self.goal.vocabulary_words == ["generous"]
        assert self.goal.key_concepts == ["Taking turns"]
        assert self.goal.related_traits.count(CharacterTraitType.EMPATHY) == 1
        with pytest.raises(DomainValidationError):
            self.goal.add_success_criteria("")


class TestSuitability:

    def setup_method(self):
        reset_domain_tables()

    def test_matching_age_traits_and_difficulty(self):
        goal = make_goal()
        traits = [CharacterTraitType.EMPATHY, CharacterTraitType.KINDNESS]

        # 1.0 age * 1.4 traits * 1.2 difficulty
        assert goal.calculate_suitability_for_child(6, traits) == pytest.approx(1.68)

    def test_one_level_off_is_neutral(self):
        goal = make_goal(category=LearningCategory.VOCABULARY, difficulty=LearningDifficulty.BEGINNER)

        assert goal.calculate_suitability_for_child(6) == pytest.approx(1.0)

    def test_far_age_and_difficulty(self):
        goal = make_goal(category=LearningCategory.VOCABULARY, difficulty=LearningDifficulty.BEGINNER)

        # age factor floors at 0.3, four levels apart gives 0.7
        assert goal.calculate_suitability_for_child(16) == pytest.approx(0.21)

    def test_score_capped(self):
        goal = make_goal()
        extra = [
            CharacterTraitType.COURAGE,
            CharacterTraitType.HONESTY,
            CharacterTraitType.PATIENCE,
        ]
        for trait in extra:
            goal.add_related_trait(trait)

        score = goal.calculate_suitability_for_child(6, goal.related_traits)
        assert score == 2.0

    def test_age_appropriate_description(self):
        goal = make_goal(description="Learn to share toys with friends at the playground every day")

        assert goal.age_appropriate_description(5).endswith("...")
        assert len(goal.age_appropriate_description(5)) <= 53
        assert goal.age_appropriate_description(8) == goal.description
        assert goal.age_appropriate_description(12).startswith(goal.description + " Goals: ")
