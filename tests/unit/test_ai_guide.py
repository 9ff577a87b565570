"""Unit tests for the rule-based challenge tutor."""

import random

import pytest

from codecoach.guidance.ai_guide import ENCOURAGEMENTS, HINTS_EXHAUSTED, NO_CHALLENGES, AIGuide
from codecoach.guidance.models import ChallengeState, MessageType
from codecoach.projects.models import Challenge


def make_challenges(count=3):
    return [
        Challenge(
            id=f"challenge-{i}",
            title=f"Feature {i}",
            description=f"feature number {i}",
            feature_name=f"Area {i}",
            hints=[f"hint {i}a", f"hint {i}b"],
        )
        for i in range(1, count + 1)
    ]


@pytest.fixture
def guide():
    return AIGuide(make_challenges(), project_name="Todo", rng=random.Random(7))


class TestProjectOverview:
    def test_zero_of_three_completed(self, guide):
        overview = guide.get_project_overview()
        assert "0/3 challenges completed" in overview
        assert overview.count("Not Started") == 3

    def test_progress_after_completion(self, guide):
        guide.complete_challenge("challenge-2")
        assert "1/3 challenges completed" in guide.get_project_overview()


class TestProcessUserMessage:
    def test_completion_phrase_advances_by_one(self, guide):
        reply = guide.process_user_message("I've completed the first one!")
        assert guide.current_challenge_index == 1
        assert guide.get_challenge_state("challenge-1") is ChallengeState.COMPLETED
        assert "next challenge" in reply

    def test_never_advances_past_last(self, guide):
        for _ in range(5):
            guide.process_user_message("It works now")
        assert guide.current_challenge_index == 2
        assert guide.all_completed

    def test_all_completed_message(self, guide):
        guide.process_user_message("i've completed it")
        guide.process_user_message("i've completed it")
        reply = guide.process_user_message("i've completed it")
        assert reply.startswith("Congratulations!")

    def test_last_completed_with_others_open(self, guide):
        guide.focus_challenge("challenge-3")
        reply = guide.process_user_message("Feature is working")
        assert guide.current_challenge_index == 2
        assert "2 unfinished challenge(s)" in reply

    def test_help_phrase_returns_guidance(self, guide):
        first = guide.process_user_message("I'm stuck, can you help?")
        assert "feature number 1" in first
        second = guide.process_user_message("another hint please")
        assert second == "Here's a hint: hint 1a"

    def test_code_phrase_returns_snippet(self, guide):
        reply = guide.process_user_message("Show me the code please")
        assert reply.startswith("Here's some sample code")
        assert guide.conversation_history[-1].type is MessageType.CODE_SNIPPET

    def test_other_messages_get_encouragement(self, guide):
        assert guide.process_user_message("Working on it") in ENCOURAGEMENTS
        assert guide.get_challenge_state("challenge-1") is ChallengeState.IN_PROGRESS

    def test_records_user_messages(self, guide):
        guide.process_user_message("Working on it")
        assert guide.conversation_history[0].type is MessageType.USER
        assert guide.conversation_history[0].challenge_id == "challenge-1"


class TestGuidanceMessages:
    def test_intro_then_hints_then_exhausted(self, guide):
        intro = guide.get_next_guidance_message()
        assert "feature number 1" in intro
        assert guide.get_next_guidance_message() == "Here's a hint: hint 1a"
        assert guide.get_next_guidance_message() == "Here's a hint: hint 1b"
        assert guide.get_next_guidance_message() == HINTS_EXHAUSTED

    def test_no_challenges(self):
        empty = AIGuide([])
        assert empty.get_current_challenge() is None
        assert empty.get_next_guidance_message() == NO_CHALLENGES
        assert empty.process_user_message("help") == NO_CHALLENGES


class TestOutOfOrderCompletion:
    def test_complete_other_challenge_keeps_focus(self, guide):
        assert guide.complete_challenge("challenge-3")
        assert guide.current_challenge_index == 0
        assert guide.get_challenge_state("challenge-3") is ChallengeState.COMPLETED

    def test_complete_focused_skips_finished(self, guide):
        guide.complete_challenge("challenge-2")
        guide.complete_challenge("challenge-1")
        assert guide.get_current_challenge().id == "challenge-3"

    def test_unknown_ids(self, guide):
        assert not guide.complete_challenge("nope")
        assert not guide.focus_challenge("nope")

    def test_precompleted_challenges_respected(self):
        challenges = make_challenges()
        challenges[0].completed = True
        guide = AIGuide(challenges)
        assert guide.completed_count == 1


class TestRepeatedIds:
    def test_each_challenge_tracked_separately(self):
        challenges = [
            Challenge(id=cid, title=f"Task {n}", description=f"task {n}")
            for n, cid in enumerate(["1", "1", "2"], start=1)
        ]
        guide = AIGuide(challenges, rng=random.Random(3))

        replies = [guide.process_user_message("i've completed it") for _ in range(3)]

        assert guide.all_completed
        assert "3/3 challenges completed" in guide.get_project_overview()
        assert replies[-1].startswith("Congratulations!")

    def test_parsed_model_output_gets_unique_ids(self):
        challenges = Challenge.from_ai_list([{"id": "1"}, {"id": "1"}, {"id": 1}, {"id": "2"}])
        assert [c.id for c in challenges] == ["1", "1-2", "1-3", "2"]

        guide = AIGuide(challenges)
        guide.complete_challenge("1-2")
        assert guide.get_challenge_state("1") is ChallengeState.NOT_STARTED
        assert guide.get_challenge_state("1-2") is ChallengeState.COMPLETED
