"""
Rule-based tutor that walks a learner through a project's challenges.

Each challenge carries its own ChallengeState, so challenges can be finished
out of order. A focus index picks the challenge that guidance, hints and
completion phrases apply to. Replies come from canned phrasings; the random
source is injectable so tests can pin the choice.
"""

from __future__ import annotations

import random
from collections.abc import Iterable

from codecoach.guidance.models import ChallengeState, ConversationMessage, MessageType
from codecoach.observability.logging import get_logger
from codecoach.projects.models import Challenge

logger = get_logger(__name__)

COMPLETION_PHRASES = (
    "i've completed",
    "i have completed",
    "finished implementing",
    "done implementing",
    "implemented the feature",
    "feature is working",
    "it's working now",
    "it works now",
    "completed the challenge",
)

HELP_PHRASES = (
    "help",
    "hint",
    "stuck",
    "don't understand",
    "don't know how",
    "not sure",
    "guidance",
    "assist",
    "confused",
    "struggling",
)

CODE_PHRASES = (
    "code example",
    "sample code",
    "example code",
    "how do i code",
    "show me the code",
    "code snippet",
    "implementation example",
)

INTRO_TEMPLATES = (
    "Now let's work on implementing the {description} feature for {feature}. "
    "This is an important part of the application that needs to be completed.",
    "I've noticed that the {description} functionality is missing from the {feature} feature. "
    "Let's implement this together.",
    "Your next challenge is to add {description} to the {feature} part of the application. "
    "This is a {difficulty} level task.",
    "Let's make our application better by implementing {description} for the {feature} feature. "
    "I'll guide you through this process.",
)

# (substring of the challenge description, extra context)
INTRO_CONTEXTS = (
    (
        "profile image upload",
        "I've created a button in the Profile component, but it currently just shows an alert "
        "when clicked. You'll need to implement both the frontend and backend components of this "
        "feature. The frontend should allow users to select an image file, while the backend "
        "needs to handle file uploads, storage, and updating the user's profile.",
    ),
    (
        "Follow API",
        "The Follow button in the user profile currently doesn't do anything. You'll need to "
        "implement the API endpoints for following/unfollowing users and update the UI "
        "accordingly. This involves creating a Follow model to track relationships between users.",
    ),
    (
        "password reset",
        "The authentication system is working for login and registration, but there's no way for "
        "users to reset their password if they forget it. You'll need to implement this "
        "functionality, including sending a reset token via email and creating a form for "
        "entering a new password.",
    ),
    (
        "search",
        "The application needs a search feature to find content. You'll need to implement both "
        "the frontend UI for entering search queries and the backend API for processing those "
        "queries and returning relevant results.",
    ),
)

DEFAULT_INTRO_CONTEXT = (
    "Take a look at the existing code to understand how this feature should fit into the "
    "application. I've provided some structure, but you'll need to fill in the missing "
    "functionality."
)

CALL_TO_ACTION = (
    "Would you like to start with the frontend or backend implementation? "
    "Or do you need more information about this challenge?"
)

COMPLETION_TEMPLATES = (
    "Great job implementing the {description} feature! You've successfully completed this challenge.",
    "Excellent work on the {description} functionality! That's one challenge down.",
    "You've successfully implemented {description}! "
    "The application is getting better with each feature you add.",
)

ENCOURAGEMENTS = (
    "How's your implementation coming along? Remember to break down the problem into smaller steps.",
    "That's a good approach! Keep going, and let me know if you run into any specific issues.",
    "You're on the right track. Don't hesitate to ask if you need any hints or guidance.",
    "Take your time with this challenge. It's important to understand each part of the implementation.",
    "Looking forward to seeing your solution! "
    "Remember that there are often multiple valid ways to implement a feature.",
)

HINTS_EXHAUSTED = (
    "You're on the right track! Try implementing this solution and let me know "
    "if you encounter any specific issues."
)

NO_CHALLENGES = "This project has no challenges yet. Generate a project to get started!"


def _contains_any(message: str, phrases: Iterable[str]) -> bool:
    lowered = message.lower()
    return any(phrase.lower() in lowered for phrase in phrases)


class AIGuide:
    """
    Tutor state for one project.

    Args:
        challenges: Ordered challenges; ``completed`` flags are honoured
        project_name: Shown in the overview
        description: Shown in the overview
        stack: Shown in the overview
        rng: Source for picking canned phrasings
    """

    def __init__(
        self,
        challenges: Iterable[Challenge],
        project_name: str | None = None,
        description: str | None = None,
        stack: str | None = None,
        rng: random.Random | None = None,
    ):
        self.challenges: list[Challenge] = list(challenges)
        self.project_name = project_name or "Code Challenge"
        self.description = description or "A coding challenge project"
        self.stack = stack or "Full Stack"
        self.rng = rng or random.Random()

        self.current_challenge_index = 0
        self.conversation_history: list[ConversationMessage] = []
        # One entry per position; ids from model output are not trusted to be unique
        self._states: list[ChallengeState] = [
            ChallengeState.COMPLETED if c.completed else ChallengeState.NOT_STARTED
            for c in self.challenges
        ]

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def get_current_challenge(self) -> Challenge | None:
        if not self.challenges:
            return None
        return self.challenges[self.current_challenge_index]

    def get_challenge_state(self, challenge_id: str) -> ChallengeState:
        """
        Raises:
            KeyError: If the challenge id is unknown
        """
        index = self._index_of(challenge_id)
        if index is None:
            raise KeyError(challenge_id)
        return self._states[index]

    @property
    def completed_count(self) -> int:
        return sum(1 for state in self._states if state is ChallengeState.COMPLETED)

    @property
    def all_completed(self) -> bool:
        return bool(self.challenges) and self.completed_count == len(self.challenges)

    def _index_of(self, challenge_id: str) -> int | None:
        for index, challenge in enumerate(self.challenges):
            if challenge.id == challenge_id:
                return index
        return None

    def _start(self, index: int) -> None:
        if self._states[index] is ChallengeState.NOT_STARTED:
            self._states[index] = ChallengeState.IN_PROGRESS

    def _mark_completed(self, index: int) -> None:
        self.challenges[index].completed = True
        self._states[index] = ChallengeState.COMPLETED
        logger.debug("Challenge %s completed", self.challenges[index].id)

    def focus_challenge(self, challenge_id: str) -> bool:
        """
        Move focus to a specific challenge.

        Returns:
            False if the id is unknown
        """
        index = self._index_of(challenge_id)
        if index is None:
            return False
        self.current_challenge_index = index
        self._start(index)
        return True

    def complete_challenge(self, challenge_id: str) -> bool:
        """
        Mark any challenge completed, in any order.

        When the focused challenge is completed, focus moves to the next
        unfinished challenge after it (wrapping around), if one exists.

        Returns:
            False if the id is unknown
        """
        index = self._index_of(challenge_id)
        if index is None:
            return False

        self._mark_completed(index)

        if index == self.current_challenge_index:
            total = len(self.challenges)
            for offset in range(1, total):
                candidate = (index + offset) % total
                if self._states[candidate] is not ChallengeState.COMPLETED:
                    self.current_challenge_index = candidate
                    break
        return True

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    def _record(self, type_: MessageType, content: str, challenge: Challenge | None) -> None:
        self.conversation_history.append(
            ConversationMessage(type=type_, content=content, challenge_id=challenge.id if challenge else None)
        )

    def get_next_guidance_message(self) -> str:
        """
        Intro the first time a challenge is discussed, then its hints in
        order, then encouragement once the hints run out.
        """
        challenge = self.get_current_challenge()
        if challenge is None:
            return NO_CHALLENGES

        self._start(self.current_challenge_index)
        related = [m for m in self.conversation_history if m.challenge_id == challenge.id]

        if not any(m.type is MessageType.GUIDE for m in related):
            message = self._intro_message(challenge)
            self._record(MessageType.GUIDE, message, challenge)
            return message

        hints_given = sum(1 for m in related if m.type is MessageType.HINT)
        if hints_given < len(challenge.hints):
            message = f"Here's a hint: {challenge.hints[hints_given]}"
            self._record(MessageType.HINT, message, challenge)
            return message

        return HINTS_EXHAUSTED

    def process_user_message(self, message: str) -> str:
        """
        Record a learner message and reply.

        A completion phrase completes the focused challenge and advances focus
        by one, never past the last challenge.
        """
        challenge = self.get_current_challenge()
        self._record(MessageType.USER, message, challenge)

        if challenge is None:
            return NO_CHALLENGES

        if _contains_any(message, COMPLETION_PHRASES):
            self._mark_completed(self.current_challenge_index)

            if self.current_challenge_index < len(self.challenges) - 1:
                self.current_challenge_index += 1
                self._start(self.current_challenge_index)
                return self._completion_message(challenge, self.challenges[self.current_challenge_index])

            if self.all_completed:
                return self._all_completed_message()
            return self._completion_message(challenge, None)

        if _contains_any(message, HELP_PHRASES):
            return self.get_next_guidance_message()
        if _contains_any(message, CODE_PHRASES):
            return self._code_snippet(challenge)

        self._start(self.current_challenge_index)
        return self.rng.choice(ENCOURAGEMENTS)

    # ------------------------------------------------------------------
    # Message builders
    # ------------------------------------------------------------------

    def _intro_message(self, challenge: Challenge) -> str:
        intro = self.rng.choice(INTRO_TEMPLATES).format(
            description=challenge.description,
            feature=challenge.feature_name or challenge.title,
            difficulty=challenge.difficulty,
        )
        context = next(
            (text for keyword, text in INTRO_CONTEXTS if keyword in challenge.description),
            DEFAULT_INTRO_CONTEXT,
        )
        return f"{intro}\n\n{context}\n\n{CALL_TO_ACTION}"

    def _completion_message(self, completed: Challenge, upcoming: Challenge | None) -> str:
        praise = self.rng.choice(COMPLETION_TEMPLATES).format(description=completed.description)

        if upcoming is None:
            remaining = [c for c in self.challenges if not c.completed]
            names = ", ".join(c.title or c.description for c in remaining)
            return f"{praise}\n\nYou still have {len(remaining)} unfinished challenge(s): {names}."

        return (
            f"{praise}\n\nNow, let's move on to the next challenge: {upcoming.description} "
            f"for the {upcoming.feature_name or upcoming.title} feature. "
            f"This is a {upcoming.difficulty} level task.\n\n"
            "Would you like to get started with this new challenge?"
        )

    def _all_completed_message(self) -> str:
        first = self.challenges[0].description
        last = self.challenges[-1].description
        return (
            "Congratulations! You've completed all the challenges for this project. "
            "You've successfully built a functioning application with all the required features.\n\n"
            "You've demonstrated your skills in implementing various aspects of a full-stack "
            f"application, from user authentication to complex features like {first} and {last}.\n\n"
            "What would you like to do next? You could:\n\n"
            "1. Add additional features to this project\n"
            "2. Optimize the existing code\n"
            "3. Start a new project with different challenges\n\n"
            "Let me know how you'd like to proceed!"
        )

    def _code_snippet(self, challenge: Challenge) -> str:
        self._record(MessageType.CODE_SNIPPET, "Code snippet provided", challenge)
        if "profile image upload" in challenge.description:
            return "Here's a code snippet for implementing profile image upload..."
        if "Follow API" in challenge.description:
            return "Here's a code snippet to help you implement the Follow API..."
        return "Here's some sample code to help you with this challenge..."

    def get_project_overview(self) -> str:
        lines = [
            f"Project: {self.project_name}",
            f"Description: {self.description}",
            f"Stack: {self.stack}",
            f"Progress: {self.completed_count}/{len(self.challenges)} challenges completed",
            "",
            "Current Challenges:",
        ]
        for index, challenge in enumerate(self.challenges, start=1):
            state = self._states[index - 1]
            label = {
                ChallengeState.COMPLETED: "✅ Completed",
                ChallengeState.IN_PROGRESS: "⏳ In Progress",
                ChallengeState.NOT_STARTED: "○ Not Started",
            }[state]
            feature = challenge.feature_name or challenge.title
            lines.append(f"{index}. {challenge.description} ({feature}) - {label}")
        return "\n".join(lines)
