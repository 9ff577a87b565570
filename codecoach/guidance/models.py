"""
Module: models
Purpose: In-memory types for the tutoring guides.

Challenge itself lives in codecoach.projects.models because it is persisted;
everything here exists only for the lifetime of a guide.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ChallengeState(str, Enum):
    """Where the learner is with one challenge."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class MessageType(str, Enum):
    USER = "user"
    GUIDE = "guide"
    HINT = "hint"
    CODE_SNIPPET = "codeSnippet"


@dataclass
class ConversationMessage:
    type: MessageType
    content: str
    challenge_id: str | None


# ---------------------------------------------------------------------------
# Teaching guide content
# ---------------------------------------------------------------------------


@dataclass
class CodeSnippet:
    complete: str
    partial: str
    language: str
    file_name: str | None = None


@dataclass
class LearningChallenge:
    description: str
    difficulty: str = "medium"  # "easy" | "medium" | "hard"
    hints: list[str] = field(default_factory=list)


@dataclass
class LearningStep:
    id: str
    title: str
    concepts: list[str] = field(default_factory=list)
    explanation: str = ""
    code_snippets: list[CodeSnippet] = field(default_factory=list)
    challenges: list[LearningChallenge] = field(default_factory=list)
    self_check_questions: list[str] = field(default_factory=list)


@dataclass
class LearningModule:
    id: str
    title: str
    description: str
    steps: list[LearningStep] = field(default_factory=list)
    estimated_completion_time: str = ""
    prerequisites: list[str] = field(default_factory=list)
