"""Generation service: facade between API routes, LLM providers and repositories.

Each public method backs one API route: build a prompt, call a
provider through the retry wrapper, recover JSON, persist, and return a
camelCase payload. Providers and repositories are injected by the app
factory so tests can swap in fakes.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeVar

from codecoach.config import (
    ANONYMOUS_USER_ID,
    APP_GENERATION_MAX_OUTPUT_TOKENS,
    CHALLENGE_GENERATION_MAX_TOKENS,
    CHANGE_SUMMARY_MAX_TOKENS,
    CHAT_FALLBACK_MAX_TOKENS,
    CHAT_MAX_OUTPUT_TOKENS,
    GUIDANCE_MAX_OUTPUT_TOKENS,
    GUIDANCE_SAMPLE_CHARS,
    GUIDANCE_SAMPLE_FILES,
    LLM_BASE_BACKOFF_SECONDS,
    LLM_MAX_RETRIES,
    MAX_ANALYZE_FILES,
    MODIFICATION_MAX_TOKENS,
)
from codecoach.llm.base import LLMClient
from codecoach.llm.errors import ProviderError, ResponseParseError
from codecoach.llm.fallback import FallbackChain, condense_prompt
from codecoach.llm.json_extraction import extract_json_object
from codecoach.llm.prompts import (
    app_generation_prompt,
    challenge_generation_prompt,
    change_summary_prompts,
    chat_system_prompt,
    code_analysis_prompt,
    first_step_guidance_prompt,
    guidance_fallback,
    modification_prompts,
)
from codecoach.llm.retry import call_with_retries
from codecoach.observability.logging import get_logger
from codecoach.observability.telemetry import counter, log_event
from codecoach.projects.file_tree import app_data_from_payload
from codecoach.projects.models import AppData, ChatMessage, ChatRole, new_id
from codecoach.projects.repository import (
    AppProjectRepository,
    ChallengeRepository,
    ChatHistoryRepository,
    ProjectNotFoundError,
)

T = TypeVar("T")

logger = get_logger(__name__)

DEFAULT_CHANGE_SUMMARY = "Your requested changes have been applied to the application."
CHAT_UNAVAILABLE = (
    "Processing service temporarily unavailable. Please try again in a few minutes."
)
RATE_LIMITED_MESSAGE = (
    "AI service is temporarily unavailable due to rate limits. "
    "Please try again in a few minutes with a simpler prompt."
)
HIGH_DEMAND_MESSAGE = (
    "AI service is temporarily unavailable due to high demand. Please try again in a few "
    "minutes with a simpler prompt or try breaking your request into smaller parts."
)

CHALLENGE_VERBS = ("create", "generate", "build")
CHALLENGE_NOUNS = ("challenge", "project")


class GenerationUnavailableError(RuntimeError):
    """Every provider path failed; the message is safe to show to users."""

    def __init__(self, message: str, rate_limited: bool = False):
        super().__init__(message)
        self.rate_limited = rate_limited


def wants_new_challenge(message: str) -> bool:
    """True for chat messages asking to create/generate/build a challenge or project."""
    lowered = message.lower()
    return any(verb in lowered for verb in CHALLENGE_VERBS) and any(
        noun in lowered for noun in CHALLENGE_NOUNS
    )


def _is_rate_limit(error: BaseException) -> bool:
    if isinstance(error, ProviderError) and error.is_rate_limited:
        return True
    message = str(error).lower()
    return "429" in message or "quota" in message


class GeminiAIService:
    """
    Orchestrates project generation, modification, review, guidance and chat.

    Args:
        gemini: App generation, code analysis, guidance, chat (primary)
        openai: Prompt condensing, challenge generation, summaries, chat fallback
        anthropic: App modification
        projects / challenges / chat_history: Repository classes
        max_retries, base_delay, sleep: Retry policy for provider calls
    """

    def __init__(
        self,
        gemini: LLMClient,
        openai: LLMClient,
        anthropic: LLMClient,
        projects: type[AppProjectRepository] = AppProjectRepository,
        challenges: type[ChallengeRepository] = ChallengeRepository,
        chat_history: type[ChatHistoryRepository] = ChatHistoryRepository,
        max_retries: int = LLM_MAX_RETRIES,
        base_delay: float = LLM_BASE_BACKOFF_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.gemini = gemini
        self.openai = openai
        self.anthropic = anthropic
        self.projects = projects
        self.challenges = challenges
        self.chat_history = chat_history
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.sleep = sleep
        self.chat_chain = FallbackChain(gemini, openai)

    def _call(self, operation: Callable[[], T]) -> T:
        return call_with_retries(
            operation, max_retries=self.max_retries, base_delay=self.base_delay, sleep=self.sleep
        )

    def _persist(self, what: str, operation: Callable[[], Any]) -> bool:
        """Run a write whose failure must not fail the request."""
        try:
            operation()
            return True
        except Exception as e:
            logger.error("Database error when storing %s: %s", what, e)
            counter("persistence.write_failed")
            return False

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_app(
        self,
        prompt: str,
        completion_level: str = "intermediate",
        user_id: str = ANONYMOUS_USER_ID,
    ) -> dict[str, Any]:
        """
        Generate an intentionally incomplete React app with Gemini.

        Returns:
            App payload plus "projectId"

        Raises:
            ProviderError: Provider failure after retries
            ResponseParseError: No usable JSON in the response
        """
        processed = condense_prompt(prompt, self.openai)
        logger.info("Generating app (completion_level=%s, prompt_chars=%d)", completion_level, len(processed))

        text = self._call(
            lambda: self.gemini.generate(
                app_generation_prompt(processed, completion_level),
                temperature=0.7,
                max_tokens=APP_GENERATION_MAX_OUTPUT_TOKENS,
            )
        )
        payload = extract_json_object(text, anchor_key="projectName")

        app_data = app_data_from_payload(payload)

        project_id = new_id()
        stored = app_data.to_payload()
        self._persist(
            "app data",
            lambda: self.projects.create(stored, user_id, prompt, project_id=project_id),
        )
        self._persist(
            "challenges", lambda: self.challenges.upsert_many(project_id, app_data.challenges)
        )

        counter("generation.apps")
        log_event("generation.app", project_id=project_id, files=len(app_data.files), challenges=len(app_data.challenges))
        return {"projectId": project_id, **stored}

    def generate_challenge(
        self,
        prompt: str,
        completion_level: str = "intermediate",
        challenge_type: str = "fullstack",
        user_id: str = ANONYMOUS_USER_ID,
    ) -> dict[str, Any]:
        """
        Generate a challenge project with OpenAI (flat file list, typed challenges).

        The model's own "projectId" is replaced with a fresh id.

        Raises:
            ProviderError: Provider failure after retries
            ResponseParseError: No usable JSON in the response
        """
        system = challenge_generation_prompt(prompt, completion_level, challenge_type)
        text = self._call(
            lambda: self.openai.generate(
                prompt,
                system=system,
                temperature=0.7,
                max_tokens=CHALLENGE_GENERATION_MAX_TOKENS,
            )
        )
        payload = extract_json_object(text, anchor_key="projectId")

        app_data = app_data_from_payload(payload, ensure_package_json=False)

        project_id = new_id()
        stored = app_data.to_payload()
        self._persist(
            "challenge project",
            lambda: self.projects.create(stored, user_id, prompt, project_id=project_id),
        )
        self._persist(
            "challenges", lambda: self.challenges.upsert_many(project_id, app_data.challenges)
        )

        counter("generation.challenges")
        return {"projectId": project_id, **stored, "success": True}

    def initialize_project(
        self,
        prompt: str,
        project_name: str | None = None,
        user_id: str = ANONYMOUS_USER_ID,
    ) -> dict[str, Any]:
        """
        Start a project: Gemini app generation, falling back to OpenAI
        challenge generation when it fails for any reason.

        Raises:
            GenerationUnavailableError: If both paths fail
        """
        fallback_used = False
        try:
            data = self.generate_app(prompt, user_id=user_id)
        except Exception as primary_error:
            logger.warning("App generation failed (%s), trying challenge generation", type(primary_error).__name__)
            counter("generation.initialize_fallback")
            try:
                data = self.generate_challenge(prompt, user_id=user_id)
                fallback_used = True
            except Exception as fallback_error:
                logger.error("Fallback generation also failed: %s", type(fallback_error).__name__)
                rate_limited = _is_rate_limit(primary_error) or _is_rate_limit(fallback_error)
                raise GenerationUnavailableError(
                    RATE_LIMITED_MESSAGE if rate_limited else HIGH_DEMAND_MESSAGE,
                    rate_limited=rate_limited,
                ) from fallback_error

        files = data.get("files") or []
        return {
            "projectId": data["projectId"],
            "projectContext": {
                "projectName": project_name or data.get("projectName"),
                "description": data.get("description"),
                "files": files,
                "challenges": data.get("challenges") or [],
            },
            "assistantMessage": data.get("explanation") or "App generated successfully.",
            "initialCode": files[0]["content"] if files else "",
            "appData": data,
            "fallbackUsed": fallback_used,
        }

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    def modify_app(self, prompt: str, project_id: str) -> dict[str, Any]:
        """
        Apply a change request to the latest version with Anthropic and store it
        as a new version.

        Raises:
            ProjectNotFoundError: Unknown project id
            ProviderError: Provider failure after retries
            ResponseParseError: No usable JSON in the response
        """
        latest = self.projects.get_latest_version(project_id)
        system, user = modification_prompts(prompt, latest.app_data)

        text = self._call(
            lambda: self.anthropic.generate(
                user, system=system, temperature=0.5, max_tokens=MODIFICATION_MAX_TOKENS
            )
        )
        payload = extract_json_object(text, anchor_key="projectName")
        app_data = app_data_from_payload(payload)
        if not any(file.path != "package.json" for file in app_data.files):
            # Model answered without files; keep the previous version's code
            app_data.files = AppData.model_validate(latest.app_data).files
        modified = app_data.to_payload()

        new_version = self.projects.create_version(latest, modified, prompt)
        if app_data.challenges:
            self._persist(
                "challenges",
                lambda: self.challenges.upsert_many(new_version.root_id, app_data.challenges),
            )

        summary = DEFAULT_CHANGE_SUMMARY
        try:
            summary_system, summary_user = change_summary_prompts(prompt, modified)
            summary = self.openai.generate(
                summary_user, system=summary_system, max_tokens=CHANGE_SUMMARY_MAX_TOKENS
            )
        except ProviderError as e:
            logger.warning("Change summary unavailable: %s", e)

        counter("generation.modifications")
        return {
            "projectId": project_id,
            "versionId": new_version.id,
            "version": new_version.version,
            "summary": summary,
            "modifiedApp": modified,
        }

    def restore_version(self, version_id: str) -> dict[str, Any]:
        """
        Copy a stored version's app data into a new newest version.

        Raises:
            ProjectNotFoundError: Unknown version id
        """
        source = self.projects.get_by_id(version_id)
        if source is None:
            raise ProjectNotFoundError(version_id)

        restored = self.projects.create_version(
            source, source.app_data, f"Restored to version {source.version}"
        )
        counter("generation.restores")
        return {
            "success": True,
            "message": f"Successfully restored to version {source.version}",
            "version": restored.version,
            "versionId": restored.id,
        }

    # ------------------------------------------------------------------
    # Review and guidance
    # ------------------------------------------------------------------

    def analyze_code(
        self,
        project_id: str,
        files: Iterable[Mapping[str, str]],
        challenge_info: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Score and review learner code with Gemini.

        Raises:
            ProviderError: Provider failure after retries
            ResponseParseError: No JSON, or JSON without feedback/suggestions
        """
        file_list = list(files)[:MAX_ANALYZE_FILES]
        challenges = (challenge_info or {}).get("challenges") or []
        prompt = code_analysis_prompt(project_id, file_list, challenges)

        text = self._call(
            lambda: self.gemini.generate(
                prompt, temperature=0.2, max_tokens=APP_GENERATION_MAX_OUTPUT_TOKENS
            )
        )
        result = extract_json_object(text, anchor_key="feedback")
        if not result.get("feedback") or "suggestions" not in result:
            counter("llm.parse_failure")
            raise ResponseParseError("Malformed analysis result")

        counter("generation.analyses")
        return {"success": True, **result}

    def generate_guidance(
        self, app_data: Mapping[str, Any], project_id: str | None = None
    ) -> dict[str, Any]:
        """
        First-step guidance for a generated project.

        Samples the first few files; falls back to canned markdown when the
        provider is unavailable.
        """
        files = [f for f in app_data.get("files") or [] if isinstance(f, Mapping)]
        samples = [
            {"path": str(f.get("path", "")), "snippet": str(f.get("content") or "")[:GUIDANCE_SAMPLE_CHARS]}
            for f in files[:GUIDANCE_SAMPLE_FILES]
        ]
        challenges = [c for c in app_data.get("challenges") or [] if isinstance(c, Mapping)]
        project_name = app_data.get("projectName")
        description = app_data.get("description")

        prompt = first_step_guidance_prompt(
            project_name=project_name or "your project",
            description=description or "",
            file_count=len(files),
            challenges=challenges,
            code_samples=samples,
        )

        try:
            guidance = self._call(
                lambda: self.gemini.generate(
                    prompt, temperature=0.7, max_tokens=GUIDANCE_MAX_OUTPUT_TOKENS
                )
            )
            fallback = False
        except ProviderError as e:
            logger.warning("Guidance generation failed for project %s: %s", project_id, e)
            counter("generation.guidance_fallback")
            guidance = guidance_fallback(project_name, description)
            fallback = True

        return {"guidance": guidance, "fallback": fallback, "projectId": project_id}

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    def chat(
        self,
        message: str,
        project_id: str | None = None,
        user_id: str = ANONYMOUS_USER_ID,
    ) -> dict[str, Any]:
        """
        Answer a chat message; requests for a new challenge or project are
        routed to generate_challenge.

        Raises:
            GenerationUnavailableError: Both chat providers failed
            ProviderError / ResponseParseError: Challenge generation failed
        """
        self._persist(
            "chat message",
            lambda: self.chat_history.append(
                ChatMessage(user_id=user_id, project_id=project_id, role=ChatRole.USER, content=message)
            ),
        )

        result: dict[str, Any] = {"projectId": project_id}
        if wants_new_challenge(message):
            counter("chat.routed_to_challenge")
            challenge = self.generate_challenge(message, user_id=user_id)
            response = (
                f"I've created a new challenge project: {challenge['projectName']}.\n\n"
                f"{challenge['explanation']}"
            )
            result["challenge"] = challenge
        else:
            try:
                response = self.chat_chain.generate(
                    message,
                    system=chat_system_prompt(),
                    temperature=0.7,
                    max_tokens=CHAT_MAX_OUTPUT_TOKENS,
                    fallback_max_tokens=CHAT_FALLBACK_MAX_TOKENS,
                )
            except ProviderError as e:
                logger.error("All chat providers failed: %s", e)
                counter("chat.unavailable")
                raise GenerationUnavailableError(CHAT_UNAVAILABLE, rate_limited=_is_rate_limit(e)) from e

        self._persist(
            "chat reply",
            lambda: self.chat_history.append(
                ChatMessage(user_id=user_id, project_id=project_id, role=ChatRole.ASSISTANT, content=response)
            ),
        )
        counter("chat.messages")
        result["response"] = response
        return result
