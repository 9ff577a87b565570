"""
Prompt Management Module

Loads LLM prompt templates from the .txt files next to this module and fills
them with str.format(). Literal braces in templates are doubled.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

PROMPTS_DIR = Path(__file__).parent


class PromptLoader:
    """Load and cache prompt templates from files"""

    def __init__(self, prompts_dir: Path = PROMPTS_DIR):
        self.prompts_dir = prompts_dir
        self._cache: dict[str, str] = {}

    def load_prompt(self, prompt_name: str) -> str:
        """
        Load a prompt template from file.

        Args:
            prompt_name: Name of the prompt file (without .txt extension)

        Raises:
            FileNotFoundError: If no such template exists
        """
        if prompt_name not in self._cache:
            prompt_path = self.prompts_dir / f"{prompt_name}.txt"
            if not prompt_path.exists():
                raise FileNotFoundError(f"Prompt file not found: {prompt_path}")

            with open(prompt_path, encoding="utf-8") as f:
                self._cache[prompt_name] = f.read().strip()

        return self._cache[prompt_name]

    def render(self, prompt_name: str, **kwargs: Any) -> str:
        return self.load_prompt(prompt_name).format(**kwargs)

    def reload(self) -> None:
        """Clear cache and reload prompts from disk"""
        self._cache.clear()


_loader = PromptLoader()


def app_generation_prompt(prompt: str, completion_level: str) -> str:
    return _loader.render("app_generation", prompt=prompt, completion_level=completion_level)


def challenge_generation_prompt(prompt: str, completion_level: str, challenge_type: str) -> str:
    return _loader.render(
        "challenge_generation",
        prompt=prompt,
        completion_level=completion_level,
        challenge_type=challenge_type,
    )


def modification_prompts(prompt: str, app_data: Mapping[str, Any]) -> tuple[str, str]:
    """(system, user) pair for the modification call."""
    user = _loader.render(
        "modification_user", prompt=prompt, app_data=json.dumps(app_data, indent=2)
    )
    return _loader.load_prompt("modification_system"), user


def change_summary_prompts(prompt: str, app_data: Mapping[str, Any]) -> tuple[str, str]:
    user = _loader.render("change_summary_user", prompt=prompt, app_data=json.dumps(app_data))
    return _loader.load_prompt("change_summary_system"), user


def summarize_prompts(text: str, max_tokens: int) -> tuple[str, str]:
    user = _loader.render("summarize_user", text=text, max_tokens=max_tokens)
    return _loader.load_prompt("summarize_system"), user


def code_analysis_prompt(
    project_id: str,
    files: Iterable[Mapping[str, str]],
    challenges: Iterable[Mapping[str, Any]] | None = None,
) -> str:
    """
    Build the code review prompt.

    Args:
        project_id: Project being reviewed
        files: Dicts with "path" and "content"
        challenges: Optional challenge dicts (title, difficulty, description)
    """
    files_section = "\n\n".join(
        f"File: {file['path']}\n```\n{file['content']}\n```" for file in files
    )

    challenge_section = ""
    challenge_list = list(challenges or [])
    if challenge_list:
        lines = [
            f"{i}. {c.get('title', '')} ({c.get('difficulty', 'medium')}): {c.get('description', '')}"
            for i, c in enumerate(challenge_list, start=1)
        ]
        challenge_section = (
            "The project has the following challenges that the user should address:\n"
            + "\n".join(lines)
        )

    return _loader.render(
        "code_analysis",
        project_id=project_id,
        challenge_section=challenge_section,
        files_section=files_section,
    )


def first_step_guidance_prompt(
    project_name: str,
    description: str,
    file_count: int,
    challenges: Iterable[Mapping[str, Any]],
    code_samples: Iterable[Mapping[str, str]],
) -> str:
    challenge_list = list(challenges)
    if challenge_list:
        challenge_section = "Challenges to complete:\n" + "\n".join(
            f"{i}. {c.get('title', '')}: {c.get('description', '')}"
            for i, c in enumerate(challenge_list, start=1)
        )
    else:
        challenge_section = "No specific challenges defined."

    samples = "\n\n".join(
        f"File: {sample['path']}\n```\n{sample['snippet']}\n```" for sample in code_samples
    )

    return _loader.render(
        "guidance_first_step",
        project_name=project_name,
        description=description,
        file_count=file_count,
        challenge_section=challenge_section,
        code_samples=samples,
    )


def guidance_fallback(project_name: str | None = None, description: str | None = None) -> str:
    """Canned first-step guidance used when the provider is unavailable."""
    if project_name:
        return _loader.render(
            "guidance_fallback",
            project_name=project_name,
            description=description or "building a working application",
        )
    return _loader.load_prompt("guidance_generic")


def vision_prompt(content: str, prompt: str | None = None, user_question: str | None = None) -> str:
    effective = prompt or "Analyze this code and provide feedback:"
    if user_question:
        effective = _loader.render("vision_question", user_question=user_question)
    return f"{effective}\n\n```\n{content}\n```"


def chat_system_prompt() -> str:
    return _loader.load_prompt("chat_system")


def reload_prompts() -> None:
    """Reload all prompts from disk (convenience function)"""
    _loader.reload()
