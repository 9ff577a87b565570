"""
TeachingGuide - structured learning content with progressive challenges.

Turns a set of learning modules into markdown the learner works through one
step at a time: partial code to complete, challenges with hints, and
self-check questions. Nothing is generated here; the content is static.
"""

from __future__ import annotations

import random

from codecoach.guidance.models import (
    CodeSnippet,
    LearningChallenge,
    LearningModule,
    LearningStep,
)


class TeachingGuide:
    def __init__(self, project_name: str, description: str, rng: random.Random | None = None):
        self.project_name = project_name
        self.description = description
        self.modules: list[LearningModule] = []
        self.current_module: LearningModule | None = None
        self.current_step: LearningStep | None = None
        self.rng = rng or random.Random()

    def add_module(self, module: LearningModule) -> None:
        self.modules.append(module)

    def get_module(self, module_id: str) -> LearningModule | None:
        return next((m for m in self.modules if m.id == module_id), None)

    def set_current_module(self, module_id: str) -> bool:
        """Select a module and reset to its first step. False if unknown."""
        module = self.get_module(module_id)
        if module is None:
            return False
        self.current_module = module
        self.current_step = module.steps[0] if module.steps else None
        return True

    def next_step(self) -> LearningStep | None:
        """
        Advance within the current module.

        Returns None (and stays put) when nothing is selected or the current
        step is already the last one.
        """
        if self.current_module is None or self.current_step is None:
            return None

        steps = self.current_module.steps
        index = next(i for i, step in enumerate(steps) if step.id == self.current_step.id)
        if index < len(steps) - 1:
            self.current_step = steps[index + 1]
            return self.current_step
        return None

    def get_current_step_content(self) -> str:
        step = self.current_step
        if step is None:
            return self.get_introduction()

        concepts = "\n".join(f"- {concept}" for concept in step.concepts)
        snippets = "\n".join(
            f"```{snippet.language}\n"
            f"// File: {snippet.file_name or 'implementation.js'}\n"
            "// Fill in the missing parts!\n\n"
            f"{snippet.partial}\n```\n"
            for snippet in step.code_snippets
        )
        challenges = "\n".join(
            f"### {challenge.difficulty.upper()} Challenge: {challenge.description}\n"
            + "\n".join(f"- Hint: {hint}" for hint in challenge.hints)
            + "\n"
            for challenge in step.challenges
        )
        questions = "\n".join(
            f"{i}. {question}" for i, question in enumerate(step.self_check_questions, start=1)
        )

        return (
            f"# {step.title}\n\n"
            f"## Concepts You'll Learn\n{concepts}\n\n"
            f"## Why This Matters\n{step.explanation}\n\n"
            "## Code Implementation\n"
            "Let's implement this step together. "
            "I'll provide some of the code, and you'll complete the rest.\n\n"
            f"{snippets}\n"
            f"## Learning Challenges\n{challenges}\n"
            f"## Check Your Understanding\n{questions}\n\n"
            "When you've completed this step, let me know and I'll guide you to the next part!\n"
        )

    def get_introduction(self) -> str:
        overview = "\n".join(
            f"### Module {i}: {module.title}\n"
            f"{module.description}\n"
            f"- Estimated time: {module.estimated_completion_time}\n"
            f"- Contains {len(module.steps)} hands-on exercises\n"
            for i, module in enumerate(self.modules, start=1)
        )
        return (
            f"# Your Hands-On Guide: Building {self.project_name}\n\n"
            f"{self.description}\n\n"
            f"## Learning Path Overview\n{overview}\n"
            "## How This Guide Works\n"
            "Instead of giving you complete solutions, I'll provide:\n"
            "1. Clear explanations of concepts\n"
            "2. Partial code snippets for you to complete\n"
            "3. Guided challenges to reinforce understanding\n"
            "4. Self-check questions to test your knowledge\n\n"
            "This approach will help you truly learn the material rather than just copy-pasting code!\n\n"
            "Let me know when you're ready to start with the first module.\n"
        )

    def generate_hint(self) -> str:
        """A random hint from the current step without revealing the solution."""
        if self.current_step is None:
            return "Let's first select a learning module to get started!"

        hints = [hint for challenge in self.current_step.challenges for hint in challenge.hints]
        hint = self.rng.choice(hints) if hints else "Try breaking down the problem into smaller steps."

        return (
            "## Helpful Hint\n\n"
            f"{hint}\n\n"
            "Remember: The goal is to understand the process, not just get the right answer. "
            "Take your time!\n"
        )

    @classmethod
    def create_sample_guide(cls, project_type: str, project_name: str) -> TeachingGuide:
        """One-module starter guide for a project type."""
        guide = cls(
            project_name,
            f"A {project_type} project that will teach you key concepts through hands-on coding.",
        )
        guide.add_module(
            LearningModule(
                id="module-1",
                title="Getting Started with the Basics",
                description="Learn the fundamental building blocks of your project",
                estimated_completion_time="20 minutes",
                steps=[
                    LearningStep(
                        id="step-1",
                        title="Setting Up Your Project Structure",
                        concepts=["File organization", "Environment setup", "Project initialization"],
                        explanation=(
                            "A well-organized project structure is crucial for "
                            "maintainability and collaboration."
                        ),
                        code_snippets=[
                            CodeSnippet(
                                complete=(
                                    "import React from 'react';\nimport './App.css';\n\n"
                                    "function App() {\n  return (\n    <div className=\"App\">\n"
                                    "      <h1>Hello, World!</h1>\n    </div>\n  );\n}\n\n"
                                    "export default App;"
                                ),
                                partial=(
                                    "import React from 'react';\nimport './App.css';\n\n"
                                    "function App() {\n  return (\n"
                                    "    // Create a div with className \"App\" and add an h1 element inside\n"
                                    "    // Your code here\n  );\n}\n\n"
                                    "// Don't forget to export your component!\n"
                                ),
                                language="jsx",
                                file_name="App.jsx",
                            )
                        ],
                        challenges=[
                            LearningChallenge(
                                description="Modify the App component to include a subtitle and a button",
                                difficulty="easy",
                                hints=[
                                    "Add an h2 element after the h1",
                                    "Use the button element to create a button",
                                    "Consider adding some basic styling with className",
                                ],
                            )
                        ],
                        self_check_questions=[
                            "Why is it important to export your component at the end of the file?",
                            "What would happen if you forgot to import React?",
                            "How would you add a click handler to your button?",
                        ],
                    )
                ],
            )
        )
        return guide
