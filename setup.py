from __future__ import annotations

from pathlib import Path

from setuptools import find_packages, setup

# Read README for long description
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text()

setup(
    # Package metadata
    name="codecoach",
    version="1.0.0",
    description="Generate incomplete coding-challenge projects with LLMs and tutor learners through them",
    long_description=long_description,
    long_description_content_type="text/markdown",
    # Package discovery
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"codecoach.llm.prompts": ["*.txt"]},
    include_package_data=True,
    # Dependencies
    install_requires=[
        "fastapi>=0.110.0",
        "uvicorn>=0.24.0",
        "pydantic>=2.5.0",
        "google-cloud-aiplatform>=1.38.0",
        "google-generativeai>=0.5.0",
        "google-api-core>=2.11.0",
        "python-dotenv>=1.0.0",
        "requests>=2.31.0",
        "openai>=1.30.0",
        "anthropic>=0.25.0",
        "PyJWT>=2.8.0",
    ],
    # Optional dependencies (for development)
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "httpx>=0.25.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    # CLI commands
    entry_points={
        "console_scripts": [
            "codecoach-api=codecoach.api.app:main",
        ],
    },
    python_requires=">=3.11",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
)
