"""
Setup script for frontier-core.

Frontier is the learning core of an adaptive tutoring platform:

1. Diagnostic placement - find a student's knowledge frontier in <= 20 questions
2. Mastery tracking - Bayesian Knowledge Tracing per student and concept
3. Spaced repetition - SM-2 inspired review scheduling
4. Fluency - response-time plateau detection and a true-mastery gate

The 'frontier' command is a developer CLI for inspecting the engines.
"""

from setuptools import find_packages, setup

setup(
    name="frontier-core",
    version="1.0.0",
    description="Placement, mastery tracking and spaced repetition engines for adaptive tutoring",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(include=["frontier", "frontier.*"]),
    py_modules=["config"],
    python_requires=">=3.11",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "frontier=frontier.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning spaced-repetition knowledge-tracing placement education",
)
