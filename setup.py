"""
Setup script for questline.

Questline is the progression engine behind a gamified coding tutor. It serves
three roles:

1. Progression - XP, levels and per-language ranks from rubric-scored solutions
2. Motivation - Achievement unlocks from a static catalogue of milestones
3. Adaptation - Per-topic difficulty tiers driven by a rolling success rate

The 'questline' command is a thin dispatcher over the engine.
"""

from setuptools import find_packages, setup

setup(
    name="questline",
    version="0.3.0",
    description="Gamified quest progression engine for coding tutors",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="Questline Contributors",
    packages=find_packages(include=["questline", "questline.*"]),
    python_requires=">=3.11",
    install_requires=[
        # CLI
        "typer>=0.12.0",
        "rich>=13.0.0",
        # Database
        "sqlalchemy>=2.0.0",
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
        "postgres": [
            "psycopg2-binary>=2.9.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "questline=questline.cli.main:run",
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
    keywords="learning gamification xp achievements adaptive-difficulty",
)
