"""Recommended identity mapping and the setup wizard.

Public API::

    from gitkeys.recommend import recommend, next_question, build_config

    mapping = recommend(scan_result, declared=None)
    answers = {}
    while (question := next_question(mapping, answers)) is not None:
        answers[question.id] = ask(question)
    config = build_config(mapping, answers, machine)
"""

from __future__ import annotations

from gitkeys.recommend.engine import (
    PLACEHOLDER_ACCOUNT,
    RecommendedMapping,
    RecommendedPersona,
    RecommendedPlatform,
    recommend,
)
from gitkeys.recommend.wizard import Question, build_config, next_question

__all__ = [
    "PLACEHOLDER_ACCOUNT",
    "Question",
    "RecommendedMapping",
    "RecommendedPersona",
    "RecommendedPlatform",
    "build_config",
    "next_question",
    "recommend",
]
