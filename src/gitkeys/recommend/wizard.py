"""Setup wizard as pure functions.

``next_question`` maps a recommendation plus the answers given so far to
the next question to ask, or None when done. ``build_config`` turns a
finished answer set into a declared config. The prompt loop lives in the
CLI, so the wizard logic is testable without a terminal.

Answers are keyed by question id:

* ``<i>:adopt``: create a persona for recommended persona *i* (bool)
* ``<i>:name``: persona name (str)
* ``<i>:account:<type>:<base_url>``: account for a discovered platform;
  empty skips it
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from gitkeys.config.models import DeclaredConfig, Defaults, Machine, Persona, Platform, PlatformType
from gitkeys.platforms.registry import PLATFORMS
from gitkeys.recommend.engine import PLACEHOLDER_ACCOUNT, RecommendedMapping, RecommendedPersona

CONFIRM = "confirm"
TEXT = "text"


@dataclass(frozen=True)
class Question:
    id: str
    prompt: str
    kind: str
    default: Any = None


def platform_slots(persona: RecommendedPersona) -> list[tuple[PlatformType, str, str]]:
    """Distinct ``(type, base_url)`` platforms with their default account.

    GitHub appears once, gitlab.com once, and each self-hosted GitLab
    base URL once, in first-seen order.
    """
    slots: dict[tuple[PlatformType, str], str] = {}
    for platform in persona.platforms:
        key = (platform.type, platform.base_url)
        account = platform.account if platform.account != PLACEHOLDER_ACCOUNT else ""
        if key not in slots or (account and not slots[key]):
            slots[key] = account
    return [(t, base, account) for (t, base), account in slots.items()]


def account_question_id(index: int, platform_type: PlatformType, base_url: str) -> str:
    return f"{index}:account:{platform_type.value}:{base_url}"


def _platform_label(platform_type: PlatformType, base_url: str) -> str:
    if base_url:
        return f"{PLATFORMS[platform_type].display_name} ({base_url})"
    return PLATFORMS[platform_type].canonical_host


def next_question(mapping: RecommendedMapping, answers: dict[str, Any]) -> Question | None:
    """Return the next unanswered question, or None if the wizard is done."""
    for i, persona in enumerate(mapping.personas):
        adopt_id = f"{i}:adopt"
        if adopt_id not in answers:
            return Question(
                adopt_id,
                f"Create a persona for {persona.name} <{persona.email}>?",
                CONFIRM,
                True,
            )
        if not answers[adopt_id]:
            continue

        name_id = f"{i}:name"
        if name_id not in answers:
            return Question(name_id, "Persona name", TEXT, persona.name)

        for platform_type, base_url, account in platform_slots(persona):
            qid = account_question_id(i, platform_type, base_url)
            if qid not in answers:
                return Question(
                    qid,
                    f"{_platform_label(platform_type, base_url)} account (empty to skip)",
                    TEXT,
                    account,
                )
    return None


def build_config(
    mapping: RecommendedMapping,
    answers: dict[str, Any],
    machine: Machine,
    defaults: Defaults | None = None,
) -> DeclaredConfig:
    """Build a declared config from a finished answer set.

    Personas left without any platform are dropped.
    """
    personas: list[Persona] = []
    for i, rec in enumerate(mapping.personas):
        if not answers.get(f"{i}:adopt"):
            continue
        name = str(answers.get(f"{i}:name") or rec.name).strip()
        persona = Persona(name=name, email=rec.email)
        for platform_type, base_url, _ in platform_slots(rec):
            account = str(answers.get(account_question_id(i, platform_type, base_url)) or "").strip()
            if account and persona.find_platform(platform_type, account) is None:
                persona.platforms.append(
                    Platform(type=platform_type, account=account, base_url=base_url)
                )
        if persona.platforms:
            personas.append(persona)
    return DeclaredConfig(machine=machine, personas=personas, defaults=defaults or Defaults())
