"""Localised narrative catalogue for notification posts.

Pure data plus one lookup helper. Logic lives in workflow.py.

``vi`` carries the wording the web client has always shown; ``en`` is the
English rendering. Every locale must define the same keys.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "vi"

# ---------------------------------------------------------------------------
# Kind nouns
# ---------------------------------------------------------------------------

KIND_NOUNS: dict[str, dict[str, str]] = {
    "vi": {
        "plan": "kế hoạch",
        "trouble": "trouble",
        "issue": "sự cố",
        "task": "công việc",
    },
    "en": {
        "plan": "plan",
        "trouble": "trouble",
        "issue": "issue",
        "task": "task",
    },
}

# ---------------------------------------------------------------------------
# Sentences, keyed by narrative event
# ---------------------------------------------------------------------------
# Placeholders: {actor} display name, {noun} kind noun, {text} record message.

NARRATIVES: dict[str, dict[str, str]] = {
    "vi": {
        "confirmed": "**{actor}** đã **xác nhận** {noun} **{text}**",
        "restored": "**{actor}** yêu cầu **làm lại** {noun} **{text}**",
        "done": "**{actor}** đã **báo xong** {noun} **{text}**",
        "completed": "**{actor}** đã **nghiệm thu** {noun} **{text}**",
        "priority_on": "{actor} **yêu cầu ưu tiên** {noun} **{text}**",
        "priority_off": "{actor} **bỏ ưu tiên** {noun} **{text}**",
    },
    "en": {
        "confirmed": "**{actor}** **confirmed** {noun} **{text}**",
        "restored": "**{actor}** **requested redo** of {noun} **{text}**",
        "done": "**{actor}** **reported done** {noun} **{text}**",
        "completed": "**{actor}** **accepted** {noun} **{text}**",
        "priority_on": "{actor} **requested priority** for {noun} **{text}**",
        "priority_off": "{actor} **removed priority** from {noun} **{text}**",
    },
}

SUPPORTED_LOCALES: frozenset[str] = frozenset(NARRATIVES)


def resolve_locale(locale: str | None) -> str:
    """Return *locale* if supported, else the default (logged)."""
    if locale in SUPPORTED_LOCALES:
        return locale
    if locale:
        logger.warning("Unsupported locale %r, falling back to %r", locale, DEFAULT_LOCALE)
    return DEFAULT_LOCALE


def kind_noun(kind: str, locale: str) -> str:
    nouns = KIND_NOUNS[resolve_locale(locale)]
    return nouns.get(kind, nouns["task"])


def narrate(event: str, *, locale: str, actor: str, kind: str, text: str) -> str:
    """Render the sentence for *event* (a key of ``NARRATIVES``)."""
    loc = resolve_locale(locale)
    return NARRATIVES[loc][event].format(actor=actor, noun=kind_noun(kind, loc), text=text)
