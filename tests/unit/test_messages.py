"""Tests for the notification narrative catalogue."""

from __future__ import annotations

import logging

import pytest

from workpost.messages import DEFAULT_LOCALE, KIND_NOUNS, NARRATIVES, kind_noun, narrate, resolve_locale


class TestCatalogue:
    def test_locales_define_same_keys(self) -> None:
        keys = {loc: set(sentences) for loc, sentences in NARRATIVES.items()}
        assert keys["vi"] == keys["en"]
        assert set(KIND_NOUNS["vi"]) == set(KIND_NOUNS["en"])

    def test_default_is_vietnamese(self) -> None:
        assert DEFAULT_LOCALE == "vi"


class TestResolveLocale:
    def test_supported(self) -> None:
        assert resolve_locale("en") == "en"

    def test_none_falls_back_quietly(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="workpost.messages"):
            assert resolve_locale(None) == "vi"
        assert caplog.records == []

    def test_unsupported_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="workpost.messages"):
            assert resolve_locale("fr") == "vi"
        assert "fr" in caplog.text


class TestNarrate:
    def test_unknown_kind_uses_generic_noun(self) -> None:
        assert kind_noun("memo", "en") == "task"

    def test_vietnamese_issue(self) -> None:
        text = narrate("done", locale="vi", actor="An", kind="issue", text="Mất điện")
        assert text == "**An** đã **báo xong** sự cố **Mất điện**"

    def test_message_embedded_verbatim(self) -> None:
        text = narrate("completed", locale="en", actor="An", kind="plan", text="{not a placeholder}")
        assert text.endswith("**{not a placeholder}**")
