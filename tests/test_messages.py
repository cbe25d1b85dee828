"""Tests for turn-list construction and history trimming."""

from __future__ import annotations

from coursebridge.messages import (
    append_transcript,
    build_provider_turns,
    new_session,
    record_exchange,
    trim_history,
)
from coursebridge.models import Role, Turn


def _history(n: int) -> list[Turn]:
    return [
        Turn(role=Role.USER if i % 2 == 0 else Role.ASSISTANT, text=f"m{i}")
        for i in range(n)
    ]


class TestBuildProviderTurns:

    def test_all_empty_gives_empty_list(self):
        assert build_provider_turns("", [], "") == []

    def test_system_and_prompt(self):
        turns = build_provider_turns("Sys", [], "Hi")

        assert [(t.role, t.text) for t in turns] == [(Role.SYSTEM, "Sys"), (Role.USER, "Hi")]

    def test_blank_system_and_prompt_are_skipped(self):
        history = _history(2)

        turns = build_provider_turns("   ", history, "\n\t")

        assert turns == history

    def test_history_kept_in_order_between_system_and_prompt(self):
        history = _history(4)

        turns = build_provider_turns("Sys", history, "next")

        assert turns[0].role is Role.SYSTEM
        assert turns[1:5] == history
        assert turns[-1].text == "next"

    def test_none_inputs_are_treated_as_empty(self):
        assert build_provider_turns(None, [], None) == []

    def test_history_turn_with_empty_text_is_kept(self):
        history = [Turn(role=Role.USER, text=""), Turn(role=Role.ASSISTANT, text="ok")]

        assert build_provider_turns("", history, "") == history


class TestTrimHistory:

    def test_short_history_unchanged(self):
        for n in (0, 1, 19, 20):
            history = _history(n)
            assert trim_history(history, 20) == history

    def test_long_history_keeps_last_twenty(self):
        history = _history(27)

        trimmed = trim_history(history, 20)

        assert len(trimmed) == 20
        assert trimmed == history[-20:]
        assert trimmed[0].text == "m7"

    def test_does_not_mutate_input(self):
        history = _history(22)

        trim_history(history, 20)

        assert len(history) == 22


class TestAppendTranscript:

    def test_appends_to_last_user_turn(self):
        turns = [Turn(role=Role.SYSTEM, text="Sys"), Turn(role=Role.USER, text="Listen")]

        merged = append_transcript(turns, "hello there")

        assert merged[-1].text == "Listen\n\nTranscript:\nhello there"
        assert turns[-1].text == "Listen"  # original untouched

    def test_adds_user_turn_when_last_is_assistant(self):
        turns = _history(2)

        merged = append_transcript(turns, "hello")

        assert len(merged) == 3
        assert merged[-1].role is Role.USER
        assert merged[-1].text == "Transcript:\nhello"

    def test_adds_user_turn_to_empty_list(self):
        merged = append_transcript([], "hello")

        assert [(t.role, t.text) for t in merged] == [(Role.USER, "Transcript:\nhello")]


class TestRecordExchange:

    def test_appends_pair_with_timestamps(self):
        session = new_session("Sys")

        record_exchange(session, "question", "answer", 20)

        assert [(t.role, t.text) for t in session.messages] == [
            (Role.USER, "question"),
            (Role.ASSISTANT, "answer"),
        ]
        assert all(t.timestamp is not None for t in session.messages)
        assert session.last_activity >= session.created_at

    def test_trims_oldest_pairs(self):
        session = new_session()
        session.messages = _history(20)

        record_exchange(session, "q", "a", 20)

        assert len(session.messages) == 20
        assert session.messages[0].text == "m2"
        assert session.messages[-1].text == "a"
