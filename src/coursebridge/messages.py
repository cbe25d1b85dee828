"""
Canonical turn-list construction and history trimming.

Every adapter receives the list built here and nothing else.
"""

import time
from collections.abc import Sequence

from .models import Role, Session, Turn

MAX_MESSAGES_IN_SESSION = 20

TRANSCRIPT_HEADER = "Transcript:"


def now_ms() -> int:
    return int(time.time() * 1000)


def new_session(system_prompt: str = "") -> Session:
    """Create a fresh session with no history."""
    now = now_ms()
    return Session(
        system_prompt=system_prompt,
        messages=[],
        created_at=now,
        last_activity=now,
    )


def build_provider_turns(
    system_prompt: str | None,
    history: Sequence[Turn],
    new_user_text: str | None,
) -> list[Turn]:
    """
    Build the ordered turn list for one provider call.

    Args:
        system_prompt: Session system prompt, emitted first when not blank
        history: Previous user/assistant turns, emitted as-is
        new_user_text: The new prompt, emitted last when not blank

    Returns:
        The turn list. May be empty; callers must reject that case.
    """
    turns: list[Turn] = []

    if system_prompt and system_prompt.strip():
        turns.append(Turn(role=Role.SYSTEM, text=system_prompt))

    turns.extend(history)

    if new_user_text and new_user_text.strip():
        turns.append(Turn(role=Role.USER, text=new_user_text))

    return turns


def trim_history(history: Sequence[Turn], max_len: int = MAX_MESSAGES_IN_SESSION) -> list[Turn]:
    """Keep only the newest ``max_len`` turns."""
    if len(history) <= max_len:
        return list(history)
    return list(history[-max_len:])


def append_transcript(turns: Sequence[Turn], transcript: str) -> list[Turn]:
    """
    Merge a speech-to-text transcript into the turn list.

    The transcript is appended to the last user turn, or added as a new user
    turn when the list does not end with one. The input is left untouched.
    """
    merged = list(turns)
    if merged and merged[-1].role is Role.USER:
        last = merged[-1]
        merged[-1] = last.model_copy(
            update={"text": f"{last.text}\n\n{TRANSCRIPT_HEADER}\n{transcript}"}
        )
    else:
        merged.append(Turn(role=Role.USER, text=f"{TRANSCRIPT_HEADER}\n{transcript}"))
    return merged


def record_exchange(session: Session, user_text: str, assistant_text: str, max_len: int) -> None:
    """Append one user+assistant pair to the session, trim, and bump activity."""
    now = now_ms()
    messages = [
        *session.messages,
        Turn(role=Role.USER, text=user_text, timestamp=now),
        Turn(role=Role.ASSISTANT, text=assistant_text, timestamp=now),
    ]
    session.messages = trim_history(messages, max_len)
    session.last_activity = now
