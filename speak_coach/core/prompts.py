"""
System instructions and conversation history for tutor requests.
"""

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from speak_coach.storage.models import VALID_ROLES

from .scenarios import scenario_focus
from .tutors import Level, Tutor

MAX_HISTORY_TURNS = 50

BASE_INSTRUCTIONS = """You are a friendly English conversation teacher.

CRITICAL - You MUST follow this format EVERY time the student speaks:

STEP 1 - Grammar correction (if needed):
- If there are mistakes, say: "Just a small fix: [corrected sentence]"
- If perfect, say "Perfect grammar!"

STEP 2 - Natural paraphrase variations (ALWAYS do this):
- Give 2-3 more natural ways to say it
- Format exactly like this:
  "You could also say: [variation 1]"
  "Or more naturally: [variation 2]"
  "Another way: [variation 3]"

STEP 3 - Your response to continue the conversation.

You must keep the response natural, encouraging, and concise.
"""

REALTIME_INSTRUCTIONS = """You are a friendly English conversation teacher.

EVERY time the student speaks, your response must:
1. Gently point out grammar mistakes and give the corrected version.
2. Rephrase their sentence in a more natural way.
3. Continue the conversation: answer, ask a follow-up or comment.

Speak clearly at a moderate pace, be encouraging and keep each part concise.
Start by greeting the student warmly and asking what they'd like to talk about today.
"""


@dataclass(frozen=True)
class ChatTurn:
    """One turn of conversation history sent to a provider."""
    role: str
    text: str


def _field(message: Any, name: str) -> Any:
    if isinstance(message, dict):
        return message.get(name)
    return getattr(message, name, None)


def filter_history(messages: Optional[Iterable[Any]], limit: int = MAX_HISTORY_TURNS) -> List[ChatTurn]:
    """Keep the most recent valid turns.

    Drops entries whose role is not user/assistant or whose text is
    blank, then keeps the last `limit` turns.

    Args:
        messages: Dicts or objects with role and text
        limit: Maximum number of turns to keep

    Returns:
        Filtered turns, oldest first
    """
    turns = []
    for message in messages or []:
        role = _field(message, "role")
        text = _field(message, "text")
        if role not in VALID_ROLES:
            continue
        if not isinstance(text, str) or not text.strip():
            continue
        turns.append(ChatTurn(role=role, text=text))
    return turns[-limit:] if limit > 0 else []


def build_system_instruction(tutor: Tutor, level: Level, scenario: Optional[str] = None) -> str:
    """Compose the system instruction for a text chat reply."""
    instruction = (
        f"{BASE_INSTRUCTIONS}\n\n"
        f"You are {tutor.label}, a friendly English conversation teacher. {tutor.personality}"
        f"\n\n{level.instructions}"
    )
    focus = scenario_focus(scenario)
    if focus:
        instruction += f"\n\nScenario focus: {focus}"
    return instruction


def build_realtime_instruction(tutor: Tutor, level: Level) -> str:
    """Compose the instruction for a realtime voice session."""
    return (
        f"{REALTIME_INSTRUCTIONS}\n"
        f"You are {tutor.label}. {tutor.personality}\n\n{level.instructions}"
    )
