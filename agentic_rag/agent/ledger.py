"""Conversation ledger: the ordered user/model turns of one session."""

from agentic_rag.models.conversation import ConversationTurn
from agentic_rag.models.enums import Role


class ConversationLedger:
    """Append-only sequence of conversation turns."""

    def __init__(self, turns: list[ConversationTurn] | None = None):
        self._turns: list[ConversationTurn] = list(turns or [])

    def append(self, turn: ConversationTurn) -> ConversationTurn:
        self._turns.append(turn)
        return turn

    def snapshot(self) -> tuple[ConversationTurn, ...]:
        """Frozen copy of the current turns; later appends do not affect it."""
        return tuple(self._turns)

    def last(self, role: Role | None = None) -> ConversationTurn | None:
        for turn in reversed(self._turns):
            if role is None or turn.role == role:
                return turn
        return None

    def clear(self) -> None:
        self._turns.clear()

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self):
        return iter(self._turns)
