"""In-memory, append-only conversation store."""

from mycelium.models import Message, Role


class ConversationStore:
    """Ordered message sequence for one session. Messages are never edited or removed."""

    def __init__(self, messages: list[Message] | None = None):
        self._messages: list[Message] = list(messages or [])

    def __len__(self) -> int:
        return len(self._messages)

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def append(self, message: Message) -> Message:
        if any(m.id == message.id for m in self._messages):
            raise ValueError(f"Duplicate message id: {message.id}")
        self._messages.append(message)
        return message

    def last_user_message(self) -> Message | None:
        for message in reversed(self._messages):
            if message.role == Role.USER:
                return message
        return None

    def split_for_execution(self) -> tuple[list[Message], str]:
        """Return (history before the newest user input, that input's text).

        Raises ValueError when no user input has been recorded yet.
        """
        for idx in range(len(self._messages) - 1, -1, -1):
            if self._messages[idx].role == Role.USER:
                return self._messages[:idx], self._messages[idx].content
        raise ValueError("No user input in conversation")
