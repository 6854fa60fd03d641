"""Conversation history construction from an Ollama message list."""

import logging
from typing import List, Sequence, Tuple

from .errors import EmptyInputError, InvalidRoleError, LastMessageNotUserError
from .models import ChatMessage, EntryKind, TranscriptEntry

logger = logging.getLogger(__name__)

ROLE_TO_KIND = {
    "system": EntryKind.INSTRUCTIONS,
    "user": EntryKind.USER,
    "assistant": EntryKind.ASSISTANT,
}


def build_transcript(messages: Sequence[ChatMessage]) -> Tuple[List[TranscriptEntry], str]:
    """
    Split a message list into prior history and the active prompt.

    Every message except the last becomes a history entry, in order.
    The last message must come from the user; its content is returned
    verbatim as the prompt.

    Raises:
        EmptyInputError: no messages at all
        LastMessageNotUserError: the final message is not a user message
        InvalidRoleError: a history message has an unknown role
    """
    logger.debug(f"Creating transcript from {len(messages)} messages")

    if not messages:
        raise EmptyInputError()

    last = messages[-1]
    if last.role != "user":
        raise LastMessageNotUserError()

    history = []
    for index, message in enumerate(messages[:-1]):
        kind = ROLE_TO_KIND.get(message.role)
        if kind is None:
            raise InvalidRoleError(message.role)

        logger.debug(f"Message {index}: role={message.role}, content length={len(message.content)}")
        history.append(TranscriptEntry(kind=kind, text=message.content))

    logger.debug(f"Created transcript with {len(history)} entries")
    return history, last.content
