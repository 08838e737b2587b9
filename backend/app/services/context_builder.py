"""
Prompt assembly for the chat relay.
"""

import logging
from uuid import UUID

from app.core.exceptions import NotFoundError
from app.interfaces.chat_session_repository import IChatSessionRepository
from app.models.chat import PromptMessage
from app.models.enums import MessageRole

logger = logging.getLogger(__name__)


class ContextBuilder:
    """Builds the upstream prompt from a session's recent history."""

    def __init__(
        self,
        chat_repo: IChatSessionRepository,
        system_prompt: str,
        max_context_messages: int = 20,
    ):
        self.chat_repo = chat_repo
        self.system_prompt = system_prompt
        self.max_context_messages = max_context_messages

    async def build(self, user_id: str, session_id: UUID) -> list[PromptMessage]:
        """
        Return the system instruction followed by the last N messages, oldest first.

        Raises:
            NotFoundError: If the session is missing, deleted, or owned by another user
        """
        session = await self.chat_repo.get_session(user_id, session_id)
        if not session:
            raise NotFoundError(f"Chat session {session_id} not found")

        history = await self.chat_repo.list_recent_messages(
            user_id, session_id, limit=self.max_context_messages
        )
        prompt = [PromptMessage(role=MessageRole.SYSTEM, content=self.system_prompt)]
        prompt.extend(
            PromptMessage(role=message.role, content=message.content)
            for message in history
        )

        logger.debug(f"Built context for session {session_id}: {len(history)} messages")
        return prompt
