from __future__ import annotations

import logging
from dataclasses import dataclass, field

from smartinsights.errors import WorkbenchError
from smartinsights.llm_client import DEFAULT_TIMEOUT, LLMClient

logger = logging.getLogger(__name__)

CHAT_SYSTEM_INSTRUCTION = (
    "You are a helpful and friendly AI assistant named SmartBot. Keep your responses concise and informative."
)
GREETING = "Hello! How can I help you today?"
FALLBACK_REPLY = "Sorry, something went wrong. Please try again."


@dataclass
class ChatTurn:
    role: str
    text: str
    failed: bool = False


@dataclass
class ChatSession:
    client: LLMClient
    system_instruction: str = CHAT_SYSTEM_INSTRUCTION
    timeout: int = DEFAULT_TIMEOUT
    transcript: list[ChatTurn] = field(default_factory=lambda: [ChatTurn("model", GREETING)])

    def _history(self) -> list[dict[str, str]]:
        # the greeting is UI-only; providers expect the first turn to come from the user
        history = []
        for turn in self.transcript[1:]:
            if turn.failed:
                continue
            history.append({"role": "user" if turn.role == "user" else "assistant", "content": turn.text})
        return history

    async def send(self, message: str) -> str:
        message = message.strip()
        if not message:
            raise ValueError("Message must not be empty.")
        self.transcript.append(ChatTurn("user", message))
        try:
            reply = await self.client.chat(self._history(), self.system_instruction, timeout=self.timeout)
        except WorkbenchError as exc:
            logger.warning("Chat request failed: %s", exc)
            self.transcript[-1].failed = True
            self.transcript.append(ChatTurn("model", FALLBACK_REPLY, failed=True))
            return FALLBACK_REPLY
        self.transcript.append(ChatTurn("model", reply))
        return reply
