"""
Completion providers: chat-style text generation behind a narrow interface.
Providers raise on failure; the gateway converts failures into fail-soft output.
"""

import json
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

import ollama

from ..util.logging import logger


class ICompletionProvider(ABC):
    """Abstract interface for completion providers."""

    def __init__(self, model_name: str):
        self.model_name = model_name

    @abstractmethod
    def complete(self, system_prompt: str, messages: List[Dict[str, str]],
                 temperature: float = 0.7, max_tokens: Optional[int] = None) -> str:
        """
        Generate a reply to a conversation.

        Args:
            system_prompt: Instructions placed ahead of the conversation
            messages: Conversation history as ``{"role", "content"}`` dicts
            temperature: Sampling temperature
            max_tokens: Upper bound on generated tokens

        Returns:
            The generated text
        """
        pass

    def get_status(self) -> Dict[str, Any]:
        """Get current status of this provider."""
        return {
            "model_name": self.model_name,
            "provider_type": self.__class__.__name__,
            "status": "ready"
        }


class OllamaCompletionProvider(ICompletionProvider):
    """Completion provider that calls a local or remote Ollama server."""

    def __init__(self, model_name: str, host: str = None, timeout: float = None):
        super().__init__(model_name)
        self.client = ollama.Client(host=host, timeout=timeout)

    def complete(self, system_prompt: str, messages: List[Dict[str, str]],
                 temperature: float = 0.7, max_tokens: Optional[int] = None) -> str:
        options = {'temperature': temperature}
        if max_tokens:
            options['num_predict'] = max_tokens

        start_time = datetime.now()
        response = self.client.chat(
            model=self.model_name,
            messages=self._build_ollama_messages(system_prompt, messages),
            options=options
        )
        processing_time = int((datetime.now() - start_time).total_seconds() * 1000)

        content = (response["message"]["content"] or "").strip()
        if not content:
            raise ValueError(f"Empty completion from model {self.model_name}")

        logger.debug(f"Ollama completion from {self.model_name} in {processing_time}ms ({len(content)} chars)")
        return content

    def _build_ollama_messages(self, system_prompt: str, messages: List[Dict[str, str]]) -> List[Dict[str, str]]:
        """Build messages array in Ollama format, system prompt first."""
        ollama_messages = []
        if system_prompt:
            ollama_messages.append({'role': 'system', 'content': system_prompt})

        for message in messages:
            ollama_messages.append({'role': message['role'], 'content': message['content']})

        return ollama_messages

    def get_status(self) -> Dict[str, Any]:
        """Get current status with Ollama-specific information."""
        status = super().get_status()
        status['ollama_available'] = self.check_health()
        return status

    def check_health(self) -> bool:
        """Check if Ollama is reachable."""
        try:
            self.client.list()
            return True
        except Exception:
            return False


class MockCompletionProvider(ICompletionProvider):
    """
    Offline completion provider for development and demos.
    Answers from the first passage of the grounding context and
    produces follow-up questions as a JSON array.
    """

    _SOURCE_HEADER = re.compile(r"^\[Source \d+: (?P<title>.+)\]$")

    def __init__(self, model_name: str = "mock-model"):
        super().__init__(model_name)

    def complete(self, system_prompt: str, messages: List[Dict[str, str]],
                 temperature: float = 0.7, max_tokens: Optional[int] = None) -> str:
        last_message = messages[-1]['content'] if messages else ""

        if "follow-up" in system_prompt.lower():
            return json.dumps(self._follow_ups(last_message))

        return self._answer_from_context(last_message)

    def _answer_from_context(self, prompt: str) -> str:
        if "Context:" not in prompt:
            return "I'm running in offline mode and can only answer from the lesson library."

        context = prompt.split("Context:", 1)[1].split("\n\nQuestion:", 1)[0].strip()
        lines = [line for line in context.splitlines() if line.strip()]
        title = None
        if lines:
            header = self._SOURCE_HEADER.match(lines[0])
            if header:
                title = header.group("title")
                lines = lines[1:]

        passage = lines[0] if lines else ""
        if title:
            return f"According to \"{title}\": {passage}"
        return passage or "The lesson library has no passage on that yet."

    def _follow_ups(self, prompt: str) -> List[str]:
        match = re.search(r"Original question: (.+)", prompt)
        question = match.group(1).strip().rstrip("?") if match else "this topic"
        return [
            f"Can you show a practical example for \"{question}\"?",
            "What are common mistakes to avoid here?",
            "Which related technique should I learn next?",
        ]
