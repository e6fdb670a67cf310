"""
Synthesis Client

The single outbound call the pipeline makes: system instructions plus an
ordered conversation in, generated text out. ``AnthropicSynthesisClient``
talks to Claude through LangChain and retries transient failures before
giving up with ``SummarizationCallError``.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Union

import structlog
from langchain_anthropic import ChatAnthropic
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential

from .config import ModelConfig
from .errors import ConfigError, SummarizationCallError
from .models import ConversationTurn

logger = structlog.get_logger(__name__)


class SynthesisClient(ABC):
    """Generates text from system instructions and a conversation."""

    @property
    def is_configured(self) -> bool:
        return True

    @abstractmethod
    async def synthesize(
        self,
        system_instructions: str,
        messages: List[ConversationTurn],
        max_output_tokens: int,
    ) -> str:
        """
        Run one generation.

        Raises:
            SummarizationCallError: If the call fails or returns no text
        """


def to_langchain_messages(system_instructions: str, turns: List[ConversationTurn]) -> List[BaseMessage]:
    """
    Convert conversation turns into LangChain messages with Anthropic content blocks.

    Client-supplied turns are passed through in their original wire form.
    """
    messages: List[BaseMessage] = [SystemMessage(content=system_instructions)]
    for turn in turns:
        content: Union[str, List[Dict[str, Any]]] = turn.to_dict()['content']
        if turn.role == 'user':
            messages.append(HumanMessage(content=content))
        else:
            messages.append(AIMessage(content=content))
    return messages


def response_text(message: Any) -> str:
    """Concatenate the text parts of a chat model response."""
    content = getattr(message, 'content', message)
    if isinstance(content, str):
        return content
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get('type') == 'text':
            parts.append(part.get('text', ''))
    return ''.join(parts)


class AnthropicSynthesisClient(SynthesisClient):
    """Claude-backed synthesis via langchain-anthropic."""

    def __init__(self, config: Optional[ModelConfig] = None, llm: Optional[ChatAnthropic] = None):
        """
        Initialize the client.

        Args:
            config: Model configuration
            llm: Pre-built chat model, mainly for tests
        """
        self.config = config or ModelConfig()
        self._llm = llm

    @property
    def is_configured(self) -> bool:
        return bool(self.config.api_key) or self._llm is not None

    @property
    def llm(self) -> ChatAnthropic:
        if self._llm is None:
            if not self.config.api_key:
                raise ConfigError("ANTHROPIC_API_KEY is not configured")
            self._llm = ChatAnthropic(
                model=self.config.model_name,
                api_key=self.config.api_key,
                temperature=self.config.temperature,
                max_tokens=self.config.max_output_tokens,
                timeout=self.config.timeout,
                max_retries=0,
            )
            logger.info("synthesis_client_initialized", model=self.config.model_name)
        return self._llm

    async def synthesize(
        self,
        system_instructions: str,
        messages: List[ConversationTurn],
        max_output_tokens: int,
    ) -> str:
        lc_messages = to_langchain_messages(system_instructions, messages)
        runnable = self.llm.bind(max_tokens=max_output_tokens)
        start_time = time.time()

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.config.max_retries),
                wait=wait_exponential(multiplier=1, min=2, max=20),
                reraise=True,
            ):
                with attempt:
                    response = await runnable.ainvoke(lc_messages)
        except Exception as e:
            logger.error("synthesis_call_failed", error=str(e), turns=len(messages))
            raise SummarizationCallError() from e

        text = response_text(response).strip()
        if not text:
            raise SummarizationCallError("The model returned an empty response")

        logger.info(
            "synthesis_call_completed",
            turns=len(messages),
            output_chars=len(text),
            elapsed=round(time.time() - start_time, 2),
        )
        return text
