"""
Multi-Pass Summarizer

Map-reduce over assembled content for documents too large for one call:
each source text block is condensed independently into fact-only notes,
then a single final call builds the breakdown from the combined notes and
any image blocks. The final call never sees the raw source text.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import List, Optional

import structlog

from .config import ModelConfig, ProcessingConfig
from .models import BlockPurpose, ContentBlock, ConversationTurn
from .prompts import (
    FINAL_SYNTHESIS_PROMPT,
    NOTES_PROMPT,
    NOTES_SEPARATOR,
    NOTES_SYSTEM_PROMPT,
    SYSTEM_PROMPT,
    notes_heading,
)
from .synthesis import SynthesisClient

logger = structlog.get_logger(__name__)


@dataclass
class MultiPassResult:
    """Final breakdown text and the user content the final call saw."""
    text: str
    final_content: List[ContentBlock]
    notes_count: int
    processing_time: float


def partition_blocks(blocks: List[ContentBlock]):
    """
    Split blocks into (visual, source_text).

    ``visual`` keeps images and their marker/notice text in original order;
    ``source_text`` holds the text chunks to be condensed. The leading
    instruction block is dropped.
    """
    visual: List[ContentBlock] = []
    source_text: List[ContentBlock] = []

    for index, block in enumerate(blocks):
        if index == 0 and block.purpose == BlockPurpose.INSTRUCTION:
            continue
        if block.is_image or block.purpose == BlockPurpose.MARKER:
            visual.append(block)
        elif block.is_text:
            source_text.append(block)

    return visual, source_text


class MultiPassSummarizer:
    """Condenses large inputs through a notes pass before final synthesis."""

    def __init__(
        self,
        client: SynthesisClient,
        model_config: Optional[ModelConfig] = None,
        processing_config: Optional[ProcessingConfig] = None,
        system_prompt: str = SYSTEM_PROMPT,
        notes_system_prompt: str = NOTES_SYSTEM_PROMPT,
    ):
        self.client = client
        self.model_config = model_config or ModelConfig()
        self.processing_config = processing_config or ProcessingConfig()
        self.system_prompt = system_prompt
        self.notes_system_prompt = notes_system_prompt

    async def summarize(self, blocks: List[ContentBlock]) -> MultiPassResult:
        """
        Run the notes pass and the final synthesis.

        Any failed notes request fails the whole operation.

        Args:
            blocks: Assembled content blocks, leading instruction included

        Returns:
            Final breakdown text and the content sent to the final call
        """
        start_time = time.time()
        visual, source_text = partition_blocks(blocks)

        logger.info(
            "multi_pass_started",
            text_blocks=len(source_text),
            visual_blocks=len(visual),
            concurrency=self.processing_config.notes_concurrency,
        )

        notes = await self._extract_notes(source_text)
        combined = self.combine_notes(notes)

        final_content = list(visual)
        final_content.append(ContentBlock.text_block(FINAL_SYNTHESIS_PROMPT.format(notes=combined)))

        text = await self.client.synthesize(
            self.system_prompt,
            [ConversationTurn(role='user', content=final_content)],
            self.model_config.max_output_tokens,
        )

        processing_time = time.time() - start_time
        logger.info(
            "multi_pass_completed",
            notes=len(notes),
            notes_chars=len(combined),
            elapsed=round(processing_time, 2),
        )

        return MultiPassResult(
            text=text,
            final_content=final_content,
            notes_count=len(notes),
            processing_time=processing_time,
        )

    async def _extract_notes(self, text_blocks: List[ContentBlock]) -> List[str]:
        """Condense each block independently; results keep block order."""
        semaphore = asyncio.Semaphore(self.processing_config.notes_concurrency)

        async def notes_for(index: int, block: ContentBlock) -> str:
            async with semaphore:
                logger.debug("notes_request", block=index + 1, total=len(text_blocks))
                return await self.client.synthesize(
                    self.notes_system_prompt,
                    [ConversationTurn(
                        role='user',
                        content=[ContentBlock.text_block(NOTES_PROMPT.format(text=block.text))],
                    )],
                    self.model_config.notes_max_output_tokens,
                )

        tasks = [asyncio.ensure_future(notes_for(i, b)) for i, b in enumerate(text_blocks)]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

    @staticmethod
    def combine_notes(notes: List[str]) -> str:
        total = len(notes)
        return NOTES_SEPARATOR.join(
            f"{notes_heading(i, total)}\n{note.strip()}" for i, note in enumerate(notes, start=1)
        )
