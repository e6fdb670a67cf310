"""
Breakdown Pipeline

Main orchestrator for the two client operations:

- generate: assemble uploaded files into content blocks, then run either a
  single direct synthesis call or the multi-pass summarizer, and always
  delete the uploads afterwards
- revise: replay the client's conversation history with one more user turn
  and synthesize again
"""

import asyncio
import time
from typing import List, Optional

import structlog

from .assembler import AssembledContent, ContentAssembler
from .config import BreakdownConfig
from .errors import ConfigError, InputError
from .models import BreakdownResult, ContentBlock, ConversationTurn, UploadedFile
from .page_renderer import PageRenderer
from .pdf_extractor import TextExtractor, create_text_extractor
from .prompts import LEADING_INSTRUCTION, REVISION_PROMPT, SYSTEM_PROMPT
from .summarizer import MultiPassSummarizer
from .synthesis import AnthropicSynthesisClient, SynthesisClient
from .uploads import discard_files

logger = structlog.get_logger(__name__)


class BreakdownPipeline:
    """
    Orchestrates ingestion and synthesis for generate and revise requests.

    One instance is built at startup and shared by all requests; it holds no
    per-request state.
    """

    def __init__(
        self,
        config: BreakdownConfig,
        extractor: TextExtractor,
        renderer: PageRenderer,
        client: SynthesisClient,
        system_prompt: str = SYSTEM_PROMPT,
    ):
        """
        Initialize the pipeline.

        Args:
            config: Service configuration
            extractor: Text extraction backend selected at startup
            renderer: Page rasterizer used for visual fallback
            client: Outbound synthesis client
            system_prompt: Fixed breakdown instructions used for every call
        """
        self.config = config
        self.extractor = extractor
        self.renderer = renderer
        self.client = client
        self.system_prompt = system_prompt
        self.assembler = ContentAssembler(extractor, renderer, config.processing)
        self.summarizer = MultiPassSummarizer(
            client,
            model_config=config.model,
            processing_config=config.processing,
            system_prompt=system_prompt,
        )

    def _require_client(self):
        if not self.client.is_configured:
            raise ConfigError("ANTHROPIC_API_KEY is not configured")

    def uses_multi_pass(self, total_extracted_chars: int) -> bool:
        return total_extracted_chars >= self.config.processing.multi_pass_threshold

    async def generate(self, files: List[UploadedFile]) -> BreakdownResult:
        """
        Generate a breakdown from uploaded files.

        The uploaded files are deleted on every exit path.

        Raises:
            InputError: No files, or more than the configured maximum
            ConfigError: No synthesis credential configured
            SummarizationCallError: Any synthesis call failed
        """
        start_time = time.time()
        try:
            if not files:
                raise InputError("No files uploaded")
            if len(files) > self.config.processing.max_files:
                raise InputError(
                    f"Too many files: at most {self.config.processing.max_files} per request"
                )
            self._require_client()

            content = await self.assembler.assemble(files, leading_instruction=LEADING_INSTRUCTION)
            self._log_assembly(files, content)

            if self.uses_multi_pass(content.total_extracted_chars):
                result = await self.summarizer.summarize(content.blocks)
                text = result.text
                user_content = result.final_content
                multi_pass = True
            else:
                user_content = content.blocks
                text = await self.client.synthesize(
                    self.system_prompt,
                    [ConversationTurn(role='user', content=user_content)],
                    self.config.model.max_output_tokens,
                )
                multi_pass = False

            history = [
                ConversationTurn(role='user', content=list(user_content)),
                ConversationTurn(role='assistant', content=[ContentBlock.text_block(text)]),
            ]

            logger.info(
                "breakdown_generated",
                files=len(files),
                multi_pass=multi_pass,
                output_chars=len(text),
                elapsed=round(time.time() - start_time, 2),
            )
            return BreakdownResult(
                text=text,
                conversation_history=history,
                multi_pass=multi_pass,
                diagnostics=content.diagnostics,
            )
        finally:
            await asyncio.to_thread(discard_files, files or [])

    async def revise(
        self,
        revision_request: str,
        current_breakdown: str,
        conversation_history: Optional[List[ConversationTurn]] = None,
    ) -> BreakdownResult:
        """
        Revise a breakdown from client feedback.

        The supplied history is replayed verbatim ahead of the new turn.

        Raises:
            InputError: Missing revision request or current breakdown
            ConfigError: No synthesis credential configured
            SummarizationCallError: The synthesis call failed
        """
        if not revision_request or not revision_request.strip():
            raise InputError("Missing revision request")
        if not current_breakdown or not current_breakdown.strip():
            raise InputError("Missing current breakdown")
        self._require_client()

        history = list(conversation_history or [])
        revision_turn = ConversationTurn(
            role='user',
            content=[ContentBlock.text_block(REVISION_PROMPT.format(
                revision_request=revision_request,
                current_breakdown=current_breakdown,
            ))],
        )
        messages = history + [revision_turn]

        text = await self.client.synthesize(
            self.system_prompt,
            messages,
            self.config.model.max_output_tokens,
        )

        logger.info("breakdown_revised", history_turns=len(history), output_chars=len(text))
        return BreakdownResult(
            text=text,
            conversation_history=messages + [
                ConversationTurn(role='assistant', content=[ContentBlock.text_block(text)])
            ],
        )

    def _log_assembly(self, files: List[UploadedFile], content: AssembledContent):
        logger.info(
            "content_assembled",
            files=len(files),
            blocks=len(content.blocks),
            images=sum(1 for b in content.blocks if b.is_image),
            total_extracted_chars=content.total_extracted_chars,
            threshold=self.config.processing.multi_pass_threshold,
        )
        for diagnostics in content.diagnostics:
            logger.info("pdf_diagnostics", **diagnostics.to_dict())


def create_pipeline(config: Optional[BreakdownConfig] = None) -> BreakdownPipeline:
    """
    Build a pipeline with the default backends.

    Args:
        config: Service configuration; defaults are used when omitted

    Raises:
        ConfigError: If no PDF extraction backend is usable
    """
    config = config or BreakdownConfig()
    processing = config.processing

    extractor = create_text_extractor(processing.extraction_backend)
    renderer = PageRenderer(
        output_dir=config.paths.render_dir,
        binary=processing.rasterizer_binary,
        dpi=processing.render_dpi,
        jpeg_quality=processing.jpeg_quality,
    )
    if not renderer.is_available():
        logger.warning("rasterizer_missing", binary=processing.rasterizer_binary)

    return BreakdownPipeline(config, extractor, renderer, AnthropicSynthesisClient(config.model))
