"""
Production Breakdown

Converts uploaded production-brief documents (PDFs, images) into a
structured production breakdown using Claude, with iterative revision and
Word export.

Main Components:
- TextExtractor: Extract text and page counts from PDFs
- PageRenderer: Rasterize PDF pages for visual fallback
- chunk_text: Overlapping fixed-size character windows
- ContentAssembler: Turn uploads into ordered content blocks
- MultiPassSummarizer: Notes pass plus final synthesis for large inputs
- BreakdownPipeline: Generate and revise orchestration

Usage:
    from breakdown import create_pipeline

    pipeline = create_pipeline()
    result = await pipeline.generate(uploaded_files)
"""

from .errors import (
    BreakdownError,
    InputError,
    ConfigError,
    ExtractionError,
    RenderError,
    SummarizationCallError
)

from .models import (
    ContentBlock,
    BlockKind,
    BlockPurpose,
    ConversationTurn,
    UploadedFile,
    PdfDiagnostics,
    BreakdownResult,
    conversation_from_dicts,
    conversation_to_dicts
)

from .config import (
    BreakdownConfig,
    ModelConfig,
    ProcessingConfig,
    PathConfig,
    ConfigManager,
    get_config
)

from .pdf_extractor import (
    TextExtractor,
    ExtractedText,
    create_text_extractor
)

from .page_renderer import PageRenderer
from .chunker import chunk_text

from .assembler import (
    ContentAssembler,
    AssembledContent,
    needs_visual_fallback,
    sample_pages
)

from .synthesis import SynthesisClient, AnthropicSynthesisClient
from .summarizer import MultiPassSummarizer, MultiPassResult
from .pipeline import BreakdownPipeline, create_pipeline
from .exporter import DocxExporter
from .uploads import UploadStore

__version__ = "1.0.0"

__all__ = [
    # Errors
    "BreakdownError",
    "InputError",
    "ConfigError",
    "ExtractionError",
    "RenderError",
    "SummarizationCallError",

    # Data model
    "ContentBlock",
    "BlockKind",
    "BlockPurpose",
    "ConversationTurn",
    "UploadedFile",
    "PdfDiagnostics",
    "BreakdownResult",
    "conversation_from_dicts",
    "conversation_to_dicts",

    # Configuration
    "BreakdownConfig",
    "ModelConfig",
    "ProcessingConfig",
    "PathConfig",
    "ConfigManager",
    "get_config",

    # Ingestion
    "TextExtractor",
    "ExtractedText",
    "create_text_extractor",
    "PageRenderer",
    "chunk_text",
    "ContentAssembler",
    "AssembledContent",
    "needs_visual_fallback",
    "sample_pages",

    # Synthesis
    "SynthesisClient",
    "AnthropicSynthesisClient",
    "MultiPassSummarizer",
    "MultiPassResult",
    "BreakdownPipeline",
    "create_pipeline",

    # Output and storage
    "DocxExporter",
    "UploadStore"
]
