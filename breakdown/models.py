"""
Data Model

Value types shared by the ingestion pipeline, the summarizer and the HTTP
layer: uploaded files, typed content blocks, per-PDF diagnostics and the
conversation history that is round-tripped through the client.
"""

from dataclasses import dataclass, asdict, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import InputError


# Extension based media types, checked before the client-supplied hint
MEDIA_TYPES = {
    '.pdf': 'application/pdf',
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.gif': 'image/gif',
    '.webp': 'image/webp',
    '.txt': 'text/plain',
    '.doc': 'application/msword',
    '.docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
}

PDF_MEDIA_TYPE = 'application/pdf'
IMAGE_MEDIA_TYPES = frozenset({'image/png', 'image/jpeg', 'image/gif', 'image/webp'})
ROLES = ('user', 'assistant')


class BlockKind(Enum):
    """Kinds of content block the synthesis call accepts."""
    TEXT = "text"
    IMAGE = "image"


class BlockPurpose(Enum):
    """What a block is for inside an assembled request."""
    CONTENT = "content"          # Source material (text chunk or image)
    INSTRUCTION = "instruction"  # Leading task prompt
    MARKER = "marker"            # Bracket or notice carrying no source facts


@dataclass(frozen=True)
class ContentBlock:
    """A single text or base64 image block, read by the model in order."""
    kind: BlockKind
    text: str = ""
    media_type: Optional[str] = None
    data: Optional[str] = None
    purpose: BlockPurpose = BlockPurpose.CONTENT

    @classmethod
    def text_block(cls, text: str, purpose: BlockPurpose = BlockPurpose.CONTENT) -> "ContentBlock":
        return cls(kind=BlockKind.TEXT, text=text, purpose=purpose)

    @classmethod
    def image_block(cls, media_type: str, data: str) -> "ContentBlock":
        return cls(kind=BlockKind.IMAGE, media_type=media_type, data=data)

    @property
    def is_text(self) -> bool:
        return self.kind == BlockKind.TEXT

    @property
    def is_image(self) -> bool:
        return self.kind == BlockKind.IMAGE

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the wire shape used in conversation history."""
        if self.is_text:
            return {'type': 'text', 'text': self.text}
        return {
            'type': 'image',
            'source': {
                'type': 'base64',
                'media_type': self.media_type,
                'data': self.data,
            }
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ContentBlock":
        """
        Parse a wire-shaped block.

        Raises:
            InputError: If the block is not a well-formed text or image block
        """
        if not isinstance(data, dict):
            raise InputError("Conversation history contains a malformed content block")

        block_type = data.get('type')
        if block_type == 'text':
            text = data.get('text')
            if not isinstance(text, str):
                raise InputError("Text block is missing its text")
            return cls.text_block(text)

        if block_type == 'image':
            source = data.get('source')
            if not isinstance(source, dict) or source.get('type') != 'base64':
                raise InputError("Image block must carry a base64 source")
            media_type = source.get('media_type')
            payload = source.get('data')
            if not isinstance(media_type, str) or not isinstance(payload, str) or not payload:
                raise InputError("Image block is missing its media type or data")
            return cls.image_block(media_type, payload)

        raise InputError(f"Unsupported content block type: {block_type!r}")


@dataclass
class ConversationTurn:
    """
    One turn of the conversation replayed to the synthesis call.

    Turns parsed from client history keep the client's dict in ``raw``; it is
    what gets echoed back and replayed, so keys this model does not know
    about (``cache_control``, ``citations``) survive the round trip.
    """
    role: str
    content: List[ContentBlock] = field(default_factory=list)
    raw: Optional[Dict[str, Any]] = field(default=None, compare=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        if self.raw is not None:
            return self.raw
        return {
            'role': self.role,
            'content': [block.to_dict() for block in self.content]
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ConversationTurn":
        """
        Parse a wire-shaped turn.

        Raises:
            InputError: On an unknown role or empty/malformed content
        """
        if not isinstance(data, dict):
            raise InputError("Conversation history contains a malformed turn")

        role = data.get('role')
        if role not in ROLES:
            raise InputError(f"Unsupported conversation role: {role!r}")

        content = data.get('content')
        if isinstance(content, str):
            # Plain string content is shorthand for a single text block
            if not content:
                raise InputError("Conversation turn has no content")
            content = [{'type': 'text', 'text': content}]
        if not isinstance(content, list) or not content:
            raise InputError("Conversation turn has no content")

        return cls(
            role=role,
            content=[ContentBlock.from_dict(block) for block in content],
            raw=data,
        )


def conversation_to_dicts(turns: List[ConversationTurn]) -> List[Dict[str, Any]]:
    return [turn.to_dict() for turn in turns]


def conversation_from_dicts(data: Any) -> List[ConversationTurn]:
    """
    Parse a client-supplied conversation history.

    Args:
        data: Decoded JSON list of turns

    Returns:
        Parsed turns, in the order given

    Raises:
        InputError: If the history is not a list of well-formed turns
    """
    if data is None:
        return []
    if not isinstance(data, list):
        raise InputError("Conversation history must be a list of turns")
    return [ConversationTurn.from_dict(turn) for turn in data]


@dataclass
class UploadedFile:
    """A file received from a client and held in temporary storage."""
    original_name: str
    storage_path: str
    size_bytes: int = 0
    mime_hint: Optional[str] = None

    @property
    def media_type(self) -> str:
        """Media type by extension, falling back to the client hint."""
        ext = Path(self.original_name).suffix.lower()
        if ext in MEDIA_TYPES:
            return MEDIA_TYPES[ext]
        if self.mime_hint:
            return self.mime_hint.split(';')[0].strip().lower()
        return 'application/octet-stream'

    @property
    def is_pdf(self) -> bool:
        return self.media_type == PDF_MEDIA_TYPE

    @property
    def is_image(self) -> bool:
        return self.media_type in IMAGE_MEDIA_TYPES


@dataclass
class PdfDiagnostics:
    """Observability record for one processed PDF."""
    filename: str
    page_count: int
    extracted_char_count: int
    chunk_count: int
    chars_per_page: float = 0.0
    visual_fallback: bool = False
    rendered_pages: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BreakdownResult:
    """Breakdown text plus the history needed for later revisions."""
    text: str
    conversation_history: List[ConversationTurn]
    multi_pass: bool = False
    diagnostics: List[PdfDiagnostics] = field(default_factory=list)

    def to_response(self) -> Dict[str, Any]:
        return {
            'breakdown': self.text,
            'conversationHistory': conversation_to_dicts(self.conversation_history)
        }
