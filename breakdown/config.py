"""
Configuration Management

Handles settings for the production breakdown service including:
- Environment variables and .env files
- Optional JSON configuration file
- Configuration validation
- Model selection and parameters
- Ingestion thresholds (chunking, visual fallback, multi-pass)
"""

import os
import json
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from dotenv import load_dotenv

from .errors import ConfigError

logger = structlog.get_logger(__name__)


@dataclass
class ModelConfig:
    """Configuration for the synthesis model."""
    model_name: str = "claude-sonnet-4-20250514"
    api_key: Optional[str] = None
    temperature: float = 0.3
    max_output_tokens: int = 8000
    notes_max_output_tokens: int = 2000
    timeout: float = 300.0
    max_retries: int = 3


@dataclass
class ProcessingConfig:
    """Configuration for document ingestion."""
    # Chunking (characters)
    chunk_size: int = 12000
    chunk_overlap: int = 800

    # Multi-pass summarization kicks in at this much extracted PDF text
    multi_pass_threshold: int = 60000
    notes_concurrency: int = 3

    # Visual fallback heuristics; unvalidated against a real corpus, tune per deployment
    min_text_chars: int = 1000
    min_chars_per_page: float = 200.0
    max_render_pages: int = 6
    render_dpi: int = 110
    jpeg_quality: int = 70
    rasterizer_binary: str = "pdftoppm"

    # Extraction backend: "pymupdf", "pypdf" or None for first available
    extraction_backend: Optional[str] = None

    # Requests
    max_files: int = 10


@dataclass
class PathConfig:
    """Configuration for file paths and logging."""
    upload_dir: str = "./uploads"
    render_dir: str = "./uploads/rendered"
    log_level: str = "INFO"
    log_format: str = "console"


@dataclass
class ServerConfig:
    """Configuration for the HTTP server."""
    host: str = "0.0.0.0"
    port: int = 3000


@dataclass
class BreakdownConfig:
    """Complete configuration for the breakdown service."""
    model: ModelConfig = field(default_factory=ModelConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    paths: PathConfig = field(default_factory=PathConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    debug: bool = False


ENV_OVERRIDES = {
    # env var: (section, attribute, type)
    'ANTHROPIC_API_KEY': ('model', 'api_key', str),
    'BREAKDOWN_MODEL': ('model', 'model_name', str),
    'BREAKDOWN_MAX_OUTPUT_TOKENS': ('model', 'max_output_tokens', int),
    'BREAKDOWN_CHUNK_SIZE': ('processing', 'chunk_size', int),
    'BREAKDOWN_CHUNK_OVERLAP': ('processing', 'chunk_overlap', int),
    'BREAKDOWN_MULTI_PASS_THRESHOLD': ('processing', 'multi_pass_threshold', int),
    'BREAKDOWN_NOTES_CONCURRENCY': ('processing', 'notes_concurrency', int),
    'BREAKDOWN_MIN_TEXT_CHARS': ('processing', 'min_text_chars', int),
    'BREAKDOWN_MIN_CHARS_PER_PAGE': ('processing', 'min_chars_per_page', float),
    'BREAKDOWN_MAX_RENDER_PAGES': ('processing', 'max_render_pages', int),
    'BREAKDOWN_RENDER_DPI': ('processing', 'render_dpi', int),
    'BREAKDOWN_JPEG_QUALITY': ('processing', 'jpeg_quality', int),
    'BREAKDOWN_EXTRACTION_BACKEND': ('processing', 'extraction_backend', str),
    'BREAKDOWN_MAX_FILES': ('processing', 'max_files', int),
    'BREAKDOWN_UPLOAD_DIR': ('paths', 'upload_dir', str),
    'BREAKDOWN_RENDER_DIR': ('paths', 'render_dir', str),
    'LOG_LEVEL': ('paths', 'log_level', str),
    'LOG_FORMAT': ('paths', 'log_format', str),
    'HOST': ('server', 'host', str),
    'PORT': ('server', 'port', int),
}


class ConfigManager:
    """Manages configuration loading, validation, and saving."""

    def __init__(self, config_path: Optional[str] = None, env_file: str = ".env"):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to a JSON configuration file
            env_file: Path to a dotenv file
        """
        config_path = config_path or os.getenv('BREAKDOWN_CONFIG')
        self.config_path = Path(config_path) if config_path else Path("config.json")
        self.env_file = Path(env_file)
        self.config: Optional[BreakdownConfig] = None

        self._load_env_vars()

    def _load_env_vars(self):
        """Load environment variables from .env file."""
        if self.env_file.exists():
            load_dotenv(self.env_file)
            logger.info("env_file_loaded", path=str(self.env_file))

    def load_config(self) -> BreakdownConfig:
        """Load configuration from file and environment."""
        if self.config_path.exists():
            logger.info("config_file_loading", path=str(self.config_path))
            config = self._load_from_file()
        else:
            config = BreakdownConfig()

        config = self._apply_env_overrides(config)
        self._validate_config(config)

        self.config = config
        return config

    def _load_from_file(self) -> BreakdownConfig:
        """Load configuration from JSON file."""
        try:
            with open(self.config_path, 'r') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to load config from {self.config_path}: {e}") from e

        return self._dict_to_config(data)

    def _dict_to_config(self, data: Dict[str, Any]) -> BreakdownConfig:
        """Convert dictionary to configuration object."""
        try:
            return BreakdownConfig(
                model=ModelConfig(**data.get('model', {})),
                processing=ProcessingConfig(**data.get('processing', {})),
                paths=PathConfig(**data.get('paths', {})),
                server=ServerConfig(**data.get('server', {})),
                debug=data.get('debug', False),
            )
        except TypeError as e:
            raise ConfigError(f"Unknown configuration key: {e}") from e

    def _apply_env_overrides(self, config: BreakdownConfig) -> BreakdownConfig:
        """Apply environment variable overrides."""
        for env_name, (section, attr, cast) in ENV_OVERRIDES.items():
            raw = os.getenv(env_name)
            if raw is None or raw.strip() == "":
                continue
            try:
                value = cast(raw.strip())
            except ValueError as e:
                raise ConfigError(f"Invalid value for {env_name}: {raw!r}") from e
            setattr(getattr(config, section), attr, value)

        if os.getenv('BREAKDOWN_DEBUG'):
            config.debug = os.getenv('BREAKDOWN_DEBUG').lower() == 'true'

        return config

    def _validate_config(self, config: BreakdownConfig):
        """Validate configuration settings."""
        errors = []
        processing = config.processing

        if processing.chunk_size <= 0:
            errors.append("chunk_size must be positive")

        if processing.chunk_overlap < 0 or processing.chunk_overlap >= processing.chunk_size:
            errors.append("chunk_overlap must be non-negative and less than chunk_size")

        if processing.multi_pass_threshold <= 0:
            errors.append("multi_pass_threshold must be positive")

        if processing.notes_concurrency <= 0:
            errors.append("notes_concurrency must be positive")

        if processing.max_render_pages < 0:
            errors.append("max_render_pages must not be negative")

        if processing.render_dpi <= 0:
            errors.append("render_dpi must be positive")

        if not 1 <= processing.jpeg_quality <= 100:
            errors.append("jpeg_quality must be between 1 and 100")

        if processing.max_files <= 0:
            errors.append("max_files must be positive")

        if config.model.max_output_tokens <= 0 or config.model.notes_max_output_tokens <= 0:
            errors.append("output token limits must be positive")

        if config.model.max_retries <= 0:
            errors.append("max_retries must be positive")

        if errors:
            raise ConfigError(f"Configuration validation failed: {'; '.join(errors)}")

        if not config.model.api_key:
            logger.warning("api_key_missing", hint="set ANTHROPIC_API_KEY")

    def save_config(self, config: Optional[BreakdownConfig] = None):
        """Save configuration to file, without the API key."""
        config = config or self.config
        if config is None:
            raise ConfigError("No configuration to save")

        data = self._config_to_dict(config)
        with open(self.config_path, 'w') as f:
            json.dump(data, f, indent=2)

        logger.info("config_saved", path=str(self.config_path))

    def _config_to_dict(self, config: BreakdownConfig) -> Dict[str, Any]:
        data = asdict(config)
        data['model'].pop('api_key', None)
        return data

    def create_sample_config(self, output_path: str = "config.sample.json"):
        """Create a sample configuration file."""
        with open(output_path, 'w') as f:
            json.dump(self._config_to_dict(BreakdownConfig()), f, indent=2)

        logger.info("sample_config_created", path=output_path)

    def create_env_template(self, output_path: str = ".env.template"):
        """Create a .env template file."""
        template = """# Production Breakdown Environment Variables

# API Keys
ANTHROPIC_API_KEY=your_anthropic_api_key_here

# Model
BREAKDOWN_MODEL=claude-sonnet-4-20250514

# Ingestion thresholds
BREAKDOWN_CHUNK_SIZE=12000
BREAKDOWN_CHUNK_OVERLAP=800
BREAKDOWN_MULTI_PASS_THRESHOLD=60000
BREAKDOWN_MIN_TEXT_CHARS=1000
BREAKDOWN_MIN_CHARS_PER_PAGE=200
BREAKDOWN_MAX_RENDER_PAGES=6

# Paths
BREAKDOWN_UPLOAD_DIR=./uploads

# Server
PORT=3000
LOG_LEVEL=INFO
LOG_FORMAT=console
"""
        with open(output_path, 'w') as f:
            f.write(template)

        logger.info("env_template_created", path=output_path)


def get_config(config_path: Optional[str] = None) -> BreakdownConfig:
    """
    Load the configuration.

    Args:
        config_path: Optional path to configuration file

    Returns:
        Loaded configuration
    """
    manager = ConfigManager(config_path)
    return manager.load_config()
