"""
Command Line Interface for the Production Breakdown Tool

Provides CLI access to:
- Running the HTTP API
- Generating a breakdown from local files
- Revising a saved breakdown
- Inspecting PDF extraction (debugging)
- Configuration management
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

import structlog
import uvicorn

from .api import create_app
from .assembler import chars_per_page, needs_visual_fallback
from .config import ConfigManager
from .errors import BreakdownError
from .exporter import DocxExporter
from .logging_config import configure_logging
from .models import conversation_from_dicts, conversation_to_dicts
from .pdf_extractor import create_text_extractor
from .pipeline import create_pipeline
from .uploads import UploadStore

logger = structlog.get_logger(__name__)


def write_outputs(args, result) -> None:
    """Print or save the breakdown, docx and history."""
    if args.output:
        Path(args.output).write_text(result.text, encoding='utf-8')
        print(f"Breakdown written to {args.output}")
    else:
        print(result.text)

    if args.docx:
        Path(args.docx).write_bytes(DocxExporter().export(result.text))
        print(f"Word document written to {args.docx}")

    if args.history:
        with open(args.history, 'w', encoding='utf-8') as f:
            json.dump(conversation_to_dicts(result.conversation_history), f)
        print(f"Conversation history written to {args.history}")


def generate_command(args, config) -> int:
    """Generate a breakdown from local files."""
    missing = [p for p in args.files if not Path(p).is_file()]
    if missing:
        print(f"File not found: {', '.join(missing)}")
        return 1

    pipeline = create_pipeline(config)

    # Work on copies; the pipeline deletes its inputs when done
    store = UploadStore(config.paths.upload_dir)
    uploads = []
    try:
        for path in args.files:
            uploads.append(store.import_file(path))
    except OSError:
        store.discard(uploads)
        raise

    result = asyncio.run(pipeline.generate(uploads))

    for diagnostics in result.diagnostics:
        print(
            f"[{diagnostics.filename}] pages={diagnostics.page_count} "
            f"chars={diagnostics.extracted_char_count} chunks={diagnostics.chunk_count} "
            f"visual_fallback={diagnostics.visual_fallback}",
            file=sys.stderr,
        )
    if result.multi_pass:
        print("Multi-pass summarization was used", file=sys.stderr)

    write_outputs(args, result)
    return 0


def revise_command(args, config) -> int:
    """Revise a saved breakdown using its conversation history."""
    with open(args.history_in, 'r', encoding='utf-8') as f:
        history = conversation_from_dicts(json.load(f))
    current = Path(args.breakdown).read_text(encoding='utf-8')

    pipeline = create_pipeline(config)
    result = asyncio.run(pipeline.revise(args.request, current, history))

    write_outputs(args, result)
    return 0


def extract_command(args, config) -> int:
    """Show extraction statistics and the visual-fallback decision."""
    pdf_path = Path(args.pdf_path)
    if not pdf_path.is_file():
        print(f"File not found: {args.pdf_path}")
        return 1

    extractor = create_text_extractor(config.processing.extraction_backend)
    extracted = extractor.extract(pdf_path.read_bytes())
    processing = config.processing
    fallback = needs_visual_fallback(
        extracted.page_count,
        extracted.char_count,
        processing.min_text_chars,
        processing.min_chars_per_page,
    )

    print(f"Backend: {extractor.name}")
    print(f"Pages: {extracted.page_count}")
    print(f"Characters: {extracted.char_count}")
    print(f"Characters per page: {chars_per_page(extracted.char_count, extracted.page_count):.1f}")
    print(f"Visual fallback: {'yes' if fallback else 'no'}")
    print(f"Multi-pass: {'yes' if extracted.char_count >= processing.multi_pass_threshold else 'no'}")

    if args.show_text:
        print("\n" + "=" * 60)
        print(extracted.text)
    return 0


def serve_command(args, config) -> int:
    """Run the HTTP API."""
    uvicorn.run(
        create_app(config),
        host=args.host or config.server.host,
        port=args.port or config.server.port,
        log_config=None,
    )
    return 0


def config_command(args, manager: ConfigManager) -> int:
    if args.action == 'sample':
        manager.create_sample_config(args.path or "config.sample.json")
        print("Sample configuration created")
    elif args.action == 'env':
        manager.create_env_template(args.path or ".env.template")
        print("Environment template created")
    else:
        manager.load_config()
        print("Configuration is valid")
    return 0


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='production-breakdown',
        description='Turn production briefs into structured production breakdowns',
    )
    parser.add_argument('--config', help='Path to JSON configuration file')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    serve_parser = subparsers.add_parser('serve', help='Run the HTTP API')
    serve_parser.add_argument('--host', help='Bind address')
    serve_parser.add_argument('--port', type=int, help='Port')

    def add_output_args(sub):
        sub.add_argument('--output', '-o', help='Write breakdown text to this file')
        sub.add_argument('--docx', help='Also export a Word document to this path')
        sub.add_argument('--history', help='Save conversation history JSON to this path')

    generate_parser = subparsers.add_parser('generate', help='Generate a breakdown from files')
    generate_parser.add_argument('files', nargs='+', help='PDF or image files')
    add_output_args(generate_parser)

    revise_parser = subparsers.add_parser('revise', help='Revise a saved breakdown')
    revise_parser.add_argument('--history-in', required=True, help='Conversation history JSON')
    revise_parser.add_argument('--breakdown', required=True, help='Current breakdown text file')
    revise_parser.add_argument('--request', required=True, help='Revision feedback')
    add_output_args(revise_parser)

    extract_parser = subparsers.add_parser('extract', help='Inspect PDF extraction (debugging)')
    extract_parser.add_argument('pdf_path', help='Path to PDF file')
    extract_parser.add_argument('--show-text', action='store_true', help='Print extracted text')

    config_parser = subparsers.add_parser('config', help='Configuration helpers')
    config_parser.add_argument('action', choices=['sample', 'env', 'validate'])
    config_parser.add_argument('--path', help='Output path for sample/env')

    return parser


def main(argv=None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    manager = ConfigManager(args.config)

    try:
        if args.command == 'config':
            configure_logging("DEBUG" if args.verbose else "WARNING")
            return config_command(args, manager)

        config = manager.load_config()
        configure_logging(
            "DEBUG" if args.verbose else config.paths.log_level,
            config.paths.log_format,
        )

        if args.command == 'serve':
            return serve_command(args, config)
        elif args.command == 'generate':
            return generate_command(args, config)
        elif args.command == 'revise':
            return revise_command(args, config)
        elif args.command == 'extract':
            return extract_command(args, config)
        else:
            print(f"Unknown command: {args.command}")
            return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 1
    except BreakdownError as e:
        logger.error("command_failed", command=args.command, exc_info=e)
        print(f"Error: {e.message}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
