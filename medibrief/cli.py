"""
Examples:
  # Extract cleaned text from a PDF or an image
  medibrief extract report.pdf
  medibrief extract "https://storage.example.com/scan?token=..." --kind image

  # Patient-friendly summary (single-shot, chunked, or auto)
  medibrief summarize report.pdf --mode chunked

  # Explain a term
  medibrief explain "hemoglobin"

  # Debug mode (verbose logging)
  DEBUG=true medibrief summarize report.pdf
"""

import argparse
import asyncio
import sys
from dataclasses import replace

from medibrief.ai import create_provider
from medibrief.config import SUMMARY_MODES, load_config
from medibrief.errors import ExtractionError
from medibrief.explainer import TermExplainer
from medibrief.extraction import DocumentExtractor, DocumentKind, DocumentReference
from medibrief.logging_config import close_debug_log, info
from medibrief.summarization import SummarizationOrchestrator


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="medibrief",
        description="MediBrief - Extract, clean and summarize medical reports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        '--config',
        default=None,
        help='YAML config file (default: $MEDIBRIEF_CONFIG or config/medibrief.yaml)'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    kinds = [kind.value for kind in DocumentKind]

    extract_parser = subparsers.add_parser('extract', help='Print the cleaned text of a document')
    extract_parser.add_argument('location', help='URL, file:// URL or local path')
    extract_parser.add_argument('--kind', default='unknown', choices=kinds,
                                help='Declared document kind (default: detect from the path)')

    summarize_parser = subparsers.add_parser('summarize', help='Summarize a document for a patient')
    summarize_parser.add_argument('location', help='URL, file:// URL or local path')
    summarize_parser.add_argument('--kind', default='unknown', choices=kinds,
                                  help='Declared document kind (default: detect from the path)')
    summarize_parser.add_argument('--mode', default=None, choices=SUMMARY_MODES,
                                  help='Summary mode (default: from config)')

    explain_parser = subparsers.add_parser('explain', help='Explain a medical term')
    explain_parser.add_argument('term', nargs='+', help='Term to explain')

    return parser


async def _run(args: argparse.Namespace) -> int:
    config = load_config(args.config)

    if args.command == 'extract':
        reference = DocumentReference.from_declared(args.location, args.kind)
        try:
            text = await DocumentExtractor(config).extract(reference)
        except ExtractionError as e:
            print(f"Error: {e.user_message}", file=sys.stderr)
            return 1
        print(text)
        return 0

    if args.command == 'summarize':
        if args.mode:
            config = replace(config, summary_mode=args.mode)
        orchestrator = SummarizationOrchestrator(create_provider(config.provider), config)
        reference = DocumentReference.from_declared(args.location, args.kind)
        result = await orchestrator.summarize(reference)
        print(result.summary)
        return 0 if result.success else 1

    explainer = TermExplainer(create_provider(config.provider), config)
    print(await explainer.explain(" ".join(args.term)))
    return 0


def main(argv=None) -> int:
    """Entry point for the medibrief console script."""
    args = build_parser().parse_args(argv)
    info(f"[CLI] medibrief {args.command}")
    try:
        return asyncio.run(_run(args))
    except ValueError as e:
        # Invalid configuration
        print(f"Error: {e}", file=sys.stderr)
        return 2
    finally:
        close_debug_log()


if __name__ == "__main__":
    sys.exit(main())
