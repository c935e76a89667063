"""
Command line interface for scanning and deduplicating pages.

Allows users to:
- OCR scanned pages from image files and PDFs
- Drop accidental near-duplicate pages, keeping the clearer capture
- Print the combined text or a JSON report
- Write the kept pages to a new PDF
"""

import argparse
import json
import logging
import os
import sys
from collections.abc import Sequence

from dotenv import load_dotenv

from .config import ENGINE_NAMES, ScannerConfig
from .coordinator import OCRCoordinator
from .errors import DocscanError
from .models import OCRRun
from .ocr import MistralOCR, OCREngine, TesseractOCR
from .pages import assemble_pdf, load_pages


def print_header() -> None:
    """Print CLI header."""
    print("\n" + "=" * 60)
    print("📄 Document Scanner")
    print("=" * 60 + "\n")


def print_separator() -> None:
    """Print section separator."""
    print("\n" + "-" * 60 + "\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docscan",
        description="Document Scanner - OCR scanned pages and remove duplicate pages"
    )
    parser.add_argument(
        "pages",
        nargs="+",
        help="Page sources in scan order (image files or PDFs)"
    )
    parser.add_argument(
        "--ocr",
        choices=list(ENGINE_NAMES),
        default=None,
        help="OCR engine to use (default: tesseract)"
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Similarity above which pages are duplicates (default: 0.90)"
    )
    parser.add_argument(
        "--level",
        choices=["fast", "accurate"],
        default=None,
        help="Recognition level (default: accurate)"
    )
    parser.add_argument(
        "--no-language-correction",
        dest="language_correction",
        action="store_const",
        const=False,
        default=None,
        help="Disable the engine's language correction"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of pages OCR'd concurrently (default: auto)"
    )
    parser.add_argument(
        "--page-timeout",
        type=float,
        default=None,
        help="Seconds to wait for a page before marking it failed (default: 60)"
    )
    parser.add_argument(
        "--dpi",
        type=int,
        default=None,
        help="DPI for rasterizing PDF pages (default: 200)"
    )
    parser.add_argument(
        "--output-pdf",
        default=None,
        help="Write the kept pages to this PDF file"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print a JSON report instead of text"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log every page comparison"
    )
    return parser


def create_engine(config: ScannerConfig) -> OCREngine:
    """
    Create the configured OCR engine.

    Raises:
        DocscanError: If the Mistral engine is chosen without an API key
    """
    if config.ocr_engine == "mistral":
        api_key: str | None = os.getenv("MISTRAL_API_KEY")
        if not api_key:
            raise DocscanError("MISTRAL_API_KEY not found in environment")
        return MistralOCR(api_key=api_key)
    return TesseractOCR(language=config.language)


def run_report(run: OCRRun) -> dict[str, object]:
    """JSON-serializable summary of a run."""
    return {
        "kept_indices": run.kept_indices,
        "removed_indices": run.removed_indices,
        "combined_text": run.combined_text,
        "pages": [
            {
                "index": result.original_index,
                "confidence": round(result.confidence, 4),
                "error": result.error,
                "kept": result.original_index not in run.selection.removed,
            }
            for result in run.results
        ],
    }


def print_run(run: OCRRun) -> None:
    """Print a human-readable summary of a run."""
    total = len(run.results)
    print(f"✅ Kept {len(run.kept_indices)} of {total} pages")
    if run.removed_indices:
        removed = ", ".join(str(index + 1) for index in run.removed_indices)
        print(f"   Removed duplicate pages: {removed}")

    failed = [result for result in run.results if result.is_error]
    for result in failed:
        print(f"⚠️  Page {result.page_number}: {result.error}")

    print_separator()
    print(run.combined_text)


def main(argv: Sequence[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Load environment variables from .env file if it exists
    load_dotenv()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s"
    )

    try:
        config = ScannerConfig.from_env().with_overrides(
            similarity_threshold=args.threshold,
            recognition_level=args.level,
            language_correction=args.language_correction,
            max_workers=args.workers,
            page_timeout=args.page_timeout,
            ocr_engine=args.ocr,
            dpi=args.dpi,
        )
        engine = create_engine(config)
        pages = load_pages(args.pages, dpi=config.dpi)
    except (DocscanError, FileNotFoundError, ValueError) as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)

    if not args.json:
        print_header()
        print(f"📖 Running OCR on {len(pages)} pages...")

    try:
        with OCRCoordinator.from_config(engine, config) as coordinator:
            run = coordinator.run(pages)
    except DocscanError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps(run_report(run), indent=2, ensure_ascii=False))
    else:
        print_run(run)

    if args.output_pdf:
        try:
            output_path = assemble_pdf(pages, run.kept_indices, args.output_pdf)
        except (OSError, ValueError) as e:
            print(f"❌ Could not write PDF: {e}", file=sys.stderr)
            sys.exit(1)
        if not args.json:
            print(f"💾 Saved {len(run.kept_indices)} pages to {output_path}")


if __name__ == "__main__":
    main()
