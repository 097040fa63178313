from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from core.errors import PdfAnalysisError
from core.openai_client import describe_error
from core.utils import ensure_dir, write_json
from pipelines.pdf_analysis_pipeline import PdfAnalysisConfig, PdfAnalysisPipeline


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Answer questions about a PDF, splitting it into chunks when it is too large for one call."
    )
    parser.add_argument(
        "source",
        nargs="+",
        help="Absolute PDF path, http(s) URL, or OpenAI file URI(s). Several URIs replay a chunked document.",
    )
    parser.add_argument(
        "-q",
        "--query",
        dest="queries",
        action="append",
        required=True,
        help="Question to ask about the PDF (repeat for several).",
    )
    parser.add_argument("--model", default=PdfAnalysisConfig.model, help="Model to use (default: %(default)s).")
    parser.add_argument(
        "--reasoning",
        default="high",
        choices=["none", "low", "medium", "high"],
        help="Reasoning effort for each call (default: %(default)s).",
    )
    parser.add_argument(
        "--no-direct",
        action="store_true",
        help="Skip the whole-document attempt and go straight to chunking.",
    )
    parser.add_argument("--output", type=Path, default=None, help="Write the JSON result here instead of stdout.")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    config = PdfAnalysisConfig(
        model=args.model,
        reasoning=None if args.reasoning == "none" else args.reasoning,
        try_direct_first=not args.no_direct,
    )
    pdf_source = args.source[0] if len(args.source) == 1 else args.source

    try:
        result = PdfAnalysisPipeline(config).analyze(pdf_source, args.queries)
    except PdfAnalysisError as exc:
        print(json.dumps(describe_error(exc), indent=2), file=sys.stderr)
        return 1

    if args.output:
        ensure_dir(args.output.parent)
        write_json(args.output, result.to_dict())
        print(f"Done. Output written to {args.output}", file=sys.stderr)
    else:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
