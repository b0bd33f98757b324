"""Command-line interface for extracting records from recognized text.

Input files are plain UTF-8 text produced by an OCR or PDF text-layer
step. Subcommands extract a single document to JSON, process a folder
into one CSV, print a reconciliation report, or benchmark against labels.
"""

import argparse
import csv
import json
import sys
import time
from dataclasses import asdict
from pathlib import Path
from typing import Any

from chohyo.benchmark.evaluator import (
    Evaluator,
    flatten_document,
    load_ground_truth,
    run_benchmark,
)
from chohyo.extraction.builder import DocumentExtractor
from chohyo.projection.projector import project
from chohyo.utils.config import AppConfig, load_config
from chohyo.utils.logger import get_logger, setup_logging
from chohyo.validation.rules_engine import RulesEngine

logger = get_logger(__name__)

# Leading CSV columns; extracted fields follow in name order.
_META_COLUMNS = [
    "filename",
    "status",
    "document_type",
    "item_count",
    "processing_time_s",
    "validation_passed",
    "error",
]


def _rules_engine(config: AppConfig) -> RulesEngine:
    return RulesEngine(
        Path(config.validation.rules_path), config.validation.amount_tolerance
    )


def _find_documents(input_dir: Path) -> list[Path]:
    """Return the ``.txt`` files in ``input_dir``, any case, sorted."""
    return sorted(
        p for p in input_dir.iterdir() if p.is_file() and p.suffix.lower() == ".txt"
    )


def extract_single(
    file_path: Path,
    schema: str = "canonical",
    extractor: DocumentExtractor | None = None,
) -> dict[str, Any]:
    """Extract one text file.

    Args:
        file_path: Recognized-text file.
        schema: ``canonical`` for the full record, ``destination`` for the
            record shape of the detected document type.
        extractor: Extractor to use; built from config when omitted.

    Returns:
        Plain data ready for JSON serialization.
    """
    extractor = extractor or DocumentExtractor(load_config().extraction)
    document = extractor.extract(file_path.read_text(encoding="utf-8"))

    payload: dict[str, Any] = {"filename": file_path.name}
    if schema == "destination":
        payload["document_type"] = document.document_type.value
        payload["record"] = project(document).model_dump(mode="json")
    else:
        payload["document"] = document.to_dict()
    return payload


def _batch_row(
    file_path: Path, extractor: DocumentExtractor, validator: RulesEngine
) -> dict[str, object]:
    started = time.perf_counter()
    try:
        text = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("Failed to read %s: %s", file_path.name, exc)
        return {"filename": file_path.name, "status": "failed", "error": str(exc)}

    document = extractor.extract(text)
    row: dict[str, object] = {
        "filename": file_path.name,
        "status": "success",
        "validation_passed": validator.validate(document).all_valid,
    }
    row.update(flatten_document(document))
    row["processing_time_s"] = round(time.perf_counter() - started, 3)
    return row


def process_folder(
    input_dir: Path,
    output_csv: Path,
    verbose: bool = False,
) -> dict[str, int]:
    """Extract every text file in a folder into one CSV row per file.

    Unreadable files get a ``failed`` row and do not stop the batch.

    Returns:
        Counts under ``total``, ``successful`` and ``failed``.
    """
    files = _find_documents(input_dir)
    if not files:
        logger.warning("No text files found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    config = load_config()
    extractor = DocumentExtractor(config.extraction)
    validator = _rules_engine(config)
    logger.info("Processing %d documents from %s", len(files), input_dir)

    rows = []
    for position, file_path in enumerate(files, 1):
        if verbose:
            print(f"[{position}/{len(files)}] {file_path.name}")
        rows.append(_batch_row(file_path, extractor, validator))

    _write_csv(rows, output_csv)
    logger.info("Wrote %d rows to %s", len(rows), output_csv)

    failed = sum(1 for row in rows if row["status"] == "failed")
    summary = {"total": len(rows), "successful": len(rows) - failed, "failed": failed}
    _print_summary(summary, output_csv)
    return summary


def _write_csv(rows: list[dict[str, object]], output_path: Path) -> None:
    if not rows:
        return

    present = {key for row in rows for key in row}
    columns = [c for c in _META_COLUMNS if c in present]
    columns += sorted(present.difference(_META_COLUMNS))

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, columns, restval="")
        writer.writeheader()
        writer.writerows(rows)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    bar = "-" * 40
    print(
        f"\n{bar}\nBatch finished\n{bar}\n"
        f"Total:      {summary['total']}\n"
        f"Successful: {summary['successful']}\n"
        f"Failed:     {summary['failed']}\n"
        f"CSV:        {output_csv}"
    )


def validate_single(file_path: Path) -> dict[str, Any]:
    """Extract one text file and return its reconciliation report."""
    config = load_config()
    extractor = DocumentExtractor(config.extraction)
    document = extractor.extract(file_path.read_text(encoding="utf-8"))
    report = _rules_engine(config).validate(document)
    return {
        "filename": file_path.name,
        "document_type": document.document_type.value,
        "all_valid": report.all_valid,
        "results": [asdict(r) for r in report.results],
        "warnings": report.warnings,
    }


def _emit(payload: dict[str, Any], output: Path | None) -> None:
    rendered = json.dumps(payload, indent=2, ensure_ascii=False)
    if output is None:
        print(rendered)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(rendered, encoding="utf-8")
    print(f"Output written to {output}")


def _require(path: Path, directory: bool = False) -> None:
    """Exit with status 1 when ``path`` is missing or of the wrong kind."""
    if directory and not path.is_dir():
        print(f"Error: {path} is not a directory", file=sys.stderr)
        sys.exit(1)
    if not path.exists():
        print(f"Error: {path} does not exist", file=sys.stderr)
        sys.exit(1)


def _cmd_extract(args: argparse.Namespace) -> None:
    _require(args.file)
    _emit(extract_single(args.file, args.schema), args.output)


def _cmd_batch(args: argparse.Namespace) -> None:
    _require(args.input_dir, directory=True)
    process_folder(args.input_dir, args.output, args.verbose)


def _cmd_validate(args: argparse.Namespace) -> None:
    _require(args.file)
    _emit(validate_single(args.file), args.output)


def _cmd_benchmark(args: argparse.Namespace) -> None:
    _require(args.input_dir, directory=True)
    _require(args.ground_truth)
    evaluator = Evaluator()
    result = run_benchmark(
        args.input_dir, load_ground_truth(args.ground_truth), evaluator=evaluator
    )
    print(evaluator.generate_report(result, args.output))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chohyo",
        description="Extract fields from recognized business document text",
    )
    parser.add_argument("--log-level", help="Override the configured log level")
    parser.add_argument("--log-file", type=Path, help="Also write logs to this file")
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    extract = commands.add_parser("extract", help="Extract one text file to JSON")
    extract.add_argument("file", type=Path, help="Recognized-text file")
    extract.add_argument(
        "-s",
        "--schema",
        choices=["canonical", "destination"],
        default="canonical",
        help="Record shape to print (default: canonical)",
    )
    extract.add_argument("-o", "--output", type=Path, help="Write JSON here")
    extract.set_defaults(handler=_cmd_extract)

    batch = commands.add_parser("batch", help="Extract a folder of text files to CSV")
    batch.add_argument("input_dir", type=Path, help="Folder with .txt files")
    batch.add_argument(
        "-o", "--output", type=Path, default=Path("results.csv"), help="CSV path"
    )
    batch.add_argument("-v", "--verbose", action="store_true", help="Show progress")
    batch.set_defaults(handler=_cmd_batch)

    validate = commands.add_parser("validate", help="Reconcile one text file")
    validate.add_argument("file", type=Path, help="Recognized-text file")
    validate.add_argument("-o", "--output", type=Path, help="Write JSON here")
    validate.set_defaults(handler=_cmd_validate)

    bench = commands.add_parser("benchmark", help="Score against labeled ground truth")
    bench.add_argument("input_dir", type=Path, help="Folder with .txt files")
    bench.add_argument("ground_truth", type=Path, help="Labels (.json or .csv)")
    bench.add_argument("-o", "--output", type=Path, help="Write the report here")
    bench.set_defaults(handler=_cmd_benchmark)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Entry point for the ``chohyo`` command."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    config = load_config()
    log_file = args.log_file or (Path(config.log_file) if config.log_file else None)
    setup_logging(args.log_level or config.log_level, log_file)

    if args.command is None:
        parser.print_help()
        sys.exit(0)
    args.handler(args)


if __name__ == "__main__":
    main()
