"""Accuracy benchmarking for field extraction.

Runs the extractor over a folder of recognized-text files and compares
the flattened canonical records with labeled ground truth. Each labeled
field is scored as an exact match, a formatting-only match (amounts that
differ only in separators or currency glyphs), a wrong value, or a miss.
"""

import csv
import json
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path

from chohyo.extraction.builder import DocumentExtractor
from chohyo.extraction.document import CanonicalDocument
from chohyo.extraction.line_items import parse_amount
from chohyo.utils.logger import get_logger

logger = get_logger(__name__)

GroundTruth = dict[str, dict[str, str]]

_AMOUNT_NOISE = str.maketrans("", "", ",¥￥$ ")


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


@dataclass
class FieldMetrics:
    """Match counts for one canonical field across the labeled set."""

    field_name: str
    true_positives: int = 0
    false_positives: int = 0
    false_negatives: int = 0
    exact_matches: int = 0
    total: int = 0

    @property
    def precision(self) -> float:
        return _ratio(self.true_positives, self.true_positives + self.false_positives)

    @property
    def recall(self) -> float:
        return _ratio(self.true_positives, self.true_positives + self.false_negatives)

    @property
    def f1(self) -> float:
        p, r = self.precision, self.recall
        return _ratio(2 * p * r, p + r)

    @property
    def accuracy(self) -> float:
        return _ratio(self.exact_matches, self.total)


@dataclass
class BenchmarkResult:
    """Per-field metrics plus document-level bookkeeping."""

    field_metrics: dict[str, FieldMetrics]
    total_documents: int = 0
    missing_documents: list[str] = field(default_factory=list)
    avg_processing_time_ms: float = 0.0

    @property
    def successful_documents(self) -> int:
        return self.total_documents - len(self.missing_documents)

    @property
    def overall_accuracy(self) -> float:
        scores = [m.accuracy for m in self.field_metrics.values()]
        return _ratio(sum(scores), len(scores))

    @property
    def overall_f1(self) -> float:
        scores = [m.f1 for m in self.field_metrics.values()]
        return _ratio(sum(scores), len(scores))


def flatten_document(document: CanonicalDocument) -> dict[str, str]:
    """Flatten a record into comparable ``field -> string`` pairs.

    Empty values are omitted so that they count as missing predictions.
    Details are prefixed with ``details.`` and the item count is reported
    as ``item_count``.
    """
    data = document.to_dict()
    details = data.pop("details") or {}
    del data["items"], data["raw_text"]

    flat = {name: str(value) for name, value in data.items() if value not in (None, "")}
    flat.update(
        {f"details.{name}": str(value) for name, value in details.items() if value}
    )
    flat["item_count"] = str(len(document.items))
    return flat


class Evaluator:
    """Scores flattened predictions against ground truth labels.

    Args:
        fuzzy_threshold: Largest numeric difference still counted as a
            match when two values only differ in formatting.
    """

    def __init__(self, fuzzy_threshold: float = 0.01) -> None:
        self.fuzzy_threshold = Decimal(str(fuzzy_threshold))

    def evaluate(
        self,
        predictions: GroundTruth,
        ground_truth: GroundTruth,
    ) -> BenchmarkResult:
        """Compare predictions with labels, file by file.

        Args:
            predictions: Flattened fields keyed by file name.
            ground_truth: Expected fields keyed by file name.
        """
        result = BenchmarkResult(field_metrics={}, total_documents=len(ground_truth))

        for filename, labels in ground_truth.items():
            predicted = predictions.get(filename)
            if predicted is None:
                result.missing_documents.append(filename)

            for field_name, label in labels.items():
                metrics = result.field_metrics.setdefault(
                    field_name, FieldMetrics(field_name)
                )
                metrics.total += 1
                value = None if predicted is None else predicted.get(field_name)
                self._score(metrics, value, label)

        return result

    def _score(self, metrics: FieldMetrics, value: str | None, label: str) -> None:
        if value is None:
            metrics.false_negatives += 1
            return

        predicted = str(value).strip().lower()
        expected = str(label).strip().lower()
        if predicted == expected:
            metrics.exact_matches += 1
            metrics.true_positives += 1
        elif self._same_amount(predicted, expected):
            metrics.true_positives += 1
        else:
            metrics.false_positives += 1

    def _same_amount(self, predicted: str, expected: str) -> bool:
        predicted = predicted.translate(_AMOUNT_NOISE)
        expected = expected.translate(_AMOUNT_NOISE)
        if predicted == expected:
            return True

        a, b = parse_amount(predicted), parse_amount(expected)
        return a is not None and b is not None and abs(a - b) < self.fuzzy_threshold

    def generate_report(
        self, result: BenchmarkResult, output_path: Path | None = None
    ) -> str:
        """Render a plain-text report, optionally writing it to a file."""
        rule = "=" * 64
        lines = [
            rule,
            "EXTRACTION BENCHMARK",
            rule,
            f"Documents labeled:    {result.total_documents}",
            f"Documents extracted:  {result.successful_documents}",
            f"Field accuracy:       {result.overall_accuracy:.2%}",
            f"Field F1:             {result.overall_f1:.3f}",
            f"Mean time/document:   {result.avg_processing_time_ms:.1f}ms",
            "",
            f"{'Field':<32}{'Prec':>8}{'Recall':>8}{'F1':>8}{'Exact':>8}",
            "-" * 64,
        ]
        lines.extend(
            f"{m.field_name:<32}{m.precision:>8.1%}{m.recall:>8.1%}"
            f"{m.f1:>8.3f}{m.accuracy:>8.1%}"
            for _, m in sorted(result.field_metrics.items())
        )
        lines.append(rule)
        if result.missing_documents:
            lines.append("No prediction for:")
            lines.extend(f"  {name}" for name in result.missing_documents)

        report = "\n".join(lines)
        if output_path is not None:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(report, encoding="utf-8")
            logger.info("Benchmark report saved to %s", output_path)
        return report


def run_benchmark(
    text_dir: Path,
    ground_truth: GroundTruth,
    extractor: DocumentExtractor | None = None,
    evaluator: Evaluator | None = None,
) -> BenchmarkResult:
    """Extract every ``*.txt`` file in ``text_dir`` and score the results.

    Ground truth keys are file names (``slip01.txt``).
    """
    extractor = extractor or DocumentExtractor()
    evaluator = evaluator or Evaluator()

    predictions: GroundTruth = {}
    elapsed_ms: list[float] = []
    for path in sorted(text_dir.glob("*.txt")):
        start = time.perf_counter()
        document = extractor.extract(path.read_text(encoding="utf-8"))
        elapsed_ms.append((time.perf_counter() - start) * 1000)
        predictions[path.name] = flatten_document(document)

    result = evaluator.evaluate(predictions, ground_truth)
    result.avg_processing_time_ms = _ratio(sum(elapsed_ms), len(elapsed_ms))
    logger.info(
        "Benchmarked %d documents (field accuracy %.1f%%)",
        len(predictions),
        result.overall_accuracy * 100,
    )
    return result


def _load_json(path: Path) -> GroundTruth:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _load_csv(path: Path) -> GroundTruth:
    with open(path, encoding="utf-8", newline="") as f:
        return {
            row.pop("filename"): {name: value for name, value in row.items() if value}
            for row in csv.DictReader(f)
        }


_LOADERS: dict[str, Callable[[Path], GroundTruth]] = {
    ".json": _load_json,
    ".csv": _load_csv,
}


def load_ground_truth(path: Path) -> GroundTruth:
    """Load labels from ``.json`` (``{file: {field: value}}``) or ``.csv``.

    CSV files need a ``filename`` column; empty cells are not labels.

    Raises:
        ValueError: If the file extension is not supported.
    """
    loader = _LOADERS.get(path.suffix.lower())
    if loader is None:
        raise ValueError(f"Unsupported ground truth format: {path.suffix}")
    return loader(path)
