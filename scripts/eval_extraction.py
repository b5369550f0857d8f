"""End-to-end evaluation harness for field extraction over sample documents."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from taxdoc_extraction.ocr import JsonTextProvider
from taxdoc_extraction.pipeline import DocumentPipeline
from taxdoc_extraction.schemas import ExtractedDocument, SourceDocument

ROOT = Path(__file__).resolve().parent.parent
EVAL_DIR = ROOT / "sample_data"

# filename -> (expected type, expected field values)
EXPECTED: Dict[str, Tuple[str, Dict[str, Any]]] = {
    "w2_northwind.json": ("W2", {"wages": 52340.0, "federalTaxWithheld": 6120.5, "employerEIN": "123456789"}),
    "w2_high_withholding.json": ("W2", {"wages": 20000.0, "federalTaxWithheld": 12500.0}),
    "w2_scan_low_quality.json": ("W2", {"wages": 38900.0, "federalTaxWithheld": 3150.0}),
    "1099_int_harbor.json": ("1099_INT", {"interestIncome": 1284.17, "federalTaxWithheld": 128.42}),
    "1099_div_evergreen.json": ("1099_DIV", {"ordinaryDividends": 3410.55, "qualifiedDividends": 2980.1}),
    "1099_nec_contract.json": ("1099_NEC", {"nonemployeeCompensation": 18750.0, "recipientName": "Sam Rivera"}),
    "1098_e_loan.json": ("1098_E", {"studentLoanInterest": 1912.4, "lenderName": "Summit Education Servicing"}),
    "1099_r_pension.json": ("1099_R", {"grossDistribution": 24000.0, "distributionCode": "7"}),
    "unknown_receipt.json": ("UNKNOWN", {}),
}


def load_docs(directory: Path = EVAL_DIR) -> List[Path]:
    return sorted(directory.glob("*.json"))


def compare(result: Optional[ExtractedDocument], expected: Tuple[str, Dict[str, Any]]) -> List[str]:
    """Return human-readable mismatches between a result and its expectation."""
    expected_type, expected_values = expected
    if result is None:
        return ["document was not parsed"]
    problems = []
    if result.type != expected_type:
        problems.append(f"type {result.type} != {expected_type}")
    for key, value in expected_values.items():
        item = result.get(key)
        if item is None:
            problems.append(f"{key} missing")
        elif isinstance(value, float) and (not item.is_numeric or abs(item.value - value) > 0.005):
            problems.append(f"{key}={item.value!r} != {value!r}")
        elif not isinstance(value, float) and item.value != value:
            problems.append(f"{key}={item.value!r} != {value!r}")
    return problems


async def evaluate(paths: List[Path]) -> Dict[str, List[str]]:
    """Parse each document and collect mismatches keyed by filename."""
    items = [(SourceDocument.from_path(path), path.name) for path in paths]
    async with DocumentPipeline(JsonTextProvider()) as pipeline:
        results = await pipeline.parse_multiple_documents(items)
    by_name = {result.document_id: result for result in results}
    return {
        path.name: compare(by_name.get(path.name), EXPECTED[path.name])
        for path in paths
        if path.name in EXPECTED
    }


def main():
    parser = argparse.ArgumentParser(description="Evaluate field extraction end-to-end.")
    parser.add_argument("--dir", default=str(EVAL_DIR), help="Directory of recognized-text JSON documents.")
    args = parser.parse_args()

    docs = load_docs(Path(args.dir))
    if not docs:
        print(f"No evaluation docs found in {args.dir}")
        return

    print(f"Found {len(docs)} eval docs in {args.dir}")
    print("-" * 60)
    report = asyncio.run(evaluate(docs))
    for name, problems in report.items():
        print(f"{'FAIL' if problems else 'PASS'} {name}")
        for problem in problems:
            print(f"  {problem}")
    print("-" * 60)
    print(f"{sum(1 for problems in report.values() if not problems)} of {len(report)} passed")


if __name__ == "__main__":
    main()
