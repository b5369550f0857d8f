import asyncio
import json
import re
from pathlib import Path

import pytest

from taxdoc_extraction.classification import DocumentClassifier
from taxdoc_extraction.ocr import ExtractionFailed, HybridProvider, JsonTextProvider, TextSourceProvider
from taxdoc_extraction.pipeline import DocumentPipeline, ParseFailed, build_default_pipeline
from taxdoc_extraction.schemas import UNKNOWN, DocumentTypeCandidate, RecognizedText, SourceDocument
from taxdoc_extraction.settings import PipelineSettings

ROOT = Path(__file__).resolve().parent.parent


def _sample(name: str) -> SourceDocument:
    return SourceDocument.from_path(ROOT / "sample_data" / name)


def _inline(filename: str, text: str, confidence: float = 0.95) -> SourceDocument:
    payload = {"text": text, "confidence": confidence, "boundingBoxes": []}
    return SourceDocument(filename=filename, content=json.dumps(payload).encode("utf-8"))


class SelectiveProvider(JsonTextProvider):
    """Fails or stalls on chosen filenames, otherwise reads JSON."""

    def __init__(self, fail=(), slow=()):
        super().__init__()
        self.fail = set(fail)
        self.slow = set(slow)

    async def _extract(self, document):
        if document.filename in self.fail:
            raise ExtractionFailed(f"cannot read {document.filename}")
        if document.filename in self.slow:
            await asyncio.sleep(5)
        return await super()._extract(document)


class CountingProvider(JsonTextProvider):
    def __init__(self):
        super().__init__()
        self.setup_calls = 0
        self.teardown_calls = 0

    async def _setup(self):
        self.setup_calls += 1

    async def _teardown(self):
        self.teardown_calls += 1


def test_parse_w2_document():
    pipeline = DocumentPipeline(JsonTextProvider())
    result = asyncio.run(pipeline.parse_document(_sample("w2_northwind.json"), "doc-1"))

    assert result.document_id == "doc-1"
    assert result.type == "W2"
    assert len(result.fields) == 12
    assert result.get("wages").value == pytest.approx(52340.0)
    assert all(item.source.document_id == "doc-1" for item in result.fields)
    assert all(item.confidence == 0.8 for item in result.fields)
    assert all(item.value is not None for item in result.fields)


def test_output_dict_uses_camel_case_keys():
    pipeline = DocumentPipeline(JsonTextProvider())
    data = asyncio.run(pipeline.parse_document(_sample("w2_northwind.json"), "doc-1")).to_dict()
    assert data["documentId"] == "doc-1"
    assert data["type"] == "W2"
    wages = next(item for item in data["fields"] if item["key"] == "wages")
    assert wages["source"] == {
        "documentId": "doc-1",
        "page": 1,
        "bbox": [61.0, 30.2, 12.5, 2.0],
        "textSnippet": "Box 1 Wages, tips, other compensation $52,340.00",
    }


def test_document_id_defaults_to_generated_value():
    result = asyncio.run(DocumentPipeline(JsonTextProvider()).parse_document(_sample("1099_int_harbor.json")))
    assert result.document_id
    assert result.type == "1099_INT"


def test_low_quality_scan_is_flagged_for_review():
    result = asyncio.run(DocumentPipeline(JsonTextProvider()).parse_document(_sample("w2_scan_low_quality.json"), "d"))
    wages = result.get("wages")
    assert wages.confidence == pytest.approx(0.6)
    assert wages.label == "Wages, Tips, Other Compensation (Box 1) (Needs Review)"


def test_unusually_high_withholding_is_flagged():
    result = asyncio.run(DocumentPipeline(JsonTextProvider()).parse_document(_sample("w2_high_withholding.json"), "d"))
    federal = result.get("federalTaxWithheld")
    assert federal.confidence == pytest.approx(0.4)
    assert federal.label == "Federal Income Tax Withheld (Box 2) (Unusually High - Please Verify) (Needs Review)"
    assert result.get("wages").confidence == 0.8


def test_unknown_document_uses_generic_extraction():
    result = asyncio.run(DocumentPipeline(JsonTextProvider()).parse_document(_sample("unknown_receipt.json"), "r"))
    assert result.type == UNKNOWN
    assert result.get("wages").label == "Wages (Auto-detected) (Needs Review)"
    assert result.get("name_0").value == "Grocery Receipt"
    assert all(item.confidence < 0.7 for item in result.fields)


def test_uncertain_classification_damps_parser_fields():
    classifier = DocumentClassifier(
        [
            DocumentTypeCandidate(
                type="W2",
                filename_patterns=(),
                content_patterns=(re.compile(r"form\s+w-?2", re.IGNORECASE),),
                base_confidence=0.5,
            )
        ]
    )
    pipeline = DocumentPipeline(JsonTextProvider(), classifier=classifier)
    document = _inline("scan.json", "Form W-2\nBox 1 Wages, tips, other compensation $1,000.00")
    result = asyncio.run(pipeline.parse_document(document, "d"))
    assert result.type == "W2"
    assert result.get("wages").confidence == pytest.approx(0.24)
    assert result.get("wages").label.endswith("(Needs Review)")


def test_w2_without_matching_boxes_falls_back_to_auto_detection():
    document = _inline("w2_photo.json", "Form W-2 Wage and Tax Statement\n$48,200.00 $5,300.00")
    result = asyncio.run(DocumentPipeline(JsonTextProvider()).parse_document(document, "d"))
    assert result.type == "W2"
    assert [(item.key, item.value) for item in result.fields] == [
        ("wages", 48200.0),
        ("federalTaxWithheld", 5300.0),
    ]
    assert {item.label for item in result.fields} == {
        "Wages (Auto-detected) (Needs Review)",
        "Federal Tax Withheld (Auto-detected) (Needs Review)",
    }


def test_provider_failure_is_wrapped_as_parse_failed():
    pipeline = DocumentPipeline(SelectiveProvider(fail={"w2_northwind.json"}))
    with pytest.raises(ParseFailed) as excinfo:
        asyncio.run(pipeline.parse_document(_sample("w2_northwind.json"), "d"))
    assert str(excinfo.value).startswith("Failed to parse document: ")
    assert "cannot read w2_northwind.json" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, ExtractionFailed)


def test_batch_omits_failed_documents_and_keeps_order():
    pipeline = DocumentPipeline(SelectiveProvider(fail={"1099_int_harbor.json"}))
    items = [
        (_sample("w2_northwind.json"), "a"),
        (_sample("1099_int_harbor.json"), "b"),
        (_sample("1099_nec_contract.json"), "c"),
    ]
    results = asyncio.run(pipeline.parse_multiple_documents(items))
    assert [(doc.document_id, doc.type) for doc in results] == [("a", "W2"), ("c", "1099_NEC")]


def test_batch_timeout_omits_slow_documents():
    pipeline = DocumentPipeline(SelectiveProvider(slow={"1099_div_evergreen.json"}))
    items = [(_sample("1099_div_evergreen.json"), "slow"), (_sample("1098_e_loan.json"), "fast")]
    results = asyncio.run(pipeline.parse_multiple_documents(items, timeout=0.2))
    assert [doc.document_id for doc in results] == ["fast"]
    assert results[0].type == "1098_E"


def test_batch_accepts_bare_documents():
    pipeline = DocumentPipeline(JsonTextProvider())
    results = asyncio.run(pipeline.parse_multiple_documents([_sample("1099_r_pension.json")]))
    assert len(results) == 1
    assert results[0].type == "1099_R"
    assert results[0].get("dateOfPayment").value == "2024-03-15"


def test_empty_batch_returns_empty_list():
    assert asyncio.run(DocumentPipeline(JsonTextProvider()).parse_multiple_documents([])) == []


def test_pipeline_scope_acquires_provider_once():
    provider = CountingProvider()
    pipeline = DocumentPipeline(provider)

    async def scenario():
        async with pipeline:
            await pipeline.parse_multiple_documents([_sample("w2_northwind.json"), _sample("1098_e_loan.json")])
            await pipeline.parse_document(_sample("1099_int_harbor.json"))

    asyncio.run(scenario())
    assert provider.setup_calls == 1
    assert provider.teardown_calls == 1


def test_set_provider_switches_text_source():
    pipeline = DocumentPipeline(SelectiveProvider(fail={"w2_northwind.json"}))
    pipeline.set_provider(JsonTextProvider())
    assert asyncio.run(pipeline.parse_document(_sample("w2_northwind.json"), "d")).type == "W2"


def test_supported_types_come_from_classification_table():
    assert DocumentPipeline(JsonTextProvider()).supported_types()[:5] == ["W2", "1099_INT", "1099_DIV", "1099_NEC", "1098_E"]


def test_default_pipeline_wraps_configured_provider():
    pipeline = build_default_pipeline(PipelineSettings(provider="json"))
    assert isinstance(pipeline.provider, HybridProvider)
    assert isinstance(pipeline.provider.primary, JsonTextProvider)
    assert pipeline.provider.secondary is None
    result = asyncio.run(pipeline.parse_document(_sample("1099_div_evergreen.json"), "d"))
    assert result.get("ordinaryDividends").value == pytest.approx(3410.55)


def test_custom_providers_plug_in():
    class Canned(TextSourceProvider):
        name = "canned"

        async def _extract(self, document):
            return RecognizedText(text="Form 1099-NEC\nBox 1 Nonemployee compensation $900.00", confidence=0.9)

    result = asyncio.run(DocumentPipeline(Canned()).parse_document(SourceDocument("nec.png", b""), "d"))
    assert result.type == "1099_NEC"
    assert result.get("nonemployeeCompensation").value == 900.0
