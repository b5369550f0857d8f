import textwrap

import pytest

from taxdoc_extraction.loader import load_document_types, load_form_tables, load_pipeline_config, reload_caches
from taxdoc_extraction.ocr import (
    HybridProvider,
    JsonTextProvider,
    PdfTextLayerProvider,
    TesseractProvider,
    TextractProvider,
    build_provider,
    create_provider,
)
from taxdoc_extraction.schemas import ValueType
from taxdoc_extraction.settings import PipelineSettings, load_settings

ENV_VARS = (
    "TAXDOC_CONFIG",
    "TAXDOC_OCR_PROVIDER",
    "TAXDOC_OCR_FALLBACK",
    "TAXDOC_TESSERACT_CMD",
    "TAXDOC_TEXTRACT_ENDPOINT",
    "TAXDOC_VISION_ENDPOINT",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reload_caches()
    yield
    reload_caches()


def _write(path, content):
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


def test_form_tables_cover_every_supported_form():
    tables = load_form_tables()
    assert set(tables) == {"W2", "1099_INT", "1099_DIV", "1099_NEC", "1098_E", "1099_MISC", "1099_R"}
    w2 = tables["W2"]
    keys = [spec.key for spec in w2["fields"]]
    assert keys[:6] == ["employerName", "employerEIN", "employeeName", "employeeSSN", "wages", "federalTaxWithheld"]
    wages = next(spec for spec in w2["fields"] if spec.key == "wages")
    assert wages.required is True
    assert wages.value_type is ValueType.CURRENCY
    assert wages.validator(52340.0) is True
    assert wages.validator(-1.0) is False
    assert [(check.field, check.gross) for check in w2["cross_checks"]] == [
        ("federalTaxWithheld", "wages"),
        ("stateTaxWithheld", "stateWages"),
    ]


def test_loaders_are_cached_until_reload():
    first = load_form_tables()
    assert load_form_tables() is first
    reload_caches()
    assert load_form_tables() is not first
    assert load_document_types() is load_document_types()


def test_missing_forms_directory_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_form_tables(tmp_path / "nope")


def test_field_without_patterns_is_rejected(tmp_path):
    _write(
        tmp_path / "broken.yaml",
        """
        doc_type: BROKEN
        fields:
          - key: amount
            label: Amount
            type: currency
        """,
    )
    with pytest.raises(ValueError, match="missing required keys: patterns"):
        load_form_tables(tmp_path)


def test_invalid_regex_is_rejected(tmp_path):
    _write(
        tmp_path / "broken.yaml",
        """
        doc_type: BROKEN
        fields:
          - key: amount
            label: Amount
            type: currency
            patterns:
              - 'Box\\s*1('
        """,
    )
    with pytest.raises(ValueError, match="invalid pattern"):
        load_form_tables(tmp_path)


def test_unknown_value_type_is_rejected(tmp_path):
    _write(
        tmp_path / "broken.yaml",
        """
        doc_type: BROKEN
        fields:
          - key: amount
            label: Amount
            type: percentage
            patterns: ['Box 1 (\\d+)']
        """,
    )
    with pytest.raises(ValueError, match="unknown value type"):
        load_form_tables(tmp_path)


def test_cross_check_must_reference_declared_fields(tmp_path):
    _write(
        tmp_path / "broken.yaml",
        """
        doc_type: BROKEN
        fields:
          - key: amount
            label: Amount
            type: currency
            patterns: ['Box 1 (\\d+)']
        cross_checks:
          - field: amount
            gross: wages
        """,
    )
    with pytest.raises(ValueError, match="cross check references unknown field"):
        load_form_tables(tmp_path)


def test_duplicate_document_types_are_rejected(tmp_path):
    table = """
        doc_type: SAME
        fields:
          - key: amount
            label: Amount
            type: currency
            patterns: ['Box 1 (\\d+)']
        """
    _write(tmp_path / "a.yaml", table)
    _write(tmp_path / "b.yaml", table)
    with pytest.raises(ValueError, match="Duplicate form table for SAME"):
        load_form_tables(tmp_path)


def test_document_types_keep_declaration_order():
    types = [candidate.type for candidate in load_document_types()]
    assert types == ["W2", "1099_INT", "1099_DIV", "1099_NEC", "1098_E", "1099_MISC", "1099_R"]
    w2 = load_document_types()[0]
    assert w2.base_confidence == 0.9
    assert w2.filename_patterns[0].search("MY_W2.PDF")


def test_base_confidence_out_of_range_is_rejected(tmp_path):
    path = _write(
        tmp_path / "types.yaml",
        """
        document_types:
          - type: W2
            base_confidence: 1.5
            content_patterns: ['form w-2']
        """,
    )
    with pytest.raises(ValueError, match="base_confidence"):
        load_document_types(path)


def test_default_settings():
    settings = load_settings()
    assert settings == PipelineSettings()
    assert load_pipeline_config()["ocr"]["provider"] == "tesseract"


def test_environment_overrides_settings(monkeypatch):
    monkeypatch.setenv("TAXDOC_OCR_PROVIDER", "JSON")
    monkeypatch.setenv("TAXDOC_OCR_FALLBACK", "textract")
    monkeypatch.setenv("TAXDOC_TEXTRACT_ENDPOINT", "https://ocr.internal/textract")
    settings = load_settings()
    assert settings.provider == "json"
    assert settings.fallback == "textract"
    assert settings.textract_endpoint == "https://ocr.internal/textract"


def test_fallback_can_be_switched_off(monkeypatch):
    monkeypatch.setenv("TAXDOC_OCR_FALLBACK", "off")
    assert load_settings().fallback is None


def test_config_file_from_environment(tmp_path, monkeypatch):
    path = _write(
        tmp_path / "pipeline.yaml",
        """
        ocr:
          provider: pdf_text
          fallback: tesseract
          fallback_threshold: 0.5
          pdf_text:
            min_chars: 10
        batch:
          timeout: 12
        """,
    )
    monkeypatch.setenv("TAXDOC_CONFIG", str(path))
    settings = load_settings()
    assert settings.provider == "pdf_text"
    assert settings.fallback == "tesseract"
    assert settings.fallback_threshold == 0.5
    assert settings.pdf_min_chars == 10
    assert settings.batch_timeout == 12.0
    assert settings.tesseract_lang == "eng"


def test_invalid_provider_is_rejected(monkeypatch):
    monkeypatch.setenv("TAXDOC_OCR_PROVIDER", "ocrmagic")
    with pytest.raises(ValueError, match="ocr.provider='ocrmagic'"):
        load_settings()


def test_fallback_must_differ_from_provider(monkeypatch):
    monkeypatch.setenv("TAXDOC_OCR_FALLBACK", "tesseract")
    with pytest.raises(ValueError, match="must differ"):
        load_settings()


def test_missing_config_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "missing.yaml")


def test_create_provider_wires_fallback():
    settings = PipelineSettings(
        provider="pdf_text",
        fallback="textract",
        fallback_threshold=0.6,
        pdf_min_chars=25,
        textract_endpoint="https://ocr.internal/textract",
        request_timeout=5,
    )
    provider = create_provider(settings)
    assert isinstance(provider, HybridProvider)
    assert provider.fallback_threshold == 0.6
    assert isinstance(provider.primary, PdfTextLayerProvider)
    assert provider.primary.min_chars == 25
    assert isinstance(provider.secondary, TextractProvider)
    assert provider.secondary.endpoint == "https://ocr.internal/textract"
    assert provider.secondary.timeout == 5


def test_build_provider_by_name():
    settings = PipelineSettings(tesseract_lang="deu", pdf_dpi=300)
    tesseract = build_provider("tesseract", settings)
    assert isinstance(tesseract, TesseractProvider)
    assert (tesseract.lang, tesseract.pdf_dpi) == ("deu", 300)
    assert isinstance(build_provider("json", settings), JsonTextProvider)
    with pytest.raises(ValueError, match="Unknown OCR provider"):
        build_provider("carrier-pigeon", settings)
