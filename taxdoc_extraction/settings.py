"""Pipeline settings loaded from config/pipeline.yaml with environment overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .loader import load_pipeline_config

PROVIDER_NAMES = {"tesseract", "pdf_text", "textract", "vision", "json"}


@dataclass(frozen=True)
class PipelineSettings:
    provider: str = "tesseract"
    fallback: Optional[str] = None
    fallback_threshold: float = 0.7
    tesseract_cmd: Optional[str] = None
    tesseract_lang: str = "eng"
    pdf_dpi: int = 200
    pdf_min_chars: int = 50
    textract_endpoint: Optional[str] = None
    vision_endpoint: Optional[str] = None
    request_timeout: float = 30.0
    batch_timeout: Optional[float] = None


def _validate_settings(data: Dict[str, Any]) -> None:
    """Validate that the merged settings are usable."""
    problems = []
    if data["provider"] not in PROVIDER_NAMES:
        problems.append(f"ocr.provider={data['provider']!r}")
    if data["fallback"] is not None and data["fallback"] not in PROVIDER_NAMES:
        problems.append(f"ocr.fallback={data['fallback']!r}")
    if data["fallback"] is not None and data["fallback"] == data["provider"]:
        problems.append("ocr.fallback must differ from ocr.provider")
    if not 0.0 <= data["fallback_threshold"] <= 1.0:
        problems.append("ocr.fallback_threshold must be within [0, 1]")
    if data["pdf_dpi"] <= 0:
        problems.append("ocr.tesseract.pdf_dpi must be positive")
    if data["request_timeout"] <= 0:
        problems.append("ocr.remote.request_timeout must be positive")
    if data["batch_timeout"] is not None and data["batch_timeout"] <= 0:
        problems.append("batch.timeout must be positive")
    if problems:
        raise ValueError(f"Invalid pipeline settings: {', '.join(problems)}")


def _optional_float(value: Any) -> Optional[float]:
    return None if value in (None, "") else float(value)


def load_settings(config_path: Path | str | None = None) -> PipelineSettings:
    """
    Build settings from the YAML config, then apply environment overrides:

      - TAXDOC_CONFIG: alternative config file
      - TAXDOC_OCR_PROVIDER / TAXDOC_OCR_FALLBACK
      - TAXDOC_TEXTRACT_ENDPOINT / TAXDOC_VISION_ENDPOINT
      - TAXDOC_TESSERACT_CMD
    """
    path = config_path or os.getenv("TAXDOC_CONFIG") or None
    raw = load_pipeline_config(path)
    ocr = raw.get("ocr") or {}
    tesseract = ocr.get("tesseract") or {}
    pdf_text = ocr.get("pdf_text") or {}
    remote = ocr.get("remote") or {}
    batch = raw.get("batch") or {}

    try:
        data: Dict[str, Any] = {
            "provider": str(os.getenv("TAXDOC_OCR_PROVIDER") or ocr.get("provider") or "tesseract").lower(),
            "fallback": os.getenv("TAXDOC_OCR_FALLBACK") or ocr.get("fallback"),
            "fallback_threshold": float(ocr.get("fallback_threshold", 0.7)),
            "tesseract_cmd": os.getenv("TAXDOC_TESSERACT_CMD") or tesseract.get("cmd"),
            "tesseract_lang": str(tesseract.get("lang") or "eng"),
            "pdf_dpi": int(tesseract.get("pdf_dpi", 200)),
            "pdf_min_chars": int(pdf_text.get("min_chars", 50)),
            "textract_endpoint": os.getenv("TAXDOC_TEXTRACT_ENDPOINT") or remote.get("textract_endpoint"),
            "vision_endpoint": os.getenv("TAXDOC_VISION_ENDPOINT") or remote.get("vision_endpoint"),
            "request_timeout": float(remote.get("request_timeout", 30)),
            "batch_timeout": _optional_float(batch.get("timeout")),
        }
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid pipeline settings: {exc}") from exc

    if data["fallback"] is not None:
        data["fallback"] = str(data["fallback"]).lower()
        if data["fallback"] in {"none", "off"}:
            data["fallback"] = None
    _validate_settings(data)
    return PipelineSettings(**data)
