# adapters/document_extractor.py
# Turn uploaded files (CSV, Excel, PDF, DOCX, plain text) into structured extracts
# grouped by document tag: mri / targetsmart / client.

from __future__ import annotations

import io
import logging
from collections import Counter
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd
from pydantic import BaseModel, Field

# Optional libs (DOCX & PDF)
try:
    import docx
except Exception:
    docx = None
try:
    import PyPDF2
except Exception:
    PyPDF2 = None

logger = logging.getLogger(__name__)

DEMOGRAPHIC_FIELDS = ["age", "gender", "income", "location", "education"]


@dataclass
class UploadedFile:
    field_name: str
    filename: str
    content: bytes

    @property
    def extension(self) -> str:
        return PurePath(self.filename).suffix.lower().lstrip(".")


class DocumentExtraction(BaseModel):
    mri_data: Optional[Dict[str, Any]] = None
    targetsmart_data: Optional[Dict[str, Any]] = None
    client_data: Optional[Dict[str, Any]] = None
    processing_errors: List[Dict[str, str]] = Field(default_factory=list)


# ───────────────── column analysis ───────────────── #

def top_values(values: List[Any], limit: int = 10) -> List[Dict[str, Any]]:
    return [{"value": v, "count": c} for v, c in Counter(values).most_common(limit)]


def infer_data_type(values: List[Any]) -> str:
    if not values:
        return "unknown"
    sample = pd.Series(values[:100], dtype="object")
    numeric = pd.to_numeric(sample, errors="coerce").notna()
    dates = pd.to_datetime(sample[~numeric].astype(str), errors="coerce", format="mixed").notna()
    if numeric.sum() > len(sample) * 0.8:
        return "numeric"
    if dates.sum() > len(sample) * 0.5:
        return "date"
    return "text"


def analyze_column(rows: List[Dict[str, Any]], column: str) -> Dict[str, Any]:
    values = [r.get(column) for r in rows if r.get(column) not in (None, "")]
    return {
        "total_values": len(values),
        "unique_values": len(set(values)),
        "top_values": top_values(values),
        "data_type": infer_data_type(values),
    }


def analyze_csv_data(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    if not rows:
        return {}
    columns = list(rows[0].keys())
    demographics: Dict[str, Any] = {}
    for field in DEMOGRAPHIC_FIELDS:
        matching = [c for c in columns if field in str(c).lower()]
        if matching:
            demographics[field] = analyze_column(rows, matching[0])
    return {
        "total_rows": len(rows),
        "columns": columns,
        "demographics": demographics,
        "patterns": [],
    }


# ───────────────── text chunking ───────────────── #

def chunk_text(text: str, chunk_size: int = 1000, overlap: int = 200) -> List[str]:
    """Split text into overlapping windows, breaking at a sentence end when one
    falls in the back half of the window."""
    if overlap >= chunk_size:
        raise ValueError("overlap must be smaller than chunk_size")
    if not text:
        return []

    chunks: List[str] = []
    start = 0
    while start < len(text):
        end = min(start + chunk_size, len(text))
        window = text[start:end]
        if end >= len(text):
            chunks.append(window)
            break
        last_stop = window.rfind(".")
        if last_stop > chunk_size * 0.5:
            chunks.append(window[:last_stop + 1])
            start = start + last_stop + 1 - overlap
        else:
            chunks.append(window)
            start = end - overlap
    return [c for c in chunks if c.strip()]


# ───────────────── per-format extraction ───────────────── #

def _table_extract(df: pd.DataFrame, kind: str) -> Dict[str, Any]:
    df.columns = [str(c).strip().strip('"') for c in df.columns]
    df = df.dropna(how="all")
    rows = df.fillna("").astype(str).apply(lambda s: s.str.strip()).to_dict(orient="records")
    return {
        "type": kind,
        "data": rows,
        "headers": list(df.columns),
        "row_count": len(rows),
        "summary": analyze_csv_data(rows),
    }


def extract_csv(file: UploadedFile) -> Dict[str, Any]:
    try:
        df = pd.read_csv(io.BytesIO(file.content), dtype=str, keep_default_na=False, skipinitialspace=True)
    except pd.errors.EmptyDataError:
        return {"type": "csv", "data": [], "headers": [], "row_count": 0}
    return _table_extract(df, "csv")


def extract_excel(file: UploadedFile) -> Dict[str, Any]:
    # First sheet only.
    df = pd.read_excel(io.BytesIO(file.content), dtype=str)
    return _table_extract(df, "excel")


def _text_extract(kind: str, text: str) -> Dict[str, Any]:
    return {"type": kind, "text": text, "chunks": chunk_text(text)}


def extract_pdf(file: UploadedFile) -> Dict[str, Any]:
    if PyPDF2 is None:
        raise RuntimeError("PDF uploaded, but PyPDF2 is not installed.")
    reader = PyPDF2.PdfReader(io.BytesIO(file.content))
    return _text_extract("pdf", "\n".join(page.extract_text() or "" for page in reader.pages))


def extract_docx(file: UploadedFile) -> Dict[str, Any]:
    if docx is None:
        raise RuntimeError("DOCX uploaded, but python-docx is not installed.")
    d = docx.Document(io.BytesIO(file.content))
    return _text_extract("docx", "\n".join(p.text for p in d.paragraphs))


def extract_file_data(file: UploadedFile) -> Dict[str, Any]:
    ext = file.extension
    if ext == "csv":
        return extract_csv(file)
    if ext in ("xlsx", "xls"):
        return extract_excel(file)
    if ext == "pdf":
        return extract_pdf(file)
    if ext == "docx":
        return extract_docx(file)
    return _text_extract("text", file.content.decode("utf-8", errors="ignore"))


# ───────────────── Public API ───────────────── #

def categorize_field(field_name: str) -> str:
    name = (field_name or "").lower()
    if "mri" in name or "market" in name:
        return "mri"
    if "targetsmart" in name or "target" in name:
        return "targetsmart"
    if "client" in name or "claimant" in name:
        return "client"
    return "general"


def process_files(files: Mapping[str, UploadedFile]) -> DocumentExtraction:
    """
    Extract every uploaded file and file it under its tag.
    A file that fails to extract is recorded in processing_errors; the rest still go through.
    """
    result = DocumentExtraction()
    for field_name, file in files.items():
        if file is None or not file.content:
            continue
        tag = categorize_field(field_name)
        if tag == "general":
            logger.info("Skipping untagged upload %s (%s)", file.filename, field_name)
            continue
        logger.info("Processing file: %s (%s)", file.filename, field_name)
        try:
            extracted = extract_file_data(file)
        except Exception as e:
            logger.warning("Error processing file %s: %s", file.filename, e)
            result.processing_errors.append({"file": file.filename, "error": str(e)})
            continue
        setattr(result, f"{tag}_data", extracted)
    return result


__all__ = [
    "UploadedFile",
    "DocumentExtraction",
    "categorize_field",
    "chunk_text",
    "analyze_csv_data",
    "extract_file_data",
    "process_files",
]
