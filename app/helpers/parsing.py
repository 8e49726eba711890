import io
import re
from typing import Dict, List

import pandas as pd
from pdfminer.high_level import extract_text as pdf_extract
from docx import Document

from app.utils.exceptions import ProcessingError, ValidationError

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
ALLOWED_CV_TYPES = {PDF_MIME: ".pdf", DOCX_MIME: ".docx"}

JOB_COLUMNS = {
    "Job Title": "job_title",
    "Company": "company_name",
    "Description": "description_html",
    "Job URL": "job_url",
}

_TAG = re.compile(r"<[^>]+>")


def read_docx(data: bytes) -> str:
    doc = Document(io.BytesIO(data))
    return "\n".join([p.text for p in doc.paragraphs])

def read_pdf(data: bytes) -> str:
    return pdf_extract(io.BytesIO(data))

def clean_text(x: str) -> str:
    x = re.sub(r'\s+', ' ', x).strip()
    return x

def strip_html(x: str) -> str:
    return clean_text(_TAG.sub(" ", x or ""))

def resolve_cv_type(content_type: str, filename: str = "") -> str:
    """Map an upload to PDF or DOCX by MIME type, falling back to the extension."""
    if content_type in ALLOWED_CV_TYPES:
        return content_type
    lowered = (filename or "").lower()
    for mime, ext in ALLOWED_CV_TYPES.items():
        if lowered.endswith(ext):
            return mime
    raise ValidationError("Invalid file type. Only PDF and DOCX are allowed.",
                          field="cvFile", value=content_type)

def extract_cv_text(data: bytes, content_type: str, filename: str = "") -> str:
    mime = resolve_cv_type(content_type, filename)
    try:
        text = read_pdf(data) if mime == PDF_MIME else read_docx(data)
    except Exception as e:
        if "xref" in str(e).lower():
            raise ValidationError(
                "The uploaded PDF appears to be corrupted. Please try re-saving it and upload again.",
                field="cvFile",
            ) from e
        raise ProcessingError(f"Could not read CV file: {e}", document_id=filename,
                              document_type=mime, cause=e) from e
    return clean_text(text or "")

def read_jobs_excel(data: bytes) -> List[Dict[str, str]]:
    """Rows of a job spreadsheet as job documents; rows without title or URL are skipped."""
    try:
        df = pd.read_excel(io.BytesIO(data), sheet_name=0, dtype=str)
    except Exception as e:
        raise ProcessingError(f"Could not read job spreadsheet: {e}", document_type="xlsx", cause=e) from e

    missing = [col for col in JOB_COLUMNS if col not in df.columns]
    if missing:
        raise ValidationError(f'Missing required column in Excel: "{missing[0]}"',
                              field="columns", value=", ".join(missing))

    df = df[list(JOB_COLUMNS)].rename(columns=JOB_COLUMNS).fillna("")
    jobs = []
    for row in df.itertuples(index=False):
        title = str(row.job_title).strip()
        url = str(row.job_url).strip()
        if not title or not url:
            continue
        description = str(row.description_html)
        jobs.append({
            "job_title": title,
            "company_name": str(row.company_name).strip() or None,
            "job_url": url,
            "description_html": description,
            "description_text": strip_html(description),
        })
    return jobs
