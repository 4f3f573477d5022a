# SPDX-License-Identifier: AGPL-3.0-only

"""
Pydantic models for the contract analysis system.

This module defines the records that flow between the upload handler, the
language-model analyzers, the row parser and the spreadsheet writer.
"""

import json
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class IntegrationStyle(str, Enum):
    """How the document is submitted to the language-model service."""
    INLINE = "inline"
    ASSISTANT = "assistant"


class JobStatus(str, Enum):
    """Lifecycle of a remote analysis job."""
    SUBMITTED = "submitted"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class ColumnLayout(str, Enum):
    """Column naming used when rows are written to a spreadsheet."""
    FIELD_VALUE = "field_value"
    CATEGORY_DETAILS = "category_details"

    @property
    def headers(self) -> Tuple[str, str]:
        return COLUMN_HEADERS[self]

    @property
    def default_sheet_name(self) -> str:
        return DEFAULT_SHEET_NAMES[self]


COLUMN_HEADERS: Dict[ColumnLayout, Tuple[str, str]] = {
    ColumnLayout.FIELD_VALUE: ("Field Name", "Field Value"),
    ColumnLayout.CATEGORY_DETAILS: ("Category", "Details"),
}

DEFAULT_SHEET_NAMES: Dict[ColumnLayout, str] = {
    ColumnLayout.FIELD_VALUE: "Contract Analysis",
    ColumnLayout.CATEGORY_DETAILS: "Analysis",
}

# Key pairs recognized when a model answers with a list of records
_LABEL_KEYS = ("label", "Field Name", "Category", "field", "name", "key")
_VALUE_KEYS = ("value", "Field Value", "Details", "Value", "details")


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


class Row(BaseModel):
    """One spreadsheet row: a label and its value."""
    label: str = Field("", description="Left column (field name / category)")
    value: str = Field("", description="Right column (field value / details)")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Row":
        """
        Build a row from a loosely shaped record.

        Accepts ``label``/``value`` as well as the ``Field Name``/``Field Value``
        and ``Category``/``Details`` shapes. Any other mapping uses its first two
        values in insertion order.
        """
        label = next((data[k] for k in _LABEL_KEYS if k in data), None)
        value = next((data[k] for k in _VALUE_KEYS if k in data), None)
        if label is None and value is None:
            values = list(data.values())
            label = values[0] if values else ""
            value = values[1] if len(values) > 1 else ""
        return cls(label=_stringify(label), value=_stringify(value))

    def to_columns(self, layout: ColumnLayout) -> Dict[str, str]:
        """Map the row onto the layout's column headers."""
        left, right = layout.headers
        return {left: self.label, right: self.value}


class UploadedDocument(BaseModel):
    """An uploaded document materialized on local disk for one request."""
    path: str = Field(description="Scratch path holding the uploaded bytes")
    filename: str = Field(description="Original (display) file name")
    size: int = Field(ge=0, description="Size in bytes")
    mime_type: str = Field("application/octet-stream", description="Declared or guessed MIME type")


class JobState(BaseModel):
    """A single observation of a remote job."""
    status: JobStatus
    error: Optional[str] = None


class AnalysisResult(BaseModel):
    """Payload returned to the browser after a successful analysis."""
    model_config = ConfigDict(populate_by_name=True)

    result_url: Optional[str] = Field(None, alias="resultUrl", description="URL of the persisted copy")
    excel_data: str = Field(alias="excelData", description="Base64 encoded .xlsx document")
    filename: str = Field(description="Suggested download file name")
    row_count: int = Field(0, ge=0, exclude=True, description="Number of data rows written")

    def to_response(self) -> Dict[str, Any]:
        """Serialize with the camelCase keys the front-end expects."""
        return self.model_dump(by_alias=True)
