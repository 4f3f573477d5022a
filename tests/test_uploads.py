# SPDX-License-Identifier: AGPL-3.0-only

"""
Tests for upload handling, request validation and document text extraction.
"""

import io
import os
import time

import pytest
from docx import Document
from werkzeug.datastructures import FileStorage

from common.document_text import extract_text_from_docx, read_document_text
from common.uploads import (
    DOCX_MIME,
    is_allowed_document,
    purge_old_files,
    resolve_mime_type,
    temporary_upload,
    upload_size,
)
from contract_analysis.exceptions import AnalysisServiceError
from validators import AnalyzeRequestSchema, FileUploadSchema


def make_upload(content=b"%PDF-1.4", filename="contract.pdf", content_type=None):
    return FileStorage(stream=io.BytesIO(content), filename=filename, content_type=content_type)


class TestDocumentTypes:

    @pytest.mark.parametrize("filename", ["a.pdf", "A.PDF", "b.docx", "c.txt"])
    def test_allowed_by_extension(self, filename):
        assert is_allowed_document(filename)

    def test_allowed_by_mime_when_extension_missing(self):
        assert is_allowed_document("contract", "application/pdf")

    def test_rejected(self):
        assert not is_allowed_document("setup.exe", "application/x-msdownload")
        assert not is_allowed_document("", "application/pdf")

    def test_mime_prefers_extension(self):
        assert resolve_mime_type(make_upload(filename="x.docx", content_type="application/octet-stream")) == DOCX_MIME

    def test_mime_falls_back_to_declared(self):
        assert resolve_mime_type(make_upload(filename="contract", content_type="text/plain")) == "text/plain"


class TestTemporaryUpload:

    def test_size_rewinds_stream(self):
        upload = make_upload(b"12345")
        assert upload_size(upload) == 5
        assert upload.stream.read() == b"12345"

    def test_scratch_file_lifecycle(self, tmp_path):
        folder = str(tmp_path / "scratch")
        with temporary_upload(make_upload(b"%PDF-1.4 body", "My Contract.pdf"), folder) as doc:
            assert os.path.isfile(doc.path)
            assert os.path.basename(doc.path).endswith("_My_Contract.pdf")
            assert doc.filename == "My Contract.pdf"
            assert doc.size == len(b"%PDF-1.4 body")
            assert doc.mime_type == "application/pdf"
        assert not os.path.exists(doc.path)

    def test_scratch_file_removed_on_error(self, tmp_path):
        folder = str(tmp_path)
        with pytest.raises(RuntimeError):
            with temporary_upload(make_upload(), folder) as doc:
                raise RuntimeError("analysis failed")
        assert not os.path.exists(doc.path)

    def test_unusable_name_keeps_extension(self, tmp_path):
        with temporary_upload(make_upload(filename="../.."), str(tmp_path)) as doc:
            assert os.path.dirname(doc.path) == str(tmp_path)

    def test_purge_old_files(self, tmp_path):
        old = tmp_path / "old.pdf"
        new = tmp_path / "new.pdf"
        old.write_bytes(b"x")
        new.write_bytes(b"x")
        stale = time.time() - 13 * 3600
        os.utime(old, (stale, stale))

        assert purge_old_files(str(tmp_path), hours=12) == 1
        assert sorted(os.listdir(tmp_path)) == ["new.pdf"]

    def test_purge_missing_folder(self, tmp_path):
        assert purge_old_files(str(tmp_path / "missing")) == 0


class TestSchemas:

    def test_prompt_defaults_to_empty(self):
        assert AnalyzeRequestSchema().load({}) == {"prompt": ""}

    def test_prompt_limit(self):
        schema = AnalyzeRequestSchema(max_prompt_chars=10)
        assert schema.validate({"prompt": "x" * 10}) == {}
        assert "prompt" in schema.validate({"prompt": "x" * 11})

    def test_file_schema_accepts_pdf(self):
        data = {"filename": "contract.pdf", "content_length": 10, "mimetype": "application/pdf"}
        assert FileUploadSchema().validate(data) == {}

    def test_file_schema_requires_filename(self):
        errors = FileUploadSchema().validate({})
        assert errors["filename"] == ["No file provided"]

    def test_file_schema_rejects_type(self):
        errors = FileUploadSchema().validate({"filename": "image.png", "mimetype": "image/png"})
        assert "Unsupported file type" in errors["filename"][0]


class TestDocumentText:

    def test_plain_text_truncated(self, tmp_path):
        path = tmp_path / "contract.txt"
        path.write_text("a" * 100, encoding="utf-8")
        assert read_document_text(str(path), "text/plain", max_chars=40) == "a" * 40

    def test_invalid_utf8_replaced(self, tmp_path):
        path = tmp_path / "contract.txt"
        path.write_bytes(b"Term: 12 months \xff")
        assert read_document_text(str(path), "text/plain").startswith("Term: 12 months")

    def test_docx_paragraphs_and_tables(self, tmp_path):
        path = str(tmp_path / "contract.docx")
        doc = Document()
        doc.add_paragraph("MASTER SERVICES AGREEMENT")
        doc.add_paragraph("")
        table = doc.add_table(rows=1, cols=2)
        table.rows[0].cells[0].text = "Customer"
        table.rows[0].cells[1].text = "Acme Corp"
        doc.save(path)

        text = read_document_text(path, DOCX_MIME)
        assert text.splitlines() == ["MASTER SERVICES AGREEMENT", "Customer | Acme Corp"]

    def test_corrupt_docx(self, tmp_path):
        path = tmp_path / "broken.docx"
        path.write_bytes(b"not a zip")
        with pytest.raises(AnalysisServiceError):
            extract_text_from_docx(str(path))
