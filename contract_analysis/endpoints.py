# SPDX-License-Identifier: AGPL-3.0-only

"""
Flask endpoints for contract analysis.
"""
import logging

from flask import request, jsonify, send_from_directory
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from common.uploads import temporary_upload, upload_size
from validators import AnalyzeRequestSchema, FileUploadSchema

from .config import AnalyzerConfig
from .service import ContractAnalysisService
from .spreadsheet import XLSX_MIME_TYPE

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Failed to process file"


def _first_error(messages) -> str:
    """Flatten marshmallow's error dict into one short message."""
    if isinstance(messages, dict):
        for value in messages.values():
            return _first_error(value)
    if isinstance(messages, list) and messages:
        return _first_error(messages[0])
    return str(messages)


def register_analysis_endpoints(app, service: ContractAnalysisService, config: AnalyzerConfig):
    """Register contract analysis endpoints with Flask app."""

    upload_schema = FileUploadSchema()
    request_schema = AnalyzeRequestSchema(max_prompt_chars=config.max_prompt_chars)
    upload_folder = config.get_effective_upload_folder()
    downloads_dir = config.get_effective_downloads_dir()

    @app.post("/api/analyze")
    def analyze_contract():
        """
        Analyze an uploaded contract.

        Form fields:
          • file   → PDF / DOCX / TXT (required)
          • prompt → extra instructions (optional)

        Returns {resultUrl, excelData, filename}.
        """
        # 1) Validate input; nothing here reaches the language model
        if "file" not in request.files:
            return jsonify({"error": "No file provided"}), 400

        file = request.files["file"]
        if not file.filename:
            return jsonify({"error": "No file provided"}), 400

        size = upload_size(file)
        if size > config.max_upload_bytes:
            return jsonify({"error": f"File size exceeds {config.max_upload_megabytes}MB limit"}), 413

        try:
            upload_schema.load({"filename": file.filename, "content_length": size, "mimetype": file.mimetype})
            form = {"prompt": request.form["prompt"]} if "prompt" in request.form else {}
            params = request_schema.load(form)
        except ValidationError as e:
            return jsonify({"error": _first_error(e.messages)}), 400

        # 2) Process; any downstream failure becomes a generic 500
        try:
            with temporary_upload(file, upload_folder) as document:
                result = service.analyze(document, params.get("prompt") or "")
            return jsonify(result.to_response()), 200
        except HTTPException:
            raise
        except Exception:
            logger.exception("Contract analysis failed for %s", file.filename)
            return jsonify({"error": GENERIC_FAILURE}), 500

    @app.get("/downloads/<path:filename>")
    def download_result(filename: str):
        """Serve a persisted analysis spreadsheet."""
        return send_from_directory(
            downloads_dir,
            filename,
            as_attachment=True,
            mimetype=XLSX_MIME_TYPE,
        )
