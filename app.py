"""
Contract Analyzer – pure API back-end

Endpoints
─────────
GET  /health               → {"status": "ok"}
GET  /api/ai-config        → selected OpenAI integration (no secrets)
POST /api/analyze          → {resultUrl, excelData, filename}
GET  /downloads/<filename> → persisted analysis spreadsheet
(no HTML rendered; UI lives in the separate front-end)
"""

# SPDX-License-Identifier: AGPL-3.0-only

# ── imports ──────────────────────────────────────────────────────
import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS                 # allow front-end origin

from common.uploads import purge_old_files
from contract_analysis.ai_service import build_analyzer
from contract_analysis.config import AnalyzerConfig
from contract_analysis.endpoints import register_analysis_endpoints
from contract_analysis.service import ContractAnalysisService

logger = logging.getLogger(__name__)

# Room for multipart boundaries and the prompt field on top of the file limit
FORM_OVERHEAD_BYTES = 64 * 1024


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def log_ai_configuration(config: AnalyzerConfig) -> None:
    """Log the AI configuration at startup, never the key itself."""
    logger.info("=== AI SERVICE CONFIGURATION ===")
    logger.info("INTEGRATION_STYLE: %s", config.integration_style.value)
    logger.info("OPENAI_MODEL: %s", config.model)
    logger.info("OPENAI_API_KEY: %s", "SET" if config.api_key else "NOT SET")
    logger.info("UPLOADS: %s", config.get_upload_config())
    logger.info("OUTPUT: %s", config.get_output_config())
    logger.info("================================")


def create_app(config: AnalyzerConfig = None, analyzer=None, client=None) -> Flask:
    """
    Build the Flask application.

    Args:
        config: Analyzer settings; read from the environment when omitted
        analyzer: Pre-built analyzer (tests inject fakes here)
        client: Pre-built OpenAI client used when ``analyzer`` is omitted
    """
    config = config or AnalyzerConfig()
    configure_logging(config.log_level)
    log_ai_configuration(config)

    if analyzer is None:
        analyzer = build_analyzer(config, client=client)
    service = ContractAnalysisService(config, analyzer)

    app = Flask(__name__)

    # ── config & housekeeping ───────────────────────────────────────
    upload_folder = config.get_effective_upload_folder()
    app.config["UPLOAD_FOLDER"] = upload_folder
    app.config["MAX_CONTENT_LENGTH"] = config.max_upload_bytes + FORM_OVERHEAD_BYTES
    os.makedirs(upload_folder, exist_ok=True)
    if config.persist_results:
        os.makedirs(config.get_effective_downloads_dir(), exist_ok=True)

    purged = purge_old_files(upload_folder, config.temp_file_max_age_hours)
    if purged:
        logger.info("Purged %d stale scratch files from %s", purged, upload_folder)

    app.extensions["contract_analysis"] = service

    CORS(
        app,
        resources={
            r"/api/*": {"origins": config.cors_origins},
            r"/downloads/*": {"origins": config.cors_origins},
        }
    )

    # ── ROUTES ───────────────────────────────────────────────────────
    @app.get("/")
    def root():
        """Simple root for anyone hitting the API directly."""
        return {"service": "Contract Analyzer API", "docs": "/health"}, 200

    @app.get("/health")
    def health():
        """Used by the front-end (and uptime checks) to verify API is alive."""
        return jsonify(status="ok"), 200

    @app.get("/api/ai-config")
    def ai_config():
        return jsonify(config.get_ai_config()), 200

    @app.errorhandler(413)
    def file_too_large(e):
        return jsonify(error=f"File size exceeds {config.max_upload_megabytes}MB limit"), 413

    register_analysis_endpoints(app, service, config)

    return app
