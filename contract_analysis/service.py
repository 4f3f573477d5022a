# SPDX-License-Identifier: AGPL-3.0-only

"""
Contract analysis service: coordinates one upload from document to spreadsheet.
"""

import logging
import threading
import time
from typing import Callable, Optional

from common.metrics import AnalysisMetrics

from .config import AnalyzerConfig
from .models import AnalysisResult, UploadedDocument
from .normalizer import parse_analysis_rows
from .prompt_pack import build_analysis_prompt
from .spreadsheet import (
    build_result_filename,
    build_workbook,
    encode_workbook,
    save_to_downloads,
    storage_filename,
)

logger = logging.getLogger(__name__)

DOWNLOADS_URL_PREFIX = "/downloads"


class ContractAnalysisService:
    """Service that turns an uploaded contract into an analysis spreadsheet."""

    def __init__(self, config: AnalyzerConfig, analyzer, clock: Callable[[], float] = time.time):
        """
        Args:
            config: Injected analyzer configuration
            analyzer: Object exposing ``analyze(document, instructions, cancel_event)``
            clock: Wall clock in seconds, used for result file names
        """
        self.config = config
        self.analyzer = analyzer
        self.clock = clock

    def analyze(self, document: UploadedDocument, prompt: str = "",
                cancel_event: Optional[threading.Event] = None) -> AnalysisResult:
        """
        Main processing pipeline.

        Returns:
            AnalysisResult with the base64 workbook, its file name and the URL
            of the persisted copy (None when persisting is disabled)
        """
        metrics = AnalysisMetrics()
        layout = self.config.column_layout

        # Stage 1: Build instructions
        instructions = build_analysis_prompt(prompt, layout)
        metrics.mark_stage("prompt_built")

        # Stage 2: Language-model call
        logger.info("Analyzing %s (%d bytes, %s) with %s",
                    document.filename, document.size, document.mime_type, type(self.analyzer).__name__)
        analysis_text = self.analyzer.analyze(document, instructions, cancel_event=cancel_event)
        metrics.add_llm_call()
        metrics.mark_stage("llm_done")

        # Stage 3: Normalize into rows
        rows = parse_analysis_rows(analysis_text)
        metrics.set_rows(len(rows))
        metrics.mark_stage("normalization_done")

        # Stage 4: Spreadsheet
        workbook = build_workbook(rows, layout, self.config.effective_sheet_name)
        filename = build_result_filename(document.filename, int(self.clock() * 1000))
        metrics.mark_stage("workbook_done")

        # Stage 5: Optional persisted copy
        result_url = None
        if self.config.persist_results:
            stored_name = storage_filename(filename)
            save_to_downloads(workbook, self.config.get_effective_downloads_dir(), stored_name)
            result_url = f"{DOWNLOADS_URL_PREFIX}/{stored_name}"
        metrics.mark_stage("persist_done")

        metrics.finish()
        logger.info("Analysis of %s finished: %s", document.filename, metrics.to_dict())

        return AnalysisResult(
            result_url=result_url,
            excel_data=encode_workbook(workbook),
            filename=filename,
            row_count=len(rows),
        )
