# SPDX-License-Identifier: AGPL-3.0-only

"""
AI service for contract analysis.

This module wraps the OpenAI API behind a single capability,
``analyze(document, instructions) -> text``, with two integration styles:

- ``InlineChatAnalyzer``: one chat completion with the document embedded.
- ``AssistantRunAnalyzer``: upload the file, create an assistant, thread and
  run, poll the run until it finishes, read the reply, then delete the remote
  objects.
"""

import base64
import logging
import re
import threading
from typing import Any, Callable, Dict, List, Optional

from openai import OpenAI

from common.document_text import read_document_text
from common.uploads import PDF_MIME

from .config import AnalyzerConfig
from .exceptions import AnalysisServiceError, ConfigurationError
from .models import IntegrationStyle, JobState, JobStatus, UploadedDocument
from .polling import wait_for_completion

logger = logging.getLogger(__name__)

# OpenAI run status -> job lifecycle
RUN_STATUS_MAP: Dict[str, JobStatus] = {
    "queued": JobStatus.SUBMITTED,
    "in_progress": JobStatus.PROCESSING,
    "cancelling": JobStatus.PROCESSING,
    "completed": JobStatus.COMPLETED,
    "failed": JobStatus.FAILED,
    "cancelled": JobStatus.FAILED,
    "expired": JobStatus.FAILED,
    "incomplete": JobStatus.FAILED,
    "requires_action": JobStatus.FAILED,
}

# File-search citation markers such as 【4:0†contract.pdf】
CITATION_MARKER = re.compile(r'【[^】]*】')


class InlineChatAnalyzer:
    """Analyze a document with a single chat completion call."""

    def __init__(self, client: OpenAI, config: AnalyzerConfig):
        self.client = client
        self.config = config
        self.model = config.model

    def analyze(self, document: UploadedDocument, instructions: str,
                cancel_event: Optional[threading.Event] = None) -> str:
        """
        Submit the document with the instructions and return the reply text.

        PDFs travel as a base64 ``file`` content part; text and Word documents
        are converted to text first because chat completions only accept PDF
        file parts.
        """
        content: List[Dict[str, Any]] = [{"type": "text", "text": instructions}]
        content.append(self._document_part(document))

        request_params: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": instructions},
                {"role": "user", "content": content},
            ],
            "temperature": self.config.temperature,
        }
        # Newer reasoning models renamed the token cap
        if self.model.startswith("gpt-5") or re.match(r'o\d', self.model):
            request_params["max_completion_tokens"] = self.config.max_output_tokens
        else:
            request_params["max_tokens"] = self.config.max_output_tokens

        try:
            completion = self.client.chat.completions.create(**request_params)
        except Exception as e:
            raise AnalysisServiceError(f"Chat completion failed: {e}") from e

        if not completion.choices:
            raise AnalysisServiceError("Chat completion returned no choices")
        text = completion.choices[0].message.content or ""
        logger.debug("Inline analysis returned %d characters", len(text))
        return text

    def _document_part(self, document: UploadedDocument) -> Dict[str, Any]:
        if document.mime_type == PDF_MIME or document.filename.lower().endswith(".pdf"):
            with open(document.path, "rb") as f:
                encoded = base64.b64encode(f.read()).decode("ascii")
            return {
                "type": "file",
                "file": {
                    "filename": document.filename,
                    "file_data": f"data:{PDF_MIME};base64,{encoded}",
                },
            }

        text = read_document_text(document.path, document.mime_type, self.config.max_document_chars)
        return {"type": "text", "text": f"DOCUMENT ({document.filename}):\n{text}"}


class AssistantRunAnalyzer:
    """Analyze a document through an assistant run, polling until it finishes."""

    ASSISTANT_NAME = "Contract Analyzer"

    def __init__(self, client: OpenAI, config: AnalyzerConfig,
                 sleep: Optional[Callable[[float], None]] = None):
        self.client = client
        self.config = config
        self.model = config.model
        self._sleep = sleep

    def analyze(self, document: UploadedDocument, instructions: str,
                cancel_event: Optional[threading.Event] = None) -> str:
        """
        Run the assistant workflow and return the assistant's reply.

        The uploaded file, the assistant and the thread are deleted in all
        cases, including when polling fails, times out or is cancelled.
        """
        uploaded_file = assistant = thread = None
        try:
            with open(document.path, "rb") as f:
                uploaded_file = self.client.files.create(file=(document.filename, f), purpose="assistants")
            logger.info("Uploaded %s as %s", document.filename, uploaded_file.id)

            assistant = self.client.beta.assistants.create(
                name=self.ASSISTANT_NAME,
                instructions=instructions,
                model=self.model,
                tools=[{"type": "file_search"}],
                temperature=self.config.temperature,
            )
            thread = self.client.beta.threads.create(
                messages=[{
                    "role": "user",
                    "content": instructions,
                    "attachments": [{"file_id": uploaded_file.id, "tools": [{"type": "file_search"}]}],
                }]
            )
            run = self.client.beta.threads.runs.create(thread_id=thread.id, assistant_id=assistant.id)
            logger.info("Started run %s on thread %s", run.id, thread.id)

            poll_kwargs: Dict[str, Any] = {
                "interval": self.config.poll_interval_seconds,
                "max_attempts": self.config.poll_max_attempts,
                "timeout": self.config.poll_timeout_seconds,
                "cancel_event": cancel_event,
            }
            if self._sleep is not None:
                poll_kwargs["sleep"] = self._sleep
            wait_for_completion(lambda: self._run_state(thread.id, run.id), **poll_kwargs)

            return self._reply_text(thread.id, run.id)
        finally:
            self._cleanup(uploaded_file, assistant, thread)

    def _run_state(self, thread_id: str, run_id: str) -> JobState:
        run = self.client.beta.threads.runs.retrieve(run_id, thread_id=thread_id)
        status = RUN_STATUS_MAP.get(run.status, JobStatus.PROCESSING)
        error = None
        if status == JobStatus.FAILED:
            last_error = getattr(run, "last_error", None)
            error = getattr(last_error, "message", None) or f"run {run.status}"
        return JobState(status=status, error=error)

    def _reply_text(self, thread_id: str, run_id: str) -> str:
        messages = self.client.beta.threads.messages.list(thread_id=thread_id, run_id=run_id, order="asc")
        parts: List[str] = []
        for message in messages.data:
            if message.role != "assistant":
                continue
            for block in message.content:
                if block.type == "text":
                    parts.append(block.text.value)
        if not parts:
            raise AnalysisServiceError("Assistant run finished without a text reply")
        return CITATION_MARKER.sub("", "\n".join(parts)).strip()

    def _cleanup(self, uploaded_file, assistant, thread) -> None:
        """Delete remote objects; failures are logged so they never mask the real error."""
        if uploaded_file is not None:
            try:
                self.client.files.delete(uploaded_file.id)
            except Exception as e:
                logger.warning("Failed to delete uploaded file %s: %s", uploaded_file.id, e)
        if assistant is not None:
            try:
                self.client.beta.assistants.delete(assistant.id)
            except Exception as e:
                logger.warning("Failed to delete assistant %s: %s", assistant.id, e)
        if thread is not None:
            try:
                self.client.beta.threads.delete(thread.id)
            except Exception as e:
                logger.warning("Failed to delete thread %s: %s", thread.id, e)


def create_openai_client(config: AnalyzerConfig) -> OpenAI:
    """Construct the OpenAI client once per process from the injected config."""
    if not config.api_key:
        raise ConfigurationError("OpenAI API key not configured. Set OPENAI_API_KEY environment variable.")
    return OpenAI(
        api_key=config.api_key,
        timeout=config.request_timeout,
        max_retries=config.client_max_retries,
    )


def build_analyzer(config: AnalyzerConfig, client: Optional[OpenAI] = None):
    """Select the analyzer for the configured integration style."""
    if client is None:
        client = create_openai_client(config)

    if config.integration_style == IntegrationStyle.ASSISTANT:
        return AssistantRunAnalyzer(client, config)
    if config.integration_style == IntegrationStyle.INLINE:
        return InlineChatAnalyzer(client, config)
    raise ConfigurationError(f"Unknown integration style: {config.integration_style}")
