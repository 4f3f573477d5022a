# SPDX-License-Identifier: AGPL-3.0-only

"""
Configuration service for the contract analyzer.

This module centralizes all settings for the analysis endpoint, supporting
environment variable overrides and validation. A single ``AnalyzerConfig`` is
built by the application factory and passed explicitly to the services that
need it.
"""

import os
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import ColumnLayout, IntegrationStyle


class AnalyzerConfig(BaseSettings):
    """Configuration settings for the contract analyzer."""

    model_config = SettingsConfigDict(
        env_prefix="CONTRACT_ANALYZER_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # OpenAI settings
    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_KEY", "OPENAI_KEY"),
        description="OpenAI API key",
    )
    integration_style: IntegrationStyle = Field(
        default=IntegrationStyle.INLINE, description="inline chat completion or assistant run"
    )
    model: str = Field(default="gpt-4o", description="OpenAI model name")
    max_output_tokens: int = Field(default=2000, description="Max tokens in the model reply")
    temperature: float = Field(default=0.0, description="Sampling temperature")
    request_timeout: float = Field(default=120.0, description="Per-request timeout in seconds")
    client_max_retries: int = Field(default=0, description="Automatic retries done by the OpenAI client")

    # Assistant run polling
    poll_interval_seconds: float = Field(default=1.0, description="Delay between run status checks")
    poll_max_attempts: int = Field(default=300, ge=1, description="Maximum run status checks")
    poll_timeout_seconds: float = Field(default=300.0, description="Give up waiting after this many seconds")

    # Upload settings
    upload_folder: str = Field(default="temp", description="Scratch folder for uploaded files")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, description="Max file size in bytes (10MB)")
    max_prompt_chars: int = Field(default=4000, description="Max length of the optional user prompt")
    max_document_chars: int = Field(default=60000, description="Max characters sent for text documents")
    temp_file_max_age_hours: int = Field(default=12, description="Scratch files older than this are purged")

    # Output settings
    downloads_dir: str = Field(default=os.path.join("public", "downloads"), description="Folder for persisted results")
    persist_results: bool = Field(default=True, description="Keep a server-side copy of each spreadsheet")
    column_layout: ColumnLayout = Field(default=ColumnLayout.FIELD_VALUE, description="Spreadsheet column naming")
    sheet_name: Optional[str] = Field(default=None, description="Override the layout's sheet name")

    # Web settings
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"],
        description="Front-end origins allowed by CORS",
    )
    log_level: str = Field(default="INFO", description="Root log level")

    def get_ai_config(self) -> dict:
        """Get AI service configuration (without the key itself)."""
        return {
            "style": self.integration_style.value,
            "model": self.model,
            "api_key_set": bool(self.api_key),
            "timeout": self.request_timeout,
            "polling": {
                "interval_seconds": self.poll_interval_seconds,
                "max_attempts": self.poll_max_attempts,
                "timeout_seconds": self.poll_timeout_seconds,
            },
        }

    def get_upload_config(self) -> dict:
        """Get upload configuration."""
        return {
            "folder": self.get_effective_upload_folder(),
            "max_file_size": self.max_upload_bytes,
            "max_prompt_chars": self.max_prompt_chars,
        }

    def get_output_config(self) -> dict:
        """Get spreadsheet output configuration."""
        return {
            "downloads_dir": self.get_effective_downloads_dir(),
            "persist": self.persist_results,
            "layout": self.column_layout.value,
            "sheet_name": self.effective_sheet_name,
        }

    def validate_ai_config(self) -> bool:
        """Validate AI configuration."""
        return bool(self.api_key) and bool(self.model)

    @property
    def effective_sheet_name(self) -> str:
        return self.sheet_name or self.column_layout.default_sheet_name

    @property
    def max_upload_megabytes(self) -> int:
        return max(1, self.max_upload_bytes // (1024 * 1024))

    def get_effective_upload_folder(self) -> str:
        """Get the effective upload folder path."""
        if os.path.isabs(self.upload_folder):
            return self.upload_folder
        return os.path.join(os.getcwd(), self.upload_folder)

    def get_effective_downloads_dir(self) -> str:
        """Get the effective downloads folder path."""
        if os.path.isabs(self.downloads_dir):
            return self.downloads_dir
        return os.path.join(os.getcwd(), self.downloads_dir)
