# SPDX-License-Identifier: AGPL-3.0-only

"""
Pytest configuration and fixtures.

This module provides shared fixtures and configuration for all tests.
"""

import os
from types import SimpleNamespace
from unittest.mock import Mock, MagicMock

import pytest

from app import create_app
from contract_analysis.config import AnalyzerConfig
from contract_analysis.models import IntegrationStyle, UploadedDocument


SAMPLE_TABLE = """| Field Name | Field Value |
|------------|-------------|
| Customer Name | Acme Corp |
| Contract Start Date | 01/01/2024 |
| Payment Terms | Net 30 |"""


@pytest.fixture
def sample_table():
    """Markdown table as returned by the model."""
    return SAMPLE_TABLE


@pytest.fixture
def sample_sections_text():
    """Loosely structured answer with mixed heading styles."""
    return (
        "Contract between Acme Corp and Globex LLC.\n"
        "\n"
        "# Parties\n"
        "Client: Acme Corp\n"
        "Vendor: Globex LLC\n"
        "**Payment**\n"
        "- Terms: Net 30\n"
        "- Rate: $100/hour\n"
        "Termination:\n"
        "Notice Period: 30 days\n"
        "Either party may terminate for convenience\n"
    )


@pytest.fixture
def analyzer_config(tmp_path):
    """Config pointing scratch and download folders at a temp dir."""
    return AnalyzerConfig(
        api_key="test-key",
        integration_style=IntegrationStyle.INLINE,
        model="gpt-4o",
        upload_folder=str(tmp_path / "temp"),
        downloads_dir=str(tmp_path / "downloads"),
        poll_interval_seconds=0.0,
        poll_max_attempts=10,
        poll_timeout_seconds=30.0,
        max_upload_bytes=1024 * 1024,
    )


@pytest.fixture
def assistant_config(analyzer_config):
    return analyzer_config.model_copy(update={"integration_style": IntegrationStyle.ASSISTANT})


@pytest.fixture
def pdf_document(tmp_path):
    """An uploaded PDF materialized on disk."""
    path = tmp_path / "abc123_contract.pdf"
    content = b"%PDF-1.4\n1 0 obj\n<<\n/Type /Catalog\n/Pages 2 0 R\n>>\nendobj\n"
    path.write_bytes(content)
    return UploadedDocument(
        path=str(path),
        filename="contract.pdf",
        size=len(content),
        mime_type="application/pdf",
    )


@pytest.fixture
def txt_document(tmp_path):
    """An uploaded plain-text contract."""
    path = tmp_path / "abc123_contract.txt"
    content = "SERVICE AGREEMENT\nCustomer: Acme Corp\nTerm: 12 months\n"
    path.write_text(content, encoding="utf-8")
    return UploadedDocument(
        path=str(path),
        filename="contract.txt",
        size=len(content),
        mime_type="text/plain",
    )


@pytest.fixture
def mock_analyzer(sample_table):
    """Analyzer double returning a markdown table."""
    analyzer = Mock()
    analyzer.analyze.return_value = sample_table
    return analyzer


def make_run(status, error_message=None, run_id="run_1"):
    last_error = SimpleNamespace(message=error_message) if error_message else None
    return SimpleNamespace(id=run_id, status=status, last_error=last_error)


def make_text_message(text, role="assistant"):
    block = SimpleNamespace(type="text", text=SimpleNamespace(value=text))
    return SimpleNamespace(role=role, content=[block])


@pytest.fixture
def mock_openai_client(sample_table):
    """OpenAI client double covering chat completions and the assistant workflow."""
    client = MagicMock()

    completion = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=sample_table))]
    )
    client.chat.completions.create.return_value = completion

    client.files.create.return_value = SimpleNamespace(id="file_1")
    client.beta.assistants.create.return_value = SimpleNamespace(id="asst_1")
    client.beta.threads.create.return_value = SimpleNamespace(id="thread_1")
    client.beta.threads.runs.create.return_value = make_run("queued")
    client.beta.threads.runs.retrieve.side_effect = [
        make_run("queued"),
        make_run("in_progress"),
        make_run("in_progress"),
        make_run("completed"),
    ]
    client.beta.threads.messages.list.return_value = SimpleNamespace(
        data=[make_text_message(sample_table)]
    )
    return client


@pytest.fixture
def app(analyzer_config, mock_analyzer):
    """Flask app wired to the analyzer double."""
    flask_app = create_app(analyzer_config, analyzer=mock_analyzer)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def scratch_files(analyzer_config):
    """Lists whatever is left in the scratch folder."""
    def _list():
        folder = analyzer_config.get_effective_upload_folder()
        return os.listdir(folder) if os.path.isdir(folder) else []
    return _list


# Pytest configuration
def pytest_configure(config):
    """Configure pytest."""
    # Add custom markers
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection."""
    # Add markers based on test names
    for item in items:
        if "integration" in item.nodeid:
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)
