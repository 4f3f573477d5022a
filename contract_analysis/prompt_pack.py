# SPDX-License-Identifier: AGPL-3.0-only

"""
Prompt pack for contract analysis.
"""
from typing import Dict

from .models import ColumnLayout


RULES = """Rules:
1. Each field must be on its own row
2. Do not combine multiple values in one cell
3. If a field has multiple values, create a separate row for each value
4. Keep field names clear and descriptive
5. Format dates as MM/DD/YYYY
6. Include currency symbols for monetary values"""


LAYOUT_PROMPTS: Dict[ColumnLayout, Dict[str, str]] = {
    ColumnLayout.FIELD_VALUE: {
        "task": "extract ALL relevant business contract information",
        "example": (
            "| Field Name | Field Value |\n"
            "|------------|-------------|\n"
            "| Customer Name | Acme Corp |\n"
            "| Contract Start Date | 01/01/2024 |\n"
            "| Service Description | Cloud Hosting |\n"
            "| Payment Terms | Net 30 |\n"
            "| Billing Rate | $100/hour |"
        ),
    },
    ColumnLayout.CATEGORY_DETAILS: {
        "task": "analyze the business contract and group its key terms by category",
        "example": (
            "| Category | Details |\n"
            "|----------|---------|\n"
            "| Parties | Acme Corp and Globex LLC |\n"
            "| Term | 01/01/2024 - 12/31/2025 |\n"
            "| Payment Terms | Net 30 |\n"
            "| Termination | 30 days written notice |"
        ),
    },
}


def build_base_instructions(layout: ColumnLayout = ColumnLayout.FIELD_VALUE) -> str:
    """Core instructions asking the model for a two-column markdown table."""
    pack = LAYOUT_PROMPTS[layout]
    left, right = layout.headers
    return (
        f"Please read the uploaded document and {pack['task']}.\n\n"
        "Return the result as a Markdown table with:\n"
        f"- Column 1: {left}\n"
        f"- Column 2: {right}\n\n"
        f"{RULES}\n\n"
        f"Example format:\n{pack['example']}\n\n"
        "Only return the Markdown table. Do not summarize or explain anything."
    )


def build_analysis_prompt(user_prompt: str = "", layout: ColumnLayout = ColumnLayout.FIELD_VALUE) -> str:
    """
    Build the full instruction text for one analysis.

    The optional user prompt is appended as extra instructions; it may narrow
    or extend what gets extracted but the output format stays the table.
    """
    prompt = build_base_instructions(layout)
    extra = (user_prompt or "").strip()
    if extra:
        prompt += (
            "\n\nADDITIONAL USER INSTRUCTIONS (apply them while keeping the table format):\n"
            f"{extra}"
        )
    return prompt
