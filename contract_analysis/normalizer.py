# SPDX-License-Identifier: AGPL-3.0-only

"""
Response normalization: turn a language-model answer into spreadsheet rows.

The model is asked for a two-column markdown table but answers vary, so the
parser tries, in order: JSON, a pipe table, and line heuristics. Whatever
happens it returns at least one row.
"""
import json
import logging
import re
from typing import Any, List, Optional, Tuple

from .models import Row

logger = logging.getLogger(__name__)

FALLBACK_LABEL = "Raw Output"

SEPARATOR_LINE = re.compile(r'^\s*\|?\s*:?-{2,}:?\s*(\|\s*:?-{2,}:?\s*)*\|?\s*$')
MARKDOWN_HEADING = re.compile(r'^#{1,6}\s*(.+?)\s*#*$')
BOLD_HEADING = re.compile(r'^\*\*(.+?)\*\*\s*:?$')
CAPITALIZED_HEADING = re.compile(r"^([A-Z][\w&/'()\-]*(?:\s+[A-Z0-9&(][\w&/'()\-]*)*)\s*:$")
LIST_MARKER = re.compile(r'^(?:[-*+•]\s+|\d+[.)]\s+)')


def fallback_rows(text: str) -> List[Row]:
    """Single row carrying the raw model output."""
    return [Row(label=FALLBACK_LABEL, value=text or "")]


def _strip_code_fences(text: str) -> str:
    t = text.strip()
    if t.startswith("```") and t.endswith("```") and len(t) >= 6:
        t = t[3:-3]
        first_newline = t.find("\n")
        # drop a language tag such as ```json or ```markdown
        if first_newline != -1 and re.fullmatch(r'[A-Za-z]*', t[:first_newline].strip()):
            t = t[first_newline + 1:]
        t = t.strip()
    return t


def rows_from_json(text: str) -> Optional[List[Row]]:
    """
    Interpret the whole text as JSON.

    Returns None when the text is not JSON or is a JSON scalar.
    """
    try:
        data = json.loads(text)
    except (ValueError, TypeError):
        return None

    if isinstance(data, list):
        rows = []
        for item in data:
            if isinstance(item, dict):
                rows.append(Row.from_mapping(item))
            else:
                rows.append(Row(label=_to_text(item), value=""))
        return rows

    if isinstance(data, dict):
        return [Row(label=str(key), value=_to_text(value)) for key, value in data.items()]

    return None


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _split_cells(line: str) -> List[str]:
    return [cell.strip() for cell in line.split("|") if cell.strip()]


def rows_from_markdown_table(text: str) -> Optional[List[Row]]:
    """
    Parse a two-column markdown table.

    The dashed separator line is dropped and every other pipe line yields its
    first two non-empty cells. Lines with fewer than two cells are skipped.
    Returns None when the text has no table.
    """
    lines = [line for line in text.split("\n") if line.strip() and "|" in line]
    if not any(SEPARATOR_LINE.match(line) for line in lines):
        return None

    rows = []
    for line in lines:
        if SEPARATOR_LINE.match(line):
            continue
        cells = _split_cells(line)
        if len(cells) >= 2:
            rows.append(Row(label=cells[0], value=cells[1]))
    return rows or None


def _heading_text(line: str) -> Optional[str]:
    """Return the heading title if the line starts a new section."""
    m = MARKDOWN_HEADING.match(line)
    if m:
        return _strip_emphasis(m.group(1)).rstrip(":").strip()
    m = BOLD_HEADING.match(line)
    if m:
        return m.group(1).rstrip(":").strip()
    m = CAPITALIZED_HEADING.match(line)
    if m:
        return m.group(1).strip()
    return None


def _strip_emphasis(text: str) -> str:
    return text.replace("**", "").replace("__", "").strip()


def _split_key_value(line: str) -> Tuple[Optional[str], str]:
    """Split on the first colon that is not part of a URL scheme."""
    for m in re.finditer(":", line):
        idx = m.start()
        if line[idx + 1:idx + 3] == "//":
            continue
        key = _strip_emphasis(line[:idx])
        value = _strip_emphasis(line[idx + 1:])
        if key:
            return key, value
        break
    return None, line


def rows_from_sections(text: str) -> Optional[List[Row]]:
    """
    Line-oriented heuristics for loosely structured answers.

    Lines before the first heading are emitted first, then each section as a
    label-only header row followed by its member rows. Returns None when no
    key/value pair and no heading was found, i.e. the text is plain prose.
    """
    preamble: List[Row] = []
    sections: List[Tuple[str, List[Row]]] = []
    found_structure = False

    for raw in text.split("\n"):
        line = raw.strip()
        if not line or SEPARATOR_LINE.match(line):
            continue

        heading = _heading_text(line)
        if heading:
            sections.append((heading, []))
            found_structure = True
            continue

        line = LIST_MARKER.sub("", line)
        key, value = _split_key_value(line)
        if key is not None:
            row = Row(label=key, value=value)
            found_structure = True
        else:
            row = Row(label="", value=_strip_emphasis(value))

        if sections:
            sections[-1][1].append(row)
        else:
            preamble.append(row)

    if not found_structure:
        return None

    rows = list(preamble)
    for title, members in sections:
        rows.append(Row(label=title, value=""))
        rows.extend(members)
    return rows


def parse_analysis_rows(text: Optional[str]) -> List[Row]:
    """
    Normalize a model answer into an ordered list of rows.

    Never raises: malformed or unexpected output degrades to a single
    ``Raw Output`` row holding the original text.
    """
    if text is None or not str(text).strip():
        return fallback_rows(text or "")

    try:
        cleaned = _strip_code_fences(str(text))
        for strategy in (rows_from_json, rows_from_markdown_table, rows_from_sections):
            rows = strategy(cleaned)
            if rows:
                logger.debug("Parsed %d rows using %s", len(rows), strategy.__name__)
                return rows
    except Exception:
        logger.exception("Failed to parse model output; using raw text fallback")

    return fallback_rows(str(text))
