"""
Line Normalizer Module
Turns a raw statement text blob into ordered logical lines, recovering line
boundaries when the upstream extractor lost them.
"""

import re
import logging
from typing import NamedTuple, Optional

from ..config import config

logger = logging.getLogger(__name__)

PAGE_BREAK = "\f"

# \r\n first so it is consumed as a single break
LINE_BREAK_PATTERN = re.compile(r'\r\n|[\n\r\x0b\x85\u2028\u2029]')
WHITESPACE_RUN_PATTERN = re.compile(r'\s{2,}')
PAGE_MARKER_PATTERN = re.compile(r'^Page\s+\d+\s+of\s+\d+$', re.IGNORECASE)

DATE_BOUNDARY_PATTERN = re.compile(r'(?<!\d)(?=\d{2}/\d{2}/\d{4})')
DATE_LED_PATTERN = re.compile(r'^\d{2}/\d{2}/\d{4}')

# Column header glued together when the PDF lost its line breaks
COLUMN_HEADER_PATTERN = re.compile(r'DateDescription|Money In Money Out', re.IGNORECASE)
HEADER_END_PATTERN = re.compile(r'Balance', re.IGNORECASE)


class LogicalLine(NamedTuple):
    """A single normalized line, optionally tagged with its source page."""
    text: str
    page_number: Optional[int] = None

    def __str__(self) -> str:
        return self.text


def _clean(line: str) -> str:
    return WHITESPACE_RUN_PATTERN.sub(" ", line).strip()


def _split_physical_lines(raw_text: str) -> list[LogicalLine]:
    pages = raw_text.split(PAGE_BREAK)
    paginated = len(pages) > 1
    lines = []

    for page_index, page_text in enumerate(pages, 1):
        page_number = page_index if paginated else None
        for physical in LINE_BREAK_PATTERN.split(page_text):
            text = _clean(physical)
            if not text:
                continue
            if PAGE_MARKER_PATTERN.match(text):
                logger.debug(f"Dropping page marker: {text}")
                continue
            lines.append(LogicalLine(text, page_number))

    return lines


def _split_on_dates(text: str, date_led_only: bool = False) -> list[str]:
    chunks = [chunk.strip() for chunk in DATE_BOUNDARY_PATTERN.split(text)]
    chunks = [chunk for chunk in chunks if chunk]
    if date_led_only:
        chunks = [chunk for chunk in chunks if DATE_LED_PATTERN.match(chunk)]
    return chunks


def _recover_line(line: LogicalLine, section_marker: str) -> list[LogicalLine]:
    """Re-split a run-on line at date boundaries."""
    text, page_number = line
    marker_index = text.lower().find(section_marker.lower())

    if marker_index < 0:
        return [LogicalLine(chunk, page_number) for chunk in _split_on_dates(text)]

    recovered = []
    preamble = text[:marker_index].strip()
    if preamble:
        recovered.append(LogicalLine(preamble, page_number))
    recovered.append(LogicalLine(section_marker, page_number))

    remainder_start = marker_index + len(section_marker)
    header = COLUMN_HEADER_PATTERN.search(text, remainder_start)
    if header:
        header_end = HEADER_END_PATTERN.search(text, header.end())
        if header_end:
            remainder_start = header_end.end()

    remainder = text[remainder_start:]
    recovered.extend(
        LogicalLine(chunk, page_number)
        for chunk in _split_on_dates(remainder, date_led_only=True)
    )
    return recovered


def normalize(raw_text: str, section_marker: Optional[str] = None) -> list[LogicalLine]:
    """
    Normalize raw statement text into ordered logical lines.

    Args:
        raw_text: Text as produced by the document decoder. Form feeds
            separate pages.
        section_marker: Phrase introducing the transaction listing

    Returns:
        Logical lines in document order
    """
    if not raw_text:
        return []

    if section_marker is None:
        section_marker = config.SECTION_MARKER

    lines = _split_physical_lines(raw_text)

    # Two or fewer lines means the decoder produced one run-on blob
    if len(lines) <= 2:
        logger.info(f"Only {len(lines)} line(s) after normalization, splitting on date boundaries")
        recovered = []
        for line in lines:
            recovered.extend(_recover_line(line, section_marker))
        lines = recovered

    logger.debug(f"Normalized text into {len(lines)} logical lines")
    return lines
