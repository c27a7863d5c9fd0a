#!/usr/bin/env python3
"""
ABOUTME: Shared constants, exceptions and data classes for the stamping engine
ABOUTME: Holds WordprocessingML namespaces and the per-stamp session object
"""

import sys
from dataclasses import dataclass, field
from typing import List, Optional, Set


# ============================================================
# Constants
# ============================================================

NS = {
    'w': 'http://schemas.openxmlformats.org/wordprocessingml/2006/main',
}


def w_tag(name: str) -> str:
    """Clark-notation tag for a name in the main WordprocessingML namespace."""
    return f'{{{NS["w"]}}}{name}'


W_P = w_tag('p')
W_R = w_tag('r')
W_T = w_tag('t')
W_TAB = w_tag('tab')
W_BR = w_tag('br')
W_CR = w_tag('cr')
W_RPR = w_tag('rPr')
W_PPR = w_tag('pPr')
W_TC = w_tag('tc')
W_TR = w_tag('tr')
W_TBL = w_tag('tbl')
W_ID = w_tag('id')
W_COMMENT = w_tag('comment')
W_COMMENT_RANGE_START = w_tag('commentRangeStart')
W_COMMENT_RANGE_END = w_tag('commentRangeEnd')
W_COMMENT_REFERENCE = w_tag('commentReference')

XML_SPACE = '{http://www.w3.org/XML/1998/namespace}space'


# ============================================================
# Exceptions
# ============================================================

class DocxStamperError(Exception):
    """Base class for every error raised while stamping a document."""


class UnresolvedExpressionError(DocxStamperError):
    """An expression could not be parsed or evaluated against the context."""

    def __init__(self, expression: str, reason: str = ''):
        self.expression = expression
        self.reason = reason
        message = f"Expression '{expression}' could not be resolved"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ProxyConstructionError(DocxStamperError):
    """The capability proxy around the context root could not be composed."""


class StructuralMutationError(DocxStamperError):
    """A commit-phase edit referenced a detached or already removed element."""


# ============================================================
# Data Classes
# ============================================================

@dataclass
class Comment:
    """Single comment loaded from the comments part"""
    id: str                       # w:id shared by the comment and its range markers
    text: str                     # Directive expression (comment paragraphs joined by newline)
    element: object = None        # The <w:comment> element


@dataclass
class StampingSession:
    """
    State owned by one stamping run.

    Created at the start of DocxStamper.stamp() and discarded afterwards, so
    nothing recorded here leaks into the next run.
    """
    comments: object = None                              # CommentStore for the document
    errors: List[UnresolvedExpressionError] = field(default_factory=list)
    verbose: bool = False
    resolved_paragraphs: Set = field(default_factory=set)  # w:p already given a value pass

    def record_error(self, error: UnresolvedExpressionError, action: str) -> None:
        """Remember a soft error and report it when verbose."""
        self.errors.append(error)
        if self.verbose:
            print(f"  [Skip] {action} '{error.expression}': {error.reason}", file=sys.stderr)


# ============================================================
# Helper Functions
# ============================================================

def sanitize_xml_string(text: Optional[str]) -> Optional[str]:
    """
    Remove control characters that are illegal in XML 1.0.

    Rendered values come from arbitrary user data and end up in <w:t>
    elements, which lxml refuses to serialize with such characters.

    Args:
        text: Text that may contain control characters

    Returns:
        Sanitized text. Returns input unchanged if not a non-empty string.
    """
    if not text or not isinstance(text, str):
        return text
    # Keep: \t (0x09), \n (0x0A), \r (0x0D)
    illegal_chars = ''.join(
        chr(c) for c in range(0x20)
        if c not in (0x09, 0x0A, 0x0D)
    )
    return text.translate(str.maketrans('', '', illegal_chars))


def format_text_preview(text: str, max_len: int = 30) -> str:
    """
    Format text for log output: remove newlines and truncate.

    Args:
        text: Text to format
        max_len: Maximum length before truncation

    Returns:
        Clean, truncated text with "..." suffix if truncated
    """
    clean = text.replace('\n', ' ').replace('\r', '').replace('\t', ' ')
    while '  ' in clean:
        clean = clean.replace('  ', ' ')
    clean = clean.strip()
    if len(clean) > max_len:
        return clean[:max_len] + "..."
    return clean
