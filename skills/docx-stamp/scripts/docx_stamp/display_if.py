"""
ABOUTME: display_*_if directives: drop paragraphs, table rows or tables on a falsy condition
ABOUTME: Removal is recorded while walking and applied in the commit phase
"""

import sys
from abc import ABC, abstractmethod
from typing import List

from .common import W_P, W_PPR, W_TBL, W_TC, W_TR, StructuralMutationError
from .processor import BaseCommentProcessor


class IDisplayIfProcessor(ABC):

    @abstractmethod
    def display_paragraph_if(self, condition) -> None:
        """Keep the commented paragraph only if condition is truthy."""

    @abstractmethod
    def display_table_row_if(self, condition) -> None:
        """Keep the table row around the commented paragraph only if condition is truthy."""

    @abstractmethod
    def display_table_if(self, condition) -> None:
        """Keep the table around the commented paragraph only if condition is truthy."""


def _enclosing(elem, tag: str):
    """Nearest ancestor with the given tag, or None."""
    parent = elem.getparent()
    while parent is not None and parent.tag != tag:
        parent = parent.getparent()
    return parent


def _append_once(targets: List, elem) -> None:
    if not any(t is elem for t in targets):
        targets.append(elem)


class DisplayIfProcessor(BaseCommentProcessor, IDisplayIfProcessor):

    def __init__(self):
        super().__init__()
        self._paragraphs: List = []
        self._rows: List = []
        self._tables: List = []

    def display_paragraph_if(self, condition) -> None:
        if condition or self.paragraph is None:
            return
        _append_once(self._paragraphs, self.paragraph)

    def display_table_row_if(self, condition) -> None:
        if condition or self.paragraph is None:
            return
        row = _enclosing(self.paragraph, W_TR)
        if row is not None:
            _append_once(self._rows, row)

    def display_table_if(self, condition) -> None:
        if condition or self.paragraph is None:
            return
        table = _enclosing(self.paragraph, W_TBL)
        if table is not None:
            _append_once(self._tables, table)

    def commit(self, document) -> None:
        for paragraph in self._paragraphs:
            self._remove_paragraph(paragraph)
        for elem in self._rows + self._tables:
            self._remove(elem)

        if self.session is not None and self.session.verbose:
            print(f"  [DisplayIf] removed {len(self._paragraphs)} paragraph(s), "
                  f"{len(self._rows)} row(s), {len(self._tables)} table(s)", file=sys.stderr)

    def _remove_paragraph(self, paragraph) -> None:
        parent = paragraph.getparent()
        if parent is None:
            raise StructuralMutationError("display_paragraph_if target is no longer in the document")
        # A table cell must end with a paragraph
        if parent.tag == W_TC and len(parent.findall(W_P)) == 1:
            for child in list(paragraph):
                if child.tag != W_PPR:
                    paragraph.remove(child)
            return
        parent.remove(paragraph)

    def _remove(self, elem) -> None:
        parent = elem.getparent()
        if parent is None:
            raise StructuralMutationError(f"display_if target {elem.tag} is no longer in the document")
        parent.remove(elem)

    def reset(self) -> None:
        self._paragraphs = []
        self._rows = []
        self._tables = []
        self.unbind()
