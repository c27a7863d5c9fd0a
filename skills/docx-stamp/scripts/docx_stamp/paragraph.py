"""Run and paragraph helpers: text access, run creation and span replacement."""

import copy
from dataclasses import dataclass
from typing import List, Optional

from lxml import etree

from .common import (
    NS,
    W_BR,
    W_CR,
    W_P,
    W_PPR,
    W_R,
    W_RPR,
    W_T,
    W_TAB,
    XML_SPACE,
    sanitize_xml_string,
)

_TEXT_TAGS = (W_T, W_TAB, W_BR, W_CR)
_W_NSMAP = {'w': NS['w']}


# ============================================================
# Run helpers
# ============================================================

def get_run_text(run_elem) -> str:
    """
    Text of a run as it reads in the paragraph.

    <w:tab/> counts as "\\t", <w:br/> and <w:cr/> as "\\n". Page and column
    breaks are line breaks too as far as offsets are concerned.
    """
    parts = []
    for child in run_elem:
        tag = child.tag
        if tag == W_T:
            parts.append(child.text or '')
        elif tag == W_TAB:
            parts.append('\t')
        elif tag in (W_BR, W_CR):
            parts.append('\n')
    return ''.join(parts)


def set_run_text(run_elem, text: str) -> None:
    """
    Replace the text-bearing children of a run, keeping w:rPr and any other
    content (drawings, field chars) in place.
    """
    insert_at = None
    for child in list(run_elem):
        if child.tag in _TEXT_TAGS:
            if insert_at is None:
                insert_at = list(run_elem).index(child)
            run_elem.remove(child)

    if insert_at is None:
        rPr = run_elem.find(W_RPR)
        insert_at = 1 if rPr is not None else 0

    for offset, elem in enumerate(_text_elements(text)):
        run_elem.insert(insert_at + offset, elem)


def _text_elements(text: str) -> List[etree._Element]:
    """Split text into w:t / w:tab / w:br elements."""
    elements = []
    buffer = []

    def flush() -> None:
        if not buffer:
            return
        t = etree.Element(W_T, nsmap=_W_NSMAP)
        t.set(XML_SPACE, 'preserve')
        t.text = sanitize_xml_string(''.join(buffer))
        elements.append(t)
        buffer.clear()

    for ch in text or '':
        if ch == '\t':
            flush()
            elements.append(etree.Element(W_TAB, nsmap=_W_NSMAP))
        elif ch == '\n':
            flush()
            elements.append(etree.Element(W_BR, nsmap=_W_NSMAP))
        elif ch != '\r':
            buffer.append(ch)
    flush()
    return elements


def create_run(text: str = '', rPr=None) -> etree._Element:
    """Create a new w:r with the given text and an optional copy of rPr."""
    run = etree.Element(W_R, nsmap=_W_NSMAP)
    if rPr is not None:
        run.append(copy.deepcopy(rPr))
    for elem in _text_elements(text):
        run.append(elem)
    return run


def create_break_run(rPr=None) -> etree._Element:
    """Create a run holding a single soft line break."""
    run = etree.Element(W_R, nsmap=_W_NSMAP)
    if rPr is not None:
        run.append(copy.deepcopy(rPr))
    etree.SubElement(run, W_BR)
    return run


def paragraph_run_properties(paragraph_elem):
    """Run properties of the paragraph mark (w:pPr/w:rPr), if any."""
    pPr = paragraph_elem.find(W_PPR)
    if pPr is None:
        return None
    return pPr.find(W_RPR)


def apply_run_properties(run_elem, rPr) -> None:
    """Replace the w:rPr of a run with a copy of rPr (or drop it when None)."""
    existing = run_elem.find(W_RPR)
    if existing is not None:
        run_elem.remove(existing)
    if rPr is not None:
        run_elem.insert(0, copy.deepcopy(rPr))


def create_paragraph(*texts: str) -> etree._Element:
    """Create a new paragraph, one run per text."""
    p = etree.Element(W_P, nsmap=_W_NSMAP)
    for text in texts:
        p.append(create_run(text))
    return p


# ============================================================
# Paragraph wrapper
# ============================================================

@dataclass
class IndexedRun:
    """A direct run of a paragraph with its character span in the paragraph text"""
    run: object
    start: int          # inclusive
    end: int            # exclusive

    def covers(self, start: int, end: int) -> bool:
        """True if [start, end) overlaps this run's span"""
        return self.end > start and self.start < end


class ParagraphWrapper:
    """
    View of a paragraph as one string over its direct runs.

    Offsets are rebuilt from the live XML after every replacement, so several
    tokens in the same paragraph can be replaced one after the other.
    """

    def __init__(self, paragraph):
        self.paragraph = paragraph
        self.runs: List[IndexedRun] = []
        self._text = ''
        self.recalculate_runs()

    def recalculate_runs(self) -> None:
        self.runs = []
        pos = 0
        parts = []
        for child in self.paragraph:
            if child.tag != W_R:
                continue
            text = get_run_text(child)
            self.runs.append(IndexedRun(child, pos, pos + len(text)))
            parts.append(text)
            pos += len(text)
        self._text = ''.join(parts)

    def get_text(self) -> str:
        return self._text

    def affected_runs(self, start: int, end: int) -> List[IndexedRun]:
        return [r for r in self.runs if r.covers(start, end)]

    def replace(self, placeholder: str, replacement) -> bool:
        """
        Replace the first occurrence of placeholder with replacement.

        Args:
            placeholder: Literal text to find in the paragraph text
            replacement: A w:r element, or None to just delete the text

        Returns:
            True if the placeholder was found and replaced
        """
        match_start = self._text.find(placeholder)
        if match_start == -1 or not placeholder:
            return False
        match_end = match_start + len(placeholder)

        affected = self.affected_runs(match_start, match_end)
        if not affected:
            return False

        if len(affected) == 1:
            self._replace_in_single_run(affected[0], match_start, match_end, replacement)
        else:
            self._replace_across_runs(affected, match_start, match_end, replacement)

        self.recalculate_runs()
        return True

    def _replace_in_single_run(self, indexed: IndexedRun, match_start: int,
                               match_end: int, replacement) -> None:
        run = indexed.run
        text = get_run_text(run)
        local_start = match_start - indexed.start
        local_end = match_end - indexed.start
        before = text[:local_start]
        after = text[local_end:]

        if not before and not after:
            # Token is the whole run
            if replacement is not None:
                run.addprevious(replacement)
            self.paragraph.remove(run)
        elif not before:
            set_run_text(run, after)
            if replacement is not None:
                run.addprevious(replacement)
        elif not after:
            set_run_text(run, before)
            if replacement is not None:
                run.addnext(replacement)
        else:
            # Token inside the run: the run keeps the head, a new run with its rPr the tail
            tail = create_run(after, run.find(W_RPR))
            set_run_text(run, before)
            run.addnext(tail)
            if replacement is not None:
                run.addnext(replacement)

    def _replace_across_runs(self, affected: List[IndexedRun], match_start: int,
                             match_end: int, replacement) -> None:
        first = affected[0]
        last = affected[-1]

        first_keep = get_run_text(first.run)[:match_start - first.start]
        last_keep = get_run_text(last.run)[match_end - last.start:]

        for indexed in affected[1:-1]:
            self.paragraph.remove(indexed.run)

        if last_keep:
            set_run_text(last.run, last_keep)
        else:
            self.paragraph.remove(last.run)

        if first_keep:
            set_run_text(first.run, first_keep)
            if replacement is not None:
                first.run.addnext(replacement)
        else:
            if replacement is not None:
                first.run.addprevious(replacement)
            self.paragraph.remove(first.run)


def get_paragraph_text(paragraph) -> str:
    """Concatenated text of the paragraph's direct runs."""
    return ''.join(get_run_text(child) for child in paragraph if child.tag == W_R)


def first_run_properties(paragraph, placeholder: str) -> Optional[object]:
    """w:rPr of the first run covered by placeholder, used by the "token" style policy."""
    wrapper = ParagraphWrapper(paragraph)
    start = wrapper.get_text().find(placeholder)
    if start == -1:
        return None
    affected = wrapper.affected_runs(start, start + len(placeholder))
    if not affected:
        return None
    return affected[0].run.find(W_RPR)
