"""
ABOUTME: Word comments as directive carriers
ABOUTME: Loads comments, binds them to runs or paragraph ranges, deletes them once consumed
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from docx.opc.constants import RELATIONSHIP_TYPE as RT
from lxml import etree

from .common import (
    W_COMMENT,
    W_COMMENT_RANGE_END,
    W_COMMENT_RANGE_START,
    W_COMMENT_REFERENCE,
    W_ID,
    W_P,
    W_R,
    W_RPR,
    Comment,
)
from .paragraph import get_paragraph_text
from .walker import iter_section_roots


# ============================================================
# Comment store
# ============================================================

class CommentStore:
    """
    All comments of one document, keyed by w:id.

    ``lookup`` only returns comments that are still pending. ``remove`` takes
    a comment out of the pending map right after a directive consumed it so
    that no other element can trigger it a second time; ``delete`` removes
    it from the document itself.
    """

    def __init__(self, document):
        self.document = document
        self._part = None
        self._root = None
        self._dirty = False
        self._pending: Dict[str, Comment] = {}
        self._load()

    def _load(self) -> None:
        try:
            self._part = self.document.part.part_related_by(RT.COMMENTS)
        except KeyError:
            return

        # python-docx exposes comments.xml either as an XmlPart or as a raw Part
        self._root = getattr(self._part, 'element', None)
        if self._root is None:
            self._root = etree.fromstring(self._part.blob)

        for comment_elem in self._root.iter(W_COMMENT):
            cid = comment_elem.get(W_ID)
            if cid is None:
                continue
            paragraphs = [get_paragraph_text(p) for p in comment_elem.iter(W_P)]
            text = '\n'.join(paragraphs).strip()
            self._pending[cid] = Comment(id=cid, text=text, element=comment_elem)

    def lookup(self, comment_id: Optional[str]) -> Optional[Comment]:
        if comment_id is None:
            return None
        return self._pending.get(comment_id)

    def remove(self, comment_id: str) -> None:
        self._pending.pop(comment_id, None)

    def pending_ids(self) -> List[str]:
        return list(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    def delete(self, comment: Comment) -> None:
        """
        Remove every trace of a comment: range markers and reference runs in
        all sections (clones included) and the w:comment in comments.xml.
        """
        self._pending.pop(comment.id, None)

        for root in iter_section_roots(self.document):
            for tag in (W_COMMENT_RANGE_START, W_COMMENT_RANGE_END):
                for marker in list(root.iter(tag)):
                    if marker.get(W_ID) == comment.id:
                        _detach(marker)
            for reference in list(root.iter(W_COMMENT_REFERENCE)):
                if reference.get(W_ID) != comment.id:
                    continue
                run = reference.getparent()
                if run is not None and run.tag == W_R and _only_reference(run):
                    _detach(run)
                else:
                    _detach(reference)

        if comment.element is not None and comment.element.getparent() is not None:
            comment.element.getparent().remove(comment.element)
            self._dirty = True

    def save(self) -> None:
        """Write comments.xml back when it is held as a raw blob."""
        if not self._dirty or self._part is None:
            return
        if getattr(self._part, 'element', None) is None:
            self._part._blob = etree.tostring(self._root, xml_declaration=True, encoding='UTF-8')
        self._dirty = False


def _detach(elem) -> None:
    parent = elem.getparent()
    if parent is not None:
        parent.remove(elem)


def _only_reference(run) -> bool:
    """True if the run holds nothing but run properties and a comment reference."""
    return all(child.tag in (W_RPR, W_COMMENT_REFERENCE) for child in run)


# ============================================================
# Binding comments to runs and paragraphs
# ============================================================

def comment_around_run(run) -> Optional[str]:
    """
    Id of the comment that wraps exactly this run.

    The run must be immediately preceded by a w:commentRangeStart and
    immediately followed by the w:commentRangeEnd with the same id.
    """
    previous = run.getprevious()
    following = run.getnext()
    if previous is None or following is None:
        return None
    if previous.tag != W_COMMENT_RANGE_START or following.tag != W_COMMENT_RANGE_END:
        return None
    cid = previous.get(W_ID)
    if cid is None or following.get(W_ID) != cid:
        return None
    return cid


def _is_run_bound_start(marker) -> bool:
    run = marker.getnext()
    return run is not None and run.tag == W_R and comment_around_run(run) == marker.get(W_ID)


def comment_for_paragraph(paragraph) -> Optional[str]:
    """
    Id of the first comment anchored to the paragraph as a whole.

    A start marker counts when its end marker is not in the paragraph (the
    comment spans following paragraphs) or when it wraps more than a single
    run. Markers wrapping exactly one run belong to that run.
    """
    for child in paragraph:
        if child.tag != W_COMMENT_RANGE_START:
            continue
        if _is_run_bound_start(child):
            continue
        return child.get(W_ID)
    return None


# ============================================================
# Comment ranges
# ============================================================

class RangeExtent(Enum):
    BOUNDED = 'bounded'
    # No end marker was found: the range runs to the end of the parent
    # container (not beyond it into ancestors)
    UNBOUNDED_TO_CONTAINER_END = 'unbounded_to_container_end'


@dataclass
class CommentRange:
    """Elements covered by a comment that starts in a paragraph"""
    comment_id: Optional[str]
    extent: RangeExtent
    elements: List = field(default_factory=list)

    @property
    def bounded(self) -> bool:
        return self.extent is RangeExtent.BOUNDED

    @property
    def paragraphs(self) -> List:
        return [e for e in self.elements if e.tag == W_P]


def _has_end_marker(container, comment_id: str) -> bool:
    for child in container:
        if child.tag == W_COMMENT_RANGE_END and child.get(W_ID) == comment_id:
            return True
    return False


def elements_inside_comment(paragraph, comment_id: Optional[str] = None) -> CommentRange:
    """
    Collect the paragraph and the following siblings covered by a comment.

    Args:
        paragraph: Paragraph holding the w:commentRangeStart
        comment_id: Comment to follow; defaults to the last start marker in
            the paragraph

    Returns:
        CommentRange. Scanning stops at a sibling end marker (not collected)
        or at a sibling container holding the end marker as a direct child
        (collected). With no end marker the rest of the parent container is
        collected and the extent is UNBOUNDED_TO_CONTAINER_END.
    """
    if comment_id is None:
        for child in paragraph:
            if child.tag == W_COMMENT_RANGE_START:
                comment_id = child.get(W_ID)

    elements = [paragraph]
    if comment_id is None or _has_end_marker(paragraph, comment_id):
        return CommentRange(comment_id, RangeExtent.BOUNDED, elements)

    parent = paragraph.getparent()
    if parent is None:
        return CommentRange(comment_id, RangeExtent.UNBOUNDED_TO_CONTAINER_END, elements)

    sibling = paragraph.getnext()
    while sibling is not None:
        if sibling.tag == W_COMMENT_RANGE_END and sibling.get(W_ID) == comment_id:
            return CommentRange(comment_id, RangeExtent.BOUNDED, elements)
        if isinstance(sibling.tag, str):
            elements.append(sibling)
            if _has_end_marker(sibling, comment_id):
                return CommentRange(comment_id, RangeExtent.BOUNDED, elements)
        sibling = sibling.getnext()

    return CommentRange(comment_id, RangeExtent.UNBOUNDED_TO_CONTAINER_END, elements)


def paragraphs_inside_comment(paragraph, comment_id: Optional[str] = None) -> CommentRange:
    """Same scan as elements_inside_comment, keeping only paragraphs."""
    found = elements_inside_comment(paragraph, comment_id)
    return CommentRange(found.comment_id, found.extent, found.paragraphs)
