"""Document-order traversal of paragraphs and their runs."""

from typing import Callable, List, Optional

from docx.opc.constants import RELATIONSHIP_TYPE as RT

from .common import W_P, W_R


def iter_section_roots(document) -> List:
    """
    Return the XML roots of every section in document order.

    Headers come first, then the body, then footers, which is the order the
    relationships of the main document part expose them in Word's model.
    Each header/footer part is visited once even if several sections refer
    to it.
    """
    roots = []
    seen = set()
    rels = list(document.part.rels.values())

    def collect(reltype: str) -> None:
        for rel in rels:
            if rel.is_external or rel.reltype != reltype:
                continue
            part = rel.target_part
            if id(part) in seen:
                continue
            seen.add(id(part))
            element = getattr(part, 'element', None)
            if element is not None:
                roots.append(element)

    collect(RT.HEADER)
    roots.append(document.element.body)
    collect(RT.FOOTER)
    return roots


def extract_paragraphs(source) -> List:
    """
    Collect every w:p in document order, nested ones included.

    Args:
        source: A python-docx Document (all sections) or a bare lxml element

    Returns:
        Snapshot list of paragraph elements
    """
    if hasattr(source, 'part') and hasattr(source, 'element'):
        roots = iter_section_roots(source)
    else:
        roots = [source]

    paragraphs = []
    for root in roots:
        if root.tag == W_P:
            paragraphs.append(root)
        paragraphs.extend(p for p in root.iter(W_P) if p is not root)
    return paragraphs


def walk(source,
         on_paragraph: Optional[Callable] = None,
         on_run: Optional[Callable] = None) -> None:
    """
    Visit every run, then its paragraph, for all paragraphs of the source.

    Callbacks may edit the runs of the paragraph being visited: the child
    list is copied before iteration. Runs are only direct w:r children;
    runs wrapped in hyperlinks, bookmarks or revision marks are skipped.
    """
    for paragraph in extract_paragraphs(source):
        # Copy so callbacks can split or remove runs while we iterate
        content = list(paragraph)

        if on_run is not None:
            for element in content:
                if element.tag == W_R:
                    on_run(element, paragraph)

        # Paragraph afterwards so that comments on runs are handled before
        # comments on the whole paragraph
        if on_paragraph is not None:
            on_paragraph(paragraph)


class CoordinatesWalker:
    """Callback-style walker; subclasses override on_paragraph / on_run."""

    def __init__(self, document):
        self.document = document

    def walk(self) -> None:
        walk(self.document, self.on_paragraph, self.on_run)

    def on_paragraph(self, paragraph) -> None:
        pass

    def on_run(self, run, paragraph) -> None:
        pass
