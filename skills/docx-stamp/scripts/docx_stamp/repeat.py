"""
ABOUTME: repeat_paragraph directive: one copy of the commented paragraphs per collection item
ABOUTME: Copies are resolved against their item and inserted in the commit phase
"""

import copy
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

from .comments import paragraphs_inside_comment
from .common import StructuralMutationError
from .paragraph import create_paragraph, paragraph_run_properties, apply_run_properties
from .processor import BaseCommentProcessor
from .proxy import ProxyBuilder


class IParagraphRepeatProcessor(ABC):

    @abstractmethod
    def repeat_paragraph(self, items) -> None:
        """Repeat the paragraphs covered by the comment once for every item."""


@dataclass
class _PendingRepeat:
    items: Optional[List]
    templates: List


class ParagraphRepeatProcessor(BaseCommentProcessor, IParagraphRepeatProcessor):
    """
    Expands a commented paragraph range once per item of a collection.

    Args:
        placeholder_replacer: Resolves value expressions inside the copies
        expression_functions: Builder carrying the capabilities exposed to
            the expression language; each copy is resolved against
            ``expression_functions.copy(item).build()``
        replace_null_values: With null_values_default, render a None
            collection as one paragraph holding the default text
        null_values_default: Text of that paragraph
    """

    def __init__(self, placeholder_replacer,
                 expression_functions: Optional[ProxyBuilder] = None,
                 replace_null_values: bool = False,
                 null_values_default: Optional[str] = None):
        super().__init__()
        self.placeholder_replacer = placeholder_replacer
        self.expression_functions = expression_functions or ProxyBuilder()
        self.replace_null_values = replace_null_values
        self.null_values_default = null_values_default
        self._pending: Dict[object, _PendingRepeat] = {}

    def repeat_paragraph(self, items) -> None:
        if self.paragraph is None:
            return
        if items is not None:
            items = list(items)
        comment_id = self.current_comment.id if self.current_comment is not None else None
        found = paragraphs_inside_comment(self.paragraph, comment_id)
        self._pending[self.paragraph] = _PendingRepeat(items, found.paragraphs)

    def commit(self, document) -> None:
        verbose = self.session is not None and self.session.verbose

        for anchor, pending in self._pending.items():
            parent = anchor.getparent()
            if parent is None:
                raise StructuralMutationError(
                    "repeat_paragraph anchor was removed before its commit "
                    "(nested inside another repeated range?)"
                )

            if pending.items is None:
                new_paragraphs = self._null_default(anchor)
            else:
                new_paragraphs = []
                for item in pending.items:
                    context = self.expression_functions.copy(item).build()
                    for template in pending.templates:
                        clone = copy.deepcopy(template)
                        self.placeholder_replacer.resolve_expressions_for_paragraph(
                            clone, context, document, self.session
                        )
                        new_paragraphs.append(clone)

            for paragraph in new_paragraphs:
                anchor.addprevious(paragraph)
            for template in pending.templates:
                template_parent = template.getparent()
                if template_parent is not None:
                    template_parent.remove(template)

            if verbose:
                count = 'None' if pending.items is None else len(pending.items)
                print(f"  [Repeat] {len(pending.templates)} paragraph(s) x {count} item(s)",
                      file=sys.stderr)

    def _null_default(self, anchor) -> List:
        if not self.replace_null_values or self.null_values_default is None:
            return []
        paragraph = create_paragraph(self.null_values_default)
        rPr = paragraph_run_properties(anchor)
        if rPr is not None:
            apply_run_properties(paragraph[0], rPr)
        return [paragraph]

    def reset(self) -> None:
        self._pending = {}
        self.unbind()
