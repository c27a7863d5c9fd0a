"""
ABOUTME: Resolves ${...} value expressions and writes their rendered values into paragraphs
ABOUTME: Handles null values, unresolved expressions and line-break placeholders
"""

import sys
from typing import Callable, Optional

from .common import StampingSession, UnresolvedExpressionError, format_text_preview
from .expressions import ExpressionResolver, ExpressionScanner
from .paragraph import (
    ParagraphWrapper,
    create_break_run,
    first_run_properties,
    paragraph_run_properties,
)
from .renderers import TypeResolverRegistry, default_registry, to_run
from .walker import walk

REPLACEMENT_STYLES = ('paragraph', 'token')


class PlaceholderReplacer:
    """
    Replaces value expressions in paragraphs with rendered content.

    Args:
        type_resolvers: Renderer registry for evaluated values
        expression_resolver: Evaluator for expression text
        scanner: Finds value expression tokens
        fail_on_unresolved_expression: Raise on the first unresolved token
            instead of recording it in the session
        leave_empty_on_expression_error: Remove unresolved tokens
        replace_unresolved_expressions: Replace unresolved tokens with
            unresolved_expressions_default
        replace_null_values: Render None results as null_values_default
        line_break_placeholder: Text replaced by a soft line break
        replacement_style: "paragraph" to style new runs like the paragraph
            mark, "token" to take the style of the replaced token
        verbose: Print what happens to every token
    """

    def __init__(self,
                 type_resolvers: Optional[TypeResolverRegistry] = None,
                 expression_resolver: Optional[ExpressionResolver] = None,
                 scanner: Optional[ExpressionScanner] = None,
                 fail_on_unresolved_expression: bool = True,
                 leave_empty_on_expression_error: bool = False,
                 replace_unresolved_expressions: bool = False,
                 unresolved_expressions_default: Optional[str] = None,
                 replace_null_values: bool = False,
                 null_values_default: Optional[str] = None,
                 line_break_placeholder: Optional[str] = None,
                 replacement_style: str = 'paragraph',
                 verbose: bool = False):
        if leave_empty_on_expression_error and replace_unresolved_expressions:
            raise ValueError(
                "leave_empty_on_expression_error and replace_unresolved_expressions "
                "are mutually exclusive"
            )
        if replacement_style not in REPLACEMENT_STYLES:
            raise ValueError(f"Unknown replacement_style: {replacement_style!r}")
        self.type_resolvers = type_resolvers or default_registry()
        self.expression_resolver = expression_resolver or ExpressionResolver()
        self.scanner = scanner or ExpressionScanner('${', '}')
        self.fail_on_unresolved_expression = fail_on_unresolved_expression
        self.leave_empty_on_expression_error = leave_empty_on_expression_error
        self.replace_unresolved_expressions = replace_unresolved_expressions
        self.unresolved_expressions_default = unresolved_expressions_default
        self.replace_null_values = replace_null_values
        self.null_values_default = null_values_default
        self.line_break_placeholder = line_break_placeholder
        self.replacement_style = replacement_style
        self.verbose = verbose

    def resolve_expressions(self, document, context_factory: Callable,
                            session: Optional[StampingSession] = None) -> None:
        """
        Resolve value expressions in every paragraph of the document.

        Args:
            document: python-docx Document
            context_factory: Called with each paragraph, returns the mapping
                expressions are evaluated against
            session: Collects soft errors; paragraphs it lists as resolved are
                skipped. A throwaway session is used if None
        """
        session = session or StampingSession(verbose=self.verbose)

        def on_paragraph(paragraph) -> None:
            # Repeat copies were resolved against their item; what they left is final
            if paragraph in session.resolved_paragraphs:
                return
            self.resolve_expressions_for_paragraph(
                paragraph, context_factory, document, session
            )

        walk(document, on_paragraph=on_paragraph)

    def resolve_expressions_for_paragraph(self, paragraph, context, document,
                                          session: Optional[StampingSession] = None) -> None:
        """
        Resolve the value expressions of one paragraph, in text order.

        Args:
            paragraph: w:p element, attached or not
            context: Evaluation mapping, or a callable producing one per token
            document: Passed to renderers
            session: Collects soft errors
        """
        session = session or StampingSession(verbose=self.verbose)
        session.resolved_paragraphs.add(paragraph)
        wrapper = ParagraphWrapper(paragraph)

        for placeholder in self.scanner.find_expressions(wrapper.get_text()):
            expression = self.scanner.strip_expression(placeholder)
            evaluation_context = context(paragraph) if callable(context) else context
            try:
                value = self.expression_resolver.resolve_expression(expression, evaluation_context)
            except UnresolvedExpressionError as e:
                if self.fail_on_unresolved_expression:
                    raise
                session.record_error(e, "value expression")
                if self.leave_empty_on_expression_error:
                    self.replace(wrapper, placeholder, None)
                elif self.replace_unresolved_expressions:
                    self.replace(wrapper, placeholder, self.unresolved_expressions_default)
                continue

            if value is not None:
                resolver = self.type_resolvers.get_resolver_for_type(type(value))
            elif self.replace_null_values:
                resolver = self.type_resolvers.get_default_resolver()
                value = self.null_values_default
            else:
                if self.verbose:
                    print(f"  [Skip] '{placeholder}' resolved to None, left in place", file=sys.stderr)
                continue

            self.replace(wrapper, placeholder, resolver.resolve(document, value))
            if self.verbose:
                print(f"  [Replaced] '{placeholder}' with {type(resolver).__name__} "
                      f"({format_text_preview(str(value))})", file=sys.stderr)

        if self.line_break_placeholder:
            self.replace_line_breaks(wrapper)

    def replace_line_breaks(self, wrapper: ParagraphWrapper) -> None:
        while self.line_break_placeholder in wrapper.get_text():
            rPr = self._replacement_rpr(wrapper, self.line_break_placeholder)
            if not wrapper.replace(self.line_break_placeholder, create_break_run(rPr)):
                break

    def replace(self, wrapper: ParagraphWrapper, placeholder: str, content) -> bool:
        """
        Put rendered content in place of the first occurrence of placeholder.

        Strings become a new run styled per replacement_style; pre-built runs
        are inserted as copies; None only removes the placeholder.
        """
        rPr = self._replacement_rpr(wrapper, placeholder)
        return wrapper.replace(placeholder, to_run(content, rPr))

    def _replacement_rpr(self, wrapper: ParagraphWrapper, placeholder: str):
        if self.replacement_style == 'token':
            return first_run_properties(wrapper.paragraph, placeholder)
        return paragraph_run_properties(wrapper.paragraph)
