"""
ABOUTME: Dispatches comment-bound and inline directive expressions to registered processors
ABOUTME: Evaluation happens during the walk; structural edits happen in the commit phase
"""

import sys
from typing import List, Optional, Tuple

from .comments import CommentStore, comment_around_run, comment_for_paragraph
from .common import (
    Comment,
    StampingSession,
    UnresolvedExpressionError,
    format_text_preview,
)
from .expressions import ExpressionResolver, ExpressionScanner
from .paragraph import ParagraphWrapper
from .processor import BaseCommentProcessor, ICommentProcessor
from .proxy import ProxyBuilder
from .walker import CoordinatesWalker


class CommentProcessorRegistry:
    """
    Holds the directive processors of a stamper and runs them over a document.

    Args:
        expression_resolver: Evaluator for directive expressions
        placeholder_replacer: Removes inline directive tokens once evaluated
        processor_scanner: Finds inline directive tokens (``#{...}``)
        fail_on_unresolved_expression: Raise on the first directive that
            cannot be evaluated instead of recording it
        verbose: Print every evaluated and committed directive
    """

    def __init__(self,
                 expression_resolver: ExpressionResolver,
                 placeholder_replacer,
                 processor_scanner: Optional[ExpressionScanner] = None,
                 fail_on_unresolved_expression: bool = True,
                 verbose: bool = False):
        self.expression_resolver = expression_resolver
        self.placeholder_replacer = placeholder_replacer
        self.processor_scanner = processor_scanner or ExpressionScanner('#{', '}')
        self.fail_on_unresolved_expression = fail_on_unresolved_expression
        self.verbose = verbose
        self._processors: List[Tuple[type, ICommentProcessor]] = []

    def register_comment_processor(self, interface, processor: ICommentProcessor) -> None:
        """
        Register processor under a capability interface.

        Registration order is commit order. Registering the same interface
        again replaces the earlier processor in place.
        """
        for i, (registered, _) in enumerate(self._processors):
            if registered is interface:
                self._processors[i] = (interface, processor)
                return
        self._processors.append((interface, processor))

    @property
    def processors(self) -> List[ICommentProcessor]:
        return [processor for _, processor in self._processors]

    def run_processors(self, document, proxy_builder: ProxyBuilder,
                       session: Optional[StampingSession] = None) -> None:
        """
        Evaluate every directive of the document, then commit all processors.

        Comments are consumed at most once: a comment leaves the pending map
        as soon as its expression was evaluated, and is deleted from the
        document after all commits.

        Raises:
            UnresolvedExpressionError: a directive failed and
                fail_on_unresolved_expression is set
            ProxyConstructionError: capabilities cannot be composed
            StructuralMutationError: a commit touched a detached element
        """
        session = session or StampingSession(verbose=self.verbose)
        if session.comments is None:
            session.comments = CommentStore(document)

        for _, processor in self._processors:
            if isinstance(processor, BaseCommentProcessor):
                processor.session = session

        walker = _DirectiveWalker(self, document, proxy_builder, session)
        walker.walk()

        for interface, processor in self._processors:
            if self.verbose:
                print(f"  [Commit] {interface.__name__}", file=sys.stderr)
            processor.commit(document)

        for comment in walker.consumed:
            session.comments.delete(comment)
        session.comments.save()

    def reset(self) -> None:
        for _, processor in self._processors:
            processor.reset()

    def evaluate(self, expression: str, paragraph, run, comment: Optional[Comment],
                 proxy_builder: ProxyBuilder, session: StampingSession) -> bool:
        """
        Bind all processors, build a fresh proxy and evaluate one directive.

        Returns:
            True if the expression was evaluated, False if it was recorded as
            unresolved
        """
        for interface, processor in self._processors:
            processor.bind(paragraph, run, comment)
            proxy_builder.with_interface(interface, processor)
        context = proxy_builder.build()

        try:
            self.expression_resolver.resolve_expression(expression, context)
        except UnresolvedExpressionError as e:
            if self.fail_on_unresolved_expression:
                raise
            session.record_error(e, "directive")
            return False

        if self.verbose:
            print(f"  [Processed] {format_text_preview(expression, 60)}", file=sys.stderr)
        return True


class _DirectiveWalker(CoordinatesWalker):
    """Walks the document once, evaluating run, paragraph and inline directives."""

    def __init__(self, registry: CommentProcessorRegistry, document,
                 proxy_builder: ProxyBuilder, session: StampingSession):
        super().__init__(document)
        self.registry = registry
        self.proxy_builder = proxy_builder
        self.session = session
        self.consumed: List[Comment] = []

    def on_run(self, run, paragraph) -> None:
        self._run_comment(comment_around_run(run), paragraph, run)

    def on_paragraph(self, paragraph) -> None:
        self._run_comment(comment_for_paragraph(paragraph), paragraph, None)
        self._run_inline(paragraph)

    def _run_comment(self, comment_id: Optional[str], paragraph, run) -> None:
        comment = self.session.comments.lookup(comment_id)
        if comment is None:
            return
        evaluated = self.registry.evaluate(
            comment.text, paragraph, run, comment, self.proxy_builder, self.session
        )
        if evaluated:
            self.session.comments.remove(comment.id)
            self.consumed.append(comment)

    def _run_inline(self, paragraph) -> None:
        scanner = self.registry.processor_scanner
        wrapper = ParagraphWrapper(paragraph)
        for token in scanner.find_expressions(wrapper.get_text()):
            evaluated = self.registry.evaluate(
                scanner.strip_expression(token), paragraph, None, None,
                self.proxy_builder, self.session
            )
            if evaluated:
                self.registry.placeholder_replacer.replace(wrapper, token, None)
