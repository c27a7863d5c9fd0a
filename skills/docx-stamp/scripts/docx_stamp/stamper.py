"""
ABOUTME: DocxStamper wires scanner, evaluator, proxy builder, registry and replacer together
ABOUTME: One stamp() call = directives, commit, comment cleanup, then value expressions
"""

import sys
from pathlib import Path
from typing import List, Optional

from docx import Document

from .comments import CommentStore
from .common import StampingSession, UnresolvedExpressionError
from .config import StamperConfiguration
from .display_if import DisplayIfProcessor, IDisplayIfProcessor
from .expressions import ExpressionResolver, ExpressionScanner
from .proxy import ProxyBuilder
from .registry import CommentProcessorRegistry
from .renderers import default_registry
from .repeat import IParagraphRepeatProcessor, ParagraphRepeatProcessor
from .replace_with import IReplaceWithProcessor, ReplaceWithProcessor
from .replacer import PlaceholderReplacer


class DocxStamper:
    """
    Fills a .docx template with data.

    A stamper can be reused for any number of templates; processor state is
    reset after every stamp() call, whether it succeeded or not.
    """

    def __init__(self, config: Optional[StamperConfiguration] = None):
        self.config = config or StamperConfiguration()
        self.config.validate()
        self.errors: List[UnresolvedExpressionError] = []

        cfg = self.config
        self.expression_resolver = ExpressionResolver(cfg.evaluation_context_configurer)

        self.type_resolvers = default_registry(cfg.date_format)
        for value_type, resolver in cfg.type_resolvers.items():
            self.type_resolvers.register_type_resolver(value_type, resolver)

        self.placeholder_replacer = PlaceholderReplacer(
            type_resolvers=self.type_resolvers,
            expression_resolver=self.expression_resolver,
            scanner=ExpressionScanner(cfg.variable_prefix, cfg.variable_suffix),
            fail_on_unresolved_expression=cfg.fail_on_unresolved_expression,
            leave_empty_on_expression_error=cfg.leave_empty_on_expression_error,
            replace_unresolved_expressions=cfg.replace_unresolved_expressions,
            unresolved_expressions_default=cfg.unresolved_expressions_default,
            replace_null_values=cfg.replace_null_values,
            null_values_default=cfg.null_values_default,
            line_break_placeholder=cfg.line_break_placeholder,
            replacement_style=cfg.replacement_style,
            verbose=cfg.verbose,
        )

        # Capabilities visible to every expression, directives excluded
        self.expression_functions = ProxyBuilder()
        for interface, implementation in cfg.expression_functions:
            self.expression_functions.with_interface(interface, implementation)

        self.registry = CommentProcessorRegistry(
            expression_resolver=self.expression_resolver,
            placeholder_replacer=self.placeholder_replacer,
            processor_scanner=ExpressionScanner(cfg.processor_prefix, cfg.processor_suffix),
            fail_on_unresolved_expression=cfg.fail_on_unresolved_expression,
            verbose=cfg.verbose,
        )
        self.registry.register_comment_processor(
            IParagraphRepeatProcessor,
            ParagraphRepeatProcessor(
                self.placeholder_replacer,
                self.expression_functions,
                replace_null_values=cfg.replace_null_values,
                null_values_default=cfg.null_values_default,
            ),
        )
        self.registry.register_comment_processor(IDisplayIfProcessor, DisplayIfProcessor())
        self.registry.register_comment_processor(IReplaceWithProcessor, ReplaceWithProcessor())
        for interface, factory in cfg.comment_processors:
            self.registry.register_comment_processor(
                interface, factory(cfg, self.placeholder_replacer)
            )

    def stamp(self, template, context_root, output=None):
        """
        Stamp context_root into template.

        Args:
            template: Path, binary stream or an already opened python-docx Document
                (modified in place)
            context_root: Data the expressions are evaluated against (mapping or object)
            output: Optional path or stream the result is saved to

        Returns:
            The stamped python-docx Document

        Raises:
            UnresolvedExpressionError: fail_on_unresolved_expression is set and an
                expression could not be resolved
            ProxyConstructionError: directive and exposed capabilities clash
            StructuralMutationError: a directive edited an element that was
                already removed
        """
        document = self._open(template)
        session = StampingSession(verbose=self.config.verbose)
        session.comments = CommentStore(document)

        if self.config.verbose:
            print(f"[Stamp] {len(session.comments)} comment(s) in template", file=sys.stderr)

        try:
            self.registry.run_processors(
                document, self.expression_functions.copy(context_root), session
            )
            self.placeholder_replacer.resolve_expressions(
                document,
                lambda paragraph: self.expression_functions.copy(context_root).build(),
                session,
            )
        finally:
            self.registry.reset()
            self.errors = list(session.errors)

        if output is not None:
            document.save(str(output) if isinstance(output, Path) else output)
        return document

    @staticmethod
    def _open(template):
        if hasattr(template, 'part') and hasattr(template, 'element'):
            return template
        if isinstance(template, Path):
            template = str(template)
        return Document(template)
