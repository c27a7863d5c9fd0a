"""
ABOUTME: Finds delimited expressions in paragraph text and evaluates them
ABOUTME: Evaluation goes through a sandboxed Jinja2 expression compiler
"""

from collections import ChainMap
from itertools import chain
from typing import Callable, Dict, List, Optional

from jinja2 import StrictUndefined, TemplateError, TemplateSyntaxError, nodes
from jinja2.parser import Parser
from jinja2.runtime import Undefined
from jinja2.sandbox import SandboxedEnvironment

from .common import UnresolvedExpressionError

_BRACKET_PAIRS = {'{': '}', '(': ')', '[': ']'}
_QUOTES = ('"', "'")

# Errors raised by user data or directive methods while an expression runs.
# They mean "this expression cannot be resolved", not "the engine is broken".
EVALUATION_ERRORS = (TypeError, ValueError, LookupError, ArithmeticError, AttributeError)


class ExpressionScanner:
    """
    Finds tokens like ``${customer.name}`` in text.

    Tokens are returned in their literal form, delimiters and inner
    whitespace included, because that is what gets replaced in the document.
    When the prefix ends with an opening bracket and the suffix is the
    matching closing bracket, nested brackets and quoted strings inside the
    token do not close it: ``${ {'a': 1}['a'] }`` is one token.
    """

    def __init__(self, prefix: str = '${', suffix: str = '}'):
        if not prefix or not suffix:
            raise ValueError("Expression delimiters must not be empty")
        self.prefix = prefix
        self.suffix = suffix
        opening = prefix[-1]
        self._balanced = _BRACKET_PAIRS.get(opening) == suffix
        self._opening = opening

    def find_expressions(self, text: str) -> List[str]:
        """
        Return every complete token in text, left to right.

        An unterminated token is skipped and scanning resumes right after its
        prefix, so a later well-formed token is still found.
        """
        tokens = []
        if not text:
            return tokens
        pos = 0
        while True:
            start = text.find(self.prefix, pos)
            if start == -1:
                return tokens
            end = self._find_end(text, start + len(self.prefix))
            if end == -1:
                pos = start + len(self.prefix)
                continue
            tokens.append(text[start:end])
            pos = end

    def _find_end(self, text: str, body_start: int) -> int:
        """Index just past the closing suffix, or -1 if the token never closes."""
        if not self._balanced:
            close = text.find(self.suffix, body_start)
            return -1 if close == -1 else close + len(self.suffix)

        depth = 0
        quote = None
        i = body_start
        while i < len(text):
            ch = text[i]
            if quote:
                if ch == '\\':
                    i += 2
                    continue
                if ch == quote:
                    quote = None
            elif ch in _QUOTES:
                quote = ch
            elif ch == self._opening:
                depth += 1
            elif text.startswith(self.suffix, i):
                if depth == 0:
                    return i + len(self.suffix)
                depth -= 1
            i += 1
        return -1

    def strip_expression(self, token: str) -> str:
        """Remove delimiters and surrounding whitespace from a literal token."""
        if token.startswith(self.prefix) and token.endswith(self.suffix):
            token = token[len(self.prefix):len(token) - len(self.suffix)]
        return token.strip()


class _StrictSandbox(SandboxedEnvironment):
    """Sandbox that also refuses to pass undefined values into calls."""

    def call(__self, __context, __obj, *args, **kwargs):
        for value in chain(args, kwargs.values()):
            if isinstance(value, Undefined):
                value._fail_with_undefined_error()
        return super().call(__context, __obj, *args, **kwargs)


class ExpressionResolver:
    """
    Evaluates expression text against a context mapping.

    Args:
        configurer: Optional callable receiving the Jinja2 environment once,
            before the first evaluation. Use it to add globals, filters or
            tests visible to every expression.
    """

    def __init__(self, configurer: Optional[Callable] = None):
        self.environment = _StrictSandbox(undefined=StrictUndefined)
        self._configurer = configurer
        self._configured = False
        self._compiled: Dict[str, object] = {}

    def _compile(self, expression: str):
        """Compile expression into a template that assigns it to ``result``."""
        if not self._configured:
            if self._configurer is not None:
                self._configurer(self.environment)
            self._configured = True
        template = self._compiled.get(expression)
        if template is None:
            parser = Parser(self.environment, expression, state='variable')
            expr = parser.parse_expression()
            if not parser.stream.eos:
                raise TemplateSyntaxError("chunk after expression",
                                          parser.stream.current.lineno, None, None)
            expr.set_environment(self.environment)
            body = [nodes.Assign(nodes.Name('result', 'store'), expr, lineno=1)]
            template = self.environment.from_string(nodes.Template(body, lineno=1))
            self._compiled[expression] = template
        return template

    @staticmethod
    def _evaluate(template, context):
        # The context stays the parent mapping, so only names the expression
        # uses are looked up; environment globals come after it
        ctx = template.new_context(ChainMap(context, template.globals), shared=True)
        for _ in template.root_render_func(ctx):
            pass
        return ctx.vars['result']

    def resolve_expression(self, expression: str, context):
        """
        Evaluate expression with the names of context in scope.

        Args:
            expression: Expression text without delimiters
            context: Mapping of names (a ContextProxy or a plain dict)

        Returns:
            The evaluated value, any type, possibly None

        Raises:
            UnresolvedExpressionError: syntax error, undefined name or
                attribute, sandbox violation, or an error raised while
                evaluating
        """
        if not expression or not expression.strip():
            raise UnresolvedExpressionError(expression or '', "empty expression")
        try:
            value = self._evaluate(self._compile(expression.strip()), context)
        except TemplateError as e:
            raise UnresolvedExpressionError(expression, e.message or str(e)) from e
        except EVALUATION_ERRORS as e:
            raise UnresolvedExpressionError(expression, f"{type(e).__name__}: {e}") from e

        if isinstance(value, Undefined):
            raise UnresolvedExpressionError(expression, "expression is undefined")
        return value
