#!/usr/bin/env python3
"""
ABOUTME: Tests for value expression replacement policies
"""

from datetime import date

import pytest

from _stamp_helpers import (
    NS,
    add_paragraph,
    make_paragraph,
    make_run,
    new_document,
    run_texts,
    set_paragraph_mark_bold,
)
from docx_stamp.common import W_BR, W_R, W_RPR, StampingSession, UnresolvedExpressionError
from docx_stamp.paragraph import get_paragraph_text
from docx_stamp.renderers import ITypeResolver, TypeResolverRegistry, default_registry
from docx_stamp.replacer import PlaceholderReplacer


def _resolve(p, context, **options):
    replacer = PlaceholderReplacer(**options)
    session = StampingSession()
    replacer.resolve_expressions_for_paragraph(p, context, None, session)
    return session


def _has(run, name) -> bool:
    rPr = run.find(W_RPR)
    return rPr is not None and rPr.find(f'{{{NS["w"]}}}{name}') is not None


class TestValueReplacement:

    def test_simple_values(self):
        p = make_paragraph("Dear ${name}, you owe ${amount}.")
        _resolve(p, {'name': 'Ada', 'amount': 12})
        assert get_paragraph_text(p) == "Dear Ada, you owe 12."

    def test_expression_with_surrounding_spaces(self):
        p = make_paragraph("${  name  }!")
        _resolve(p, {'name': 'Ada'})
        assert get_paragraph_text(p) == "Ada!"

    def test_token_split_over_runs(self):
        p = make_paragraph("Hi ${cus", "tomer.na", "me}")
        _resolve(p, {'customer': {'name': 'Ada'}})
        assert get_paragraph_text(p) == "Hi Ada"

    def test_context_factory_called_per_token(self):
        p = make_paragraph("${a}${b}")
        calls = []

        def factory(paragraph):
            calls.append(paragraph)
            return {'a': 1, 'b': 2}

        _resolve(p, factory)
        assert get_paragraph_text(p) == "12"
        assert calls == [p, p]

    def test_date_values_use_date_format(self):
        p = make_paragraph("${day}")
        _resolve(p, {'day': date(2024, 3, 1)})
        assert get_paragraph_text(p) == "01.03.2024"

        p = make_paragraph("${day}")
        _resolve(p, {'day': date(2024, 3, 1)}, type_resolvers=default_registry('%Y-%m-%d'))
        assert get_paragraph_text(p) == "2024-03-01"

    def test_custom_type_resolver_matches_subclasses(self):
        class Money:
            def __init__(self, cents):
                self.cents = cents

        class Euro(Money):
            pass

        class MoneyResolver(ITypeResolver):
            def resolve(self, document, value):
                return f"{value.cents / 100:.2f}"

        registry = TypeResolverRegistry()
        registry.register_type_resolver(Money, MoneyResolver())
        p = make_paragraph("${price}")
        _resolve(p, {'price': Euro(1050)}, type_resolvers=registry)
        assert get_paragraph_text(p) == "10.50"

    def test_resolver_must_implement_resolve(self):
        with pytest.raises(TypeError):
            ITypeResolver()

        class Incomplete(ITypeResolver):
            pass

        with pytest.raises(TypeError):
            Incomplete()

    def test_run_values_are_inserted_as_copies(self):
        value = make_run("styled", italic=True)
        p = make_paragraph("[${run}]")
        _resolve(p, {'run': value})
        assert run_texts(p) == ["[", "styled", "]"]
        assert p[1] is not value
        assert _has(p[1], 'i')
        assert value.getparent() is None

    def test_same_run_value_fills_every_token(self):
        value = make_run("X")
        p = make_paragraph("${r} and ${r}")
        _resolve(p, {'r': value})
        assert get_paragraph_text(p) == "X and X"

        other = make_paragraph("again ${r}")
        _resolve(other, {'r': value})
        assert get_paragraph_text(p) == "X and X"
        assert get_paragraph_text(other) == "again X"


class TestReplacementStyle:

    def test_paragraph_style_uses_paragraph_mark(self):
        p = make_paragraph(make_run("${name}", italic=True))
        set_paragraph_mark_bold(p)
        _resolve(p, {'name': 'Ada'})
        new_run = p.find(W_R)
        assert _has(new_run, 'b') and not _has(new_run, 'i')

    def test_token_style_uses_token_run(self):
        p = make_paragraph(make_run("${name}", italic=True))
        set_paragraph_mark_bold(p)
        _resolve(p, {'name': 'Ada'}, replacement_style='token')
        new_run = p.find(W_R)
        assert _has(new_run, 'i') and not _has(new_run, 'b')

    def test_unknown_style_rejected(self):
        with pytest.raises(ValueError):
            PlaceholderReplacer(replacement_style='bogus')


class TestNullValues:

    def test_null_left_in_place_by_default(self):
        p = make_paragraph("Value: ${value}")
        _resolve(p, {'value': None})
        assert get_paragraph_text(p) == "Value: ${value}"

    def test_null_replaced_with_default(self):
        p = make_paragraph("Value: ${value}")
        _resolve(p, {'value': None}, replace_null_values=True, null_values_default='n/a')
        assert get_paragraph_text(p) == "Value: n/a"

    def test_null_without_default_removes_token(self):
        p = make_paragraph("Value: ${value}")
        _resolve(p, {'value': None}, replace_null_values=True)
        assert get_paragraph_text(p) == "Value: "


class TestUnresolvedExpressions:

    def test_fail_by_default(self):
        p = make_paragraph("${missing}")
        with pytest.raises(UnresolvedExpressionError):
            _resolve(p, {})

    def test_left_verbatim_and_recorded(self):
        p = make_paragraph("a ${missing} b ${name}")
        session = _resolve(p, {'name': 'x'}, fail_on_unresolved_expression=False)
        assert get_paragraph_text(p) == "a ${missing} b x"
        assert [e.expression for e in session.errors] == ['missing']

    def test_unresolved_tokens_are_stable(self):
        p = make_paragraph("${missing} stays")
        _resolve(p, {}, fail_on_unresolved_expression=False)
        first = get_paragraph_text(p)
        _resolve(p, {}, fail_on_unresolved_expression=False)
        assert get_paragraph_text(p) == first == "${missing} stays"

    def test_leave_empty(self):
        p = make_paragraph("a ${missing} b")
        _resolve(p, {}, fail_on_unresolved_expression=False,
                 leave_empty_on_expression_error=True)
        assert get_paragraph_text(p) == "a  b"

    def test_replace_with_default(self):
        p = make_paragraph("a ${missing} b")
        _resolve(p, {}, fail_on_unresolved_expression=False,
                 replace_unresolved_expressions=True, unresolved_expressions_default='?')
        assert get_paragraph_text(p) == "a ? b"

    def test_conflicting_policies_rejected(self):
        with pytest.raises(ValueError):
            PlaceholderReplacer(leave_empty_on_expression_error=True,
                                replace_unresolved_expressions=True)


class TestLineBreaks:

    def test_placeholder_becomes_break(self):
        p = make_paragraph("first|second|third")
        _resolve(p, {}, line_break_placeholder='|')
        assert get_paragraph_text(p) == "first\nsecond\nthird"
        assert len(list(p.iter(W_BR))) == 2

    def test_placeholder_inside_value(self):
        p = make_paragraph("${address}")
        _resolve(p, {'address': 'Street 1<br>Town'}, line_break_placeholder='<br>')
        assert get_paragraph_text(p) == "Street 1\nTown"


class TestDocumentPass:

    def test_resolves_header_body_and_footer(self):
        doc = new_document()
        doc.sections[0].header.paragraphs[0]._p.append(make_run("${title}"))
        doc.sections[0].footer.paragraphs[0]._p.append(make_run("page of ${title}"))
        p = add_paragraph(doc, "Body ${title}")

        replacer = PlaceholderReplacer()
        replacer.resolve_expressions(doc, lambda paragraph: {'title': 'Report'})

        assert get_paragraph_text(doc.sections[0].header.paragraphs[0]._p) == "Report"
        assert get_paragraph_text(doc.sections[0].footer.paragraphs[0]._p) == "page of Report"
        assert get_paragraph_text(p) == "Body Report"

    def test_paragraphs_resolved_earlier_in_session_are_skipped(self):
        doc = new_document()
        done = add_paragraph(doc, "Item: ${x}")
        todo = add_paragraph(doc, "Root: ${x}")
        replacer = PlaceholderReplacer()
        session = StampingSession()

        replacer.resolve_expressions_for_paragraph(done, {'x': None}, doc, session)
        replacer.resolve_expressions(doc, lambda paragraph: {'x': 'ROOT'}, session)

        assert get_paragraph_text(done) == "Item: ${x}"
        assert get_paragraph_text(todo) == "Root: ROOT"


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
