"""Turns evaluated values into document content (runs)."""

import copy
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Dict, Optional

from lxml import etree

from .common import W_R
from .paragraph import create_run


class ITypeResolver(ABC):
    """Renders a value of some type into a string, a w:r element, or None."""

    @abstractmethod
    def resolve(self, document, value):
        ...


class StringResolver(ITypeResolver):
    """Default renderer: str(value); None renders as nothing."""

    def resolve(self, document, value):
        if value is None:
            return None
        if isinstance(value, str):
            return value
        return str(value)


class DateResolver(ITypeResolver):
    """Formats date and datetime values with strftime."""

    def __init__(self, date_format: str = '%d.%m.%Y'):
        self.date_format = date_format

    def resolve(self, document, value):
        return value.strftime(self.date_format)


class RunResolver(ITypeResolver):
    """Pre-built runs and elements; to_run inserts a copy per occurrence."""

    def resolve(self, document, value):
        return value


class TypeResolverRegistry:
    """
    Maps value types to renderers.

    Lookup walks the value type's MRO, so a renderer registered for a base
    class also serves its subclasses; anything unmatched goes to the default.
    """

    def __init__(self, default_resolver: Optional[ITypeResolver] = None):
        self._default = default_resolver or StringResolver()
        self._resolvers: Dict[type, ITypeResolver] = {}

    def register_type_resolver(self, value_type: type, resolver: ITypeResolver) -> None:
        self._resolvers[value_type] = resolver

    def get_resolver_for_type(self, value_type: type) -> ITypeResolver:
        for klass in getattr(value_type, '__mro__', (value_type,)):
            resolver = self._resolvers.get(klass)
            if resolver is not None:
                return resolver
        return self._default

    def get_default_resolver(self) -> ITypeResolver:
        return self._default


def default_registry(date_format: str = '%d.%m.%Y') -> TypeResolverRegistry:
    """Registry with the built-in date and element renderers."""
    registry = TypeResolverRegistry(StringResolver())
    date_resolver = DateResolver(date_format)
    registry.register_type_resolver(date, date_resolver)
    registry.register_type_resolver(datetime, date_resolver)
    registry.register_type_resolver(etree._Element, RunResolver())
    return registry


def is_run(value) -> bool:
    return getattr(value, 'tag', None) == W_R


def to_run(content, rPr=None):
    """
    Normalize rendered content to something ParagraphWrapper.replace accepts.

    None stays None (the token is only removed), strings become a new run
    with rPr, runs are copied, other elements are copied into a new run.
    The caller's element is never moved, so one value can fill many tokens.
    """
    if content is None:
        return None
    if isinstance(content, str):
        return create_run(content, rPr)
    if is_run(content):
        return copy.deepcopy(content)
    if hasattr(content, 'tag'):
        run = create_run('', rPr)
        run.append(copy.deepcopy(content))
        return run
    return create_run(str(content), rPr)
