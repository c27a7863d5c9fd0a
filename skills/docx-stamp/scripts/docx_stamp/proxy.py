"""
ABOUTME: Composes the evaluation root seen by expressions
ABOUTME: Directive capabilities are looked up first, then the user's data context
"""

import inspect
from collections.abc import Mapping
from typing import Dict, Iterator, List, Optional, Tuple

from .common import ProxyConstructionError


def interface_methods(interface) -> List[str]:
    """
    Public method names declared by a capability interface.

    Methods inherited from object or from abc.ABC are not part of a
    capability.
    """
    if not inspect.isclass(interface):
        raise ProxyConstructionError(f"Capability interface must be a class, got {interface!r}")
    names = []
    for klass in inspect.getmro(interface):
        if klass is object or klass.__module__ == 'abc':
            continue
        for name, member in vars(klass).items():
            if name.startswith('_') or name in names:
                continue
            if inspect.isfunction(member):
                names.append(name)
    return names


class ContextProxy(Mapping):
    """
    Read-only mapping handed to the expression evaluator.

    ``proxy[name]`` returns the capability method registered under that name
    if there is one, otherwise the matching key (mapping root) or attribute
    (object root) of the data root.
    """

    def __init__(self, root, methods: Dict[str, object]):
        self._root = root
        self._methods = methods

    @property
    def root(self):
        return self._root

    def __getitem__(self, name):
        if name in self._methods:
            return self._methods[name]
        root = self._root
        if root is None:
            raise KeyError(name)
        if isinstance(root, Mapping):
            return root[name]
        if not isinstance(name, str) or name.startswith('_'):
            raise KeyError(name)
        try:
            return getattr(root, name)
        except AttributeError:
            raise KeyError(name) from None

    def _root_names(self) -> List[str]:
        root = self._root
        if root is None:
            return []
        if isinstance(root, Mapping):
            return [key for key in root.keys() if isinstance(key, str)]
        # Names only; attribute values are read on lookup
        return [name for name in dir(root) if not name.startswith('_')]

    def __iter__(self) -> Iterator[str]:
        seen = set()
        for name in list(self._methods) + self._root_names():
            if name not in seen:
                seen.add(name)
                yield name

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        return f"ContextProxy(root={self._root!r}, capabilities={sorted(self._methods)})"


class ProxyBuilder:
    """
    Collects capability registrations and builds a ContextProxy.

    Registering the same interface again replaces its implementation, so the
    registry can re-register every processor before each evaluation.
    """

    def __init__(self, root=None):
        self._root = root
        self._interfaces: Dict[type, object] = {}

    def with_root(self, root) -> 'ProxyBuilder':
        self._root = root
        return self

    def with_interface(self, interface, implementation) -> 'ProxyBuilder':
        self._interfaces[interface] = implementation
        return self

    def copy(self, root=None) -> 'ProxyBuilder':
        """New builder with the same capabilities and another (or the same) root."""
        builder = ProxyBuilder(self._root if root is None else root)
        builder._interfaces = dict(self._interfaces)
        return builder

    def build(self) -> ContextProxy:
        """
        Build the evaluation root.

        Raises:
            ProxyConstructionError: An interface is not a class or declares no
                methods, an implementation lacks a declared method, or two
                implementations claim the same method name.
        """
        methods: Dict[str, object] = {}
        owners: Dict[str, Tuple[type, object]] = {}

        for interface, implementation in self._interfaces.items():
            names = interface_methods(interface)
            if not names:
                raise ProxyConstructionError(
                    f"Capability interface {interface.__name__} declares no public methods"
                )
            for name in names:
                bound = getattr(implementation, name, None)
                if not callable(bound):
                    raise ProxyConstructionError(
                        f"{type(implementation).__name__} does not implement "
                        f"{interface.__name__}.{name}()"
                    )
                owner: Optional[Tuple[type, object]] = owners.get(name)
                if owner is not None and owner[1] is not implementation:
                    raise ProxyConstructionError(
                        f"Method '{name}' is claimed by both {owner[0].__name__} "
                        f"and {interface.__name__}"
                    )
                owners[name] = (interface, implementation)
                methods[name] = bound

        return ContextProxy(self._root, methods)
