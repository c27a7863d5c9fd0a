"""
ABOUTME: Stamper options and programmatic registries (renderers, processors, exposed functions)
ABOUTME: Scalar options can be loaded from a JSON file
"""

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .replacer import REPLACEMENT_STYLES

# Options that only make sense in code, never in a JSON file
_REGISTRY_FIELDS = ('type_resolvers', 'comment_processors', 'expression_functions',
                    'evaluation_context_configurer')


@dataclass
class StamperConfiguration:
    """
    Everything a DocxStamper can be tuned with.

    Scalar options mirror the command line; the registries are filled with the
    add_* / expose_* / set_* methods, which return self so calls can be chained.
    """
    fail_on_unresolved_expression: bool = True
    leave_empty_on_expression_error: bool = False
    replace_unresolved_expressions: bool = False
    unresolved_expressions_default: Optional[str] = None
    replace_null_values: bool = False
    null_values_default: Optional[str] = None
    line_break_placeholder: Optional[str] = None
    replacement_style: str = 'paragraph'
    variable_prefix: str = '${'
    variable_suffix: str = '}'
    processor_prefix: str = '#{'
    processor_suffix: str = '}'
    date_format: str = '%d.%m.%Y'
    verbose: bool = False

    type_resolvers: Dict[type, object] = field(default_factory=dict)
    # (interface, factory) pairs; factory(config, placeholder_replacer) -> processor
    comment_processors: List[Tuple[type, Callable]] = field(default_factory=list)
    expression_functions: List[Tuple[type, object]] = field(default_factory=list)
    evaluation_context_configurer: Optional[Callable] = None

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """
        Raises:
            ValueError: Conflicting unresolved-expression policies, unknown
                replacement style, or empty/identical delimiters
        """
        if self.leave_empty_on_expression_error and self.replace_unresolved_expressions:
            raise ValueError(
                "leave_empty_on_expression_error and replace_unresolved_expressions "
                "cannot both be enabled"
            )
        if self.replacement_style not in REPLACEMENT_STYLES:
            raise ValueError(
                f"replacement_style must be one of {', '.join(REPLACEMENT_STYLES)}, "
                f"got {self.replacement_style!r}"
            )
        for name in ('variable_prefix', 'variable_suffix', 'processor_prefix', 'processor_suffix'):
            if not getattr(self, name):
                raise ValueError(f"{name} must not be empty")
        if self.variable_prefix == self.processor_prefix:
            raise ValueError("variable_prefix and processor_prefix must differ")

    def add_type_resolver(self, value_type: type, resolver) -> 'StamperConfiguration':
        self.type_resolvers[value_type] = resolver
        return self

    def add_comment_processor(self, interface: type, factory: Callable) -> 'StamperConfiguration':
        """
        Register a custom directive.

        Args:
            interface: ABC declaring the methods expressions may call
            factory: Called as factory(config, placeholder_replacer), returns
                an ICommentProcessor that also implements interface
        """
        self.comment_processors.append((interface, factory))
        return self

    def expose_interface_to_expression_language(self, interface: type,
                                                implementation) -> 'StamperConfiguration':
        """Make the methods of interface callable from every expression."""
        self.expression_functions.append((interface, implementation))
        return self

    def set_evaluation_context_configurer(self, configurer: Callable) -> 'StamperConfiguration':
        """configurer(environment) runs once on the Jinja2 environment before the first evaluation."""
        self.evaluation_context_configurer = configurer
        return self

    @classmethod
    def option_names(cls) -> List[str]:
        return [f.name for f in fields(cls) if f.name not in _REGISTRY_FIELDS]

    @classmethod
    def from_dict(cls, data: dict) -> 'StamperConfiguration':
        """
        Build a configuration from scalar options.

        Raises:
            ValueError: data is not an object or has unknown keys
        """
        if not isinstance(data, dict):
            raise ValueError(f"Configuration must be a JSON object, got {type(data).__name__}")
        unknown = sorted(set(data) - set(cls.option_names()))
        if unknown:
            raise ValueError(f"Unknown configuration option(s): {', '.join(unknown)}")
        return cls(**data)


def load_config(file_path: str) -> StamperConfiguration:
    """
    Load scalar options from a JSON file.

    Args:
        file_path: Path to a JSON object of option names to values

    Returns:
        StamperConfiguration

    Raises:
        ValueError: Invalid JSON or invalid options
    """
    path = Path(file_path)
    with open(path, 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {file_path}: {e}") from e
    return StamperConfiguration.from_dict(data)
