"""
ABOUTME: Template stamping for Word documents
ABOUTME: ${...} value expressions in text, directive expressions in comments
"""

from .common import (
    DocxStamperError,
    ProxyConstructionError,
    StructuralMutationError,
    UnresolvedExpressionError,
)
from .config import StamperConfiguration, load_config
from .processor import BaseCommentProcessor, ICommentProcessor
from .renderers import ITypeResolver
from .stamper import DocxStamper

__all__ = [
    'BaseCommentProcessor',
    'DocxStamper',
    'DocxStamperError',
    'ICommentProcessor',
    'ITypeResolver',
    'ProxyConstructionError',
    'StamperConfiguration',
    'StructuralMutationError',
    'UnresolvedExpressionError',
    'load_config',
]
