"""Lifecycle contract shared by all comment processors (directive handlers)."""

from abc import ABC, abstractmethod
from typing import Optional

from .common import Comment, StampingSession


class ICommentProcessor(ABC):
    """
    A directive handler.

    Capability methods (the names expressions can call) live on a separate
    interface class given at registration time. This class only fixes the
    lifecycle the registry drives:

    - ``bind`` before every evaluation attempt, with the element being
      processed;
    - ``commit`` once after the whole document was walked, the only place
      where paragraphs, rows or tables may be inserted or removed;
    - ``reset`` to drop recorded state so the instance can serve another
      stamping run.
    """

    @abstractmethod
    def bind(self, paragraph, run, comment: Optional[Comment]) -> None:
        ...

    @abstractmethod
    def commit(self, document) -> None:
        ...

    @abstractmethod
    def reset(self) -> None:
        ...


class BaseCommentProcessor(ICommentProcessor):
    """Keeps the bound paragraph, run and comment for subclasses."""

    def __init__(self):
        self.paragraph = None
        self.current_run = None
        self.current_comment: Optional[Comment] = None
        # Set by the registry for the duration of one stamping run
        self.session: Optional[StampingSession] = None

    def bind(self, paragraph, run, comment: Optional[Comment]) -> None:
        self.paragraph = paragraph
        self.current_run = run
        self.current_comment = comment

    def unbind(self) -> None:
        self.paragraph = None
        self.current_run = None
        self.current_comment = None
        self.session = None
