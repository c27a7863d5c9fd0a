"""replace_word_with directive: overwrite the text of a commented run."""

from abc import ABC, abstractmethod

from .paragraph import set_run_text
from .processor import BaseCommentProcessor


class IReplaceWithProcessor(ABC):

    @abstractmethod
    def replace_word_with(self, value) -> None:
        """Replace the text of the commented run with str(value)."""


class ReplaceWithProcessor(BaseCommentProcessor, IReplaceWithProcessor):
    """
    Works on run-bound comments only; the run keeps its properties.

    The text is set during the walk; commit has nothing left to do.
    """

    def replace_word_with(self, value) -> None:
        if value is None or self.current_run is None:
            return
        set_run_text(self.current_run, str(value))

    def commit(self, document) -> None:
        pass

    def reset(self) -> None:
        self.unbind()
