from __future__ import annotations

import logging
from typing import Callable

logger = logging.getLogger(__name__)

QUIZ_RESULT_EVENT = "gappy-quiz-result-updated"

Listener = Callable[[], None]


class QuizResultEvents:
    """Same-process notification fired whenever the stored quiz result changes."""

    name = QUIZ_RESULT_EVENT

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self) -> None:
        # Copy so a listener may unsubscribe while being notified.
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.warning("Quiz result listener failed", exc_info=True)
