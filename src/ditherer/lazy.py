"""Build predefined, immutable configurations once, on first use.

:author: Shay Hill
:created: 2026-09-16
"""

import functools
import threading
from typing import Callable, TypeVar

_T = TypeVar("_T")


def predefined(factory: Callable[[], _T]) -> Callable[[], _T]:
    """Wrap a factory so every call returns the instance built by the first call.

    :param factory: a function with no arguments that builds an immutable value
    :return: a function returning the same instance on every call, from any thread
    """
    lock = threading.Lock()
    built: list[_T] = []

    @functools.wraps(factory)
    def get() -> _T:
        if not built:
            with lock:
                if not built:
                    built.append(factory())
        return built[0]

    return get
