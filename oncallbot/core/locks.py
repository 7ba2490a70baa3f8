# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Reader/writer lock guarding the team list and the identity map."""

import contextlib
import threading
from typing import Iterator


class ReadWriteLock:
    """
    Many readers or one writer. Waiting writers block new readers so a
    steady stream of list/permission checks cannot starve a mutation.
    Not reentrant: never take it twice from the same thread.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextlib.contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextlib.contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()
