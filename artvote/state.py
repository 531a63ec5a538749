# shared iteration counter + vote ledger
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, Optional, Set, TypeVar, Union

from .errors import ConfigError, DuplicateVoteError, PersistenceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RWLock:
    """
    Readers share the lock, a writer holds it alone.
    Waiting writers block new readers so an advance is never starved.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writing or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writing or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class IterationCounter:
    def __init__(self, value: int = 0, path: Union[str, Path, None] = None) -> None:
        if value < 0:
            raise ConfigError(f"iteration must be non-negative, got {value}")
        self._value = value
        self._path = Path(path) if path is not None else None
        self._lock = RWLock()

    @classmethod
    def load(cls, path: Union[str, Path]) -> "IterationCounter":
        """
        Restore the counter from the marker file.
        A missing file starts at 0; anything that is not a non-negative
        integer raises ConfigError.
        """
        path = Path(path)
        try:
            content = path.read_text()
        except FileNotFoundError:
            logger.info(f"No iteration file at {path}, starting from 0")
            return cls(0, path)
        except OSError as e:
            raise ConfigError(f"could not read iteration file {path}: {e}") from e

        try:
            value = int(content.strip())
        except ValueError:
            raise ConfigError(
                f"expecting integer defined in iteration file, instead got {content!r}"
            ) from None
        if value < 0:
            raise ConfigError(f"iteration file holds a negative value: {value}")
        return cls(value, path)

    def get(self) -> int:
        with self._lock.read():
            return self._value

    def advance(self) -> int:
        with self._lock.write():
            self._value += 1
            return self._value

    def persist(self, value: int) -> None:
        """
        Overwrite the marker file with value. Failure never touches the
        in-memory counter.
        """
        if self._path is None:
            return
        try:
            self._path.write_text(str(value))
        except OSError as e:
            raise PersistenceError(f"could not persist iteration file: {e}") from e


class VoteLedger:
    """
    image id -> addresses that voted for it.

    An address may appear under several images from a single submission,
    but only one submission per address is accepted.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._votes: Dict[int, Set[str]] = {}
        # reverse index, avoids scanning every voter set
        self._voted: Set[str] = set()

    def has_voted(self, user_address: str) -> bool:
        with self._lock:
            return user_address in self._voted

    def record_votes(
        self,
        user_address: str,
        image_ids: Iterable[int],
        guard: Optional[Callable[[], None]] = None,
    ) -> None:
        """
        Check and record as one critical section, so two concurrent
        submissions from the same address cannot both be accepted.

        `guard` runs inside that section before anything is recorded;
        an exception from it rejects the vote.
        """
        image_ids = list(image_ids)
        with self._lock:
            if guard is not None:
                guard()
            if user_address in self._voted:
                raise DuplicateVoteError(user_address)
            # an empty ballot leaves no trace, the address may vote again
            if not image_ids:
                return
            self._voted.add(user_address)
            for image_id in image_ids:
                self._votes.setdefault(image_id, set()).add(user_address)

    def voters(self, image_id: int) -> frozenset:
        with self._lock:
            return frozenset(self._votes.get(image_id, ()))

    def images(self) -> frozenset:
        with self._lock:
            return frozenset(self._votes)

    def reset(self, then: Optional[Callable[[], T]] = None) -> Optional[T]:
        """
        Drop every vote. `then` runs before the lock is released, so a
        counter advance passed here is never separated from the reset by
        a concurrent vote.
        """
        with self._lock:
            self._votes.clear()
            self._voted.clear()
            if then is not None:
                return then()
        return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._voted)
