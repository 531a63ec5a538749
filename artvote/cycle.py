# art generation cycle: generate -> advance -> persist -> publish -> wait
import asyncio
import logging
import os
import sys
import threading
from pathlib import Path
from typing import Optional, Union

from .errors import FileSystemError, PersistenceError
from .state import IterationCounter, VoteLedger

logger = logging.getLogger(__name__)


class PlaceholderGenerator:
    """
    Stand-in for the real image generator. Every iteration is published
    from the same source directory, so generating only logs progress.
    """

    def __init__(self, images_per_iteration: int = 10) -> None:
        self.images_per_iteration = images_per_iteration

    def generate(self, iteration: int) -> None:
        for im in range(1, self.images_per_iteration + 1):
            logger.info(f"Generating image {im} for iteration {iteration}")


def publish_images(images_dir: Union[str, Path], source: str, iteration: int) -> Path:
    """
    Expose `source` (relative to images_dir) as images_dir/<iteration>.
    """
    images_dir = Path(images_dir)
    link = images_dir / str(iteration)
    try:
        images_dir.mkdir(parents=True, exist_ok=True)
        os.symlink(source, link, target_is_directory=True)
    except OSError as e:
        raise FileSystemError(f"could not symlink {source} to {link}: {e}") from e
    return link


class CycleTrigger:
    """
    Signal that lets the driver move on to the next cycle.
    fire() is safe to call from any thread; a fire that arrives before
    the driver starts waiting is not lost.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        """
        Attach to the loop that waits. A fresh Event per loop, so the same
        trigger survives a restart on a new loop; a pending fire carries over.
        """
        if loop is self._loop:
            return
        pending = self._event.is_set()
        self._event = asyncio.Event()
        if pending:
            self._event.set()
        self._loop = loop

    def fire(self) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        loop = self._loop
        if loop is not None and not loop.is_closed() and running is not loop:
            loop.call_soon_threadsafe(self._event.set)
        else:
            self._event.set()

    async def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Returns True when fired, False when the timeout elapsed first.
        """
        self.bind(asyncio.get_running_loop())
        try:
            if timeout is None:
                await self._event.wait()
            else:
                await asyncio.wait_for(self._event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        finally:
            self._event.clear()
        return True


def start_console_reader(trigger: CycleTrigger, stream=None) -> threading.Thread:
    """
    Fire the trigger on every line read from stream (stdin by default).
    Runs on a daemon thread so a pending read never holds up shutdown.
    """
    stream = stream if stream is not None else sys.stdin

    def _read() -> None:
        for _ in stream:
            trigger.fire()
        logger.info("Console closed, cycle now advances only on operator request")

    t = threading.Thread(target=_read, name="cycle-console", daemon=True)
    t.start()
    return t


class CycleDriver:
    def __init__(
        self,
        counter: IterationCounter,
        ledger: VoteLedger,
        trigger: CycleTrigger,
        generator=None,
        images_dir: Union[str, Path] = "images",
        source_images: str = "test_images",
        reset_votes_on_advance: bool = False,
        interval: Optional[float] = None,
        prompt: Optional[str] = None,
    ) -> None:
        self.counter = counter
        self.ledger = ledger
        self.trigger = trigger
        self.generator = generator if generator is not None else PlaceholderGenerator()
        self.images_dir = Path(images_dir)
        self.source_images = source_images
        self.reset_votes_on_advance = reset_votes_on_advance
        self.interval = interval
        self.prompt = prompt

    def step(self) -> int:
        """
        Run one cycle up to, but not including, the wait.
        Persist and publish failures are logged and do not stop the cycle.
        """
        self.generator.generate(self.counter.get() + 1)

        if self.reset_votes_on_advance:
            # one critical section: no vote lands between the reset and the advance
            i = self.ledger.reset(then=self.counter.advance)
        else:
            i = self.counter.advance()
        logger.info(f"Iteration: {i}")

        try:
            self.counter.persist(i)
        except PersistenceError as e:
            logger.error(str(e))

        try:
            publish_images(self.images_dir, self.source_images, i)
        except FileSystemError as e:
            logger.error(str(e))

        return i

    async def run(self, cycles: Optional[int] = None) -> None:
        """
        Background loop. Runs forever unless `cycles` is given.
        """
        self.trigger.bind(asyncio.get_running_loop())
        done = 0
        while cycles is None or done < cycles:
            try:
                await asyncio.to_thread(self.step)
            except Exception:
                logger.exception("Cycle step failed, waiting for next trigger")
            done += 1
            if cycles is not None and done >= cycles:
                break

            if self.prompt:
                logger.info(self.prompt)
            await self.trigger.wait(self.interval)
