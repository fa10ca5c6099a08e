"""One-shot delivery of a batch outcome from a worker thread.

A batch runs on a dedicated thread so the caller can keep its own loop
(a spinner, a UI event loop) responsive and poll for the result. Exactly one
outcome is sent per batch and it can be read exactly once.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from concurrent.futures import wait as wait_futures
from typing import Optional

from .codec import Codec
from .engine import ConversionRequest, convert
from .errors import ChannelDisconnectedError, OutcomeChannelError
from .events import EventSink
from .outcome import ConversionOutcome

_LOGGER = logging.getLogger(__name__)

WORKER_THREAD_NAME = "imgconv-worker"


class OutcomeSender:
    """Producer half; call :meth:`send` once or :meth:`close`."""

    def __init__(self, future: "Future[ConversionOutcome]") -> None:
        self._future = future
        self._lock = threading.Lock()

    def send(self, outcome: ConversionOutcome) -> None:
        with self._lock:
            if self._future.done():
                raise OutcomeChannelError("Outcome was already sent.")
            self._future.set_result(outcome)

    def close(self, cause: Optional[BaseException] = None) -> None:
        """Disconnect the channel unless an outcome was already sent."""

        with self._lock:
            if self._future.done():
                return
            error = ChannelDisconnectedError(
                "Conversion worker exited without sending an outcome."
            )
            error.__cause__ = cause
            self._future.set_exception(error)

    @property
    def closed(self) -> bool:
        return self._future.done()


class OutcomeReceiver:
    """Consumer half; read the outcome with :meth:`poll` or :meth:`wait`."""

    def __init__(
        self,
        future: "Future[ConversionOutcome]",
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._future = future
        self._logger = logger or _LOGGER
        self._lock = threading.Lock()
        self._drained = False

    @property
    def ready(self) -> bool:
        return self._future.done()

    def poll(self) -> Optional[ConversionOutcome]:
        """Return the outcome if it has arrived, ``None`` otherwise."""

        if not self._future.done():
            return None
        return self._take()

    def wait(self, timeout: Optional[float] = None) -> ConversionOutcome:
        """Block until the outcome arrives; ``TimeoutError`` on expiry."""

        done, _ = wait_futures([self._future], timeout=timeout)
        if not done:
            raise TimeoutError(
                f"No conversion outcome after {timeout} seconds."
            )
        return self._take()

    def _take(self) -> ConversionOutcome:
        with self._lock:
            if self._drained:
                raise OutcomeChannelError("Outcome was already received.")
            self._drained = True
        try:
            return self._future.result()
        except ChannelDisconnectedError as exc:
            self._logger.error(
                "outcome channel disconnected",
                exc_info=exc,
                extra={"event": "channel_disconnected"},
            )
            raise


class OutcomeChannel:
    """A linked sender/receiver pair backed by a single future."""

    def __init__(self, *, logger: Optional[logging.Logger] = None) -> None:
        future: "Future[ConversionOutcome]" = Future()
        self.sender = OutcomeSender(future)
        self.receiver = OutcomeReceiver(future, logger=logger)


def start_conversion(
    request: ConversionRequest,
    *,
    codec: Codec,
    sink: Optional[EventSink] = None,
    logger: Optional[logging.Logger] = None,
) -> OutcomeReceiver:
    """Run ``convert`` on a daemon thread and return the receiving end.

    If the engine raises, the channel is closed with that exception as the
    cause and the receiver reports a disconnected channel.
    """

    log = logger or _LOGGER
    channel = OutcomeChannel(logger=log)
    sender = channel.sender

    def _worker() -> None:
        try:
            outcome = convert(request, codec=codec, sink=sink, logger=logger)
        except Exception as exc:
            log.exception(
                "conversion worker failed",
                extra={"event": "worker_failed"},
            )
            sender.close(cause=exc)
        else:
            sender.send(outcome)
        finally:
            sender.close()

    threading.Thread(
        target=_worker, name=WORKER_THREAD_NAME, daemon=True
    ).start()
    return channel.receiver


__all__ = [
    "OutcomeChannel",
    "OutcomeReceiver",
    "OutcomeSender",
    "WORKER_THREAD_NAME",
    "start_conversion",
]
