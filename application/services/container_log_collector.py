# application/services/container_log_collector.py
from __future__ import annotations

from dataclasses import dataclass
from threading import Event, Lock, Thread
from typing import List, Optional

from application.ports.container_engine import ContainerEnginePort, ContainerHandle
from application.ports.logger import LoggerPort

DEFAULT_LOG_TIMEOUT_SEC = 60.0
LOGS_UNAVAILABLE = (
    "Failed to retrieve container logs. The container might have been removed prematurely."
)


@dataclass(frozen=True)
class CollectedLogs:
    text: str
    complete: bool
    error: Optional[str] = None


class ContainerLogCollector:
    """
    Drain a container's log stream into memory with a bounded wait.

    The stream is read on a daemon thread. When the deadline passes or the
    stream fails, whatever was captured so far is returned and the outcome is
    only logged; collect() never raises.
    """

    def __init__(
        self,
        engine: ContainerEnginePort,
        logger: LoggerPort,
        timeout_sec: float = DEFAULT_LOG_TIMEOUT_SEC,
    ) -> None:
        self._engine = engine
        self._logger = logger
        self._timeout_sec = timeout_sec

    def collect(self, handle: ContainerHandle) -> CollectedLogs:
        buffer = bytearray()
        lock = Lock()
        done = Event()
        failure: List[Exception] = []

        def drain() -> None:
            try:
                for chunk in self._engine.stream_logs(handle):
                    with lock:
                        buffer.extend(chunk)
            except Exception as exc:
                failure.append(exc)
            finally:
                done.set()

        Thread(target=drain, name=f"logs-{handle.short_id}", daemon=True).start()
        completed = done.wait(self._timeout_sec)

        with lock:
            captured_bytes = len(buffer)
            text = bytes(buffer).decode("utf-8", errors="replace")

        if not completed:
            self._logger.warning(
                "logs.timeout",
                container_id=handle.id,
                timeout_sec=self._timeout_sec,
                captured_bytes=captured_bytes,
            )
            return CollectedLogs(text=text, complete=False)

        if failure:
            error = str(failure[0])
            self._logger.warning("logs.failed", container_id=handle.id, error=error)
            return CollectedLogs(text=text or LOGS_UNAVAILABLE, complete=False, error=error)

        return CollectedLogs(text=text, complete=True)
