"""Single-instance guard based on a PID lock file."""

import fcntl
import os
import signal
from contextlib import contextmanager
from typing import Dict, Optional

from n8nupdater.errors import LockContention, UpdaterError
from n8nupdater.errors_catalog import actionable_error

TRAPPED_SIGNALS = tuple(
    sig for sig in (getattr(signal, "SIGTERM", None), getattr(signal, "SIGHUP", None)) if sig
)


def is_process_alive(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except OSError:
        return False
    return True


def _interrupt(signum, _frame):
    raise KeyboardInterrupt(f"Received signal {signum}")


class ConcurrencyGuard:
    """Context manager holding the lock file for the duration of a run.

    A lock whose recorded owner is no longer alive is treated as stale and
    reclaimed. While the lock is held, SIGTERM and SIGHUP are turned into
    KeyboardInterrupt so every exit path unwinds through ``release``.

    Reading, reclaiming and writing the PID record happen under an flock on
    a sibling ``.guard`` file, so two runs racing over a stale lock cannot
    both end up owning it.
    """

    def __init__(self, lock_file: str, logger, pid: Optional[int] = None):
        self.lock_file = lock_file
        self.logger = logger
        self.guard_file = f"{lock_file}.guard"
        self.pid = pid if pid is not None else os.getpid()
        self.acquired = False
        self._previous_handlers: Dict[int, object] = {}

    def read_owner(self) -> Optional[int]:
        try:
            with open(self.lock_file, "r", encoding="utf-8") as file_obj:
                content = file_obj.read().strip()
        except OSError:
            return None
        try:
            return int(content)
        except ValueError:
            return None

    @contextmanager
    def _exclusive(self):
        """Serialize inspect/reclaim/create and release across processes."""
        try:
            os.makedirs(os.path.dirname(self.lock_file) or ".", exist_ok=True)
            guard = open(self.guard_file, "a", encoding="utf-8")
        except OSError as exc:
            raise UpdaterError(actionable_error("lock_unwritable", path=self.lock_file)) from exc
        try:
            fcntl.flock(guard.fileno(), fcntl.LOCK_EX)
            yield
        finally:
            guard.close()

    def acquire(self):
        with self._exclusive():
            if os.path.exists(self.lock_file):
                owner = self.read_owner()
                if owner is not None and owner != self.pid and is_process_alive(owner):
                    raise LockContention(
                        actionable_error("lock_contention", pid=str(owner), path=self.lock_file)
                    )
                self.logger.warning("Stale lock file found, removing...")
                self._remove_file()

            try:
                fd = os.open(self.lock_file, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
            except FileExistsError as exc:
                owner = self.read_owner()
                raise LockContention(
                    actionable_error("lock_contention", pid=str(owner or "unknown"), path=self.lock_file)
                ) from exc
            except OSError as exc:
                raise UpdaterError(actionable_error("lock_unwritable", path=self.lock_file)) from exc

            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                file_obj.write(f"{self.pid}\n")

        self.acquired = True
        self.logger.debug("Lock acquired: %s (PID %s)", self.lock_file, self.pid)
        self._install_signal_handlers()

    def release(self):
        if not self.acquired:
            return
        self._restore_signal_handlers()
        with self._exclusive():
            if self.read_owner() == self.pid:
                self._remove_file()
        self.acquired = False
        self.logger.debug("Lock released: %s", self.lock_file)

    def _remove_file(self):
        try:
            os.remove(self.lock_file)
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise UpdaterError(f"Could not remove lock file {self.lock_file}: {exc}") from exc

    def _install_signal_handlers(self):
        for sig in TRAPPED_SIGNALS:
            try:
                self._previous_handlers[sig] = signal.signal(sig, _interrupt)
            except ValueError:
                # not the main thread
                pass

    def _restore_signal_handlers(self):
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers.clear()

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
