# asset_loader.py

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from PyQt5 import QtCore

from splat_loader import load_splat_ply
from texture_utils import load_rgba

logger = logging.getLogger(__name__)

SuccessCallback = Callable[["AssetRequest", Any], None]
ErrorCallback = Callable[["AssetRequest", "AssetLoadError"], None]

KIND_SPLAT = "splat"
KIND_TEXTURE = "texture"


@dataclass(frozen=True)
class AssetRequest:
    kind: str
    path: Path
    label: str = ""
    max_points: Optional[int] = None
    max_size: Optional[int] = None

    def describe(self) -> str:
        return self.label or self.path.name


class AssetLoadError(RuntimeError):
    def __init__(self, request: AssetRequest, cause: BaseException):
        super().__init__(f"Failed to load {request.kind} {request.path}: {cause}")
        self.request = request
        self.cause = cause


def decode_asset(request: AssetRequest) -> Any:
    """Run the decoder for ``request.kind``; raises AssetLoadError on any failure."""
    try:
        if request.kind == KIND_SPLAT:
            return load_splat_ply(request.path, max_points=request.max_points)
        if request.kind == KIND_TEXTURE:
            return load_rgba(request.path, max_size=request.max_size)
        raise ValueError(f"Unknown asset kind: {request.kind!r}")
    except Exception as exc:
        raise AssetLoadError(request, exc) from exc


class _LoadJob(QtCore.QRunnable):
    def __init__(self, ticket: int, request: AssetRequest, signals: "_LoadSignals"):
        super().__init__()
        self.ticket = ticket
        self.request = request
        self.signals = signals
        self.setAutoDelete(True)

    def run(self):
        try:
            result = decode_asset(self.request)
        except AssetLoadError as exc:
            self.signals.failed.emit(self.ticket, exc)
            return
        self.signals.loaded.emit(self.ticket, result)


class _LoadSignals(QtCore.QObject):
    loaded = QtCore.pyqtSignal(int, object)
    failed = QtCore.pyqtSignal(int, object)


class AssetLoader(QtCore.QObject):
    """
    Fire-and-forget asset loading on a thread pool.

    Decoding happens on worker threads; the success/error callbacks always run
    on the thread that owns this loader (the GUI thread), because the worker
    signals are delivered through queued connections. Callers never get a
    return value, only one of the two callbacks, exactly once per load.
    """

    def __init__(self, parent: QtCore.QObject = None, max_threads: Optional[int] = None):
        super().__init__(parent)
        self.pool = QtCore.QThreadPool(self)
        if max_threads:
            self.pool.setMaxThreadCount(int(max_threads))
        self._signals = _LoadSignals(self)
        self._signals.loaded.connect(self._on_loaded)
        self._signals.failed.connect(self._on_failed)
        self._tickets = itertools.count(1)
        self._pending: Dict[int, Tuple[AssetRequest, SuccessCallback, ErrorCallback]] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def load(self, request: AssetRequest, on_success: SuccessCallback, on_error: ErrorCallback) -> int:
        ticket = next(self._tickets)
        self._pending[ticket] = (request, on_success, on_error)
        logger.debug("Queued %s load #%d: %s", request.kind, ticket, request.path)
        self.pool.start(_LoadJob(ticket, request, self._signals))
        return ticket

    def wait_for_done(self, msecs: int = -1) -> bool:
        return self.pool.waitForDone(msecs)

    @QtCore.pyqtSlot(int, object)
    def _on_loaded(self, ticket: int, result: Any):
        entry = self._pending.pop(ticket, None)
        if entry is None:
            return
        request, on_success, _ = entry
        on_success(request, result)

    @QtCore.pyqtSlot(int, object)
    def _on_failed(self, ticket: int, error: AssetLoadError):
        entry = self._pending.pop(ticket, None)
        if entry is None:
            return
        request, _, on_error = entry
        on_error(request, error)
