import os
import time

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt5 import QtWidgets


@pytest.fixture(scope="session")
def qapp():
    app = QtWidgets.QApplication.instance()
    if app is None:
        app = QtWidgets.QApplication([])
    yield app


@pytest.fixture
def drain(qapp):
    """Process queued Qt events until ``done()`` is true or the timeout passes."""

    def _drain(done, timeout_s=5.0):
        deadline = time.monotonic() + timeout_s
        while not done() and time.monotonic() < deadline:
            qapp.processEvents()
            time.sleep(0.005)
        qapp.processEvents()
        return done()

    return _drain
