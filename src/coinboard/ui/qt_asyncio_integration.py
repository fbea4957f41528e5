import sys
from collections.abc import Coroutine
from typing import Any

from loguru import logger
from PySide6 import QtAsyncio
from PySide6.QtWidgets import QApplication


def run_with_asyncio(main_coro: Coroutine[Any, Any, int]) -> int:
    """Runs the application on one event loop shared by Qt and asyncio.

    The QApplication must exist before any widget is created, so it is set up
    here. `QtAsyncio` then drives asyncio tasks from Qt's own event loop; the
    loop keeps running after `main_coro` returns and ends when the last
    window is closed.

    Args:
        main_coro: The coroutine that builds the UI and starts the services.

    Returns:
        The exit code of the application.
    """
    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)
    app.setApplicationName("Coinboard")

    logger.info("Starting the Qt event loop with QtAsyncio.")
    QtAsyncio.run(main_coro, keep_running=True, quit_qapp=True, handle_sigint=True)
    logger.info("Qt event loop has finished.")
    return 0
