"""The mempool's connection to the application that validates transactions."""

from __future__ import annotations

import threading
from typing import Callable, Optional

from txmempool.types import CheckTxRequest, CheckTxResponse

ResponseCallback = Callable[[CheckTxRequest, CheckTxResponse], None]


class Application:
    """An application that validates transactions.

    This base application accepts every transaction; subclasses override
    :meth:`check_tx` to apply their own rules.
    """

    def check_tx(self, request: CheckTxRequest) -> CheckTxResponse:
        return CheckTxResponse()


class ReqRes:
    """A request paired with its response and an optional callback."""

    def __init__(
        self, request: CheckTxRequest, response: Optional[CheckTxResponse] = None
    ) -> None:
        self.request = request
        self.response = response
        self._lock = threading.Lock()
        self._callback: Optional[Callable[[CheckTxResponse], None]] = None
        self._callback_invoked = False

    def set_callback(self, callback: Callable[[CheckTxResponse], None]) -> None:
        """Set the callback; if the response was already delivered, call it now."""
        with self._lock:
            if not self._callback_invoked:
                self._callback = callback
                return
        callback(self.response)

    def invoke_callback(self) -> None:
        """Deliver the response to the callback, if one is set."""
        with self._lock:
            if self._callback is not None:
                self._callback(self.response)
            self._callback_invoked = True


class LocalAppConnection:
    """An in-process connection to an :class:`Application`.

    Requests are served synchronously, one at a time: the global response
    callback runs before ``check_tx_async`` returns, and the returned
    :class:`ReqRes` runs any callback set on it immediately.
    """

    def __init__(self, app: Application) -> None:
        self.app = app
        self._lock = threading.RLock()
        self._callback: Optional[ResponseCallback] = None
        self._error: Optional[BaseException] = None

    def set_response_callback(self, callback: ResponseCallback) -> None:
        """Set the callback run after every response."""
        with self._lock:
            self._callback = callback

    def check_tx_async(self, request: CheckTxRequest) -> ReqRes:
        """Ask the application to check a transaction.

        An exception raised by the application is recorded as the
        connection's error and raised again.
        """
        with self._lock:
            try:
                response = self.app.check_tx(request)
            except Exception as exc:
                self._error = exc
                raise
            if self._callback is not None:
                self._callback(request, response)
            req_res = ReqRes(request, response)
            req_res.invoke_callback()
            return req_res

    def error(self) -> Optional[BaseException]:
        """Return the last error raised by the application, if any."""
        with self._lock:
            return self._error

    def flush(self) -> None:
        """Wait until any request being served has finished."""
        self._lock.acquire()
        self._lock.release()