from __future__ import annotations


class NordicStocksError(RuntimeError):
    """Base class for failures reported by this package."""


class FetchCancelled(Exception):
    """
    Cooperative cancellation was observed.

    Not a NordicStocksError: ``except NordicStocksError`` must not catch it.
    """


class TransportError(RuntimeError):
    def __init__(self, *, url: str, status_code: int | None = None, cause: Exception | None = None):
        detail = f"HTTP {status_code}" if status_code is not None else str(cause)
        super().__init__(f"request to {url} failed: {detail}")
        self.url = url
        self.status_code = status_code
        self.__cause__ = cause


class DocumentParseError(ValueError):
    """The body was not well-formed JSON, or its structure is not the expected one."""

    def __init__(self, message: str, *, url: str | None = None):
        super().__init__(message if url is None else f"{message} (url={url})")
        self.url = url


class FetchFailed(NordicStocksError):
    def __init__(self, *, endpoint: str, cause: Exception):
        super().__init__(f"Failed to retrieve Nordic stocks from {endpoint}: {cause}")
        self.endpoint = endpoint
        self.__cause__ = cause


class ParseFailed(NordicStocksError):
    def __init__(self, *, cause: Exception):
        super().__init__(f"Failed to parse Nordic stocks: {cause}")
        self.__cause__ = cause


class RetrievalFailed(NordicStocksError):
    """
    Single failure kind of the snapshot client.

    ``reason`` is one of "transport", "parse" or "empty"; the message names
    the resource so the three causes can be told apart when read.
    """

    REASONS = ("transport", "parse", "empty")

    def __init__(self, message: str, *, resource: str, reason: str, cause: Exception | None = None):
        if reason not in self.REASONS:
            raise ValueError(f"invalid reason: {reason}")
        super().__init__(message)
        self.resource = resource
        self.reason = reason
        self.__cause__ = cause
