"""
Shared HTTP plumbing for the upstream lookup clients.

Requests go through ``BaseAPIClient._request`` which maps transport failures and
non-success statuses onto the error hierarchy. Public operations run through
``BaseAPIClient._run`` which turns any exception into a failed FetchResult, so
no exception ever escapes a client operation.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, TypeVar

import httpx

from ..config import APIConfig, get_config
from ..errors import (
    APIError, BindingLookupError, DataError, ErrorHandler, ErrorInfo, NetworkError,
    NotFoundError, create_error_context, get_error_handler
)
from ..logging_config import get_logger, log_api_call

T = TypeVar('T')

JSON_MEDIA_TYPE = "application/json"
TEXT_MEDIA_TYPE = "text/plain"


@dataclass
class FetchResult(Generic[T]):
    """Outcome of a client operation: a value, or the classified cause of failure."""
    value: Optional[T] = None
    error: Optional[ErrorInfo] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "FetchResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ErrorInfo) -> "FetchResult[T]":
        return cls(error=error)

    def unwrap_or(self, default: Any) -> Any:
        """Value on success, ``default`` otherwise."""
        return self.value if self.ok else default


class BaseAPIClient:
    """
    Async HTTP client base with uniform error absorption.

    Subclasses set ``service_name`` and implement their operations as private
    coroutines that raise; the public ``*_result`` wrappers call ``_run``.
    """

    service_name = "upstream"

    def __init__(
        self,
        config: Optional[APIConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
        error_handler: Optional[ErrorHandler] = None
    ):
        """
        Initialize the client.

        Args:
            config: API configuration, uses global config if not provided
            http_client: Pre-built httpx client, one is created from config if not provided
            logger: Logger for request and failure diagnostics
            error_handler: Error handler; one bound to ``logger`` when a logger is given,
                the process-wide handler otherwise
        """
        self.config = config or get_config().api
        self.logger = logger or get_logger(f"{self.__module__}.{self.__class__.__name__}")
        if error_handler is None:
            error_handler = ErrorHandler(logger) if logger is not None else get_error_handler()
        self.error_handler = error_handler

        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=self.config.connection_timeout,
                read=self.config.request_timeout,
                write=self.config.request_timeout,
                pool=self.config.request_timeout
            ),
            headers={"User-Agent": self.config.user_agent},
            follow_redirects=True
        )

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()

    @staticmethod
    def _build_url(base_url: str, endpoint: str) -> str:
        return f"{base_url.rstrip('/')}/{endpoint.lstrip('/')}"

    async def _request(
        self,
        method: str,
        url: str,
        accept: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None
    ) -> httpx.Response:
        """
        Issue one HTTP request.

        Raises:
            NetworkError: For transport failures
            NotFoundError: For 404 responses
            APIError: For any other non-success status
        """
        headers = {"Accept": accept}
        if json_body is not None:
            headers["Content-Type"] = JSON_MEDIA_TYPE

        self.logger.debug(
            "Making %s request",
            self.service_name,
            extra={"url": url, "method": method, "params": params}
        )

        started = time.monotonic()
        try:
            response = await self.client.request(method, url, headers=headers, params=params, json=json_body)
        except httpx.TimeoutException as e:
            raise NetworkError(
                f"Timeout connecting to {self.service_name}: {e}",
                context=create_error_context("request", service=self.service_name, request_url=url),
                original_exception=e
            )
        except httpx.ConnectError as e:
            raise NetworkError(
                f"Connection error to {self.service_name}: {e}",
                context=create_error_context("request", service=self.service_name, request_url=url),
                original_exception=e
            )
        except httpx.HTTPError as e:
            raise NetworkError(
                f"HTTP error from {self.service_name}: {e}",
                context=create_error_context("request", service=self.service_name, request_url=url),
                original_exception=e
            )

        log_api_call(self.logger, self.service_name, url, method, response.status_code, time.monotonic() - started)

        status = response.status_code
        context = create_error_context("request", service=self.service_name, request_url=url, response_status=status)
        if status == 404:
            raise NotFoundError(f"{self.service_name} has no record at {url}", context=context)
        if status >= 400:
            raise APIError(f"{self.service_name} returned status {status}", status, context=context)

        return response

    def _decode_json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise DataError(f"Invalid JSON response from {self.service_name}: {e}", original_exception=e)

    async def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self._request("GET", url, JSON_MEDIA_TYPE, params=params)
        return self._decode_json(response)

    async def _get_text(self, url: str, accept: str = TEXT_MEDIA_TYPE, params: Optional[Dict[str, Any]] = None) -> str:
        response = await self._request("GET", url, accept, params=params)
        return response.text

    async def _post_json(self, url: str, payload: Dict[str, Any]) -> httpx.Response:
        return await self._request("POST", url, JSON_MEDIA_TYPE, json_body=payload)

    async def _run(
        self,
        operation: str,
        func: Callable[..., Awaitable[T]],
        *args,
        entity_id: Optional[str] = None,
        **context_data
    ) -> FetchResult[T]:
        """
        Run ``func(*args)`` and absorb any failure into a FetchResult.

        Args:
            operation: Operation name for diagnostics
            func: Coroutine function implementing the operation
            *args: Arguments for ``func``
            entity_id: Identifier the operation was queried with
            **context_data: Additional diagnostic context

        Returns:
            FetchResult holding the value, or the classified error
        """
        try:
            value = await func(*args)
        except Exception as e:
            context = create_error_context(
                operation=operation,
                service=self.service_name,
                entity_id=entity_id,
                **context_data
            )
            if isinstance(e, BindingLookupError) and e.context is not None:
                context.request_url = e.context.request_url
                context.response_status = e.context.response_status
            return FetchResult.failure(self.error_handler.handle_error(e, context))

        return FetchResult.success(value)
