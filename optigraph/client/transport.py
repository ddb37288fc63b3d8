"""GraphQL-over-HTTP client for Optimizely Graph.

Any HTTP response carrying a GraphQL-shaped body is returned as a
:class:`GraphResponse`, including 4xx responses and 200 responses with
``errors``. Only failures that leave no usable response (DNS, TLS, timeout,
non-JSON 2xx body) raise :class:`TransportError`.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

from pydantic import ValidationError as PydanticValidationError
import requests

from optigraph.client.auth import auth_headers
from optigraph.errors import TransportError
from optigraph.formats.envelope import GraphRequest, GraphResponse, RequestInfo, is_graphql_body
from optigraph.formats.settings import GraphSettings
from optigraph.helpers.console import truncate
from optigraph.helpers.http import get_header, redact_headers

logger = logging.getLogger(__name__)

CONNECTION_TEST_QUERY = "{ __schema { queryType { name } } }"


class GraphClient:
    """Executes GraphQL requests against the endpoint in *settings*."""

    def __init__(self, settings: GraphSettings, *, session: requests.Session | None = None):
        self._settings = settings
        self._session = session or requests.Session()
        self.last_request: RequestInfo | None = None

    @property
    def settings(self) -> GraphSettings:
        return self._settings

    @property
    def session(self) -> requests.Session:
        return self._session

    def execute(self, request: GraphRequest) -> GraphResponse:
        """POST *request* and parse the response envelope."""
        endpoint = self._settings.endpoint
        body = json.dumps(request.to_payload(), separators=(",", ":")).encode("utf-8")
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        headers.update(auth_headers(self._settings, body, "POST", endpoint))

        info = RequestInfo(
            url=endpoint,
            request_headers=redact_headers(headers),
            request_body=body.decode("utf-8"),
        )
        self.last_request = info

        logger.debug("POST %s (%d bytes, auth=%s)", endpoint, len(body), self._settings.auth_mode.value)
        started = time.perf_counter()
        try:
            response = self._session.post(
                endpoint,
                data=body,
                headers=headers,
                timeout=self._settings.timeout,
            )
        except requests.RequestException as e:
            info.duration_ms = (time.perf_counter() - started) * 1000
            logger.error("GraphQL request to %s failed: %s", endpoint, e)
            raise TransportError(f"Connection error: {e}", {"endpoint": endpoint}) from e

        info.duration_ms = (time.perf_counter() - started) * 1000
        info.status_code = response.status_code
        info.response_headers = dict(response.headers)
        info.response_body = response.text
        logger.debug("HTTP %d from %s in %.0fms", response.status_code, endpoint, info.duration_ms)

        return self._parse(response)

    async def execute_async(self, request: GraphRequest) -> GraphResponse:
        """Awaitable :meth:`execute`.

        The HTTP call runs in a worker thread. Cancelling the awaiting task
        abandons the call; its eventual result is discarded.
        """
        return await asyncio.to_thread(self.execute, request)

    def execute_query(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
        operation_name: str | None = None,
    ) -> GraphResponse:
        return self.execute(GraphRequest(query=query, variables=variables, operation_name=operation_name))

    def test_connection(self) -> tuple[bool, str]:
        """Run a trivial schema query and report whether the endpoint answers."""
        try:
            response = self.execute_query(CONNECTION_TEST_QUERY)
        except TransportError as e:
            return False, f"Connection failed: {e}"
        if response.has_errors:
            return False, f"Connection failed: {'; '.join(response.error_messages())}"
        return True, "Connection successful!"

    def _parse(self, response: requests.Response) -> GraphResponse:
        endpoint = self._settings.endpoint
        try:
            body = response.json()
        except ValueError:
            body = None

        if is_graphql_body(body):
            if not response.ok:
                logger.warning("GraphQL request returned HTTP %d with errors", response.status_code)
            try:
                return GraphResponse.model_validate(body)
            except PydanticValidationError as e:
                raise TransportError(
                    f"Malformed GraphQL response from {endpoint}",
                    {"status": response.status_code, "errors": e.errors()},
                ) from e

        if not response.ok:
            logger.warning(
                "GraphQL request failed with status %d: %s",
                response.status_code,
                truncate(response.text, 500),
            )
            return GraphResponse.from_error(f"HTTP {response.status_code}: {response.reason}")

        raise TransportError(
            f"Response from {endpoint} is not a GraphQL response",
            {
                "status": response.status_code,
                "content_type": get_header(response.headers, "Content-Type"),
                "body": truncate(response.text, 200),
            },
        )
