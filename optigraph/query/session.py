"""Playground state: the active query, its execution and its history.

Only one execution runs at a time per session. Each execution is stamped with
a generation number; when a newer execution starts or the caller abandons the
current one, the older response is dropped instead of overwriting newer state.
"""

from __future__ import annotations

import logging
from typing import Any

from optigraph.client.transport import GraphClient
from optigraph.errors import SessionBusyError
from optigraph.formats.envelope import GraphRequest, GraphResponse
from optigraph.formats.settings import GraphSettings
from optigraph.query.builder import build_query
from optigraph.query.definition import QueryDefinition
from optigraph.query.history import QueryHistory, QueryHistoryItem
from optigraph.schema.types import ContentTypeSchema

logger = logging.getLogger(__name__)


class QuerySession:
    def __init__(
        self,
        client: GraphClient,
        settings: GraphSettings,
        history: QueryHistory | None = None,
    ):
        self._client = client
        self._settings = settings
        self.history = history if history is not None else QueryHistory(settings.max_history_items)
        self.definition = self._fresh_definition()
        self.raw_query = ""
        self.variables: dict[str, Any] = {}
        self.last_response = ""
        self.is_executing = False
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def _fresh_definition(self) -> QueryDefinition:
        return QueryDefinition(locale=self._settings.default_locale)

    def new_query(self) -> QueryDefinition:
        self.definition = self._fresh_definition()
        return self.definition

    def reset(self) -> None:
        """Discard all builder state and drop any in-flight response."""
        self.abandon()
        self.new_query()
        self.raw_query = ""
        self.variables = {}
        self.last_response = ""

    def abandon(self) -> None:
        """Forget the in-flight execution; its response will be ignored."""
        self._generation += 1
        self.is_executing = False

    def load_from_history(self, item: QueryHistoryItem) -> None:
        self.raw_query = item.query
        self.last_response = item.response

    def build(self, content_type_schema: ContentTypeSchema | None = None) -> str:
        self.raw_query = build_query(self.definition, content_type_schema)
        return self.raw_query

    async def execute(
        self,
        query: str | None = None,
        variables: dict[str, Any] | None = None,
        *,
        operation_name: str | None = None,
        content_type_schema: ContentTypeSchema | None = None,
    ) -> GraphResponse | None:
        """Run *query* (or the built definition) and record the outcome.

        Returns None when the response arrived after the execution was
        superseded or abandoned. Build, validation and transport errors
        propagate and are not recorded in history.
        """
        if self.is_executing:
            raise SessionBusyError("A query is already executing")

        text = query if query is not None else self.build(content_type_schema)
        if variables is not None:
            self.variables = variables
        self.raw_query = text

        self._generation += 1
        generation = self._generation
        self.is_executing = True
        try:
            response = await self._client.execute_async(
                GraphRequest(query=text, variables=self.variables or None, operation_name=operation_name)
            )
        finally:
            if generation == self._generation:
                self.is_executing = False

        if generation != self._generation:
            logger.debug("Discarding stale response for generation %d", generation)
            return None

        self.last_response = response.model_dump_json(indent=2, exclude_unset=True)
        if self._settings.save_query_history:
            self.history.record(text, self.last_response, success=not response.has_errors)
        return response

