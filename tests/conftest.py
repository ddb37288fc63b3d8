"""Shared test fixtures for optigraph tests."""

from __future__ import annotations

import json
from typing import Any

import pytest
import requests

from optigraph.formats.settings import AuthMode, GraphSettings
from optigraph.schema.types import ContentTypeSchema, SchemaField


def scalar(name: str, type_name: str = "String", **kwargs: Any) -> SchemaField:
    """Helper to create a scalar SchemaField with minimal boilerplate."""
    return SchemaField(name=name, graph_type=type_name, underlying_type=type_name, **kwargs)


def make_response(
    status: int = 200,
    body: Any = None,
    text: str | None = None,
    reason: str = "OK",
) -> requests.Response:
    """Build a real requests.Response carrying *body* as JSON (or raw *text*)."""
    response = requests.Response()
    response.status_code = status
    response.reason = reason
    raw = text if text is not None else ("" if body is None else json.dumps(body))
    response._content = raw.encode("utf-8")  # pyright: ignore[reportPrivateUsage]
    response.encoding = "utf-8"
    response.headers["Content-Type"] = "application/json" if text is None else "text/html"
    response.url = "https://cg.optimizely.com/content/v2"
    return response


@pytest.fixture
def blog_post_schema() -> ContentTypeSchema:
    category = SchemaField(
        name="category",
        graph_type="Category",
        underlying_type="Category",
        is_scalar=False,
        sortable=False,
        nested_fields=(scalar("name"), scalar("id", "Int")),
    )
    main_body = SchemaField(
        name="mainBody",
        graph_type="RichText",
        underlying_type="RichText",
        is_scalar=False,
        sortable=False,
        nested_fields=(),
    )
    return ContentTypeSchema(
        name="BlogPost",
        fields=(
            scalar("title", searchable=True),
            scalar("author", searchable=True),
            scalar("status"),
            scalar("publishDate", "DateTime"),
            scalar("price", "Float"),
            scalar("views", "Int"),
            scalar("featured", "Boolean"),
            SchemaField(
                name="tags",
                graph_type="[String]",
                underlying_type="String",
                is_list=True,
                sortable=False,
            ),
            scalar("internalNotes", filterable=False, sortable=False),
            category,
            main_body,
        ),
    )


@pytest.fixture
def single_key_settings() -> GraphSettings:
    return GraphSettings(auth_mode=AuthMode.SINGLE_KEY, single_key="test-key")


@pytest.fixture
def introspection_data() -> dict[str, Any]:
    """A trimmed introspection payload with one content type and one locale enum."""

    def named(kind: str, name: str) -> dict[str, Any]:
        return {"kind": kind, "name": name, "ofType": None}

    def non_null(inner: dict[str, Any]) -> dict[str, Any]:
        return {"kind": "NON_NULL", "name": None, "ofType": inner}

    def list_of(inner: dict[str, Any]) -> dict[str, Any]:
        return {"kind": "LIST", "name": None, "ofType": inner}

    def fld(name: str, type_ref: dict[str, Any], description: str | None = None) -> dict[str, Any]:
        return {"name": name, "description": description, "type": type_ref}

    return {
        "__schema": {
            "queryType": {"name": "Query"},
            "types": [
                {
                    "kind": "OBJECT",
                    "name": "Query",
                    "fields": [
                        fld("BlogPost", named("OBJECT", "BlogPostOutput")),
                        fld("_Content", named("OBJECT", "_ContentOutput")),
                    ],
                },
                {
                    "kind": "OBJECT",
                    "name": "BlogPost",
                    "description": "A blog article",
                    "fields": [
                        fld("title", named("SCALAR", "String"), "Headline"),
                        fld("views", non_null(named("SCALAR", "Int"))),
                        fld("tags", list_of(named("SCALAR", "String"))),
                        fld("status", named("ENUM", "PublishStatus")),
                        fld("category", named("OBJECT", "Category")),
                        fld("related", list_of(named("OBJECT", "BlogPost"))),
                    ],
                    "interfaces": [{"name": "IContent"}],
                },
                {
                    "kind": "OBJECT",
                    "name": "Category",
                    "fields": [
                        fld("name", named("SCALAR", "String")),
                        fld("parent", named("OBJECT", "Category")),
                    ],
                    "interfaces": [],
                },
                {
                    "kind": "OBJECT",
                    "name": "BlogPostOutput",
                    "fields": [fld("total", named("SCALAR", "Int"))],
                },
                {"kind": "OBJECT", "name": "__Type", "fields": [fld("name", named("SCALAR", "String"))]},
                {"kind": "SCALAR", "name": "String"},
                {"kind": "SCALAR", "name": "Int"},
                {
                    "kind": "ENUM",
                    "name": "PublishStatus",
                    "enumValues": [{"name": "Draft"}, {"name": "Published"}],
                },
                {
                    "kind": "ENUM",
                    "name": "Locales",
                    "enumValues": [{"name": "ALL"}, {"name": "en"}, {"name": "sv"}],
                },
            ],
        }
    }
