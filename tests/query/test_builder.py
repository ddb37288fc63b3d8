"""Tests for optigraph/query/builder.py."""

from __future__ import annotations

from graphql import parse, print_ast
import pytest

from optigraph.errors import BuildError, ValidationError
from optigraph.query.builder import build_query, format_query, validate_query
from optigraph.query.definition import (
    FacetOrderBy,
    FilterDefinition,
    FilterLogic,
    QueryDefinition,
    SortDefinition,
    SortDirection,
)
from optigraph.schema.operators import Operator
from optigraph.schema.types import ContentTypeSchema
from tests.conftest import scalar

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _gql(text: str) -> str:
    """Canonical printed form of a hand-written document."""
    return print_ast(parse(text))


def _make_definition(**kwargs) -> QueryDefinition:
    kwargs.setdefault("content_type", "BlogPost")
    kwargs.setdefault("selected_fields", ["title"])
    kwargs.setdefault("include_total", False)
    return QueryDefinition(**kwargs)


def _where(definition: QueryDefinition, schema: ContentTypeSchema | None = None) -> str:
    """Build and return the printed document for a query with only filters."""
    return build_query(definition, schema)


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------


class TestBuildQuery:
    def test_blog_post_example(self) -> None:
        definition = QueryDefinition(
            content_type="BlogPost",
            selected_fields=["title", "author"],
            filters=[FilterDefinition(field="status", operator=Operator.EQ, value="published")],
            sorts=[SortDefinition(field="publishDate", direction=SortDirection.DESC, order=0)],
        )
        definition.pagination.use_offset(limit=10)

        expected = """
        {
          BlogPost(where: {status: {eq: "published"}}, orderBy: {publishDate: DESC}, limit: 10) {
            items { title author }
            total
          }
        }
        """
        assert build_query(definition) == _gql(expected)

    def test_output_always_parses(self, blog_post_schema: ContentTypeSchema) -> None:
        definition = _make_definition(
            selected_fields=["title", "category", "mainBody"],
            filters=[
                FilterDefinition(field="views", operator=Operator.GTE, value="10"),
                FilterDefinition(field="tags", operator=Operator.IN, values=["a", 'say "hi"'], logic=FilterLogic.OR),
            ],
            locale="en",
            search_term="graph",
        )
        definition.add_facet("category.name", limit=3)
        parse(build_query(definition, blog_post_schema))

    def test_missing_content_type(self) -> None:
        with pytest.raises(BuildError):
            build_query(QueryDefinition(selected_fields=["title"]))

    def test_no_selected_fields(self) -> None:
        with pytest.raises(BuildError) as exc:
            build_query(QueryDefinition(content_type="BlogPost", selected_fields=["  "]))
        assert exc.value.details == {"content_type": "BlogPost"}

    def test_duplicate_fields_selected_once(self) -> None:
        result = build_query(_make_definition(selected_fields=["title", "author", "title"]))
        assert result == _gql("{ BlogPost(limit: 10) { items { title author } } }")

    def test_total_optional(self) -> None:
        with_total = build_query(_make_definition(include_total=True))
        without_total = build_query(_make_definition(include_total=False))
        assert "total" in with_total
        assert "total" not in without_total

    def test_invalid_content_type_name(self) -> None:
        with pytest.raises(ValidationError) as exc:
            build_query(_make_definition(content_type="Blog Post"))
        assert exc.value.field == "Blog Post"

    def test_invalid_field_name(self) -> None:
        with pytest.raises(ValidationError) as exc:
            build_query(_make_definition(selected_fields=["bad-name"]))
        assert exc.value.field == "bad-name"

    def test_schema_for_other_type_rejected(self, blog_post_schema: ContentTypeSchema) -> None:
        with pytest.raises(ValidationError):
            build_query(_make_definition(content_type="Article"), blog_post_schema)


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


class TestFilterGrouping:
    def test_single_filter_is_bare(self) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="status", value="x")])
        assert _where(definition) == _gql('{ BlogPost(where: {status: {eq: "x"}}, limit: 10) { items { title } } }')

    def test_logic_change_wraps_accumulated_condition(self) -> None:
        definition = _make_definition(
            filters=[
                FilterDefinition(field="a", value="1"),
                FilterDefinition(field="b", value="2", logic=FilterLogic.OR),
                FilterDefinition(field="c", value="3", logic=FilterLogic.OR),
            ]
        )
        expected = """
        { BlogPost(
            where: {_or: [{a: {eq: "1"}}, {b: {eq: "2"}}, {c: {eq: "3"}}]}, limit: 10
          ) { items { title } } }
        """
        assert _where(definition) == _gql(expected)

    def test_and_run_then_or(self) -> None:
        definition = _make_definition(
            filters=[
                FilterDefinition(field="a", value="1"),
                FilterDefinition(field="b", value="2"),
                FilterDefinition(field="c", value="3", logic=FilterLogic.OR),
            ]
        )
        expected = """
        { BlogPost(
            where: {_or: [{_and: [{a: {eq: "1"}}, {b: {eq: "2"}}]}, {c: {eq: "3"}}]}, limit: 10
          ) { items { title } } }
        """
        assert _where(definition) == _gql(expected)

    def test_order_of_keywords_follows_authoring(self) -> None:
        definition = _make_definition(
            filters=[
                FilterDefinition(field="a", value="1"),
                FilterDefinition(field="b", value="2", logic=FilterLogic.OR),
                FilterDefinition(field="c", value="3"),
            ]
        )
        result = _where(definition)
        assert result.index("_and") < result.index("_or") < result.index("a:")
        assert result.index("a:") < result.index("b:") < result.index("c:")

    def test_blank_filter_ignored(self) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="", value="x")])
        assert "where" not in _where(definition)

    def test_nested_filters_always_grouped(self) -> None:
        parent = FilterDefinition(
            field="category",
            nested_filters=[FilterDefinition(field="name", value="News")],
        )
        definition = _make_definition(filters=[parent])
        expected = '{ BlogPost(where: {category: {_and: [{name: {eq: "News"}}]}}, limit: 10) { items { title } } }'
        assert _where(definition) == _gql(expected)

    def test_dotted_filter_path(self) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="_metadata.status", value="Published")])
        expected = '{ BlogPost(where: {_metadata: {status: {eq: "Published"}}}, limit: 10) { items { title } } }'
        assert _where(definition) == _gql(expected)

    def test_only_dots_rejected(self) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="..", value="x")])
        with pytest.raises(ValidationError):
            build_query(definition)


class TestFilterValues:
    def test_in_renders_list_of_strings(self) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="tags", operator=Operator.IN, values=["a", "b"])])
        assert 'tags: {in: ["a", "b"]}' in _where(definition)

    def test_in_without_values(self) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="tags", operator=Operator.NOT_IN)])
        with pytest.raises(ValidationError) as exc:
            build_query(definition)
        assert exc.value.field == "tags"

    def test_in_on_numeric_field(self, blog_post_schema: ContentTypeSchema) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="views", operator=Operator.IN, values=["1", "2"])])
        assert "views: {in: [1, 2]}" in _where(definition, blog_post_schema)

    def test_gt_on_numeric_field_unquoted(self, blog_post_schema: ContentTypeSchema) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="views", operator=Operator.GT, value="5")])
        assert "views: {gt: 5}" in _where(definition, blog_post_schema)

    def test_gt_without_schema_unquoted_when_numeric(self) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="views", operator=Operator.GT, value="5")])
        assert "views: {gt: 5}" in _where(definition)

    def test_gt_without_schema_keeps_dates_quoted(self) -> None:
        definition = _make_definition(
            filters=[FilterDefinition(field="publishDate", operator=Operator.GT, value="2024-01-01")]
        )
        assert 'publishDate: {gt: "2024-01-01"}' in _where(definition)

    def test_eq_without_schema_quoted(self) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="views", value="5")])
        assert 'views: {eq: "5"}' in _where(definition)

    def test_any_operator_without_schema(self) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="views", operator=Operator.LIKE, value="5")])
        assert 'views: {like: "5"}' in _where(definition)

    def test_enum_value_unquoted(self) -> None:
        schema = ContentTypeSchema(
            name="BlogPost",
            fields=(scalar("title"), scalar("status", "PublishStatus", is_enum=True)),
        )
        definition = _make_definition(filters=[FilterDefinition(field="status", value="PUBLISHED")])
        assert "status: {eq: PUBLISHED}" in _where(definition, schema)

    def test_bad_enum_value(self) -> None:
        schema = ContentTypeSchema(
            name="BlogPost",
            fields=(scalar("title"), scalar("status", "PublishStatus", is_enum=True)),
        )
        definition = _make_definition(filters=[FilterDefinition(field="status", value="not published")])
        with pytest.raises(ValidationError) as exc:
            build_query(definition, schema)
        assert exc.value.field == "status"

    def test_float_literal(self, blog_post_schema: ContentTypeSchema) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="price", operator=Operator.LTE, value="9.99")])
        assert "price: {lte: 9.99}" in _where(definition, blog_post_schema)

    def test_bad_number(self, blog_post_schema: ContentTypeSchema) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="price", operator=Operator.GT, value="cheap")])
        with pytest.raises(ValidationError) as exc:
            build_query(definition, blog_post_schema)
        assert exc.value.field == "price"

    def test_boolean_literal(self, blog_post_schema: ContentTypeSchema) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="featured", value="True")])
        assert "featured: {eq: true}" in _where(definition, blog_post_schema)

    def test_bad_boolean(self, blog_post_schema: ContentTypeSchema) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="featured", value="maybe")])
        with pytest.raises(ValidationError):
            build_query(definition, blog_post_schema)

    def test_exist_defaults_to_true(self) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="author", operator=Operator.EXIST)])
        assert "author: {exist: true}" in _where(definition)

    def test_exist_false(self) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="author", operator=Operator.EXIST, value="false")])
        assert "author: {exist: false}" in _where(definition)

    def test_boost_integer(self) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="title", operator=Operator.BOOST, value="3")])
        assert "title: {boost: 3}" in _where(definition)

    def test_boost_rejects_non_integer(self) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="title", operator=Operator.BOOST, value="high")])
        with pytest.raises(ValidationError):
            build_query(definition)

    def test_synonyms_render_enums(self) -> None:
        definition = _make_definition(
            filters=[FilterDefinition(field="title", operator=Operator.SYNONYMS, values=["one", "two"])]
        )
        assert "title: {synonyms: [ONE, TWO]}" in _where(definition)

    def test_string_escaped(self) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="title", value='say "hi"')])
        assert 'title: {eq: "say \\"hi\\""}' in _where(definition)


class TestSchemaValidation:
    def test_unknown_filter_field(self, blog_post_schema: ContentTypeSchema) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="nope", value="x")])
        with pytest.raises(ValidationError) as exc:
            build_query(definition, blog_post_schema)
        assert exc.value.field == "nope"

    def test_operator_not_allowed_for_type(self, blog_post_schema: ContentTypeSchema) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="title", operator=Operator.GT, value="a")])
        with pytest.raises(ValidationError) as exc:
            build_query(definition, blog_post_schema)
        assert exc.value.details["operator"] == "gt"

    def test_like_not_allowed_on_boolean(self, blog_post_schema: ContentTypeSchema) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="featured", operator=Operator.LIKE, value="t")])
        with pytest.raises(ValidationError):
            build_query(definition, blog_post_schema)

    def test_non_filterable_field(self, blog_post_schema: ContentTypeSchema) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="internalNotes", value="x")])
        with pytest.raises(ValidationError):
            build_query(definition, blog_post_schema)

    def test_unknown_selected_field(self, blog_post_schema: ContentTypeSchema) -> None:
        with pytest.raises(ValidationError) as exc:
            build_query(_make_definition(selected_fields=["title", "summary"]), blog_post_schema)
        assert exc.value.field == "summary"

    def test_unknown_nested_selected_field(self, blog_post_schema: ContentTypeSchema) -> None:
        with pytest.raises(ValidationError) as exc:
            build_query(_make_definition(selected_fields=["category.color"]), blog_post_schema)
        assert exc.value.field == "category.color"

    def test_nested_filter_validated_against_nested_fields(self, blog_post_schema: ContentTypeSchema) -> None:
        parent = FilterDefinition(
            field="category",
            nested_filters=[FilterDefinition(field="id", operator=Operator.GT, value="x")],
        )
        with pytest.raises(ValidationError):
            build_query(_make_definition(filters=[parent]), blog_post_schema)

    def test_content_type_match_is_case_insensitive(self, blog_post_schema: ContentTypeSchema) -> None:
        build_query(_make_definition(content_type="blogpost"), blog_post_schema)


# ---------------------------------------------------------------------------
# Selections, sorting, paging
# ---------------------------------------------------------------------------


class TestSelections:
    def test_dotted_paths_merge(self) -> None:
        definition = _make_definition(selected_fields=["title", "category.name", "category.id"])
        assert build_query(definition) == _gql("{ BlogPost(limit: 10) { items { title category { name id } } } }")

    def test_object_field_expands_scalars(self, blog_post_schema: ContentTypeSchema) -> None:
        definition = _make_definition(selected_fields=["category"])
        result = build_query(definition, blog_post_schema)
        assert result == _gql("{ BlogPost(limit: 10) { items { category { name id } } } }")

    def test_object_without_scalars_selects_typename(self, blog_post_schema: ContentTypeSchema) -> None:
        definition = _make_definition(selected_fields=["mainBody"])
        assert "mainBody {\n" in build_query(definition, blog_post_schema)
        assert "__typename" in build_query(definition, blog_post_schema)

    def test_facets(self) -> None:
        definition = _make_definition()
        definition.add_facet("category.name", limit=5)
        definition.add_facet("author", order_by=FacetOrderBy.VALUE)
        expected = """
        { BlogPost(limit: 10) {
            items { title }
            facets {
              category { name(orderType: COUNT, limit: 5) { name count } }
              author(orderType: VALUE) { name count }
            }
        } }
        """
        assert build_query(definition) == _gql(expected)


class TestSortingAndPaging:
    def test_sorts_follow_rank_not_list_order(self) -> None:
        definition = _make_definition(
            sorts=[
                SortDefinition(field="title", order=1),
                SortDefinition(field="publishDate", direction=SortDirection.DESC, order=0),
            ]
        )
        assert "orderBy: {publishDate: DESC, title: ASC}" in build_query(definition)

    def test_nested_sort_path(self) -> None:
        definition = _make_definition(sorts=[SortDefinition(field="_metadata.published", direction=SortDirection.DESC)])
        assert "orderBy: {_metadata: {published: DESC}}" in build_query(definition)

    def test_unsortable_field(self, blog_post_schema: ContentTypeSchema) -> None:
        definition = _make_definition(sorts=[SortDefinition(field="tags")])
        with pytest.raises(ValidationError):
            build_query(definition, blog_post_schema)

    def test_offset_paging(self) -> None:
        definition = _make_definition()
        definition.pagination.use_offset(20, 5)
        assert "BlogPost(skip: 20, limit: 5)" in build_query(definition)

    def test_cursor_paging(self) -> None:
        definition = _make_definition(include_total=True)
        definition.pagination.use_cursor("abc", 5)
        expected = '{ BlogPost(limit: 5, cursor: "abc") { items { title } total cursor } }'
        assert build_query(definition) == _gql(expected)

    def test_first_cursor_page_omits_cursor_argument(self) -> None:
        definition = _make_definition()
        definition.pagination.use_cursor(None, 5)
        result = build_query(definition)
        assert "BlogPost(limit: 5)" in result
        assert result.rstrip().endswith("cursor\n  }\n}")

    def test_locales_render_as_enums(self) -> None:
        result = build_query(_make_definition(locale="en, sv-SE"))
        assert "locale: [en, sv_SE]" in result

    def test_search_joins_filters_with_and(self) -> None:
        definition = _make_definition(filters=[FilterDefinition(field="status", value="published")], search_term="graph")
        assert 'where: {_and: [{status: {eq: "published"}}, {_fulltext: {match: "graph"}}]}' in build_query(
            definition
        )

    def test_search_alone(self) -> None:
        assert 'where: {_fulltext: {match: "graph"}}' in build_query(_make_definition(search_term=" graph "))


# ---------------------------------------------------------------------------
# Formatting and validation of raw documents
# ---------------------------------------------------------------------------


class TestFormatQuery:
    def test_reindents(self) -> None:
        assert format_query("{BlogPost{items{title}}}") == "{\n  BlogPost {\n    items {\n      title\n    }\n  }\n}"

    def test_syntax_error(self) -> None:
        with pytest.raises(ValidationError):
            format_query("{ BlogPost {")


class TestValidateQuery:
    def test_valid(self) -> None:
        assert validate_query("{ BlogPost { items { title } } }") == []

    def test_empty(self) -> None:
        assert validate_query("  \n") == ["Query cannot be empty"]

    def test_syntax_error(self) -> None:
        errors = validate_query("{ BlogPost {")
        assert len(errors) == 1
        assert "Syntax Error" in errors[0]
