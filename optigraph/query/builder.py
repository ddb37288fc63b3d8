"""Render a :class:`QueryDefinition` into an Optimizely Graph query document.

The document is assembled as a graphql-core AST and printed with
``print_ast``, so the output is always syntactically valid GraphQL::

    {
      BlogPost(where: {status: {eq: "published"}}, orderBy: {publishDate: DESC}, limit: 10) {
        items {
          title
          author
        }
        total
      }
    }

Filter grouping follows the order the filters were authored in. Each filter's
``logic`` says how it joins the condition built so far; consecutive filters
with the same logic collapse into one ``_and``/``_or`` group and a change of
logic wraps everything accumulated so far in a new group.
"""

from __future__ import annotations

from collections.abc import Sequence
import re

from graphql import parse as gql_parse, print_ast
from graphql.error import GraphQLSyntaxError
from graphql.language.ast import (
    ArgumentNode,
    BooleanValueNode,
    DocumentNode,
    EnumValueNode,
    FieldNode,
    FloatValueNode,
    IntValueNode,
    ListValueNode,
    NameNode,
    ObjectFieldNode,
    ObjectValueNode,
    OperationDefinitionNode,
    OperationType,
    SelectionSetNode,
    StringValueNode,
    ValueNode,
)

from optigraph.errors import BuildError, ValidationError
from optigraph.helpers.naming import is_graphql_name, split_path, to_enum_name
from optigraph.query.definition import (
    FacetDefinition,
    FilterDefinition,
    FilterLogic,
    QueryDefinition,
    SortDefinition,
)
from optigraph.schema.operators import Operator, value_kind
from optigraph.schema.types import ContentTypeSchema, SchemaField

_INT_RE = re.compile(r"^-?(0|[1-9][0-9]*)$")
_FLOAT_RE = re.compile(r"^-?(0|[1-9][0-9]*)(\.[0-9]+)?([eE][+-]?[0-9]+)?$")
_TRUE = frozenset({"true", "1", "yes"})
_FALSE = frozenset({"false", "0", "no"})
_RANGE_OPERATORS = frozenset({Operator.GT, Operator.GTE, Operator.LT, Operator.LTE})

# A level of schema fields to validate against; None means "unknown schema".
_Scope = Sequence[SchemaField] | None


def build_query(
    definition: QueryDefinition,
    content_type_schema: ContentTypeSchema | None = None,
) -> str:
    """Build the GraphQL document for *definition*.

    With *content_type_schema*, field names, filter operators and literal
    types are checked against it and object fields expand into
    sub-selections. Without it, fields are emitted as given and every
    operator is accepted; the caller names the operator explicitly, so the
    conservative Eq/NotEq/Exist set only applies to fields whose type is
    known but unrecognised. Only name syntax and literal forms are checked.

    Raises :class:`BuildError` if there is no content type or no selected
    field, and :class:`ValidationError` for schema or literal mismatches.
    """
    content_type = definition.content_type.strip()
    if not content_type:
        raise BuildError("Select a content type before building a query")
    selected = [f.strip() for f in definition.unique_fields() if f.strip()]
    if not selected:
        raise BuildError(
            f"Select at least one field of {content_type} before building a query",
            {"content_type": content_type},
        )
    _check_name(content_type, content_type)
    if content_type_schema is not None and content_type_schema.name.lower() != content_type.lower():
        raise ValidationError(
            f"Schema for '{content_type_schema.name}' does not describe '{content_type}'",
            details={"content_type": content_type},
        )

    scope: _Scope = content_type_schema.fields if content_type_schema is not None else None

    selections: list[FieldNode] = [
        _field("items", selections=_projection(_path_tree(selected), scope, "")),
    ]
    if definition.include_total:
        selections.append(_field("total"))
    if definition.pagination.use_cursor_pagination:
        selections.append(_field("cursor"))
    facets = _facets(definition.facets)
    if facets:
        selections.append(_field("facets", selections=facets))

    root = _field(content_type, arguments=_arguments(definition, scope), selections=selections)
    document = DocumentNode(
        definitions=(
            OperationDefinitionNode(
                operation=OperationType.QUERY,
                selection_set=SelectionSetNode(selections=(root,)),
            ),
        )
    )
    return print_ast(document)


def format_query(query: str) -> str:
    """Re-print a GraphQL document with canonical indentation."""
    try:
        return print_ast(gql_parse(query))
    except GraphQLSyntaxError as e:
        raise ValidationError(f"Cannot format query: {e.message}") from e


def validate_query(query: str) -> list[str]:
    """Return syntax error messages for *query*; an empty list means valid."""
    if not query.strip():
        return ["Query cannot be empty"]
    try:
        gql_parse(query)
    except GraphQLSyntaxError as e:
        return [e.message]
    return []


# ---------------------------------------------------------------------------
# Arguments
# ---------------------------------------------------------------------------


def _arguments(definition: QueryDefinition, scope: _Scope) -> list[ArgumentNode]:
    args: list[ArgumentNode] = []

    where = _where(definition, scope)
    if where is not None:
        args.append(_argument("where", where))

    order_by = _order_by(definition.sorts, scope)
    if order_by is not None:
        args.append(_argument("orderBy", order_by))

    pagination = definition.pagination
    if pagination.use_cursor_pagination:
        if pagination.limit is not None:
            args.append(_argument("limit", IntValueNode(value=str(pagination.limit))))
        if pagination.cursor:
            args.append(_argument("cursor", StringValueNode(value=pagination.cursor)))
    else:
        if pagination.skip is not None:
            args.append(_argument("skip", IntValueNode(value=str(pagination.skip))))
        if pagination.limit is not None:
            args.append(_argument("limit", IntValueNode(value=str(pagination.limit))))

    locales = [to_enum_name(loc) for loc in (definition.locale or "").split(",") if loc.strip()]
    if locales:
        args.append(_argument("locale", ListValueNode(values=tuple(EnumValueNode(value=loc) for loc in locales))))

    return args


def _where(definition: QueryDefinition, scope: _Scope) -> ObjectValueNode | None:
    condition = _combine(definition.filters, scope, always_group=False)
    search = (definition.search_term or "").strip()
    if not search:
        return condition
    fulltext = _object([("_fulltext", _object([("match", StringValueNode(value=search))]))])
    if condition is None:
        return fulltext
    return _group(FilterLogic.AND, [condition, fulltext])


def _combine(
    filters: Sequence[FilterDefinition],
    scope: _Scope,
    *,
    always_group: bool,
) -> ObjectValueNode | None:
    """Fold filters left to right into one condition object."""
    active = [f for f in filters if f.field.strip()]
    if not active:
        return None

    runs: list[tuple[FilterLogic, list[FilterDefinition]]] = []
    for f in active:
        if runs and runs[-1][0] == f.logic:
            runs[-1][1].append(f)
        else:
            runs.append((f.logic, [f]))

    acc: ObjectValueNode | None = None
    for logic, members in runs:
        nodes = [_condition(f, scope) for f in members]
        if acc is None:
            acc = nodes[0] if len(nodes) == 1 and not always_group else _group(logic, nodes)
        else:
            acc = _group(logic, [acc, *nodes])
    return acc


def _condition(f: FilterDefinition, scope: _Scope) -> ObjectValueNode:
    path = split_path(f.field)
    if not path:
        raise ValidationError(f"'{f.field}' is not a field path", field=f.field)
    for part in path:
        _check_name(part, f.field)
    schema_field, known = _resolve(scope, path)
    if known and schema_field is None:
        raise ValidationError(f"Unknown filter field '{f.field}'", field=f.field)
    if schema_field is not None and not schema_field.filterable:
        raise ValidationError(f"Field '{f.field}' cannot be filtered", field=f.field)

    if f.nested_filters:
        nested_scope = schema_field.nested_fields if schema_field is not None else None
        inner = _combine(f.nested_filters, nested_scope, always_group=True)
        if inner is not None:
            return _nest(path, inner)

    if schema_field is not None and f.operator not in schema_field.available_operators:
        allowed = ", ".join(op.value for op in schema_field.available_operators)
        raise ValidationError(
            f"Operator '{f.operator.value}' is not valid for '{f.field}' "
            f"({schema_field.graph_type}); use one of: {allowed}",
            field=f.field,
            details={"operator": f.operator.value, "allowed": allowed},
        )

    return _nest(path, _object([(f.operator.value, _filter_value(f, schema_field))]))


def _filter_value(f: FilterDefinition, schema_field: SchemaField | None) -> ValueNode:
    kind: str | None = None
    if schema_field is not None:
        kind = "enum" if schema_field.is_enum else value_kind(schema_field.underlying_type)
    op = f.operator

    if op.is_multi_value:
        raw = [v for v in f.values if v.strip()] or ([f.value] if f.value.strip() else [])
        if not raw:
            raise ValidationError(f"'{op.value}' on '{f.field}' needs at least one value", field=f.field)
        return ListValueNode(values=tuple(_literal(v, kind, f.field, op) for v in raw))
    if op is Operator.EXIST:
        return BooleanValueNode(value=_parse_bool(f.value, f.field, default=True))
    if op is Operator.BOOST:
        text = f.value.strip()
        if not _INT_RE.match(text):
            raise ValidationError(f"Boost on '{f.field}' must be an integer, got '{f.value}'", field=f.field)
        return IntValueNode(value=text)
    if op is Operator.SYNONYMS:
        raw = [v for v in f.values if v.strip()] or ([f.value] if f.value.strip() else [])
        if not raw:
            raise ValidationError(f"Synonyms on '{f.field}' needs a synonym slot (ONE, TWO)", field=f.field)
        return ListValueNode(values=tuple(EnumValueNode(value=to_enum_name(v).upper()) for v in raw))
    return _literal(f.value, kind, f.field, op)


def _literal(text: str, kind: str | None, field_name: str, op: Operator) -> ValueNode:
    """Render one filter value according to the field's scalar kind.

    *kind* is None when no schema is available; range operators then
    render numeric-looking values unquoted. Enum values render as bare
    names.
    """
    stripped = text.strip()
    if kind == "enum":
        if not is_graphql_name(stripped) or stripped in ("true", "false", "null"):
            raise ValidationError(f"'{field_name}' expects an enum value, got '{text}'", field=field_name)
        return EnumValueNode(value=stripped)
    if kind == "number":
        node = _number(stripped)
        if node is None:
            raise ValidationError(f"'{field_name}' expects a number, got '{text}'", field=field_name)
        return node
    if kind == "boolean":
        return BooleanValueNode(value=_parse_bool(text, field_name))
    if kind is None and op in _RANGE_OPERATORS:
        node = _number(stripped)
        if node is not None:
            return node
    return StringValueNode(value=text)


def _number(text: str) -> ValueNode | None:
    if _INT_RE.match(text):
        return IntValueNode(value=text)
    if _FLOAT_RE.match(text):
        return FloatValueNode(value=text)
    return None


def _parse_bool(text: str, field_name: str, default: bool | None = None) -> bool:
    lowered = text.strip().lower()
    if not lowered and default is not None:
        return default
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValidationError(f"'{field_name}' expects true or false, got '{text}'", field=field_name)


def _order_by(sorts: Sequence[SortDefinition], scope: _Scope) -> ObjectValueNode | None:
    active = [s for s in sorts if split_path(s.field)]
    if not active:
        return None
    # sorted() is stable, so equal ranks keep their list order
    tree: dict[str, object] = {}
    for s in sorted(active, key=lambda s: s.order):
        path = split_path(s.field)
        for part in path:
            _check_name(part, s.field)
        schema_field, known = _resolve(scope, path)
        if known and schema_field is None:
            raise ValidationError(f"Unknown sort field '{s.field}'", field=s.field)
        if schema_field is not None and not schema_field.sortable:
            raise ValidationError(f"Field '{s.field}' cannot be sorted", field=s.field)
        node = tree
        for part in path[:-1]:
            child = node.setdefault(part, {})
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[path[-1]] = EnumValueNode(value=s.direction.value)
    return _tree_to_object(tree)


def _tree_to_object(tree: dict[str, object]) -> ObjectValueNode:
    pairs: list[tuple[str, ValueNode]] = []
    for key, value in tree.items():
        if isinstance(value, dict):
            pairs.append((key, _tree_to_object(value)))
        else:
            pairs.append((key, value))  # type: ignore[arg-type]
    return _object(pairs)


# ---------------------------------------------------------------------------
# Selections
# ---------------------------------------------------------------------------


def _path_tree(paths: Sequence[str]) -> dict[str, dict]:
    """Merge dotted paths into an ordered tree: a.b, a.c -> {a: {b: {}, c: {}}}."""
    tree: dict[str, dict] = {}
    for path in paths:
        node = tree
        for part in split_path(path):
            node = node.setdefault(part, {})
    return tree


def _projection(tree: dict[str, dict], scope: _Scope, prefix: str) -> list[FieldNode]:
    nodes: list[FieldNode] = []
    for name, children in tree.items():
        path = f"{prefix}.{name}" if prefix else name
        _check_name(name, path)
        schema_field, known = _resolve(scope, [name])
        if known and schema_field is None:
            raise ValidationError(f"Unknown field '{path}'", field=path)

        if children:
            nested_scope = schema_field.nested_fields if schema_field is not None else None
            nodes.append(_field(name, selections=_projection(children, nested_scope, path)))
        elif schema_field is not None and not schema_field.is_scalar:
            nodes.append(_field(name, selections=_expand(schema_field)))
        else:
            nodes.append(_field(name))
    return nodes


def _expand(schema_field: SchemaField) -> list[FieldNode]:
    """Default sub-selection for an object field selected by name only."""
    scalars = [f for f in schema_field.nested_fields or () if f.is_scalar]
    if not scalars:
        return [_field("__typename")]
    return [_field(f.name) for f in scalars]


def _facets(facets: Sequence[FacetDefinition]) -> list[FieldNode]:
    nodes: list[FieldNode] = []
    for facet in facets:
        path = split_path(facet.field)
        if not path:
            continue
        for part in path:
            _check_name(part, facet.field)
        args = [_argument("orderType", EnumValueNode(value=facet.order_by.value))]
        if facet.limit is not None:
            args.append(_argument("limit", IntValueNode(value=str(facet.limit))))
        node = _field(path[-1], arguments=args, selections=[_field("name"), _field("count")])
        for part in reversed(path[:-1]):
            node = _field(part, selections=[node])
        nodes.append(node)
    return nodes


# ---------------------------------------------------------------------------
# AST helpers
# ---------------------------------------------------------------------------


def _resolve(scope: _Scope, path: Sequence[str]) -> tuple[SchemaField | None, bool]:
    """Look a path up in *scope*.

    Returns ``(field, known)``: ``known`` is False when some level of the
    path has no schema information, in which case nothing is validated.
    """
    current = scope
    found: SchemaField | None = None
    for part in path:
        if current is None:
            return None, False
        found = next((f for f in current if f.name == part), None)
        if found is None:
            return None, True
        current = found.nested_fields
    return found, True


def _check_name(name: str, context: str) -> None:
    if not is_graphql_name(name):
        raise ValidationError(f"'{name}' is not a valid GraphQL name", field=context)


def _field(
    name: str,
    *,
    arguments: Sequence[ArgumentNode] = (),
    selections: Sequence[FieldNode] = (),
) -> FieldNode:
    return FieldNode(
        name=NameNode(value=name),
        arguments=tuple(arguments),
        directives=(),
        selection_set=SelectionSetNode(selections=tuple(selections)) if selections else None,
    )


def _argument(name: str, value: ValueNode) -> ArgumentNode:
    return ArgumentNode(name=NameNode(value=name), value=value)


def _object(pairs: Sequence[tuple[str, ValueNode]]) -> ObjectValueNode:
    return ObjectValueNode(
        fields=tuple(ObjectFieldNode(name=NameNode(value=k), value=v) for k, v in pairs)
    )


def _group(logic: FilterLogic, conditions: Sequence[ValueNode]) -> ObjectValueNode:
    return _object([(f"_{logic.value}", ListValueNode(values=tuple(conditions)))])


def _nest(path: Sequence[str], inner: ObjectValueNode) -> ObjectValueNode:
    node = inner
    for part in reversed(path):
        node = _object([(part, node)])
    return node
