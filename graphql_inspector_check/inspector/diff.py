"""Default schema diff classifier: a structural walk over both graphql-core schemas."""

import logging

from graphql import (
    GraphQLArgument,
    GraphQLError,
    GraphQLInputObjectType,
    GraphQLInputType,
    GraphQLInterfaceType,
    GraphQLNamedType,
    GraphQLObjectType,
    GraphQLSchema,
    GraphQLType,
    Source,
    Undefined,
    ast_from_value,
    is_enum_type,
    is_input_object_type,
    is_interface_type,
    is_introspection_type,
    is_list_type,
    is_named_type,
    is_non_null_type,
    is_object_type,
    is_required_argument,
    is_required_input_field,
    is_scalar_type,
    is_specified_scalar_type,
    is_union_type,
    parse,
    print_ast,
)
from graphql.language import (
    DirectiveDefinitionNode,
    EnumTypeDefinitionNode,
    EnumTypeExtensionNode,
    InputObjectTypeDefinitionNode,
    InputObjectTypeExtensionNode,
    InterfaceTypeDefinitionNode,
    InterfaceTypeExtensionNode,
    Node,
    ObjectTypeDefinitionNode,
    ObjectTypeExtensionNode,
    TypeDefinitionNode,
    TypeExtensionNode,
)

from graphql_inspector_check.inspector.rules import (
    Rule,
    RuleContext,
    UsageCheck,
    apply_rules,
)
from graphql_inspector_check.models import (
    CheckConclusion,
    CriticalityLevel,
    get_annotation_level,
)
from graphql_inspector_check.schemas import (
    Annotation,
    CanonicalSchema,
    Change,
    DiffResult,
)

logger = logging.getLogger(__name__)

BREAKING = CriticalityLevel.BREAKING
DANGEROUS = CriticalityLevel.DANGEROUS

_REASONS: dict[str, str] = {
    "FIELD_REMOVED": (
        "Removing a field is a breaking change. "
        "It is preferable to deprecate the field before removing it."
    ),
    "TYPE_REMOVED": "Removing a type breaks every operation that references it.",
    "FIELD_CHANGED_KIND": (
        "Changing the type of a field can break operations that select it."
    ),
    "ARG_REMOVED": "Removing an argument breaks operations that pass it.",
    "REQUIRED_ARG_ADDED": "Operations that do not pass the new argument will fail.",
    "REQUIRED_INPUT_FIELD_ADDED": "Inputs that omit the new field will be rejected.",
    "VALUE_REMOVED_FROM_ENUM": "Clients sending or expecting the value will fail.",
}

_ORDER = {
    CriticalityLevel.BREAKING: 0,
    CriticalityLevel.DANGEROUS: 1,
    CriticalityLevel.NON_BREAKING: 2,
}


def _change(
    change_type: str, message: str, criticality: CriticalityLevel, path: str
) -> Change:
    return Change(
        type=change_type,
        message=message,
        criticality=criticality,
        path=path,
        reason=_REASONS.get(change_type) if criticality == BREAKING else None,
    )


def _kind(named: GraphQLNamedType) -> str:
    if is_object_type(named):
        return "object type"
    if is_interface_type(named):
        return "interface type"
    if is_union_type(named):
        return "union type"
    if is_enum_type(named):
        return "enum type"
    if is_input_object_type(named):
        return "input object type"
    return "scalar type"


def _is_safe_output_change(old: GraphQLType, new: GraphQLType) -> bool:
    if is_list_type(old):
        return (
            is_list_type(new) and _is_safe_output_change(old.of_type, new.of_type)
        ) or (is_non_null_type(new) and _is_safe_output_change(old, new.of_type))
    if is_non_null_type(old):
        return is_non_null_type(new) and _is_safe_output_change(
            old.of_type, new.of_type
        )
    return (is_named_type(new) and old.name == new.name) or (
        is_non_null_type(new) and _is_safe_output_change(old, new.of_type)
    )


def _is_safe_input_change(old: GraphQLType, new: GraphQLType) -> bool:
    if is_list_type(old):
        return is_list_type(new) and _is_safe_input_change(old.of_type, new.of_type)
    if is_non_null_type(old):
        return (
            is_non_null_type(new) and _is_safe_input_change(old.of_type, new.of_type)
        ) or (not is_non_null_type(new) and _is_safe_input_change(old.of_type, new))
    return is_named_type(new) and old.name == new.name


def _print_value(value: object, type_: GraphQLInputType) -> str:
    node = ast_from_value(value, type_)
    return print_ast(node) if node is not None else repr(value)


def _find_directive_changes(old: GraphQLSchema, new: GraphQLSchema) -> list[Change]:
    changes: list[Change] = []
    new_directives = {directive.name: directive for directive in new.directives}

    for old_directive in old.directives:
        name = old_directive.name
        path = f"@{name}"
        new_directive = new_directives.get(name)
        if new_directive is None:
            changes.append(
                _change(
                    "DIRECTIVE_REMOVED",
                    f"Directive '{name}' was removed",
                    BREAKING,
                    path,
                )
            )
            continue

        for arg_name in old_directive.args:
            if arg_name not in new_directive.args:
                changes.append(
                    _change(
                        "DIRECTIVE_ARG_REMOVED",
                        f"Argument '{arg_name}' was removed from directive '{name}'",
                        BREAKING,
                        f"{path}.{arg_name}",
                    )
                )
        for arg_name, new_arg in new_directive.args.items():
            if arg_name not in old_directive.args and is_required_argument(new_arg):
                changes.append(
                    _change(
                        "REQUIRED_DIRECTIVE_ARG_ADDED",
                        f"Required argument '{arg_name}' was added to directive"
                        f" '{name}'",
                        BREAKING,
                        f"{path}.{arg_name}",
                    )
                )
        if old_directive.is_repeatable and not new_directive.is_repeatable:
            changes.append(
                _change(
                    "DIRECTIVE_REPEATABLE_REMOVED",
                    f"Repeatable flag was removed from directive '{name}'",
                    BREAKING,
                    path,
                )
            )
        for location in old_directive.locations:
            if location not in new_directive.locations:
                changes.append(
                    _change(
                        "DIRECTIVE_LOCATION_REMOVED",
                        f"Location '{location.name}' was removed from directive"
                        f" '{name}'",
                        BREAKING,
                        path,
                    )
                )
    return changes


def _find_arg_changes(
    field_path: str,
    old_args: dict[str, GraphQLArgument],
    new_args: dict[str, GraphQLArgument],
) -> list[Change]:
    changes: list[Change] = []
    for arg_name, old_arg in old_args.items():
        path = f"{field_path}.{arg_name}"
        new_arg = new_args.get(arg_name)
        if new_arg is None:
            changes.append(
                _change(
                    "ARG_REMOVED",
                    f"Argument '{arg_name}' was removed from field '{field_path}'",
                    BREAKING,
                    path,
                )
            )
        elif not _is_safe_input_change(old_arg.type, new_arg.type):
            changes.append(
                _change(
                    "ARG_CHANGED_KIND",
                    f"Type for argument '{arg_name}' on field '{field_path}' changed"
                    f" from '{old_arg.type}' to '{new_arg.type}'",
                    BREAKING,
                    path,
                )
            )
        elif old_arg.default_value is not Undefined:
            if new_arg.default_value is Undefined:
                changes.append(
                    _change(
                        "ARG_DEFAULT_VALUE_CHANGE",
                        f"Default value for argument '{arg_name}' on field"
                        f" '{field_path}' was removed",
                        DANGEROUS,
                        path,
                    )
                )
                continue
            old_value = _print_value(old_arg.default_value, old_arg.type)
            new_value = _print_value(new_arg.default_value, new_arg.type)
            if old_value != new_value:
                changes.append(
                    _change(
                        "ARG_DEFAULT_VALUE_CHANGE",
                        f"Default value for argument '{arg_name}' on field"
                        f" '{field_path}' changed from {old_value} to {new_value}",
                        DANGEROUS,
                        path,
                    )
                )

    for arg_name, new_arg in new_args.items():
        if arg_name in old_args:
            continue
        required = is_required_argument(new_arg)
        changes.append(
            _change(
                "REQUIRED_ARG_ADDED" if required else "OPTIONAL_ARG_ADDED",
                f"Argument '{arg_name}: {new_arg.type}' was added to field"
                f" '{field_path}'",
                BREAKING if required else DANGEROUS,
                f"{field_path}.{arg_name}",
            )
        )
    return changes


def _find_field_changes(
    name: str,
    old_type: GraphQLObjectType | GraphQLInterfaceType,
    new_type: GraphQLObjectType | GraphQLInterfaceType,
) -> list[Change]:
    changes: list[Change] = []
    new_interfaces = {interface.name for interface in new_type.interfaces}
    old_interfaces = {interface.name for interface in old_type.interfaces}
    for interface in sorted(old_interfaces - new_interfaces):
        changes.append(
            _change(
                "IMPLEMENTED_INTERFACE_REMOVED",
                f"'{name}' no longer implements interface '{interface}'",
                BREAKING,
                name,
            )
        )
    for interface in sorted(new_interfaces - old_interfaces):
        changes.append(
            _change(
                "IMPLEMENTED_INTERFACE_ADDED",
                f"'{name}' now implements interface '{interface}'",
                DANGEROUS,
                name,
            )
        )

    for field_name, old_field in old_type.fields.items():
        path = f"{name}.{field_name}"
        new_field = new_type.fields.get(field_name)
        if new_field is None:
            changes.append(
                _change(
                    "FIELD_REMOVED",
                    f"Field '{field_name}' was removed from {_kind(old_type)}"
                    f" '{name}'",
                    BREAKING,
                    path,
                )
            )
            continue
        changes.extend(_find_arg_changes(path, old_field.args, new_field.args))
        if not _is_safe_output_change(old_field.type, new_field.type):
            changes.append(
                _change(
                    "FIELD_CHANGED_KIND",
                    f"Field '{path}' changed type from '{old_field.type}' to"
                    f" '{new_field.type}'",
                    BREAKING,
                    path,
                )
            )
    return changes


def _find_input_field_changes(
    name: str, old_type: GraphQLInputObjectType, new_type: GraphQLInputObjectType
) -> list[Change]:
    changes: list[Change] = []
    for field_name, old_field in old_type.fields.items():
        path = f"{name}.{field_name}"
        new_field = new_type.fields.get(field_name)
        if new_field is None:
            changes.append(
                _change(
                    "FIELD_REMOVED",
                    f"Input field '{field_name}' was removed from input object type"
                    f" '{name}'",
                    BREAKING,
                    path,
                )
            )
        elif not _is_safe_input_change(old_field.type, new_field.type):
            changes.append(
                _change(
                    "FIELD_CHANGED_KIND",
                    f"Input field '{path}' changed type from '{old_field.type}' to"
                    f" '{new_field.type}'",
                    BREAKING,
                    path,
                )
            )
    for field_name, new_field in new_type.fields.items():
        if field_name in old_type.fields:
            continue
        required = is_required_input_field(new_field)
        changes.append(
            _change(
                "REQUIRED_INPUT_FIELD_ADDED"
                if required
                else "OPTIONAL_INPUT_FIELD_ADDED",
                f"Input field '{field_name}: {new_field.type}' was added to input"
                f" object type '{name}'",
                BREAKING if required else DANGEROUS,
                f"{name}.{field_name}",
            )
        )
    return changes


def _find_type_changes(old: GraphQLSchema, new: GraphQLSchema) -> list[Change]:
    changes: list[Change] = []
    for name in sorted(old.type_map):
        if not _is_user_type(name, old):
            continue
        old_type = old.type_map[name]
        new_type = new.type_map.get(name)
        if new_type is None:
            changes.append(
                _change("TYPE_REMOVED", f"Type '{name}' was removed", BREAKING, name)
            )
        elif is_enum_type(old_type) and is_enum_type(new_type):
            for value in old_type.values:
                if value not in new_type.values:
                    changes.append(
                        _change(
                            "VALUE_REMOVED_FROM_ENUM",
                            f"Enum value '{value}' was removed from enum '{name}'",
                            BREAKING,
                            f"{name}.{value}",
                        )
                    )
            for value in new_type.values:
                if value not in old_type.values:
                    changes.append(
                        _change(
                            "VALUE_ADDED_TO_ENUM",
                            f"Enum value '{value}' was added to enum '{name}'",
                            DANGEROUS,
                            f"{name}.{value}",
                        )
                    )
        elif is_union_type(old_type) and is_union_type(new_type):
            old_members = {member.name for member in old_type.types}
            new_members = {member.name for member in new_type.types}
            for member in sorted(old_members - new_members):
                changes.append(
                    _change(
                        "TYPE_REMOVED_FROM_UNION",
                        f"Member '{member}' was removed from union type '{name}'",
                        BREAKING,
                        name,
                    )
                )
            for member in sorted(new_members - old_members):
                changes.append(
                    _change(
                        "TYPE_ADDED_TO_UNION",
                        f"Member '{member}' was added to union type '{name}'",
                        DANGEROUS,
                        name,
                    )
                )
        elif is_input_object_type(old_type) and is_input_object_type(new_type):
            changes.extend(_find_input_field_changes(name, old_type, new_type))
        elif (is_object_type(old_type) and is_object_type(new_type)) or (
            is_interface_type(old_type) and is_interface_type(new_type)
        ):
            changes.extend(_find_field_changes(name, old_type, new_type))
        elif not (is_scalar_type(old_type) and is_scalar_type(new_type)):
            changes.append(
                _change(
                    "TYPE_CHANGED_KIND",
                    f"'{name}' kind changed from {_kind(old_type)} to"
                    f" {_kind(new_type)}",
                    BREAKING,
                    name,
                )
            )
    return changes


def _is_user_type(name: str, schema: GraphQLSchema) -> bool:
    named = schema.type_map[name]
    return not is_introspection_type(named) and not is_specified_scalar_type(named)


def _find_safe_changes(old: GraphQLSchema, new: GraphQLSchema) -> list[Change]:
    changes: list[Change] = []

    for name in sorted(new.type_map):
        if name not in old.type_map and _is_user_type(name, new):
            changes.append(
                Change(
                    type="TYPE_ADDED",
                    message=f"Type '{name}' was added",
                    criticality=CriticalityLevel.NON_BREAKING,
                    path=name,
                )
            )

    for name in sorted(old.type_map):
        old_type = old.type_map[name]
        new_type = new.type_map.get(name)
        if not _is_user_type(name, old) or new_type is None:
            continue

        if old_type.description != new_type.description:
            changes.append(
                Change(
                    type="TYPE_DESCRIPTION_CHANGED",
                    message=f"Description of type '{name}' changed",
                    criticality=CriticalityLevel.NON_BREAKING,
                    path=name,
                )
            )

        field_types = (GraphQLObjectType, GraphQLInterfaceType)
        if not (
            isinstance(old_type, field_types) and isinstance(new_type, field_types)
        ):
            continue

        for field_name, new_field in new_type.fields.items():
            path = f"{name}.{field_name}"
            old_field = old_type.fields.get(field_name)
            if old_field is None:
                changes.append(
                    Change(
                        type="FIELD_ADDED",
                        message=f"Field '{field_name}' was added to type '{name}'",
                        criticality=CriticalityLevel.NON_BREAKING,
                        path=path,
                    )
                )
                continue
            if old_field.description != new_field.description:
                changes.append(
                    Change(
                        type="FIELD_DESCRIPTION_CHANGED",
                        message=f"Description of field '{path}' changed",
                        criticality=CriticalityLevel.NON_BREAKING,
                        path=path,
                    )
                )
            was_deprecated = old_field.deprecation_reason is not None
            is_deprecated = new_field.deprecation_reason is not None
            if is_deprecated and not was_deprecated:
                changes.append(
                    Change(
                        type="FIELD_DEPRECATION_ADDED",
                        message=f"Field '{path}' is deprecated",
                        criticality=CriticalityLevel.NON_BREAKING,
                        path=path,
                    )
                )
            elif was_deprecated and not is_deprecated:
                changes.append(
                    Change(
                        type="FIELD_DEPRECATION_REMOVED",
                        message=f"Field '{path}' is no longer deprecated",
                        criticality=CriticalityLevel.NON_BREAKING,
                        path=path,
                    )
                )

    return changes


def find_changes(old: GraphQLSchema, new: GraphQLSchema) -> list[Change]:
    """
    Collect every change between two schemas, ordered breaking, dangerous, safe.

    Each change carries the coordinate it touches (`Type`, `Type.field`,
    `Type.field.arg`, `Type.VALUE` or `@directive`).

    Args:
        old (GraphQLSchema): Previously published schema.
        new (GraphQLSchema): Proposed schema.

    Returns:
        list[Change]: Classified changes.
    """
    changes = _find_directive_changes(old, new) + _find_type_changes(old, new)
    changes.sort(key=lambda change: _ORDER[change.criticality])
    changes.extend(_find_safe_changes(old, new))
    return changes



_FIELD_PARENTS = (
    ObjectTypeDefinitionNode,
    ObjectTypeExtensionNode,
    InterfaceTypeDefinitionNode,
    InterfaceTypeExtensionNode,
    InputObjectTypeDefinitionNode,
    InputObjectTypeExtensionNode,
)
_ENUM_PARENTS = (EnumTypeDefinitionNode, EnumTypeExtensionNode)


def _line(node: Node) -> int:
    return node.loc.start_token.line if node.loc else 1


def index_source_lines(source: Source) -> dict[str, int]:
    """
    Map schema coordinates to the line they are defined on.

    Args:
        source (Source): SDL source.

    Returns:
        dict[str, int]: Coordinate (`Type`, `Type.field`, `Type.field.arg`,
            `@directive`) to 1-based line. Empty if the source does not parse.
    """
    try:
        document = parse(source)
    except GraphQLError:
        return {}

    lines: dict[str, int] = {}
    for definition in document.definitions:
        if isinstance(definition, DirectiveDefinitionNode):
            name = f"@{definition.name.value}"
            lines.setdefault(name, _line(definition))
            for arg in definition.arguments or ():
                lines.setdefault(f"{name}.{arg.name.value}", _line(arg))
            continue
        if not isinstance(definition, (TypeDefinitionNode, TypeExtensionNode)):
            continue

        type_name = definition.name.value
        lines.setdefault(type_name, _line(definition))
        if isinstance(definition, _FIELD_PARENTS):
            for field in definition.fields or ():
                field_path = f"{type_name}.{field.name.value}"
                lines.setdefault(field_path, _line(field))
                for arg in getattr(field, "arguments", None) or ():
                    lines.setdefault(f"{field_path}.{arg.name.value}", _line(arg))
        elif isinstance(definition, _ENUM_PARENTS):
            for value in definition.values or ():
                lines.setdefault(f"{type_name}.{value.name.value}", _line(value))
    return lines


def _locate(
    path: str | None, lines: dict[str, int], old_lines: dict[str, int]
) -> int:
    if not path:
        return 1
    if path in lines:
        return lines[path]
    # removed elements keep the line they had in the old source
    if path in old_lines:
        return old_lines[path]
    parts = path.split(".")[:-1]
    while parts:
        line = lines.get(".".join(parts))
        if line is not None:
            return line
        parts.pop()
    return 1


def build_annotations(
    schema_path: str,
    changes: list[Change],
    new_source: Source,
    old_source: Source | None = None,
) -> list[Annotation]:
    """
    Place one annotation per change on the new schema file.

    A coordinate is looked up in the new source first. Coordinates missing
    there (removals) use their line in the old source, then the line of the
    closest parent still in the new source, then line 1.

    Args:
        schema_path (str): Repository path of the schema file.
        changes (list[Change]): Classified changes.
        new_source (Source): Canonical source of the new schema.
        old_source (Source | None): Canonical source of the old schema.

    Returns:
        list[Annotation]: Annotations in change order.
    """
    lines = index_source_lines(new_source)
    old_lines = index_source_lines(old_source) if old_source is not None else {}
    annotations: list[Annotation] = []
    for change in changes:
        line = _locate(change.path, lines, old_lines)
        annotations.append(
            Annotation(
                path=schema_path,
                start_line=line,
                end_line=line,
                annotation_level=get_annotation_level(change.criticality),
                message=change.message,
                title=change.reason,
            )
        )
    return annotations


class GraphQLCoreDiffClassifier:
    """Classifies schema changes with graphql-core and a configurable rule set."""

    async def classify(
        self,
        schema_path: str,
        old: CanonicalSchema,
        new: CanonicalSchema,
        rules: list[Rule],
        check_usage: UsageCheck | None = None,
    ) -> DiffResult:
        """
        Diff two canonical schemas and apply rules to the classified changes.

        Args:
            schema_path (str): Path annotations are attached to.
            old (CanonicalSchema): Previously published schema.
            new (CanonicalSchema): Proposed schema.
            rules (list[Rule]): Rules applied in order.
            check_usage (UsageCheck | None): Usage capability for considerUsage.

        Returns:
            DiffResult: Conclusion, changes and annotations. The conclusion is
                failure if and only if a breaking change remains.
        """
        logger.info("Start comparing schemas")
        changes = find_changes(old.graphql_schema, new.graphql_schema)
        context = RuleContext(
            old_schema=old.graphql_schema,
            new_schema=new.graphql_schema,
            check_usage=check_usage,
        )
        changes = await apply_rules(changes, rules, context)

        has_breaking = any(
            change.criticality == CriticalityLevel.BREAKING for change in changes
        )
        return DiffResult(
            conclusion=(
                CheckConclusion.FAILURE if has_breaking else CheckConclusion.SUCCESS
            ),
            changes=changes,
            annotations=build_annotations(
                schema_path, changes, new.source, old.source
            ),
        )
