"""Rules that reclassify or drop changes, registered under their published names."""

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from graphql import (
    GraphQLEnumType,
    GraphQLInputObjectType,
    GraphQLInterfaceType,
    GraphQLObjectType,
    GraphQLSchema,
    GraphQLUnionType,
    get_named_type,
)
from pydantic import BaseModel, ConfigDict

from graphql_inspector_check.errors import ConfigurationError
from graphql_inspector_check.models import CriticalityLevel
from graphql_inspector_check.schemas import Change, UsageTarget

logger = logging.getLogger(__name__)

UsageCheck = Callable[[list[UsageTarget]], list[bool] | Awaitable[list[bool]]]


class RuleContext(BaseModel):
    """What a rule may look at besides the change list."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    old_schema: GraphQLSchema
    new_schema: GraphQLSchema
    check_usage: Any = None


Rule = Callable[[list[Change], RuleContext], list[Change] | Awaitable[list[Change]]]


def _reclassify(change: Change, level: CriticalityLevel, reason: str) -> Change:
    return change.model_copy(update={"criticality": level, "reason": reason})


def _split_path(path: str | None) -> list[str]:
    return path.split(".") if path else []


def suppress_removal_of_deprecated_field(
    changes: list[Change], context: RuleContext
) -> list[Change]:
    """
    Treat removal of an already deprecated field or enum value as dangerous.

    Args:
        changes (list[Change]): Classified changes.
        context (RuleContext): Schemas under comparison.

    Returns:
        list[Change]: Changes with deprecated removals downgraded.
    """
    result: list[Change] = []
    for change in changes:
        parts = _split_path(change.path)
        if (
            change.criticality == CriticalityLevel.BREAKING
            and change.type in ("FIELD_REMOVED", "VALUE_REMOVED_FROM_ENUM")
            and len(parts) == 2
        ):
            old_type = context.old_schema.get_type(parts[0])
            deprecated = False
            if isinstance(old_type, (GraphQLObjectType, GraphQLInterfaceType)):
                field = old_type.fields.get(parts[1])
                deprecated = field is not None and field.deprecation_reason is not None
            elif isinstance(old_type, GraphQLEnumType):
                value = old_type.values.get(parts[1])
                deprecated = value is not None and value.deprecation_reason is not None
            if deprecated:
                change = _reclassify(
                    change,
                    CriticalityLevel.DANGEROUS,
                    "Removed element was deprecated",
                )
        result.append(change)
    return result


def ignore_description_changes(
    changes: list[Change], context: RuleContext
) -> list[Change]:
    """Drop changes that only touch descriptions."""
    return [change for change in changes if "DESCRIPTION" not in change.type]


def _reachable_types(schema: GraphQLSchema) -> set[str]:
    roots = [schema.query_type, schema.mutation_type, schema.subscription_type]
    pending = [root for root in roots if root is not None]
    reachable: set[str] = set()

    while pending:
        named = get_named_type(pending.pop())
        if named is None or named.name in reachable:
            continue
        reachable.add(named.name)

        if isinstance(named, (GraphQLObjectType, GraphQLInterfaceType)):
            pending.extend(named.interfaces)
            for field in named.fields.values():
                pending.append(field.type)
                pending.extend(arg.type for arg in field.args.values())
        elif isinstance(named, GraphQLUnionType):
            pending.extend(named.types)
        elif isinstance(named, GraphQLInputObjectType):
            pending.extend(field.type for field in named.fields.values())

    return reachable


def safe_unreachable(changes: list[Change], context: RuleContext) -> list[Change]:
    """
    Treat breaking changes on types no root operation can reach as safe.

    Args:
        changes (list[Change]): Classified changes.
        context (RuleContext): Schemas under comparison.

    Returns:
        list[Change]: Changes with unreachable breakages downgraded.
    """
    reachable = _reachable_types(context.old_schema)
    result: list[Change] = []
    for change in changes:
        parts = _split_path(change.path)
        if (
            change.criticality == CriticalityLevel.BREAKING
            and parts
            and not parts[0].startswith("@")
            and parts[0] not in reachable
        ):
            change = _reclassify(
                change, CriticalityLevel.NON_BREAKING, "Unreachable from root"
            )
        result.append(change)
    return result


def _usage_target(path: str) -> UsageTarget | None:
    parts = path.split(".")
    if parts[0].startswith("@"):
        return None
    return UsageTarget(
        type=parts[0],
        field=parts[1] if len(parts) > 1 else None,
        argument=parts[2] if len(parts) > 2 else None,
    )


async def consider_usage(changes: list[Change], context: RuleContext) -> list[Change]:
    """
    Ask the usage check which breaking changes touch used coordinates.

    Breaking changes on coordinates the check reports unused become dangerous.

    Args:
        changes (list[Change]): Classified changes.
        context (RuleContext): Schemas and the usage check.

    Returns:
        list[Change]: Changes with unused breakages downgraded.

    Raises:
        ConfigurationError: If no usage check is configured.
    """
    if context.check_usage is None:
        raise ConfigurationError("Rule considerUsage requires a usage check")

    candidates: list[tuple[int, UsageTarget]] = []
    for index, change in enumerate(changes):
        if change.criticality != CriticalityLevel.BREAKING or not change.path:
            continue
        target = _usage_target(change.path)
        if target is not None:
            candidates.append((index, target))

    if not candidates:
        return list(changes)

    used = context.check_usage([target for _, target in candidates])
    if inspect.isawaitable(used):
        used = await used
    used = list(used)
    if len(used) != len(candidates):
        raise ValueError(
            f"Usage check returned {len(used)} results for {len(candidates)} targets"
        )

    result = list(changes)
    for (index, _), is_used in zip(candidates, used):
        if not is_used:
            result[index] = _reclassify(
                result[index],
                CriticalityLevel.DANGEROUS,
                "Not used by any client operation",
            )
    return result


RULES: dict[str, Rule] = {
    "suppressRemovalOfDeprecatedField": suppress_removal_of_deprecated_field,
    "ignoreDescriptionChanges": ignore_description_changes,
    "safeUnreachable": safe_unreachable,
    "considerUsage": consider_usage,
}


def resolve_rule(name: str) -> Rule | None:
    """Look up a rule by its published name."""
    return RULES.get(name.strip())


def resolve_rules(names: list[str], has_usage_check: bool = False) -> list[Rule]:
    """
    Resolve every configured rule name, failing on the first unknown one.

    Args:
        names (list[str]): Rule names in application order.
        has_usage_check (bool): Whether a usage check was supplied.

    Returns:
        list[Rule]: Rules in the configured order.

    Raises:
        ConfigurationError: If a name is unknown, or considerUsage has no usage check.
    """
    rules: list[Rule] = []
    unknown: list[str] = []
    for name in names:
        rule = resolve_rule(name)
        if rule is None:
            logger.error(f"Rule {name} is invalid. Did you specify the correct name?")
            unknown.append(name)
            continue
        rules.append(rule)

    if unknown:
        raise ConfigurationError(f"Some rules weren't recognised: {', '.join(unknown)}")
    if consider_usage in rules and not has_usage_check:
        raise ConfigurationError("Rule considerUsage requires a usage check")
    return rules


async def apply_rules(
    changes: list[Change], rules: list[Rule], context: RuleContext
) -> list[Change]:
    """Run rules in order, each on the previous rule's output."""
    for rule in rules:
        result = rule(changes, context)
        if inspect.isawaitable(result):
            result = await result
        changes = list(result)
    return changes
