"""
Query complexity limit.

Each selected field adds a cost looked up by (parent type, field name).
Connection queries and relationship fields that fan out to batched loads
cost more than scalar fields. Operations over the limit are rejected
during validation, before any resolver runs.
"""

from typing import Dict, Tuple

from graphql import (
    FieldNode,
    FragmentSpreadNode,
    GraphQLError,
    GraphQLInterfaceType,
    GraphQLObjectType,
    InlineFragmentNode,
    OperationType,
    SchemaMetaFieldDef,
    TypeMetaFieldDef,
    ValidationRule,
    get_named_type,
)

DEFAULT_FIELD_COST = 1

FIELD_COSTS: Dict[Tuple[str, str], int] = {
    # Paginated lists
    ('Query', 'users'): 10,
    ('Query', 'events'): 10,
    ('Query', 'eventsByDate'): 10,
    ('Query', 'eventsByLocation'): 10,
    ('Query', 'eventsByUser'): 10,
    ('Query', 'myEvents'): 10,
    ('Query', 'myAttendingEvents'): 10,

    # Single lookups
    ('Query', 'user'): 2,
    ('Query', 'event'): 2,
    ('Query', 'me'): 2,

    # Relationships
    ('User', 'events'): 5,
    ('User', 'attendingEvents'): 5,
    ('Event', 'creator'): 3,
    ('Event', 'attendees'): 5,

    # Mutations
    ('Mutation', 'createUser'): 5,
    ('Mutation', 'login'): 5,
    ('Mutation', 'createEvent'): 5,
    ('Mutation', 'updateEvent'): 5,
    ('Mutation', 'deleteEvent'): 3,
    ('Mutation', 'attendEvent'): 4,
    ('Mutation', 'cancelAttendance'): 4,
}


def field_cost(parent_type: str, field_name: str) -> int:
    return FIELD_COSTS.get((parent_type, field_name), DEFAULT_FIELD_COST)


def create_complexity_rule(maximum_complexity: int):
    """
    Build a validation rule that rejects documents costing more than
    ``maximum_complexity``.

    Fragments are costed at every spread, so a fragment used twice counts
    twice.

    Usage:
        AddValidationRules([create_complexity_rule(1000)])
    """

    class QueryComplexityRule(ValidationRule):
        def __init__(self, context):
            super().__init__(context)
            self.complexity = 0

        def enter_operation_definition(self, node, *_args):
            schema = self.context.schema
            root_type = {
                OperationType.QUERY: schema.query_type,
                OperationType.MUTATION: schema.mutation_type,
                OperationType.SUBSCRIPTION: schema.subscription_type,
            }.get(node.operation)
            self.complexity += self._selection_cost(node.selection_set, root_type, frozenset())

        def leave_document(self, node, *_args):
            if self.complexity > maximum_complexity:
                self.report_error(
                    GraphQLError(
                        f"Query is too complex: {self.complexity} vs "
                        f"{maximum_complexity} allowed",
                        node,
                        extensions={'code': 'GRAPHQL_VALIDATION_FAILED'},
                    )
                )

        def _selection_cost(self, selection_set, parent_type, spread_names) -> int:
            if selection_set is None:
                return 0

            cost = 0
            for selection in selection_set.selections:
                if isinstance(selection, FieldNode):
                    cost += self._field_cost(selection, parent_type, spread_names)
                elif isinstance(selection, InlineFragmentNode):
                    fragment_type = self._condition_type(selection.type_condition, parent_type)
                    cost += self._selection_cost(selection.selection_set, fragment_type, spread_names)
                elif isinstance(selection, FragmentSpreadNode):
                    name = selection.name.value
                    fragment = self.context.get_fragment(name)
                    # Cycles are reported by NoFragmentCyclesRule
                    if fragment is None or name in spread_names:
                        continue
                    fragment_type = self._condition_type(fragment.type_condition, parent_type)
                    cost += self._selection_cost(
                        fragment.selection_set, fragment_type, spread_names | {name}
                    )
            return cost

        def _field_cost(self, node, parent_type, spread_names) -> int:
            field_name = node.name.value
            parent_name = parent_type.name if parent_type else ''
            cost = field_cost(parent_name, field_name)

            field_type = None
            if field_name == '__schema':
                field_type = SchemaMetaFieldDef.type
            elif field_name == '__type':
                field_type = TypeMetaFieldDef.type
            elif isinstance(parent_type, (GraphQLObjectType, GraphQLInterfaceType)):
                field_def = parent_type.fields.get(field_name)
                if field_def is not None:
                    field_type = field_def.type

            child_type = get_named_type(field_type) if field_type is not None else None
            return cost + self._selection_cost(node.selection_set, child_type, spread_names)

        def _condition_type(self, type_condition, parent_type):
            if type_condition is None:
                return parent_type
            return self.context.schema.get_type(type_condition.name.value)

    return QueryComplexityRule
