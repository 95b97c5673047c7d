"""
Django-DocCrud Relation Resolver

Walks dotted relation paths over the schema graph and builds nested
population plans, merging policy-declared eager relations with the joins a
caller requested.
"""

from dataclasses import dataclass
from typing import Optional

from django_doccrud.conf import doccrud_settings
from django_doccrud.descriptor import JoinRequest
from django_doccrud.exceptions import InvalidInput
from django_doccrud.fields import build_field_select


@dataclass(frozen=True)
class PopulatePlan:
    """
    One level of a population plan.

    Attributes:
        path: Relation name on the current entity
        select: Projection applied to the related documents
        populate: Nested plan for the next relation segment
    """

    path: str
    select: Optional[dict] = None
    populate: Optional["PopulatePlan"] = None

    def to_dict(self):
        result = {"path": self.path}
        if self.select is not None:
            result["select"] = dict(self.select)
        if self.populate is not None:
            result["populate"] = self.populate.to_dict()
        return result


class RelationResolver:
    """
    Resolves relation paths against a schema graph.

    Example:
        resolver = RelationResolver(post_schema)
        plan = resolver.resolve("comments.author", {"name": 1})
        # PopulatePlan(path='comments',
        #              populate=PopulatePlan(path='author', select={'name': 1}))
    """

    def __init__(self, schema, separator=None, max_depth=None):
        self.schema = schema
        self.separator = separator or doccrud_settings.RELATION_SEPARATOR
        self.max_depth = max_depth if max_depth is not None else doccrud_settings.MAX_RELATION_DEPTH

    def walk(self, path):
        """
        Validate every segment of ``path`` and return the Relation chain.

        Raises:
            InvalidInput: If a segment is not a declared relation on the
                schema reached so far, or the path is too deep
        """
        segments = path.split(self.separator)

        if self.max_depth and len(segments) > self.max_depth:
            raise InvalidInput(f"Join '{path}' exceeds max relation depth of {self.max_depth}")

        chain = []
        current = self.schema
        for segment in segments:
            relation = current.relation(segment)
            if relation is None:
                raise InvalidInput(f"{segment} is not a valid join.")
            chain.append(relation)
            current = relation.target
        return chain

    def resolve(self, path, select=None):
        """
        Build the nested population plan for a dotted relation path.

        The innermost segment carries ``select``; each enclosing segment wraps
        the next one, ending with the outermost segment.

        Args:
            path: Dotted relation path (e.g. "comments.author")
            select: Projection for the innermost related documents

        Returns:
            PopulatePlan for the outermost segment
        """
        chain = self.walk(path)

        plan = None
        for relation in reversed(chain):
            if plan is None:
                plan = PopulatePlan(relation.name, select=select)
            else:
                plan = PopulatePlan(relation.name, populate=plan)
        return plan

    def resolve_join(self, join, join_options):
        """
        Resolve a single JoinRequest, applying each level's exclusion policy.

        The innermost level gets the caller's sub-select minus the exclusions
        configured for the full path; every enclosing level gets the
        exclusions configured for its own prefix (``author`` for
        ``author.company``), so a deeper join never reveals excluded fields.
        """
        chain = self.walk(join.field)
        segments = join.field.split(self.separator)

        plan = None
        for depth in range(len(chain), 0, -1):
            option = join_options.get(self.separator.join(segments[:depth]))
            exclude = option.exclude if option is not None else ()
            name = chain[depth - 1].name
            if plan is None:
                plan = PopulatePlan(name, select=build_field_select(join.select, exclude))
            else:
                plan = PopulatePlan(name, select=build_field_select(None, exclude), populate=plan)
        return plan

    def resolve_joins(self, joins, join_options):
        """
        Merge eager relations with caller joins into one list of plans.

        Eager relations are resolved first, using the caller's matching join
        (and its sub-select) when there is one. Caller joins are then resolved
        unless already consumed by the eager pass. Plans are keyed by their
        first relation, so ``author`` and ``author.company`` yield a single
        ``author`` plan with ``company`` nested in it. Without configured join
        options no relation is populated.

        Args:
            joins: Sequence of JoinRequest from the descriptor
            join_options: Mapping of relation name -> JoinOption

        Returns:
            Tuple of PopulatePlan, at most one per top-level relation
        """
        if not join_options:
            return ()

        plans = {}
        consumed = set()

        def add(plan):
            current = plans.get(plan.path)
            plans[plan.path] = plan if current is None else merge_plans(current, plan)

        for name, option in join_options.items():
            if not option.eager:
                continue
            cond = next((j for j in joins if j.field == name), None) or JoinRequest(name)
            add(self.resolve_join(cond, join_options))
            consumed.add(name)

        for join in joins:
            if join.field in consumed:
                continue
            add(self.resolve_join(join, join_options))
            consumed.add(join.field)

        return tuple(plans.values())


def merge_plans(current, incoming):
    """
    Combine two plans for the same relation into one.

    The select of a plan that ends at this level wins over the exclusion-only
    select of a plan passing through it; otherwise the later select wins.
    Nested plans on the same relation merge recursively; on different
    relations the later one wins.

    Example:
        >>> merge_plans(PopulatePlan("author", select={"password": 0}),
        ...             PopulatePlan("author", populate=PopulatePlan("company")))
        PopulatePlan(path='author', select={'password': 0},
                    populate=PopulatePlan(path='company', select=None, populate=None))
    """
    if incoming.populate is not None and current.populate is None:
        select = current.select if current.select is not None else incoming.select
    else:
        select = incoming.select if incoming.select is not None else current.select

    if current.populate is None:
        populate = incoming.populate
    elif incoming.populate is None:
        populate = current.populate
    elif incoming.populate.path == current.populate.path:
        populate = merge_plans(current.populate, incoming.populate)
    else:
        populate = incoming.populate

    return PopulatePlan(current.path, select=select, populate=populate)
