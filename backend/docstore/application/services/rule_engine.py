"""Rule engine — layered access rules for collections, records and fields.

Resolution for one ``(action, collection, record id)``:

    1. the default group's action rule (``.read`` falls back to allow)
    2. the collection's action rule, when defined
    3. the collection's ``*`` field group, as the candidate field rules
    4. the record-id group's action rule and field rules, when defined

"Defined" means non-empty: ``None``, ``""`` and ``[]`` never replace a
broader rule, ``False`` does.
"""

import logging
from typing import Any

from docstore.application.interfaces import RecordStore
from docstore.application.services.rule_expressions import EvaluationContext, evaluate_rule
from docstore.domain.comparison import loose_equals, truthy
from docstore.domain.entities import (
    ID_FIELD,
    OWNER_FIELD,
    Action,
    Principal,
    Record,
    ResolvedRule,
    Role,
    RuleSet,
    RuleValue,
)
from docstore.domain.entities.rule_set import rule_or_default
from docstore.domain.exceptions import AuthorizationError, CredentialError, ServiceError

logger = logging.getLogger(__name__)


class RuleEngine:
    """Decides whether a principal may perform an action and which fields it may touch."""

    def __init__(self, rule_set: RuleSet, store: RecordStore):
        self._rules = rule_set
        self._store = store

    def resolve(
        self,
        action: Action,
        collection: str | None,
        record_id: str | None = None,
    ) -> ResolvedRule:
        rule: RuleValue = rule_or_default(True, self._rules.default.action_rule(action))
        field_rules: list[tuple[str, RuleValue]] = []

        group = self._rules.collections.get(collection) if collection else None
        if group is not None:
            rule = rule_or_default(rule, group.action_rule(action))
            field_rules = rule_or_default(field_rules, group.field_rules(action))

            record_group = group.records.get(record_id) if record_id else None
            if record_group is not None:
                rule = rule_or_default(rule, record_group.action_rule(action))
                field_rules = rule_or_default(field_rules, record_group.field_rules(action))

        return ResolvedRule(rule=rule, field_rules=list(field_rules))

    def enforce(
        self,
        action: Action,
        collection: str | None,
        *,
        principal: Principal | None,
        data: Record,
        new_data: Record | None = None,
        admin_override: bool = False,
    ) -> list[str]:
        """Check the action rule, then apply field rules.

        Raises ``AuthorizationError`` when a role list needs a principal and
        there is none, ``CredentialError`` when the rule denies the action.
        Admin override suppresses both, but not the field rules.

        Returns the names of fields denied by field rules. For writes those
        fields are also removed from ``new_data``.
        """
        resolved = self.resolve(action, collection, data.get(ID_FIELD))
        ctx = self._context(principal, data, new_data)

        if not self._action_allowed(resolved.rule, principal, data, ctx, admin_override):
            if not admin_override:
                logger.info(
                    "Denied %s on %s/%s for user %s",
                    action.value, collection, data.get(ID_FIELD, "-"),
                    principal.id if principal else "anonymous",
                )
                raise CredentialError()
            logger.debug("Admin override for %s on %s", action.value, collection)

        denied: list[str] = []
        for field_name, rule in resolved.field_rules:
            if self._field_allowed(rule, principal, data, ctx):
                continue
            denied.append(field_name)
            if action.is_write and new_data is not None:
                new_data.pop(field_name, None)

        if denied:
            logger.debug("Field rules denied %s on %s: %s", action.value, collection, ", ".join(denied))
        return denied

    # ── Evaluation ──────────────────────────────────────────────────

    def _action_allowed(
        self,
        rule: RuleValue,
        principal: Principal | None,
        data: Record,
        ctx: EvaluationContext,
        admin_override: bool,
    ) -> bool:
        if isinstance(rule, list):
            return self._check_roles(rule, principal, data, admin_override)
        if isinstance(rule, str):
            return truthy(evaluate_rule(rule, ctx))
        return bool(rule)

    @staticmethod
    def _check_roles(
        roles: list[str],
        principal: Principal | None,
        data: Record,
        admin_override: bool,
    ) -> bool:
        if Role.GUEST.value in roles:
            return True
        if principal is None and not admin_override:
            raise AuthorizationError()
        if Role.USER.value in roles:
            return True
        if principal is not None and Role.OWNER.value in roles:
            return principal.owns(data)
        return False

    def _field_allowed(
        self,
        rule: RuleValue,
        principal: Principal | None,
        data: Record,
        ctx: EvaluationContext,
    ) -> bool:
        if isinstance(rule, list):
            if Role.GUEST.value in rule:
                return True
            if principal is None:
                return False
            return Role.USER.value in rule or (Role.OWNER.value in rule and principal.owns(data))
        if isinstance(rule, str):
            return truthy(evaluate_rule(rule, ctx))
        return rule is not False

    def _context(
        self,
        principal: Principal | None,
        data: Record,
        new_data: Record | None,
    ) -> EvaluationContext:
        return EvaluationContext(
            variables={
                "user": principal.as_record() if principal else None,
                "data": data,
                "newData": new_data,
            },
            functions={
                "get": self._get_record,
                "isOwner": _is_owner,
            },
        )

    def _get_record(self, collection: Any, record_id: Any = None) -> Any:
        try:
            return self._store.get(str(collection), None if record_id is None else str(record_id))
        except ServiceError as exc:
            raise ValueError(f"get('{collection}', '{record_id}'): {exc.message}") from exc


def _is_owner(user: Any, record: Any) -> bool:
    if not isinstance(user, dict) or not isinstance(record, dict):
        return False
    return loose_equals(user.get(ID_FIELD), record.get(OWNER_FIELD))
