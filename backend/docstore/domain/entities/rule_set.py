"""Domain entities for access rules — actions, roles and the layered rule set.

Raw rule sets are plain mappings (usually loaded from YAML)::

    "*":                       # defaults for every collection
      ".create": [User]
    members:
      ".update": "isOwner(user, get('teams', data.teamId))"
      "*":                     # field rules for every record
        teamId:
          ".update": "newData.teamId = data.teamId"
      8f46934e-...:            # overrides for one record id
        ".read": [Guest]
        status:
          ".read": false
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

WILDCARD = "*"
ACTION_PREFIX = "."


class Action(str, Enum):
    """Operations a rule can gate."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"

    @property
    def key(self) -> str:
        """The key used for this action inside a rule group (``.read``)."""
        return ACTION_PREFIX + self.value

    @property
    def is_write(self) -> bool:
        return self in (Action.CREATE, Action.UPDATE)


class Role(str, Enum):
    """Role tags usable in list rules."""

    GUEST = "Guest"
    USER = "User"
    OWNER = "Owner"


# bool | expression string | list of role tags; None means "not defined"
RuleValue = Union[bool, str, list[str], None]

_ACTIONS_BY_KEY = {action.key: action for action in Action}
_ROLE_NAMES = {role.value for role in Role}


def is_defined(rule: RuleValue) -> bool:
    """A rule overrides a broader one only when it is non-empty."""
    if rule is None:
        return False
    if isinstance(rule, (str, list)) and len(rule) == 0:
        return False
    return True


def rule_or_default(current: Any, rule: Any) -> Any:
    return rule if is_defined(rule) else current


def _parse_rule_value(rule: Any, where: str) -> RuleValue:
    if rule is None or isinstance(rule, (bool, str)):
        return rule
    if isinstance(rule, list):
        unknown = [tag for tag in rule if tag not in _ROLE_NAMES]
        if unknown:
            raise ValueError(f"Unknown role(s) {unknown} in rule at {where}")
        return list(rule)
    raise ValueError(f"Unsupported rule value {rule!r} at {where}")


def _parse_action_rules(raw: Mapping[str, Any], where: str) -> dict[Action, RuleValue]:
    actions: dict[Action, RuleValue] = {}
    for key, value in ((str(k), v) for k, v in raw.items()):
        if not key.startswith(ACTION_PREFIX):
            continue
        action = _ACTIONS_BY_KEY.get(key)
        if action is None:
            raise ValueError(f"Unknown action '{key}' at {where}")
        actions[action] = _parse_rule_value(value, f"{where}.{key}")
    return actions


def _parse_field_rules(raw: Mapping[str, Any], where: str) -> dict[str, dict[Action, RuleValue]]:
    fields: dict[str, dict[Action, RuleValue]] = {}
    for name, value in ((str(k), v) for k, v in raw.items()):
        if name.startswith(ACTION_PREFIX):
            continue
        if not isinstance(value, Mapping):
            raise ValueError(f"Field rules for '{name}' at {where} must be a mapping")
        fields[name] = _parse_action_rules(value, f"{where}.{name}")
    return fields


@dataclass
class RuleGroup:
    """Rules for one collection, or for one record inside a collection."""

    actions: dict[Action, RuleValue] = field(default_factory=dict)
    fields: dict[str, dict[Action, RuleValue]] = field(default_factory=dict)
    records: dict[str, "RuleGroup"] = field(default_factory=dict)

    def action_rule(self, action: Action) -> RuleValue:
        return self.actions.get(action)

    def field_rules(self, action: Action) -> list[tuple[str, RuleValue]]:
        """Ordered ``(field, rule)`` pairs that define a rule for ``action``."""
        return [
            (name, rules[action])
            for name, rules in self.fields.items()
            if action in rules
        ]

    @classmethod
    def from_collection(cls, raw: Mapping[str, Any], where: str) -> "RuleGroup":
        """Parse a collection entry: action keys, ``*`` field group, record ids."""
        group = cls(actions=_parse_action_rules(raw, where))
        for key, value in ((str(k), v) for k, v in raw.items()):
            if key.startswith(ACTION_PREFIX):
                continue
            if not isinstance(value, Mapping):
                raise ValueError(f"Rule entry '{key}' at {where} must be a mapping")
            if key == WILDCARD:
                group.fields = _parse_field_rules(value, f"{where}.*")
            else:
                group.records[key] = cls.from_record(value, f"{where}.{key}")
        return group

    @classmethod
    def from_record(cls, raw: Mapping[str, Any], where: str) -> "RuleGroup":
        """Parse a record-id entry: action keys plus per-field rules."""
        return cls(
            actions=_parse_action_rules(raw, where),
            fields=_parse_field_rules(raw, where),
        )


DEFAULT_RULES: dict[str, Any] = {
    WILDCARD: {
        ".create": [Role.USER.value],
        ".update": [Role.OWNER.value],
        ".delete": [Role.OWNER.value],
    },
}


@dataclass
class RuleSet:
    """The full policy: a default group plus one group per collection."""

    default: RuleGroup = field(default_factory=RuleGroup)
    collections: dict[str, RuleGroup] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None = None) -> "RuleSet":
        """Build a rule set from a raw mapping layered over ``DEFAULT_RULES``.

        A top-level ``*`` entry in ``raw`` replaces the default one as a whole.
        """
        merged: dict[str, Any] = {**DEFAULT_RULES, **dict(raw or {})}
        rule_set = cls()
        for name, value in merged.items():
            if not isinstance(value, Mapping):
                raise ValueError(f"Rules for '{name}' must be a mapping")
            group = RuleGroup.from_collection(value, name)
            if name == WILDCARD:
                rule_set.default = group
            else:
                rule_set.collections[name] = group
        return rule_set


@dataclass
class ResolvedRule:
    """Outcome of the layered lookup for one action on one target."""

    rule: RuleValue
    field_rules: list[tuple[str, RuleValue]] = field(default_factory=list)
