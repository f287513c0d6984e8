from .record import (
    Record,
    Principal,
    SYSTEM_FIELDS,
    ID_FIELD,
    OWNER_FIELD,
    CREATED_FIELD,
    UPDATED_FIELD,
    DELETED_FIELD,
    PASSWORD_HASH_FIELD,
    strip_system_fields,
    timestamp_ms,
)
from .rule_set import (
    Action,
    Role,
    RuleValue,
    RuleGroup,
    RuleSet,
    ResolvedRule,
    DEFAULT_RULES,
)
from .query import QueryParams, SortSpec, LoadSpec
from .request import DataRequest

__all__ = [
    "Record",
    "Principal",
    "SYSTEM_FIELDS",
    "ID_FIELD",
    "OWNER_FIELD",
    "CREATED_FIELD",
    "UPDATED_FIELD",
    "DELETED_FIELD",
    "PASSWORD_HASH_FIELD",
    "strip_system_fields",
    "timestamp_ms",
    "Action",
    "Role",
    "RuleValue",
    "RuleGroup",
    "RuleSet",
    "ResolvedRule",
    "DEFAULT_RULES",
    "QueryParams",
    "SortSpec",
    "LoadSpec",
    "DataRequest",
]
