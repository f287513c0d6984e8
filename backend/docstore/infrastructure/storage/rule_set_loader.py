"""Rule set loading from a YAML file."""

import logging
from pathlib import Path

import yaml

from docstore.domain.entities import RuleSet

logger = logging.getLogger(__name__)


def load_rule_set(path: str | Path | None) -> RuleSet:
    """Parse the rule file at ``path`` layered over the default rules.

    A missing path or file yields the default rules only. Invalid content
    raises ``ValueError``.
    """
    if not path:
        return RuleSet.from_dict()
    rules_file = Path(path)
    if not rules_file.is_file():
        logger.info("Rules file %s not found, using default rules", rules_file)
        return RuleSet.from_dict()

    with open(rules_file, "r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ValueError(f"Rules file {rules_file} is not valid YAML: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"Rules file {rules_file} must contain a mapping of collections")

    rule_set = RuleSet.from_dict(raw)
    logger.info(
        "Loaded rules for %d collection(s) from %s",
        len(rule_set.collections), rules_file.name,
    )
    return rule_set
