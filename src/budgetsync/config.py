"""Runtime settings and the YAML categorization rule file.

A rule file looks like::

    rules:
      - keyword: UBER
        category: transportation/taxi-rideshare
        name: Taxi & Rideshare
        confidence: 0.9
    default_category: other
    default_confidence: 0.5
    alternatives: [other, shopping]
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from budgetsync.bank.base import DEFAULT_MAX_DATE_RANGE_DAYS
from budgetsync.database.factories import DB_PATH_ENV, default_database_path
from budgetsync.domain.categorization import CategorizationConfig
from budgetsync.domain.entities import Category, ConfidenceScore
from budgetsync.domain.errors import ValidationError

STATEMENTS_DIR_ENV = "BUDGETSYNC_STATEMENTS_DIR"
MAX_RANGE_DAYS_ENV = "BUDGETSYNC_MAX_RANGE_DAYS"
RULES_PATH_ENV = "BUDGETSYNC_RULES_PATH"


@dataclass(frozen=True)
class Settings:
    database_path: str
    statements_dir: Optional[str] = None
    rules_path: Optional[str] = None
    max_date_range_days: int = DEFAULT_MAX_DATE_RANGE_DAYS

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "Settings":
        """Read settings from environment variables.

        Raises:
            ValidationError: If the maximum range is not a positive integer
        """
        environ = os.environ if environ is None else environ
        raw_days = environ.get(MAX_RANGE_DAYS_ENV)
        max_days = DEFAULT_MAX_DATE_RANGE_DAYS
        if raw_days:
            try:
                max_days = int(raw_days)
            except ValueError:
                raise ValidationError(f"{MAX_RANGE_DAYS_ENV} must be an integer, got '{raw_days}'")
            if max_days <= 0:
                raise ValidationError(f"{MAX_RANGE_DAYS_ENV} must be positive, got {max_days}")
        return cls(
            database_path=environ.get(DB_PATH_ENV) or str(default_database_path()),
            statements_dir=environ.get(STATEMENTS_DIR_ENV) or None,
            rules_path=environ.get(RULES_PATH_ENV) or None,
            max_date_range_days=max_days,
        )


def _category(value, name: Optional[str] = None) -> Category:
    if isinstance(value, dict):
        name = value.get("name", name)
        value = value.get("id")
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid category in rule file: {value!r}")
    return Category(id=value.strip(), name=name or value.strip())


def _confidence(value, where: str) -> ConfidenceScore:
    try:
        return ConfidenceScore(float(value))
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid confidence for {where}: {e}") from e


def parse_categorization_config(data: dict) -> CategorizationConfig:
    """Build a categorization config from already-loaded YAML data."""
    if not isinstance(data, dict):
        raise ValidationError("Rule file must contain a mapping")

    config = CategorizationConfig()
    rules = data.get("rules") or []
    if not isinstance(rules, list):
        raise ValidationError("'rules' must be a list")
    for index, rule in enumerate(rules, start=1):
        if not isinstance(rule, dict) or not rule.get("keyword") or "category" not in rule:
            raise ValidationError(f"Rule {index} needs a keyword and a category")
        category = _category(rule["category"], rule.get("name"))
        if "confidence" in rule:
            config = config.with_rule(
                str(rule["keyword"]), category, _confidence(rule["confidence"], f"rule {index}")
            )
        else:
            config = config.with_rule(str(rule["keyword"]), category)

    if "default_category" in data:
        default = _category(data["default_category"])
        if "default_confidence" in data:
            config = config.with_default(
                default, _confidence(data["default_confidence"], "default_category")
            )
        else:
            config = config.with_default(default)

    alternatives = data.get("alternatives")
    if alternatives:
        if not isinstance(alternatives, list):
            raise ValidationError("'alternatives' must be a list")
        count = data.get("num_alternatives", 2)
        if not isinstance(count, int) or count < 0:
            raise ValidationError("'num_alternatives' must be a non-negative integer")
        config = config.with_alternatives([_category(a) for a in alternatives], count)
    return config


def load_categorization_config(path: Path | str) -> CategorizationConfig:
    """Load categorization rules from a YAML file.

    Raises:
        ValidationError: If the file is missing, not valid YAML or malformed
    """
    path = Path(path)
    if not path.exists():
        raise ValidationError(f"Rule file not found: {path}")
    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValidationError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return CategorizationConfig()
    return parse_categorization_config(data)
