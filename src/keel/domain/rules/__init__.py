"""Rules: base classes, built-in checks, constraints and the manager."""

from .base import AsyncRule, CancellationToken, Rule, RunRulesFlag
from .builtin import (
    AllRequiredRulesExecuted,
    EmailAddressRule,
    MaxLengthRule,
    MinLengthRule,
    PropertyRule,
    RangeRule,
    RegexRule,
    RequiredRule,
    StringLengthRule,
)
from .constraints import (
    Constraint,
    ConstraintTranslator,
    EmailAddress,
    MaxLength,
    MinLength,
    Pattern,
    Range,
    Required,
    StringLength,
    UnknownConstraintError,
)
from .fluent import ActionRule, AsyncActionRule, AsyncValidationRule, ValidationRule
from .manager import RuleManager

__all__ = [
    "ActionRule",
    "AllRequiredRulesExecuted",
    "AsyncActionRule",
    "AsyncRule",
    "AsyncValidationRule",
    "CancellationToken",
    "Constraint",
    "ConstraintTranslator",
    "EmailAddress",
    "EmailAddressRule",
    "MaxLength",
    "MaxLengthRule",
    "MinLength",
    "MinLengthRule",
    "Pattern",
    "PropertyRule",
    "Range",
    "RangeRule",
    "RegexRule",
    "Required",
    "RequiredRule",
    "Rule",
    "RuleManager",
    "RunRulesFlag",
    "StringLength",
    "StringLengthRule",
    "UnknownConstraintError",
    "ValidationRule",
]
