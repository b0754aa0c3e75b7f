"""Response assertions applied to completed requests."""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence

from pydantic import BaseModel

from trafficgen.scenarios.models import Validate


class RuleResult(BaseModel):
    rule_name: str
    passed: bool
    details: str = ""


class ResponseRule(ABC):
    """Base class for response assertions."""

    rule_id: str

    def __init__(self, name: str = "") -> None:
        self.name = name or self.rule_id

    @abstractmethod
    def check(self, status_code: int) -> RuleResult:
        """Evaluate this rule against a completed response."""
        ...

    def _passed(self) -> RuleResult:
        return RuleResult(rule_name=self.name, passed=True)

    def _failed(self, details: str) -> RuleResult:
        return RuleResult(rule_name=self.name, passed=False, details=details)


class StatusCodeRule(ResponseRule):
    """Exact match on the response status code."""

    rule_id = "status_code"

    def __init__(self, expected: int, name: str = "") -> None:
        super().__init__(name)
        self.expected = expected

    def check(self, status_code: int) -> RuleResult:
        if status_code == self.expected:
            return self._passed()
        return self._failed(
            f"status code is invalid: expected: {self.expected}, got: {status_code}"
        )


# One builder per assertion field on Validate; a builder returns None when its
# field is unset on the given Validate.
RULE_BUILDERS: list[Callable[[Validate], ResponseRule | None]] = [
    lambda v: StatusCodeRule(v.status_code, v.name) if v.status_code is not None else None,
]


def build_rules(validates: Iterable[Validate]) -> list[ResponseRule]:
    """Turn scenario ``validates`` entries into rules, preserving order."""
    rules: list[ResponseRule] = []
    for validate_entry in validates:
        for builder in RULE_BUILDERS:
            rule = builder(validate_entry)
            if rule is not None:
                rules.append(rule)
    return rules


def validate(rules: Sequence[ResponseRule], status_code: int) -> RuleResult | None:
    """Return the first failing rule's result, or None when every rule passes."""
    for rule in rules:
        result = rule.check(status_code)
        if not result.passed:
            return result
    return None
