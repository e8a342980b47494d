"""Rules that select uevents by action and environment regular expressions."""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from ueventkit.uevent import KObjAction, UEvent


class Matcher(Protocol):
    """Anything that can decide whether a uevent is wanted."""

    def evaluate(self, event: UEvent) -> bool: ...

    def evaluate_action(self, action: KObjAction | str) -> bool: ...

    def evaluate_env(self, env: Mapping[str, str]) -> bool: ...

    def compile(self) -> None: ...


def match_env(patterns: Mapping[str, re.Pattern[str]], env: Mapping[str, str]) -> bool:
    """Return True when every pattern's variable exists in ``env`` and matches."""
    for name, pattern in patterns.items():
        if name not in env or pattern.search(env[name]) is None:
            return False
    return True


@dataclass
class _CompiledRule:
    action: re.Pattern[str] | None
    env: dict[str, re.Pattern[str]]


@dataclass
class RuleDefinition:
    """A rule: an optional action pattern and patterns on environment variables."""

    action: str | None = None
    env: dict[str, str] = field(default_factory=dict)
    _compiled: _CompiledRule | None = field(
        default=None, init=False, repr=False, compare=False
    )

    def compile(self) -> None:
        """Compile the patterns; raises re.error on an invalid one."""
        action = re.compile(self.action) if self.action is not None else None
        env = {name: re.compile(pattern) for name, pattern in self.env.items()}
        self._compiled = _CompiledRule(action=action, env=env)

    def _rule(self) -> _CompiledRule | None:
        if self._compiled is None:
            try:
                self.compile()
            except re.error:
                return None
        return self._compiled

    def evaluate(self, event: UEvent) -> bool:
        """Return True when both action and environment match."""
        return self.evaluate_action(event.action) and self.evaluate_env(event.env)

    def evaluate_action(self, action: KObjAction | str) -> bool:
        """Return True when there is no action pattern or it matches."""
        rule = self._rule()
        if rule is None:
            return False
        if rule.action is None:
            return True
        return rule.action.search(str(action)) is not None

    def evaluate_env(self, env: Mapping[str, str]) -> bool:
        """Return True when every environment pattern finds a matching variable."""
        rule = self._rule()
        if rule is None:
            return False
        return match_env(rule.env, env)

    def __str__(self) -> str:
        parts = ["ruledef ( "]
        if self.action is None and not self.env:
            parts.append("empty")
        else:
            if self.action is not None:
                parts.append(f"action={self.action} ")
            parts.extend(f"env.{name}={pattern} " for name, pattern in self.env.items())
        parts.append(")")
        return "".join(parts)


def _lookup(document: Mapping[str, Any], name: str) -> Any:
    if name in document:
        return document[name]
    for key, value in document.items():
        if key.lower() == name.lower():
            return value
    return None


def _rule_from_document(document: Any) -> RuleDefinition:
    if not isinstance(document, dict):
        raise ValueError("rule must be a JSON object")
    action = _lookup(document, "action")
    if action is not None and not isinstance(action, str):
        raise ValueError("rule action must be a string")
    env = _lookup(document, "env")
    if env is None:
        env = {}
    if not isinstance(env, dict):
        raise ValueError("rule env must be a JSON object")
    patterns: dict[str, str] = {}
    for name, pattern in env.items():
        if pattern is None:
            pattern = ""
        if not isinstance(pattern, str):
            raise ValueError(f"env pattern for {name} must be a string")
        patterns[name] = pattern
    return RuleDefinition(action=action, env=patterns)


@dataclass
class RuleDefinitions:
    """Rules chained with OR: a uevent matches when any rule does."""

    rules: list[RuleDefinition] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: str | bytes) -> RuleDefinitions:
        """Load rules from a JSON document of the form {"rules": [...]}."""
        document = json.loads(data)
        if document is None:
            return cls()
        if not isinstance(document, dict):
            raise ValueError("rule definitions must be a JSON object")
        rules = _lookup(document, "rules")
        if rules is None:
            return cls()
        if not isinstance(rules, list):
            raise ValueError("rules must be a JSON array")
        return cls([_rule_from_document(rule) for rule in rules])

    def add_rule(self, rule: RuleDefinition) -> None:
        self.rules.append(rule)

    def compile(self) -> None:
        """Compile every rule; raises re.error at the first invalid pattern."""
        for rule in self.rules:
            rule.compile()

    def evaluate(self, event: UEvent) -> bool:
        return any(rule.evaluate(event) for rule in self.rules)

    def evaluate_action(self, action: KObjAction | str) -> bool:
        return any(rule.evaluate_action(action) for rule in self.rules)

    def evaluate_env(self, env: Mapping[str, str]) -> bool:
        return any(rule.evaluate_env(env) for rule in self.rules)

    def __str__(self) -> str:
        return "".join(f"- {rule}\n" for rule in self.rules)