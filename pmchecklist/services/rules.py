from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

"""Ordered predicate -> outcome rules.

Every classifier in the engine (header-row signal, column role, row kind) is an
ordered list of Rule objects evaluated by first_match(). Supporting a new checklist
family means adding or reordering rules, not editing branching logic, and each
rule can be unit-tested on its own.
"""

__all__ = [
    "Rule",
    "first_match",
    "matching",
]

S = TypeVar("S")
O = TypeVar("O")


@dataclass(frozen=True)
class Rule(Generic[S, O]):
    name: str
    predicate: Callable[[S], bool]
    outcome: O

    def applies(self, subject: S) -> bool:
        return self.predicate(subject)


def first_match(rules: Sequence[Rule[S, O]], subject: S) -> Rule[S, O] | None:
    """Return the first rule whose predicate holds for ``subject`` (None if none do)."""
    for rule in rules:
        if rule.applies(subject):
            return rule
    return None


def matching(rules: Iterable[Rule[S, O]], subject: S) -> list[Rule[S, O]]:
    """Return every rule whose predicate holds, in rule order."""
    return [rule for rule in rules if rule.applies(subject)]
