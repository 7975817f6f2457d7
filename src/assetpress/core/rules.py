"""Asset name matching against test/include/exclude rules."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Union

Rule = Union[str, re.Pattern[str]]
Rules = Union[Rule, Sequence[Rule]]

_REGEX_LITERAL = re.compile(r"^/(?P<pattern>.+)/(?P<flags>[imsx]*)$", re.DOTALL)
_FLAG_MAP = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL, "x": re.VERBOSE}


def compile_rule(value: Rule) -> Rule:
    """Turn the textual ``/pattern/flags`` form into a compiled regex.

    Any other string is kept as a literal prefix rule.
    """

    if isinstance(value, re.Pattern):
        return value
    match = _REGEX_LITERAL.match(value)
    if match is None:
        return value
    flags = 0
    for flag in match.group("flags"):
        flags |= _FLAG_MAP[flag]
    return re.compile(match.group("pattern"), flags)


def _as_regex(rule: Rule) -> re.Pattern[str]:
    if isinstance(rule, re.Pattern):
        return rule
    return re.compile("^" + re.escape(rule))


def match_part(name: str, rules: Rules | None) -> bool:
    """Return True when ``name`` satisfies any rule.

    ``None`` places no constraint. An explicit empty list matches nothing, as in the build host's
    own rule matching, so ``test=[]`` disables a compressor rather than enabling it everywhere.
    """

    if rules is None:
        return True
    if isinstance(rules, (str, re.Pattern)):
        return _as_regex(rules).search(name) is not None
    return any(_as_regex(rule).search(name) is not None for rule in rules)


@dataclass(frozen=True, slots=True)
class RuleMatcher:
    """Eligibility check for asset names."""

    test: Rules | None = None
    include: Rules | None = None
    exclude: Rules | None = None

    def __call__(self, name: str) -> bool:
        if self.test is not None and not match_part(name, self.test):
            return False
        if self.include is not None and not match_part(name, self.include):
            return False
        if self.exclude is not None and match_part(name, self.exclude):
            return False
        return True
