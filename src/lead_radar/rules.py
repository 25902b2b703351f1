# rules.py
"""First-match-wins rule tables.

Source-kind detection and entity-role resolution are both ordered lists of
named predicates. Keeping them as data makes the precedence explicit and
lets tests inspect which rule decided an outcome.
"""

from dataclasses import dataclass
from typing import Callable, Generic, Iterable, Sequence, Tuple, TypeVar

from .text_utils import contains_any, host_matches

S = TypeVar("S")
O = TypeVar("O")


@dataclass(frozen=True)
class Rule(Generic[S, O]):
    """A named predicate and the outcome it yields."""

    name: str
    predicate: Callable[[S], bool]
    outcome: O


def resolve_first(
    rules: Sequence[Rule[S, O]],
    subject: S,
    default: O,
) -> Tuple[O, str]:
    """Return the outcome and name of the first rule whose predicate holds."""
    for rule in rules:
        if rule.predicate(subject):
            return rule.outcome, rule.name
    return default, "default"


@dataclass(frozen=True)
class UrlFeatures:
    """URL and text features used by source-kind rules."""

    host: str
    path: str
    title: str = ""
    snippet: str = ""


def domain_listed(features: UrlFeatures, domains: Iterable[str]) -> bool:
    """Whether the URL belongs to one of ``domains``.

    Entries with a path (``linkedin.com/jobs``) match as a host+path prefix.
    """
    for entry in domains:
        if "/" in entry:
            host_part, _, path_part = entry.partition("/")
            if host_matches(features.host, host_part) and features.path.startswith("/" + path_part):
                return True
        elif host_matches(features.host, entry):
            return True
    return False


def any_domain(domains: Iterable[str]) -> Callable[[UrlFeatures], bool]:
    domains = tuple(domains)
    return lambda f: domain_listed(f, domains)


def any_path(markers: Iterable[str]) -> Callable[[UrlFeatures], bool]:
    markers = tuple(markers)
    return lambda f: any(marker in f.path for marker in markers)


def any_host_prefix(prefixes: Iterable[str]) -> Callable[[UrlFeatures], bool]:
    prefixes = tuple(prefixes)
    return lambda f: f.host.startswith(prefixes)


def any_title(markers: Iterable[str]) -> Callable[[UrlFeatures], bool]:
    markers = tuple(markers)
    return lambda f: contains_any(f.title, markers)


def either(*predicates: Callable[[S], bool]) -> Callable[[S], bool]:
    return lambda subject: any(predicate(subject) for predicate in predicates)
