# dedup.py
"""Lead deduplication within a run and against a prior run."""

from dataclasses import dataclass, field
from typing import Iterable, List, Set

from .errors import RejectReason
from .logging_utils import get_logger
from .models import DedupeMode, KeyDiff, Lead, Rejection
from .text_utils import canonicalize_url, normalize_text, text_fingerprint, thread_key


def dedupe_key(url: str, text: str, mode: DedupeMode) -> str:
    """Compute the dedupe key of a lead for the configured mode.

    Args:
        url: Lead URL
        text: Evidence text used for fingerprints
        mode: url, thread, text_fingerprint or mixed

    Returns:
        Key string; fingerprints are prefixed with ``fp:``
    """
    if mode == DedupeMode.URL:
        return canonicalize_url(url)
    if mode == DedupeMode.THREAD:
        return thread_key(url)
    if mode == DedupeMode.TEXT_FINGERPRINT:
        return f"fp:{text_fingerprint(text)}"
    if url:
        return canonicalize_url(url)
    return f"fp:{text_fingerprint(text)}"


def composite_key(url: str, title: str) -> str:
    """Safety-net key: canonical URL plus normalized title."""
    return f"{canonicalize_url(url)}|{normalize_text(title)}"


@dataclass
class DedupeOutcome:
    """Surviving leads and the duplicates that were dropped."""

    leads: List[Lead] = field(default_factory=list)
    rejections: List[Rejection] = field(default_factory=list)


class Deduplicator:
    """Drops leads whose key was already seen in this run or a prior run.

    Leads are expected to carry their ``dedupe_key``. Order is preserved,
    the first occurrence wins.
    """

    def __init__(self, prior_keys: Iterable[str] = ()):
        self.logger = get_logger(__name__)
        self.prior_keys: Set[str] = {key for key in prior_keys if key}

    def dedupe(self, leads: Iterable[Lead]) -> DedupeOutcome:
        """Remove duplicates; running it again on the result removes nothing."""
        outcome = DedupeOutcome()
        seen_keys: Set[str] = set()
        seen_composite: Set[str] = set()

        for lead in leads:
            composite = composite_key(lead.url, lead.title)
            if lead.dedupe_key in self.prior_keys:
                reason = RejectReason.PRIOR_RUN_DUPLICATE
            elif lead.dedupe_key in seen_keys or composite in seen_composite:
                reason = RejectReason.DUPLICATE_LEAD
            else:
                seen_keys.add(lead.dedupe_key)
                seen_composite.add(composite)
                outcome.leads.append(lead)
                continue
            outcome.rejections.append(Rejection(url=lead.url, reason=reason.value, stage="dedupe"))

        if outcome.rejections:
            self.logger.info(
                "Duplicates removed",
                extra={"kept": len(outcome.leads), "removed": len(outcome.rejections)},
            )
        return outcome


def diff_keys(prior_keys: Iterable[str], current_keys: Iterable[str]) -> KeyDiff:
    """Added/removed dedupe keys between a prior run and this run."""
    prior = [key for key in prior_keys if key]
    current = [key for key in current_keys if key]
    prior_set, current_set = set(prior), set(current)
    return KeyDiff(
        added=[key for key in current if key not in prior_set],
        removed=[key for key in prior if key not in current_set],
    )
