"""
Duplicate Resolver Module
Fingerprints draft transactions and marks repeated ones as duplicates.
"""

import hashlib
import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from ..config import config
from ..extractors.regex_extractor import DraftTransaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinalTransaction:
    """A draft transaction with its duplicate status resolved."""
    draft: DraftTransaction
    fingerprint: str
    is_duplicate: bool = False
    original_fingerprint: Optional[str] = None

    def to_draft(self) -> DraftTransaction:
        return self.draft

    def to_dict(self) -> dict:
        """Convert transaction to dictionary."""
        data = self.draft.to_dict()
        data.update({
            "fingerprint": self.fingerprint,
            "is_duplicate": self.is_duplicate,
            "original_fingerprint": self.original_fingerprint,
        })
        return data


@dataclass(frozen=True)
class DuplicateGroup:
    group_id: int
    fingerprint: str
    original: FinalTransaction
    duplicates: tuple[FinalTransaction, ...]

    def to_dict(self) -> dict:
        return {
            "group_id": self.group_id,
            "fingerprint": self.fingerprint,
            "original": self.original.to_dict(),
            "duplicates": [duplicate.to_dict() for duplicate in self.duplicates],
        }


@dataclass(frozen=True)
class DuplicateDetectionReport:
    total_transactions: int
    unique_transactions: int
    duplicate_count: int
    duplicate_groups: tuple[DuplicateGroup, ...]

    def to_dict(self) -> dict:
        return {
            "total_transactions": self.total_transactions,
            "unique_transactions": self.unique_transactions,
            "duplicate_count": self.duplicate_count,
            "duplicate_groups": [group.to_dict() for group in self.duplicate_groups],
        }


@dataclass(frozen=True)
class ResolutionResult:
    finals: list[FinalTransaction]
    report: DuplicateDetectionReport

    @property
    def unique(self) -> list[FinalTransaction]:
        """Non-duplicates, for balance and period calculations."""
        return [final for final in self.finals if not final.is_duplicate]


def normalize_description(description: str) -> str:
    """Lowercase and collapse whitespace for consistent hashing."""
    return re.sub(r'\s+', ' ', description.lower()).strip()


def fingerprint_input(transaction: DraftTransaction) -> str:
    """The pipe-joined content a fingerprint is computed over."""
    fee = f"{transaction.fee:.2f}" if transaction.fee is not None else ""
    return "|".join((
        transaction.date.isoformat(),
        normalize_description(transaction.description),
        f"{transaction.amount:.2f}",
        transaction.category or "",
        fee,
        transaction.transaction_type.value,
    ))


def generate_fingerprint(transaction: DraftTransaction, length: Optional[int] = None) -> str:
    """
    SHA256 over the transaction's identifying fields, truncated.

    A within-document dedup key, not a security credential.
    """
    if length is None:
        length = config.FINGERPRINT_LENGTH
    digest = hashlib.sha256(fingerprint_input(transaction).encode("utf-8")).hexdigest()
    return digest[:length]


class DuplicateResolver:
    """
    Resolves duplicate status for the transactions of one document.
    Holds only configuration, so an instance may be shared.
    """

    def __init__(self, fingerprint_length: Optional[int] = None):
        self.fingerprint_length = fingerprint_length or config.FINGERPRINT_LENGTH

    def fingerprint(self, transaction: DraftTransaction) -> str:
        return generate_fingerprint(transaction, self.fingerprint_length)

    def resolve(self, drafts: Sequence[DraftTransaction]) -> ResolutionResult:
        """
        Mark the first transaction of every fingerprint as original and the
        rest as duplicates of it.

        Args:
            drafts: Draft transactions in document order

        Returns:
            ResolutionResult with finals in input order and the report
        """
        finals: list[FinalTransaction] = []
        # insertion order of dicts gives first-seen order of fingerprints
        groups: dict[str, list[FinalTransaction]] = {}

        for draft in drafts:
            fingerprint = self.fingerprint(draft)
            members = groups.setdefault(fingerprint, [])
            if members:
                final = FinalTransaction(
                    draft=draft,
                    fingerprint=fingerprint,
                    is_duplicate=True,
                    original_fingerprint=fingerprint,
                )
            else:
                final = FinalTransaction(draft=draft, fingerprint=fingerprint)
            members.append(final)
            finals.append(final)

        repeated = [(fp, members) for fp, members in groups.items() if len(members) > 1]
        duplicate_groups = tuple(
            DuplicateGroup(
                group_id=group_id,
                fingerprint=fingerprint,
                original=members[0],
                duplicates=tuple(members[1:]),
            )
            for group_id, (fingerprint, members) in enumerate(repeated, 1)
        )

        duplicate_count = sum(1 for final in finals if final.is_duplicate)
        report = DuplicateDetectionReport(
            total_transactions=len(finals),
            unique_transactions=len(finals) - duplicate_count,
            duplicate_count=duplicate_count,
            duplicate_groups=duplicate_groups,
        )

        if duplicate_count:
            logger.info(
                f"Duplicate resolution: {duplicate_count} duplicates in "
                f"{len(duplicate_groups)} groups out of {len(finals)} transactions"
            )
        else:
            logger.info(f"Duplicate resolution: no duplicates in {len(finals)} transactions")

        return ResolutionResult(finals=finals, report=report)

    def remove_duplicates(self, drafts: Sequence[DraftTransaction]) -> list[DraftTransaction]:
        """Keep the first occurrence of every fingerprint."""
        return [final.draft for final in self.resolve(drafts).unique]

    def get_duplicates(self, drafts: Sequence[DraftTransaction]) -> list[DraftTransaction]:
        """
        Every transaction that belongs to a duplicate group, in the order the
        duplicates are discovered: when a repeat is met, its original is
        listed first (once), then the repeat.
        """
        result = self.resolve(drafts)
        originals = {group.fingerprint: group.original for group in result.report.duplicate_groups}
        listed: set[str] = set()
        found: list[DraftTransaction] = []
        for final in result.finals:
            if not final.is_duplicate:
                continue
            if final.fingerprint not in listed:
                listed.add(final.fingerprint)
                found.append(originals[final.fingerprint].draft)
            found.append(final.draft)
        return found


def resolve_duplicates(drafts: Sequence[DraftTransaction]) -> ResolutionResult:
    """
    Convenience function to resolve duplicates for one document.

    Args:
        drafts: Draft transactions in document order

    Returns:
        ResolutionResult
    """
    resolver = DuplicateResolver()
    return resolver.resolve(drafts)
