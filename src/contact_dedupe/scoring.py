from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from .models import ContactRecord
from .normalization import NormalizedView, email_domain, names_similar, normalized_view

EMAIL_MATCH_POINTS = 60
PHONE_MATCH_POINTS = 60
EXACT_NAME_POINTS = 30
SIMILAR_NAME_POINTS = 20
ORGANIZATION_POINTS = 10
ADDRESS_POINTS = 10
DOMAIN_MISMATCH_PENALTY = -10
DIFFERENT_CONTACT_INFO_PENALTY = -20

FALLBACK_REASON = "Similar contacts"


@dataclass
class MatchScoreBreakdown:
    email_match: int = 0
    phone_match: int = 0
    exact_name_match: int = 0
    similar_name_match: int = 0
    organization_match: int = 0
    address_match: int = 0
    email_domain_mismatch: int = 0
    different_contact_info: int = 0

    @property
    def total_score(self) -> int:
        # Floored at zero, never capped.
        return max(
            0,
            self.email_match
            + self.phone_match
            + self.exact_name_match
            + self.similar_name_match
            + self.organization_match
            + self.address_match
            + self.email_domain_mismatch
            + self.different_contact_info,
        )

    @property
    def name_matched(self) -> bool:
        return self.exact_name_match > 0 or self.similar_name_match > 0

    @property
    def reasons(self) -> List[str]:
        reasons: List[str] = []
        if self.email_match > 0:
            reasons.append("Same email address")
        if self.phone_match > 0:
            reasons.append("Same phone number")
        if self.exact_name_match > 0:
            reasons.append("Exact name match")
        if self.similar_name_match > 0:
            reasons.append("Similar names")
        if self.organization_match > 0:
            reasons.append("Same company")
        if self.address_match > 0:
            reasons.append("Same address")
        if self.email_domain_mismatch < 0:
            reasons.append("Warning: different email domains")
        if self.different_contact_info < 0:
            reasons.append("Warning: different contact info")
        return reasons

    @property
    def primary_reason(self) -> str:
        reasons = self.reasons
        return reasons[0] if reasons else FALLBACK_REASON

    def to_dict(self) -> Dict[str, object]:
        return {
            "email_match": self.email_match,
            "phone_match": self.phone_match,
            "exact_name_match": self.exact_name_match,
            "similar_name_match": self.similar_name_match,
            "organization_match": self.organization_match,
            "address_match": self.address_match,
            "email_domain_mismatch": self.email_domain_mismatch,
            "different_contact_info": self.different_contact_info,
            "total_score": self.total_score,
            "reasons": self.reasons,
        }


def _email_domains(record: ContactRecord) -> Set[str]:
    return {domain for domain in (email_domain(email.value) for email in record.emails) if domain}


class MatchScorer:
    def __init__(self, max_name_distance: int = 2):
        self.max_name_distance = max_name_distance

    def score(
        self,
        a: ContactRecord,
        b: ContactRecord,
        view_a: Optional[NormalizedView] = None,
        view_b: Optional[NormalizedView] = None,
    ) -> MatchScoreBreakdown:
        """
        Score two records against each other.

        Precomputed normalized views may be passed in to avoid recomputing them
        for every pair in a detection pass. Every rule is symmetric, so
        ``score(a, b)`` and ``score(b, a)`` always agree.
        """
        if a is None or b is None:
            raise TypeError("cannot score against a missing contact record")
        n1 = view_a if view_a is not None else normalized_view(a)
        n2 = view_b if view_b is not None else normalized_view(b)
        breakdown = MatchScoreBreakdown()

        email_overlap = n1.emails & n2.emails
        phone_overlap = n1.phones & n2.phones
        if email_overlap:
            breakdown.email_match = EMAIL_MATCH_POINTS
        if phone_overlap:
            breakdown.phone_match = PHONE_MATCH_POINTS

        if n1.full_name and n1.full_name == n2.full_name:
            breakdown.exact_name_match = EXACT_NAME_POINTS
        elif names_similar(n1.full_name, n2.full_name, self.max_name_distance):
            breakdown.similar_name_match = SIMILAR_NAME_POINTS

        if n1.organization and n1.organization == n2.organization:
            breakdown.organization_match = ORGANIZATION_POINTS
        if n1.address and n1.address == n2.address:
            breakdown.address_match = ADDRESS_POINTS

        if breakdown.name_matched:
            domains_a = _email_domains(a)
            domains_b = _email_domains(b)
            if domains_a and domains_b and not (domains_a & domains_b):
                breakdown.email_domain_mismatch = DOMAIN_MISMATCH_PENALTY

            if not breakdown.email_match and not breakdown.phone_match:
                # Neither side having contact info is ambiguous, not a conflict.
                if n1.has_contact and n2.has_contact and not email_overlap and not phone_overlap:
                    breakdown.different_contact_info = DIFFERENT_CONTACT_INFO_PENALTY

        return breakdown


_DEFAULT_SCORER = MatchScorer()


def score(a: ContactRecord, b: ContactRecord) -> MatchScoreBreakdown:
    return _DEFAULT_SCORER.score(a, b)


__all__ = ["FALLBACK_REASON", "MatchScoreBreakdown", "MatchScorer", "score"]
