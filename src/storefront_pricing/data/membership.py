"""
Membership repository - a customer's active membership tier and its benefits.
"""
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..errors import EnrichmentUnavailable
from ..rules.models import parse_id_list, parse_optional_datetime, parse_optional_float

logger = logging.getLogger(__name__)

BENEFIT_TYPES = ('discount', 'freeShipping', 'exclusiveAccess', 'reward', 'other')


@dataclass
class MembershipBenefit:
    id: str
    name: str
    benefit_type: str
    tier_ids: list[str] = field(default_factory=list)
    discount_percentage: Optional[float] = None
    discount_amount: Optional[float] = None
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> 'MembershipBenefit':
        benefit_type = data.get('benefit_type', 'other')
        if benefit_type not in BENEFIT_TYPES:
            raise ValueError(f"Unknown benefit type '{benefit_type}' for benefit {data.get('id')}")
        return cls(
            id=str(data['id']),
            name=data.get('name') or str(data['id']),
            benefit_type=benefit_type,
            tier_ids=parse_id_list(data.get('tier_ids')),
            discount_percentage=parse_optional_float(data.get('discount_percentage')),
            discount_amount=parse_optional_float(data.get('discount_amount')),
            is_active=bool(data.get('is_active', True)),
        )


@dataclass
class UserMembership:
    user_id: str
    tier_id: str
    is_active: bool = True
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'UserMembership':
        return cls(
            user_id=str(data['user_id']),
            tier_id=str(data['tier_id']),
            is_active=bool(data.get('is_active', True)),
            start_date=parse_optional_datetime(data.get('start_date')),
            end_date=parse_optional_datetime(data.get('end_date')),
        )


class MembershipRepository:
    """Lookup of membership benefits per customer."""

    def __init__(self, memberships: list[UserMembership], benefits: list[MembershipBenefit],
                 available: bool = True):
        self.memberships = list(memberships)
        self.benefits = list(benefits)
        self.available = available

    @classmethod
    def from_records(cls, memberships: list[dict], benefits: list[dict]) -> 'MembershipRepository':
        return cls(
            [UserMembership.from_dict(m) for m in memberships],
            [MembershipBenefit.from_dict(b) for b in benefits],
        )

    @classmethod
    def from_json(cls, path: Path) -> 'MembershipRepository':
        """Missing file yields an unavailable repository rather than an empty one."""
        if not path.exists():
            logger.warning("Membership file not found at %s; membership benefits unavailable", path)
            return cls([], [], available=False)

        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls.from_records(data.get('memberships', []), data.get('benefits', []))

    def find_membership_by_user_id(self, user_id: str) -> Optional[UserMembership]:
        for membership in self.memberships:
            if membership.user_id == str(user_id) and membership.is_active:
                return membership
        return None

    def find_benefits_by_tier_id(self, tier_id: str) -> list[MembershipBenefit]:
        return [b for b in self.benefits if b.is_active and tier_id in b.tier_ids]

    def get_user_membership_benefits(self, user_id: str) -> list[MembershipBenefit]:
        """Active benefits of the user's active membership, or [] without one."""
        if not self.available:
            raise EnrichmentUnavailable("membership", "membership data source is not configured")

        membership = self.find_membership_by_user_id(user_id)
        if membership is None:
            return []
        return self.find_benefits_by_tier_id(membership.tier_id)
