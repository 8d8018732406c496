"""
Lead scoring — additive point system over a lead, its wishlist and its history.

    Wishlist items           10 per item, max 40
    Wishlist value           5–30 by total price band
    Phone provided           10
    Detailed message         10 (more than 20 characters)
    Wishlist submission      5
    Tracked campaign         5 (utm_source or utm_campaign)
    Customer account         8
    Repeat customer          3 per sibling lead, max 7
    Previous conversion      10 (any sibling lead CONVERTED)

Total capped at 100. Bands: 0–30 Cold, 31–60 Warm, 61–100 Hot.

A sibling is any other lead sharing the resolved customer id OR the email.
compute_score() and score_breakdown() are both projections of evaluate_terms(),
so the two can never disagree on conditions or points.
"""
import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, List, Optional

import yaml

from jewelcms.models.enums import LeadCategory, LeadSource, LeadStatus

logger = logging.getLogger('services.lead_scoring')


# ── Rule table (YAML with hardcoded fallback) ────────────────────────────────

_scoring_config = None


def _default_config():
    """Hardcoded fallback if the YAML is missing or unreadable."""
    return {
        'version': 'default',
        'max_score': 100,
        'wishlist_items': {'points_per_item': 10, 'max_points': 40},
        'wishlist_value_tiers': [
            {'min_total': 10000, 'points': 30, 'label': 'High Value Wishlist'},
            {'min_total': 5000, 'points': 25, 'label': 'High Value Wishlist'},
            {'min_total': 2000, 'points': 20, 'label': 'Medium Value Wishlist'},
            {'min_total': 1000, 'points': 15, 'label': 'Medium Value Wishlist'},
            {'min_total': 500, 'points': 10, 'label': 'Low Value Wishlist'},
            {'min_total': 0, 'strict': True, 'points': 5, 'label': 'Low Value Wishlist'},
        ],
        'phone': 10,
        'detailed_message': {'points': 10, 'min_length': 20},
        'wishlist_source': 5,
        'campaign': 5,
        'customer_account': 8,
        'repeat_contact': {'points_per_sibling': 3, 'max_points': 7},
        'previous_conversion': 10,
    }


def load_scoring_config():
    """Load the rule table from YAML, cached in-process, falling back to defaults."""
    global _scoring_config
    if _scoring_config is not None:
        return _scoring_config

    config_path = os.path.join(os.path.dirname(__file__), 'scoring_config.yaml')
    try:
        with open(config_path, 'r') as f:
            loaded = yaml.safe_load(f)
        if not isinstance(loaded, dict):
            raise ValueError(f"expected a mapping, got {type(loaded).__name__}")
        _scoring_config = _merge_defaults(loaded)
        logger.info("Scoring rules loaded from YAML (version=%s)", _scoring_config.get('version', '?'))
    except Exception as e:
        logger.warning("Scoring YAML unavailable (%s), using defaults", e)
        _scoring_config = _default_config()

    return _scoring_config


def _merge_defaults(loaded):
    """Overlay YAML keys on the defaults; nested rule dicts merge one level deep."""
    cfg = _default_config()
    for key, value in loaded.items():
        if isinstance(value, dict) and isinstance(cfg.get(key), dict):
            cfg[key] = {**cfg[key], **value}
        else:
            cfg[key] = value
    return cfg


# ── Term evaluation ──────────────────────────────────────────────────────────

TERM_LABELS = {
    'wishlist_items': 'Wishlist Items',
    'phone': 'Phone Provided',
    'detailed_message': 'Detailed Message',
    'wishlist_source': 'Wishlist Submission',
    'campaign': 'Tracked Campaign',
    'customer_account': 'Customer Account',
    'repeat_contact': 'Repeat Customer',
    'previous_conversion': 'Previous Conversion',
}


@dataclass(frozen=True)
class ScoreTerm:
    """One triggered scoring rule."""
    key: str
    label: str
    points: int


def wishlist_total(wishlist, products) -> float:
    """Sum of item prices; items whose product no longer exists count as 0."""
    prices = {p.id: (p.price or 0) for p in products}
    return sum(prices.get(item.product_id, 0) for item in wishlist.items)


def value_tier(total: float, tiers: List[Dict]) -> Optional[Dict]:
    """First tier whose threshold the total meets, or None."""
    for tier in tiers:
        if tier.get('strict'):
            if total > tier['min_total']:
                return tier
        elif total >= tier['min_total']:
            return tier
    return None


def find_siblings(lead, leads, customer_id=None) -> List:
    """Other leads sharing customer_id (when resolved) or email with `lead`.

    A missing email matches nothing, so email-less leads are never grouped.
    """
    email = lead.email
    return [
        other for other in leads
        if other.id != lead.id and (
            (customer_id and other.customer_id == customer_id)
            or (email and other.email == email)
        )
    ]


def evaluate_terms(lead, wishlist=None, customer_id=None, repo=None) -> List[ScoreTerm]:
    """
    Run every scoring rule against a lead and return the ones that fire.

    Args:
        lead:        Lead (or any object with the same attributes).
        wishlist:    Optional Wishlist with .items.
        customer_id: Resolved customer id; callers pass the override or
                     lead.customer_id.
        repo:        Object exposing get_all_products() / get_all_leads().
    """
    cfg = load_scoring_config()
    terms = []

    if wishlist is not None and len(wishlist.items) > 0:
        items_cfg = cfg['wishlist_items']
        terms.append(ScoreTerm(
            'wishlist_items',
            TERM_LABELS['wishlist_items'],
            min(len(wishlist.items) * items_cfg['points_per_item'], items_cfg['max_points']),
        ))

        total = wishlist_total(wishlist, repo.get_all_products())
        tier = value_tier(total, cfg['wishlist_value_tiers'])
        if tier is not None:
            terms.append(ScoreTerm('wishlist_value', tier['label'], tier['points']))

    if lead.phone:
        terms.append(ScoreTerm('phone', TERM_LABELS['phone'], cfg['phone']))

    msg_cfg = cfg['detailed_message']
    if lead.message and len(lead.message) > msg_cfg['min_length']:
        terms.append(ScoreTerm('detailed_message', TERM_LABELS['detailed_message'], msg_cfg['points']))

    if lead.source == LeadSource.WISHLIST:
        terms.append(ScoreTerm('wishlist_source', TERM_LABELS['wishlist_source'], cfg['wishlist_source']))

    if lead.utm_source or lead.utm_campaign:
        terms.append(ScoreTerm('campaign', TERM_LABELS['campaign'], cfg['campaign']))

    if customer_id:
        terms.append(ScoreTerm('customer_account', TERM_LABELS['customer_account'], cfg['customer_account']))

    if customer_id or lead.email:
        siblings = find_siblings(lead, repo.get_all_leads(), customer_id)
        if siblings:
            repeat_cfg = cfg['repeat_contact']
            terms.append(ScoreTerm(
                'repeat_contact',
                TERM_LABELS['repeat_contact'],
                min(len(siblings) * repeat_cfg['points_per_sibling'], repeat_cfg['max_points']),
            ))
        if any(s.status == LeadStatus.CONVERTED for s in siblings):
            terms.append(ScoreTerm(
                'previous_conversion', TERM_LABELS['previous_conversion'], cfg['previous_conversion'],
            ))

    return terms


@contextmanager
def _repository(repo):
    """Yield `repo`, or a session-backed Repository opened for this call."""
    if repo is not None:
        yield repo
        return

    from jewelcms.database import get_session
    from jewelcms.services.repository import Repository

    session = get_session()
    try:
        yield Repository(session)
    finally:
        session.close()


# ── Public API ───────────────────────────────────────────────────────────────

def compute_score(lead, wishlist=None, customer_id=None, repo=None) -> int:
    """
    Integer score in [0, 100] for a lead as submitted.

    customer_id overrides lead.customer_id when given (the logged-in customer
    at submission time).
    """
    resolved = customer_id or lead.customer_id
    with _repository(repo) as r:
        terms = evaluate_terms(lead, wishlist, resolved, r)
    score = min(sum(t.points for t in terms), load_scoring_config()['max_score'])
    logger.debug("Scored lead %s: %d (%s)", lead.id, score, ', '.join(t.key for t in terms) or 'no terms')
    return score


def score_breakdown(lead, wishlist=None, repo=None) -> Dict[str, int]:
    """
    Label → points for every rule that fired, for the admin lead view.

    Only lead.customer_id is consulted. Values are not capped, so they sum to
    compute_score() whenever the uncapped total is 100 or less.
    """
    with _repository(repo) as r:
        terms = evaluate_terms(lead, wishlist, lead.customer_id, r)
    return {t.label: t.points for t in terms}


def category_of(score) -> LeadCategory:
    """Cold (0–30), Warm (31–60) or Hot (61–100); out-of-range input is clamped."""
    score = max(0, min(score, 100))
    if score >= 61:
        return LeadCategory.HOT
    if score >= 31:
        return LeadCategory.WARM
    return LeadCategory.COLD


CATEGORY_COLORS = {
    LeadCategory.HOT: 'red',
    LeadCategory.WARM: 'yellow',
    LeadCategory.COLD: 'blue',
}


def score_color(score) -> str:
    """Dashboard badge color for a score."""
    return CATEGORY_COLORS[category_of(score)]
