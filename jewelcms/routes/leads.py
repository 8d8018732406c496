"""
Public lead routes — wishlist checkout / generic inquiry and the contact form.

Each submission becomes one Lead, scored once here and never rescored.
"""
import logging
import re

from flask import Blueprint, request, jsonify, session as flask_session

from jewelcms.database import get_session
from jewelcms.models.enums import LeadSource, LeadStatus
from jewelcms.models.lead import Lead
from jewelcms.services.lead_scoring import compute_score, category_of
from jewelcms.services.notifications import send_lead_notifications
from jewelcms.services.repository import Repository

logger = logging.getLogger('routes.leads')

bp = Blueprint('leads', __name__)

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')

SOURCE_VALUES = {s.value for s in LeadSource}


def _clean(value):
    """Strip strings; empty becomes None."""
    if isinstance(value, str):
        value = value.strip()
    return value or None


def _validate_contact(data, min_message=None):
    """Shared name/email/message checks; returns an error string or None."""
    name = (data.get('name') or '').strip()
    email = (data.get('email') or '').strip()
    if len(name) < 2:
        return 'Name must be at least 2 characters'
    if not EMAIL_RE.match(email):
        return 'Invalid email address'
    if min_message is not None and len((data.get('message') or '').strip()) < min_message:
        return f'Message must be at least {min_message} characters'
    return None


def _message(value):
    """Submitted message as-is; only blank input becomes None."""
    if isinstance(value, str) and value.strip():
        return value
    return None


def _current_customer_id():
    """Customer id of the logged-in storefront customer, if any."""
    return flask_session.get('customer_id')


def _notify(lead, repo):
    try:
        send_lead_notifications(lead, repo)
    except Exception:
        logger.error("Notifications failed for lead %s", lead.id, exc_info=True)


@bp.route('/api/leads', methods=['POST'])
def create_lead():
    """Create a lead from a wishlist checkout or inquiry form."""
    data = request.get_json(silent=True) or {}

    error = _validate_contact(data)
    if error:
        return jsonify({'error': error}), 400

    source = data.get('source') or LeadSource.WEBSITE.value
    if source not in SOURCE_VALUES:
        return jsonify({'error': f"Invalid source '{source}'"}), 400

    session = get_session()
    try:
        repo = Repository(session)
        wishlist_id = _clean(data.get('wishlistId'))
        wishlist = repo.get_by_id('wishlists', wishlist_id) if wishlist_id else None
        customer_id = _current_customer_id()

        lead = Lead(
            name=data['name'].strip(),
            email=data['email'].strip(),
            phone=_clean(data.get('phone')),
            source=LeadSource(source).value,
            status=LeadStatus.NEW.value,
            score=0,
            message=_message(data.get('message')),
            wishlist_id=wishlist_id,
            customer_id=customer_id,
            utm_source=_clean(data.get('utmSource')),
            utm_medium=_clean(data.get('utmMedium')),
            utm_campaign=_clean(data.get('utmCampaign')),
            referrer=_clean(data.get('referrer')),
            ip_address=request.remote_addr,
            user_agent=request.headers.get('User-Agent'),
        )
        lead.score = compute_score(lead, wishlist, customer_id, repo=repo)
        repo.create('leads', lead)

        logger.info(
            "New lead %s: score=%d (%s) source=%s wishlist_items=%s",
            lead.id, lead.score, category_of(lead.score).value, lead.source,
            len(wishlist.items) if wishlist else 0,
        )
        _notify(lead, repo)

        return jsonify({
            'leadId': lead.id,
            'message': "Thank you for your interest! We'll be in touch soon.",
            'score': lead.score,
        }), 201
    except Exception:
        session.rollback()
        logger.error("Failed to create lead", exc_info=True)
        return jsonify({'error': 'Failed to create lead'}), 500
    finally:
        session.close()


@bp.route('/api/leads/contact', methods=['POST'])
def contact():
    """Contact form submission — creates a CONTACT_FORM lead."""
    data = request.get_json(silent=True) or {}

    error = _validate_contact(data, min_message=10)
    if error:
        return jsonify({'error': error}), 400

    message = data['message']
    product_id = _clean(data.get('productId'))
    if product_id:
        message = f"Product inquiry: {product_id}\n\n{message}"

    session = get_session()
    try:
        repo = Repository(session)
        customer_id = _current_customer_id()

        lead = Lead(
            name=data['name'].strip(),
            email=data['email'].strip(),
            phone=_clean(data.get('phone')),
            source=LeadSource.CONTACT_FORM.value,
            status=LeadStatus.NEW.value,
            score=0,
            message=message,
            customer_id=customer_id,
            ip_address=request.remote_addr,
            user_agent=request.headers.get('User-Agent'),
        )
        lead.score = compute_score(lead, None, customer_id, repo=repo)
        repo.create('leads', lead)

        logger.info("Contact form lead %s: score=%d", lead.id, lead.score)
        _notify(lead, repo)

        return jsonify({
            'leadId': lead.id,
            'message': "Thank you for contacting us! We'll respond within 24 hours.",
        }), 201
    except Exception:
        session.rollback()
        logger.error("Failed to process contact form", exc_info=True)
        return jsonify({'error': 'Failed to process contact form'}), 500
    finally:
        session.close()
