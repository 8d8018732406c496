"""
Admin lead routes — pipeline listing, stats, detail with score breakdown,
status updates, notes, deletion.

Status updates and notes never rescore a lead.
"""
import logging
import math
from datetime import datetime, timedelta

from flask import Blueprint, request, jsonify
from sqlalchemy import func

from jewelcms.config import DEFAULT_PAGE_SIZE, RECENT_LEADS_DAYS
from jewelcms.database import get_session
from jewelcms.models.enums import LeadStatus
from jewelcms.models.lead import Lead, LeadNote
from jewelcms.services.lead_scoring import category_of, score_breakdown, score_color
from jewelcms.services.repository import Repository

logger = logging.getLogger('routes.admin_leads')

bp = Blueprint('admin_leads', __name__, url_prefix='/api/admin/leads')

SORT_FIELDS = {
    'createdAt': Lead.created_at,
    'updatedAt': Lead.updated_at,
    'score': Lead.score,
    'name': Lead.name,
    'email': Lead.email,
    'status': Lead.status,
}

STATUS_VALUES = {s.value for s in LeadStatus}


def _with_category(lead):
    data = lead.to_dict()
    data['category'] = category_of(lead.score).value
    data['color'] = score_color(lead.score)
    return data


def _parse_datetime(value):
    """ISO-8601 string → naive datetime (raises ValueError)."""
    dt = datetime.fromisoformat(value.replace('Z', '+00:00'))
    return dt.replace(tzinfo=None) if dt.tzinfo else dt


@bp.route('')
def list_leads():
    """Filtered, sorted, paginated lead list."""
    args = request.args
    try:
        limit = max(1, int(args.get('limit', DEFAULT_PAGE_SIZE)))
        page = max(1, int(args.get('page', 1)))
        min_score = int(args['minScore']) if args.get('minScore') else None
        max_score = int(args['maxScore']) if args.get('maxScore') else None
        date_from = _parse_datetime(args['dateFrom']) if args.get('dateFrom') else None
        date_to = _parse_datetime(args['dateTo']) if args.get('dateTo') else None
    except ValueError as e:
        return jsonify({'error': f'Invalid query parameter: {e}'}), 400

    sort_field, _, sort_order = args.get('sort', 'createdAt_desc').partition('_')
    column = SORT_FIELDS.get(sort_field, Lead.created_at)
    order = column.asc() if sort_order == 'asc' else column.desc()

    session = get_session()
    try:
        query = session.query(Lead)
        if args.get('status'):
            query = query.filter(Lead.status == args['status'])
        if args.get('source'):
            query = query.filter(Lead.source == args['source'])
        if min_score is not None:
            query = query.filter(Lead.score >= min_score)
        if max_score is not None:
            query = query.filter(Lead.score <= max_score)
        if args.get('assignedTo'):
            query = query.filter(Lead.assigned_to == args['assignedTo'])
        if date_from:
            query = query.filter(Lead.created_at >= date_from)
        if date_to:
            query = query.filter(Lead.created_at <= date_to)

        total = query.count()
        leads = query.order_by(order).offset((page - 1) * limit).limit(limit).all()

        return jsonify({
            'leads': [_with_category(lead) for lead in leads],
            'pagination': {
                'total': total,
                'page': page,
                'limit': limit,
                'totalPages': math.ceil(total / limit),
            },
        })
    except Exception:
        logger.error("Failed to fetch leads", exc_info=True)
        return jsonify({'error': 'Failed to fetch leads'}), 500
    finally:
        session.close()


@bp.route('/stats')
def lead_stats():
    """Pipeline counts by status and by score band."""
    session = get_session()
    try:
        total = session.query(func.count(Lead.id)).scalar() or 0
        by_status = dict(
            session.query(Lead.status, func.count(Lead.id)).group_by(Lead.status).all()
        )
        avg_score = session.query(func.avg(Lead.score)).scalar()
        since = datetime.now() - timedelta(days=RECENT_LEADS_DAYS)
        recent = session.query(func.count(Lead.id)).filter(Lead.created_at >= since).scalar() or 0

        stats = {'total': total}
        for status in LeadStatus:
            stats[status.value.lower()] = by_status.get(status.value, 0)
        # TODO: 'qualified' has no LeadStatus member; confirm with product
        # whether to add the status or drop this bucket from the dashboard.
        stats['qualified'] = 0
        stats.update({
            'hot': session.query(func.count(Lead.id)).filter(Lead.score >= 61).scalar() or 0,
            'warm': session.query(func.count(Lead.id)).filter(Lead.score >= 31, Lead.score < 61).scalar() or 0,
            'cold': session.query(func.count(Lead.id)).filter(Lead.score < 31).scalar() or 0,
            'avgScore': round(float(avg_score), 2) if avg_score is not None else 0,
            'last30Days': recent,
        })
        return jsonify({'stats': stats})
    except Exception:
        logger.error("Failed to fetch lead stats", exc_info=True)
        return jsonify({'error': 'Failed to fetch lead stats'}), 500
    finally:
        session.close()


@bp.route('/<lead_id>')
def get_lead(lead_id):
    """Lead detail with wishlist, notes, customer and score breakdown."""
    session = get_session()
    try:
        repo = Repository(session)
        lead = repo.get_by_id('leads', lead_id)
        if lead is None:
            return jsonify({'error': 'Lead not found'}), 404

        wishlist = repo.get_by_id('wishlists', lead.wishlist_id) if lead.wishlist_id else None
        customer = repo.get_by_id('customers', lead.customer_id) if lead.customer_id else None
        notes = sorted(repo.get_by('lead_notes', 'lead_id', lead_id), key=lambda n: n.created_at)

        return jsonify({
            'lead': _with_category(lead),
            'wishlist': wishlist.to_dict() if wishlist else None,
            'customer': customer.to_dict() if customer else None,
            'notes': [n.to_dict() for n in notes],
            'scoreBreakdown': score_breakdown(lead, wishlist, repo=repo),
        })
    except Exception:
        logger.error("Failed to fetch lead %s", lead_id, exc_info=True)
        return jsonify({'error': 'Failed to fetch lead'}), 500
    finally:
        session.close()


@bp.route('/<lead_id>', methods=['PUT'])
def update_lead(lead_id):
    """Update status / assignment / contact timestamps."""
    data = request.get_json(silent=True) or {}
    updates = {}

    if 'status' in data:
        if data['status'] not in STATUS_VALUES:
            return jsonify({'error': f"Invalid status '{data['status']}'"}), 400
        updates['status'] = data['status']
    if 'assignedTo' in data:
        updates['assigned_to'] = data['assignedTo'] or None
    try:
        for key, attr in (('contactedAt', 'contacted_at'), ('convertedAt', 'converted_at')):
            if data.get(key):
                updates[attr] = _parse_datetime(data[key])
    except ValueError as e:
        return jsonify({'error': f'Invalid date: {e}'}), 400

    session = get_session()
    try:
        lead = Repository(session).update('leads', lead_id, updates)
        if lead is None:
            return jsonify({'error': 'Lead not found'}), 404
        logger.info("Lead %s updated: %s", lead_id, sorted(updates))
        return jsonify({'lead': _with_category(lead)})
    except Exception:
        session.rollback()
        logger.error("Failed to update lead %s", lead_id, exc_info=True)
        return jsonify({'error': 'Failed to update lead'}), 500
    finally:
        session.close()


@bp.route('/<lead_id>/notes', methods=['POST'])
def add_note(lead_id):
    """Attach a note to a lead."""
    data = request.get_json(silent=True) or {}
    note = (data.get('note') or '').strip()
    created_by = (data.get('createdBy') or '').strip()
    if not note:
        return jsonify({'error': 'Note is required'}), 400
    if not created_by:
        return jsonify({'error': 'createdBy is required'}), 400

    session = get_session()
    try:
        repo = Repository(session)
        if repo.get_by_id('leads', lead_id) is None:
            return jsonify({'error': 'Lead not found'}), 404
        lead_note = repo.create('lead_notes', LeadNote(lead_id=lead_id, note=note, created_by=created_by))
        return jsonify({'note': lead_note.to_dict()}), 201
    except Exception:
        session.rollback()
        logger.error("Failed to add note to lead %s", lead_id, exc_info=True)
        return jsonify({'error': 'Failed to add note'}), 500
    finally:
        session.close()


@bp.route('/<lead_id>', methods=['DELETE'])
def delete_lead(lead_id):
    """Delete a lead and its notes."""
    session = get_session()
    try:
        repo = Repository(session)
        for note in repo.get_by('lead_notes', 'lead_id', lead_id):
            repo.delete('lead_notes', note.id)
        if not repo.delete('leads', lead_id):
            return jsonify({'error': 'Lead not found'}), 404
        logger.info("Lead %s deleted", lead_id)
        return jsonify({'message': 'Lead deleted successfully'})
    except Exception:
        session.rollback()
        logger.error("Failed to delete lead %s", lead_id, exc_info=True)
        return jsonify({'error': 'Failed to delete lead'}), 500
    finally:
        session.close()
