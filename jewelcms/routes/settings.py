"""
Admin site settings — the key/value switches read by lead notifications
(enableSlackNotifications, enableWhatsappNotifications, leadNotificationWhatsapp).
"""
import logging

from flask import Blueprint, request, jsonify

from jewelcms.database import get_session
from jewelcms.models.site_setting import SETTING_TYPES, SiteSetting, serialize_setting
from jewelcms.services.repository import Repository

logger = logging.getLogger('routes.settings')

bp = Blueprint('settings', __name__, url_prefix='/api/admin/settings')


def _by_key(repo, key):
    rows = repo.get_by('site_settings', 'key', key)
    return rows[0] if rows else None


@bp.route('')
def list_settings():
    """All settings as a key → typed value object."""
    session = get_session()
    try:
        settings = {}
        for setting in Repository(session).get_all('site_settings'):
            try:
                settings[setting.key] = setting.typed_value()
            except ValueError:
                logger.warning("Setting %s is not a valid %s", setting.key, setting.type)
                settings[setting.key] = setting.value
        return jsonify({'settings': settings})
    except Exception:
        logger.error("Failed to fetch settings", exc_info=True)
        return jsonify({'error': 'Failed to fetch settings'}), 500
    finally:
        session.close()


@bp.route('/<key>')
def get_setting(key):
    session = get_session()
    try:
        setting = _by_key(Repository(session), key)
        if setting is None:
            return jsonify({'error': 'Setting not found'}), 404
        return jsonify(setting.to_dict())
    finally:
        session.close()


@bp.route('/<key>', methods=['PUT'])
def put_setting(key):
    """Create or replace a setting."""
    data = request.get_json(silent=True) or {}
    if 'value' not in data or data['value'] is None:
        return jsonify({'error': 'Value is required'}), 400
    setting_type = data.get('type') or 'string'
    if setting_type not in SETTING_TYPES:
        return jsonify({'error': f"Invalid type '{setting_type}'"}), 400
    text = serialize_setting(data['value'], setting_type)

    session = get_session()
    try:
        repo = Repository(session)
        setting = _by_key(repo, key)
        if setting is None:
            repo.create('site_settings', SiteSetting(key=key, value=text, type=setting_type))
        else:
            repo.update('site_settings', setting.id, {'value': text, 'type': setting_type})
        logger.info("Setting %s updated", key)
        return jsonify({'key': key, 'value': data['value'], 'type': setting_type})
    except Exception:
        session.rollback()
        logger.error("Failed to update setting %s", key, exc_info=True)
        return jsonify({'error': 'Failed to update setting'}), 500
    finally:
        session.close()


@bp.route('/<key>', methods=['DELETE'])
def delete_setting(key):
    session = get_session()
    try:
        repo = Repository(session)
        setting = _by_key(repo, key)
        if setting is None:
            return jsonify({'error': 'Setting not found'}), 404
        repo.delete('site_settings', setting.id)
        return jsonify({'message': 'Setting deleted successfully'})
    except Exception:
        session.rollback()
        logger.error("Failed to delete setting %s", key, exc_info=True)
        return jsonify({'error': 'Failed to delete setting'}), 500
    finally:
        session.close()
