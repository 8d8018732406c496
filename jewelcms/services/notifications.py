"""
Notifications — new-lead alerts to Slack and WhatsApp (Twilio).

Payloads are built from the lead's stored score; delivery goes through the
channel's circuit breaker. Notification failure never blocks lead creation.
"""
import logging

import requests

from jewelcms import config
from jewelcms.models.enums import LeadCategory, enum_value
from jewelcms.services.circuit_breaker import CircuitOpenError, get_breaker
from jewelcms.services.lead_scoring import category_of

logger = logging.getLogger('services.notifications')

CATEGORY_EMOJI = {
    LeadCategory.HOT: '🔥',
    LeadCategory.WARM: '⚡',
    LeadCategory.COLD: '❄️',
}


def build_lead_alert(lead):
    """
    Channel-neutral alert payload for a newly created lead.

    Returns: {category, headline, text, blocks}
      text   — WhatsApp-style plain body (Twilio renders *bold*)
      blocks — Slack Block Kit list
    """
    category = category_of(lead.score or 0)
    emoji = CATEGORY_EMOJI[category]
    headline = f"{category.value.upper()} - Score: {lead.score}/100"
    source = enum_value(lead.source)
    created = lead.created_at.strftime('%Y-%m-%d %H:%M') if lead.created_at else ''

    lines = [
        f"*💎 NEW LEAD ALERT! {emoji}*",
        "",
        f"*{headline}*",
        "",
        "*Contact Information:*",
        f"👤 Name: {lead.name}",
        f"📧 Email: {lead.email}",
    ]
    if lead.phone:
        lines.append(f"📱 Phone: {lead.phone}")
    lines.append(f"🎯 Source: {source}")
    if created:
        lines.append(f"🕐 Time: {created}")
    if lead.message:
        lines.extend(["", "*Message:*", lead.message])
    lines.extend(["", "---", f"View in dashboard: {config.ADMIN_DASHBOARD_URL}/leads"])

    fields = [
        {"type": "mrkdwn", "text": f"*Name:* {lead.name}"},
        {"type": "mrkdwn", "text": f"*Email:* {lead.email}"},
        {"type": "mrkdwn", "text": f"*Source:* {source}"},
        {"type": "mrkdwn", "text": f"*Score:* {lead.score}/100"},
    ]
    if lead.phone:
        fields.append({"type": "mrkdwn", "text": f"*Phone:* {lead.phone}"})

    blocks = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": f"{emoji} New {category.value}"},
        },
        {"type": "section", "fields": fields},
    ]
    if lead.message:
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": f"_{lead.message[:500]}_"},
        })
    blocks.append({
        "type": "context",
        "elements": [{"type": "mrkdwn", "text": f"<{config.ADMIN_DASHBOARD_URL}/leads|Open dashboard>"}],
    })

    return {
        'category': category.value,
        'headline': headline,
        'text': '\n'.join(lines),
        'blocks': blocks,
    }


def _setting_enabled(repo, key):
    return repo.get_setting(key) != 'false'


def _deliver(channel, func, *args, **kwargs):
    """Send through the channel's breaker; the response, or None on failure."""
    breaker = get_breaker(channel)
    try:
        if breaker is None:
            return func(*args, **kwargs)
        return breaker.call(func, *args, **kwargs)
    except CircuitOpenError as e:
        logger.warning("%s notification skipped: %s", channel, e)
    except requests.RequestException:
        logger.error("%s notification failed", channel, exc_info=True)
    return None


def _post(url, **kwargs):
    resp = requests.post(url, timeout=10, **kwargs)
    resp.raise_for_status()
    return resp


def send_slack_alert(alert):
    """Post the alert to the Slack incoming webhook."""
    if not config.SLACK_WEBHOOK_URL:
        return False
    resp = _deliver('slack', _post, config.SLACK_WEBHOOK_URL, json={"text": alert['headline'], "blocks": alert['blocks']})
    return resp is not None


def send_whatsapp_alert(alert, to_phone):
    """Send the alert body as a WhatsApp message via Twilio's Messages API."""
    if not (config.TWILIO_ACCOUNT_SID and config.TWILIO_AUTH_TOKEN and config.TWILIO_WHATSAPP_NUMBER):
        logger.info("WhatsApp notification skipped (Twilio not configured)")
        return False

    to = to_phone if to_phone.startswith('whatsapp:') else f'whatsapp:{to_phone}'
    url = f"{config.TWILIO_API_URL}/Accounts/{config.TWILIO_ACCOUNT_SID}/Messages.json"
    resp = _deliver(
        'twilio', _post, url,
        data={'From': config.TWILIO_WHATSAPP_NUMBER, 'To': to, 'Body': alert['text']},
        auth=(config.TWILIO_ACCOUNT_SID, config.TWILIO_AUTH_TOKEN),
    )
    return resp is not None


def send_lead_notifications(lead, repo):
    """
    Fan a new-lead alert out to every enabled channel.

    Channel switches come from site settings; a switch is on unless its value
    is the string 'false'. Returns {channel: delivered}.
    """
    alert = build_lead_alert(lead)
    results = {'slack': False, 'whatsapp': False}

    if _setting_enabled(repo, config.SETTING_SLACK_ENABLED):
        results['slack'] = send_slack_alert(alert)

    whatsapp_to = repo.get_setting(config.SETTING_WHATSAPP_TO)
    if whatsapp_to and _setting_enabled(repo, config.SETTING_WHATSAPP_ENABLED):
        results['whatsapp'] = send_whatsapp_alert(alert, whatsapp_to)

    if any(results.values()):
        logger.info("Lead %s notifications sent: %s", lead.id, results)
    return results
