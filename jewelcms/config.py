"""
Centralized configuration — all env vars and notification setting keys.
"""
import os


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── Redis ─────────────────────────────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── Database ──────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')

# ── Auth ─────────────────────────────────────────────────────────────────────
SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-change-me')
ADMIN_PASSWORD = os.getenv('ADMIN_PASSWORD')

# ── Slack notifications ──────────────────────────────────────────────────────
SLACK_WEBHOOK_URL = os.getenv('SLACK_WEBHOOK_URL')

# ── Twilio (WhatsApp notifications) ──────────────────────────────────────────
TWILIO_ACCOUNT_SID = os.getenv('TWILIO_ACCOUNT_SID')
TWILIO_AUTH_TOKEN = os.getenv('TWILIO_AUTH_TOKEN')
TWILIO_WHATSAPP_NUMBER = os.getenv('TWILIO_WHATSAPP_NUMBER')  # whatsapp:+14155238886
TWILIO_API_URL = 'https://api.twilio.com/2010-04-01'

# ── Admin dashboard ──────────────────────────────────────────────────────────
ADMIN_DASHBOARD_URL = os.getenv('ADMIN_DASHBOARD_URL', 'http://localhost:5174')

# ── Site setting keys (stored in the site_settings table) ────────────────────
SETTING_SLACK_ENABLED = 'enableSlackNotifications'
SETTING_WHATSAPP_ENABLED = 'enableWhatsappNotifications'
SETTING_WHATSAPP_TO = 'leadNotificationWhatsapp'

# ── Admin lead listing ───────────────────────────────────────────────────────
DEFAULT_PAGE_SIZE = 50
RECENT_LEADS_DAYS = 30
