"""
Business settings.

Values editable at runtime live in SystemSetting; Django settings
(from the environment through python-decouple) are the fallback.
"""

from decimal import Decimal

from django.conf import settings

from infrastructure.persistence.models import SystemSetting


APPROVAL_THRESHOLD_KEY = 'md_approval_threshold'
GST_RATE_KEY = 'gst_rate'
COMPANY_KEY = 'company'


def _setting(key, fallback):
    value = SystemSetting.get_value(key)
    if isinstance(value, dict) and 'value' in value:
        value = value['value']
    if value in (None, '', {}):
        return fallback
    return value


def approval_threshold():
    return Decimal(str(_setting(APPROVAL_THRESHOLD_KEY, settings.MD_APPROVAL_THRESHOLD)))


def gst_rate():
    return Decimal(str(_setting(GST_RATE_KEY, settings.GST_RATE)))


def company():
    details = dict(settings.COMPANY)
    stored = SystemSetting.get_value(COMPANY_KEY)
    if isinstance(stored, dict):
        details.update({k: v for k, v in stored.items() if v})
    return details


def default_settings():
    """Rows created by init_system."""
    return [
        (APPROVAL_THRESHOLD_KEY, {'value': str(settings.MD_APPROVAL_THRESHOLD)},
         'Purchase orders at or above this total need MD approval'),
        (GST_RATE_KEY, {'value': str(settings.GST_RATE)}, 'Default GST rate in percent'),
        (COMPANY_KEY, dict(settings.COMPANY), 'Consignor details printed on delivery challans'),
    ]
