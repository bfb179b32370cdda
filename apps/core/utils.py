"""
Small helpers shared by the CRM apps
"""

import calendar
import re
from datetime import date


def clean_phone_number(phone):
    """
    Keep digits and a leading '+'

    '+33 1.23-45-67-89' -> '+33123456789'. Returns None for empty input.
    """
    if phone is None:
        return None
    phone = str(phone).strip()
    if not phone:
        return None
    prefix = '+' if phone.startswith('+') else ''
    digits = re.sub(r'\D', '', phone)
    return f"{prefix}{digits}" if digits else None


def hex_to_hsl(hex_color):
    """
    '#3B82F6' -> '217 91% 60%' (CSS custom property format)

    Returns None when the value is not a #RRGGBB colour.
    """
    if not hex_color or not re.match(r'^#[0-9a-fA-F]{6}$', str(hex_color)):
        return None

    r, g, b = (int(hex_color[i:i + 2], 16) / 255 for i in (1, 3, 5))
    high, low = max(r, g, b), min(r, g, b)
    lightness = (high + low) / 2

    if high == low:
        hue = saturation = 0.0
    else:
        delta = high - low
        saturation = delta / (2 - high - low) if lightness > 0.5 else delta / (high + low)
        if high == r:
            hue = (g - b) / delta + (6 if g < b else 0)
        elif high == g:
            hue = (b - r) / delta + 2
        else:
            hue = (r - g) / delta + 4
        hue /= 6

    return f"{round(hue * 360)} {round(saturation * 100)}% {round(lightness * 100)}%"


def clean_setting_value(value):
    """
    Normalise a value posted for a CRM setting

    None -> '', lists lose empty items, strings are stripped.
    """
    if value is None:
        return ''
    if isinstance(value, list):
        return [item.strip() if isinstance(item, str) else item for item in value if item not in (None, '')]
    if isinstance(value, str):
        return value.strip()
    return value


def parse_sort(value, allowed, default):
    """
    '-name' -> '-name' if 'name' is allowed, else default

    Used by list endpoints accepting ?sort=field / ?sort=-field.
    """
    if not value:
        return default
    field = value.lstrip('-')
    if field not in allowed:
        return default
    return value if not value.startswith('--') else default


def clamp_int(value, default, minimum, maximum):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return max(minimum, min(maximum, number))


def add_months(day, months):
    """date + n months, clamped to the last day of the target month (31/01 + 1 -> 28/02)."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return day.replace(year=year, month=month, day=min(day.day, calendar.monthrange(year, month)[1]))


def month_start(day):
    return date(day.year, day.month, 1)
