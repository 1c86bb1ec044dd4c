"""
Helper Functions
Utility functions used across the application
"""
from datetime import datetime, timezone
from functools import wraps
import random

from flask import session, jsonify
import pytz

from livequiz.constants import JOIN_CODE_ALPHABET, JOIN_CODE_LENGTH


def now_utc():
    """Get current UTC timestamp"""
    return datetime.now(timezone.utc)


def as_utc(dt):
    """
    Normalize a stored timestamp to an aware UTC datetime.
    SQLite hands back naive values even for timezone-aware columns.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def seconds_between(start, end):
    """Whole seconds from start to end, never negative"""
    if start is None or end is None:
        return 0
    return max(0, int((as_utc(end) - as_utc(start)).total_seconds()))


def to_local(utc_dt, tz_name="UTC"):
    """Convert UTC datetime to the configured timezone for display"""
    if not utc_dt:
        return None
    return as_utc(utc_dt).astimezone(pytz.timezone(tz_name))


def format_local(utc_dt, tz_name="UTC"):
    local = to_local(utc_dt, tz_name)
    return local.strftime("%d %b %Y, %H:%M:%S") if local else None


def format_clock(seconds):
    """Remaining-time display, M:SS"""
    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"


def format_elapsed(seconds):
    """Session stopwatch display, HH:MM:SS"""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def generate_join_code(length=JOIN_CODE_LENGTH, rng=random):
    """Generate random join code"""
    return "".join(rng.choices(JOIN_CODE_ALPHABET, k=length))


def get_current_proctor():
    """Proctor id stored in the signed session cookie, if any"""
    return session.get("proctor_id")


def require_proctor(f):
    """Decorator to require a signed-in proctor (JSON 401 otherwise)"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not get_current_proctor():
            return jsonify({"error": "Proctor sign-in required"}), 401
        return f(*args, **kwargs)
    return decorated_function
