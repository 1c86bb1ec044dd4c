"""
Utils Package
"""
from livequiz.utils.helpers import (
    now_utc,
    as_utc,
    seconds_between,
    to_local,
    format_local,
    format_clock,
    format_elapsed,
    generate_join_code,
    get_current_proctor,
    require_proctor
)

__all__ = [
    'now_utc',
    'as_utc',
    'seconds_between',
    'to_local',
    'format_local',
    'format_clock',
    'format_elapsed',
    'generate_join_code',
    'get_current_proctor',
    'require_proctor'
]
