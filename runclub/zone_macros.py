#!/usr/bin/env python3
"""
Speed-zone shortcuts in workout text.

The coach types "z1".."z5" followed by a space and it becomes the athlete's
own pace for that zone:

    "corra 3km em z2 hoje"  ->  "corra 3km em 5:30/km hoje"

Expansion is a single pass over the input. Output is never fed back through
the expander, so a pace string that itself looks like a shortcut stays as is.
"""

import re
from typing import Dict, Mapping, Union

from .models import SpeedZones

# Word-start "z", zone digit, then the whitespace that ends the shortcut
ZONE_MACRO_PATTERN = re.compile(r'\bz([1-5])(\s)', re.IGNORECASE)

ZonesLike = Union[SpeedZones, Mapping[str, str], None]


def _zone_lookup(speed_zones: ZonesLike) -> Dict[str, str]:
    if speed_zones is None:
        return {}
    if isinstance(speed_zones, SpeedZones):
        return speed_zones.to_dict()
    return {str(k).lower(): v for k, v in speed_zones.items()}


def expand_zone_macros(text: str, speed_zones: ZonesLike = None) -> str:
    """
    Replace zone shortcuts with pace strings.

    A shortcut whose zone is missing or blank is left untouched. The trailing
    whitespace of each shortcut is kept.

    Args:
        text: Free text typed by the coach
        speed_zones: SpeedZones or a {'z1': '6:10/km', ...} mapping

    Returns:
        New string; the input is returned unchanged when there are no zones
    """
    if not text or not speed_zones:
        return text

    paces = _zone_lookup(speed_zones)

    def replace(match):
        pace = paces.get(f"z{match.group(1)}")
        if pace and pace.strip():
            return f"{pace}{match.group(2)}"
        return match.group(0)

    return ZONE_MACRO_PATTERN.sub(replace, text)
