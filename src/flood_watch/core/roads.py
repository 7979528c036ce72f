"""Road name normalisation shared by correlation and incident filtering."""

import re

_ROAD_CODE = re.compile(r"^([MAB]\d+[A-Z]?)(?![\dA-Z])", re.IGNORECASE)
_JUNCTION_SUFFIX = re.compile(r"\s+J\d+(?:\s*-\s*J\d+)?$", re.IGNORECASE)


def extract_base_road(road: str) -> str:
    """Reduce a road or key-route label to its base road code.

    "M5 J23" -> "M5", "M5 J23-J24" -> "M5", "A361 East Lyng" -> "A361".
    Labels without a recognisable road code keep their text minus any
    junction suffix, upper-cased.
    """
    text = (road or "").strip()
    if not text:
        return ""
    match = _ROAD_CODE.match(text)
    if match:
        return match.group(1).upper()
    return _JUNCTION_SUFFIX.sub("", text).strip().upper()
