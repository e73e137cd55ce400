import re

CONFERENCE_ID_PATTERN = re.compile(r"^[0-9]{5,15}$")


def check_conference_id_format(conference_id: str) -> bool:
    """Conference ids are numeric, 5 to 15 digits"""
    return bool(CONFERENCE_ID_PATTERN.match(conference_id or ""))
