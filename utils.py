import mimetypes
import re
from datetime import timedelta

_DURATION_UNITS = {
    'ms': timedelta(milliseconds=1),
    's': timedelta(seconds=1),
    'm': timedelta(minutes=1),
    'h': timedelta(hours=1),
    'd': timedelta(days=1),
    'w': timedelta(weeks=1),
}
_DURATION_RE = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h|d|w)?\s*$', re.IGNORECASE)


def parse_duration(value) -> timedelta:
    """Parse ``"30d"``, ``"12h"``, ``"45m"`` or plain seconds into a timedelta."""
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)):
        duration = timedelta(seconds=value)
    else:
        match = _DURATION_RE.match(str(value))
        if not match:
            raise ValueError(f'invalid duration: {value!r}')
        amount, unit = match.groups()
        duration = float(amount) * _DURATION_UNITS[(unit or 's').lower()]
    if duration <= timedelta(0):
        raise ValueError(f'duration must be positive: {value!r}')
    return duration


def media_type(filename: str) -> str:
    """Media type guessed from the file extension."""
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or 'application/octet-stream'
