"""
Format template tokenizer.

Splits an access-log template into segments. Every segment after the first
starts at a directive sentinel (``:`` or ``%``), so each directive sits at
the very start of its segment and the text that follows it is literal.

Example::

    >>> tokenize(':method %>s ":url"')
    [':method ', '%>s "', ':url"']
"""

SENTINELS = (":", "%")


def _next_sentinel(template: str, start: int) -> int:
    """Index of the nearest sentinel strictly after ``start``, or -1."""
    found = [
        idx for idx in (template.find(s, start + 1) for s in SENTINELS)
        if idx != -1
    ]
    return min(found) if found else -1


def tokenize(template: str) -> list[str]:
    """
    Split ``template`` into literal and directive segments.

    The split is lossless: ``"".join(tokenize(t)) == t`` for any string,
    including the empty string (one empty segment) and a template ending
    in a sentinel (the sentinel becomes its own segment).
    """
    segments: list[str] = []
    start = 0
    while True:
        end = _next_sentinel(template, start)
        if end == -1:
            segments.append(template[start:])
            return segments
        segments.append(template[start:end])
        start = end
