"""
Access-log line renderers.

Two template dialects are supported and may be mixed in one template:

- **Colon tokens** (``:method :url :status``) with bracketed header
  accessors ``:req[Name]`` and ``:res[Name]``. Missing values render as an
  empty string.
- **Percent directives** (``%h %l %u %t "%r" %>s %b``) from the Apache
  common/combined log formats. Missing values render as ``-``.

Templates are split by ``tokenize`` so each segment holds at most one
directive, at its start. Unknown directives are kept verbatim.

When no template is configured, ``render_fallback`` builds a fixed
common-log line directly.
"""

import re
from datetime import datetime
from email.utils import formatdate
from typing import Any, Callable

from accesslog.engine.tokenizer import tokenize
from accesslog.models.context import RequestContext, ResponseContext

Resolver = Callable[[RequestContext, ResponseContext], Any]

_MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


# ── Value helpers ──────────────────────────────────────────────────────

def http_date() -> str:
    """Current time as an RFC 7231 HTTP-date, e.g. ``Mon, 19 Oct 2026 10:00:00 GMT``."""
    return formatdate(usegmt=True)


def clf_date(when: datetime | None = None) -> str:
    """Common-log timestamp, e.g. ``[19/Oct/2026:10:00:00 +0200]``."""
    when = when or datetime.now().astimezone()
    return "[{:02d}/{}/{:04d}:{:02d}:{:02d}:{:02d} {}]".format(
        when.day,
        _MONTHS[when.month - 1],
        when.year,
        when.hour,
        when.minute,
        when.second,
        when.strftime("%z"),
    )


def _or_dash(value: Any) -> str:
    """Percent-dialect placeholder for missing or falsy values."""
    return str(value) if value else "-"


def _or_empty(value: Any) -> str:
    return "" if value is None else str(value)


# ── Colon dialect ──────────────────────────────────────────────────────

COLON_TOKENS: dict[str, Resolver] = {
    "url": lambda req, res: req.url,
    "method": lambda req, res: req.method,
    "status": lambda req, res: res.status_code,
    "response-time": lambda req, res: res.response_time,
    "date": lambda req, res: http_date(),
    "referrer": lambda req, res: req.referrer,
    "http-version": lambda req, res: req.http_version,
    "remote-addr": lambda req, res: req.remote_addr,
    "user-agent": lambda req, res: req.user_agent,
}

_COLON_PATTERN = re.compile(
    r":(?:(?P<source>req|res)\[(?P<field>[^\]]+)\]|(?P<name>{}))".format(
        "|".join(
            re.escape(name) for name in sorted(COLON_TOKENS, key=len, reverse=True)
        )
    )
)


def render_colon(segment: str, req: RequestContext, res: ResponseContext) -> str:
    """Substitute the colon token at the start of ``segment``."""
    match = _COLON_PATTERN.match(segment)
    if match is None:
        return segment

    if match.group("name"):
        value = COLON_TOKENS[match.group("name")](req, res)
    elif match.group("source") == "req":
        value = req.headers.get(match.group("field"))
    else:
        value = res.header(match.group("field"))

    return _or_empty(value) + segment[match.end():]


# ── Percent dialect ────────────────────────────────────────────────────

def _request_line(req: RequestContext, res: ResponseContext) -> str:
    return "{} {} HTTP/{}".format(
        _or_dash(req.method), _or_dash(req.url), _or_dash(req.http_version)
    )


PERCENT_DIRECTIVES: dict[str, Resolver] = {
    # common log format
    "%h": lambda req, res: req.remote_addr,
    "%l": lambda req, res: "-",  # identd lookups are not attempted
    "%u": lambda req, res: req.username,
    "%t": lambda req, res: clf_date(),
    "%r": _request_line,
    "%>s": lambda req, res: res.status_code,
    "%b": lambda req, res: res.header("content-length"),
    # combined log format
    "%{Referer}i": lambda req, res: req.referrer,
    "%{User-agent}i": lambda req, res: req.user_agent,
}

_PERCENT_PATTERN = re.compile(
    "|".join(
        re.escape(name) for name in sorted(PERCENT_DIRECTIVES, key=len, reverse=True)
    )
)


def render_percent(segment: str, req: RequestContext, res: ResponseContext) -> str:
    """Substitute the percent directive at the start of ``segment``."""
    match = _PERCENT_PATTERN.match(segment)
    if match is None:
        return segment
    value = PERCENT_DIRECTIVES[match.group(0)](req, res)
    return _or_dash(value) + segment[match.end():]


# ── Templates ──────────────────────────────────────────────────────────

_DIALECTS = {
    ":": render_colon,
    "%": render_percent,
}


def render(template: str, req: RequestContext, res: ResponseContext) -> str:
    """Render a full template, dispatching each segment on its first character."""
    parts = []
    for segment in tokenize(template):
        # Literal text between directives is kept, not dropped
        renderer = _DIALECTS.get(segment[:1])
        parts.append(renderer(segment, req, res) if renderer else segment)
    return "".join(parts)


def render_fallback(req: RequestContext, res: ResponseContext) -> str:
    """
    The fixed layout used when no format is configured::

        127.0.0.1 - - [Mon, 19 Oct 2026 10:00:00 GMT] "GET / HTTP/1.1" 200 2 "" "curl/8.0"
    """
    return '{} - - [{}] "{} {} HTTP/{}" {} {} "{}" "{}"'.format(
        _or_empty(req.remote_addr),
        http_date(),
        req.method,
        req.url,
        req.http_version,
        _or_empty(res.status_code),
        res.header("content-length") or "-",
        req.referrer or "",
        req.user_agent or "",
    )
