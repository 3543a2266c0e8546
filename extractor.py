"""
Campaign code extraction for TrueMoney gift links.

Links show up in several historical shapes:
    https://gift.truemoney.com/campaign/?v=CODE
    https://gift.truemoney.com/compaign?v=CODE          (misspelled, still live)
    https://gift.truemoney.com/campaign/vouchers/CODE/redeem
    vouchers/CODE, or just the bare CODE

Each strategy takes the stripped link and returns a code or None.
They are tried in order and the first non-empty result wins.
"""

import re
from urllib.parse import urlparse, parse_qs, quote, unquote

DEFAULT_BASE_URL = "https://gift.truemoney.com"

RESERVED_SEGMENT = re.compile(r"redeem|vouchers|campaign|compaign", re.IGNORECASE)
QUERY_CODE = re.compile(r"[?&]v=([^&/\s]+)", re.IGNORECASE)
VOUCHERS_CODE = re.compile(r"vouchers/([^/\s]+)", re.IGNORECASE)

KNOWN_PREFIXES = (
    "https://gift.truemoney.com/compaign?v=",
    "https://gift.truemoney.com/campaign?v=",
    "https://gift.truemoney.com/campaign/vouchers/",
    "https://gift.truemoney.com/compaign/vouchers/",
)
REDEEM_SUFFIX = "/redeem"


def _parse_url(link):
    try:
        parsed = urlparse(link)
    except ValueError:
        # e.g. an unbalanced "[" in the host; fall through to the regex strategies
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    return parsed


def _path_segments(parsed):
    # split before unquoting so an encoded "/" stays inside its segment
    return [seg for seg in parsed.path.split("/") if seg]


def from_query_param(link):
    parsed = _parse_url(link)
    if parsed is None:
        return None
    values = parse_qs(parsed.query).get("v")
    if values and values[0]:
        return values[0]
    return None


def from_vouchers_segment(link):
    parsed = _parse_url(link)
    if parsed is None:
        return None
    segments = _path_segments(parsed)
    for i, seg in enumerate(segments[:-1]):
        if seg.lower() == "vouchers":
            return unquote(segments[i + 1])
    return None


def from_last_segment(link):
    parsed = _parse_url(link)
    if parsed is None:
        return None
    segments = _path_segments(parsed)
    if not segments:
        return None
    last = unquote(segments[-1])
    if RESERVED_SEGMENT.search(last):
        return None
    return last


def from_query_regex(link):
    match = QUERY_CODE.search(link)
    return match.group(1) if match else None


def from_vouchers_regex(link):
    match = VOUCHERS_CODE.search(link)
    return match.group(1) if match else None


def from_stripped_prefix(link):
    cleaned = link
    for prefix in KNOWN_PREFIXES:
        cleaned = cleaned.replace(prefix, "", 1)
    cleaned = cleaned.replace(REDEEM_SUFFIX, "", 1).strip()
    return cleaned or None


STRATEGIES = (
    from_query_param,
    from_vouchers_segment,
    from_last_segment,
    from_query_regex,
    from_vouchers_regex,
    from_stripped_prefix,
)


def extract_campaign_code(campaign_link):
    """Return the voucher code embedded in ``campaign_link`` or None."""
    if not isinstance(campaign_link, str):
        return None
    link = campaign_link.strip()
    if not link:
        return None

    for strategy in STRATEGIES:
        code = strategy(link)
        if code:
            return code
    return None


def build_redeem_url(campaign_code, base_url=DEFAULT_BASE_URL):
    """Upstream redeem endpoint for a code, with the code percent-encoded."""
    return f"{base_url.rstrip('/')}/campaign/vouchers/{quote(campaign_code, safe='')}/redeem"
