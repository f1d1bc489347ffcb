import html
import re
from typing import Final

PATTERN_STATUS_URL: Final[re.Pattern[str]] = re.compile(
    r"(?<![\w./-])(?:https?://)?(?:www\.|mobile\.)?"
    r"(?:twitter|x|fxtwitter|vxtwitter|fixupx|fixvx)\.com"
    r"/(?:[A-Za-z0-9_]{1,15}|i(?:/web)?)/status(?:es)?/(\d{1,20})",
    re.IGNORECASE,
)
PATTERN_TRAILING_TCO: Final[re.Pattern[str]] = re.compile(r"(?:\s*https://t\.co/[A-Za-z0-9]+)+\s*$")


def extract_post_ids(text: str) -> list[int]:
    """Returns status ids of every tweet link in the text, in order, without duplicates."""
    seen: set[int] = set()
    ids: list[int] = []
    for match in PATTERN_STATUS_URL.finditer(text or ""):
        post_id = int(match.group(1))
        if post_id not in seen:
            seen.add(post_id)
            ids.append(post_id)
    return ids


def strip_media_links(text: str) -> str:
    """Removes the t.co links Twitter appends for attached media."""
    return PATTERN_TRAILING_TCO.sub("", text)


def build_caption(name: str, username: str, text: str, has_media: bool) -> str:
    """Builds an HTML caption: bold author line, blank line, tweet text."""
    body = strip_media_links(text) if has_media else text
    # API text arrives with &amp; &lt; &gt; already escaped.
    body = html.escape(html.unescape(body).strip(), quote=False)
    header = f"<b>{html.escape(name, quote=False)}</b>"
    if username:
        header += f" (@{html.escape(username, quote=False)})"
    return f"{header}\n\n{body}" if body else header
