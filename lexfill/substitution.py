# substitution.py
"""
Split-run-safe token replacement on raw part XML.

Word often splits what the reader sees as one token ("Company Name") across
several runs, e.g. `Company</w:t></w:r><w:r><w:rPr><w:b/></w:rPr><w:t> Name`.
`substitute` first looks for the token verbatim; only if that finds nothing
does it retry with a pattern that tolerates inline markup between the token's
characters. Either way only the selected occurrence is rewritten and every
byte outside its span is left alone.

Public:
    substitute(xml_text, token, value, occurrence=1) -> str
"""
import re
import logging
from typing import Optional, Pattern, Tuple
from xml.sax.saxutils import escape

logger = logging.getLogger(__name__)

# Any tag except paragraph boundaries; a match never spans two paragraphs.
INLINE_TAGS = r"(?:<(?!/?w:p[\s>/])[^<>]*>)*"

# Entities stay atomic so markup is never allowed inside "&amp;".
_ATOM_RE = re.compile(r"&[#\w]+;|\s+|.", re.S)


def literal_pattern(token: str) -> Pattern:
    return re.compile(re.escape(token))


def run_agnostic_pattern(token: str) -> Pattern:
    """Match `token` allowing inline tags between its characters (not before or after)."""
    pieces = []
    for atom in _ATOM_RE.findall(token):
        if atom.isspace():
            pieces.append(r"\s+")
        else:
            pieces.append(re.escape(atom))
    return re.compile(INLINE_TAGS.join(pieces))


def replace_nth(pattern: Pattern, text: str, value: str, occurrence: Optional[int]) -> Tuple[str, int]:
    """
    Replace the `occurrence`-th (1-based) non-overlapping match of `pattern`.
    occurrence=None replaces every match. Returns (new_text, match_count);
    an out-of-range occurrence leaves the text unchanged.
    """
    matches = list(pattern.finditer(text))
    if not matches:
        return text, 0
    if occurrence is None:
        return pattern.sub(lambda _m: value, text), len(matches)
    if 1 <= occurrence <= len(matches):
        m = matches[occurrence - 1]
        return text[: m.start()] + value + text[m.end():], len(matches)
    return text, len(matches)


def substitute(
    xml_text: str,
    token: str,
    value: Optional[str],
    occurrence: Optional[int] = 1,
    xml_escape: bool = True,
) -> str:
    """
    Replace one occurrence of `token` inside `xml_text` with `value`.

    - occurrence: 1-based ordinal among matches; None fills every match.
    - value None is treated as "" (blank fill), never as "skip".
    - xml_escape: escape &, <, > in token and value before touching markup.
      Pass False when working on plain text.

    An unmatched token is a no-op: the input comes back unchanged.
    """
    if not token:
        return xml_text
    value = "" if value is None else str(value)
    if xml_escape:
        token = escape(token)
        value = escape(value)

    out, count = replace_nth(literal_pattern(token), xml_text, value, occurrence)
    if count:
        return out

    out, count = replace_nth(run_agnostic_pattern(token), xml_text, value, occurrence)
    if not count:
        logger.debug("Token %r not present; leaving part unchanged", token)
    return out
