# composer.py
import logging
from typing import Iterable, Mapping, Optional

from .docx_utils import Package
from .models import Placeholder
from .resolver import FillMode, resolve
from .substitution import substitute

logger = logging.getLogger(__name__)


def compose(
    package: Package,
    placeholders: Iterable[Placeholder],
    filled_values: Mapping[str, Optional[str]],
    fill_mode: FillMode = FillMode.FIRST,
) -> bytes:
    """
    Fill every answered placeholder in the body, headers and footers, then repack.
    Unanswered placeholders stay as written; parts with no hits are not rewritten.
    """
    jobs = resolve(filled_values, placeholders, fill_mode)
    for part in package.list_parts_matching():
        xml = part.read_text()
        if xml is None:
            continue
        new_xml = xml
        for job in jobs:
            new_xml = substitute(new_xml, job.original_text, job.value, job.occurrence_index)
        if new_xml != xml:
            part.write_text(new_xml)
            logger.debug("Rewrote %s", part.name)
    return package.serialize()


def fill_text(
    text: str,
    placeholders: Iterable[Placeholder],
    filled_values: Mapping[str, Optional[str]],
    fill_mode: FillMode = FillMode.FIRST,
) -> str:
    """Same fill over the flattened plain text, for previews."""
    for job in resolve(filled_values, placeholders, fill_mode):
        text = substitute(text, job.original_text, job.value, job.occurrence_index, xml_escape=False)
    return text
