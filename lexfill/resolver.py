# resolver.py
"""
Turn collected answers ({name: value}) into concrete replacement jobs.

Placeholder.name joins answers to placeholders; Placeholder.original is the
literal that will be searched for inside the document parts. When several
placeholders share one literal ("By:" twice -> by_1, by_2) each job carries the
ordinal of the occurrence it targets.
"""
import re
import logging
from enum import Enum
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

from .models import Placeholder

logger = logging.getLogger(__name__)

_SUFFIX_RE = re.compile(r"_(\d+)$")


class FillMode(str, Enum):
    """How an answer fills a literal that no other placeholder shares."""
    FIRST = "first"  # only the first occurrence in each part
    ALL = "all"      # every occurrence


@dataclass(frozen=True)
class ResolvedFill:
    name: str
    value: str
    original_text: str
    occurrence_index: Optional[int]  # None: every occurrence
    position: int


def occurrence_suffix(name: str) -> Optional[int]:
    m = _SUFFIX_RE.search(name)
    return int(m.group(1)) if m else None


def _id_order(p: Placeholder) -> int:
    return int(p.id) if p.id.isdigit() else 0


def resolve(
    filled_values: Mapping[str, Optional[str]],
    placeholders: Iterable[Placeholder],
    fill_mode: FillMode = FillMode.FIRST,
) -> List[ResolvedFill]:
    """
    Build one job per answered placeholder, highest document position first.

    Occurrence index:
      - literal shared by several placeholders: the trailing `_<n>` of the name,
        else the placeholder's rank by position among its siblings
      - literal owned by one placeholder: 1, or None (all) under FillMode.ALL;
        a trailing number there is part of the label (e.g. "[Section 2]")

    Answers with no matching placeholder are dropped. None values become "".
    """
    placeholders = list(placeholders)
    by_name = {p.name: p for p in placeholders}
    siblings: Dict[str, List[Placeholder]] = defaultdict(list)
    for p in placeholders:
        siblings[p.original].append(p)

    jobs: List[ResolvedFill] = []
    for name, value in filled_values.items():
        ph = by_name.get(name)
        if ph is None:
            logger.debug("No placeholder named %r; ignoring value", name)
            continue

        group = siblings[ph.original]
        if len(group) > 1:
            idx = occurrence_suffix(name)
            if idx is None:
                ranked = sorted(group, key=lambda p: (p.position, _id_order(p)))
                idx = ranked.index(ph) + 1
        else:
            idx = None if fill_mode == FillMode.ALL else 1

        jobs.append(ResolvedFill(
            name=name,
            value="" if value is None else str(value),
            original_text=ph.original,
            occurrence_index=idx,
            position=ph.position,
        ))

    # Rightmost first: filling a later occurrence never renumbers earlier ones.
    jobs.sort(key=lambda j: (j.position, j.occurrence_index or 0), reverse=True)
    return jobs
