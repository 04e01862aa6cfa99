"""Labeled-section parsing of free-form model output.

Models are asked to answer in blocks such as::

    RESPONSE:
    ...
    NEXT STEPS:
    - first
    - second

A :class:`ParseSchema` declares which labels a tool expects and how each
block should be read. :func:`parse` is total: whatever the model returns,
every expected section comes back populated, either from the text or from
the supplied fallback.
"""

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Iterable, List, Literal, Mapping, Optional, Sequence, Tuple

from ..models import MarketShare, Recommendation, SectionValue, StructuredResponse

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITEMS = 3
DEFAULT_RATIONALE = "Strategic recommendation based on analysis"

_BULLET_RE = re.compile(r"^(?:[-•]\s*|\*\s+)")
_PRIORITY_RE = re.compile(r"Priority:\s*(High|Medium|Low)", re.IGNORECASE)
_RATIONALE_RE = re.compile(r"Rationale:\s*(.*?)\s*$", re.IGNORECASE)
_ACTION_TAIL_RE = re.compile(r"[\s\-–|,;]*(?:Priority|Rationale):.*$", re.IGNORECASE)
_SHARE_PREFIX_RE = re.compile(r"^(?:Leader|Challenger(?:\s+segment)?)\s*:\s*", re.IGNORECASE)


@dataclass(frozen=True)
class SectionSpec:
    """One expected block: result key, label token and how to read the body."""

    name: str
    label: str
    kind: Literal["text", "list"] = "text"
    primary: bool = False


@dataclass(frozen=True)
class ParseSchema:
    sections: Tuple[SectionSpec, ...]
    # Labels that only terminate other blocks (e.g. "COMPETITIVE ANALYSIS").
    boundary_labels: Tuple[str, ...] = ()
    max_items: int = DEFAULT_MAX_ITEMS

    @property
    def primary(self) -> Optional[SectionSpec]:
        for spec in self.sections:
            if spec.primary:
                return spec
        return None

    def with_max_items(self, max_items: int) -> "ParseSchema":
        return ParseSchema(self.sections, self.boundary_labels, max_items)


@lru_cache(maxsize=None)
def _label_pattern(label: str) -> "re.Pattern[str]":
    # Label at line start, tolerating markdown decoration: "**NEXT STEPS:**", "## Risks:".
    return re.compile(
        r"^[ \t>#*_]*" + re.escape(label) + r"[ \t*_]*:[ \t*_]*",
        re.IGNORECASE | re.MULTILINE,
    )


def _find_blocks(text: str, labels: Iterable[str]) -> Dict[str, str]:
    """Map each label (lower-cased) to the body of its first occurrence."""
    occurrences: List[Tuple[int, int, str]] = []
    for label in set(labels):
        for match in _label_pattern(label).finditer(text):
            occurrences.append((match.start(), match.end(), label.lower()))
    occurrences.sort()

    blocks: Dict[str, str] = {}
    for index, (_, body_start, key) in enumerate(occurrences):
        if key in blocks:
            continue
        body_end = len(text)
        for start, _, _ in occurrences[index + 1 :]:
            if start >= body_start:
                body_end = start
                break
        blocks[key] = text[body_start:body_end].strip()
    return blocks


def split_items(body: str, max_items: int = DEFAULT_MAX_ITEMS) -> Tuple[str, ...]:
    """Split a block into list items, one per non-empty line, bullets stripped."""
    items: List[str] = []
    for line in body.splitlines():
        item = _BULLET_RE.sub("", line.strip()).strip()
        if item:
            items.append(item)
        if len(items) >= max_items:
            break
    return tuple(items)


def _fallback_for(spec: SectionSpec, fallbacks: Mapping[str, SectionValue]) -> SectionValue:
    value = fallbacks.get(spec.name)
    if value is None:
        return "" if spec.kind == "text" else ()
    if spec.kind == "list" and not isinstance(value, str):
        return tuple(value)
    return value


def parse(
    raw_text: str,
    expected_sections: Sequence[SectionSpec],
    fallbacks: Mapping[str, SectionValue],
    boundary_labels: Sequence[str] = (),
    max_items: int = DEFAULT_MAX_ITEMS,
) -> StructuredResponse:
    """Build a StructuredResponse with every expected section populated.

    A section whose label is missing, or whose body is empty, takes its
    fallback verbatim. The primary section instead falls back to the whole
    raw text, and only to its fallback when the raw text is blank. Never
    raises for string input.
    """
    text = raw_text or ""
    labels = [spec.label for spec in expected_sections] + list(boundary_labels)
    blocks = _find_blocks(text, labels)

    primary_text: Optional[str] = None
    sections: Dict[str, SectionValue] = {}
    for spec in expected_sections:
        body = blocks.get(spec.label.lower(), "")
        value: SectionValue
        if spec.kind == "list":
            value = split_items(body, max_items) if body else ()
        else:
            value = body

        if not value:
            if spec.primary and text.strip():
                value = text.strip()
            else:
                value = _fallback_for(spec, fallbacks)
                logger.debug("Section %s not found; using fallback", spec.name)

        if spec.primary:
            primary_text = value if isinstance(value, str) else "\n".join(value)
        else:
            sections[spec.name] = value

    if primary_text is None:
        primary_text = text.strip()
    return StructuredResponse(primary_text=primary_text, sections=sections)


def parse_with_schema(
    raw_text: str,
    schema: ParseSchema,
    fallbacks: Mapping[str, SectionValue],
) -> StructuredResponse:
    return parse(
        raw_text,
        schema.sections,
        fallbacks,
        boundary_labels=schema.boundary_labels,
        max_items=schema.max_items,
    )


def parse_recommendation(item: str) -> Recommendation:
    """Read "Action - Priority: High - Rationale: why" into a Recommendation."""
    priority_match = _PRIORITY_RE.search(item)
    rationale_match = _RATIONALE_RE.search(item)
    action = _ACTION_TAIL_RE.sub("", item).strip()

    priority = "medium"
    if priority_match:
        priority = priority_match.group(1).lower()

    rationale = DEFAULT_RATIONALE
    if rationale_match and rationale_match.group(1):
        rationale = rationale_match.group(1)

    return Recommendation(
        action=action or item.strip(),
        priority=priority,
        rationale=rationale,
    )


def parse_market_share(items: Sequence[str], fallback: MarketShare) -> MarketShare:
    """First line is the leader, second the challenger segment."""
    leader = _SHARE_PREFIX_RE.sub("", items[0]).strip() if len(items) > 0 else ""
    challenger = _SHARE_PREFIX_RE.sub("", items[1]).strip() if len(items) > 1 else ""
    return MarketShare(
        leader=leader or fallback.leader,
        challenger_segment=challenger or fallback.challenger_segment,
    )
