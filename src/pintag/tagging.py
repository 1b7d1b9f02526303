"""Tag validation, pin coordinate mapping, and verified-tag consolidation.

Pins are stored as percentages of the rendered image so they survive any
display size. Date ("when") values are free text constrained by their type.
Consolidation merges several users' tags on one image into a single row
for review.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pintag.metadata import WHEN_TYPES

DEFAULT_PIN = (50.0, 50.0)

WHEN_TYPE_ALIASES = {
    "full": "full_date",
    "decade": "decades",
}

_FULL_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_YEAR_RE = re.compile(r"^(\d{4})$")
_MONTH_YEAR_RE = re.compile(r"^(\d{4})-(\d{2})$")
_DECADE_RE = re.compile(r"^(\d{3}0)s?$")


class WhenValueError(ValueError):
    """A when-value does not match its when-type."""


class PinCoordinateError(ValueError):
    """A pin lies outside the image or the image size is unusable."""


# ---------------------------------------------------------------------------
# When values
# ---------------------------------------------------------------------------

def normalize_when_type(when_type: Optional[str]) -> str:
    value = (when_type or "").strip().lower()
    value = WHEN_TYPE_ALIASES.get(value, value)
    if value not in WHEN_TYPES:
        raise WhenValueError(f"Unsupported when_type '{when_type}'.")
    return value


def validate_when_value(when_type: Optional[str], when_value: Optional[str]) -> Tuple[str, str]:
    """Validate and normalize a (when_type, when_value) pair.

    Returns the canonical pair. Decades are normalized to ``1980s``.
    """
    kind = normalize_when_type(when_type)
    value = (when_value or "").strip()

    if kind == "":
        if value:
            raise WhenValueError("when_value requires a when_type.")
        return kind, value

    if not value:
        # A type with no value is allowed; the form may leave the date blank.
        return kind, value

    if kind == "full_date":
        match = _FULL_DATE_RE.match(value)
        if not match:
            raise WhenValueError("Full dates must use YYYY-MM-DD.")
        try:
            date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        except ValueError:
            raise WhenValueError(f"'{value}' is not a real date.")
        return kind, value

    if kind == "year":
        if not _YEAR_RE.match(value):
            raise WhenValueError("Years must use YYYY.")
        return kind, value

    if kind == "month_year":
        match = _MONTH_YEAR_RE.match(value)
        if not match or not 1 <= int(match.group(2)) <= 12:
            raise WhenValueError("Month-year values must use YYYY-MM.")
        return kind, value

    # decades
    match = _DECADE_RE.match(value)
    if not match:
        raise WhenValueError("Decades must look like 1980s.")
    return kind, f"{match.group(1)}s"


def validate_confidence(value: Any, field_name: str = "confidence") -> int:
    try:
        level = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field_name} must be an integer between 1 and 5.")
    if not 1 <= level <= 5:
        raise ValueError(f"{field_name} must be between 1 and 5.")
    return level


# ---------------------------------------------------------------------------
# Pin coordinates
# ---------------------------------------------------------------------------

def validate_pin(x: float, y: float) -> Tuple[float, float]:
    if x is None or y is None:
        raise PinCoordinateError("Pin coordinates require both x and y.")
    if not (0 <= x <= 100 and 0 <= y <= 100):
        raise PinCoordinateError("Pin coordinates must be between 0 and 100.")
    return float(x), float(y)


def pixel_to_percent(px: float, py: float, width: float, height: float) -> Tuple[float, float]:
    """Map a click position on a rendered image to percent coordinates.

    Positions outside the image are clamped to its edges.
    """
    if not width or not height or width <= 0 or height <= 0:
        raise PinCoordinateError("Rendered image size must be positive.")
    x = min(max(px / width * 100.0, 0.0), 100.0)
    y = min(max(py / height * 100.0, 0.0), 100.0)
    return round(x, 2), round(y, 2)


def percent_to_pixel(x: float, y: float, width: float, height: float) -> Tuple[float, float]:
    """Map stored percent coordinates back onto a rendered image size."""
    validate_pin(x, y)
    if width < 0 or height < 0:
        raise PinCoordinateError("Rendered image size must not be negative.")
    return x / 100.0 * width, y / 100.0 * height


def resolve_pin(
    x: Optional[float] = None,
    y: Optional[float] = None,
    px: Optional[float] = None,
    py: Optional[float] = None,
    rendered_width: Optional[float] = None,
    rendered_height: Optional[float] = None,
) -> Tuple[float, float]:
    """Resolve a pin from percent or pixel input, defaulting to the centre."""
    if px is not None or py is not None:
        if px is None or py is None:
            raise PinCoordinateError("Pixel pins require both px and py.")
        return pixel_to_percent(px, py, rendered_width or 0, rendered_height or 0)
    if x is None and y is None:
        return DEFAULT_PIN
    return validate_pin(x, y)


# ---------------------------------------------------------------------------
# Consolidation
# ---------------------------------------------------------------------------

@dataclass
class ConsolidatedTag:
    """All verified metadata for one image merged across tags."""

    image: Any
    status: str
    tag_ids: List[int] = field(default_factory=list)
    persons: set = field(default_factory=set)
    locations: set = field(default_factory=set)
    occasions: set = field(default_factory=set)
    when_types: set = field(default_factory=set)
    when_values: set = field(default_factory=set)
    contexts: set = field(default_factory=set)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tag_ids": list(self.tag_ids),
            "status": self.status,
            "persons": sorted(self.persons),
            "locations": sorted(self.locations),
            "occasions": sorted(self.occasions),
            "when_types": sorted(self.when_types),
            "when_values": sorted(self.when_values),
            "contexts": sorted(self.contexts),
        }


def consolidate_tags(tags: Iterable[Any]) -> List[ConsolidatedTag]:
    """Group tags by image, merging their values into sets.

    Images appear in the order their first tag was seen.
    """
    consolidated: Dict[int, ConsolidatedTag] = {}
    for tag in tags:
        entry = consolidated.get(tag.image_id)
        if entry is None:
            entry = ConsolidatedTag(image=tag.image, status=tag.status or "Verified")
            consolidated[tag.image_id] = entry

        entry.tag_ids.append(tag.id)
        for person_tag in tag.person_tags or []:
            if person_tag.person is not None:
                entry.persons.add(person_tag.person.name)
        if tag.location is not None:
            entry.locations.add(tag.location.name)
        if tag.occasion is not None:
            entry.occasions.add(tag.occasion.name)
        if tag.when_type:
            entry.when_types.add(tag.when_type)
        if tag.when_value:
            entry.when_values.add(tag.when_value)
        if tag.context:
            entry.contexts.add(tag.context)

    return list(consolidated.values())


def summarize_verified(tags: List[Any]) -> Dict[str, Any]:
    """Summarize an image's verified tags (expects newest first).

    People are unique across all tags; location, occasion and date come from
    the most recent tag that sets them; every context is kept.
    """
    people: Dict[int, Dict[str, Any]] = {}
    for tag in tags:
        for person_tag in tag.person_tags or []:
            person = person_tag.person
            if person is not None and person.id not in people:
                people[person.id] = {"id": person.id, "name": person.name}

    latest_location = next((t.location for t in tags if t.location is not None), None)
    latest_occasion = next((t.occasion for t in tags if t.occasion is not None), None)
    latest_when = next((t for t in tags if t.when_type and t.when_value), None)

    return {
        "tag_count": len(tags),
        "people": list(people.values()),
        "location": {"id": latest_location.id, "name": latest_location.name} if latest_location else None,
        "occasion": {"id": latest_occasion.id, "name": latest_occasion.name} if latest_occasion else None,
        "when": {"type": latest_when.when_type, "value": latest_when.when_value} if latest_when else None,
        "contexts": [
            {
                "tag_id": t.id,
                "context": t.context,
                "created_at": t.created_at.isoformat() if t.created_at else None,
            }
            for t in tags
            if t.context
        ],
    }
