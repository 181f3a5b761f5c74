"""
Valuation store.

Maintains a card's price-history log and derives its current value.
All functions are pure: they take the existing history and return a new
`ValuationResult` without touching storage.

Rules for the current value:
- The history is always sorted ascending by observation date. Sorting is
  stable, so entries sharing a timestamp keep insertion order.
- An observation "matches" the card when either side has no parallel or
  both parallels are equal.
- Appending only moves the current value when the new observation is the
  newest entry and matches. Backdated or other-parallel comps are history only.
- Deleting recomputes from the latest remaining matching entry. When nothing
  matching remains the previous current value is kept.
- Editing only moves the current value when the edited entry ends up newest
  and matches.
"""

import logging
from dataclasses import replace
from datetime import UTC, datetime

from prismcards.models.card import PriceObservation, ValuationResult

logger = logging.getLogger(__name__)


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    Accepts a trailing "Z", explicit offsets, naive timestamps (read as UTC)
    and bare dates. Malformed input raises ValueError.
    """
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def format_timestamp(moment: datetime) -> str:
    """Render as YYYY-MM-DDTHH:MM:SS.mmmZ."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    moment = moment.astimezone(UTC)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def normalize_timestamp(value: str | None) -> str:
    """Canonical timestamp for a client-supplied date, or now when absent."""
    if value is None:
        return format_timestamp(datetime.now(UTC))
    return format_timestamp(parse_timestamp(value))


def parallel_matches(card_parallel: str | None, observation_parallel: str | None) -> bool:
    """True if the observation prices the same parallel as the card."""
    if not card_parallel or not observation_parallel:
        return True
    return card_parallel == observation_parallel


def sort_history(history: list[PriceObservation]) -> list[PriceObservation]:
    """Stable ascending sort by observation date."""
    return sorted(history, key=lambda obs: parse_timestamp(obs.date))


def find_observation(history: list[PriceObservation], ref: str) -> int | None:
    """
    Locate an entry by its id, falling back to its exact date string.

    Returns the index of the first match, or None.
    """
    for index, obs in enumerate(history):
        if obs.id == ref:
            return index
    for index, obs in enumerate(history):
        if obs.date == ref:
            return index
    return None


def _is_newest(history: list[PriceObservation], observation: PriceObservation) -> bool:
    last = history[-1]
    return parse_timestamp(observation.date) >= parse_timestamp(last.date)


def append_observation(
    history: list[PriceObservation],
    current_value: float,
    card_parallel: str | None,
    observation: PriceObservation,
) -> ValuationResult:
    """Insert a new observation and decide whether it becomes the current value."""
    updated = sort_history([*history, observation])

    newest = _is_newest(updated, observation)
    matches = parallel_matches(card_parallel, observation.parallel)

    if newest and matches:
        logger.debug("Observation %s sets current value to %s", observation.id, observation.value)
        return ValuationResult(history=updated, current_value=observation.value)

    logger.debug(
        "Observation %s kept as history only (newest=%s, parallel_match=%s)",
        observation.id,
        newest,
        matches,
    )
    return ValuationResult(history=updated, current_value=current_value)


def delete_observation(
    history: list[PriceObservation],
    current_value: float,
    card_parallel: str | None,
    ref: str,
) -> ValuationResult | None:
    """
    Remove the entry identified by `ref` and recompute the current value.

    Returns None if no entry matched.
    """
    index = find_observation(history, ref)
    if index is None:
        return None

    remaining = [obs for i, obs in enumerate(history) if i != index]

    matching = [obs for obs in remaining if parallel_matches(card_parallel, obs.parallel)]
    if matching:
        current_value = matching[-1].value

    return ValuationResult(history=remaining, current_value=current_value)


def edit_observation(
    history: list[PriceObservation],
    current_value: float,
    card_parallel: str | None,
    ref: str,
    value: float,
    date: str | None = None,
    platform: str | None = None,
    parallel: str | None = None,
    grade: str | None = None,
    serial_number: str | None = None,
) -> ValuationResult | None:
    """
    Replace the entry identified by `ref` in place.

    Fields left as None keep their previous values. The current value is
    only recomputed when the edited entry is the newest matching one; an
    edit to an older entry leaves it untouched.

    Returns None if no entry matched.
    """
    index = find_observation(history, ref)
    if index is None:
        return None

    original = history[index]
    edited = replace(
        original,
        value=value,
        date=normalize_timestamp(date) if date is not None else original.date,
        platform=platform if platform is not None else original.platform,
        parallel=parallel if parallel is not None else original.parallel,
        grade=grade if grade is not None else original.grade,
        serial_number=serial_number if serial_number is not None else original.serial_number,
    )

    updated = list(history)
    updated[index] = edited
    if edited.date != original.date:
        updated = sort_history(updated)

    newest = parse_timestamp(edited.date) == parse_timestamp(updated[-1].date)
    if newest and parallel_matches(card_parallel, edited.parallel):
        current_value = edited.value

    return ValuationResult(history=updated, current_value=current_value)
