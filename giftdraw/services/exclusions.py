from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, Optional, Sequence, Set, Tuple, Union

from giftdraw.services.domain import ExclusionPair, ParticipantId
from giftdraw.services.errors import InfeasibleConstraintsError, ValidationError

PairLike = Union[ExclusionPair, Sequence[ParticipantId]]


def _as_pair(item: PairLike) -> ExclusionPair:
    if isinstance(item, ExclusionPair):
        return item
    try:
        a, b = item
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Exclusion must be a pair of participant ids, got {item!r}.") from exc
    return ExclusionPair(a, b)


def _check_participant_ids(participant_ids: Sequence[ParticipantId]) -> None:
    seen: Set[ParticipantId] = set()
    for participant_id in participant_ids:
        if participant_id in seen:
            raise ValidationError(f"Participant id {participant_id!r} appears more than once.")
        seen.add(participant_id)


def normalize_exclusions(
    participant_ids: Sequence[ParticipantId],
    exclusions: Optional[Iterable[PairLike]],
) -> Tuple[ExclusionPair, ...]:
    """
    Returns the canonical exclusion set for ``participant_ids``.

    Each pair is oriented so that ``a`` comes first in ``participant_ids`` and
    the pairs are ordered by (a, b) position. Duplicates and reversed copies
    collapse into one pair.
    """
    position = {participant_id: index for index, participant_id in enumerate(participant_ids)}
    canonical: Dict[FrozenSet[ParticipantId], ExclusionPair] = {}

    for item in exclusions or ():
        pair = _as_pair(item)
        if pair.a == pair.b:
            raise ValidationError(f"Participant {pair.a!r} cannot be excluded from themselves.")
        for participant_id in (pair.a, pair.b):
            if participant_id not in position:
                raise ValidationError(
                    f"Exclusion ({pair.a!r}, {pair.b!r}) references unknown participant {participant_id!r}."
                )
        if pair.key in canonical:
            continue
        a, b = sorted((pair.a, pair.b), key=position.__getitem__)
        canonical[pair.key] = ExclusionPair(a, b)

    return tuple(sorted(canonical.values(), key=lambda p: (position[p.a], position[p.b])))


def allowed_receivers(
    participant_ids: Sequence[ParticipantId],
    exclusions: Iterable[ExclusionPair],
) -> Dict[ParticipantId, Set[ParticipantId]]:
    allowed = {giver: set(participant_ids) - {giver} for giver in participant_ids}
    for pair in exclusions:
        allowed[pair.a].discard(pair.b)
        allowed[pair.b].discard(pair.a)
    return allowed


def validate_exclusions(
    participant_ids: Sequence[ParticipantId],
    exclusions: Optional[Iterable[PairLike]],
) -> Tuple[ExclusionPair, ...]:
    participant_ids = list(participant_ids)
    _check_participant_ids(participant_ids)
    pairs = normalize_exclusions(participant_ids, exclusions)

    allowed = allowed_receivers(participant_ids, pairs)
    stuck = [giver for giver in participant_ids if not allowed[giver]]
    if stuck:
        raise InfeasibleConstraintsError(
            "Exclusions leave no possible receiver for: "
            + ", ".join(repr(participant_id) for participant_id in stuck)
        )
    return pairs
