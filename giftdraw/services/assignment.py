from __future__ import annotations

import random
from typing import Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Set

from loguru import logger

from giftdraw.services.domain import Assignment, ExclusionPair, Participant, ParticipantId
from giftdraw.services.errors import InfeasibleConstraintsError, ValidationError
from giftdraw.services.exclusions import PairLike, allowed_receivers, validate_exclusions

DEFAULT_MAX_ATTEMPTS = 1000


def is_valid_assignment(
    assignments: Mapping[ParticipantId, ParticipantId],
    participant_ids: Sequence[ParticipantId],
    exclusions: Iterable[ExclusionPair] = (),
) -> bool:
    if set(assignments.keys()) != set(participant_ids):
        return False
    if len(assignments) != len(participant_ids):
        return False
    if set(assignments.values()) != set(participant_ids):
        return False
    if any(giver == receiver for giver, receiver in assignments.items()):
        return False
    for pair in exclusions:
        if assignments.get(pair.a) == pair.b or assignments.get(pair.b) == pair.a:
            return False
    return True


def _random_attempts(
    participant_ids: Sequence[ParticipantId],
    exclusions: Sequence[ExclusionPair],
    rng: random.Random,
    max_attempts: int,
) -> Optional[Dict[ParticipantId, ParticipantId]]:
    receivers = list(participant_ids)
    for _ in range(max_attempts):
        rng.shuffle(receivers)
        candidate = dict(zip(participant_ids, receivers))
        if is_valid_assignment(candidate, participant_ids, exclusions):
            return candidate
    return None


def _backtrack_search(
    participant_ids: Sequence[ParticipantId],
    exclusions: Sequence[ExclusionPair],
) -> Optional[Dict[ParticipantId, ParticipantId]]:
    allowed = allowed_receivers(participant_ids, exclusions)
    # Fixed giver order, most constrained first; ties keep input order.
    givers = sorted(participant_ids, key=lambda giver: len(allowed[giver]))
    order = {participant_id: index for index, participant_id in enumerate(participant_ids)}
    options = {giver: sorted(allowed[giver], key=order.__getitem__) for giver in givers}

    assignments: Dict[ParticipantId, ParticipantId] = {}
    used: Set[ParticipantId] = set()

    def backtrack(depth: int) -> bool:
        if depth == len(givers):
            return True
        giver = givers[depth]
        for receiver in options[giver]:
            if receiver in used:
                continue
            assignments[giver] = receiver
            used.add(receiver)
            if backtrack(depth + 1):
                return True
            used.remove(receiver)
            del assignments[giver]
        return False

    if backtrack(0):
        return assignments
    return None


def generate_assignments(
    participants: Sequence[Participant],
    exclusions: Optional[Iterable[PairLike]] = None,
    seed: Optional[int] = None,
    event_id: Optional[Hashable] = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> List[Assignment]:
    """
    Builds one complete gift assignment for ``participants``.

    Tries up to ``max_attempts`` uniformly random permutations first and falls
    back to an exhaustive backtracking search, so a result is returned whenever
    one exists. The output is ordered like ``participants`` and depends only on
    the inputs and ``seed``.

    Raises ValidationError for malformed input and InfeasibleConstraintsError
    when no assignment satisfies the exclusions.
    """
    if len(participants) < 2:
        raise ValidationError("At least 2 participants are required.")
    if max_attempts < 0:
        raise ValueError("max_attempts must not be negative.")

    participant_ids = [participant.id for participant in participants]
    pairs = validate_exclusions(participant_ids, exclusions)
    log = logger.bind(event_id=event_id, seed=seed, participants=len(participant_ids))

    rng = random.Random(seed)
    mapping = _random_attempts(participant_ids, pairs, rng, max_attempts)
    if mapping is None:
        log.debug("Random phase exhausted after {attempts} attempts, searching exhaustively", attempts=max_attempts)
        mapping = _backtrack_search(participant_ids, pairs)

    if mapping is None:
        log.info("No assignment satisfies {count} exclusions", count=len(pairs))
        raise InfeasibleConstraintsError(
            "The exclusions admit no valid assignment. Remove some exclusions and try again."
        )

    return [
        Assignment(event_id=event_id, giver_id=giver, receiver_id=mapping[giver])
        for giver in participant_ids
    ]
