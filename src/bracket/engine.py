"""
Single elimination bracket generation and slot editing.

Everything here is a pure function of its inputs: slot sequences are never
modified in place, and a Bracket is always rebuilt from the full slot list.
"""
import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

from bracket.errors import InvalidInputError, NoValidNamesError, ParticipantNotFoundError
from bracket.models import Bracket, Match, Opponent, Participant

logger = logging.getLogger(__name__)

Slots = List[Optional[str]]


def next_power_of_two(n: int) -> int:
    """Smallest power of two >= n, or 1 when n <= 0."""
    if n <= 0:
        return 1
    return 2 ** math.ceil(math.log2(n))


def is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def get_round_name(matches_in_round: int) -> str:
    """Get the display name of a round from the number of matches in it."""
    teams_in_round = matches_in_round * 2
    if teams_in_round == 2:
        return "Final"
    elif teams_in_round == 4:
        return "Semifinal"
    elif teams_in_round == 8:
        return "Quarterfinal"
    else:
        return f"Round of {teams_in_round}"


def count_competitors(slots: Sequence[Optional[str]]) -> int:
    return sum(1 for name in slots if name is not None)


def _check_slots(slots: Sequence[Optional[str]]):
    if not slots:
        raise InvalidInputError('Cannot generate a bracket from an empty slot list')
    if not is_power_of_two(len(slots)):
        raise InvalidInputError(f'Slot count must be a power of two, got {len(slots)}')
    seen = set()
    for name in slots:
        if name is None:
            continue
        if name in seen:
            raise InvalidInputError(f'Duplicate competitor "{name}"')
        seen.add(name)


def generate_bracket(slots: Sequence[Optional[str]]) -> Bracket:
    """
    Build the complete match graph for a padded slot sequence.

    Round 1 match i pairs slot 2i (opponent1) with slot 2i+1 (opponent2).
    Later rounds start empty; next_match_id links are set in a second pass
    so that matches i and i+1 (i even) of round r feed match i/2 of round r+1.
    Match ids run from 1 in round-major order.
    """
    _check_slots(slots)

    participants = [
        Participant(id=index + 1, name=name)
        for index, name in enumerate(slots)
        if name is not None
    ]

    matches = []
    rounds = []
    match_id = 1
    matches_in_round = len(slots) // 2
    round_number = 1

    while matches_in_round >= 1:
        current_round = []
        for i in range(matches_in_round):
            match = Match(id=match_id, round=round_number, number_in_round=i + 1)
            if round_number == 1:
                p1_index = i * 2
                p2_index = i * 2 + 1
                if slots[p1_index] is not None:
                    match.opponent1 = Opponent(participant_id=p1_index + 1, position=0)
                if slots[p2_index] is not None:
                    match.opponent2 = Opponent(participant_id=p2_index + 1, position=1)
            current_round.append(match)
            matches.append(match)
            match_id += 1
        rounds.append(current_round)
        matches_in_round //= 2
        round_number += 1

    for round_idx in range(len(rounds) - 1):
        next_round = rounds[round_idx + 1]
        for i, match in enumerate(rounds[round_idx]):
            match.next_match_id = next_round[i // 2].id

    return Bracket(matches=matches, participants=participants)


def _clean_names(names) -> List[str]:
    cleaned = []
    for name in names or []:
        if name is None:
            continue
        name = str(name).strip()
        if name:
            cleaned.append(name)
    return cleaned


def add_competitors(current: Sequence[Optional[str]], new_names: Sequence[str]) -> Slots:
    """
    Return a new slot list with new_names added.

    Names are trimmed and blanks dropped. A name already present (exact match)
    is skipped. Empty slots are filled in ascending index order before
    anything is appended, and the result is padded with byes to a power of two.
    Raises NoValidNamesError when no usable name remains after trimming.
    """
    requested = len(new_names) if new_names else 0
    valid_names = _clean_names(new_names)
    if not valid_names:
        raise NoValidNamesError(requested)

    slots = list(current)
    for name in valid_names:
        if name in slots:
            logger.warning(f'Competitor "{name}" already exists, skipping')
            continue
        try:
            slots[slots.index(None)] = name
        except ValueError:
            slots.append(name)

    return pad_slots(slots)


def pad_slots(slots: Sequence[Optional[str]]) -> Slots:
    """Pad with byes to the next power of two; never drops existing slots."""
    padded = list(slots)
    size = next_power_of_two(max(len(padded), count_competitors(padded)))
    padded.extend([None] * (size - len(padded)))
    return padded


def build_slots(names: Sequence[str]) -> Slots:
    """Initial slot sequence for a fresh bracket."""
    return add_competitors([], names)


def move_or_swap_participant(current: Sequence[Optional[str]], source_name: str,
                             target_name: Optional[str] = None,
                             target_index: Optional[int] = None) -> Slots:
    """
    Move a competitor to another slot, or swap it with the competitor there.

    With target_name set, the two named competitors swap slots. Otherwise the
    competitor moves into the empty slot at target_index (or the first empty
    slot) and its old slot becomes a bye. Moving onto an occupied target_index
    swaps with whoever holds it.
    """
    if not source_name or source_name not in current:
        raise ParticipantNotFoundError(source_name)
    source_index = list(current).index(source_name)

    if target_name is not None:
        if target_name not in current:
            raise ParticipantNotFoundError(target_name)
        return move_or_swap_slot(current, source_index, list(current).index(target_name))

    if target_index is None:
        try:
            target_index = list(current).index(None)
        except ValueError:
            raise InvalidInputError('Bracket has no empty slot to move into')
    return move_or_swap_slot(current, source_index, target_index)


def move_or_swap_slot(current: Sequence[Optional[str]], source_index: int, target_index: int) -> Slots:
    """Exchange the contents of two slots by index."""
    for index in (source_index, target_index):
        if not 0 <= index < len(current):
            raise InvalidInputError(f'Slot index {index} is out of range')
    if current[source_index] is None:
        raise ParticipantNotFoundError(None, f'Slot {source_index} is empty')

    slots = list(current)
    slots[source_index], slots[target_index] = slots[target_index], slots[source_index]
    return slots


def get_rounds(bracket: Bracket) -> Dict[str, List[Match]]:
    """Matches grouped by round display name, in round order."""
    rounds = {}
    for round_number in range(1, bracket.num_rounds + 1):
        round_matches = bracket.matches_in_round(round_number)
        rounds[get_round_name(len(round_matches))] = round_matches
    return rounds


def validate_bracket(bracket: Optional[Bracket]) -> Tuple[bool, List[str]]:
    """
    Check the structural invariants of a bracket.
    Returns (is_valid, errors).
    """
    errors = []
    if bracket is None:
        errors.append('No bracket data available')
        return False, errors
    if not bracket.matches:
        errors.append('Bracket has no matches')
        return False, errors

    by_id = {m.id: m for m in bracket.matches}
    num_rounds = bracket.num_rounds

    finals = [m for m in bracket.matches if m.round == num_rounds]
    if len(finals) != 1:
        errors.append(f'Expected exactly one final match, found {len(finals)}')

    feeders = {}
    for match in bracket.matches:
        if match.round == num_rounds:
            if not match.is_final:
                errors.append(f'Final match {match.id} must not advance to another match')
            continue
        if match.is_final:
            errors.append(f'Match {match.id} in round {match.round} does not advance to another match')
            continue
        target = by_id.get(match.next_match_id)
        if target is None:
            errors.append(f'Match {match.id} advances to unknown match {match.next_match_id}')
        elif target.round != match.round + 1:
            errors.append(f'Match {match.id} in round {match.round} advances to round {target.round}')
        else:
            feeders.setdefault(target.id, []).append(match.id)
        if match.round > 1 and (match.opponent1 or match.opponent2):
            # Nothing advances without results
            errors.append(f'Match {match.id} in round {match.round} has opponents before advancement')

    for match in bracket.matches:
        if match.round > 1 and len(feeders.get(match.id, [])) != 2:
            errors.append(f'Match {match.id} is fed by {len(feeders.get(match.id, []))} matches, expected 2')

    participant_ids = {p.id for p in bracket.participants}
    names = [p.name for p in bracket.participants]
    if len(names) != len(set(names)):
        errors.append('Duplicate competitor names in bracket')
    for match in bracket.matches_in_round(1):
        for opponent in (match.opponent1, match.opponent2):
            if opponent and opponent.participant_id not in participant_ids:
                errors.append(f'Match {match.id} references unknown participant {opponent.participant_id}')

    return len(errors) == 0, errors
