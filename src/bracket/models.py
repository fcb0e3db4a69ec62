"""
Data structures for a generated single elimination bracket.

Serialization follows the brackets-viewer layout consumed by the bracket UI.
"""
from enum import IntEnum
from typing import List, Optional


TOURNAMENT_ID = 1
STAGE_ID = 1
GROUP_ID = 1


class MatchStatus(IntEnum):
    LOCKED = 0
    WAITING = 1
    READY = 2
    RUNNING = 3
    COMPLETED = 4


class Participant:
    def __init__(self, id, name):
        self.id = id
        self.name = name

    def to_dict(self):
        return {'id': self.id, 'tournament_id': TOURNAMENT_ID, 'name': self.name}

    @classmethod
    def from_dict(cls, data):
        return cls(id=data['id'], name=data['name'])

    def __eq__(self, other):
        if not isinstance(other, Participant):
            return NotImplemented
        return (self.id, self.name) == (other.id, other.name)

    def __repr__(self):
        return f"Participant(id={self.id}, name={self.name})"


class Opponent:
    """A filled match slot: which participant, and which side (0 or 1)."""

    def __init__(self, participant_id, position):
        self.participant_id = participant_id
        self.position = position

    def to_dict(self):
        return {
            'id': self.participant_id,
            'position': self.position,
            'score': None,
            'result': None,
        }

    @classmethod
    def from_dict(cls, data):
        if data is None:
            return None
        return cls(participant_id=data['id'], position=data.get('position', 0))

    def __eq__(self, other):
        if not isinstance(other, Opponent):
            return NotImplemented
        return (self.participant_id, self.position) == (other.participant_id, other.position)

    def __repr__(self):
        return f"Opponent(participant_id={self.participant_id}, position={self.position})"


class Match:
    def __init__(self, id, round, number_in_round, opponent1=None, opponent2=None,
                 next_match_id=None, status=MatchStatus.LOCKED):
        self.id = id
        self.round = round
        self.number_in_round = number_in_round
        self.opponent1 = opponent1
        self.opponent2 = opponent2
        self.next_match_id = next_match_id
        self.status = status

    @property
    def is_final(self) -> bool:
        return self.next_match_id is None

    def to_dict(self):
        return {
            'id': self.id,
            'stage_id': STAGE_ID,
            'group_id': GROUP_ID,
            'round_id': self.round,
            'number': self.number_in_round,
            'child_count': 0,
            'status': int(self.status),
            'opponent1': self.opponent1.to_dict() if self.opponent1 else None,
            'opponent2': self.opponent2.to_dict() if self.opponent2 else None,
            'next_match_id': self.next_match_id,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data['id'],
            round=data['round_id'],
            number_in_round=data['number'],
            opponent1=Opponent.from_dict(data.get('opponent1')),
            opponent2=Opponent.from_dict(data.get('opponent2')),
            next_match_id=data.get('next_match_id'),
            status=MatchStatus(data.get('status', MatchStatus.LOCKED)),
        )

    def __repr__(self):
        return (f"Match(id={self.id}, round={self.round}, number_in_round={self.number_in_round}, "
                f"opponent1={self.opponent1}, opponent2={self.opponent2}, "
                f"next_match_id={self.next_match_id}, status={self.status.name})")


class Bracket:
    def __init__(self, matches: List[Match], participants: List[Participant]):
        self.matches = matches
        self.participants = participants

    @property
    def num_rounds(self) -> int:
        return max((m.round for m in self.matches), default=0)

    def matches_in_round(self, round_number: int) -> List[Match]:
        return [m for m in self.matches if m.round == round_number]

    def get_match(self, match_id) -> Optional[Match]:
        for match in self.matches:
            if match.id == match_id:
                return match
        return None

    def to_dict(self):
        return {
            'stages': [{
                'id': STAGE_ID,
                'tournament_id': TOURNAMENT_ID,
                'name': 'Main Stage',
                'type': 'single_elimination',
                'number': 1,
                'settings': {},
            }],
            'matches': [m.to_dict() for m in self.matches],
            'matchGames': [],
            'participants': [p.to_dict() for p in self.participants],
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            matches=[Match.from_dict(m) for m in data.get('matches', [])],
            participants=[Participant.from_dict(p) for p in data.get('participants', [])],
        )

    def __repr__(self):
        return f"Bracket(matches={len(self.matches)}, participants={len(self.participants)})"
