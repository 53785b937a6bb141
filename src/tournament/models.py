"""
Data models for the tournament engine.

Teams and matches live in a flat, id-keyed ``Arena`` owned by the tournament.
Groups and knockout rounds refer to them by id only, so a team renamed in the
arena is seen everywhere at once.
"""
from typing import Dict, List, NamedTuple, Optional, Tuple

TBD = 'TBD'


class InvalidResultError(ValueError):
    """A submitted score cannot be applied to a match."""


class TournamentConfigError(ValueError):
    """A tournament cannot be built from the given settings."""


def validate_score(value, label: str = 'score') -> int:
    """Return *value* if it is a non-negative integer, else raise InvalidResultError."""
    # bool is a subclass of int
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidResultError(f'{label} must be an integer, got {value!r}')
    if value < 0:
        raise InvalidResultError(f'{label} must not be negative, got {value}')
    return value


def validate_score_pair(pair, label: str) -> Tuple[int, int]:
    """Validate an optional (home, away) pair such as extra time or penalties."""
    if not isinstance(pair, (list, tuple)) or len(pair) != 2:
        raise InvalidResultError(f'{label} must be a pair of scores, got {pair!r}')
    return validate_score(pair[0], f'{label} home score'), validate_score(pair[1], f'{label} away score')


class Team:
    def __init__(self, team_id, name, attributes=None):
        self.id = team_id
        self.name = name
        self.attributes = attributes if attributes else {}

    def to_dict(self) -> Dict:
        return {'id': self.id, 'name': self.name, 'attributes': dict(self.attributes)}

    @classmethod
    def from_dict(cls, data: Dict) -> 'Team':
        return cls(data['id'], data['name'], data.get('attributes'))

    def __repr__(self):
        return f"Team(id={self.id}, name={self.name}, attributes={self.attributes})"


class GroupContext(NamedTuple):
    """A group-phase fixture: which group and which matchday."""
    group_id: str
    matchday: int

    kind = 'group'

    def to_dict(self) -> Dict:
        return {'kind': self.kind, 'group_id': self.group_id, 'matchday': self.matchday}


class KnockoutContext(NamedTuple):
    """A knockout fixture: round name, round index and bracket slot."""
    round_name: str
    round_index: int
    slot: int

    kind = 'knockout'

    def to_dict(self) -> Dict:
        return {'kind': self.kind, 'round_name': self.round_name,
                'round_index': self.round_index, 'slot': self.slot}


def context_from_dict(data: Optional[Dict]):
    if not data:
        return None
    if data.get('kind') == GroupContext.kind:
        return GroupContext(data['group_id'], data['matchday'])
    if data.get('kind') == KnockoutContext.kind:
        return KnockoutContext(data['round_name'], data['round_index'], data['slot'])
    raise ValueError(f"Unknown match context: {data!r}")


def _empty_extra_time() -> Dict:
    return {'played': False, 'home_score': None, 'away_score': None}


def _empty_penalties() -> Dict:
    return {'played': False, 'home_score': None, 'away_score': None, 'winner': None}


class Match:
    """
    One fixture between two teams.

    ``home_team_id``/``away_team_id`` are ``None`` while the slot is still TBD.
    ``winner`` is a team id, or ``None`` for an unplayed match or a drawn
    group match.
    """

    def __init__(self, match_id, home_team_id=None, away_team_id=None, context=None):
        self.id = match_id
        self.home_team_id = home_team_id
        self.away_team_id = away_team_id
        self.context = context
        self.home_score = None
        self.away_score = None
        self.played = False
        self.winner = None
        self.extra_time = _empty_extra_time()
        self.penalties = _empty_penalties()

    @property
    def is_knockout(self) -> bool:
        return isinstance(self.context, KnockoutContext)

    @property
    def matchday(self) -> Optional[int]:
        return self.context.matchday if isinstance(self.context, GroupContext) else None

    def is_scheduled(self) -> bool:
        """Both teams are known."""
        return self.home_team_id is not None and self.away_team_id is not None

    def involves(self, team_id) -> bool:
        return team_id is not None and team_id in (self.home_team_id, self.away_team_id)

    def _pick(self, home: int, away: int):
        if home > away:
            return self.home_team_id
        if away > home:
            return self.away_team_id
        return None

    def update_result(self, home_score, away_score) -> 'Match':
        """Record the regulation score. Any earlier extra time or shootout is discarded."""
        self.home_score = validate_score(home_score, 'home score')
        self.away_score = validate_score(away_score, 'away score')
        self.played = True
        self.extra_time = _empty_extra_time()
        self.penalties = _empty_penalties()
        self.winner = self._pick(self.home_score, self.away_score)
        return self

    def update_extra_time_result(self, home_score, away_score) -> 'Match':
        """Record extra-time goals; the winner is decided on the aggregate score."""
        if not self.is_knockout:
            raise InvalidResultError('Extra time only applies to knockout matches')
        if not self.played:
            raise InvalidResultError('Extra time needs a regulation score first')
        self.extra_time = {
            'played': True,
            'home_score': validate_score(home_score, 'extra time home score'),
            'away_score': validate_score(away_score, 'extra time away score'),
        }
        self.penalties = _empty_penalties()
        self.winner = self._pick(*self.aggregate_score())
        return self

    def update_penalty_result(self, home_score, away_score) -> 'Match':
        """Record a penalty shootout. A shootout cannot end level."""
        if not self.is_knockout:
            raise InvalidResultError('Penalties only apply to knockout matches')
        if not self.played:
            raise InvalidResultError('Penalties need a regulation score first')
        home_score = validate_score(home_score, 'penalty home score')
        away_score = validate_score(away_score, 'penalty away score')
        if home_score == away_score:
            raise InvalidResultError('A penalty shootout cannot end level')
        aggregate_home, aggregate_away = self.aggregate_score()
        if aggregate_home != aggregate_away:
            raise InvalidResultError('Penalties only decide a level match')
        winner = self._pick(home_score, away_score)
        self.penalties = {
            'played': True,
            'home_score': home_score,
            'away_score': away_score,
            'winner': winner,
        }
        self.winner = winner
        return self

    def clear_result(self) -> 'Match':
        self.home_score = None
        self.away_score = None
        self.played = False
        self.winner = None
        self.extra_time = _empty_extra_time()
        self.penalties = _empty_penalties()
        return self

    def aggregate_score(self) -> Tuple[int, int]:
        """Regulation plus extra time."""
        home = self.home_score or 0
        away = self.away_score or 0
        if self.had_extra_time():
            home += self.extra_time['home_score']
            away += self.extra_time['away_score']
        return home, away

    @property
    def loser(self):
        if self.winner is None:
            return None
        return self.away_team_id if self.winner == self.home_team_id else self.home_team_id

    def had_extra_time(self) -> bool:
        return bool(self.extra_time and self.extra_time.get('played'))

    def had_penalties(self) -> bool:
        return bool(self.penalties and self.penalties.get('played'))

    def score_display(self) -> str:
        if not self.played:
            return 'vs'
        display = f"{self.home_score} - {self.away_score}"
        if self.had_extra_time():
            display += f" (AET: {self.extra_time['home_score']} - {self.extra_time['away_score']})"
        if self.had_penalties():
            display += f" (Pens: {self.penalties['home_score']} - {self.penalties['away_score']})"
        return display

    def status_text(self) -> str:
        if not self.played:
            return 'Scheduled'
        if self.had_penalties():
            return 'Penalties'
        if self.had_extra_time():
            return 'After Extra Time'
        return 'Finished'

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'home_team_id': self.home_team_id,
            'away_team_id': self.away_team_id,
            'home_score': self.home_score,
            'away_score': self.away_score,
            'played': self.played,
            'winner': self.winner,
            'context': self.context.to_dict() if self.context else None,
            'extra_time': dict(self.extra_time),
            'penalties': dict(self.penalties),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Match':
        match = cls(data['id'], data.get('home_team_id'), data.get('away_team_id'),
                    context_from_dict(data.get('context')))
        match.home_score = data.get('home_score')
        match.away_score = data.get('away_score')
        match.played = bool(data.get('played', False))
        match.winner = data.get('winner')
        match.extra_time = data.get('extra_time') or _empty_extra_time()
        match.penalties = data.get('penalties') or _empty_penalties()
        return match

    def __repr__(self):
        return (f"Match(id={self.id}, home={self.home_team_id}, away={self.away_team_id}, "
                f"score={self.score_display()})")


class Arena:
    """Flat storage for every team and match of one tournament."""

    def __init__(self):
        self.teams: Dict[str, Team] = {}
        self.matches: Dict[str, Match] = {}

    def add_team(self, team: Team) -> Team:
        self.teams[team.id] = team
        return team

    def add_match(self, match: Match) -> Match:
        self.matches[match.id] = match
        return match

    def remove_matches(self, match_ids: List[str]):
        for match_id in match_ids:
            self.matches.pop(match_id, None)

    def team(self, team_id) -> Optional[Team]:
        return self.teams.get(team_id)

    def match(self, match_id) -> Optional[Match]:
        return self.matches.get(match_id)

    def team_name(self, team_id) -> str:
        team = self.teams.get(team_id)
        return team.name if team else TBD
