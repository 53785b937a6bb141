"""
Tournament state machine.

A ``Tournament`` owns its groups and knockout rounds and is the only thing
that mutates them. Every change goes through ``update_match_result`` (or the
explicit ``reset``) and runs to completion before returning: validation,
mutation, standings/progression, stage transition, notification.
"""
import copy
import logging
import random
import re
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from tournament import events
from tournament.bracket import (
    SUPPORTED_GROUP_COUNTS, Round, advance_winner, generate_bracket, locate_match,
)
from tournament.events import EventLog, Notifier
from tournament.group import GROUP_SIZE, MATCHDAY_PATTERN, Group, find_group, group_letter
from tournament.models import (
    Arena, InvalidResultError, Team, TournamentConfigError, validate_score, validate_score_pair,
)
from tournament.qualification import select_qualifiers

logger = logging.getLogger(__name__)

STAGES = ('setup', 'group', 'knockout', 'complete')
STATUS_ACTIVE = 'active'
STATUS_COMPLETED = 'completed'


def get_default_settings() -> Dict:
    """Settings used when a caller omits them."""
    return {
        'name': 'World Cup',
        'group_count': 8,
    }


def slugify(name: str) -> str:
    """Convert a tournament name to a filesystem-safe slug."""
    slug = name.lower().strip()
    slug = re.sub(r'[^a-z0-9\s-]', '', slug)
    slug = re.sub(r'[\s-]+', '-', slug)
    slug = slug.strip('-')
    return slug or 'tournament'


def new_tournament_id(name: str) -> str:
    return f"{slugify(name)}-{uuid.uuid4().hex[:8]}"


def _team_entry(entry):
    """Accept a bare team name or a ``{'name': ..., 'attributes': {...}}`` mapping."""
    if isinstance(entry, dict):
        name, attributes = entry.get('name'), entry.get('attributes')
    else:
        name, attributes = entry, None
    if not isinstance(name, str) or not name.strip():
        raise TournamentConfigError(f"Invalid team name: {name!r}")
    return name.strip(), attributes


class Tournament:
    def __init__(self, tournament_id, name, group_count, notifier: Optional[Notifier] = None):
        self.id = tournament_id
        self.name = name
        self.group_count = group_count
        self.arena = Arena()
        self.groups: List[Group] = []
        self.rounds: Optional[List[Round]] = None
        self.stage = 'setup'
        self.status = STATUS_ACTIVE
        self.qualifiers: Optional[Dict] = None
        self.champion_id = None
        self.events = EventLog()
        self.notifier = notifier if notifier is not None else Notifier()
        now = datetime.now().isoformat()
        self.created_at = now
        self.updated_at = now

    # Creation ------------------------------------------------------------

    @classmethod
    def create(cls, name, group_count, team_names, rng: Optional[random.Random] = None,
               notifier: Optional[Notifier] = None, tournament_id=None) -> 'Tournament':
        """
        Build a tournament from a list of team names.

        Teams are shuffled (with *rng* when given, for reproducible draws) and
        dealt into groups of four in order; every group's fixtures are
        generated and the tournament starts in the group stage.
        """
        if not isinstance(name, str) or not name.strip():
            raise TournamentConfigError("Tournament name must not be empty")
        # bool is a subclass of int
        if isinstance(group_count, bool) or group_count not in SUPPORTED_GROUP_COUNTS:
            raise TournamentConfigError(
                f"Unsupported group count {group_count!r}; expected one of {SUPPORTED_GROUP_COUNTS}"
            )
        team_names = list(team_names)
        expected = group_count * GROUP_SIZE
        if len(team_names) != expected:
            raise TournamentConfigError(
                f"{group_count} groups need exactly {expected} teams, got {len(team_names)}"
            )
        entries = [_team_entry(entry) for entry in team_names]

        name = name.strip()
        tournament = cls(tournament_id or new_tournament_id(name), name, group_count, notifier)
        teams = [
            tournament.arena.add_team(Team(f"team-{number:02d}", team_name, attributes))
            for number, (team_name, attributes) in enumerate(entries, start=1)
        ]

        drawn = list(teams)
        (rng or random.Random()).shuffle(drawn)
        for index in range(group_count):
            letter = group_letter(index)
            members = drawn[index * GROUP_SIZE:(index + 1) * GROUP_SIZE]
            group = Group(tournament.arena, f"group-{letter.lower()}", letter, [t.id for t in members])
            group.generate_matches()
            tournament.groups.append(group)

        tournament._record(events.TOURNAMENT_CREATED, {
            'tournament_id': tournament.id,
            'name': tournament.name,
            'group_count': group_count,
        })
        tournament._change_stage('group')
        logger.info("Created tournament %s (%s) with %d groups", tournament.id, tournament.name, group_count)
        return tournament

    # Result entry --------------------------------------------------------

    def update_match_result(self, match_id, home_score, away_score,
                            extra_time=None, penalties=None) -> bool:
        """
        Record the result of an active-stage match.

        *extra_time* and *penalties* are optional ``(home, away)`` pairs and
        only apply to knockout matches. Returns False if *match_id* is not a
        match of the current stage; raises ``InvalidResultError`` (leaving
        everything untouched) if the result cannot be applied.
        """
        if self.stage == 'group':
            group = self._group_for_match(match_id)
            if group is None:
                return False
            home_score, away_score = self._validate_group_result(home_score, away_score, extra_time, penalties)
            group.update_match_result(match_id, home_score, away_score)
            self._after_update(match_id, {'group_id': group.id})
            if self.is_group_stage_completed():
                self._complete_group_stage()
            return True

        if self.stage == 'knockout':
            location = locate_match(self.rounds, match_id)
            if location is None:
                return False
            match = self.arena.matches[match_id]
            home_score, away_score, extra_time, penalties = self._validate_knockout_result(
                match, home_score, away_score, extra_time, penalties)
            match.update_result(home_score, away_score)
            if extra_time is not None:
                match.update_extra_time_result(*extra_time)
            if penalties is not None:
                match.update_penalty_result(*penalties)
            champion = advance_winner(self.rounds, *location)
            self._after_update(match_id, {'stage': 'knockout', 'round': self.rounds[location[0]].name})
            if champion is not None:
                self._complete_tournament(champion)
            return True

        logger.debug("Ignoring result for %s in stage %s", match_id, self.stage)
        return False

    def _validate_group_result(self, home_score, away_score, extra_time, penalties):
        home_score = validate_score(home_score, 'home score')
        away_score = validate_score(away_score, 'away score')
        if extra_time is not None or penalties is not None:
            raise InvalidResultError('Extra time and penalties only apply to knockout matches')
        return home_score, away_score

    def _validate_knockout_result(self, match, home_score, away_score, extra_time, penalties):
        home_score = validate_score(home_score, 'home score')
        away_score = validate_score(away_score, 'away score')
        if extra_time is not None:
            extra_time = validate_score_pair(extra_time, 'extra time')
        if penalties is not None:
            penalties = validate_score_pair(penalties, 'penalties')

        if not match.is_scheduled():
            raise InvalidResultError(f"Match {match.id} does not have both teams yet")
        if extra_time is not None and home_score != away_score:
            raise InvalidResultError('Extra time is only played after a level regulation score')

        aggregate_home, aggregate_away = home_score, away_score
        if extra_time is not None:
            aggregate_home += extra_time[0]
            aggregate_away += extra_time[1]

        if penalties is not None:
            if penalties[0] == penalties[1]:
                raise InvalidResultError('A penalty shootout cannot end level')
            if aggregate_home != aggregate_away:
                raise InvalidResultError('Penalties only decide a level match')
        elif aggregate_home == aggregate_away:
            raise InvalidResultError(
                f"Match {match.id} is level at {aggregate_home} - {aggregate_away}; "
                "a knockout match needs extra time or penalties to produce a winner"
            )
        return home_score, away_score, extra_time, penalties

    def _after_update(self, match_id, context: Dict):
        match = self.arena.matches[match_id]
        payload = dict(context)
        payload.update({
            'match_id': match_id,
            'home_score': match.home_score,
            'away_score': match.away_score,
            'winner': match.winner,
        })
        logger.debug("Match %s updated: %s", match_id, match.score_display())
        self._record(events.MATCH_UPDATED, payload)

    def _complete_group_stage(self):
        self.qualifiers = select_qualifiers(self.groups)
        self.rounds = generate_bracket(self.arena, self.qualifiers, self.group_count)
        self._record(events.GROUP_STAGE_COMPLETED, {'qualifiers': copy.deepcopy(self.qualifiers)})
        self._change_stage('knockout')

    def _complete_tournament(self, champion_id):
        self.champion_id = champion_id
        self.status = STATUS_COMPLETED
        self._record(events.TOURNAMENT_COMPLETED, {
            'winner': champion_id,
            'name': self.arena.team_name(champion_id),
        })
        self._change_stage('complete')
        logger.info("Tournament %s won by %s", self.id, self.arena.team_name(champion_id))

    def _change_stage(self, new_stage: str, force: bool = False):
        previous = self.stage
        if not force and STAGES.index(new_stage) <= STAGES.index(previous):
            raise RuntimeError(f"Stage cannot move from {previous} to {new_stage}")
        self.stage = new_stage
        self._record(events.STAGE_CHANGED, {'previous_stage': previous, 'new_stage': new_stage})
        logger.info("Tournament %s: %s -> %s", self.id, previous, new_stage)

    def _record(self, event_type: str, payload: Dict):
        self.events.append(event_type, payload)
        self.updated_at = datetime.now().isoformat()
        self.notifier.emit(event_type, payload)

    def reset(self) -> bool:
        """Clear every result, drop the knockout rounds and go back to the group stage."""
        for group in self.groups:
            group.reset_results()
        if self.rounds:
            for knockout_round in self.rounds:
                self.arena.remove_matches(knockout_round.match_ids)
        self.rounds = None
        self.qualifiers = None
        self.champion_id = None
        self.status = STATUS_ACTIVE
        self._record(events.TOURNAMENT_RESET, {'tournament_id': self.id})
        if self.stage != 'group':
            self._change_stage('group', force=True)
        logger.info("Tournament %s reset", self.id)
        return True

    # Listeners -----------------------------------------------------------

    def add_listener(self, listener):
        self.notifier.add_listener(listener)

    def remove_listener(self, listener) -> bool:
        return self.notifier.remove_listener(listener)

    def events_since(self, sequence: int = 0):
        return self.events.since(sequence)

    # Queries -------------------------------------------------------------

    def _group_for_match(self, match_id) -> Optional[Group]:
        return next((g for g in self.groups if g.has_match(match_id)), None)

    def get_group(self, group_id) -> Optional[Group]:
        return find_group(self.groups, group_id)

    def get_match(self, match_id):
        return self.arena.match(match_id)

    def get_team(self, team_id) -> Optional[Team]:
        return self.arena.team(team_id)

    def get_round(self, name) -> Optional[Round]:
        if not self.rounds:
            return None
        return next((r for r in self.rounds if r.name == name), None)

    def get_matches_by_matchday(self, matchday: int) -> List:
        matches = []
        for group in self.groups:
            matches.extend(group.get_matches_by_matchday(matchday))
        return matches

    def total_matchdays(self) -> int:
        return len(MATCHDAY_PATTERN) if self.groups else 0

    def is_group_stage_completed(self) -> bool:
        return bool(self.groups) and all(g.is_completed() for g in self.groups)

    def is_knockout_stage_completed(self) -> bool:
        return bool(self.rounds) and self.rounds[-1].is_completed()

    def champion(self) -> Optional[Team]:
        return self.arena.team(self.champion_id) if self.champion_id else None

    def playable_matches(self) -> List:
        """Unplayed matches of the active stage that have both teams."""
        if self.stage == 'group':
            return [m for g in self.groups for m in g.matches if not m.played]
        if self.stage == 'knockout':
            return [m for r in self.rounds for m in r.matches if m.is_scheduled() and not m.played]
        return []

    def get_standings(self) -> Dict[str, List[Dict]]:
        return {g.id: g.standings for g in self.groups}

    def get_bracket(self) -> List[Dict]:
        if not self.rounds:
            return []
        bracket = []
        for knockout_round in self.rounds:
            matches = []
            for match in knockout_round.matches:
                entry = match.to_dict()
                entry['home_team'] = self.arena.team_name(match.home_team_id)
                entry['away_team'] = self.arena.team_name(match.away_team_id)
                entry['score'] = match.score_display()
                entry['status'] = match.status_text()
                matches.append(entry)
            bracket.append({'name': knockout_round.name, 'index': knockout_round.index, 'matches': matches})
        return bracket

    def get_status(self) -> Dict:
        matches = list(self.arena.matches.values())
        played = [m for m in matches if m.played]
        total_goals = sum(sum(m.aggregate_score()) for m in played)
        progress = round(len(played) / len(matches) * 100, 1) if matches else 0
        champion = self.champion()
        return {
            'id': self.id,
            'name': self.name,
            'stage': self.stage,
            'status': self.status,
            'groups': len(self.groups),
            'teams': len(self.arena.teams),
            'total_matches': len(matches),
            'matches_played': len(played),
            'matches_remaining': len(matches) - len(played),
            'progress_percentage': progress,
            'total_goals': total_goals,
            'extra_time_matches': sum(1 for m in played if m.had_extra_time()),
            'penalty_matches': sum(1 for m in played if m.had_penalties()),
            'champion': champion.name if champion else None,
        }

    def summary(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'group_count': self.group_count,
            'stage': self.stage,
            'status': self.status,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }

    # Serialization -------------------------------------------------------

    def to_dict(self) -> Dict:
        data = self.summary()
        data.update({
            'teams': [t.to_dict() for t in self.arena.teams.values()],
            'groups': [g.to_dict() for g in self.groups],
            'knockout_rounds': [r.to_dict() for r in self.rounds] if self.rounds is not None else None,
            'qualifiers': copy.deepcopy(self.qualifiers),
            'champion': self.champion_id,
            'events': self.events.to_list(),
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict, notifier: Optional[Notifier] = None) -> 'Tournament':
        tournament = cls(data['id'], data['name'], data['group_count'], notifier)
        tournament.stage = data.get('stage', 'setup')
        tournament.status = data.get('status', STATUS_ACTIVE)
        tournament.created_at = data.get('created_at', tournament.created_at)
        tournament.updated_at = data.get('updated_at', tournament.updated_at)
        for team_data in data.get('teams', []):
            tournament.arena.add_team(Team.from_dict(team_data))
        tournament.groups = [Group.from_dict(tournament.arena, g) for g in data.get('groups', [])]
        rounds = data.get('knockout_rounds')
        if rounds is not None:
            tournament.rounds = [Round.from_dict(tournament.arena, r) for r in rounds]
        tournament.qualifiers = data.get('qualifiers')
        tournament.champion_id = data.get('champion')
        tournament.events = EventLog.from_list(data.get('events'))

        tournament.notifier.emit(events.TOURNAMENT_LOADED, {'tournament_id': tournament.id})
        logger.info("Loaded tournament %s (stage %s)", tournament.id, tournament.stage)
        return tournament

    def __repr__(self):
        return f"Tournament(id={self.id}, name={self.name}, stage={self.stage}, status={self.status})"


def _random_score(rng: random.Random) -> int:
    return rng.choice((0, 0, 1, 1, 1, 2, 2, 3, 4))


def simulate_results(tournament: Tournament, rng: Optional[random.Random] = None,
                     until_complete: bool = False) -> int:
    """
    Play every currently playable match of the active stage with random scores.

    Level knockout matches go to extra time and, if still level, penalties.
    With *until_complete*, keeps going through later stages until the
    tournament is decided. Returns the number of matches played.
    """
    rng = rng or random.Random()
    played = 0
    while True:
        matches = tournament.playable_matches()
        if not matches:
            break
        for match in matches:
            if not match.is_scheduled() or match.played:
                continue
            home, away = _random_score(rng), _random_score(rng)
            extra_time = penalties = None
            if match.is_knockout and home == away:
                extra_time = (rng.randint(0, 1), rng.randint(0, 1))
                if extra_time[0] == extra_time[1]:
                    shootout = [rng.randint(3, 5), rng.randint(2, 5)]
                    while shootout[0] == shootout[1]:
                        shootout[rng.randint(0, 1)] += 1
                    penalties = tuple(shootout)
            if tournament.update_match_result(match.id, home, away, extra_time, penalties):
                played += 1
        if not until_complete:
            break
    logger.info("Simulated %d matches in tournament %s", played, tournament.id)
    return played
