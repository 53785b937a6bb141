"""
Group (round-robin) aggregate.
"""
from typing import Dict, List, Optional

from tournament.models import GroupContext, Match, TournamentConfigError
from tournament.standings import compute_standings

GROUP_SIZE = 4

# (home, away) positions per matchday. Every team is home once and away once
# across the first two matchdays it plays, and each pair meets exactly once.
MATCHDAY_PATTERN = (
    ((0, 3), (1, 2)),
    ((0, 1), (2, 3)),
    ((2, 0), (3, 1)),
)
MATCHES_PER_GROUP = sum(len(matchday) for matchday in MATCHDAY_PATTERN)


def group_letter(index: int) -> str:
    return chr(ord('A') + index)


class Group:
    def __init__(self, arena, group_id, name, team_ids, match_ids=None, standings=None):
        self.arena = arena
        self.id = group_id
        self.name = name
        self.team_ids = list(team_ids)
        self.match_ids = list(match_ids) if match_ids else []
        self.standings = standings if standings is not None else []
        if not self.standings:
            self.recalculate_standings()

    @property
    def teams(self) -> List:
        return [self.arena.teams[team_id] for team_id in self.team_ids]

    @property
    def matches(self) -> List[Match]:
        return [self.arena.matches[match_id] for match_id in self.match_ids]

    def generate_matches(self) -> List[Match]:
        """Create the six fixtures of the group from MATCHDAY_PATTERN."""
        if len(self.team_ids) != GROUP_SIZE:
            raise TournamentConfigError(
                f"Group {self.name} needs exactly {GROUP_SIZE} teams, has {len(self.team_ids)}"
            )

        self.arena.remove_matches(self.match_ids)
        self.match_ids = []
        number = 1
        for matchday, pairings in enumerate(MATCHDAY_PATTERN, start=1):
            for home, away in pairings:
                match = Match(
                    f"{self.name}{number}",
                    self.team_ids[home],
                    self.team_ids[away],
                    GroupContext(self.id, matchday),
                )
                self.arena.add_match(match)
                self.match_ids.append(match.id)
                number += 1

        self.recalculate_standings()
        return self.matches

    def has_match(self, match_id) -> bool:
        return match_id in self.match_ids

    def update_match_result(self, match_id, home_score, away_score) -> bool:
        """Apply a result to one of this group's matches and rebuild the table."""
        if not self.has_match(match_id):
            return False
        self.arena.matches[match_id].update_result(home_score, away_score)
        self.recalculate_standings()
        return True

    def recalculate_standings(self) -> List[Dict]:
        self.standings = compute_standings(self.teams, self.matches)
        return self.standings

    def is_completed(self) -> bool:
        return len(self.match_ids) == MATCHES_PER_GROUP and all(m.played for m in self.matches)

    def mark_qualified_teams(self, direct_count: int = 2, include_best_third: bool = False) -> List[Dict]:
        """
        Flag the top *direct_count* rows as qualified and, if *include_best_third*,
        the third-placed row as a best-third candidate. The cross-group decision
        on candidates is made by the qualification selector.
        """
        self.recalculate_standings()
        for index, row in enumerate(self.standings):
            row['qualified'] = index < direct_count
            row['best_third'] = include_best_third and index == 2
        return self.standings

    def get_matches_by_matchday(self, matchday: int) -> List[Match]:
        return [m for m in self.matches if m.matchday == matchday]

    def get_top_teams(self, count: int) -> List[Dict]:
        return self.standings[:count]

    def get_stats(self) -> Dict:
        played = [m for m in self.matches if m.played]
        total_goals = sum(m.home_score + m.away_score for m in played)
        return {
            'teams': len(self.team_ids),
            'matches': len(self.match_ids),
            'matches_played': len(played),
            'matches_remaining': len(self.match_ids) - len(played),
            'total_goals': total_goals,
            'average_goals_per_match': round(total_goals / len(played), 2) if played else 0,
            'completed': self.is_completed(),
        }

    def reset_results(self):
        for match in self.matches:
            match.clear_result()
        self.recalculate_standings()

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'team_ids': list(self.team_ids),
            'matches': [m.to_dict() for m in self.matches],
            'standings': [dict(row) for row in self.standings],
        }

    @classmethod
    def from_dict(cls, arena, data: Dict) -> 'Group':
        match_ids = []
        for match_data in data.get('matches', []):
            match = arena.add_match(Match.from_dict(match_data))
            match_ids.append(match.id)
        return cls(arena, data['id'], data['name'], data['team_ids'], match_ids,
                   [dict(row) for row in data.get('standings', [])])

    def __repr__(self):
        return f"Group(id={self.id}, name={self.name}, teams={self.team_ids})"


def find_group(groups: List[Group], group_id) -> Optional[Group]:
    return next((g for g in groups if g.id == group_id), None)
