"""
Unit tests for teams, matches and the arena.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from tournament.models import (
    Arena, GroupContext, InvalidResultError, KnockoutContext, Match, Team, TBD,
    context_from_dict, validate_score, validate_score_pair,
)


def knockout_match():
    return Match('F-1', 'home', 'away', KnockoutContext('Final', 0, 0))


class TestScoreValidation:
    """Tests for score validation helpers."""

    def test_accepts_non_negative_integers(self):
        assert validate_score(0) == 0
        assert validate_score(7) == 7

    @pytest.mark.parametrize('value', [-1, 1.5, '2', None, True])
    def test_rejects_invalid_scores(self, value):
        with pytest.raises(InvalidResultError):
            validate_score(value)

    def test_pair_must_have_two_scores(self):
        assert validate_score_pair([1, 0], 'extra time') == (1, 0)
        with pytest.raises(InvalidResultError):
            validate_score_pair([1], 'extra time')
        with pytest.raises(InvalidResultError):
            validate_score_pair(3, 'penalties')


class TestTeam:
    def test_team_attributes_default_empty(self):
        team = Team('t1', 'Brazil')
        assert team.attributes == {}

    def test_team_serialization(self):
        team = Team('t1', 'Brazil', {'colour': 'yellow'})
        restored = Team.from_dict(team.to_dict())
        assert restored.id == 't1'
        assert restored.name == 'Brazil'
        assert restored.attributes == {'colour': 'yellow'}


class TestMatchResult:
    """Tests for regulation results."""

    def test_home_win(self):
        match = Match('A1', 'a', 'b', GroupContext('group-a', 1))
        match.update_result(2, 1)
        assert match.played is True
        assert match.winner == 'a'
        assert match.loser == 'b'

    def test_draw_has_no_winner(self):
        match = Match('A1', 'a', 'b', GroupContext('group-a', 1))
        match.update_result(1, 1)
        assert match.played is True
        assert match.winner is None
        assert match.loser is None

    def test_invalid_score_leaves_match_untouched(self):
        match = Match('A1', 'a', 'b', GroupContext('group-a', 1))
        with pytest.raises(InvalidResultError):
            match.update_result(-1, 0)
        assert match.played is False
        assert match.home_score is None

    def test_new_result_discards_extra_time_and_penalties(self):
        match = knockout_match()
        match.update_result(1, 1)
        match.update_extra_time_result(0, 0)
        match.update_penalty_result(4, 2)
        match.update_result(3, 0)
        assert not match.had_extra_time()
        assert not match.had_penalties()
        assert match.winner == 'home'


class TestKnockoutResolution:
    """Tests for extra time and penalty shootouts."""

    def test_extra_time_decides_on_aggregate(self):
        match = knockout_match()
        match.update_result(1, 1)
        match.update_extra_time_result(0, 1)
        assert match.aggregate_score() == (1, 2)
        assert match.winner == 'away'

    def test_level_extra_time_leaves_no_winner(self):
        match = knockout_match()
        match.update_result(1, 1)
        match.update_extra_time_result(1, 1)
        assert match.winner is None

    def test_penalties_decide_level_match(self):
        match = knockout_match()
        match.update_result(1, 1)
        match.update_extra_time_result(1, 1)
        match.update_penalty_result(5, 4)
        assert match.played is True
        assert match.winner == 'home'
        assert match.penalties['winner'] == 'home'

    def test_level_shootout_rejected(self):
        match = knockout_match()
        match.update_result(1, 1)
        with pytest.raises(InvalidResultError):
            match.update_penalty_result(3, 3)
        assert match.played is True
        assert match.winner is None
        assert not match.had_penalties()

    def test_penalties_rejected_when_not_level(self):
        match = knockout_match()
        match.update_result(2, 1)
        with pytest.raises(InvalidResultError):
            match.update_penalty_result(5, 4)

    def test_extra_time_rejected_for_group_match(self):
        match = Match('A1', 'a', 'b', GroupContext('group-a', 1))
        match.update_result(0, 0)
        with pytest.raises(InvalidResultError):
            match.update_extra_time_result(1, 0)

    def test_extra_time_requires_regulation_score(self):
        with pytest.raises(InvalidResultError):
            knockout_match().update_extra_time_result(1, 0)


class TestMatchQueries:
    def test_score_display_and_status(self):
        match = knockout_match()
        assert match.score_display() == 'vs'
        assert match.status_text() == 'Scheduled'

        match.update_result(1, 1)
        match.update_extra_time_result(1, 1)
        match.update_penalty_result(5, 4)
        assert match.score_display() == '1 - 1 (AET: 1 - 1) (Pens: 5 - 4)'
        assert match.status_text() == 'Penalties'

    def test_status_after_extra_time(self):
        match = knockout_match()
        match.update_result(0, 0)
        match.update_extra_time_result(1, 0)
        assert match.status_text() == 'After Extra Time'

    def test_is_scheduled_needs_both_teams(self):
        assert not Match('SF-1', 'a', None, KnockoutContext('Semifinals', 1, 0)).is_scheduled()
        assert knockout_match().is_scheduled()

    def test_matchday_only_for_group_matches(self):
        assert Match('A1', 'a', 'b', GroupContext('group-a', 2)).matchday == 2
        assert knockout_match().matchday is None
        assert knockout_match().is_knockout

    def test_serialization_keeps_context_and_shootout(self):
        match = knockout_match()
        match.update_result(2, 2)
        match.update_penalty_result(3, 1)
        restored = Match.from_dict(match.to_dict())
        assert restored.context == KnockoutContext('Final', 0, 0)
        assert restored.winner == 'home'
        assert restored.had_penalties()
        assert restored.score_display() == match.score_display()

    def test_unknown_context_kind_rejected(self):
        with pytest.raises(ValueError):
            context_from_dict({'kind': 'friendly'})
        assert context_from_dict(None) is None


class TestArena:
    def test_lookup_by_id(self):
        arena = Arena()
        arena.add_team(Team('t1', 'Spain'))
        arena.add_match(Match('A1', 't1', None))
        assert arena.team('t1').name == 'Spain'
        assert arena.match('A1').home_team_id == 't1'
        assert arena.match('nope') is None

    def test_team_name_placeholder(self):
        arena = Arena()
        assert arena.team_name(None) == TBD

    def test_renaming_team_seen_everywhere(self):
        arena = Arena()
        arena.add_team(Team('t1', 'Holland'))
        arena.teams['t1'].name = 'Netherlands'
        assert arena.team_name('t1') == 'Netherlands'

    def test_remove_matches(self):
        arena = Arena()
        arena.add_match(Match('QF-1'))
        arena.add_match(Match('QF-2'))
        arena.remove_matches(['QF-1', 'missing'])
        assert list(arena.matches) == ['QF-2']
