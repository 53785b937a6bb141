"""
Flask JSON API for the tournament engine.
"""
import os
import random

from flask import Flask, jsonify, request

from tournament.engine import Tournament, get_default_settings, simulate_results
from tournament.storage import TournamentStore

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))


def get_store() -> TournamentStore:
    """Store rooted at the current DATA_DIR."""
    return TournamentStore(DATA_DIR)


def _not_found(tournament_id):
    return jsonify({'error': f'Tournament {tournament_id} not found'}), 404


def _save(store, tournament):
    """Persist *tournament*; the in-memory result is still returned if this fails."""
    if not store.save_tournament(tournament):
        app.logger.warning('Failed to save tournament %s', tournament.id)
        return False
    return True


def _score_pair(value, label):
    if value is None:
        return None
    if not isinstance(value, (list, tuple)):
        raise ValueError(f'{label} must be a [home, away] pair')
    return list(value)


@app.errorhandler(ValueError)
def handle_value_error(e):
    app.logger.warning('Rejected request to %s: %s', request.path, e)
    return jsonify({'error': str(e)}), 400


@app.route('/api/tournaments', methods=['GET'])
def api_list_tournaments():
    store = get_store()
    return jsonify({
        'active': store.get_active_id(),
        'tournaments': store.list_summaries(),
    })


@app.route('/api/tournaments', methods=['POST'])
def api_create_tournament():
    data = request.get_json(silent=True) or {}
    defaults = get_default_settings()
    teams = data.get('teams')
    if not isinstance(teams, list):
        return jsonify({'error': 'teams must be a list of team names'}), 400

    group_count = data.get('group_count', defaults['group_count'])
    seed = data.get('seed')
    rng = random.Random(seed) if seed is not None else None
    tournament = Tournament.create(data.get('name') or defaults['name'], group_count, teams, rng=rng)

    store = get_store()
    with store.lock:
        saved = _save(store, tournament)
        if saved:
            store.set_active(tournament.id)
    app.logger.info('Created tournament %s', tournament.id)
    return jsonify({'success': True, 'saved': saved, 'tournament': tournament.to_dict()}), 201


@app.route('/api/tournaments/<tournament_id>', methods=['GET'])
def api_get_tournament(tournament_id):
    data = get_store().load(tournament_id)
    if data is None:
        return _not_found(tournament_id)
    return jsonify(data)


@app.route('/api/tournaments/<tournament_id>', methods=['DELETE'])
def api_delete_tournament(tournament_id):
    if not get_store().delete(tournament_id):
        return _not_found(tournament_id)
    app.logger.info('Deleted tournament %s', tournament_id)
    return jsonify({'success': True})


@app.route('/api/tournaments/<tournament_id>/matches/<match_id>', methods=['POST'])
def api_update_match(tournament_id, match_id):
    data = request.get_json(silent=True) or {}
    if 'home_score' not in data or 'away_score' not in data:
        return jsonify({'error': 'home_score and away_score are required'}), 400
    extra_time = _score_pair(data.get('extra_time'), 'extra_time')
    penalties = _score_pair(data.get('penalties'), 'penalties')

    store = get_store()
    with store.lock:
        tournament = store.load_tournament(tournament_id)
        if tournament is None:
            return _not_found(tournament_id)
        if not tournament.update_match_result(match_id, data['home_score'], data['away_score'],
                                              extra_time, penalties):
            return jsonify({'error': f'Match {match_id} is not open for results'}), 404
        saved = _save(store, tournament)

    match = tournament.get_match(match_id)
    return jsonify({
        'success': True,
        'saved': saved,
        'match': match.to_dict(),
        'stage': tournament.stage,
        'status': tournament.status,
    })


@app.route('/api/tournaments/<tournament_id>/reset', methods=['POST'])
def api_reset_tournament(tournament_id):
    store = get_store()
    with store.lock:
        tournament = store.load_tournament(tournament_id)
        if tournament is None:
            return _not_found(tournament_id)
        tournament.reset()
        saved = _save(store, tournament)
    return jsonify({'success': True, 'saved': saved, 'stage': tournament.stage})


@app.route('/api/tournaments/<tournament_id>/simulate', methods=['POST'])
def api_simulate(tournament_id):
    data = request.get_json(silent=True) or {}
    seed = data.get('seed')
    rng = random.Random(seed) if seed is not None else None

    store = get_store()
    with store.lock:
        tournament = store.load_tournament(tournament_id)
        if tournament is None:
            return _not_found(tournament_id)
        played = simulate_results(tournament, rng, until_complete=bool(data.get('until_complete')))
        saved = _save(store, tournament)
    return jsonify({
        'success': True,
        'saved': saved,
        'matches_played': played,
        'stage': tournament.stage,
        'status': tournament.status,
    })


@app.route('/api/tournaments/<tournament_id>/standings', methods=['GET'])
def api_standings(tournament_id):
    tournament = get_store().load_tournament(tournament_id)
    if tournament is None:
        return _not_found(tournament_id)
    return jsonify({
        'groups': [
            {'id': g.id, 'name': g.name, 'standings': g.standings, 'stats': g.get_stats()}
            for g in tournament.groups
        ],
        'qualifiers': tournament.qualifiers,
    })


@app.route('/api/tournaments/<tournament_id>/bracket', methods=['GET'])
def api_bracket(tournament_id):
    tournament = get_store().load_tournament(tournament_id)
    if tournament is None:
        return _not_found(tournament_id)
    champion = tournament.champion()
    return jsonify({
        'rounds': tournament.get_bracket(),
        'champion': champion.to_dict() if champion else None,
    })


@app.route('/api/tournaments/<tournament_id>/status', methods=['GET'])
def api_status(tournament_id):
    tournament = get_store().load_tournament(tournament_id)
    if tournament is None:
        return _not_found(tournament_id)
    return jsonify(tournament.get_status())


if __name__ == '__main__':
    app.run(debug=True, port=5000)
