# Command-line entry point for running a tournament from the terminal

import argparse
import logging
import os
import random
import sys

import yaml

from tournament.engine import Tournament, get_default_settings, simulate_results
from tournament.storage import TournamentStore


def default_data_dir():
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(base_dir, 'data'))


def load_teams(file_path):
    """
    Read team names from a YAML file: either a plain list, or a mapping of
    label -> list of names, which is flattened in file order.
    """
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file)
    if isinstance(data, dict):
        teams = []
        for names in data.values():
            teams.extend(names or [])
        return teams
    return data or []


def print_tournament(tournament):
    status = tournament.get_status()
    print(f"{tournament.name} [{tournament.id}]")
    print(f"Stage: {status['stage']}  Status: {status['status']}  "
          f"Played: {status['matches_played']}/{status['total_matches']} ({status['progress_percentage']}%)")

    for group in tournament.groups:
        print(f"\nGroup {group.name}")
        print(f"  {'Team':<24} {'P':>2} {'W':>2} {'D':>2} {'L':>2} {'GF':>3} {'GA':>3} {'GD':>4} {'Pts':>4}")
        for row in group.standings:
            print(f"  {row['name']:<24} {row['played']:>2} {row['won']:>2} {row['drawn']:>2} {row['lost']:>2} "
                  f"{row['goals_for']:>3} {row['goals_against']:>3} {row['goal_difference']:>4} {row['points']:>4}")

    if tournament.stage == 'group':
        print("\nRemaining group matches:")
        for match in tournament.playable_matches():
            print(f"  {match.id}: {tournament.arena.team_name(match.home_team_id)} vs "
                  f"{tournament.arena.team_name(match.away_team_id)} (matchday {match.matchday})")

    for knockout_round in tournament.get_bracket():
        print(f"\n{knockout_round['name']}")
        for match in knockout_round['matches']:
            print(f"  {match['id']}: {match['home_team']} {match['score']} {match['away_team']}")

    champion = tournament.champion()
    if champion:
        print(f"\nChampion: {champion.name}")


def _load(store, tournament_id):
    tournament_id = tournament_id or store.get_active_id()
    if not tournament_id:
        print("No tournament given and none is active.", file=sys.stderr)
        return None
    tournament = store.load_tournament(tournament_id)
    if tournament is None:
        print(f"Tournament {tournament_id} not found.", file=sys.stderr)
    return tournament


def cmd_create(store, args):
    teams = load_teams(args.teams_file) if args.teams_file else list(args.teams)
    rng = random.Random(args.seed) if args.seed is not None else None
    tournament = Tournament.create(args.name, args.groups, teams, rng=rng)
    if not store.save_tournament(tournament):
        print("Error: could not save tournament", file=sys.stderr)
        return 2
    store.set_active(tournament.id)
    print(f"Created tournament {tournament.id}")
    print_tournament(tournament)
    return 0


def cmd_show(store, args):
    tournament = _load(store, args.id)
    if tournament is None:
        return 1
    print_tournament(tournament)
    return 0


def cmd_result(store, args):
    with store.lock:
        tournament = _load(store, args.id)
        if tournament is None:
            return 1
        if not tournament.update_match_result(args.match_id, args.home_score, args.away_score,
                                              args.extra_time, args.penalties):
            print(f"Match {args.match_id} is not open for results.", file=sys.stderr)
            return 1
        if not store.save_tournament(tournament):
            print("Error: could not save tournament", file=sys.stderr)
            return 2
    match = tournament.get_match(args.match_id)
    home = tournament.arena.team_name(match.home_team_id)
    away = tournament.arena.team_name(match.away_team_id)
    print(f"{match.id}: {home} {match.score_display()} {away} ({match.status_text()})")
    if tournament.champion():
        print(f"Champion: {tournament.champion().name}")
    return 0


def cmd_simulate(store, args):
    rng = random.Random(args.seed) if args.seed is not None else None
    with store.lock:
        tournament = _load(store, args.id)
        if tournament is None:
            return 1
        played = simulate_results(tournament, rng, until_complete=args.all)
        if not store.save_tournament(tournament):
            print("Error: could not save tournament", file=sys.stderr)
            return 2
    print(f"Simulated {played} matches")
    print_tournament(tournament)
    return 0


def cmd_reset(store, args):
    with store.lock:
        tournament = _load(store, args.id)
        if tournament is None:
            return 1
        tournament.reset()
        if not store.save_tournament(tournament):
            print("Error: could not save tournament", file=sys.stderr)
            return 2
    print(f"Tournament {tournament.id} reset to the group stage")
    return 0


def cmd_list(store, args):
    active = store.get_active_id()
    summaries = store.list_summaries()
    if not summaries:
        print("No tournaments saved.")
    for summary in summaries:
        marker = '*' if summary['id'] == active else ' '
        print(f"{marker} {summary['id']:<32} {summary['name']:<24} {summary['stage']:<9} {summary['status']}")
    return 0


def cmd_delete(store, args):
    if not store.delete(args.id):
        print(f"Tournament {args.id} not found.", file=sys.stderr)
        return 1
    print(f"Deleted {args.id}")
    return 0


def _pair(value):
    parts = value.replace(':', '-').split('-')
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"expected HOME-AWAY, got {value!r}")
    try:
        return [int(parts[0]), int(parts[1])]
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected two integers, got {value!r}")


def build_parser():
    defaults = get_default_settings()
    parser = argparse.ArgumentParser(description='Run a group + knockout tournament')
    parser.add_argument('--data-dir', default=default_data_dir(), help='Directory holding saved tournaments')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log engine activity')
    sub = parser.add_subparsers(dest='command', required=True)

    create = sub.add_parser('create', help='Create a tournament and make it active')
    create.add_argument('teams', nargs='*', help='Team names (or use --teams-file)')
    create.add_argument('--teams-file', help='YAML file with team names')
    create.add_argument('--name', default=defaults['name'])
    create.add_argument('--groups', type=int, default=defaults['group_count'])
    create.add_argument('--seed', type=int, help='Seed for a reproducible draw')
    create.set_defaults(func=cmd_create)

    show = sub.add_parser('show', help='Show standings and bracket')
    show.add_argument('--id', help='Tournament id (default: active)')
    show.set_defaults(func=cmd_show)

    result = sub.add_parser('result', help='Enter a match result')
    result.add_argument('match_id')
    result.add_argument('home_score', type=int)
    result.add_argument('away_score', type=int)
    result.add_argument('--extra-time', type=_pair, help='Extra-time goals as HOME-AWAY')
    result.add_argument('--penalties', type=_pair, help='Shootout score as HOME-AWAY')
    result.add_argument('--id', help='Tournament id (default: active)')
    result.set_defaults(func=cmd_result)

    simulate = sub.add_parser('simulate', help='Play open matches with random scores')
    simulate.add_argument('--all', action='store_true', help='Keep going until there is a champion')
    simulate.add_argument('--seed', type=int)
    simulate.add_argument('--id', help='Tournament id (default: active)')
    simulate.set_defaults(func=cmd_simulate)

    reset = sub.add_parser('reset', help='Clear all results')
    reset.add_argument('--id', help='Tournament id (default: active)')
    reset.set_defaults(func=cmd_reset)

    sub.add_parser('list', help='List saved tournaments').set_defaults(func=cmd_list)

    delete = sub.add_parser('delete', help='Delete a saved tournament')
    delete.add_argument('id')
    delete.set_defaults(func=cmd_delete)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')
    store = TournamentStore(args.data_dir)
    try:
        return args.func(store, args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
