# main.py

import argparse
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from scrimstats.config import TeamAssignment, resolve_db_path
from scrimstats.database import Database, StorageError
from scrimstats.importer import ImportCoordinator
from scrimstats.ledger_manager import LedgerManager
from scrimstats.models import StatDelta
from scrimstats.roster_manager import RosterManager
from scrimstats.stores import Stores

logger = logging.getLogger("scrimstats")


def _safe_print(message: str) -> None:
    """Print with Unicode fallback for restricted terminal encodings."""
    try:
        print(message)
    except UnicodeEncodeError:
        print(message.encode("ascii", errors="replace").decode("ascii"))


def _configure_logging(verbose: bool, log_file: str = None) -> None:
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=handlers,
        format="%(asctime)s %(levelname)s:%(name)s:%(message)s",
    )


def _delta_from_args(args) -> StatDelta:
    return StatDelta(
        games_played=args.games,
        goals=args.goals,
        assists=args.assists,
        saves=args.saves,
        shots=args.shots,
        demos=args.demos,
        mvps=args.mvps,
    )


def cmd_import(db: Database, args) -> int:
    path = Path(args.file)
    if not path.exists():
        _safe_print(f"Export not found: {path}")
        return 1
    assignment = TeamAssignment.parse(args.team or [])
    coordinator = ImportCoordinator(Stores.from_database(db), assignment=assignment)
    run = coordinator.run(path.read_bytes())
    for line in run.summary_lines():
        _safe_print(line)
    return 0 if run.completed else 1


def cmd_register(db: Database, args) -> int:
    account = RosterManager(db).register_account(args.account_id, args.username, args.display_name, args.team)
    _safe_print(f"Registered {account['display_name']} ({account['account_id']})")
    return 0


def cmd_rename(db: Database, args) -> int:
    account = RosterManager(db).rename_account(args.account_id, args.display_name)
    _safe_print(f"Renamed {account['account_id']} to {account['display_name']}")
    return 0


def cmd_link(db: Database, args) -> int:
    RosterManager(db).link_name(args.name, args.account_id)
    _safe_print(f"Linked '{args.name}' to {args.account_id}")
    return 0


def cmd_unlink(db: Database, args) -> int:
    RosterManager(db).unlink_name(args.name)
    _safe_print(f"Unlinked '{args.name}'")
    return 0


def cmd_links(db: Database, args) -> int:
    links = RosterManager(db).get_links()
    if not links:
        _safe_print("No name links.")
    for link in links:
        _safe_print(f"{link['external_name']} -> {link['account_id']} ({link['display_name'] or '?'})")
    return 0


def cmd_players(db: Database, args) -> int:
    rows = LedgerManager(db).get_leaderboard(team=args.team)
    if not rows:
        _safe_print("No players registered.")
    for row in rows:
        _safe_print(
            f"{row['display_name']:<20} {row['team'] or '-':<10} "
            f"GP {row['games_played']:>4}  G {row['goals']:>4}  A {row['assists']:>4}  "
            f"S {row['saves']:>4}  SH {row['shots']:>4}  D {row['demos']:>4}  MVP {row['mvps']:>3}"
        )
    return 0


def _format_team(record) -> str:
    return f"{record.team_name}: {record.wins}-{record.losses} ({record.total_games} games, {record.win_rate:.1f}% wins)"


def cmd_teams(db: Database, args) -> int:
    for record in LedgerManager(db).get_team_records():
        _safe_print(_format_team(record))
    return 0


def cmd_team(db: Database, args) -> int:
    _safe_print(_format_team(LedgerManager(db).get_team_record(args.team_name)))
    return 0


def cmd_achievements(db: Database, args) -> int:
    report = LedgerManager(db).get_achievements(args.account_id)
    if not report["unlocked"]:
        _safe_print("No achievements yet")
    for item in report["unlocked"]:
        _safe_print(f"[x] {item['name']}: {item['description']}")
    for item in report["progress"]:
        _safe_print(
            f"[ ] {item['name']}: {item['current']}/{item['target']} {item['category']} "
            f"({item['percentage']}%, {item['needed']} to go)"
        )
    return 0


def cmd_compare(db: Database, args) -> int:
    result = LedgerManager(db).compare(args.first, args.second)
    first, second = result["first"], result["second"]
    _safe_print(f"{'':<16} {first['display_name']:>14} {second['display_name']:>14}")
    for label, key in (("Team", "team"), ("Games", "games_played"), ("Goals", "goals"),
                       ("Assists", "assists"), ("Saves", "saves"), ("Shots", "shots"),
                       ("MVPs", "mvps"), ("Goals/game", "goals_per_game"),
                       ("Assists/game", "assists_per_game"), ("MVP rate %", "mvp_rate")):
        left = "-" if first[key] is None else str(first[key])
        right = "-" if second[key] is None else str(second[key])
        _safe_print(f"{label:<16} {left:>14} {right:>14}")
    return 0


def cmd_recent(db: Database, args) -> int:
    games = LedgerManager(db).get_recent_games(args.account_id, args.limit)
    if not games:
        _safe_print("No recorded games.")
    for game in games:
        mvp = " MVP" if game["mvp"] else ""
        _safe_print(
            f"{game['match_timestamp'] or game['recorded_at']}: {game['result'] or '-'} "
            f"{game['goals']}G {game['assists']}A {game['saves']}S{mvp}"
        )
    return 0


def cmd_add_stats(db: Database, args) -> int:
    ledger = LedgerManager(db).add_stats(args.account_id, _delta_from_args(args))
    _safe_print(f"Updated {ledger.account_id}: {ledger.as_dict()}")
    return 0


def cmd_remove_stats(db: Database, args) -> int:
    ledger = LedgerManager(db).remove_stats(args.account_id, _delta_from_args(args))
    _safe_print(f"Updated {ledger.account_id}: {ledger.as_dict()}")
    return 0


def cmd_team_adjust(db: Database, args) -> int:
    record = LedgerManager(db).adjust_team(args.team_name, wins=args.wins, losses=args.losses, remove=args.remove)
    _safe_print(f"{record.team_name}: {record.wins}-{record.losses}")
    return 0


def cmd_wipe(db: Database, args) -> int:
    manager = LedgerManager(db)
    if args.target in ("players", "all"):
        manager.wipe_ledgers()
    if args.target in ("teams", "all"):
        manager.wipe_team_records()
    _safe_print(f"Wiped {args.target}")
    return 0


def _add_stat_options(sub: argparse.ArgumentParser) -> None:
    sub.add_argument("account_id")
    for name in ("games", "goals", "assists", "saves", "shots", "demos", "mvps"):
        sub.add_argument(f"--{name}", type=int, default=0)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scrim stats import and ledgers")
    parser.add_argument("--db", default="", help="SQLite DB path (defaults to SCRIMSTATS_DB_PATH or data/scrimstats.db)")
    parser.add_argument("--verbose", action="store_true", help="Verbose logging")
    parser.add_argument("--log-file", default="", help="Also log to a rotating file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sub = subparsers.add_parser("import", help="Import a match export")
    sub.add_argument("file")
    sub.add_argument("--team", action="append", metavar="COLOR=TEAM",
                     help="Credit a color's results to a team, e.g. Orange=A-Team (repeatable)")
    sub.set_defaults(func=cmd_import)

    sub = subparsers.add_parser("register", help="Register an account")
    sub.add_argument("account_id")
    sub.add_argument("username")
    sub.add_argument("--display-name", default=None)
    sub.add_argument("--team", default=None)
    sub.set_defaults(func=cmd_register)

    sub = subparsers.add_parser("rename", help="Change an account's display name")
    sub.add_argument("account_id")
    sub.add_argument("display_name")
    sub.set_defaults(func=cmd_rename)

    sub = subparsers.add_parser("link", help="Link an export name to an account")
    sub.add_argument("name")
    sub.add_argument("account_id")
    sub.set_defaults(func=cmd_link)

    sub = subparsers.add_parser("unlink", help="Remove an export name link")
    sub.add_argument("name")
    sub.set_defaults(func=cmd_unlink)

    sub = subparsers.add_parser("links", help="List export name links")
    sub.set_defaults(func=cmd_links)

    sub = subparsers.add_parser("players", help="List player ledgers")
    sub.add_argument("--team", default=None)
    sub.set_defaults(func=cmd_players)

    sub = subparsers.add_parser("teams", help="List team records")
    sub.set_defaults(func=cmd_teams)

    sub = subparsers.add_parser("team", help="Show one team's record and win rate")
    sub.add_argument("team_name")
    sub.set_defaults(func=cmd_team)

    sub = subparsers.add_parser("achievements", help="Show an account's achievements and progress")
    sub.add_argument("account_id")
    sub.set_defaults(func=cmd_achievements)

    sub = subparsers.add_parser("compare", help="Compare two accounts")
    sub.add_argument("first")
    sub.add_argument("second")
    sub.set_defaults(func=cmd_compare)

    sub = subparsers.add_parser("recent", help="Show an account's recent games")
    sub.add_argument("account_id")
    sub.add_argument("--limit", type=int, default=10)
    sub.set_defaults(func=cmd_recent)

    sub = subparsers.add_parser("add-stats", help="Add to an account's ledger")
    _add_stat_options(sub)
    sub.set_defaults(func=cmd_add_stats)

    sub = subparsers.add_parser("remove-stats", help="Subtract from an account's ledger")
    _add_stat_options(sub)
    sub.set_defaults(func=cmd_remove_stats)

    sub = subparsers.add_parser("team-adjust", help="Add or remove team wins/losses")
    sub.add_argument("team_name")
    sub.add_argument("--wins", type=int, default=0)
    sub.add_argument("--losses", type=int, default=0)
    sub.add_argument("--remove", action="store_true")
    sub.set_defaults(func=cmd_team_adjust)

    sub = subparsers.add_parser("wipe", help="Reset player ledgers and/or team records")
    sub.add_argument("target", choices=("players", "teams", "all"))
    sub.set_defaults(func=cmd_wipe)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose, args.log_file or None)

    try:
        db = Database(str(resolve_db_path(args.db or None)))
    except StorageError as e:
        _safe_print(f"ERROR: {e}")
        return 2

    try:
        return args.func(db, args)
    except ValueError as e:
        _safe_print(f"Error: {e}")
        return 1
    except StorageError as e:
        logger.error("Storage failure: %s", e)
        _safe_print(f"ERROR: {e}")
        return 2
    finally:
        db.close()


if __name__ == '__main__':
    sys.exit(main())
