"""Score candidate passwords against a local breach-password index.

Build the index once from a corpus sorted by hash:

    scoreapp.py build --passwd pwned-passwords-sha1-ordered-by-hash.txt

then score a batch of passwords (one per line) from a file or stdin:

    scoreapp.py score --filename passwords.txt
    cat passwords.txt | scoreapp.py score
"""

import argparse
import getpass
import sys
from typing import List, Optional

from scoreme import ScoreConfig, configure_logging
from scoreme.auth import set_operator_password
from scoreme.config import API_HOST, API_PORT, BACKENDS, POLICIES
from scoreme.storage import StorageError

from cli import build_index_flow, check_flow, score_flow, serve_flow
from cli.prompts import prompt_new_password


def _config_from_args(args: argparse.Namespace) -> ScoreConfig:
    return ScoreConfig.from_env().with_overrides(
        backend=args.backend,
        datadir=args.datadir,
        dbname=args.dbname,
        bucket=args.bucketname,
        prefix_len=args.prefixlen,
        split_len=args.splitlen,
        point_value=getattr(args, "point", None),
        deadline_seconds=getattr(args, "timeout", None),
        batch_size=getattr(args, "batchsize", None),
        policy=getattr(args, "policy", None),
    )


def cmd_build(args: argparse.Namespace) -> int:
    return build_index_flow(_config_from_args(args), args.passwd, assume_yes=args.yes)


def cmd_score(args: argparse.Namespace) -> int:
    return score_flow(_config_from_args(args), args.filename, nocheat=args.nocheat)


def cmd_check(args: argparse.Namespace) -> int:
    password = args.password
    if password is None:
        password = getpass.getpass("Enter password to check: ")
    if not password:
        print("No password entered.")
        return 1
    return check_flow(_config_from_args(args), password)


def cmd_serve(args: argparse.Namespace) -> int:
    return serve_flow(_config_from_args(args), args.host, args.port, open_browser=args.open)


def cmd_set_operator_password(args: argparse.Namespace) -> int:
    try:
        set_operator_password(prompt_new_password())
    except (ValueError, StorageError) as e:
        print(e)
        return 1
    print("Operator password saved.")
    return 0


def _add_index_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("--backend", choices=BACKENDS, help="Index backend: directory tree or SQLite file")
    p.add_argument("--datadir", help="The dir containing the hash tree (tree backend)")
    p.add_argument("--dbname", help="Database file name (kv backend)")
    p.add_argument("--bucketname", help="Bucket (table) name (kv backend)")
    p.add_argument("--prefixlen", type=int, help="Prefix length used for the hash tree shards")
    p.add_argument("--splitlen", type=int, help="Path segment length (tree backend)")


def _add_scoring_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("--timeout", type=float, help="Seconds allowed for the lookup phase")
    p.add_argument("--point", type=int, help="Points per matched password")
    p.add_argument("--policy", choices=POLICIES, help="unique: dedupe and penalize repeats; per_line: score every line")


def build_parser() -> argparse.ArgumentParser:
    config = ScoreConfig.from_env()
    p = argparse.ArgumentParser(
        description="Score passwords against a prefix-sharded breach index",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog=config.rules(),
    )
    p.add_argument("--debug", action="store_true", help="Turn on debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_build = sub.add_parser("build", help="Build or extend the index from a sorted hash:count corpus")
    p_build.add_argument("--passwd", required=True, help="Corpus file of HASH:COUNT lines sorted by hash")
    p_build.add_argument("--batchsize", type=int, help="Report progress every N entries")
    p_build.add_argument("-y", "--yes", action="store_true", help="Append to an existing index without asking")
    _add_index_options(p_build)
    p_build.set_defaults(func=cmd_build)

    p_score = sub.add_parser("score", help="Score passwords from a file or stdin")
    p_score.add_argument("--filename", help="File of passwords to check (default: stdin)")
    p_score.add_argument("--nocheat", action="store_true", help="Require the operator password first")
    _add_index_options(p_score)
    _add_scoring_options(p_score)
    p_score.set_defaults(func=cmd_score)

    p_check = sub.add_parser("check", help="Check a single password (interactive by default)")
    p_check.add_argument("--password", help="Password literal (avoid; prefer interactive)")
    _add_index_options(p_check)
    p_check.set_defaults(func=cmd_check)

    p_serve = sub.add_parser("serve", help="Run the easy-mode web form")
    p_serve.add_argument("--host", default=API_HOST, help=f"Bind address (default: {API_HOST})")
    p_serve.add_argument("--port", type=int, default=API_PORT, help=f"Port (default: {API_PORT})")
    p_serve.add_argument("--open", action="store_true", help="Open the form in a browser")
    _add_index_options(p_serve)
    _add_scoring_options(p_serve)
    p_serve.set_defaults(func=cmd_serve)

    p_operator = sub.add_parser("set-operator-password", help="Set the password required by --nocheat")
    p_operator.set_defaults(func=cmd_set_operator_password)

    return p


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(debug=args.debug)
    try:
        return args.func(args)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nAborted.")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
