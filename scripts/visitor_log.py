import argparse
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from personal_site import create_app
from personal_site.visitor_log import AlreadySigned, InvalidInput, StoreUnavailable


def main():
    parser = argparse.ArgumentParser(description="Inspect or sign the site's visitor log.")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("list", help="Print every signing, most recent first.")
    sign_parser = subparsers.add_parser("sign", help="Sign the visitor log for today.")
    sign_parser.add_argument("name", help="Name to record.")
    args = parser.parse_args()

    app = create_app()
    service = app.extensions["visitor_log"]
    with app.app_context():
        try:
            if args.command == "list":
                entries = service.list_entries()
                for entry in entries:
                    print(f"{service.local_day(entry.signed_at).isoformat()}  {entry.name}")
                print(f"Total signings: {len(entries)}")
                return 0

            outcome = service.try_sign_today(args.name)
        except (InvalidInput, StoreUnavailable) as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1

    if isinstance(outcome, AlreadySigned):
        print(f"Already signed for {outcome.day.isoformat()}")
    else:
        print(f"Signed by {outcome.entry.name} on {outcome.entry.signed_day.isoformat()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
