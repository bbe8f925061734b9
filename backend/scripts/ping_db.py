"""CLI script to check the configured MongoDB and create the app's indexes.
Usage: python scripts/ping_db.py [--skip-indexes]
"""
import sys
import argparse
import logging
import pathlib
# Ensure `backend/` is on sys.path so `studybuddy` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from pymongo.errors import PyMongoError
from studybuddy import database
from studybuddy.config import settings


def main(skip_indexes: bool = False) -> int:
    """Ping the database and ensure indexes; return a process exit code."""
    client = database.create_client(settings.MONGODB_URL, settings.MONGODB_TIMEOUT_MS)
    db = client[settings.MONGODB_DB]
    try:
        if not database.ping_database(db):
            print(f'Database at {settings.MONGODB_URL} is not reachable')
            return 1
        if not skip_indexes:
            try:
                database.ensure_indexes(db)
            except PyMongoError as e:
                print(f'Failed to create indexes: {e}')
                return 1
            print('Indexes ensured.')
        print(f'Database {db.name} OK')
        return 0
    finally:
        client.close()


if __name__ == '__main__':
    logging.basicConfig(level=settings.LOG_LEVEL)
    parser = argparse.ArgumentParser()
    parser.add_argument('--skip-indexes', action='store_true', help='Only ping, do not create indexes')
    args = parser.parse_args()
    sys.exit(main(skip_indexes=args.skip_indexes))
