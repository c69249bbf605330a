"""Apply the `readings` DDL to the database at `settings.database_url`.

Usage (after `pip install -e .`):
    python backend/scripts/create_readings_table.py
"""

from db import Database, create_pool
from logging_config import setup_logging
from repo_readings import ReadingRepo
from settings import settings


def main() -> None:
    setup_logging()
    print('Connecting to', settings.database_url)
    db = Database(create_pool())
    db.open()
    try:
        ReadingRepo(db).create_schema()
    finally:
        db.close()
    print('DDL applied')


if __name__ == '__main__':
    main()
