"""
Create the shift indexes on an existing PostgreSQL database.

New databases get them from the table metadata at startup; this is for
databases created before the indexes were declared. Fails if a worker
already has more than one ACTIVE shift, which must be resolved by hand.
"""

import os

import psycopg2
from dotenv import load_dotenv

load_dotenv()

index_commands = [
    "CREATE INDEX IF NOT EXISTS ix_shift_worker_id_clock_in_at ON shift (worker_id, clock_in_at);",
    "CREATE INDEX IF NOT EXISTS ix_shift_status_clock_in_at ON shift (status, clock_in_at);",
    # At most one ACTIVE shift per worker
    "CREATE UNIQUE INDEX IF NOT EXISTS uq_shift_active_worker ON shift (worker_id) WHERE status = 'ACTIVE';",
]


def main():
    conn = psycopg2.connect(
        dbname=os.getenv("DB_NAME"),
        user=os.getenv("DB_USER"),
        password=os.getenv("DB_PASSWORD"),
        host=os.getenv("DB_HOST"),
        port=os.getenv("DB_PORT", "5432"),
    )
    try:
        with conn.cursor() as cur:
            for cmd in index_commands:
                print(f"Executing: {cmd}")
                cur.execute(cmd)
        conn.commit()
    finally:
        conn.close()


if __name__ == "__main__":
    main()
