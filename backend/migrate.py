#!/usr/bin/env python3
"""
Apply pending Alembic migrations before the API starts.

Run from any directory; alembic.ini is resolved relative to this file.
"""

import os
import subprocess
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parent


def run_migrations(target: str = "head") -> int:
    """Upgrade the database to `target`. Returns a process exit code."""
    print(f"Running database migrations (target: {target})...")
    print(f"   Database: {os.getenv('DATABASE_URL', 'SQLite (development)')}")

    try:
        result = subprocess.run(
            ["alembic", "upgrade", target],
            check=True,
            capture_output=True,
            text=True,
            cwd=BACKEND_DIR,
        )
    except subprocess.CalledProcessError as e:
        print("Migration failed:")
        print(e.stdout)
        print(e.stderr)
        return 1
    except FileNotFoundError:
        print("Migration failed: alembic executable not found on PATH")
        return 1

    print(result.stdout or result.stderr)
    print("Migrations completed.")
    return 0


if __name__ == "__main__":
    sys.exit(run_migrations(*sys.argv[1:2]))
