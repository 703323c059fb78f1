#!/usr/bin/env python3
"""
Run the AnswerScope test suite with coverage.

Extra arguments are handed to pytest, e.g. ``./run_tests.py -k mistake``.
"""
import os
import subprocess
import sys

COVERAGE_ARGS = [
    "--cov=app",
    "--cov=worker",
    "--cov-report=term-missing",
    "--cov-report=html:htmlcov",
]


def build_command(extra_args):
    """pytest invocation for the current interpreter."""
    return [sys.executable, "-m", "pytest", "tests/", "-v", "--tb=short", *COVERAGE_ARGS, *extra_args]


def run_tests(extra_args=()):
    # The application engine must never touch a real database file
    env = dict(os.environ, DB_URL="sqlite://", APP_NOW_MODE="real")

    cmd = build_command(list(extra_args))
    print(f"Running AnswerScope tests: {' '.join(cmd)}")

    try:
        return subprocess.run(cmd, env=env).returncode
    except FileNotFoundError:
        print("pytest not found. Install the test extra with: pip install -e '.[test]'")
        return 1


if __name__ == "__main__":
    sys.exit(run_tests(sys.argv[1:]))
