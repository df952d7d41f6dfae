"""Developer tasks for dir2tar: ``python scripts.py <task>``."""

import subprocess
import sys

SOURCES = ["src", "tests"]


def run_tests():
    subprocess.run(["pytest"], check=True)


def run_lint():
    subprocess.run(["flake8", "--max-line-length", "120", *SOURCES], check=True)


def run_typecheck():
    subprocess.run(["mypy", "src/dir2tar"], check=True)


def run_format():
    subprocess.run(["black", *SOURCES], check=True)


def run_coverage():
    subprocess.run(["pytest", "--cov=dir2tar", "--cov-report=term-missing", "--cov-report=xml"], check=True)


def run_smoke():
    """Check that the installed console script starts."""
    subprocess.run(["dir2tar", "--version"], check=True)


def run_checks():
    for task in (run_format, run_lint, run_typecheck, run_tests):
        task()


TASKS = {name: task for name, task in globals().items() if name.startswith("run_")}

if __name__ == "__main__":
    if len(sys.argv) != 2 or sys.argv[1] not in TASKS:
        sys.exit(f"usage: python scripts.py {{{','.join(sorted(TASKS))}}}")
    TASKS[sys.argv[1]]()
