# -*- coding: utf-8 -*-
# pydoit task file
# see https://pydoit.org/
# run from this dir with `doit`, or `doit list`, `doit help` etc. (pip install doit 1st)

from doit.action import CmdAction


def _build_pytest_command(
    test_dir,
    keyword="",
    speed="",
    retry=False,
    print_logs=False,
    full_trace=False,
):
    """Assemble the pytest command line for the test tasks."""
    cmd = ["pytest"]

    if print_logs:
        cmd.append("--capture=no")
    if full_trace:
        cmd.append("--full-trace")

    cmd.extend(["--color=yes", "-vv"])

    if retry:
        cmd.append("--lf")
    if keyword:
        cmd.extend(["-k", keyword])
    if speed == "slow":
        cmd.extend(["-m", "slow"])
    elif speed in ("not slow", "fast"):
        cmd.extend(["-m", '"not slow"'])
    elif speed not in ("", "all"):
        raise ValueError(
            f"Invalid speed filter: {speed}. Use 'slow', 'fast' or 'all'"
        )

    cmd.append(test_dir)
    return " ".join(cmd)


def task_install():
    """Install impscope in editable mode, with the test extra"""
    return {
        "actions": ['pip install -e ".[test]"'],
        "verbosity": 2,
    }


def task_test():
    """Run the test suite (test/logic/)."""

    def router(keyword, speed, retry, print_logs, full_trace):
        try:
            return _build_pytest_command(
                "test/logic/",
                keyword=keyword,
                speed=speed,
                retry=retry,
                print_logs=print_logs,
                full_trace=full_trace,
            )
        except ValueError as e:
            return f"echo 'Error: {str(e)}' && exit 1"

    return {
        "actions": [CmdAction(router)],
        "params": [
            {"name": "keyword", "short": "k", "default": ""},
            {"name": "speed", "short": "s", "default": ""},
            {"name": "retry", "short": "r", "default": False, "type": bool},
            {"name": "print_logs", "short": "p", "default": False, "type": bool},
            {"name": "full_trace", "short": "f", "default": False, "type": bool},
        ],
        "verbosity": 2,
    }


def task_format():
    """Sort imports and format code with ruff."""
    return {
        "actions": [
            "ruff check --select I --fix src/impscope test/ dodo.py",
            "ruff format src/impscope test/ dodo.py",
        ],
        "verbosity": 2,
    }


def task_docs():
    """Generate HTML documentation with pdoc3 into docs/."""
    return {
        "actions": [
            "pdoc3 --output-dir docs/ --html --force --skip-errors ./src/impscope/"
        ],
        "verbosity": 2,
    }
