"""Shared argument parsing for the benchmark scripts.

Both scripts report bad command-line input the same way: the problem
and a usage message go to stdout and the process exits with code 1,
before any timed work starts.
"""

import argparse
from typing import Any, NoReturn

USAGE_EXIT_CODE: int = 1


class UsageParser(argparse.ArgumentParser):
    """Argument parser that prints usage to stdout and exits 1.

    Args:
        usage_text: Usage message printed on error. Defaults to the
            parser's generated usage line.
    """

    def __init__(self, *args: Any, usage_text: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._usage_text: str | None = usage_text

    def error(self, message: str) -> NoReturn:
        print(f"Error: {message}")
        if self._usage_text is not None:
            print(self._usage_text)
        else:
            print(self.format_usage().rstrip())
        self.exit(USAGE_EXIT_CODE)
