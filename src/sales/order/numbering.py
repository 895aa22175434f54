"""Sales order number generation.

Numbers look like ``SO{YY}{MM}{NNNNN}`` (e.g. ``SO260100001``): a two-digit
year, a two-digit month and a five-digit sequence that restarts every month.
The last number issued for a prefix comes from an injected sequence source,
normally the order store.
"""

import re
from datetime import UTC, datetime
from typing import Protocol

SO_NUMBER_PATTERN = re.compile(r"^SO(\d{2})(\d{2})(\d{5})$")
SEQUENCE_WIDTH = 5


class SequenceSource(Protocol):
    def last_number_with_prefix(self, prefix: str) -> str | None: ...


class SalesOrderNumberGenerator:
    def __init__(self, sequence: SequenceSource, clock=None):
        self._sequence = sequence
        self._clock = clock or (lambda: datetime.now(UTC))

    def prefix(self) -> str:
        now = self._clock()
        return f"SO{now:%y}{now:%m}"

    def generate(self) -> str:
        prefix = self.prefix()
        last = self._sequence.last_number_with_prefix(prefix)

        next_num = 1
        if last:
            next_num = int(last[len(prefix) :]) + 1

        return f"{prefix}{next_num:0{SEQUENCE_WIDTH}d}"

    @staticmethod
    def is_valid(so_num: str) -> bool:
        return bool(so_num) and SO_NUMBER_PATTERN.match(so_num) is not None

    @staticmethod
    def extract_year(so_num: str) -> int | None:
        """Two-digit year of a well-formed number, else None."""
        match = SO_NUMBER_PATTERN.match(so_num or "")
        return int(match.group(1)) if match else None

    @staticmethod
    def extract_sequence(so_num: str) -> int | None:
        match = SO_NUMBER_PATTERN.match(so_num or "")
        return int(match.group(3)) if match else None
