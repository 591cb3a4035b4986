"""Reading inserted sequences out of minimap2-style cs tags."""

from __future__ import annotations

import logging
import re

from .repeats import RepeatInterval

log = logging.getLogger(__name__)

_CS_OPERATION = re.compile(r"(:\d+)|(\*\w+)|(\+\w+)|(-\w+)")

JUNCTION_WINDOW = 15
"""How far (in reference bases) an insertion may lie from the excised repeat."""


def split_cs(cs: str) -> list[str]:
    """Split a cs tag into its operations.

    ``':32*nt*na:10-gga:5+aaa:10'`` becomes
    ``[':32', '*nt', '*na', ':10', '-gga', ':5', '+aaa', ':10']``.
    """
    return [match.group(0) for match in _CS_OPERATION.finditer(cs)]


def parse_cs(
    target_start: int, cs: str, minlen: int, flanking: int, repeat: RepeatInterval
) -> str | None:
    """Return the inserted sequence of an alignment near the repeat junction.

    The alignment is to a repeat-compressed reference with ``flanking`` bases
    on either side of the excised repeat, so the junction lies at position
    ``flanking``. Insertions longer than ``minlen`` that start within
    ``JUNCTION_WINDOW`` bases of it are concatenated; None is returned when
    there are none.
    """
    ref_pos = target_start
    log.debug("%s: Parsing CS tag for read at %d:%s", repeat, ref_pos, cs)
    low, high = flanking - JUNCTION_WINDOW, flanking + JUNCTION_WINDOW
    insertions = []
    for operation in split_cs(cs):
        kind, body = operation[0], operation[1:]
        if kind == ":":
            ref_pos += int(body)
        elif kind == "*":
            # *na: reference base n replaced by read base a
            ref_pos += len(body) // 2
        elif kind == "-":
            ref_pos += len(body)
        elif kind == "+":
            if len(body) > minlen:
                if low <= ref_pos <= high:
                    insertions.append(body)
                else:
                    log.debug(
                        "%s: Insertion at %d is too far from the junction to be considered: %s",
                        repeat,
                        ref_pos,
                        body,
                    )
        else:
            raise ValueError(f"Unexpected operation in cs tag: {kind}")
    return "".join(insertions) if insertions else None