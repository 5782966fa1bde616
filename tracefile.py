# tracefile.py
"""
Trace files: one access per line, `<op> <address>`.

    # comment
    R 0x1f40
    w 1024

`op` starts with r/R or w/W. Addresses take 0x / 0b / 0o prefixes; a bare
token is read as hex.
"""
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from cache import Access, AccessKind

logger = logging.getLogger(__name__)

ADDRESS_LIMIT = 1 << 64
PREFIXES = {"0x": 16, "0b": 2, "0o": 8}
DIGITS = {
    16: re.compile(r"\+?[0-9a-fA-F]+"),
    8: re.compile(r"\+?[0-7]+"),
    2: re.compile(r"\+?[01]+"),
}
TRACE_SUFFIX = ".trace"


class TraceError(ValueError):
    """A trace could not be read; carries where the problem was found."""

    def __init__(self, source, lineno, message):
        self.source = str(source)
        self.lineno = lineno
        self.message = message
        where = f"{self.source}:{lineno}" if lineno else self.source
        super().__init__(f"{where}: {message}")


@dataclass
class Trace:
    name: str
    accesses: List[Access] = field(default_factory=list)

    def __len__(self):
        return len(self.accesses)

    def __iter__(self):
        return iter(self.accesses)


def parse_kind(token: str) -> AccessKind:
    op = token[:1].lower()
    if op == "r":
        return AccessKind.READ
    if op == "w":
        return AccessKind.WRITE
    raise ValueError(f"invalid access kind {token!r}")


def parse_address(token: str) -> int:
    token = token.strip()
    base = PREFIXES.get(token[:2].lower())
    digits = token[2:] if base is not None else token
    # int() alone would take "_" separators and non-ASCII digits
    if base is None:
        base = 16
    if not DIGITS[base].fullmatch(digits):
        raise ValueError(f"unparseable address {token!r}")
    value = int(digits, base)
    if not 0 <= value < ADDRESS_LIMIT:
        raise ValueError(f"address {token!r} out of 64-bit range")
    return value


def parse_lines(lines, source="<trace>") -> List[Access]:
    accesses = []
    for lineno, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split()
        if len(parts) != 2:
            raise TraceError(source, lineno, f"expected '<op> <address>', got {line!r}")
        try:
            accesses.append(Access(parse_kind(parts[0]), parse_address(parts[1])))
        except ValueError as exc:
            raise TraceError(source, lineno, str(exc)) from None
    return accesses


def load_trace(path) -> Trace:
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            accesses = parse_lines(f, source=path)
    except OSError as exc:
        raise TraceError(path, 0, f"cannot read trace: {exc.strerror or exc}") from exc
    except UnicodeDecodeError as exc:
        raise TraceError(path, 0, f"not a text trace: {exc}") from exc
    logger.info("loaded %s: %d accesses", path.name, len(accesses))
    return Trace(name=path.name, accesses=accesses)


def load_traces(paths) -> List[Trace]:
    return [load_trace(p) for p in paths]


def discover_traces(directory="trace") -> List[Path]:
    directory = Path(directory)
    if not directory.is_dir():
        raise TraceError(directory, 0, "trace directory does not exist")
    found = sorted(p for p in directory.iterdir() if p.suffix == TRACE_SUFFIX)
    if not found:
        raise TraceError(directory, 0, f"no *{TRACE_SUFFIX} files found; pass --trace explicitly")
    return found


def write_trace(path, accesses) -> Path:
    path = Path(path)
    os.makedirs(path.parent, exist_ok=True)
    with path.open("w") as f:
        for access in accesses:
            f.write(f"{access.kind.value} 0x{access.address:x}\n")
    return path
