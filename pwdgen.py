#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import argparse
import gzip
import logging
import os
import random
import sys
from typing import Dict, IO, Iterator, List, NamedTuple, Optional, Sequence, Tuple, Union

from tqdm import tqdm

FileName = prog = os.path.basename(sys.argv[0])

FIRST_PRINTABLE = "!"
LAST_PRINTABLE = "~"
ESCAPE = "\\"
REPEAT = "*"

DEFAULT_TIMES = 1
DEFAULT_LOG_LEVEL = "info"

EXIT_NO_PATTERN = 1
EXIT_BAD_PATTERN = 3
EXIT_OUTPUT_EXISTS = 4


class PatternError(ValueError):
    """A pattern is not well-formed. ``position`` is the offset in the pattern text."""

    def __init__(self, message: str, position: int) -> None:
        super().__init__(f"{message} (at offset {position})")
        self.message = message
        self.position = position


class Symbol(NamedTuple):
    """One unit of pattern text. ``\\x`` becomes a single escaped symbol for ``x``."""

    char: str
    escaped: bool
    position: int

    def is_operator(self, char: str) -> bool:
        return not self.escaped and self.char == char


def _printable(ch: str) -> bool:
    return FIRST_PRINTABLE <= ch <= LAST_PRINTABLE


# -------- Tokenizer --------
def tokenize(pattern: str) -> List[Symbol]:
    """
    Split a pattern into symbols, folding every escape into the character it names.
    Both the validator and the parser work on this stream, so ``\\[`` never opens a class.
    """
    symbols: List[Symbol] = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if not _printable(ch):
            raise PatternError(f"character {ch!r} is outside printable ASCII", i)
        if ch == ESCAPE:
            if i + 1 >= len(pattern):
                raise PatternError("dangling escape at end of pattern", i)
            escaped = pattern[i + 1]
            if not _printable(escaped):
                raise PatternError(f"escaped character {escaped!r} is outside printable ASCII", i + 1)
            symbols.append(Symbol(escaped, True, i))
            i += 2
        else:
            symbols.append(Symbol(ch, False, i))
            i += 1
    return symbols


# -------- Validator --------
def _check_range(symbols: Sequence[Symbol], idx: int) -> None:
    dash = symbols[idx]
    start = symbols[idx - 1]
    if start.is_operator("["):
        raise PatternError("range has no start character", dash.position)
    end = symbols[idx + 1] if idx + 1 < len(symbols) else None
    if end is None or end.is_operator("]"):
        raise PatternError("range has no end character", dash.position)
    if end.is_operator("-"):
        raise PatternError("unescaped '-' cannot end a range, write '\\-'", end.position)
    if end.char < start.char:
        raise PatternError(f"descending range {start.char}-{end.char}", dash.position)


def _validate_symbols(symbols: Sequence[Symbol], length: int) -> None:
    inside_class = False
    class_items = 0
    depth = 0

    for idx, sym in enumerate(symbols):
        if inside_class:
            if sym.is_operator("]"):
                if not class_items:
                    raise PatternError("empty character class", sym.position)
                inside_class = False
            elif sym.is_operator("["):
                raise PatternError("'[' inside a character class", sym.position)
            elif sym.is_operator("(") or sym.is_operator(")"):
                raise PatternError(f"'{sym.char}' inside a character class", sym.position)
            else:
                if sym.is_operator("-"):
                    _check_range(symbols, idx)
                class_items += 1
            continue

        if sym.is_operator("["):
            inside_class = True
            class_items = 0
        elif sym.is_operator("]"):
            raise PatternError("']' without a matching '['", sym.position)
        elif sym.is_operator("("):
            depth += 1
        elif sym.is_operator(")"):
            if depth == 0:
                raise PatternError("')' without a matching '('", sym.position)
            depth -= 1

    if inside_class:
        raise PatternError("unclosed character class", length)
    if depth:
        raise PatternError(f"{depth} unclosed group(s)", length)


def validate(pattern: str) -> None:
    """Raise PatternError unless ``pattern`` is well-formed."""
    _validate_symbols(tokenize(pattern), len(pattern))


def is_valid(pattern: str) -> bool:
    try:
        validate(pattern)
    except PatternError as e:
        logging.debug("Rejected pattern %r: %s", pattern, e)
        return False
    return True


# -------- Character-class expansion --------
def expand_class(items: Sequence[Symbol]) -> Tuple[str, ...]:
    """
    Expand the symbols between ``[`` and ``]`` into a deduplicated character set.
    Ranges are inclusive; the first occurrence of a character fixes its place.
    """
    chars: Dict[str, None] = {}
    for idx, sym in enumerate(items):
        if sym.is_operator("-"):
            start, end = items[idx - 1].char, items[idx + 1].char
            for code in range(ord(start), ord(end) + 1):
                chars.setdefault(chr(code))
        else:
            chars.setdefault(sym.char)
    return tuple(chars)


# -------- Pattern tree --------
class Literal(NamedTuple):
    char: str

    def render(self, rng: random.Random) -> Iterator[str]:
        yield self.char


class CharClass(NamedTuple):
    chars: Tuple[str, ...]
    repeat: int = 1

    def render(self, rng: random.Random) -> Iterator[str]:
        # draws are independent, with replacement
        for _ in range(self.repeat):
            yield rng.choice(self.chars)


class Group(NamedTuple):
    nodes: Tuple["Node", ...]
    repeat: int = 1

    def render(self, rng: random.Random) -> Iterator[str]:
        for _ in range(self.repeat):
            for node in self.nodes:
                yield from node.render(rng)


Node = Union[Literal, CharClass, Group]


class _Parser:
    """Builds the node tree from an already validated symbol stream."""

    def __init__(self, symbols: Sequence[Symbol]) -> None:
        self.symbols = symbols
        self.pos = 0

    def sequence(self) -> Tuple[Node, ...]:
        nodes: List[Node] = []
        while self.pos < len(self.symbols):
            sym = self.symbols[self.pos]
            if sym.is_operator(")"):
                break
            self.pos += 1
            if sym.is_operator("("):
                body = self.sequence()
                self.pos += 1  # ')'
                nodes.append(Group(body, self._repeat_count()))
            elif sym.is_operator("["):
                start = self.pos
                while not self.symbols[self.pos].is_operator("]"):
                    self.pos += 1
                chars = expand_class(self.symbols[start:self.pos])
                self.pos += 1  # ']'
                nodes.append(CharClass(chars, self._repeat_count()))
            else:
                nodes.append(Literal(sym.char))
        return tuple(nodes)

    def _repeat_count(self) -> int:
        """Consume a ``*N`` suffix if one follows; N starts with 1-9, so zero never parses."""
        symbols, i = self.symbols, self.pos
        if (
            i + 1 < len(symbols)
            and symbols[i].is_operator(REPEAT)
            and not symbols[i + 1].escaped
            and "1" <= symbols[i + 1].char <= "9"
        ):
            j = i + 1
            while j < len(symbols) and not symbols[j].escaped and "0" <= symbols[j].char <= "9":
                j += 1
            self.pos = j
            return int("".join(s.char for s in symbols[i + 1:j]))
        return 1


def parse(pattern: str) -> Tuple[Node, ...]:
    symbols = tokenize(pattern)
    _validate_symbols(symbols, len(pattern))
    return _Parser(symbols).sequence()


# -------- Generation --------
def make_rng(seed: Optional[int] = None) -> random.Random:
    """Seeded once per process from the OS entropy pool unless a fixed seed is given."""
    if seed is None:
        return random.Random(int.from_bytes(os.urandom(16), "big"))
    return random.Random(seed)


class PasswordPattern:
    """A validated pattern, parsed once and replayed for every password."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.nodes = parse(text)

    def generate(self, rng: random.Random) -> str:
        return "".join(ch for node in self.nodes for ch in node.render(rng))

    def stream(self, times: int, rng: random.Random) -> Iterator[str]:
        for _ in range(times):
            yield self.generate(rng)

    def __repr__(self) -> str:
        return f"PasswordPattern({self.text!r})"


def generate(pattern: str, rng: Optional[random.Random] = None) -> str:
    """Validate ``pattern`` and produce one password from it."""
    return PasswordPattern(pattern).generate(rng if rng is not None else make_rng())


def _non_negative_int(value: str) -> int:
    try:
        n = int(value, 10)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid count: {value!r}")
    if n < 0:
        raise argparse.ArgumentTypeError(f"count must not be negative: {n}")
    return n


class PasswordMaker:
    """
    Generate passwords from a pattern: literal characters, character classes such as
    [A-Za-z0-9] and groups such as (...), each class or group optionally repeated with *N.
    """

    # -------- Argument parsing --------
    def build_parser(self) -> argparse.ArgumentParser:
        epilog = fr"""
        Pattern language:
          [...]    draw one random character from the class; ranges like A-Z are inclusive
          (...)    group a sub-pattern
          *N       after ] or ), repeat N times (N >= 1); groups re-draw on every pass
          \c       the character c, taken literally
          other    printed as is

        Examples:
        # Three letter/digit pairs, e.g. s6B3i8
        python {FileName} -p "([A-Za-z][0-9])*3"

        # Five passwords of 16 characters
        python {FileName} -p "[A-Za-z0-9]*16" -t 5

        # Literal brackets and dashes need a backslash
        python {FileName} -p "\[id\]\-[0-9]*4"

        # Save a gzip'd batch with a progress bar
        python {FileName} -p "[a-z]*8[0-9]*2" -t 100000 -o batch.txt.gz --progress

        # Only check the pattern
        python {FileName} -p "[b-a]" --check
        """

        p = argparse.ArgumentParser(
            prog=os.path.basename(sys.argv[0]),
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description="Generate random passwords from a small pattern language.",
            epilog=epilog,
        )

        p.add_argument("-p", "--pattern", help="Password definition (see pattern language below).")
        p.add_argument(
            "-t", "--times",
            type=_non_negative_int,
            default=DEFAULT_TIMES,
            help="Number of passwords to generate; 0 means 1 (default: %(default)s).",
        )

        # Output & display
        p.add_argument(
            "-o", "--output", help="Output file path. Use .gz to gzip. If omitted, passwords go to stdout.")
        p.add_argument("-s", "--show", action="store_true",
                       help="Also print passwords to stdout when --output is given.")
        p.add_argument("--force", action="store_true",
                       help="Overwrite output file if it exists.")
        p.add_argument("--progress", action="store_true",
                       help="Show a progress bar on stderr.")

        # Generation controls
        p.add_argument("--seed", type=int, default=None,
                       help="Seed the random generator for reproducible output (not for real passwords).")
        p.add_argument("--check", action="store_true",
                       help="Validate the pattern and exit without generating.")

        # Logging
        p.add_argument(
            "--log-level",
            default=DEFAULT_LOG_LEVEL,
            choices=["debug", "info", "warning", "error"],
            help="Logging verbosity (default: %(default)s).",
        )

        return p

    # -------- Entry point --------
    def __init__(self, argv: Optional[Sequence[str]] = None):
        self.args = self.build_parser().parse_args(argv)
        self._configure_logging()

        if self.args.pattern is None:
            logging.error("Need password definition. Use -p PATTERN.")
            sys.exit(EXIT_NO_PATTERN)

        try:
            pattern = PasswordPattern(self.args.pattern)
        except PatternError as e:
            logging.error("Password definition error: %s", e)
            sys.exit(EXIT_BAD_PATTERN)

        logging.debug("Parsed %r into %d node(s): %s", pattern.text, len(pattern.nodes), pattern.nodes)
        if self.args.check:
            logging.info("Pattern is valid: %s", pattern.text)
            return

        times = self.args.times or 1
        if self.args.seed is not None:
            logging.warning("Using fixed seed %d; output is reproducible.", self.args.seed)
        rng = make_rng(self.args.seed)

        out_fp = self._open_output(self.args.output, self.args.force)
        to_stdout = out_fp is None or self.args.show

        passwords = tqdm(
            pattern.stream(times, rng),
            total=times,
            desc="Generating",
            disable=not self.args.progress,
        )

        count = 0
        try:
            for pw in passwords:
                if out_fp is not None:
                    out_fp.write((pw + "\n").encode("ascii"))
                if to_stdout:
                    print(pw)
                count += 1
        finally:
            if out_fp is not None:
                out_fp.close()

        logging.info("Done. Generated %d password(s).", count)

    # -------- Helpers: I/O & logging --------
    def _configure_logging(self):
        level = getattr(logging, self.args.log_level.upper(), logging.INFO)
        logging.basicConfig(level=level, format="[%(levelname)s] %(message)s", force=True)

    def _open_output(self, path: Optional[str], force: bool) -> Optional[IO[bytes]]:
        if not path:
            return None
        if os.path.exists(path) and not force:
            logging.error(
                "Output file exists: %s (use --force to overwrite)", path)
            sys.exit(EXIT_OUTPUT_EXISTS)

        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        if path.endswith(".gz"):
            logging.info("Writing gzip: %s", path)
            return gzip.open(path, "wb")
        else:
            logging.info("Writing: %s", path)
            return open(path, "wb")


def main(argv: Optional[Sequence[str]] = None) -> None:
    PasswordMaker(argv)


# -------- Main --------
if __name__ == "__main__":
    main()
