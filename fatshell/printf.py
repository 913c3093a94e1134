"""A small printf-style formatter with the console's conversion rules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator

_MASK32 = (1 << 32) - 1
_MASK64 = (1 << 64) - 1
_INT64_MIN_BITS = 1 << 63


def _signed(value: int, bits: int) -> int:
    """Interpret the low ``bits`` bits of ``value`` as a two's-complement integer."""
    value &= (1 << bits) - 1
    if value >> (bits - 1):
        value -= 1 << bits
    return value


def _c_string(text: str) -> str:
    """Cut ``text`` at its first NUL, as a C string would end there."""
    return text.split("\0", 1)[0]


def _isspace(ch: str) -> bool:
    return ch == " " or "\t" <= ch <= "\r"


def _digit_value(ch: str) -> int | None:
    if "0" <= ch <= "9":
        return ord(ch) - ord("0")
    if "a" <= ch <= "z":
        return ord(ch) - ord("a") + 10
    if "A" <= ch <= "Z":
        return ord(ch) - ord("A") + 10
    return None


def _strtol(text: str, pos: int, base: int) -> tuple[int, int]:
    end = len(text)

    def at(i: int) -> str:
        return text[i] if i < end else ""

    while at(pos) and _isspace(at(pos)):
        pos += 1

    negative = False
    if at(pos) == "-":
        negative = True
        pos += 1
    elif at(pos) == "+":
        pos += 1

    if base == 0:
        if at(pos) == "0":
            pos += 1
            if at(pos) in ("x", "X"):
                base = 16
                pos += 1
            else:
                base = 8
        else:
            base = 10

    value = 0
    while at(pos):
        digit = _digit_value(at(pos))
        if digit is None or digit >= base:
            break
        value = _signed(value * base + digit, 64)
        pos += 1

    return (_signed(-value, 64) if negative else value), pos


def strtol(text: str, base: int = 10) -> tuple[int, int]:
    """Parse a long integer from the start of ``text``.

    Leading whitespace and one sign are accepted; base 0 picks 16 for a
    ``0x`` prefix, 8 for a leading ``0`` and 10 otherwise. Returns the value
    and the index just past the last character consumed.
    """
    return _strtol(_c_string(text), 0, base)


@dataclass
class _Flags:
    longflag: bool = False
    sharpflag: bool = False
    zeroflag: bool = False
    spaceflag: bool = False
    sign: bool = False
    width: int = 0
    prec: int = -1


class _Args:
    def __init__(self, args: tuple[Any, ...]) -> None:
        self._it: Iterator[Any] = iter(args)

    def next(self) -> Any:
        try:
            return next(self._it)
        except StopIteration:
            raise TypeError("not enough arguments for format string") from None

    def next_int(self) -> int:
        value = self.next()
        if isinstance(value, str) and len(value) == 1:
            return ord(value)
        return int(value)


def _format_decimal(num: int, is_signed: bool, flags: _Flags) -> str:
    if is_signed and num == _INT64_MIN_BITS:
        return "-9223372036854775808"
    if flags.prec == 0 and num == 0:
        return ""

    negative = is_signed and _signed(num, 64) < 0
    if negative:
        num = (-num) & _MASK64

    digits = str(num)
    has_sign = 1 if is_signed and (negative or flags.sign or flags.spaceflag) else 0

    if flags.prec == -1 and flags.zeroflag:
        flags.prec = flags.width

    parts = [" " * max(0, flags.width - max(len(digits), flags.prec) - has_sign)]
    if has_sign:
        parts.append("-" if negative else "+" if flags.sign else " ")
    parts.append("0" * max(0, flags.prec - has_sign - len(digits)))
    parts.append(digits)
    return "".join(parts)


def _format_hex(num: int, conv: str, flags: _Flags) -> str:
    if flags.prec == 0 and num == 0 and conv != "p":
        return ""

    prefix = conv == "p" or (flags.sharpflag and num != 0)
    prefix_len = 2 if prefix else 0
    digits = format(num, "X" if conv == "X" else "x")

    if flags.prec == -1 and flags.zeroflag:
        flags.prec = flags.width - prefix_len

    parts = [" " * max(0, flags.width - prefix_len - max(len(digits), flags.prec))]
    if prefix:
        parts.append("0X" if conv == "X" else "0x")
    parts.append("0" * max(0, flags.prec - len(digits)))
    parts.append(digits)
    return "".join(parts)


def format_string(fmt: str, *args: Any) -> str:
    """Render ``fmt`` with ``args`` and return the text.

    Supports the flags ``# 0 + space``, widths and precisions (``*`` takes an
    int argument), the length modifiers ``l z t j`` and the conversions
    ``d i u x X p s c n %``. For ``%n`` the argument is a list to which the
    number of characters written so far is appended. Any other conversion
    character is written as it is. Raises TypeError when arguments run out.
    """
    fmt = _c_string(fmt)
    source = _Args(args)
    out: list[str] = []
    flags: _Flags | None = None
    pos = 0

    while pos < len(fmt):
        ch = fmt[pos]

        if flags is None:
            if ch == "%":
                flags = _Flags()
            else:
                out.append(ch)
            pos += 1
            continue

        if ch == "#":
            flags.sharpflag = True
        elif ch == "0":
            flags.zeroflag = True
        elif ch in "lztj":
            flags.longflag = True
        elif ch == "+":
            flags.sign = True
        elif ch == " ":
            flags.spaceflag = True
        elif ch == "*":
            flags.width = _signed(source.next_int(), 32)
        elif "1" <= ch <= "9":
            flags.width, pos = _strtol(fmt, pos, 10)
            flags.width = _signed(flags.width, 32)
            continue
        elif ch == ".":
            pos += 1
            if pos < len(fmt) and fmt[pos] == "*":
                flags.prec = _signed(source.next_int(), 32)
            else:
                prec, pos = _strtol(fmt, pos, 10)
                flags.prec = _signed(prec, 32)
                continue
        elif ch in "xXp":
            is_long = ch == "p" or flags.longflag
            num = source.next_int() & (_MASK64 if is_long else _MASK32)
            out.append(_format_hex(num, ch, flags))
            flags = None
        elif ch in "diu":
            raw = source.next_int()
            num = _signed(raw, 64) if flags.longflag else _signed(raw, 32)
            out.append(_format_decimal(num & _MASK64, ch != "u", flags))
            flags = None
        elif ch == "n":
            sink = source.next()
            sink.append(sum(map(len, out)))
            flags = None
        elif ch == "s":
            text = source.next()
            out.append("(null)" if text is None else _c_string(str(text)))
            flags = None
        elif ch == "c":
            out.append(chr(source.next_int() & 0xFF))
            flags = None
        else:
            out.append(ch)
            flags = None
        pos += 1

    return "".join(out)