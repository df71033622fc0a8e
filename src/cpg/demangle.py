"""
Symbol demangling for Rust's legacy (Itanium-style) mangling scheme.

    _ZN 4core 3fmt 3num 52_$LT$impl$u20$...$GT$ 3fmt 17h<16 hex> E

* symbols carry a ``_ZN`` (or ``ZN``) prefix and an ``E`` suffix
* every path segment is preceded by its decimal length
* the disambiguating hash is the last segment: ``17h`` + 16 hex digits
* ``$..$`` escapes encode punctuation, ``$u..$`` a unicode code point

Demangling is lossy and total: it never raises, malformed input comes back
unchanged and unknown escapes turn into ``???``.
"""

_PREFIXES = ("_ZN", "ZN")
_SUFFIX = "E"
_HASH_LENGTH = 17
_SEPARATOR = "::"
_UNKNOWN = "???"

_ESCAPES = {
    "SP": "@",
    "BP": "*",
    "RF": "&",
    "LT": "<",
    "GT": ">",
    "LP": "(",
    "RP": ")",
    "C": ",",
}


def demangle(name: str) -> str:
    """Turn a mangled symbol into a readable ``a::b::c`` path.

    Args:
        name: Symbol name as emitted by the compiler.

    Returns:
        The readable path, or ``name`` itself when it is not a mangled symbol
        or cannot be decoded.
    """
    inner = _strip_envelope(name)
    if inner is None:
        return name

    path: list[str] = []
    index = 0
    while index < len(inner):
        digits_end = index
        while digits_end < len(inner) and "0" <= inner[digits_end] <= "9":
            digits_end += 1
        if digits_end == index:
            return name

        length = int(inner[index:digits_end])
        index = digits_end
        remaining = len(inner) - index

        if length == _HASH_LENGTH and remaining == _HASH_LENGTH:
            break
        if length > remaining:
            return name

        path.append(_decode_segment(inner[index:index + length]))
        path.append(_SEPARATOR)
        index += length

    if not path:
        return name
    return "".join(path[:-1])


def _strip_envelope(name: str) -> str | None:
    if not name.endswith(_SUFFIX):
        return None
    for prefix in _PREFIXES:
        if name.startswith(prefix) and len(name) > len(prefix):
            return name[len(prefix):-len(_SUFFIX)]
    return None


def _decode_segment(segment: str) -> str:
    out: list[str] = []
    escape: list[str] | None = None
    i = 0
    while i < len(segment):
        c = segment[i]

        # `_$` opens an escaped run; the underscore carries nothing.
        if c == "_" and segment[i + 1:i + 2] == "$":
            i += 1
            continue

        # Rust writes `::` inside a segment as `..`; the pair yields one `::`, as does a lone `.`.
        if c == ".":
            out.append(_SEPARATOR)
            i += 2 if segment[i + 1:i + 2] == "." else 1
            continue

        if c == "$":
            if escape is None:
                escape = []
            else:
                out.append(_resolve_escape("".join(escape)))
                escape = None
            i += 1
            continue

        if escape is not None:
            escape.append(c)
        else:
            out.append(c)
        i += 1

    if escape is not None:
        out.append(_UNKNOWN)
    return "".join(out)


def _resolve_escape(token: str) -> str:
    if token.startswith("u") and len(token) > 1:
        try:
            return chr(int(token[1:], 16))
        except (ValueError, OverflowError):
            return _UNKNOWN
    return _ESCAPES.get(token, _UNKNOWN)
