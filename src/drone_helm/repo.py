import re
from dataclasses import dataclass

from drone_helm.errors import RepoParseError

_REPO_RE = re.compile(r"^(?P<name>[\w-]+)=(?P<url>(http|https)://[\w\-./:]+)", re.ASCII)

_CHAR_RE = re.compile(
    r"""\\(?P<escape>x[0-9a-fA-F]{2}|u[0-9a-fA-F]{4}|U[0-9a-fA-F]{8}|[0-7]{3}|[abfnrtv\\'"])|(?P<char>[^\\\n])"""
)
_SIMPLE_ESCAPES = {"a": "\a", "b": "\b", "f": "\f", "n": "\n", "r": "\r", "t": "\t", "v": "\v", "\\": "\\"}


@dataclass(frozen=True)
class HelmRepo:
    """
    A Helm chart repository to add with `helm repo add`.
    """

    name: str
    url: str

    @staticmethod
    def parse(spec: str) -> "HelmRepo":
        """
        Parse a repository declaration of the form `name=https://host/path`. The declaration may be wrapped in quotes.
        Anything following the URL is ignored.

        Raises:
            RepoParseError: If the declaration does not have the expected form.
        """

        match = _REPO_RE.match(unquote(spec))
        if match is None:
            raise RepoParseError(f"Invalid repo definition: {spec}")
        return HelmRepo(match.group("name"), match.group("url"))


def unquote(s: str) -> str:
    """
    Remove one layer of quotes if *s* is a valid quoted string literal, otherwise return *s* unchanged.

    Double quotes support the escapes `\\a \\b \\f \\n \\r \\t \\v \\\\ \\"`, `\\xHH`, `\\ooo` (up to `\\377`),
    `\\uHHHH` and `\\UHHHHHHHH`; an unescaped newline or any other escape makes the literal invalid. Backquotes
    enclose raw text (carriage returns are dropped). Single quotes enclose exactly one, possibly escaped, character.
    `\\xHH` and `\\ooo` decode to the code point of the byte value.
    """

    if len(s) < 2 or s[0] != s[-1]:
        return s

    quote, body = s[0], s[1:-1]
    match quote:
        case "`":
            return s if "`" in body else body.replace("\r", "")
        case '"' | "'":
            value = _decode_escapes(body, quote)
            if value is None or (quote == "'" and len(value) != 1):
                return s
            return value

    return s


def _decode_escapes(body: str, quote: str) -> str | None:
    result = []
    pos = 0
    while pos < len(body):
        match = _CHAR_RE.match(body, pos)
        if match is None:
            return None
        pos = match.end()

        if (char := match.group("char")) is not None:
            if char == quote:
                return None
            result.append(char)
            continue

        escape = match.group("escape")
        if escape in "'\"":
            if escape != quote:
                return None
            result.append(escape)
        elif escape in _SIMPLE_ESCAPES:
            result.append(_SIMPLE_ESCAPES[escape])
        elif escape[0] in "xuU":
            code = int(escape[1:], 16)
            if code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
                return None
            result.append(chr(code))
        else:
            code = int(escape, 8)
            if code > 0xFF:
                return None
            result.append(chr(code))

    return "".join(result)
