import re
from dataclasses import dataclass

from gha_fix.models import ActionReference

# Matches `uses:` only as the first key on a line; `uses:` after prose or a `#` never matches.
_USES_LINE = re.compile(
    r"""
    ^(?P<prefix>
        [ \t]*(?:-[ \t]+)?
        (?P<key_quote>["']?)uses(?P=key_quote)
        [ \t]*:[ \t]*
    )
    (?P<quote>["']?)(?P<value>[^\s"'#]+)(?P=quote)
    (?:[ \t]+(?P<comment>\#.*?))?
    (?P<trailing>\s*)$
    """,
    re.VERBOSE,
)

_UNPINNABLE_PREFIXES = ("./", "../", "docker://")


@dataclass(frozen=True)
class ParsedUsesLine:
    definition: ActionReference
    prefix: str
    comment: str = ""
    quote: str = ""
    trailing: str = ""

    def render(self, value: str, comment: str) -> str:
        line = f"{self.prefix}{self.quote}{value}{self.quote}"
        if comment:
            line = f"{line} {comment}"
        return f"{line}{self.trailing}"


def split_reference(value: str) -> ActionReference | None:
    """Split ``owner/repo[/path]@ref`` into its parts.

    Local actions, Docker images and values without a ref are not repository
    references and yield None.
    """
    if value.startswith(_UNPINNABLE_PREFIXES):
        return None
    name, sep, ref = value.partition("@")
    if not sep or not ref:
        return None
    owner, _, rest = name.partition("/")
    repo, _, path = rest.partition("/")
    if not owner or not repo:
        return None
    return ActionReference(owner=owner, repo=repo, path=path.strip("/"), ref_or_sha=ref)


def parse_line(line: str) -> ParsedUsesLine | None:
    match = _USES_LINE.match(line)
    if match is None:
        return None
    definition = split_reference(match.group("value"))
    if definition is None:
        return None
    return ParsedUsesLine(
        definition=definition,
        prefix=match.group("prefix"),
        comment=match.group("comment") or "",
        quote=match.group("quote"),
        trailing=match.group("trailing"),
    )
