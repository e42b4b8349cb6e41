"""
Frontmatter codec for Obsidian notes

Splits a note into its YAML frontmatter and body, and rebuilds the note
after the frontmatter has been changed. The body is carried through
untouched, byte for byte, and the header keeps the note's line endings.

Scalars resolve the way Obsidian reads them (YAML 1.2 core schema):
only true/false are booleans, integers are plain decimal, 0o octal or
0x hex, and dates stay strings. So `yes`, `1:30`, `1_000` and
`completed_date: 2026-10-19T14:03:11+02:00` come back exactly as written
instead of turning into booleans, numbers or datetime objects.
"""

import logging
import re
from typing import Any, Dict, Optional, Tuple

import yaml

from .errors import FrontmatterParseError

logger = logging.getLogger(__name__)

FENCE = "---"
_BOOL_TAG = "tag:yaml.org,2002:bool"
_INT_TAG = "tag:yaml.org,2002:int"
_FLOAT_TAG = "tag:yaml.org,2002:float"
_DROPPED_TAGS = {_BOOL_TAG, _INT_TAG, _FLOAT_TAG, "tag:yaml.org,2002:timestamp"}

_YAML12_BOOL = re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$")
_YAML12_INT = re.compile(r"^(?:[-+]?[0-9]+|0o[0-7]+|0x[0-9a-fA-F]+)$")
_YAML12_FLOAT = re.compile(
    r"^(?:[-+]?(?:\.[0-9]+|[0-9]+(?:\.[0-9]*)?)(?:[eE][-+]?[0-9]+)?"
    r"|[-+]?\.(?:inf|Inf|INF)"
    r"|\.(?:nan|NaN|NAN))$"
)


def _core_resolvers(resolvers: dict) -> dict:
    """Implicit resolvers of the YAML 1.2 core schema for bool, int and float; no timestamps"""
    filtered = {
        first: [(tag, regexp) for tag, regexp in entries if tag not in _DROPPED_TAGS]
        for first, entries in resolvers.items()
    }
    for first in "tTfF":
        filtered.setdefault(first, []).insert(0, (_BOOL_TAG, _YAML12_BOOL))
    # int before float: the float pattern also matches plain integers
    for first in "-+0123456789.":
        entries = filtered.setdefault(first, [])
        entries.insert(0, (_FLOAT_TAG, _YAML12_FLOAT))
        if first != ".":
            entries.insert(0, (_INT_TAG, _YAML12_INT))
    return filtered


class FrontmatterLoader(yaml.SafeLoader):
    """SafeLoader resolving scalars like Obsidian (YAML 1.2 core schema)"""


class FrontmatterDumper(yaml.SafeDumper):
    """SafeDumper that writes empty values as `key:` and quotes by YAML 1.2 rules"""


FrontmatterLoader.yaml_implicit_resolvers = _core_resolvers(yaml.SafeLoader.yaml_implicit_resolvers)
FrontmatterDumper.yaml_implicit_resolvers = _core_resolvers(yaml.SafeDumper.yaml_implicit_resolvers)


def _construct_int(loader: yaml.SafeLoader, node: yaml.ScalarNode) -> int:
    value = loader.construct_scalar(node)
    if value.startswith("0o"):
        return int(value[2:], 8)
    if value.startswith("0x"):
        return int(value[2:], 16)
    # Leading zeros are decimal in YAML 1.2 ("010" is 10, not 8)
    return int(value, 10)


FrontmatterLoader.add_constructor(_INT_TAG, _construct_int)


def _represent_none(dumper: yaml.SafeDumper, _value: None) -> yaml.ScalarNode:
    return dumper.represent_scalar("tag:yaml.org,2002:null", "")


FrontmatterDumper.add_representer(type(None), _represent_none)


def detect_newline(content: str) -> str:
    """Line ending of the note's first line ("\\r\\n" or "\\n")"""
    first_break = content.find("\n")
    if first_break > 0 and content[first_break - 1] == "\r":
        return "\r\n"
    return "\n"


def split_frontmatter(content: str) -> Tuple[Optional[str], str]:
    """Split note content into (yaml_text, body).

    yaml_text is None when the note has no frontmatter block; body is then
    the whole content. Otherwise body is everything after the closing fence
    line.
    """
    lines = content.splitlines(keepends=True)
    if not lines or lines[0].rstrip("\r\n") != FENCE:
        return None, content

    for i in range(1, len(lines)):
        if lines[i].rstrip() == FENCE:
            return "".join(lines[1:i]), "".join(lines[i + 1:])

    # Unterminated block: not frontmatter
    return None, content


def parse_frontmatter(content: str, strict: bool = False) -> Tuple[Optional[Dict[str, Any]], str]:
    """Parse YAML frontmatter from markdown content.

    Returns:
        tuple: (frontmatter_dict or None when absent, body)

    With strict=True a malformed block raises FrontmatterParseError;
    otherwise it is logged and treated as absent.
    """
    yaml_text, body = split_frontmatter(content)
    if yaml_text is None:
        return None, body

    try:
        data = yaml.load(yaml_text, Loader=FrontmatterLoader)
    except yaml.YAMLError as e:
        if strict:
            raise FrontmatterParseError(f"Could not parse frontmatter: {e}") from e
        logger.warning("Could not parse frontmatter: %s", e)
        return None, body

    if data is None:
        return {}, body
    if not isinstance(data, dict):
        if strict:
            raise FrontmatterParseError("Frontmatter is not a key/value mapping")
        logger.warning("Ignoring frontmatter that is not a key/value mapping")
        return None, body
    return data, body


def dump_frontmatter(frontmatter: Dict[str, Any], newline: str = "\n") -> str:
    return yaml.dump(
        frontmatter,
        Dumper=FrontmatterDumper,
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=False,
        width=4096,
        line_break=newline,
    )


def construct_file_content(frontmatter: Dict[str, Any], body: str, newline: str = "\n") -> str:
    """Construct complete file content from frontmatter and body.

    The header is written with `newline` line endings. An empty mapping
    drops the frontmatter block entirely.
    """
    if not frontmatter:
        return body
    return f"{FENCE}{newline}{dump_frontmatter(frontmatter, newline)}{FENCE}{newline}{body}"
