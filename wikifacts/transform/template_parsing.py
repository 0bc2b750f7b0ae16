from __future__ import annotations

import logging
import re
from typing import Dict, NamedTuple, Optional

from wikifacts.errors import MalformedTemplate, TemplateNotFound

logger = logging.getLogger(__name__)

OPEN = "{{"
CLOSE = "}}"
PARAM_MARKER = "|"

# "|key = value" -> key, value. Whitespace around the first "=" is consumed.
PARAM_SPLIT_RE = re.compile(r"\s*=\s*")
# only \n and \r\n end a line; other Unicode line separators stay in the value
LINE_SPLIT_RE = re.compile(r"\r?\n")


class TemplateBlock(NamedTuple):
    name: str
    text: str


def find_template(markup: str, template_name: str) -> TemplateBlock:
    """
    Locate the first {{template_name ...}} invocation, counting {{ }} nesting.

    Raises TemplateNotFound when there is nothing to find and MalformedTemplate
    when the opening is never balanced (truncated page, stray braces).
    """
    if not isinstance(markup, str) or not markup.strip():
        raise TemplateNotFound(template_name)

    start = markup.find(OPEN + template_name)
    if start < 0:
        raise TemplateNotFound(template_name)

    n = len(markup)
    i = start
    depth = 0
    while i < n:
        pair = markup[i : i + 2]
        if pair == OPEN:
            depth += 1
            i += 2
        elif pair == CLOSE:
            depth -= 1
            i += 2
            if depth == 0:
                return TemplateBlock(template_name, markup[start:i])
        else:
            i += 1

    raise MalformedTemplate(template_name, start, depth)


def extract_block(markup: Optional[str], template_name: str) -> Optional[str]:
    """
    Non-raising variant of find_template: returns the raw block (delimiters
    included) or None. Later invocations of the same template are ignored.
    """
    try:
        return find_template(markup, template_name).text
    except MalformedTemplate as e:
        logger.warning("%s", e)
    except TemplateNotFound as e:
        logger.debug("%s", e)
    return None


def parse_params(block: Optional[str]) -> Dict[str, str]:
    """
    Parse "|key = value" lines into an ordered dict.

    Lines that do not start with "|" continue the current value (newline
    joined); anything before the first key is dropped. Values are trimmed
    once, when the key is flushed. A key without "=" maps to "".
    """
    text = block or ""
    if text.endswith(CLOSE):
        text = text[: -len(CLOSE)]

    out: Dict[str, str] = {}
    key: Optional[str] = None
    value = ""

    for line in LINE_SPLIT_RE.split(text):
        if line.startswith(PARAM_MARKER):
            if key is not None:
                out[key] = value.strip()
            parts = PARAM_SPLIT_RE.split(line[len(PARAM_MARKER) :], maxsplit=1)
            key = parts[0].strip()
            value = parts[1] if len(parts) > 1 else ""
        elif key is not None:
            value = value + "\n" + line

    if key is not None:
        out[key] = value.strip()
    return out


def parse_template(markup: Optional[str], template_name: str) -> Optional[Dict[str, str]]:
    block = extract_block(markup, template_name)
    if block is None:
        return None
    return parse_params(block)


def serialize_params(params: Dict[str, str]) -> str:
    # inverse of parse_params for single-line values
    return "\n".join(f"{PARAM_MARKER}{k}={v}" for k, v in params.items())
