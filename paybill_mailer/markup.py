"""Convert the template body dialect to email HTML.

Supported markers (anything else is plain text):

    **紅字**text**紅字**   red text on yellow
    **黃底**text**黃底**   black text on yellow
    **text**              bold
    [label](url)          link, opens in a new tab
    - item / • item / l item
                          bullet line; consecutive bullets share one <ul>

The passes run in a fixed order, each over the output of the previous one.
"""

from __future__ import annotations

import re
from typing import Callable, List, Sequence

RED_SPAN = '<span style="background-color:#ffff00; color:#cc0000; font-weight:bold;">{}</span>'
YELLOW_SPAN = '<span style="background-color:#ffff00; color:#000000; font-weight:bold;">{}</span>'
LINE_BREAK = "<br>\n"

_RED_RE = re.compile(r"\*\*紅字\*\*(.+?)\*\*紅字\*\*")
_YELLOW_RE = re.compile(r"\*\*黃底\*\*(.+?)\*\*黃底\*\*")
_BOLD_RE = re.compile(r"\*\*([^*]+)\*\*")
_LINK_RE = re.compile(r"\[([^\]]+?)\]\(([^)]+?)\)")
_LIST_ITEM_RE = re.compile(r"^\s*[-•l]\s+(.*)$")
_NEWLINE_RE = re.compile(r"\r\n|\n|\r")


def markdown_to_html(text: str) -> str:
    if not text:
        return ""
    html = text
    for step in _INLINE_PASSES:
        html = step(html)
    return _cleanup(_render_lines(_split_lines(html)))


def _escape(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _highlight(text: str) -> str:
    # must run before generic bold: both use ** as delimiter
    text = _RED_RE.sub(lambda m: RED_SPAN.format(m.group(1)), text)
    return _YELLOW_RE.sub(lambda m: YELLOW_SPAN.format(m.group(1)), text)


def _bold(text: str) -> str:
    return _BOLD_RE.sub(r"<strong>\1</strong>", text)


def _links(text: str) -> str:
    return _LINK_RE.sub(r'<a href="\2" target="_blank">\1</a>', text)


_INLINE_PASSES: Sequence[Callable[[str], str]] = (_escape, _highlight, _bold, _links)


def _split_lines(text: str) -> List[str]:
    lines = _NEWLINE_RE.split(text)
    # a trailing newline ends the last line instead of opening an empty one
    if len(lines) > 1 and lines[-1] == "":
        lines.pop()
    return lines


def _render_lines(lines: List[str]) -> str:
    parts: List[str] = []
    in_list = False
    for line in lines:
        item = _LIST_ITEM_RE.match(line)
        if item:
            if not in_list:
                parts.append("<ul>")
                in_list = True
            parts.append(f"<li>{item.group(1)}</li>\n")
            continue
        if in_list:
            parts.append("</ul>")
            in_list = False
        parts.append(line + LINE_BREAK)
    if in_list:
        parts.append("</ul>")
    return "".join(parts)


def _cleanup(html: str) -> str:
    # Drops the break both before an opening <ul> and after a closing </ul>.
    return html.replace(LINE_BREAK + "<ul>", "<ul>").replace("</ul>" + LINE_BREAK, "</ul>")
