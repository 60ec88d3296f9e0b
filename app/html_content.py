"""Plain text to HTML conversion and email template wrapping."""

from __future__ import annotations

import logging
import re

from markupsafe import escape

logger = logging.getLogger("flowkit.content")

_CONTENT_PLACEHOLDER_RE = re.compile(r"\{\{\s*content\s*\}\}")
_SCRIPT_TAG_RE = re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL)
_SCRIPT_ORPHAN_RE = re.compile(r"<script[^>]*/?>", re.IGNORECASE)
_EVENT_HANDLER_RE = re.compile(r"\s+on\w+\s*=\s*(\"[^\"]*\"|'[^']*'|[^\s>]*)", re.IGNORECASE)
_JS_HREF_RE = re.compile(r"href\s*=\s*[\"']?\s*javascript:[^\"'\s>]*[\"']?", re.IGNORECASE)
_SPACE_RUN_RE = re.compile(r" {2,}")

_NBSP = "&nbsp;"
_TAB = _NBSP * 4
_BR = "<br/>"


def escape_html(text: str | None) -> str | None:
    if not text:
        return text
    return str(escape(text))


def sanitize_xss(text: str | None) -> str | None:
    if not text:
        return text
    result = _SCRIPT_TAG_RE.sub("", text)
    result = _SCRIPT_ORPHAN_RE.sub("", result)
    result = _EVENT_HANDLER_RE.sub("", result)
    result = _JS_HREF_RE.sub('href="#"', result)
    return result


def _preserve_spaces(text: str) -> str:
    return _SPACE_RUN_RE.sub(lambda match: " " + _NBSP * (len(match.group(0)) - 1), text)


def convert_text_to_html(text: str | None) -> str | None:
    """Turn plain text (possibly carrying escaped control sequences) into HTML.

    Markup already in the text is kept apart from script content, event
    handler attributes and ``javascript:`` links, which are stripped.
    """
    if not text:
        return text
    result = sanitize_xss(text)
    # Literal escape sequences first so "\\r\\n" is not split into two breaks.
    for seq in ("\\r\\n", "\\n", "\\r", "\r\n", "\n", "\r"):
        result = result.replace(seq, _BR)
    result = result.replace("\\t", _TAB).replace("\t", _TAB)
    result = _preserve_spaces(result)
    logger.debug("text_to_html input_len=%s output_len=%s", len(text), len(result))
    return result


def is_valid_template(template: str | None) -> bool:
    return bool(template) and _CONTENT_PLACEHOLDER_RE.search(template) is not None


def apply_email_template(template: str | None, content: str | None) -> str | None:
    if not template:
        logger.warning("email_template_missing returning=content")
        return content
    if content is None:
        logger.warning("email_content_missing returning=template")
        return template
    if not is_valid_template(template):
        logger.warning("email_template_placeholder_missing appending=content")
        return template + content
    # Only the first placeholder is filled; the rest of the template is kept as written.
    return _CONTENT_PLACEHOLDER_RE.sub(lambda _: content, template, count=1)


def prepare_email_content(text: str | None, template: str | None) -> str | None:
    if not is_valid_template(template):
        logger.warning("email_template_invalid returning=text")
        return text
    return apply_email_template(template, convert_text_to_html(text))
