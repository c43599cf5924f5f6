"""
Sanitizer for user-supplied site CSS.

User CSS is confined to the site wrapper: unsafe at-rules are removed,
document-level selectors are neutralized, external url() references are
replaced, and every rule is scoped under ``.site-wrapper``.
"""

import logging
import re

from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)

SCOPE_CLASS = ".site-wrapper"
SAFE_REPLACEMENT = ".safe-replacement"

DANGEROUS_SELECTORS = (
    "html",
    "body",
    "head",
    "meta",
    "link",
    "script",
    "style",
    "title",
    "iframe",
    "object",
    "embed",
    "*",
    ":root",
)

# At-rules with a block body; removed along with everything nested inside
BLOCKED_AT_RULES = (
    "document",
    "namespace",
    "supports",
    "page",
    "keyframes",
    "-webkit-keyframes",
    "media",
    "font-face",
    "charset",
    "layer",
    "container",
)

_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_STATEMENT_AT_RULE = re.compile(r"@(?:import|charset|namespace)\b[^;{]*;", re.IGNORECASE)
_BLOCK_AT_RULE = re.compile(
    r"@(?:%s)\b[^{;]*\{" % "|".join(re.escape(name) for name in BLOCKED_AT_RULES),
    re.IGNORECASE,
)
_RULE = re.compile(r"([^{}]+)\{([^{}]*)\}")
_DANGEROUS = re.compile(
    r"(^|[^\w.#-])(?:%s)(?=[^\w-]|$)" % "|".join(re.escape(s) for s in DANGEROUS_SELECTORS),
    re.IGNORECASE,
)
_UNSAFE_VALUE = re.compile(r"expression\s*\(|javascript:|-moz-binding|behavior\s*:", re.IGNORECASE)
# Markup can close the surrounding <style> element
_MARKUP = re.compile(r"<")


def _url_pattern(site_domain: str) -> re.Pattern:
    return re.compile(
        r"url\s*\(\s*(?!['\"]?(?:data:image/|https://%s/))(['\"]?)(.*?)\1\s*\)" % re.escape(site_domain),
        re.IGNORECASE,
    )


def _strip_block_at_rules(css: str) -> str:
    """Remove blocked at-rules, matching braces so nested rules go too."""
    while True:
        match = _BLOCK_AT_RULE.search(css)
        if not match:
            return css
        depth = 1
        pos = match.end()
        while pos < len(css) and depth:
            if css[pos] == "{":
                depth += 1
            elif css[pos] == "}":
                depth -= 1
            pos += 1
        css = css[: match.start()] + css[pos:]


def _scope_selector(selector: str) -> str:
    selector = _DANGEROUS.sub(r"\1" + SAFE_REPLACEMENT, selector.strip())
    if SCOPE_CLASS in selector:
        return selector
    parts = [part.strip() for part in selector.split(",") if part.strip()]
    return ", ".join(f"{SCOPE_CLASS} {part}" for part in parts)


def _split_declarations(body: str) -> list[str]:
    """Split on semicolons outside parentheses (data: URLs contain them)."""
    parts, current, depth = [], [], 0
    for char in body:
        if char == "(":
            depth += 1
        elif char == ")":
            depth = max(0, depth - 1)
        elif char == ";" and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return [part.strip() for part in parts if part.strip()]


def _clean_declarations(body: str) -> str:
    declarations = _split_declarations(body)
    kept = [d for d in declarations if not _UNSAFE_VALUE.search(d) and not _MARKUP.search(d)]
    return "; ".join(kept) + (";" if kept else "")


def sanitize_css(
    css: str | None,
    max_length: int | None = None,
    site_domain: str | None = None,
) -> str:
    """
    Make user CSS safe to inline in a site page.

    Args:
        css: Raw CSS from the user
        max_length: Input cap in characters (default from settings)
        site_domain: Domain whose https URLs are allowed in url()

    Returns:
        Scoped CSS with one rule per line, or "" for empty input.
    """
    if not css:
        return ""

    max_length = max_length or settings.max_custom_css_length
    site_domain = site_domain or settings.site_domain

    if len(css) > max_length:
        logger.info("Truncating custom CSS from %d to %d characters", len(css), max_length)
        css = css[:max_length]

    css = _COMMENT.sub("", css)
    css = _STATEMENT_AT_RULE.sub("", css)
    css = _strip_block_at_rules(css)
    css = _url_pattern(site_domain).sub(
        rf"url(\1https://{site_domain}/placeholder-image.jpg\1)", css
    )

    rules = []
    for selector, body in _RULE.findall(css):
        if _MARKUP.search(selector):
            logger.info("Dropping CSS rule with markup in its selector")
            continue
        scoped = _scope_selector(selector)
        if not scoped:
            continue
        rules.append(f"{scoped} {{ {_clean_declarations(body)} }}")

    return "\n".join(rules)
