"""Small markdown-to-HTML converter built from ordered regex replacements.

Only the subset used by course descriptions is supported: headings, bold,
italic, strike, links, inline code, rules, quotes and list items. The
result always goes through the HTML sanitizer.
"""

from __future__ import annotations

import re

from capacita.services.sanitizer import sanitize_html

_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^### (.*)$", re.M), r'<h3 class="text-xl font-semibold mt-6 mb-2">\1</h3>'),
    (re.compile(r"^## (.*)$", re.M), r'<h2 class="text-2xl font-bold mt-8 mb-3">\1</h2>'),
    (re.compile(r"^# (.*)$", re.M), r'<h1 class="text-3xl font-bold mt-8 mb-4">\1</h1>'),
    (re.compile(r"\*\*\*(.*?)\*\*\*"), r"<strong><em>\1</em></strong>"),
    (re.compile(r"\*\*(.*?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"~~(.*?)~~"), r"<del>\1</del>"),
    (re.compile(r"\[(.*?)\]\((.*?)\)"), r'<a href="\2" class="text-primary underline">\1</a>'),
    (re.compile(r"`(.*?)`"), r'<code class="bg-muted px-1 rounded">\1</code>'),
    (re.compile(r"^---$", re.M), r'<hr class="my-6" />'),
    (re.compile(r"^> (.*)$", re.M), r'<blockquote class="border-l-4 pl-4 italic">\1</blockquote>'),
    (re.compile(r"^[*-] (.*)$", re.M), r'<li class="ml-4">\1</li>'),
    (re.compile(r"^\d+\. (.*)$", re.M), r'<li class="ml-4 list-decimal">\1</li>'),
    # italic runs after list items so "* item" is not read as emphasis
    (re.compile(r"\*(.+?)\*"), r"<em>\1</em>"),
    (re.compile(r"\n\n"), '</p><p class="my-4">'),
    (re.compile(r"\n"), "<br />"),
)


def markdown_to_html(text: str | None) -> str:
    html = (text or "").replace("\r\n", "\n").strip()
    if not html:
        return ""
    for pattern, replacement in _RULES:
        html = pattern.sub(replacement, html)
    return sanitize_html(f'<p class="my-4">{html}</p>')
