from __future__ import annotations

import re
import shutil
from dataclasses import dataclass
from pathlib import Path

import markdown
from pygments.formatters import HtmlFormatter
from pygments.util import ClassNotFound

from .content import Document, count_words, normalize_list_spacing
from .errors import BuildError

TAG_RE = re.compile(r"<[^>]+>")
SUMMARY_LENGTH = 200
HIGHLIGHT_CLASS = "highlight"
MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "toc", "codehilite"]


@dataclass(frozen=True)
class RenderedPost:
    document: Document
    content: str
    toc: str
    summary: str
    words: int


def render_markdown(body: str, toc_depth: str = "2-4") -> tuple[str, str]:
    md = markdown.Markdown(
        extensions=MARKDOWN_EXTENSIONS,
        extension_configs={
            "toc": {"toc_depth": toc_depth},
            "codehilite": {"guess_lang": False, "css_class": HIGHLIGHT_CLASS},
        },
    )
    html_content = md.convert(normalize_list_spacing(body))
    toc_html = md.toc
    md.reset()
    return html_content, toc_html


def summarize(html_content: str, description: str = "") -> str:
    if description:
        return description
    summary = strip_tags(html_content).strip().replace("\n", " ")
    return summary[:SUMMARY_LENGTH] + ("..." if len(summary) > SUMMARY_LENGTH else "")


def render_document(document: Document, toc_depth: str = "2-4") -> RenderedPost:
    html_content, toc_html = render_markdown(document.body, toc_depth)
    return RenderedPost(
        document=document,
        content=html_content,
        toc=toc_html,
        summary=summarize(html_content, document.description),
        words=count_words(strip_tags(html_content)),
    )


def highlight_css(style: str) -> str:
    try:
        formatter = HtmlFormatter(style=style)
    except ClassNotFound as exc:
        raise BuildError(f"Unknown highlight style: {style}") from exc
    return formatter.get_style_defs(f".{HIGHLIGHT_CLASS}")


def strip_tags(html_text: str) -> str:
    return TAG_RE.sub("", html_text)


def render_template(template: str, **context: str) -> str:
    output = template
    late_keys = {"content", "sidebar"}
    for key, value in context.items():
        if key in late_keys:
            continue
        output = output.replace(f"{{{{{key}}}}}", value)
    for key in late_keys:
        if key in context:
            output = output.replace(f"{{{{{key}}}}}", context[key])
    return output


def read_template(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def copy_file(source: Path, dest: Path) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, dest)


def copy_static(static_dir: Path, output_dir: Path) -> None:
    for item in static_dir.iterdir():
        dest = output_dir / item.name
        if item.is_dir():
            if dest.exists():
                shutil.rmtree(dest)
            shutil.copytree(item, dest)
        else:
            shutil.copy2(item, dest)
