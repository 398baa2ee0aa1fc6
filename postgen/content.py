from __future__ import annotations

import datetime as dt
import html as html_lib
import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath

import yaml

from .errors import ParseError
from .utils import parse_bool, relative_root

LIST_MARKER_RE = re.compile(r"^(?P<indent>[ \t]*)(?:[-+*]|\d+[.)])\s+")
FENCE_RE = re.compile(r"^(?P<indent>[ \t]*)(`{3,}|~{3,})")
DOUBLE_QUOTE_RE = re.compile(r"^(?P<indent>[ \t]*)>>(?!>)(?P<rest>.*)$")
CJK_RE = re.compile(r"[\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff\uac00-\ud7af]")
WORD_RE = re.compile(r"[A-Za-z0-9]+(?:'[A-Za-z0-9]+)?")
FILENAME_DATE_RE = re.compile(r"^(?P<date>\d{4}-\d{2}-\d{2})-")
OPEN_DELIMITER = "---"
CLOSE_DELIMITERS = {"---", "..."}
LAYOUT_RE = re.compile(r"^\w[\w.-]*$")


@dataclass(frozen=True)
class Document:
    path: str
    title: str
    date: dt.datetime
    tags: tuple[str, ...] = ()
    published: bool = True
    body: str = ""
    layout: str = ""
    description: str = ""
    img: str = ""
    meta: dict = field(default_factory=dict, compare=False, repr=False)

    @property
    def output_path(self) -> str:
        return PurePosixPath(self.path).with_suffix(".html").as_posix()

    @property
    def root(self) -> str:
        """Relative link from the document's page back to the site root."""
        return relative_root(self.path)


def slugify(text: str) -> str:
    text = text.lower()
    text = re.sub(r"[^\w]+", "-", text, flags=re.UNICODE)
    text = text.strip("-_").replace("_", "-")
    return text or "tag"


def parse_list(value: str) -> list[str]:
    value = value.strip()
    if value.startswith("[") and value.endswith("]"):
        inner = value[1:-1]
        items = [item.strip().strip("'\"") for item in inner.split(",")]
    else:
        items = [item.strip() for item in value.split(",")]
    return [item for item in items if item]


def parse_front_matter(text: str) -> tuple[dict, str]:
    clean_text = text.lstrip("\ufeff")
    lines = clean_text.splitlines()
    if not lines or lines[0].strip() != OPEN_DELIMITER:
        raise ParseError("missing front matter delimiter '---'")

    end = None
    for i in range(1, len(lines)):
        if lines[i].strip() in CLOSE_DELIMITERS:
            end = i
            break
    if end is None:
        raise ParseError("unterminated front matter block")

    try:
        data = yaml.safe_load("\n".join(lines[1:end]))
    except (yaml.YAMLError, ValueError) as exc:
        raise ParseError(f"invalid front matter: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ParseError("front matter must be a mapping")

    meta = {str(key).strip().lower(): value for key, value in data.items()}
    title = meta.get("title")
    if title is None or not str(title).strip():
        raise ParseError("missing required field 'title'")
    body = "\n".join(lines[end + 1 :])
    return meta, body


def dump_front_matter(meta: dict, body: str) -> str:
    block = yaml.safe_dump(meta, allow_unicode=True, sort_keys=False, default_flow_style=False)
    return f"{OPEN_DELIMITER}\n{block}{OPEN_DELIMITER}\n{body}"


def _tag_values(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(item).strip() for item in value if item is not None]
    value = str(value)
    if "," in value or value.strip().startswith("["):
        return parse_list(value)
    return value.split()


def parse_tags(meta: dict) -> tuple[str, ...]:
    values = _tag_values(meta.get("tags")) + _tag_values(meta.get("tag"))
    if not values:
        values = _tag_values(meta.get("categories")) + _tag_values(meta.get("category"))
    seen: list[str] = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return tuple(seen)


def parse_published(meta: dict) -> bool:
    if parse_bool(meta.get("draft")):
        return False
    if "published" not in meta or meta["published"] is None:
        return True
    return parse_bool(meta["published"])


def _parse_date_string(value: str) -> dt.datetime:
    try:
        return dt.datetime.fromisoformat(value)
    except ValueError:
        pass
    for fmt in ("%Y-%m-%d %H:%M:%S %z", "%Y-%m-%d %H:%M %z", "%Y-%m-%d %H:%M"):
        try:
            return dt.datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise ParseError(f"invalid date: {value!r}")


def parse_date(meta: dict, path: str) -> dt.datetime:
    value = meta.get("date")
    if isinstance(value, dt.datetime):
        result = value
    elif isinstance(value, dt.date):
        result = dt.datetime.combine(value, dt.time())
    elif value is not None and str(value).strip():
        result = _parse_date_string(str(value).strip())
    else:
        match = FILENAME_DATE_RE.match(PurePosixPath(path).name)
        if not match:
            raise ParseError("missing date (no 'date' field or YYYY-MM-DD- filename prefix)")
        try:
            result = dt.datetime.combine(dt.date.fromisoformat(match.group("date")), dt.time())
        except ValueError as exc:
            raise ParseError(f"invalid date in filename: {exc}") from exc
    # Keep the author's wall-clock time.
    return result.replace(tzinfo=None)


def parse_layout(meta: dict) -> str:
    """Template name from front matter; never a path."""
    layout = _meta_str(meta, "layout")
    if layout and not LAYOUT_RE.match(layout):
        raise ParseError(f"invalid layout: {layout!r}")
    return layout


def _meta_str(meta: dict, key: str) -> str:
    value = meta.get(key)
    return "" if value is None else str(value).strip()


def build_document(path: str, text: str) -> Document:
    try:
        meta, body = parse_front_matter(text)
        date = parse_date(meta, path)
        layout = parse_layout(meta)
    except ParseError as exc:
        raise exc.with_path(path) from exc
    return Document(
        path=path,
        title=_meta_str(meta, "title"),
        date=date,
        tags=parse_tags(meta),
        published=parse_published(meta),
        body=body,
        layout=layout,
        description=_meta_str(meta, "description"),
        img=_meta_str(meta, "img"),
        meta=meta,
    )


def normalize_list_spacing(text: str) -> str:
    lines = text.splitlines()
    out: list[str] = []
    in_fence = False
    fence_marker = ""
    for line in lines:
        fence_match = FENCE_RE.match(line)
        if fence_match:
            marker = fence_match.group(2)
            if not in_fence:
                in_fence = True
                fence_marker = marker
            elif marker == fence_marker:
                in_fence = False
                fence_marker = ""
            out.append(line)
            continue
        if in_fence:
            out.append(line)
            continue
        quote_match = DOUBLE_QUOTE_RE.match(line)
        if quote_match:
            rest = quote_match.group("rest").lstrip()
            if rest:
                line = f'{quote_match.group("indent")}> {rest}'
            else:
                line = f'{quote_match.group("indent")}>'
        list_match = LIST_MARKER_RE.match(line)
        if list_match:
            if not list_match.group("indent"):
                if out and out[-1].strip() and not LIST_MARKER_RE.match(out[-1]):
                    out.append("")
        out.append(line)
    return "\n".join(out)


def count_words(text: str) -> int:
    text = html_lib.unescape(text)
    cjk_count = len(CJK_RE.findall(text))
    text = CJK_RE.sub(" ", text)
    word_count = len(WORD_RE.findall(text))
    return cjk_count + word_count
