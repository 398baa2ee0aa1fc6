from __future__ import annotations

import html
import json
import sys
from pathlib import Path

import yaml

from .render import render_markdown

try:
    import tomllib as toml
except ImportError:
    import tomli as toml


def load_config(path: Path) -> dict:
    if not path.exists():
        return {}
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix == ".toml":
        try:
            data = toml.loads(text)
        except toml.TOMLDecodeError as exc:
            print(f"Invalid TOML in config file {path}: {exc}", file=sys.stderr)
            sys.exit(1)
        return data
    if suffix in {".yml", ".yaml"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            print(f"Invalid YAML in config file {path}: {exc}", file=sys.stderr)
            sys.exit(1)
        if data is None:
            return {}
        if not isinstance(data, dict):
            print(f"YAML config must be a mapping: {path}", file=sys.stderr)
            sys.exit(1)
        return data
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        print(f"Invalid JSON in config file {path}: {exc}", file=sys.stderr)
        sys.exit(1)
    if not isinstance(data, dict):
        print(f"JSON config must be an object: {path}", file=sys.stderr)
        sys.exit(1)
    return data


def _resolve_path(args: object, value: str) -> Path:
    path = Path(value)
    if not path.is_absolute():
        config_path = Path(getattr(args, "config", "site.toml")).resolve()
        path = config_path.parent / path
    return path


def resolve_analytics(args: object) -> str:
    html_snippet = (getattr(args, "analytics_html", "") or "").strip()
    if html_snippet:
        return html_snippet
    file_value = (getattr(args, "analytics_file", "") or "").strip()
    if not file_value:
        return ""
    path = _resolve_path(args, file_value)
    if not path.exists():
        print(f"Analytics file not found: {path}", file=sys.stderr)
        return ""
    return path.read_text(encoding="utf-8")


def resolve_about_html(args: object) -> str:
    html_snippet = (getattr(args, "about_html", "") or "").strip()
    if html_snippet:
        return html_snippet

    file_value = (getattr(args, "about_file", "") or "").strip()
    if file_value:
        path = _resolve_path(args, file_value)
        if not path.exists():
            print(f"About file not found: {path}", file=sys.stderr)
        else:
            text = path.read_text(encoding="utf-8")
            suffix = path.suffix.lower()
            if suffix in {".html", ".htm"}:
                return text
            if suffix in {".md", ".markdown"}:
                about_html, _ = render_markdown(text)
                return about_html
            escaped = html.escape(text).replace("\n", "<br>")
            return f"<p>{escaped}</p>"

    text_value = (getattr(args, "about_text", "") or "").strip()
    if text_value:
        escaped = html.escape(text_value).replace("\n", "<br>")
        return f"<p>{escaped}</p>"

    site_description = getattr(args, "site_description", "")
    return f"<p>{html.escape(site_description)}</p>"
