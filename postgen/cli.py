from __future__ import annotations

import argparse
import os
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .config import load_config, resolve_about_html, resolve_analytics
from .errors import BuildError, ParseError
from .index import build_site_index
from .pages import (
    PageContext,
    build_404,
    build_archive,
    build_atom,
    build_highlight_css,
    build_index,
    build_posts,
    build_rss,
    build_sitemap,
    build_tags,
    is_reserved_output,
)
from .render import RenderedPost, copy_file, copy_static, render_document, write_text
from .store import claim_outputs, list_assets, load_documents
from .utils import clean_output_dir, parse_bool, parse_int, write_nojekyll

FEED_LIMIT = 20
DEFAULT_TEMPLATES = Path(__file__).parent / "templates"


@dataclass
class BuildResult:
    documents: int = 0
    published: int = 0
    failures: list[ParseError] = field(default_factory=list)


def resolve_templates_dir(value: str) -> Path:
    templates_dir = Path(value) if value else DEFAULT_TEMPLATES
    if (templates_dir / "base.html").exists():
        return templates_dir
    return DEFAULT_TEMPLATES


def asset_rel(asset: Path, input_dir: Path) -> str:
    return asset.relative_to(input_dir).as_posix()


def resolve_workers(value: object) -> int:
    workers = parse_int(value, 1)
    if workers <= 0:
        workers = os.cpu_count() or 1
    return max(1, min(workers, 32))


def build_site(args: argparse.Namespace) -> BuildResult:
    input_dir = Path(args.input)
    output_dir = Path(args.output)
    static_dir = Path(args.static) if args.static else None
    project_root = Path.cwd()
    verbose = parse_bool(getattr(args, "verbose", False))
    workers = resolve_workers(getattr(args, "build_workers", 1))

    if not input_dir.is_dir():
        raise BuildError(f"Input directory not found: {input_dir}")

    strict = parse_bool(args.strict)
    exclude = [output_dir]
    assets = list_assets(input_dir, exclude) if parse_bool(args.copy_assets) else []
    loaded = load_documents(input_dir, strict=strict, exclude=exclude)
    claim_outputs(loaded, strict, is_reserved_output, [asset_rel(asset, input_dir) for asset in assets])
    for failure in loaded.failures:
        print(f"Skipping {failure}", file=sys.stderr)

    site_index = build_site_index(loaded.documents)

    def render(doc) -> RenderedPost:
        if verbose:
            print(f"Rendering {doc.path} -> {doc.output_path}")
        return render_document(doc, args.toc_depth)

    if workers > 1 and len(site_index.listing) > 1:
        with ThreadPoolExecutor(max_workers=min(workers, len(site_index.listing))) as executor:
            rendered_posts = list(executor.map(render, site_index.listing))
    else:
        rendered_posts = [render(doc) for doc in site_index.listing]
    rendered = {post.document.path: post for post in rendered_posts}

    if parse_bool(args.clean):
        clean_output_dir(output_dir, project_root)
    output_dir.mkdir(parents=True, exist_ok=True)

    for asset in assets:
        copy_file(asset, output_dir / asset.relative_to(input_dir))
    if static_dir is not None and static_dir.is_dir():
        copy_static(static_dir, output_dir)

    custom_domain = (args.custom_domain or "").strip()
    if custom_domain:
        write_text(output_dir / "CNAME", f"{custom_domain}\n")
    if parse_bool(args.write_nojekyll):
        write_nojekyll(output_dir)

    site_url = (args.site_url or "").strip()
    if not site_url and custom_domain:
        site_url = f"https://{custom_domain}"

    year = str(args.copyright_year or "").strip()
    if not year and site_index.listing:
        year = str(site_index.listing[0].date.year)

    ctx = PageContext(
        templates_dir=resolve_templates_dir(args.templates),
        args=args,
        analytics_html=resolve_analytics(args),
        about_html=resolve_about_html(args),
        year=year,
    )
    build_highlight_css(output_dir, args.highlight_style)
    build_posts(ctx, output_dir, site_index, rendered, workers=workers)
    total_pages = build_index(ctx, output_dir, site_index, rendered)
    build_tags(ctx, output_dir, site_index, rendered)
    build_archive(ctx, output_dir, site_index, rendered)
    if parse_bool(args.enable_rss):
        build_rss(output_dir, site_index, rendered, site_url, args, args.feed_limit)
    if parse_bool(args.enable_atom):
        build_atom(output_dir, site_index, rendered, site_url, args, args.feed_limit)
    if parse_bool(args.enable_sitemap):
        build_sitemap(output_dir, site_index, site_url, total_pages)
    if parse_bool(args.enable_404):
        build_404(ctx, output_dir, site_index)

    return BuildResult(
        documents=len(loaded.documents),
        published=len(site_index.listing),
        failures=loaded.failures,
    )


def check_site(args: argparse.Namespace) -> BuildResult:
    input_dir = Path(args.input)
    if not input_dir.is_dir():
        raise BuildError(f"Input directory not found: {input_dir}")
    loaded = load_documents(input_dir, strict=False)
    assets = [asset_rel(asset, input_dir) for asset in list_assets(input_dir)]
    claim_outputs(loaded, strict=False, reserved=is_reserved_output, assets=assets)
    for failure in loaded.failures:
        print(f"Invalid {failure}", file=sys.stderr)
    return BuildResult(
        documents=len(loaded.documents),
        published=len(loaded.published),
        failures=loaded.failures,
    )


def build_parser(config: dict, config_path: str) -> argparse.ArgumentParser:
    def cfg_value(key: str, default: object) -> object:
        value = config.get(key)
        return default if value is None else value

    def cfg_str(key: str, default: str) -> str:
        value = cfg_value(key, default)
        return default if value is None else str(value)

    def cfg_bool(key: str, default: bool) -> bool:
        value = cfg_value(key, default)
        return parse_bool(value) if value is not None else default

    def cfg_int(key: str, default: int) -> int:
        value = cfg_value(key, default)
        return parse_int(value, default)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=config_path, help="Path to site config file (TOML/YAML/JSON).")
    common.add_argument(
        "--input",
        "--posts",
        dest="input",
        default=cfg_str("input", cfg_str("posts", "posts")),
        help="Directory containing Markdown documents.",
    )
    common.add_argument(
        "--verbose",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("verbose", False),
        help="Print every rendered document.",
    )

    parser = argparse.ArgumentParser(prog="postgen", description="Static site generator for Markdown posts.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("check", parents=[common], help="Validate front matter without writing anything.")

    build = subparsers.add_parser("build", parents=[common], help="Render the site into the output directory.")
    build.add_argument("--output", default=cfg_str("output", "_site"), help="Output directory for the site.")
    build.add_argument(
        "--strict",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("strict", True),
        help="Abort on the first invalid document instead of skipping it.",
    )
    build.add_argument("--static", default=cfg_str("static", "static"), help="Directory containing static assets.")
    build.add_argument("--templates", default=cfg_str("templates", "templates"), help="Directory containing templates.")
    build.add_argument("--site-name", default=cfg_str("site_name", "Blog"), help="Site title.")
    build.add_argument("--site-description", default=cfg_str("site_description", ""), help="Site description.")
    build.add_argument("--site-url", default=cfg_str("site_url", ""), help="Public site URL used for feeds and sitemap.")
    build.add_argument("--custom-domain", default=cfg_str("custom_domain", ""), help="Custom domain to write into CNAME.")
    build.add_argument(
        "--copyright-year",
        default=cfg_str("copyright_year", ""),
        help="Footer year (defaults to the year of the newest post).",
    )
    build.add_argument(
        "--clean",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("clean", True),
        help="Clean output directory before build.",
    )
    build.add_argument(
        "--posts-per-page",
        default=cfg_int("posts_per_page", 8),
        type=int,
        help="Number of posts on the home page before pagination.",
    )
    build.add_argument(
        "--feed-limit",
        default=cfg_int("feed_limit", FEED_LIMIT),
        type=int,
        help="Maximum number of posts in RSS/Atom feeds.",
    )
    build.add_argument(
        "--build-workers",
        default=cfg_int("build_workers", 1),
        type=int,
        help="Number of worker threads for rendering (0 = auto).",
    )
    build.add_argument("--toc-depth", default=cfg_str("toc_depth", "2-4"), help="Heading depth range for TOC (e.g. 2-4).")
    build.add_argument(
        "--highlight-style",
        default=cfg_str("highlight_style", "default"),
        help="Pygments style used for code blocks.",
    )
    build.add_argument(
        "--copy-assets",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("copy_assets", True),
        help="Copy non-Markdown files from the input directory.",
    )
    build.add_argument(
        "--enable-rss",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("enable_rss", True),
        help="Generate rss.xml.",
    )
    build.add_argument(
        "--enable-atom",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("enable_atom", True),
        help="Generate atom.xml.",
    )
    build.add_argument(
        "--enable-sitemap",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("enable_sitemap", True),
        help="Generate sitemap.xml.",
    )
    build.add_argument(
        "--enable-404",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("enable_404", True),
        help="Generate 404.html.",
    )
    build.add_argument(
        "--write-nojekyll",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("write_nojekyll", True),
        help="Write .nojekyll in the output directory.",
    )
    build.add_argument("--analytics-file", default=cfg_str("analytics_file", ""), help="Path to analytics HTML snippet file.")
    build.add_argument("--analytics-html", default=cfg_str("analytics_html", ""), help="Inline analytics HTML snippet.")
    build.add_argument("--about-text", default=cfg_str("about_text", ""), help="Text content for the sidebar About panel.")
    build.add_argument("--about-html", default=cfg_str("about_html", ""), help="HTML content for the sidebar About panel.")
    build.add_argument("--about-file", default=cfg_str("about_file", ""), help="Path to file used for the sidebar About panel.")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument(
        "--config",
        default="site.toml",
        help="Path to site config file (TOML/YAML/JSON).",
    )
    pre_args, _ = pre_parser.parse_known_args(argv)
    config = load_config(Path(pre_args.config))
    args = build_parser(config, pre_args.config).parse_args(argv)

    start = time.perf_counter()
    try:
        if args.command == "check":
            result = check_site(args)
        else:
            result = build_site(args)
    except ParseError as exc:
        print(f"Parse error: {exc}", file=sys.stderr)
        return 1
    except BuildError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"I/O error: {exc}", file=sys.stderr)
        return 1
    elapsed = time.perf_counter() - start

    unpublished = result.documents - result.published
    if args.command == "check":
        print(f"Checked {result.documents} documents: {result.published} published, {unpublished} unpublished.")
    else:
        print(f"Build completed in {elapsed:.2f}s.")
        print(f"Rendered {result.published} documents ({unpublished} unpublished) into: {args.output}")
    if result.failures:
        print(f"{len(result.failures)} documents failed to parse.", file=sys.stderr)
        return 1
    return 0
