from __future__ import annotations

import html
import math
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from .content import LAYOUT_RE, Document
from .index import SiteIndex, build_year_counts
from .render import RenderedPost, highlight_css, read_template, render_template, write_text
from .utils import iso_date, join_url, rfc822_date

DATE_FMT = "%Y-%m-%d"
BASE_TEMPLATE = "base.html"
HIGHLIGHT_CSS = "css/highlight.css"
RESERVED_PAGES = {"index.html", "tags.html", "archive.html", "404.html", "rss.xml", "atom.xml", "sitemap.xml"}
RESERVED_DIRS = ("tags/", "css/")
PAGINATION_RE = re.compile(r"^page-\d+\.html$")


@dataclass
class PageContext:
    """Everything shared by the pages of one build."""

    templates_dir: Path
    args: object
    analytics_html: str = ""
    about_html: str = ""
    year: str = ""
    _templates: dict[str, str] = field(default_factory=dict, repr=False)

    def template(self, layout: str = "") -> str:
        name = f"{layout}.html" if layout and LAYOUT_RE.match(layout) else BASE_TEMPLATE
        if not (self.templates_dir / name).exists():
            name = BASE_TEMPLATE
        if name not in self._templates:
            self._templates[name] = read_template(self.templates_dir / name)
        return self._templates[name]

    def render(
        self,
        title: str,
        root: str,
        content: str,
        sidebar: str,
        extra_head: str = "",
        layout: str = "",
    ) -> str:
        return render_template(
            self.template(layout),
            title=html.escape(title),
            root=root,
            content=content,
            sidebar=sidebar,
            site_name=html.escape(self.args.site_name),
            site_description=html.escape(self.args.site_description),
            year=self.year,
            extra_head=extra_head,
            analytics=self.analytics_html,
        )


def is_reserved_output(rel_path: str) -> bool:
    """True for paths the generated listing pages write to."""
    return (
        rel_path in RESERVED_PAGES
        or rel_path.startswith(RESERVED_DIRS)
        or bool(PAGINATION_RE.match(rel_path))
    )


def post_url(doc: Document, root: str) -> str:
    return f"{root}/{doc.output_path}"


def build_tag_list(site_index: SiteIndex, root: str) -> str:
    items = []
    for name, docs in sorted(site_index.tags.items(), key=lambda x: (-len(x[1]), x[0].lower(), x[0])):
        items.append(
            f'<li><a href="{site_index.tag_url(name, root)}">{html.escape(name)}</a>'
            f'<span class="count">{len(docs)}</span></li>'
        )
    return "\n".join(items) if items else "<li>No tags yet.</li>"


def build_sidebar(site_index: SiteIndex, root: str, about_html: str, toc_html: str = "") -> str:
    panels = [
        '<div class="panel">'
        "<h3>About</h3>"
        f"{about_html}"
        "</div>"
    ]
    if toc_html and "<li" in toc_html:
        panels.append(
            '<div class="panel">'
            "<h3>Contents</h3>"
            f"{toc_html}"
            "</div>"
        )
    panels.append(
        '<div class="panel">'
        "<h3>Tags</h3>"
        f'<ul class="tag-list">{build_tag_list(site_index, root)}</ul>'
        "</div>"
    )
    return "".join(panels)


def build_tag_chips(doc: Document, site_index: SiteIndex, root: str) -> str:
    return " ".join(
        f'<a class="chip" href="{site_index.tag_url(tag, root)}">{html.escape(tag)}</a>' for tag in doc.tags
    )


def build_post_cards(
    docs: list[Document], rendered: dict[str, RenderedPost], site_index: SiteIndex, root: str
) -> str:
    cards = []
    for doc in docs:
        post = rendered[doc.path]
        url = post_url(doc, root)
        cards.append(
            '<article class="post-card">'
            '<div class="post-meta"><div class="post-meta-left">'
            f'<span class="post-date">{doc.date.strftime(DATE_FMT)}</span>'
            f'<span class="post-words">{post.words} words</span>'
            "</div>"
            f'<div class="post-tags">{build_tag_chips(doc, site_index, root)}</div></div>'
            f'<h2 class="post-title"><a href="{url}">{html.escape(doc.title)}</a></h2>'
            f'<p class="post-summary">{html.escape(post.summary)}</p>'
            f'<a class="post-more" href="{url}">Read more</a>'
            "</article>"
        )
    return "\n".join(cards)


def build_index(ctx: PageContext, output_dir: Path, site_index: SiteIndex, rendered: dict[str, RenderedPost]) -> int:
    def page_url(page: int) -> str:
        if page == 1:
            return "index.html"
        return f"page-{page}.html"

    def build_pagination(page: int, total_pages: int) -> str:
        if total_pages <= 1:
            return ""
        items = []
        if page > 1:
            items.append(f'<a class="page-link" href="./{page_url(page - 1)}">Previous</a>')
        else:
            items.append('<span class="page-link is-disabled">Previous</span>')
        numbers = []
        for num in range(1, total_pages + 1):
            if num == page:
                numbers.append(f'<span class="page-number is-active">{num}</span>')
            else:
                numbers.append(f'<a class="page-number" href="./{page_url(num)}">{num}</a>')
        items.append(f'<div class="page-numbers">{"".join(numbers)}</div>')
        if page < total_pages:
            items.append(f'<a class="page-link" href="./{page_url(page + 1)}">Next</a>')
        else:
            items.append('<span class="page-link is-disabled">Next</span>')
        return f'<nav class="pagination">{"".join(items)}</nav>'

    root = "."
    sidebar = build_sidebar(site_index, root, ctx.about_html)
    posts = site_index.listing
    per_page = max(1, int(getattr(ctx.args, "posts_per_page", 8)))
    total_pages = max(1, math.ceil(len(posts) / per_page))

    for page in range(1, total_pages + 1):
        start = (page - 1) * per_page
        page_posts = posts[start : start + per_page]
        content = (
            '<div class="section-head">'
            "<h2>Latest posts</h2>"
            "</div>"
            f'<div class="post-grid">{build_post_cards(page_posts, rendered, site_index, root)}</div>'
            f"{build_pagination(page, total_pages)}"
        )
        page_title = f"{ctx.args.site_name} | Home"
        if page > 1:
            page_title = f"{ctx.args.site_name} | Page {page}"
        write_text(output_dir / page_url(page), ctx.render(page_title, root, content, sidebar))

    return total_pages


def build_posts(
    ctx: PageContext,
    output_dir: Path,
    site_index: SiteIndex,
    rendered: dict[str, RenderedPost],
    workers: int = 1,
) -> None:
    def render_post(doc: Document) -> None:
        post = rendered[doc.path]
        root = doc.root
        sidebar = build_sidebar(site_index, root, ctx.about_html, post.toc)
        cover_html = ""
        if doc.img:
            cover_html = f'<img class="post-cover" src="{html.escape(doc.img)}" alt="">'
        content = (
            '<article class="post">'
            '<div class="post-meta"><div class="post-meta-left">'
            f'<span class="post-date">{doc.date.strftime(DATE_FMT)}</span>'
            f'<span class="post-words">{post.words} words</span>'
            "</div>"
            f'<div class="post-tags">{build_tag_chips(doc, site_index, root)}</div></div>'
            f'<h1 class="post-title">{html.escape(doc.title)}</h1>'
            f"{cover_html}"
            f'<div class="post-body">{post.content}</div>'
            f'<div class="post-footer"><a href="{root}/index.html">Back to home</a></div>'
            "</article>"
        )
        extra_head = [f'<link rel="stylesheet" href="{root}/{HIGHLIGHT_CSS}">']
        if doc.description:
            extra_head.append(f'<meta name="description" content="{html.escape(doc.description)}">')
        if doc.img:
            extra_head.append(f'<meta property="og:image" content="{html.escape(doc.img)}">')
        html_doc = ctx.render(
            f"{doc.title} | {ctx.args.site_name}",
            root,
            content,
            sidebar,
            extra_head="\n".join(extra_head),
            layout=doc.layout,
        )
        write_text(output_dir / doc.output_path, html_doc)

    docs = site_index.listing
    workers = max(1, int(workers or 1))
    if workers <= 1 or len(docs) <= 1:
        for doc in docs:
            render_post(doc)
    else:
        with ThreadPoolExecutor(max_workers=min(workers, len(docs))) as executor:
            list(executor.map(render_post, docs))


def build_tags(ctx: PageContext, output_dir: Path, site_index: SiteIndex, rendered: dict[str, RenderedPost]) -> None:
    root = ".."
    sidebar = build_sidebar(site_index, root, ctx.about_html)
    for tag, docs in site_index.tags.items():
        content = (
            '<div class="section-head">'
            f"<h2>{html.escape(tag)}</h2>"
            f"<p>{len(docs)} posts tagged with this topic.</p>"
            "</div>"
            f'<div class="post-grid">{build_post_cards(docs, rendered, site_index, root)}</div>'
        )
        html_doc = ctx.render(f"{tag} | {ctx.args.site_name}", root, content, sidebar)
        write_text(output_dir / "tags" / f"{site_index.slugs[tag]}.html", html_doc)

    root = "."
    rows = []
    for tag, docs in site_index.tags.items():
        rows.append(
            f'<li><a href="{site_index.tag_url(tag, root)}">{html.escape(tag)}</a>'
            f'<span class="count">{len(docs)}</span></li>'
        )
    content = (
        '<div class="section-head">'
        "<h2>Tags</h2>"
        "</div>"
        f'<ul class="tag-overview">{"".join(rows) or "<li>No tags yet.</li>"}</ul>'
    )
    html_doc = ctx.render(
        f"Tags | {ctx.args.site_name}", root, content, build_sidebar(site_index, root, ctx.about_html)
    )
    write_text(output_dir / "tags.html", html_doc)


def build_archive(ctx: PageContext, output_dir: Path, site_index: SiteIndex, rendered: dict[str, RenderedPost]) -> None:
    root = "."
    sidebar = build_sidebar(site_index, root, ctx.about_html)
    posts = site_index.listing

    sections = []
    for month, docs in site_index.months.items():
        rows = []
        for doc in docs:
            rows.append(
                f'<li><span class="archive-date">{doc.date.strftime(DATE_FMT)}</span>'
                f'<a href="{post_url(doc, root)}">{html.escape(doc.title)}</a></li>'
            )
        sections.append(
            f'<section class="archive-group"><h3>{month}</h3>'
            f'<ul class="archive-list">{"".join(rows)}</ul></section>'
        )
    if not sections:
        sections.append('<p class="archive-empty">No posts yet.</p>')

    year_rows = []
    for year, count in build_year_counts(posts).items():
        year_rows.append(
            f'<li><span class="archive-year">{year}</span>'
            f'<span class="archive-count">{count}</span></li>'
        )
    total_words = sum(rendered[doc.path].words for doc in posts)
    stats_html = (
        '<div class="archive-stats">'
        f'<div class="archive-total">Total {len(posts)} posts</div>'
        f'<div class="archive-total">Total {total_words} words</div>'
        f'<ul class="archive-year-list">{"".join(year_rows)}</ul>'
        "</div>"
        if posts
        else ""
    )
    content = (
        '<div class="section-head">'
        "<h2>Archive</h2>"
        "<p>All posts by date.</p>"
        "</div>"
        f"{stats_html}"
        f'<div class="archive-views">{"".join(sections)}</div>'
    )
    write_text(output_dir / "archive.html", ctx.render(f"Archive | {ctx.args.site_name}", root, content, sidebar))


def build_404(ctx: PageContext, output_dir: Path, site_index: SiteIndex) -> None:
    root = "."
    sidebar = build_sidebar(site_index, root, ctx.about_html)
    content = (
        '<div class="section-head">'
        "<h2>404</h2>"
        "<p>Page not found. Try heading back to the homepage.</p>"
        "</div>"
        '<div class="post-card">'
        '<p class="post-summary">The page you requested does not exist.</p>'
        f'<a class="post-more" href="{root}/index.html">Back to home</a>'
        "</div>"
    )
    write_text(output_dir / "404.html", ctx.render(f"404 | {ctx.args.site_name}", root, content, sidebar))


def build_highlight_css(output_dir: Path, style: str) -> None:
    write_text(output_dir / HIGHLIGHT_CSS, highlight_css(style))


def build_rss(
    output_dir: Path,
    site_index: SiteIndex,
    rendered: dict[str, RenderedPost],
    site_url: str,
    args: object,
    feed_limit: int,
) -> None:
    if not site_url:
        return
    site_url = site_url.rstrip("/")
    posts = site_index.listing
    items = []
    for doc in posts[:feed_limit]:
        link = join_url(site_url, doc.output_path)
        items.append(
            "\n".join(
                [
                    "<item>",
                    f"<title>{html.escape(doc.title)}</title>",
                    f"<link>{link}</link>",
                    f"<guid>{link}</guid>",
                    f"<pubDate>{rfc822_date(doc.date)}</pubDate>",
                    *[f"<category>{html.escape(tag)}</category>" for tag in doc.tags],
                    f"<description>{html.escape(rendered[doc.path].summary)}</description>",
                    "</item>",
                ]
            )
        )
    header = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<rss version="2.0">',
        "<channel>",
        f"<title>{html.escape(args.site_name)}</title>",
        f"<link>{site_url}/</link>",
        f"<description>{html.escape(args.site_description)}</description>",
    ]
    if posts:
        header.append(f"<lastBuildDate>{rfc822_date(posts[0].date)}</lastBuildDate>")
    rss = "\n".join([*header, *items, "</channel>", "</rss>"])
    write_text(output_dir / "rss.xml", rss)


def build_atom(
    output_dir: Path,
    site_index: SiteIndex,
    rendered: dict[str, RenderedPost],
    site_url: str,
    args: object,
    feed_limit: int,
) -> None:
    if not site_url:
        return
    site_url = site_url.rstrip("/")
    posts = site_index.listing
    entries = []
    for doc in posts[:feed_limit]:
        link = join_url(site_url, doc.output_path)
        entries.append(
            "\n".join(
                [
                    "<entry>",
                    f"<title>{html.escape(doc.title)}</title>",
                    f'<link href="{link}" />',
                    f"<id>{link}</id>",
                    f"<updated>{iso_date(doc.date)}</updated>",
                    *[f'<category term="{html.escape(tag)}" />' for tag in doc.tags],
                    f"<summary>{html.escape(rendered[doc.path].summary)}</summary>",
                    "</entry>",
                ]
            )
        )
    header = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<feed xmlns="http://www.w3.org/2005/Atom">',
        f"<title>{html.escape(args.site_name)}</title>",
        f"<id>{site_url}/</id>",
    ]
    if posts:
        header.append(f"<updated>{iso_date(posts[0].date)}</updated>")
    header.extend([f'<link href="{site_url}/atom.xml" rel="self" />', f'<link href="{site_url}/" />'])
    atom = "\n".join([*header, *entries, "</feed>"])
    write_text(output_dir / "atom.xml", atom)


def build_sitemap(output_dir: Path, site_index: SiteIndex, site_url: str, total_pages: int) -> None:
    if not site_url:
        return
    site_url = site_url.rstrip("/")
    urls = [
        (site_url + "/", None),
        (join_url(site_url, "archive.html"), None),
        (join_url(site_url, "tags.html"), None),
    ]
    for page in range(2, total_pages + 1):
        urls.append((join_url(site_url, f"page-{page}.html"), None))
    for doc in site_index.listing:
        urls.append((join_url(site_url, doc.output_path), doc.date))
    for tag in site_index.tags:
        urls.append((join_url(site_url, f"tags/{site_index.slugs[tag]}.html"), None))
    items = []
    for url, lastmod in urls:
        lines = ["<url>", f"<loc>{html.escape(url)}</loc>"]
        if lastmod:
            lines.append(f"<lastmod>{lastmod.date().isoformat()}</lastmod>")
        lines.append("</url>")
        items.append("\n".join(lines))
    sitemap = "\n".join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
            "\n".join(items),
            "</urlset>",
        ]
    )
    write_text(output_dir / "sitemap.xml", sitemap)
