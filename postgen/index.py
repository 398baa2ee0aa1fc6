from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .content import Document, slugify


@dataclass
class SiteIndex:
    listing: list[Document] = field(default_factory=list)
    tags: dict[str, list[Document]] = field(default_factory=dict)
    slugs: dict[str, str] = field(default_factory=dict)
    months: dict[str, list[Document]] = field(default_factory=dict)

    def tag_url(self, tag: str, root: str) -> str:
        return f"{root}/tags/{self.slugs[tag]}.html"


def sort_documents(documents: Iterable[Document]) -> list[Document]:
    """Newest first; documents sharing a date keep path order."""
    ordered = sorted(documents, key=lambda doc: doc.path)
    ordered.sort(key=lambda doc: doc.date, reverse=True)
    return ordered


def build_tag_index(documents: Iterable[Document]) -> dict[str, list[Document]]:
    tag_map: dict[str, list[Document]] = {}
    for doc in sort_documents(doc for doc in documents if doc.published):
        for tag in doc.tags:
            tag_map.setdefault(tag, []).append(doc)
    return dict(sorted(tag_map.items(), key=lambda x: (x[0].lower(), x[0])))


def build_date_index(documents: Iterable[Document]) -> dict[str, list[Document]]:
    date_groups: dict[str, list[Document]] = {}
    for doc in sort_documents(doc for doc in documents if doc.published):
        date_groups.setdefault(doc.date.strftime("%Y-%m"), []).append(doc)
    return date_groups


def build_year_counts(documents: Iterable[Document]) -> dict[int, int]:
    year_counts: dict[int, int] = {}
    for doc in documents:
        if doc.published:
            year_counts[doc.date.year] = year_counts.get(doc.date.year, 0) + 1
    return dict(sorted(year_counts.items(), reverse=True))


def tag_slugs(tags: Iterable[str]) -> dict[str, str]:
    slugs: dict[str, str] = {}
    used: set[str] = set()
    for tag in sorted(set(tags)):
        base = slugify(tag)
        slug = base
        counter = 2
        while slug in used:
            slug = f"{base}-{counter}"
            counter += 1
        used.add(slug)
        slugs[tag] = slug
    return slugs


def build_site_index(documents: Iterable[Document]) -> SiteIndex:
    published = [doc for doc in documents if doc.published]
    tags = build_tag_index(published)
    return SiteIndex(
        listing=sort_documents(published),
        tags=tags,
        slugs=tag_slugs(tags),
        months=build_date_index(published),
    )
