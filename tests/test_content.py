import datetime as dt

import pytest

from postgen.content import (
    build_document,
    count_words,
    dump_front_matter,
    normalize_list_spacing,
    parse_date,
    parse_front_matter,
    parse_published,
    parse_tags,
    slugify,
)
from postgen.errors import ParseError

POST = """---
layout: post
title: Callbacks in Swift
date: 2019-01-01
tags: [swift, ios]
published: true
description: Closures, delegates and notifications.
img: /assets/callbacks.png
---
Closures are the most common callback.
"""


def test_parse_front_matter_fields():
    meta, body = parse_front_matter(POST)
    assert meta["layout"] == "post"
    assert meta["title"] == "Callbacks in Swift"
    assert meta["date"] == dt.date(2019, 1, 1)
    assert meta["tags"] == ["swift", "ios"]
    assert meta["published"] is True
    assert body == "Closures are the most common callback."


def test_front_matter_round_trip():
    meta, body = parse_front_matter(POST)
    again_meta, again_body = parse_front_matter(dump_front_matter(meta, body))
    assert again_meta == meta
    assert again_body == body


def test_keys_are_lowercased_and_bom_is_ignored():
    meta, _ = parse_front_matter("\ufeff---\nTitle: Hello\n---\n")
    assert meta == {"title": "Hello"}


def test_dot_terminator_is_accepted():
    meta, body = parse_front_matter("---\ntitle: Hello\n...\ntext")
    assert meta["title"] == "Hello"
    assert body == "text"


@pytest.mark.parametrize(
    "text, message",
    [
        ("# No front matter\n", "missing front matter"),
        ("", "missing front matter"),
        ("---\ntitle: Open\n", "unterminated"),
        ("---\ntitle: [broken\n---\n", "invalid front matter"),
        ("---\n- one\n- two\n---\n", "mapping"),
        ("---\nlayout: post\n---\n", "title"),
        ("---\ntitle: ''\n---\n", "title"),
        ("---\n---\n", "title"),
    ],
)
def test_malformed_front_matter(text, message):
    with pytest.raises(ParseError) as excinfo:
        parse_front_matter(text)
    assert message in str(excinfo.value)


def test_build_document():
    doc = build_document("2019/callbacks.md", POST)
    assert doc.title == "Callbacks in Swift"
    assert doc.date == dt.datetime(2019, 1, 1)
    assert doc.tags == ("swift", "ios")
    assert doc.published is True
    assert doc.layout == "post"
    assert doc.description == "Closures, delegates and notifications."
    assert doc.img == "/assets/callbacks.png"
    assert doc.output_path == "2019/callbacks.html"
    assert doc.root == ".."


def test_build_document_error_carries_path():
    with pytest.raises(ParseError) as excinfo:
        build_document("drafts/broken.md", "no front matter")
    assert excinfo.value.path == "drafts/broken.md"
    assert str(excinfo.value).startswith("drafts/broken.md: ")


@pytest.mark.parametrize(
    "meta, expected",
    [
        ({"tags": ["swift", "ios", "swift"]}, ("swift", "ios")),
        ({"tags": "swift ios"}, ("swift", "ios")),
        ({"tags": "swift, state management"}, ("swift", "state management")),
        ({"tags": "[swift, 'ios']"}, ("swift", "ios")),
        ({"tag": "theos"}, ("theos",)),
        ({"categories": ["ios"]}, ("ios",)),
        ({"tags": ["swift"], "categories": ["ios"]}, ("swift",)),
        ({"tags": [2019]}, ("2019",)),
        ({}, ()),
    ],
)
def test_parse_tags(meta, expected):
    assert parse_tags(meta) == expected


@pytest.mark.parametrize(
    "meta, expected",
    [
        ({}, True),
        ({"published": None}, True),
        ({"published": True}, True),
        ({"published": False}, False),
        ({"published": "false"}, False),
        ({"published": True, "draft": True}, False),
    ],
)
def test_parse_published(meta, expected):
    assert parse_published(meta) is expected


def test_parse_date_variants():
    assert parse_date({"date": dt.date(2019, 5, 1)}, "a.md") == dt.datetime(2019, 5, 1)
    assert parse_date({"date": "2019-05-01 08:30"}, "a.md") == dt.datetime(2019, 5, 1, 8, 30)
    assert parse_date({"date": "2019-05-01 08:30:00 +0800"}, "a.md") == dt.datetime(2019, 5, 1, 8, 30)
    assert parse_date({}, "posts/2018-07-04-proxy.md") == dt.datetime(2018, 7, 4)


def test_parse_date_requires_a_source():
    with pytest.raises(ParseError):
        parse_date({}, "posts/proxy.md")
    with pytest.raises(ParseError):
        parse_date({"date": "someday"}, "posts/proxy.md")


def test_slugify():
    assert slugify("SwiftUI Architecture") == "swiftui-architecture"
    assert slugify("C++") == "c"
    assert slugify("+++") == "tag"


def test_normalize_list_spacing():
    assert normalize_list_spacing("Intro\n- a\n- b") == "Intro\n\n- a\n- b"
    assert normalize_list_spacing(">> quoted") == "> quoted"
    fenced = "```\ntext\n- not a list\n```"
    assert normalize_list_spacing(fenced) == fenced


def test_count_words():
    assert count_words("hello world") == 2
    assert count_words("state &amp; props") == 2
    assert count_words("SwiftUI 你好") == 3


def test_impossible_yaml_date_is_a_parse_error():
    with pytest.raises(ParseError) as excinfo:
        parse_front_matter("---\ntitle: Bad\ndate: 2019-13-45\n---\n")
    assert "invalid front matter" in str(excinfo.value)


@pytest.mark.parametrize("layout", ["../../secrets", "posts/post", "..", ".hidden", "a\\b"])
def test_layout_must_be_a_plain_name(layout):
    with pytest.raises(ParseError) as excinfo:
        build_document("a.md", f"---\ntitle: A\ndate: 2020-01-01\nlayout: '{layout}'\n---\n")
    assert "invalid layout" in str(excinfo.value)


def test_layout_names_with_dots_and_dashes():
    doc = build_document("a.md", "---\ntitle: A\ndate: 2020-01-01\nlayout: post-wide.v2\n---\n")
    assert doc.layout == "post-wide.v2"
