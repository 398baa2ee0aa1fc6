import json

import pytest

from postgen.cli import main
from postgen.config import load_config, resolve_about_html


def test_missing_config_is_empty(tmp_path):
    assert load_config(tmp_path / "site.toml") == {}


def test_load_toml_yaml_json(tmp_path):
    toml_path = tmp_path / "site.toml"
    toml_path.write_text('site_name = "iOS Notes"\nposts_per_page = 5\n', encoding="utf-8")
    yaml_path = tmp_path / "site.yml"
    yaml_path.write_text("site_name: iOS Notes\nposts_per_page: 5\n", encoding="utf-8")
    json_path = tmp_path / "site.json"
    json_path.write_text(json.dumps({"site_name": "iOS Notes", "posts_per_page": 5}), encoding="utf-8")
    expected = {"site_name": "iOS Notes", "posts_per_page": 5}
    assert load_config(toml_path) == expected
    assert load_config(yaml_path) == expected
    assert load_config(json_path) == expected


@pytest.mark.parametrize(
    "name, text",
    [
        ("site.toml", "site_name = "),
        ("site.yaml", "- a\n- b\n"),
        ("site.json", "{not json"),
    ],
)
def test_invalid_config_exits(tmp_path, capsys, name, text):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    with pytest.raises(SystemExit):
        load_config(path)
    assert str(path) in capsys.readouterr().err


def test_config_supplies_defaults(tmp_path, content_dir, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "site.toml").write_text(
        f'input = "{content_dir.name}"\noutput = "public"\nsite_name = "Config Blog"\n'
        'copyright_year = "2024"\nenable_rss = false\n',
        encoding="utf-8",
    )
    assert main(["build"]) == 0
    index = (tmp_path / "public" / "index.html").read_text(encoding="utf-8")
    assert "Config Blog" in index
    assert "&copy; 2024" in index
    assert not (tmp_path / "public" / "rss.xml").exists()


def test_flags_override_config(tmp_path, content_dir, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "site.toml").write_text('site_name = "Config Blog"\n', encoding="utf-8")
    code = main(["build", "--input", str(content_dir), "--output", "out", "--site-name", "Flag Blog"])
    assert code == 0
    assert "Flag Blog" in (tmp_path / "out" / "index.html").read_text(encoding="utf-8")


def test_about_panel_sources(tmp_path):
    about = tmp_path / "about.md"
    about.write_text("I write about **SwiftUI**.", encoding="utf-8")

    class Args:
        config = str(tmp_path / "site.toml")
        about_html = ""
        about_file = "about.md"
        about_text = ""
        site_description = "Notes"

    assert resolve_about_html(Args()) == "<p>I write about <strong>SwiftUI</strong>.</p>"
    Args.about_file = ""
    Args.about_text = "Plain <text>"
    assert resolve_about_html(Args()) == "<p>Plain &lt;text&gt;</p>"
