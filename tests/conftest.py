from __future__ import annotations

from pathlib import Path

import pytest


def write_doc(root: Path, rel: str, front_matter: str, body: str = "Body text.") -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"---\n{front_matter.strip()}\n---\n{body}\n", encoding="utf-8")
    return path


@pytest.fixture
def content_dir(tmp_path: Path) -> Path:
    root = tmp_path / "content"
    write_doc(
        root,
        "2019-01-01-blocks-and-delegates.md",
        "layout: post\ntitle: Blocks and delegates\ntags: swift objc",
        "Callbacks come in many shapes.\n\n## Delegates\n\nA protocol.",
    )
    write_doc(
        root,
        "2020/2020-01-01-state-in-swiftui.md",
        "layout: post\ntitle: State in SwiftUI\ndate: 2020-01-01\ntags: [swift, swiftui]\n"
        "description: Where state should live.\nimg: cover.png",
        "![diagram](diagram.png)\n\n```swift\n@State var count = 0\n```",
    )
    write_doc(
        root,
        "unfinished.md",
        "title: Jailbreak tweak notes\ndate: 2021-03-01\ntags: [theos, swift]\npublished: false",
        "Not ready yet.",
    )
    (root / "2020" / "diagram.png").write_bytes(b"\x89PNG fake")
    return root
