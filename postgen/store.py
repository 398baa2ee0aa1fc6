from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable

from .content import Document, build_document
from .errors import ParseError

SOURCE_SUFFIXES = {".md", ".markdown"}


@dataclass
class LoadResult:
    documents: list[Document] = field(default_factory=list)
    failures: list[ParseError] = field(default_factory=list)

    @property
    def published(self) -> list[Document]:
        return [doc for doc in self.documents if doc.published]


def _is_hidden(rel: Path) -> bool:
    return any(part.startswith(".") for part in rel.parts)


def _walk(input_dir: Path, exclude: Iterable[Path]) -> list[Path]:
    excluded = [path.resolve() for path in exclude]
    found = []
    for path in input_dir.rglob("*"):
        if not path.is_file():
            continue
        if _is_hidden(path.relative_to(input_dir)):
            continue
        resolved = path.resolve()
        if any(resolved.is_relative_to(item) for item in excluded):
            continue
        found.append(path)
    return sorted(found, key=lambda p: p.relative_to(input_dir).as_posix())


def list_sources(input_dir: Path, exclude: Iterable[Path] = ()) -> list[Path]:
    return [path for path in _walk(input_dir, exclude) if path.suffix.lower() in SOURCE_SUFFIXES]


def list_assets(input_dir: Path, exclude: Iterable[Path] = ()) -> list[Path]:
    return [path for path in _walk(input_dir, exclude) if path.suffix.lower() not in SOURCE_SUFFIXES]


def load_document(path: Path, input_dir: Path) -> Document:
    rel = path.relative_to(input_dir).as_posix()
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(f"invalid UTF-8: {exc}", rel) from exc
    return build_document(rel, text)


def load_documents(input_dir: Path, strict: bool = True, exclude: Iterable[Path] = ()) -> LoadResult:
    """Load every markdown source under ``input_dir``.

    In strict mode the first ParseError propagates; otherwise failing
    documents are collected in ``LoadResult.failures`` and skipped.
    """
    result = LoadResult()
    for path in list_sources(input_dir, exclude):
        try:
            result.documents.append(load_document(path, input_dir))
        except ParseError as exc:
            if strict:
                raise
            result.failures.append(exc)
    return result


def claim_outputs(
    result: LoadResult,
    strict: bool = True,
    reserved: Callable[[str], bool] = lambda rel: False,
    assets: Iterable[str] = (),
) -> LoadResult:
    """Give every published document an output path nothing else writes to.

    The first document in path order keeps a contested path. Later ones,
    and documents landing on a reserved page or a copied asset, fail like
    any other invalid document.
    """
    claimed = {rel: f"asset {rel}" for rel in assets}
    kept = []
    for doc in result.documents:
        if not doc.published:
            kept.append(doc)
            continue
        target = doc.output_path
        if reserved(target):
            problem = f"output {target} is reserved for a generated page"
        elif target in claimed:
            problem = f"output {target} collides with {claimed[target]}"
        else:
            claimed[target] = doc.path
            kept.append(doc)
            continue
        error = ParseError(problem, doc.path)
        if strict:
            raise error
        result.failures.append(error)
    result.documents = kept
    return result
