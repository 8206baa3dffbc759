from __future__ import annotations

from pathlib import Path

import pytest
from structlog.testing import capture_logs

from page_runner.document import (
    Fragment,
    assemble_document,
    discard_document,
    resolve_fragment,
    resolve_fragments,
    stage_document,
    staged_document_path,
    wrap_fragment,
)


def test_inline_fragments_keep_argument_order() -> None:
    fragments = resolve_fragments(["var a = 1;", "assert(1===1)", "a < 2 && '<b>' !== ''"])
    assert [f.kind for f in fragments] == ["inline", "inline", "inline"]

    html = assemble_document(fragments)
    assert html.startswith("<html><head><script>//<![CDATA[\n")
    assert html.endswith("</head><body></body></html>")
    assert html.count("<script>") == 3

    positions = [html.index(f.text) for f in fragments]
    assert positions == sorted(positions)
    for f in fragments:
        assert wrap_fragment(f.text) in html


def test_wrap_fragment_uses_comment_cdata() -> None:
    assert wrap_fragment("x && y") == "<script>//<![CDATA[\nx && y\n//]]></script>"


def test_existing_file_contents_are_embedded(tmp_path: Path) -> None:
    src = tmp_path / "suite.js"
    body = "doo.runner.set_print_fn_BANG_(function(){});\n// <tags> & such\n"
    src.write_text(body, encoding="utf-8")

    fragment = resolve_fragment(str(src))
    assert fragment == Fragment(kind="file", text=body, path=str(src))
    assert wrap_fragment(body) in assemble_document([fragment])


def test_non_utf8_file_is_embedded_with_replacement(tmp_path: Path) -> None:
    src = tmp_path / "suite.js"
    src.write_bytes(b"var s = '\xe9';")

    fragment = resolve_fragment(str(src))
    assert fragment.kind == "file"
    assert fragment.text == "var s = '�';"
    assert wrap_fragment(fragment.text) in assemble_document([fragment])


def test_unreadable_file_falls_back_to_literal_text(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    src = tmp_path / "locked.js"
    src.write_text("var locked = true;", encoding="utf-8")

    def _deny(self: Path, *args, **kwargs) -> str:
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(Path, "read_text", _deny)
    with capture_logs() as logs:
        fragment = resolve_fragment(str(src))

    assert fragment == Fragment(kind="inline", text=str(src))
    warnings = [e for e in logs if e["log_level"] == "warning"]
    assert len(warnings) == 1
    assert warnings[0]["fragment"] == str(src)
    assert "Permission denied" in warnings[0]["error"]


def test_missing_script_file_warns_and_is_embedded_literally() -> None:
    with capture_logs() as logs:
        fragment = resolve_fragment("path/does/not/exist.js")

    assert fragment.kind == "inline"
    assert fragment.text == "path/does/not/exist.js"
    warnings = [e for e in logs if e["log_level"] == "warning"]
    assert len(warnings) == 1
    assert warnings[0]["fragment"] == "path/does/not/exist.js"
    assert "<script>//<![CDATA[\npath/does/not/exist.js\n//]]></script>" in assemble_document([fragment])


def test_plain_expression_does_not_warn() -> None:
    with capture_logs() as logs:
        fragment = resolve_fragment("cemerick.cljs.test.run_all_tests()")
    assert fragment.kind == "inline"
    assert logs == []


def test_custom_script_extensions() -> None:
    with capture_logs() as logs:
        resolve_fragment("missing/suite.cljs.js", script_extensions=[".cljs"])
        resolve_fragment("missing/suite.cljs", script_extensions=[".cljs"])
    assert [e["fragment"] for e in logs] == ["missing/suite.cljs"]


def test_assembly_is_deterministic(tmp_path: Path) -> None:
    src = tmp_path / "a.js"
    src.write_text("var a = 1;", encoding="utf-8")
    args = [str(src), "a === 1"]
    assert assemble_document(resolve_fragments(args)) == assemble_document(resolve_fragments(args))


def test_empty_fragment_list_gives_empty_head() -> None:
    assert assemble_document([]) == "<html><head></head><body></body></html>"


def test_staging_round_trip(tmp_path: Path) -> None:
    path = staged_document_path("suite", str(tmp_path))
    assert path == (tmp_path / "suite.html").resolve()

    stage_document(path, "<html></html>")
    assert path.read_text(encoding="utf-8") == "<html></html>"

    discard_document(path)
    assert not path.exists()
    # Removing twice is harmless.
    discard_document(path)


def test_staged_path_defaults_to_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    assert staged_document_path("runner") == (tmp_path / "runner.html").resolve()
