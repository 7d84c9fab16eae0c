"""Project listings sent to the model and shown by /tree."""
from __future__ import annotations

from cody_agent.service.project_structure import EMPTY_MARKER, display_tree, structure_lines, structure_text
from cody_agent.service.session_context import SessionContext


def _touch(path):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("", encoding="utf-8")


def test_structure_text_lists_dirs_first_and_skips_noise(tmp_path):
    root = tmp_path / "app"
    _touch(root / "main.py")
    _touch(root / "src" / "util.py")
    _touch(root / "node_modules" / "dep" / "index.js")
    _touch(root / "__pycache__" / "x.pyc")
    _touch(root / ".env")
    assert structure_text(root) == "app/\n  src/\n    util.py\n  main.py"  # nosec B101


def test_structure_text_empty_directory(tmp_path):
    root = tmp_path / "empty"
    root.mkdir()
    assert structure_text(root) == f"empty/\n{EMPTY_MARKER}"  # nosec B101


def test_structure_depth_and_entry_limits(tmp_path):
    deep = tmp_path
    for name in "abcdefg":
        deep = deep / name
    _touch(deep / "leaf.txt")
    lines = structure_lines(tmp_path, max_depth=2)
    assert [line.strip() for line in lines] == ["a/", "b/", "c/"]  # nosec B101
    for i in range(5):
        _touch(tmp_path / "many" / f"f{i}.txt")
    assert len(structure_lines(tmp_path / "many", max_entries=3)) == 3  # nosec B101


def test_display_tree_connectors(tmp_path):
    _touch(tmp_path / "src" / "a.py")
    _touch(tmp_path / "readme.md")
    _touch(tmp_path / "build" / "out.bin")
    assert display_tree(tmp_path) == "├── src/\n│   └── a.py\n└── readme.md\n"  # nosec B101


def test_session_context_change_dir(tmp_path):
    _touch(tmp_path / "proj" / "file.py")
    context = SessionContext(cwd=tmp_path)
    assert context.change_dir("proj") == tmp_path / "proj"  # nosec B101
    assert context.project_structure == "proj/\n  file.py"  # nosec B101
    assert context.change_dir("missing") is None and context.cwd == tmp_path / "proj"  # nosec B101
    assert context.resolve("file.py") == tmp_path / "proj" / "file.py"  # nosec B101
