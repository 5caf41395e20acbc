"""
Tests for project staging and packaging.
"""

import zipfile
from io import BytesIO

import pytest

from sketchforge.errors import FilesystemError
from sketchforge.project.packager import ARCHIVE_COMMENT, Packager
from sketchforge.project.tree import ProjectTree


@pytest.fixture
def tree():
    tree = ProjectTree.create("shop")
    tree.write_text("package.json", '{"name": "shop"}\n')
    tree.write_text("src/main.ts", "bootstrap();\n")
    tree.write_text("src/app/app.component.ts", "export class AppComponent {}\n")
    tree.mkdir("src/assets")
    yield tree
    tree.cleanup()


def test_pack_round_trips_files(tree):
    expected = tree.snapshot()
    base = tree.base

    archive = zipfile.ZipFile(BytesIO(Packager().pack(tree)))

    contents = {
        info.filename[len("shop/"):]: archive.read(info)
        for info in archive.infolist()
        if not info.is_dir()
    }
    assert contents == expected
    assert not base.exists()


def test_entries_are_prefixed_and_ordered(tree):
    archive = zipfile.ZipFile(BytesIO(Packager().pack(tree)))

    assert archive.namelist() == [
        "shop/",
        "shop/package.json",
        "shop/src/",
        "shop/src/main.ts",
        "shop/src/app/",
        "shop/src/app/app.component.ts",
        "shop/src/assets/",
    ]
    assert archive.comment == ARCHIVE_COMMENT
    for info in archive.infolist():
        assert info.create_system == 3
        assert info.date_time == (1980, 1, 1, 0, 0, 0)
        assert info.compress_type == zipfile.ZIP_DEFLATED


def test_identical_trees_give_identical_archives():
    archives = []
    for _ in range(2):
        tree = ProjectTree.create("same")
        tree.write_text("a/b.txt", "content\n")
        archives.append(Packager().pack(tree))

    assert archives[0] == archives[1]


def test_tree_rejects_escaping_paths(tree):
    with pytest.raises(FilesystemError):
        tree.write_text("../outside.txt", "nope")


def test_tree_listing(tree):
    assert tree.files() == ["package.json", "src/app/app.component.ts", "src/main.ts"]
    assert tree.directories() == ["src", "src/app", "src/assets"]
    assert tree.name == "shop"
