import os
import stat

import pytest

from eksa_bundlegen.filewriter import (
    DEFAULT_TMP_FOLDER,
    OBJECT_SEPARATOR,
    FileWriter,
    concat_yaml_resources,
)


def test_writer_creates_generated_folder(tmp_path):
    target = tmp_path / "out"
    writer = FileWriter(target)
    assert (target / DEFAULT_TMP_FOLDER).is_dir()
    assert writer.directory == str(target)


def test_write_returns_path_and_content(tmp_path):
    writer = FileWriter(tmp_path)
    path = writer.write("bundle.yaml", b"kind: PackageBundle\n")
    assert path == os.path.join(str(tmp_path), "bundle.yaml")
    with open(path, "rb") as handle:
        assert handle.read() == b"kind: PackageBundle\n"


def test_write_accepts_text_and_overwrites(tmp_path):
    writer = FileWriter(tmp_path)
    writer.write("a.txt", "first version")
    path = writer.write("a.txt", "second")
    with open(path, encoding="utf-8") as handle:
        assert handle.read() == "second"


def test_write_uses_given_permissions(tmp_path):
    writer = FileWriter(tmp_path)
    path = writer.write("private.txt", b"x", permissions=0o600)
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600


def test_write_into_missing_directory_fails(tmp_path):
    writer = FileWriter(tmp_path)
    with pytest.raises(OSError, match="error writing to file"):
        writer.write(os.path.join("missing", "file.yaml"), b"x")


def test_with_dir_nests(tmp_path):
    child = FileWriter(tmp_path).with_dir("sub")
    assert child.directory == os.path.join(str(tmp_path), "sub")
    assert (tmp_path / "sub" / DEFAULT_TMP_FOLDER).is_dir()


def test_clean_up_removes_directory(tmp_path):
    target = tmp_path / "out"
    writer = FileWriter(target)
    writer.write("f.yaml", b"x")
    writer.clean_up()
    assert not target.exists()
    writer.clean_up()
    assert not target.exists()


def test_concat_yaml_resources_single_leading_separator():
    first, second = b"a: 1\n", b"b: 2\n"
    result = concat_yaml_resources(first, second)
    assert result == OBJECT_SEPARATOR + first + second
    assert result.startswith(b"---\n")
    assert result.count(OBJECT_SEPARATOR) == 1


def test_concat_yaml_resources_empty():
    assert concat_yaml_resources() == OBJECT_SEPARATOR