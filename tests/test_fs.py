import os
import tempfile

import pytest

from nginxwrapper import fs


@pytest.fixture
def work_dir(tmp_path):
    directory = tmp_path / "nginx-wrapper-lib-test"
    directory.mkdir(mode=fs.OS_USER_RWX | fs.OS_ALL_R)
    return directory


def test_cant_find_in_path():
    with pytest.raises(FileNotFoundError):
        fs.find_in_path("something345345")


def test_can_find_in_path(tmp_path, monkeypatch):
    tool = tmp_path / "tool"
    tool.write_text("#!/bin/sh\n")
    tool.chmod(fs.OS_USER_RWX)
    monkeypatch.setenv("PATH", str(tmp_path))

    assert fs.find_in_path("tool") == str(tool)


def test_find_in_path_ignores_non_executable(tmp_path, monkeypatch):
    plain = tmp_path / "plain"
    plain.write_text("data")
    plain.chmod(fs.OS_USER_RW)
    monkeypatch.setenv("PATH", str(tmp_path))

    with pytest.raises(FileNotFoundError):
        fs.find_in_path("plain")


def test_path_exists_with_directory(work_dir):
    assert fs.path_exists_and_is_file_or_directory(work_dir) is None


def test_path_exists_with_file(work_dir):
    file_path = work_dir / "original"
    file_path.touch()
    assert fs.path_exists_and_is_file_or_directory(file_path) is None


def test_path_exists_with_blank_path():
    with pytest.raises(FileNotFoundError):
        fs.path_exists_and_is_file_or_directory("")


def test_path_exists_with_symlink_file_path(work_dir):
    source = work_dir / "original"
    source.touch()
    link = work_dir / "symlink"
    os.symlink(source, link)

    with pytest.raises(ValueError):
        fs.path_exists_and_is_file_or_directory(link)


def test_path_exists_with_symlink_directory_path(work_dir):
    source = work_dir / "original"
    source.mkdir(mode=fs.OS_USER_RWX | fs.OS_ALL_R)
    link = work_dir / "symlink"
    os.symlink(source, link)

    with pytest.raises(ValueError):
        fs.path_exists_and_is_file_or_directory(link)


def test_path_exists_with_non_regular_file():
    with pytest.raises(ValueError):
        fs.path_exists_and_is_file_or_directory("/dev/null")


def test_is_regular_file_or_directory(work_dir):
    file_path = work_dir / "original"
    file_path.touch()
    link = work_dir / "symlink"
    os.symlink(file_path, link)

    assert fs.is_regular_file_or_directory(os.stat(work_dir)) is True
    assert fs.is_regular_file_or_directory(os.stat(file_path)) is True
    assert fs.is_regular_file_or_directory(os.lstat(link)) is False


def test_copy_file_round_trip(work_dir):
    data = bytes(range(256)) * 7
    source = work_dir / "source"
    source.write_bytes(data)
    destination = work_dir / "destination"

    written = fs.copy_file(source, destination, 5)

    assert written == len(data)
    assert destination.read_bytes() == data


def test_copy_file_large_buffer(work_dir):
    source = work_dir / "source"
    source.write_bytes(b"hello")
    destination = work_dir / "destination"

    assert fs.copy_file(source, destination, 4096) == len(b"hello")
    assert destination.read_bytes() == b"hello"


def test_copy_file_empty_source(work_dir):
    source = work_dir / "source"
    source.touch()
    destination = work_dir / "destination"

    assert fs.copy_file(source, destination, 16) == 0
    assert destination.read_bytes() == b""


def test_copy_file_rejects_directory(work_dir):
    with pytest.raises(ValueError):
        fs.copy_file(work_dir, work_dir / "destination", 16)


def test_copy_file_missing_source(work_dir):
    with pytest.raises(FileNotFoundError):
        fs.copy_file(work_dir / "missing", work_dir / "destination", 16)


def test_copy_file_negative_buffer(work_dir):
    source = work_dir / "source"
    source.write_bytes(b"abc")
    with pytest.raises(ValueError):
        fs.copy_file(source, work_dir / "destination", -1)


def test_temp_directory_path_is_normalized():
    result = fs.temp_directory_path("a" + os.sep + os.sep + "b")

    assert result.startswith(os.path.normpath(tempfile.gettempdir()))
    assert result.endswith(os.sep + "a" + os.sep + "b")
    assert os.sep + os.sep not in result