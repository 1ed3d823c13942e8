"""
Shared test fixtures for the availability zone daemon tests.
"""

import json
from unittest.mock import Mock

import pytest

from utils.file_ops import FileOps


@pytest.fixture
def data_dir(tmp_path):
    """Empty daemon data directory"""
    directory = tmp_path / "data"
    directory.mkdir()
    return directory


@pytest.fixture
def zones_dir(data_dir):
    """Existing, empty zones directory inside the data directory"""
    directory = data_dir / "zones"
    directory.mkdir()
    return directory


@pytest.fixture
def make_vm():
    """Factory for VM collaborators with a name and a make_available mock"""

    def _make_vm(name):
        vm = Mock()
        vm.vm_name = name
        return vm

    return _make_vm


@pytest.fixture
def counting_file_ops():
    """Real file operations that count writes per path"""

    class CountingFileOps(FileOps):
        def __init__(self):
            self.writes = {}

        def open_write(self, path):
            self.writes[path] = self.writes.get(path, 0) + 1
            return super().open_write(path)

    return CountingFileOps()


def read_json(path):
    with open(path) as f:
        return json.load(f)


def write_json(path, data):
    with open(path, "w") as f:
        json.dump(data, f)
