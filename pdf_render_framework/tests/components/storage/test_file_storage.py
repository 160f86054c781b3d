import json
import os

import pytest

from pdf_render_framework.components.storage.file_storage import (
    FileStorage,
    FileExistsError,
    FilePathError,
    SerializationError,
)


class MockConfigurationManager:
    def __init__(self, settings=None):
        self.settings = settings if settings is not None else {}

    def get(self, key, default=None):
        try:
            value = self.settings
            for k_part in key.split('.'):
                value = value[k_part]
            return value
        except (KeyError, TypeError):
            return default


@pytest.fixture
def storage(tmp_path):
    config = MockConfigurationManager({"components": {"file_storage": {"base_path": str(tmp_path / "out")}}})
    return FileStorage(config=config)


def test_base_path_is_created_from_config(storage, tmp_path):
    assert storage.base_path == str(tmp_path / "out")
    assert os.path.isdir(storage.base_path)


def test_save_pdf_appends_extension(storage):
    path = storage.save_pdf(b"%PDF-1.4 test", "report")

    assert path == os.path.join(storage.base_path, "report.pdf")
    with open(path, "rb") as f:
        assert f.read() == b"%PDF-1.4 test"


def test_save_pdf_creates_nested_directories(storage):
    path = storage.save_pdf(b"%PDF", "2024/march/report.PDF")
    assert path == os.path.join(storage.base_path, "2024/march/report.PDF")
    assert os.path.isfile(path)


def test_absolute_filename_bypasses_base_path(storage, tmp_path):
    target = str(tmp_path / "elsewhere" / "doc.pdf")
    assert storage.save_pdf(b"%PDF", target) == target
    assert os.path.isfile(target)


def test_existing_file_requires_overwrite(storage):
    storage.save_pdf(b"first", "doc.pdf")

    with pytest.raises(FileExistsError) as excinfo:
        storage.save_pdf(b"second", "doc.pdf")
    assert excinfo.value.path.endswith("doc.pdf")

    path = storage.save_pdf(b"second", "doc.pdf", overwrite=True)
    with open(path, "rb") as f:
        assert f.read() == b"second"


def test_generated_filename_uses_prefix(storage):
    path = storage.save_pdf(b"%PDF", filename_prefix="example_com")
    name = os.path.basename(path)
    assert name.startswith("example_com_")
    assert name.endswith(".pdf")


def test_blank_filename_is_rejected(storage):
    with pytest.raises(FilePathError):
        storage._get_full_path("   ", ".pdf")


def test_save_json_writes_trace_document(storage):
    document = {"traceEvents": [{"name": "a"}, {"name": "b"}]}

    path = storage.save_json(document, "trace")

    assert path.endswith("trace.json")
    with open(path, encoding="utf-8") as f:
        assert json.load(f) == document


def test_save_json_rejects_unserializable_data(storage):
    with pytest.raises(SerializationError):
        storage.save_json({"bad": {1, 2}}, "trace")
