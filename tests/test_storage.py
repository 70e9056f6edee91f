import pytest
from werkzeug.datastructures import FileStorage

from apps.common.storage import ProposalStorage

from tests._utils import PDF_BYTES, pdf_upload


@pytest.fixture
def storage(tmp_path):
    return ProposalStorage(tmp_path)


def upload():
    stream, filename, mimetype = pdf_upload()
    return FileStorage(stream=stream, filename=filename, content_type=mimetype)


def test_save_and_delete(storage):
    path = storage.save(upload())
    assert path.startswith("proposals/")
    assert path.endswith(".pdf")
    assert storage.exists(path)
    assert storage.absolute_path(path).read_bytes() == PDF_BYTES

    other = storage.save(upload())
    assert other != path

    storage.delete(path)
    assert not storage.exists(path)
    assert storage.exists(other)

    # Deleting twice, or nothing at all, is fine
    storage.delete(path)
    storage.delete(None)


def test_paths_stay_inside_root(storage):
    with pytest.raises(ValueError):
        storage.absolute_path("../outside.pdf")
    with pytest.raises(ValueError):
        storage.absolute_path("/etc/passwd")
    assert not storage.exists("../../etc/passwd")
    assert not storage.exists(None)
