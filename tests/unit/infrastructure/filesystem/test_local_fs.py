import base64

import pytest

from workdocs.domain.errors import DiscoveryError
from workdocs.infrastructure.filesystem.local_fs import (
    LocalDocumentStore,
    extract_employee_id,
    validate_filename,
)


@pytest.fixture
def store(document_dirs):
    return LocalDocumentStore(
        input_dir=str(document_dirs["input"]),
        processed_dir=str(document_dirs["processed"]),
        failed_dir=str(document_dirs["failed"]),
        max_file_size_mb=1,
    )


@pytest.mark.parametrize("filename, reason", [
    ("12345-contract.pdf", None),
    ("", "Filename is empty"),
    ("1" * 252 + "-a.pdf", "Filename too long (max 255 characters)"),
    ("12345-con?tract.pdf", "Filename contains invalid characters"),
    ("12345-con\x01tract.pdf", "Filename contains invalid characters"),
    ("contract.pdf", "Filename must follow pattern: {employeeId}-{description}.{extension}"),
    ("12345-signed-contract.pdf", "Filename must follow pattern: {employeeId}-{description}.{extension}"),
    ("12345-contract", "Filename must follow pattern: {employeeId}-{description}.{extension}"),
])
def test_validate_filename(filename, reason):
    assert validate_filename(filename) == reason


@pytest.mark.parametrize("filename, expected", [
    ("1234-a.pdf", "1234"),
    ("123456789012-a.pdf", "123456789012"),
    ("123-a.pdf", None),
    ("1234567890123-a.pdf", None),
])
def test_extract_employee_id(filename, expected):
    assert extract_employee_id(filename) == expected


@pytest.mark.asyncio
async def test_discovery_is_sorted_and_skips_hidden_files(store, document_dirs):
    for name in ("2000-b.pdf", "1000-a.pdf", ".DS_Store"):
        (document_dirs["input"] / name).write_bytes(b"x")
    (document_dirs["input"] / "subdir").mkdir()

    files = await store.get_files_to_process()

    assert [f.rsplit("/", 1)[-1] for f in files] == ["1000-a.pdf", "2000-b.pdf"]


@pytest.mark.asyncio
async def test_missing_input_directory_is_discovery_error(tmp_path):
    store = LocalDocumentStore(str(tmp_path / "missing"), str(tmp_path / "p"), str(tmp_path / "f"))
    with pytest.raises(DiscoveryError):
        await store.get_files_to_process()


@pytest.mark.asyncio
async def test_process_valid_file(store, document_dirs):
    path = document_dirs["input"] / "12345-contract.pdf"
    path.write_bytes(b"%PDF-1.4 test")

    item = await store.process_file(str(path))

    assert item.is_valid
    assert item.employee_id == "12345"
    assert item.size == len(b"%PDF-1.4 test")
    assert base64.b64decode(item.file_content) == b"%PDF-1.4 test"


@pytest.mark.asyncio
async def test_process_rejects_short_employee_id(store, document_dirs):
    path = document_dirs["input"] / "123-contract.pdf"
    path.write_bytes(b"x")

    item = await store.process_file(str(path))

    assert not item.is_valid
    assert item.error == "Invalid employee ID format. Must be 4-12 digits"


@pytest.mark.asyncio
async def test_process_rejects_oversized_file(store, document_dirs):
    path = document_dirs["input"] / "12345-big.pdf"
    path.write_bytes(b"0" * (1024 * 1024 + 1))

    item = await store.process_file(str(path))

    assert not item.is_valid
    assert "exceeds maximum allowed size (1MB)" in item.error
    assert item.file_content == ""


@pytest.mark.asyncio
async def test_process_unreadable_file_returns_invalid_item(store, document_dirs):
    item = await store.process_file(str(document_dirs["input"] / "12345-gone.pdf"))

    assert not item.is_valid
    assert item.error.startswith("File processing error")


@pytest.mark.asyncio
async def test_move_to_processed_creates_directory(store, document_dirs):
    path = document_dirs["input"] / "12345-contract.pdf"
    path.write_bytes(b"x")

    await store.move_to_processed(str(path))

    assert not path.exists()
    assert (document_dirs["processed"] / "12345-contract.pdf").read_bytes() == b"x"


@pytest.mark.asyncio
async def test_move_to_failed_writes_reason_sidecar(store, document_dirs):
    path = document_dirs["input"] / "12345-contract.pdf"
    path.write_bytes(b"x")

    await store.move_to_failed(str(path), "Worker not found: 12345")

    assert (document_dirs["failed"] / "12345-contract.pdf").exists()
    sidecar = (document_dirs["failed"] / "12345-contract.pdf.error.txt").read_text()
    lines = sidecar.splitlines()
    assert lines[0].startswith("Failed at: ")
    assert lines[1] == "Reason: Worker not found: 12345"


@pytest.mark.asyncio
async def test_move_missing_file_raises(store, document_dirs):
    with pytest.raises(OSError):
        await store.move_to_processed(str(document_dirs["input"] / "12345-gone.pdf"))
