import pytest

from trajectplan.services.storage.path_resolver import resolve_storage_path


@pytest.mark.parametrize(
    "ref",
    [
        "https://host/storage/v1/object/public/documents/abc/x.pdf",
        "https://host/storage/v1/object/sign/documents/abc/x.pdf?token=xyz",
        "documents/abc/x.pdf",
        "abc/x.pdf",
    ],
)
def test_all_accepted_forms_resolve_to_same_key(ref):
    assert resolve_storage_path(ref) == "abc/x.pdf"


def test_bare_filename_is_kept():
    assert resolve_storage_path("rapport.pdf") == "rapport.pdf"


@pytest.mark.parametrize(
    "ref",
    [
        None,
        "",
        "   ",
        "https://example.com/files/x.pdf",
        "https://host/storage/v1/object/public/other-bucket/x.pdf",
        "storage/v1/object/public/unknown",
    ],
)
def test_unresolvable_references_return_none(ref):
    assert resolve_storage_path(ref) is None


def test_custom_bucket():
    url = "https://host/storage/v1/object/public/uploads/a/b.pdf"
    assert resolve_storage_path(url, bucket="uploads") == "a/b.pdf"
    assert resolve_storage_path("uploads/a/b.pdf", bucket="uploads") == "a/b.pdf"
    assert resolve_storage_path(url) is None
