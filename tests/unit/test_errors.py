"""
Unit tests for the error taxonomy.
"""

from assetdock.core.errors import (
    GENERIC_PUBLIC_MESSAGE,
    AssetError,
    AssetNotFoundError,
    CannotCopyFileError,
    DatabaseError,
    FileTooLargeError,
    InvalidArgumentError,
    InvalidFileExtensionError,
    InvalidMimeTypeError,
)


class TestAssetErrors:
    def test_presentable_message(self):
        error = FileTooLargeError(2048, 1024)

        assert error.code == "file_too_large"
        assert "2048" in str(error)
        assert "1024" in str(error)
        assert error.public_message == error.message

    def test_to_dict(self):
        error = InvalidFileExtensionError("exe", {"png", "jpg"})

        assert error.to_dict() == {
            "code": "invalid_file_extension",
            "message": 'The file extension "exe" is not allowed. Allowed extensions: jpg, png.',
            "params": {"extension": "exe", "allowed": "jpg, png"},
        }

    def test_empty_allow_list_reads_any(self):
        assert "Allowed types: any" in InvalidMimeTypeError("text/html", set()).message

    def test_internal_errors_hide_details(self):
        error = DatabaseError("UNIQUE constraint failed: assets.id")

        assert error.internal
        assert error.public_message == GENERIC_PUBLIC_MESSAGE
        assert error.to_dict()["params"] == {}
        assert "UNIQUE constraint" in str(error)

    def test_copy_error_is_internal(self):
        error = CannotCopyFileError("/tmp/a", "public/a")
        assert error.public_message == GENERIC_PUBLIC_MESSAGE
        assert error.source == "/tmp/a"

    def test_retryable_flags(self):
        assert AssetNotFoundError(1).retryable is False
        assert InvalidArgumentError("bad").retryable is False
        assert DatabaseError("locked").retryable is True

    def test_hierarchy(self):
        assert isinstance(AssetNotFoundError(1), AssetError)
        assert isinstance(AssetNotFoundError(1), Exception)
