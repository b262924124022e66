from spreadmarket.exceptions import AlreadyOwnedError, FileTooLargeError


def test_error_body_omits_empty_details():
    assert AlreadyOwnedError().to_dict() == {"detail": "You already own this spreadsheet", "code": "ALREADY_OWNED"}


def test_error_body_includes_details():
    body = FileTooLargeError(size=60, max_size=50).to_dict()

    assert body["code"] == "FILE_TOO_LARGE"
    assert body["details"] == {"fileSize": 60, "maxSize": 50}
