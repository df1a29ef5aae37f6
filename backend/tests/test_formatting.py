from datetime import datetime, timezone

import pytest

from runstore.schemas import AppRecord, AppStatus
from runstore.utils.formatting import describe_app, format_downloads, format_file_size


@pytest.mark.parametrize(
    "size, expected",
    [(0, "0.0 KB"), (1536, "1.5 KB"), (1024 * 1024 - 1, "1024.0 KB"), (5 * 1024 * 1024, "5.0 MB")],
)
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


def test_format_downloads():
    assert format_downloads(1) == "1 download"
    assert format_downloads(12345) == "12,345 downloads"


def test_describe_rejected_app():
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    app = AppRecord(
        id="app-1",
        name="Foo",
        package_name="com.a.b",
        description="A tiny app that does foo things",
        version="1.0",
        icon_url="https://example.com/i.png",
        apk_url="https://example.com/a.apk",
        file_size=3 * 1024 * 1024,
        status=AppStatus.REJECTED,
        uploader_id="user-1",
        uploader_name="Alice",
        rejection_reason="Broken link",
        downloads=2,
        created_at=now,
        updated_at=now,
    )

    assert describe_app(app) == "Foo v1.0 [rejected] 3.0 MB, 2 downloads - Broken link"
