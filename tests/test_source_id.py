import pytest

from audiograb.errors import InvalidInput
from audiograb.media.source_id import (
    extract_video_id,
    match_video_id,
    parse_video_id,
    thumbnail_url,
)

VIDEO_ID = "dQw4w9WgXcQ"


@pytest.mark.parametrize(
    "url",
    [
        f"https://www.youtube.com/watch?v={VIDEO_ID}",
        f"https://youtube.com/watch?feature=share&v={VIDEO_ID}&t=42",
        f"https://m.youtube.com/watch?v={VIDEO_ID}",
        f"https://www.youtube.com/embed/{VIDEO_ID}",
        f"https://www.youtube.com/v/{VIDEO_ID}",
        f"https://youtu.be/{VIDEO_ID}",
        f"https://youtu.be/{VIDEO_ID}?si=abc",
        f"https://www.youtube.com/shorts/{VIDEO_ID}",
        f"  https://youtu.be/{VIDEO_ID}  ",
    ],
)
def test_recognised_patterns(url):
    assert extract_video_id(url) == VIDEO_ID


@pytest.mark.parametrize(
    "url",
    [
        f"youtu.be/{VIDEO_ID}",
        f"www.youtube.com/watch?v={VIDEO_ID}",
        f"youtube.com/embed/{VIDEO_ID}",
    ],
)
def test_fallback_handles_missing_scheme(url):
    assert parse_video_id(url) is None
    assert match_video_id(url) == VIDEO_ID
    assert extract_video_id(url) == VIDEO_ID


@pytest.mark.parametrize(
    "url",
    [
        "not-a-url",
        "https://example.com/watch?v=dQw4w9WgXcQ",
        "https://www.youtube.com/watch?v=short",
        "https://www.youtube.com/watch?v=dQw4w9WgXcQextra",
        "https://youtu.be/",
        "https://www.youtube.com/channel/UC1234567890",
    ],
)
def test_unrecognised_urls_are_invalid_input(url):
    with pytest.raises(InvalidInput):
        extract_video_id(url)


@pytest.mark.parametrize("url", ["", "   ", None])
def test_empty_url_is_invalid_input(url):
    with pytest.raises(InvalidInput) as exc_info:
        extract_video_id(url)
    assert exc_info.value.status_code == 400
    assert "required" in exc_info.value.message


def test_thumbnail_url():
    assert thumbnail_url(VIDEO_ID) == f"https://i.ytimg.com/vi/{VIDEO_ID}/maxresdefault.jpg"
