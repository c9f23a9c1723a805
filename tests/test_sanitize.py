from audiograb.media.sanitize import MAX_NAME_BYTES, sanitize_filename


def test_strips_path_and_shell_characters():
    assert sanitize_filename('../etc/passwd; rm -rf *') == "etcpasswd rm -rf"
    assert sanitize_filename('Song: "Live" <2024> | Remix?') == "Song Live 2024 Remix"


def test_keeps_arabic_and_cjk_titles():
    assert sanitize_filename("أغنية جميلة") == "أغنية جميلة"
    assert sanitize_filename("你好世界") == "你好世界"
    # kana is outside the kept ranges
    assert sanitize_filename("夜に駆ける") == "夜駆"


def test_collapses_whitespace():
    assert sanitize_filename("  a \t b\n\nc  ") == "a b c"


def test_falls_back_to_default():
    assert sanitize_filename("") == "audio"
    assert sanitize_filename("!!!???") == "audio"
    assert sanitize_filename(None, default="track") == "track"


def test_truncates_long_titles():
    assert len(sanitize_filename("x" * 1000)) == MAX_NAME_BYTES


def test_truncates_multibyte_titles_by_encoded_length():
    cjk = sanitize_filename("漢" * 120)
    assert len(cjk.encode("utf-8")) <= MAX_NAME_BYTES
    assert cjk == "漢" * (MAX_NAME_BYTES // 3)

    arabic = sanitize_filename("ب" * 300)
    assert len(arabic.encode("utf-8")) <= MAX_NAME_BYTES
    assert arabic == "ب" * (MAX_NAME_BYTES // 2)

    # A cut inside a multi-byte character drops the whole character
    mixed = sanitize_filename("a" + "漢" * 100)
    assert mixed == "a" + "漢" * ((MAX_NAME_BYTES - 1) // 3)
