import pytest

from applyhawk.i18n import contains_cyrillic, detect_language, language_name


@pytest.mark.parametrize("text, expected", [
    ("", "en"),
    ("   ", "en"),
    (None, "en"),
    ("Senior Python developer wanted", "en"),
    ("Ищем опытного Python разработчика", "ru"),
    ("12345 !!!", "en"),
])
def test_detect_language(text, expected):
    assert detect_language(text) == expected


def test_threshold_is_inclusive():
    # 3 Cyrillic letters out of 10
    assert detect_language("абв abcdefg") == "ru"
    # 2 out of 10
    assert detect_language("аб abcdefgh") == "en"


def test_custom_threshold():
    assert detect_language("аб abcdefgh", threshold=0.2) == "ru"


def test_contains_cyrillic():
    assert contains_cyrillic("Go / Голанг")
    assert not contains_cyrillic("Golang")
    assert not contains_cyrillic("")


def test_language_name():
    assert language_name("ru") == "Russian"
    assert language_name("de") == "English"
