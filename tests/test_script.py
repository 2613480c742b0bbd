"""
Tests for script classification and forced-language validation.

Run with: pytest tests/test_script.py -v
"""

import pytest

from worddex.script import (
    AUTO,
    ClassifierConfig,
    Script,
    ScriptSignature,
    classify,
    clean_text,
    detect_language,
    language_code,
    language_name,
    needs_romanization,
    resolve_label,
    validate_forced_language,
)


ASCII_SAMPLES = [
    "Hello, world!",
    "Bonjour",
    "The quick brown fox jumps over the lazy dog 1234567890",
    "!@#$%^&*()_+-=[]{}|;':\",./<>?`~",
    "   \t\n  ",
    "",
]


class TestClassify:
    """Tests for classify()."""

    @pytest.mark.parametrize("text", ASCII_SAMPLES)
    def test_ascii_has_no_scripts(self, text):
        """ASCII letters, digits and punctuation never count as any script."""
        signature = classify(text)
        assert signature.is_empty
        assert not any(signature.to_dict().values())

    def test_kana_sets_japanese_only(self):
        signature = classify("ひらがなとカタカナ")
        assert signature.japanese
        assert not signature.chinese
        assert signature.has_kana

    def test_han_without_kana_sets_both(self):
        signature = classify("汉字")
        assert signature.japanese
        assert signature.chinese
        assert not signature.has_kana

    def test_mixed_kana_and_han(self):
        signature = classify("漢字です")
        assert signature.japanese
        assert not signature.chinese

    @pytest.mark.parametrize("text,script", [
        ("안녕하세요", Script.KOREAN),
        ("Привет", Script.CYRILLIC),
        ("مرحبا", Script.ARABIC),
        ("नमस्ते", Script.DEVANAGARI),
        ("ĉu vi parolas", Script.ESPERANTO),
        ("perché", Script.ITALIAN),
        ("ᜀᜊᜃᜇ", Script.TAGALOG),
        ("français", Script.FRENCH),
        ("mañana", Script.SPANISH),
        ("não", Script.PORTUGUESE),
        ("Straße", Script.GERMAN),
    ])
    def test_script_detected(self, text, script):
        assert classify(text).has(script)

    def test_tagalog_g_tilde(self):
        """The letter g with a combining tilde marks Tagalog."""
        assert classify("mg\u0303a").tagalog

    def test_decomposed_accent_matches(self):
        """e + combining acute is treated like é."""
        assert classify("cafe\u0301").french

    def test_independent_flags(self):
        """Several scripts can be present at once."""
        signature = classify("Привет 안녕")
        assert signature.cyrillic and signature.korean
        assert set(signature.present()) == {Script.CYRILLIC, Script.KOREAN}

    @pytest.mark.parametrize("text", [
        "(((", "漢字(", ")かんじ(", "\x00\x01", "\ud800", "ｸﾞ", "🙂🙂",
    ])
    def test_never_raises(self, text):
        assert isinstance(classify(text), ScriptSignature)


class TestResolveLabel:
    """Tests for resolve_label() and detect_language()."""

    @pytest.mark.parametrize("text", [
        "ひらがな",
        "漢字です",
        "東京に行きます",
        "カタカナ 中文",
        "漢字と한국어",
    ])
    def test_kana_always_japanese(self, text):
        """Any kana wins the Japanese label, even next to Han or Hangul."""
        assert resolve_label(classify(text)) == "Japanese"

    def test_han_only_is_chinese(self):
        assert detect_language("我爱你") == "Chinese"

    @pytest.mark.parametrize("text,label", [
        ("안녕하세요", "Korean"),
        ("Привет", "Russian"),
        ("مرحبا", "Arabic"),
        ("नमस्ते", "Hindi"),
        ("Straße", "German"),
        ("mañana", "Spanish"),
    ])
    def test_labels(self, text, label):
        assert detect_language(text) == label

    def test_ascii_is_unknown(self):
        assert detect_language("Hello") == "unknown"

    def test_priority_order(self):
        """Korean outranks Cyrillic in the default order."""
        assert detect_language("Привет 안녕") == "Korean"

    def test_custom_priority(self):
        config = ClassifierConfig(label_priority=(Script.CYRILLIC, Script.KOREAN))
        assert detect_language("Привет 안녕", config) == "Russian"

    def test_config_is_immutable(self):
        config = ClassifierConfig()
        with pytest.raises(Exception):
            config.label_priority = ()


class TestForcedLanguage:
    """Tests for validate_forced_language()."""

    @pytest.mark.parametrize("text", ASCII_SAMPLES + ["漢字", "Привет", "(((", "🙂"])
    def test_auto_always_valid(self, text):
        assert validate_forced_language(text, AUTO)
        assert validate_forced_language(text, None)

    def test_bonjour_is_not_japanese(self):
        assert not validate_forced_language("Bonjour", "ja")

    def test_japanese_accepts_kanji(self):
        assert validate_forced_language("東京に行きます", "ja")
        assert validate_forced_language("漢字", "ja")

    def test_chinese_rejects_kana(self):
        assert validate_forced_language("我爱你", "zh")
        assert not validate_forced_language("漢字です", "zh")

    @pytest.mark.parametrize("text,code", [
        ("안녕하세요", "ko"),
        ("Привет", "ru"),
        ("مرحبا", "ar"),
        ("नमस्ते", "hi"),
        ("Straße", "de"),
        ("mañana", "es"),
    ])
    def test_matching_script(self, text, code):
        assert validate_forced_language(text, code)

    def test_mismatched_script(self):
        assert not validate_forced_language("Привет", "ko")

    def test_english(self):
        assert validate_forced_language("Hello there", "en")
        assert not validate_forced_language("Привет", "en")
        assert not validate_forced_language("12345", "en")

    def test_accepts_language_name(self):
        assert validate_forced_language("Привет", "Russian")

    def test_unknown_code_is_false(self):
        assert not validate_forced_language("Hello", "xx")


class TestLanguageTables:
    """Tests for lookup helpers."""

    def test_name_and_code(self):
        assert language_name("ja") == "Japanese"
        assert language_name("xx") == "xx"
        assert language_code("Japanese") == "ja"
        assert language_code("KO") == "ko"
        assert language_code("Klingon") is None

    @pytest.mark.parametrize("language", ["Japanese", "zh", "ko", "Russian", "ar", "Hindi"])
    def test_romanized(self, language):
        assert needs_romanization(language)

    @pytest.mark.parametrize("language", ["French", "de", "en", "unknown"])
    def test_not_romanized(self, language):
        assert not needs_romanization(language)


class TestCleanText:
    """Tests for OCR cleanup."""

    def test_collapses_whitespace(self):
        assert clean_text("  hello\n\n  world  ") == "hello world"

    def test_removes_gaps_between_cjk(self):
        assert clean_text("東 京 に\n行 き ま す") == "東京に行きます"

    def test_keeps_korean_spacing(self):
        assert clean_text("안녕 하세요\n세계") == "안녕 하세요 세계"

    def test_empty(self):
        assert clean_text("") == ""
