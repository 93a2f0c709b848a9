import pytest

from domain.dictionary import (
    ConversionMethod,
    Dictionary,
    DictionaryDecodeError,
    DictionaryEntry,
    decode_dictionary,
    decode_entry,
    default_entry,
    encode_dictionary,
    encode_entry,
    get_converter_info,
    with_method,
)


def _replace(text="a", out="b", priority=0):
    return DictionaryEntry(input=text, method=ConversionMethod.REPLACE, output=out, priority=priority)


def test_replace_encodes_bare_tag_with_output():
    data = encode_entry(_replace("hi", "hello", 4))
    assert data == {"input": "hi", "method": "Replace", "output": "hello", "use_regex": False, "priority": 4}


def test_none_encodes_without_output():
    data = encode_entry(DictionaryEntry(input="x", method=ConversionMethod.NONE, priority=1))
    assert data["method"] == "None"
    assert "output" not in data


def test_converter_encodes_single_key_object():
    entry = DictionaryEntry(input="^k.*", method=ConversionMethod.CONVERTER, converter_id="k", use_regex=True)
    assert encode_entry(entry)["method"] == {"Converter": "k"}


@pytest.mark.parametrize(
    "entry",
    [
        _replace("a", "", 0),
        _replace("tea", "茶", 7),
        DictionaryEntry(input="n", method=ConversionMethod.NONE, priority=-3),
        DictionaryEntry(input="r", method=ConversionMethod.CONVERTER, converter_id="r", priority=2),
        DictionaryEntry(input="z", method=ConversionMethod.CONVERTER, converter_id="custom-42", use_regex=True),
    ],
)
def test_decode_inverts_encode(entry):
    assert decode_entry(encode_entry(entry), 99) == entry


def test_missing_priority_falls_back_to_index():
    d = decode_dictionary(
        {
            "entries": [
                {"input": "a", "method": "None", "use_regex": False},
                {"input": "b", "method": "None", "use_regex": False, "priority": None},
                {"input": "c", "method": "None", "use_regex": False, "priority": 10},
            ]
        }
    )
    assert [e.priority for e in d.entries] == [0, 1, 10]


def test_unknown_method_tag_fails_closed():
    with pytest.raises(DictionaryDecodeError):
        decode_entry({"input": "a", "method": "Transliterate", "use_regex": False}, 0)


def test_converter_object_with_extra_keys_rejected():
    with pytest.raises(DictionaryDecodeError):
        decode_entry({"input": "a", "method": {"Converter": "r", "Other": 1}}, 0)


def test_non_string_converter_id_rejected():
    with pytest.raises(DictionaryDecodeError):
        decode_entry({"input": "a", "method": {"Converter": 5}}, 0)


def test_one_bad_entry_rejects_whole_dictionary():
    with pytest.raises(DictionaryDecodeError):
        decode_dictionary({"entries": [{"input": "ok", "method": "None"}, {"input": "bad", "method": 3}]})


def test_dictionary_round_trip():
    d = Dictionary(entries=[_replace("a", "b", 2), DictionaryEntry(input="c", method=ConversionMethod.NONE, priority=1)])
    assert decode_dictionary(encode_dictionary(d)) == d


def test_variant_invariants_enforced():
    with pytest.raises(ValueError):
        DictionaryEntry(input="a", method=ConversionMethod.NONE, output="x")
    with pytest.raises(ValueError):
        DictionaryEntry(input="a", method=ConversionMethod.CONVERTER)


def test_with_method_keeps_variant_fields_consistent():
    entry = _replace("a", "b")
    conv = with_method(entry, ConversionMethod.CONVERTER)
    assert conv.output is None
    assert conv.converter_id == "r"  # default converter
    back = with_method(conv, ConversionMethod.REPLACE)
    assert back.output == ""
    assert back.converter_id is None
    none = with_method(entry, ConversionMethod.NONE)
    assert none.output is None and none.converter_id is None


def test_with_method_keeps_existing_converter_id():
    entry = DictionaryEntry(input="a", method=ConversionMethod.CONVERTER, converter_id="h")
    assert with_method(entry, ConversionMethod.CONVERTER).converter_id == "h"


def test_default_entry_and_catalogue():
    entry = default_entry()
    assert entry.method is ConversionMethod.REPLACE
    assert entry.output == "" and entry.priority == 0 and entry.use_regex is False
    assert get_converter_info("k").name == "Katakana"
    assert get_converter_info("?") is None
