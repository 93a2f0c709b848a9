import pytest

from domain.settings import OnCopyMode, Settings, SettingsDecodeError, SettingsField


def test_defaults_match_backend_defaults():
    s = Settings.from_wire({})
    assert s.prefix == ";"
    assert s.split == "/"
    assert s.command == ";"
    assert s.ignore_prefix is True
    assert s.on_copy_mode is OnCopyMode.RETURN_TO_CHATBOX
    assert s.use_legacy_reconvert is True
    assert s.use_advanced_conversion is False


def test_wire_keys_use_backend_names():
    wire = Settings(use_legacy_reconvert=False, use_advanced_conversion=True).to_wire()
    assert wire["use_tsf_reconvert"] is False
    assert wire["use_azookey_conversion"] is True
    assert wire["skip_on_out_of_vrc"] is True
    assert wire["on_copy_mode"] == "ReturnToChatbox"
    assert "use_legacy_reconvert" not in wire


def test_wire_round_trip():
    s = Settings(
        prefix="!",
        split="|",
        command="#",
        ignore_prefix=False,
        on_copy_mode=OnCopyMode.SEND_DIRECTLY,
        skip_url=False,
        skip_outside_target_app=False,
        use_legacy_reconvert=False,
        use_advanced_conversion=True,
        announce_legacy_reconvert=True,
    )
    assert Settings.from_wire(s.to_wire()) == s


def test_unknown_on_copy_mode_rejected():
    with pytest.raises(SettingsDecodeError):
        Settings.from_wire({"on_copy_mode": "Teleport"})


def test_wrong_type_rejected():
    with pytest.raises(SettingsDecodeError):
        Settings.from_wire({"skip_url": "yes"})


def test_advanced_announce_flag_round_trips():
    s = Settings.from_wire({"azookey_announce": True})
    assert s.announce_advanced_conversion is True
    assert s.to_wire()["azookey_announce"] is True


def test_unknown_keys_preserved_on_save():
    s = Settings.from_wire({"future_flag": 1, "prefix": "!"})
    assert s.extra == (("future_flag", 1),)
    updated = s.with_field(SettingsField.SKIP_URL, False)
    wire = updated.to_wire()
    assert wire["future_flag"] == 1
    assert wire["skip_url"] is False
    assert "extra" not in wire


def test_with_field_validates():
    s = Settings()
    assert s.with_field(SettingsField.PREFIX, "@").prefix == "@"
    assert s.with_field(SettingsField.ON_COPY_MODE, "SendDirectly").on_copy_mode is OnCopyMode.SEND_DIRECTLY
    with pytest.raises(TypeError):
        s.with_field(SettingsField.SKIP_URL, 1)
    # input snapshot untouched
    assert s.prefix == ";"
