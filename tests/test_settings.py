import pytest

from sprite_rig.settings import ImportSettings, PixelOrigin, SettingsError, SpriteAlignment


def test_defaults():
    settings = ImportSettings()

    assert settings.border == 1
    assert settings.alignment == SpriteAlignment.CENTER
    assert settings.pixel_origin == PixelOrigin.CENTER
    assert settings.dense_packed is True


def test_custom_alignment_uses_custom_pivot():
    settings = ImportSettings(alignment=SpriteAlignment.CUSTOM, custom_pivot=(0.25, 0.1))

    assert settings.default_pivot(40, 20) == (10.0, 2.0)


def test_overrides_parse_json_values():
    settings = ImportSettings().with_overrides({
        "border": 3,
        "alignment": "Bottom_Center",
        "pixel_origin": "corner",
        "dense_packed": "false",
        "custom_pivot": [0.2, 0.8],
        "base_name": "knight",
    })

    assert settings.border == 3
    assert settings.alignment == SpriteAlignment.BOTTOM_CENTER
    assert settings.pixel_origin == PixelOrigin.CORNER
    assert settings.dense_packed is False
    assert settings.custom_pivot == (0.2, 0.8)
    assert settings.base_name == "knight"


def test_overrides_return_a_copy():
    base = ImportSettings()
    base.with_overrides({"border": 4})

    assert base.border == 1
    assert ImportSettings().with_overrides(None) == base


@pytest.mark.parametrize("overrides", [
    {"border": -1},
    {"border": "wide"},
    {"alignment": "middle"},
    {"dense_packed": "maybe"},
    {"ppu": 0},
    {"custom_pivot": "0.5"},
    {"colour": "red"},
])
def test_invalid_overrides_raise(overrides):
    with pytest.raises(SettingsError):
        ImportSettings.from_dict(overrides)


def test_from_env_reads_prefixed_variables():
    environ = {
        "SPRITE_RIG_BORDER": "2",
        "SPRITE_RIG_ALIGNMENT": "top_left",
        "SPRITE_RIG_CUSTOM_PIVOT": "0.5,0.1",
        "SPRITE_RIG_PPU": "32",
        "BORDER": "9",
    }
    settings = ImportSettings.from_env(environ)

    assert settings.border == 2
    assert settings.alignment == SpriteAlignment.TOP_LEFT
    assert settings.custom_pivot == (0.5, 0.1)
    assert settings.ppu == 32.0


def test_from_env_without_variables_gives_defaults():
    assert ImportSettings.from_env({}) == ImportSettings()


def test_overrides_must_be_a_mapping():
    with pytest.raises(SettingsError):
        ImportSettings().with_overrides(["border", 2])
