import pytest

from storefront.catalog.errors import CatalogPayloadError
from storefront.catalog.models import ImageType
from storefront.catalog.normalizer import MetadataNormalizer


@pytest.fixture
def normalizer(store_config):
    return MetadataNormalizer.from_config(store_config)


def _record(**overrides):
    record = {
        "id": 7,
        "name": "deepin-music",
        "info": {
            "name": "deepin-music",
            "author": "Deepin",
            "packager": "deepin",
            "category": "music",
            "homePage": "https://www.deepin.org",
            "icon": "deepin-music/icon.svg",
            "packageURI": '["dpkg://deepin-music"]',
            "extra": '{"beta": true}',
            "source": 1,
            "versions": [],
        },
        "desc": [
            {"locale": "zh_CN", "name": "深度音乐", "description": "音乐", "slogan": ""},
            {"locale": "en_US", "name": "Deepin Music", "description": "Music", "slogan": "Play"},
            {"locale": "de_DE", "name": "Deepin Musik", "description": "Musik", "slogan": "Spielen"},
        ],
        "tags": [
            {"locale": "en_US", "tag": "music"},
            {"locale": "de_DE", "tag": "musik"},
            {"locale": "de_DE", "tag": "audio"},
        ],
        "images": [
            {"locale": "en_US", "path": "cover.png", "type": ImageType.COVER, "order": 0},
            {"locale": "en_US", "path": "s2.png", "type": ImageType.SCREENSHOT, "order": 2},
            {"locale": "en_US", "path": "s1.png", "type": ImageType.SCREENSHOT, "order": 1},
        ],
    }
    record.update(overrides)
    return record


def test_normalize_builds_locale_resolved_info(normalizer):
    entry = normalizer.normalize(_record())
    info = entry.info

    assert entry.name == "deepin-music"
    assert entry.stat is None and entry.package is None
    assert info.name == "Deepin Musik"
    assert info.description == "Musik"
    assert info.slogan == "Spielen"
    assert info.locale == "de_DE"
    assert info.author == "Deepin"
    assert info.home_page == "https://www.deepin.org"
    assert info.tags == ["musik", "audio"]
    assert [p.package_uri for p in info.packages] == ["dpkg://deepin-music"]
    assert info.extra == {"beta": True}
    assert info.icon == "https://meta.example/images/deepin-music/icon.svg"
    assert info.cover == "https://meta.example/images/cover.png"
    assert info.screenshot == [
        "https://meta.example/images/s1.png",
        "https://meta.example/images/s2.png",
    ]


def test_normalize_defaults_missing_json_fields(normalizer):
    record = _record()
    record["info"] = {"name": "deepin-music"}
    record["images"] = None
    record["tags"] = None

    info = normalizer.normalize(record).info

    assert info.packages == []
    assert info.extra == {}
    assert info.icon is None
    assert info.cover is None
    assert info.screenshot == []
    assert info.tags == []


def test_normalize_uses_best_ranked_description_outside_preferred_locales(normalizer):
    record = _record(desc=[{"locale": "zh_CN", "name": "深度音乐", "description": "音乐"}])
    info = normalizer.normalize(record).info
    assert info.name == "深度音乐"
    assert info.locale == "zh_CN"


def test_normalize_keeps_base_name_without_descriptions(normalizer):
    info = normalizer.normalize(_record(desc=[])).info
    assert info.name == "deepin-music"


def test_normalize_skips_unnamed_description_in_target_locale(normalizer):
    record = _record(
        desc=[
            {"locale": "de_DE", "name": "", "description": "Musik"},
            {"locale": "en_US", "name": "Deepin Music", "description": "Music"},
        ]
    )
    info = normalizer.normalize(record).info
    assert info.name == "Deepin Music"
    assert info.locale == "en_US"


@pytest.mark.parametrize(
    "field, value",
    [
        ("packageURI", "[not json"),
        ("packageURI", '{"url": "dpkg://x"}'),
        ("extra", "{broken"),
        ("extra", "[1, 2]"),
    ],
)
def test_normalize_rejects_malformed_json_fields(normalizer, field, value):
    record = _record()
    record["info"] = {**record["info"], field: value}

    with pytest.raises(CatalogPayloadError, match=field):
        normalizer.normalize(record)


def test_normalize_rejects_record_without_name(normalizer):
    with pytest.raises(CatalogPayloadError, match="name"):
        normalizer.normalize(_record(name=""))


def test_normalize_rejects_non_array_images(normalizer):
    with pytest.raises(CatalogPayloadError, match="images"):
        normalizer.normalize(_record(images={"path": "x"}))
