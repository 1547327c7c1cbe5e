import pytest

from image_optimizer.models.errors import ParseError
from image_optimizer.models.release_model import ReleaseInfo, Version


def test_version_ordering_is_numeric():
    assert Version.parse("1.2.10") > Version.parse("1.2.9")
    assert Version.parse("2.0.0") > Version.parse("1.99.99")
    assert Version.parse("1.3.0") > Version.parse("1.2.0")


def test_version_prefix_and_missing_parts():
    assert Version.parse("v1.2.0") == Version.parse("1.2.0")
    assert Version.parse("V1.2") == Version(1, 2, 0)
    assert Version.parse("3") == Version(3, 0, 0)
    assert str(Version.parse("v0.9")) == "0.9.0"


@pytest.mark.parametrize("raw", ["", "v", "1.x.0", "1.2.3.4", "latest", "1..2"])
def test_bad_version_strings(raw):
    with pytest.raises(ParseError):
        Version.parse(raw)


def test_release_info_from_github_payload():
    info = ReleaseInfo.from_json({
        "tag_name": "v1.3.0",
        "assets": [
            {"name": "image-optimizer-linux-x86_64", "browser_download_url": "https://x/linux"},
            {"name": "image-optimizer-windows-x86_64.exe", "browser_download_url": "https://x/win"},
        ],
    })
    assert info.version_tag == "v1.3.0"
    assert info.asset_names == ["image-optimizer-linux-x86_64", "image-optimizer-windows-x86_64.exe"]
    assert info.assets[0].download_url == "https://x/linux"


def test_release_info_short_field_names():
    info = ReleaseInfo.from_json({"version": "1.0", "assets": [{"name": "a", "url": "https://x/a"}]})
    assert info.version_tag == "1.0"
    assert info.assets[0].download_url == "https://x/a"


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"assets": []},
        {"tag_name": "v1", "assets": "nope"},
        {"tag_name": "v1", "assets": [{"name": "a"}]},
    ],
)
def test_release_info_rejects_malformed_payloads(payload):
    with pytest.raises(ParseError):
        ReleaseInfo.from_json(payload)
