import pytest

from arclink.components import ComponentInfo, ComponentType, VersionFormat
from arclink.errors import NetworkError
from arclink.sources import (
    download_file,
    fetch_remote_version,
    parse_html_version,
    parse_md5sum,
)

from conftest import FakeResponse, FakeSession


class TestParsers:

    def test_md5sum_takes_first_token(self):
        assert parse_md5sum("ABCDEF0123  d3d11.dll\n") == "abcdef0123"

    def test_empty_md5sum_is_an_error(self):
        with pytest.raises(NetworkError):
            parse_md5sum("   \n")

    def test_html_version_uses_selector(self):
        html = "<html><body><div class='release'><span class='ver'> 2024-05-01 </span></div></body></html>"
        assert parse_html_version(html, "div.release span.ver") == "2024-05-01"

    def test_html_without_match_is_an_error(self):
        with pytest.raises(NetworkError):
            parse_html_version("<html></html>", "span.ver")


class TestFetchRemoteVersion:

    def info(self, version_format, selector=None):
        return ComponentInfo(
            type=ComponentType.MECHANICS_LOG,
            name="Mechanics Log",
            default_file_name="d3d9_arcdps_mechanics.dll",
            version_url="https://example.invalid/version",
            version_format=version_format,
            version_selector=selector,
            download_url="https://example.invalid/d3d9_arcdps_mechanics.dll",
        )

    def test_github_release_tag(self):
        session = FakeSession({"https://example.invalid/version": FakeResponse(json_data={"tag_name": "v1.4"})})

        assert fetch_remote_version(session, self.info(VersionFormat.GITHUB), timeout=5) == "v1.4"

    def test_github_release_without_tag(self):
        session = FakeSession({"https://example.invalid/version": FakeResponse(json_data={"message": "rate limited"})})

        with pytest.raises(NetworkError):
            fetch_remote_version(session, self.info(VersionFormat.GITHUB), timeout=5)

    def test_non_2xx_is_network_error(self):
        session = FakeSession({"https://example.invalid/version": FakeResponse(status_code=503)})

        with pytest.raises(NetworkError):
            fetch_remote_version(session, self.info(VersionFormat.MD5SUM), timeout=5)

    def test_html_page(self):
        session = FakeSession({"https://example.invalid/version": FakeResponse(text="<p id='v'>3.1</p>")})

        assert fetch_remote_version(session, self.info(VersionFormat.HTML, "#v"), timeout=5) == "3.1"


class TestDownloadFile:

    def test_writes_target_and_creates_directories(self, tmp_path):
        target = tmp_path / "addons" / "arcdps" / "plugin.dll"
        session = FakeSession({"https://example.invalid/plugin.dll": FakeResponse(content=b"x" * 200000)})

        download_file(session, "https://example.invalid/plugin.dll", target, timeout=5)

        assert target.read_bytes() == b"x" * 200000
        assert [p.name for p in target.parent.iterdir()] == ["plugin.dll"]

    def test_failed_download_keeps_existing_file(self, tmp_path):
        target = tmp_path / "plugin.dll"
        target.write_bytes(b"old")
        session = FakeSession()

        with pytest.raises(NetworkError):
            download_file(session, "https://example.invalid/plugin.dll", target, timeout=5)

        assert target.read_bytes() == b"old"
        assert [p.name for p in tmp_path.iterdir()] == ["plugin.dll"]
