import logging
import os
import tempfile

import requests

from bs4 import BeautifulSoup
from pathlib import Path

from arclink.components import ComponentInfo, VersionFormat
from arclink.errors import NetworkError

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 64 * 1024


def _get(session: requests.Session, url: str, timeout: float) -> requests.Response:
    try:
        response = session.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise NetworkError(f"GET {url} failed: {e}") from e
    return response


def parse_md5sum(text: str) -> str:
    # "<hash>  d3d11.dll"
    tokens = text.split()
    if not tokens:
        raise NetworkError("Empty md5sum response")
    return tokens[0].lower()


def parse_github_release(response: requests.Response) -> str:
    try:
        tag = response.json()["tag_name"]
    except (ValueError, KeyError, TypeError) as e:
        raise NetworkError(f"Release response has no tag_name: {e}") from e
    if not isinstance(tag, str) or not tag:
        raise NetworkError("Release response has an empty tag_name")
    return tag


def parse_html_version(text: str, selector: str | None) -> str:
    if not selector:
        raise NetworkError("No selector configured for HTML version source")
    soup = BeautifulSoup(text, "html.parser")
    node = soup.select_one(selector)
    if node is None or not node.getText().strip():
        raise NetworkError(f"No version found @ {selector}")
    return node.getText().strip()


def fetch_remote_version(session: requests.Session, info: ComponentInfo, timeout: float) -> str:
    logger.debug(f"Checking version of {info.name} @ {info.version_url}")
    response = _get(session, info.version_url, timeout)
    if info.version_format is VersionFormat.MD5SUM:
        return parse_md5sum(response.text)
    if info.version_format is VersionFormat.GITHUB:
        return parse_github_release(response)
    return parse_html_version(response.text, info.version_selector)


def download_file(session: requests.Session, url: str, target: Path, timeout: float):
    """Stream url into a temp file beside target, then rename it over target."""
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".part")
    try:
        with os.fdopen(fd, "wb") as f:
            try:
                with session.get(url, stream=True, timeout=timeout) as response:
                    response.raise_for_status()
                    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
            except requests.RequestException as e:
                raise NetworkError(f"Download of {url} failed: {e}") from e
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.info(f"Downloaded {url} -> {target}")
