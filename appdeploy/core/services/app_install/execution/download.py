"""
L4 Execution — Download, checksum verification and staging.

Every artifact that ends up installed is verified against a pinned
digest first. A file already in the staging dir with the right digest
is reused without touching the network.
"""

from __future__ import annotations

import hashlib
import json
import logging
import shutil
import urllib.request
import zipfile
from pathlib import Path
from typing import Callable

from appdeploy.core.models.config import DependencyArtifact
from appdeploy.core.services.app_install.data.constants import (
    CHUNK_SIZE,
    GITHUB_ACCEPT,
    USER_AGENT,
)
from appdeploy.core.services.app_install.domain.reporting import _fmt_size

logger = logging.getLogger(__name__)

Downloader = Callable[[str, Path, int], dict]


def file_digest(path: Path, algo: str = "sha256") -> str:
    h = hashlib.new(algo)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()


def verify_checksum(path: Path, expected: str) -> bool:
    """Verify file checksum.  Format: ``algo:hex``.

    Supports any algorithm ``hashlib.new`` knows (sha256, sha1, md5...).
    A malformed or unknown ``expected`` never verifies.
    """
    algo, sep, expected_hash = expected.partition(":")
    if not sep or not expected_hash:
        return False
    try:
        actual = file_digest(path, algo)
    except ValueError:
        logger.warning("Unsupported hash algorithm: %s", algo)
        return False
    return actual == expected_hash.lower()


def http_download(url: str, dest: Path, timeout: int = 120) -> dict:
    """Stream ``url`` into ``dest``.

    Returns::

        {"ok": True, "path": "...", "size_bytes": N}
        or
        {"ok": False, "error": "..."}
    """
    req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    tmp = dest.with_name(dest.name + ".part")
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp, open(tmp, "wb") as out:
            shutil.copyfileobj(resp, out, CHUNK_SIZE)
        tmp.replace(dest)
    except Exception as exc:
        tmp.unlink(missing_ok=True)
        return {"ok": False, "error": f"Download failed for {url}: {exc}"}

    size = dest.stat().st_size
    logger.info("Downloaded %s (%s)", dest.name, _fmt_size(size))
    return {"ok": True, "path": str(dest), "size_bytes": size}


def fetch_release(feed_url: str, asset_suffix: str, timeout: int = 15) -> dict:
    """Find the release asset ending in ``asset_suffix`` in a GitHub release feed.

    The API's ``digest`` field (``sha256:<hex>``) is returned so the
    asset can be verified like a pinned artifact.

    Returns::

        {"ok": True, "url": "...", "asset_name": "...", "digest": "sha256:...",
         "version": "1.9.25200"}
        or error dict.
    """
    req = urllib.request.Request(
        feed_url,
        headers={"Accept": GITHUB_ACCEPT, "User-Agent": USER_AGENT},
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            data = json.loads(resp.read())
    except Exception as exc:
        return {"ok": False, "error": f"Failed to fetch release: {exc}"}

    tag = data.get("tag_name", "")
    for asset in data.get("assets", []):
        name = asset.get("name", "")
        if name.lower().endswith(asset_suffix.lower()):
            return {
                "ok": True,
                "url": asset["browser_download_url"],
                "asset_name": name,
                "digest": (asset.get("digest") or "").lower(),
                "version": tag.lstrip("v"),
            }

    return {"ok": False, "error": f"No *{asset_suffix} asset in release {tag or feed_url}"}


def stage_artifact(
    artifact: DependencyArtifact,
    staging_dir: Path,
    *,
    downloader: Downloader = http_download,
    timeout: int = 120,
) -> dict:
    """Make ``artifact`` available in ``staging_dir``, verified.

    Returns::

        {"ok": True, "path": "<staged file>", "downloaded": bool}
        or
        {"ok": False, "error": "..."}
    """
    if not artifact.expected_hash:
        return {"ok": False, "error": f"No expected hash pinned for {artifact.file_name}"}

    staging_dir.mkdir(parents=True, exist_ok=True)
    archive = staging_dir / artifact.file_name
    downloaded = False

    if archive.is_file() and verify_checksum(archive, artifact.expected_hash):
        logger.info("Using cached %s", artifact.file_name)
    else:
        if archive.exists():
            logger.info("Cached %s does not match its hash, downloading again", artifact.file_name)
            archive.unlink()
        result = downloader(artifact.source_url, archive, timeout)
        if not result.get("ok"):
            return {"ok": False, "error": result.get("error", f"Download failed: {artifact.file_name}")}
        downloaded = True
        if not verify_checksum(archive, artifact.expected_hash):
            archive.unlink(missing_ok=True)
            return {"ok": False, "error": f"Hash mismatch for {artifact.file_name}"}

    if not artifact.extract_member:
        return {"ok": True, "path": str(archive), "downloaded": downloaded}

    target = staging_dir / artifact.staged_name
    try:
        with zipfile.ZipFile(archive) as zf, zf.open(artifact.extract_member) as src, \
                open(target, "wb") as dst:
            shutil.copyfileobj(src, dst, CHUNK_SIZE)
    except KeyError:
        return {"ok": False, "error": f"{artifact.extract_member} not found in {artifact.file_name}"}
    except (zipfile.BadZipFile, OSError) as exc:
        return {"ok": False, "error": f"Cannot extract from {artifact.file_name}: {exc}"}

    return {"ok": True, "path": str(target), "downloaded": downloaded}
