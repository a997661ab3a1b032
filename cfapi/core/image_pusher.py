"""Pushing package source images to an OCI/Docker registry.

The staging pipeline only consumes ``ImagePusher.push``; how an image is
built and which registry receives it is outside the API server. Push
failures (``requests.HTTPError``, connection errors) propagate unmodified
to the caller of the staging step: they are not cluster-repository errors.

Usage:
    pusher = RegistryImagePusher(username="robot", password="s3cret")
    image = build_source_image(zip_bytes)
    ref = pusher.push("registry.example.org/cf/packages/<guid>", image)
    # ref == "registry.example.org/cf/packages/<guid>@sha256:..."
"""
from __future__ import annotations
import gzip
import hashlib
import io
import json
import logging
import posixpath
import re
import tarfile
import zipfile
from dataclasses import dataclass, field
from typing import Optional, Protocol
from urllib.parse import urljoin

import requests

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30

MANIFEST_MEDIA_TYPE = "application/vnd.docker.distribution.manifest.v2+json"
CONFIG_MEDIA_TYPE = "application/vnd.docker.container.image.v1+json"
LAYER_MEDIA_TYPE = "application/vnd.docker.image.rootfs.diff.tar.gzip"

SOURCE_ROOT = "workspace"
DEFAULT_TAG = "latest"

_CHALLENGE_PARAM = re.compile(r'(\w+)="([^"]*)"')


class UnsafeArchivePathError(ValueError):
    """A zip entry would land outside the application source directory."""

    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"archive entry '{filename}' escapes the application directory")


class ImagePusher(Protocol):
    """Contract consumed by package upload: push ``image`` to ``reference``.

    Returns the pushed image's digest reference
    (``<registry>/<repository>@sha256:<hex>``).
    """

    def push(self, reference: str, image: "Image", **options) -> str:
        ...


def _digest(data: bytes) -> str:
    return "sha256:" + hashlib.sha256(data).hexdigest()


@dataclass(frozen=True)
class Layer:
    data: bytes
    diff_id: str
    media_type: str = LAYER_MEDIA_TYPE

    @property
    def digest(self) -> str:
        return _digest(self.data)


@dataclass(frozen=True)
class Image:
    layers: tuple[Layer, ...]
    config: dict = field(default_factory=dict)

    def config_bytes(self) -> bytes:
        document = dict(self.config)
        document.setdefault("architecture", "amd64")
        document.setdefault("os", "linux")
        document.setdefault("config", {})
        document["rootfs"] = {"type": "layers", "diff_ids": [layer.diff_id for layer in self.layers]}
        return json.dumps(document, sort_keys=True, separators=(",", ":")).encode()


def build_source_image(zip_bytes: bytes) -> Image:
    """Turn uploaded application bits into a single-layer image.

    Every file of the zip is placed under ``/workspace`` with its mode
    preserved, which is where buildpack builders expect app sources.

    Raises:
        zipfile.BadZipFile: Upload is not a zip archive
        UnsafeArchivePathError: An entry points outside the application directory
    """
    tar_buffer = io.BytesIO()
    with zipfile.ZipFile(io.BytesIO(zip_bytes)) as archive, tarfile.open(fileobj=tar_buffer, mode="w") as tar:
        for entry in archive.infolist():
            relative = _archive_path(entry.filename)
            if relative is None:
                continue
            info = tarfile.TarInfo(f"{SOURCE_ROOT}/{relative}")
            mode = (entry.external_attr >> 16) & 0o7777
            if entry.is_dir():
                info.type = tarfile.DIRTYPE
                info.mode = mode or 0o755
                tar.addfile(info)
                continue
            data = archive.read(entry)
            info.size = len(data)
            info.mode = mode or 0o644
            tar.addfile(info, io.BytesIO(data))

    uncompressed = tar_buffer.getvalue()
    # mtime=0 keeps the layer digest a function of the content only
    compressed = gzip.compress(uncompressed, mtime=0)
    layer = Layer(data=compressed, diff_id=_digest(uncompressed))
    return Image(layers=(layer,), config={"config": {"WorkingDir": f"/{SOURCE_ROOT}"}})


def _archive_path(filename: str) -> Optional[str]:
    """Normalised path of a zip entry below the source root, None for the root itself."""
    normalised = posixpath.normpath(filename.replace("\\", "/"))
    if normalised.startswith("/") or normalised == ".." or normalised.startswith("../"):
        raise UnsafeArchivePathError(filename)
    if normalised == ".":
        return None
    return normalised


def parse_reference(reference: str) -> tuple[str, str, str]:
    """Split ``registry/repository[:tag]`` into its parts.

    Raises:
        ValueError: Reference has no registry host or repository
    """
    registry, _, remainder = reference.partition("/")
    if not registry or not remainder:
        raise ValueError(f"image reference '{reference}' must be <registry>/<repository>[:tag]")
    repository, tag = remainder, DEFAULT_TAG
    last_segment = remainder.rsplit("/", 1)[-1]
    if ":" in last_segment:
        repository, tag = remainder.rsplit(":", 1)
    return registry, repository, tag


@dataclass
class _BearerToken:
    value: Optional[str] = None


class RegistryImagePusher:
    """Docker Registry HTTP API v2 client for pushing images.

    Features:
    - Blob upload skipped when the registry already has the digest
    - Basic auth, or the bearer-token challenge registries answer with on 401

    Usage:
        pusher = RegistryImagePusher(username="u", password="p")
        pusher.push("localhost:5000/cf/packages/abc", image)
    """

    def __init__(self, username: Optional[str] = None, password: Optional[str] = None,
                 insecure: bool = False, session: Optional[requests.Session] = None):
        """Initialize pusher.

        Args:
            username: Registry user (basic auth and token requests)
            password: Registry password
            insecure: Talk plain HTTP to the registry
            session: Pre-configured requests session
        """
        self.username = username
        self.password = password
        self.scheme = "http" if insecure else "https"
        self.session = session or requests.Session()

    def push(self, reference: str, image: Image, **options) -> str:
        """Upload every blob of ``image`` then its manifest.

        Args:
            reference: ``registry/repository[:tag]``
            image: Image to push
            **options: ``tag`` overrides the reference's tag

        Returns:
            Digest reference of the pushed manifest

        Raises:
            requests.HTTPError: Registry rejected a request
        """
        registry, repository, tag = parse_reference(reference)
        tag = options.get("tag") or tag
        base = f"{self.scheme}://{registry}/v2/{repository}"
        # per push: one pusher serves every request thread
        token = _BearerToken()

        config_bytes = image.config_bytes()
        self._upload_blob(token, base, config_bytes)
        for layer in image.layers:
            self._upload_blob(token, base, layer.data)

        manifest = {
            "schemaVersion": 2,
            "mediaType": MANIFEST_MEDIA_TYPE,
            "config": {"mediaType": CONFIG_MEDIA_TYPE, "size": len(config_bytes), "digest": _digest(config_bytes)},
            "layers": [
                {"mediaType": layer.media_type, "size": len(layer.data), "digest": layer.digest}
                for layer in image.layers
            ],
        }
        manifest_bytes = json.dumps(manifest, separators=(",", ":")).encode()
        resp = self._request(
            token,
            "PUT",
            f"{base}/manifests/{tag}",
            data=manifest_bytes,
            headers={"Content-Type": MANIFEST_MEDIA_TYPE},
        )
        resp.raise_for_status()

        digest = resp.headers.get("Docker-Content-Digest") or _digest(manifest_bytes)
        logger.info(f"Pushed image {registry}/{repository}:{tag} ({digest})")
        return f"{registry}/{repository}@{digest}"

    def _upload_blob(self, token: _BearerToken, base: str, data: bytes) -> None:
        digest = _digest(data)
        resp = self._request(token, "HEAD", f"{base}/blobs/{digest}")
        if resp.status_code == 200:
            return

        resp = self._request(token, "POST", f"{base}/blobs/uploads/")
        resp.raise_for_status()
        location = urljoin(base, resp.headers["Location"])

        resp = self._request(
            token,
            "PUT",
            location,
            params={"digest": digest},
            data=data,
            headers={"Content-Type": "application/octet-stream"},
        )
        resp.raise_for_status()

    def _request(self, token: _BearerToken, method: str, url: str, **kwargs) -> requests.Response:
        """Send a registry request, answering one bearer challenge per call."""
        resp = self._send(token, method, url, **kwargs)
        challenge = resp.headers.get("WWW-Authenticate", "")
        if resp.status_code != 401 or not challenge.lower().startswith("bearer"):
            return resp

        token.value = self._fetch_token(challenge)
        return self._send(token, method, url, **kwargs)

    def _send(self, token: _BearerToken, method: str, url: str, headers: Optional[dict] = None,
              **kwargs) -> requests.Response:
        headers = dict(headers or {})
        auth = None
        if token.value:
            headers["Authorization"] = f"Bearer {token.value}"
        else:
            auth = self._basic_auth()
        return self.session.request(method, url, headers=headers, auth=auth, timeout=REQUEST_TIMEOUT, **kwargs)

    def _basic_auth(self) -> Optional[tuple[str, str]]:
        if self.username and self.password:
            return (self.username, self.password)
        return None

    def _fetch_token(self, challenge: str) -> str:
        params = dict(_CHALLENGE_PARAM.findall(challenge))
        realm = params.pop("realm", None)
        if not realm:
            raise requests.HTTPError(f"registry bearer challenge without realm: {challenge}")
        resp = self.session.get(realm, params=params, auth=self._basic_auth(), timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
        body = resp.json()
        return body.get("token") or body["access_token"]
