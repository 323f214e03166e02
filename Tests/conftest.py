import io
import tarfile
from pathlib import Path
from typing import Dict, List

import pytest
import requests


class FakeResponse:
    """Minimal stand-in for a streamed ``requests.Response``."""

    def __init__(self, body: bytes = b"", status_code: int = 200):
        self.body = body
        self.status_code = status_code

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    @property
    def text(self):
        return self.body.decode("utf-8")

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self.body), chunk_size):
            yield self.body[start:start + chunk_size]


class FakeHttp:
    """Serves canned bodies per URL and records every request."""

    def __init__(self, routes: Dict[str, object]):
        self.routes = routes
        self.requested: List[str] = []

    def get(self, url, stream=False, timeout=None):
        self.requested.append(url)
        route = self.routes.get(url)
        if isinstance(route, Exception):
            raise route
        if route is None:
            return FakeResponse(status_code=404)
        return FakeResponse(route)


@pytest.fixture
def fake_http(monkeypatch):
    def install(routes):
        http = FakeHttp(routes)
        monkeypatch.setattr("Tools.artifacts.tomcat_download.requests.get", http.get)
        return http
    return install


def build_tomcat_tarball(version: str = "9.0.70", marker: str = "fresh") -> bytes:
    """A tar.gz whose single top-level entry is ``apache-tomcat-<version>/``."""
    top = f"apache-tomcat-{version}"
    files = {
        f"{top}/RELEASE-NOTES": f"Apache Tomcat {version}\n".encode(),
        f"{top}/bin/startup.sh": b"#!/bin/sh\necho start\n",
        f"{top}/conf/marker.txt": marker.encode(),
    }
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


@pytest.fixture
def tomcat_tarball():
    return build_tomcat_tarball


@pytest.fixture
def checksums_dir(tmp_path) -> Path:
    path = tmp_path / "checksums"
    path.mkdir()
    return path
