"""
설치 파일 해석 모듈 테스트
"""

import os
import time

import pytest
import requests
from conftest import FakeSession
from tailscale_deploy_agent.errors import DownloadError
from tailscale_deploy_agent.models import ArtifactSource
from tailscale_deploy_agent.resolver import InstallerResolver


def write_installer(directory, name, age=0):
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_bytes(b"MSI")
    mtime = time.time() - age
    os.utime(path, (mtime, mtime))
    return path


def test_cached_installer_skips_network(config, tmp_path):
    """캐시된 설치 파일이 있으면 네트워크 요청 없음 (오래된 파일이라도)"""
    cached = write_installer(tmp_path / "install", "tailscale-setup-1.0.0-amd64.msi", age=3 * 365 * 86400)
    session = FakeSession()

    artifact = InstallerResolver(config, session=session).resolve()

    assert artifact.path == cached
    assert artifact.source is ArtifactSource.FOUND_EXISTING
    assert session.calls == []


def test_most_recent_cached_installer_selected(config, tmp_path):
    """가장 최근 수정된 설치 파일 선택"""
    install_dir = tmp_path / "install"
    write_installer(install_dir, "tailscale-setup-1.0.0-amd64.msi", age=1000)
    newest = write_installer(install_dir, "tailscale-setup-1.2.0-amd64.msi", age=10)
    write_installer(install_dir, "tailscale-setup-1.1.0-amd64.msi", age=500)
    write_installer(install_dir, "unrelated.msi", age=0)

    artifact = InstallerResolver(config, session=FakeSession()).resolve()
    assert artifact.path == newest


def test_redirect_is_followed_and_downloaded(config, tmp_path):
    """latest 리다이렉트 대상 다운로드"""
    session = FakeSession(location="/stable/tailscale-setup-1.2.3-amd64.msi", content=b"payload")

    artifact = InstallerResolver(config, session=session).resolve()

    method, url, kwargs = session.calls[0]
    assert (method, url) == ("HEAD", "https://pkgs.tailscale.com/stable/tailscale-setup-latest-amd64.msi")
    assert kwargs["allow_redirects"] is False
    assert session.calls[1][:2] == ("GET", "https://pkgs.tailscale.com/stable/tailscale-setup-1.2.3-amd64.msi")

    assert artifact.source is ArtifactSource.DOWNLOADED
    assert artifact.path.name == "tailscale-setup-1.2.3-amd64.msi"
    assert artifact.path.parent == tmp_path / "temp"
    assert artifact.path.read_bytes() == b"payload"
    assert not (tmp_path / "temp" / "tailscale-setup-1.2.3-amd64.msi.part").exists()


def test_absolute_redirect_location(config):
    """절대 URL 리다이렉트도 처리"""
    session = FakeSession(location="https://dl.example.com/stable/tailscale-setup-1.4.0-amd64.msi")
    artifact = InstallerResolver(config, session=session).resolve()

    assert session.calls[1][1] == "https://dl.example.com/stable/tailscale-setup-1.4.0-amd64.msi"
    assert artifact.path.name == "tailscale-setup-1.4.0-amd64.msi"


def test_network_failure_raises_download_error(config):
    """네트워크 오류 시 DownloadError"""
    session = FakeSession(head_error=requests.ConnectionError("offline"))
    with pytest.raises(DownloadError):
        InstallerResolver(config, session=session).resolve()


def test_non_redirect_raises_download_error(config):
    """리다이렉트가 아니면 DownloadError"""
    with pytest.raises(DownloadError):
        InstallerResolver(config, session=FakeSession(head_status=200)).resolve()
    with pytest.raises(DownloadError):
        InstallerResolver(config, session=FakeSession(location=None)).resolve()


def test_failed_download_leaves_no_partial_file(config, tmp_path):
    """다운로드 실패 시 임시 파일 제거"""
    session = FakeSession(get_status=404)
    with pytest.raises(DownloadError):
        InstallerResolver(config, session=session).resolve()

    assert list((tmp_path / "temp").iterdir()) == []
