"""
설치 파일 해석 모듈
설치 디렉토리의 캐시된 MSI 를 우선 사용하고, 없으면 최신 안정판을 다운로드
"""

import os
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import urljoin, urlparse

import requests
from rich.console import Console

from .config import InstallConfig
from .errors import DownloadError
from .logger import get_logger
from .models import ArtifactSource, InstallerArtifact

console = Console()

REDIRECT_STATUSES = (301, 302, 303, 307, 308)
CHUNK_SIZE = 1024 * 1024


class InstallerResolver:
    """MSI 설치 파일 해석 클래스"""

    def __init__(self, config: InstallConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        self.logger = get_logger()
        self.install_dir = Path(config.paths.install_dir)
        self.temp_dir = Path(config.paths.temp_dir)

    @property
    def base_url(self) -> str:
        return self.config.package.download_base_url.rstrip("/") + "/"

    @property
    def latest_url(self) -> str:
        return urljoin(self.base_url, f"stable/{self.config.package.latest_alias}")

    def find_cached(self) -> Optional[Path]:
        """설치 디렉토리에서 가장 최근 수정된 설치 파일 검색"""
        if not self.install_dir.is_dir():
            return None
        candidates = [
            p for p in self.install_dir.glob(self.config.package.installer_pattern)
            if p.is_file()
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda p: p.stat().st_mtime)

    def resolve(self) -> InstallerArtifact:
        """설치 파일 해석 (캐시 우선, 버전 비교 없음)"""
        cached = self.find_cached()
        if cached:
            console.print(f"[green]✓ 캐시된 설치 파일 사용: {cached.name}[/green]")
            self.logger.info(f"Using cached installer {cached}")
            return InstallerArtifact(cached, ArtifactSource.FOUND_EXISTING)

        url = self.resolve_latest_url()
        path = self.download(url)
        return InstallerArtifact(path, ArtifactSource.DOWNLOADED)

    def resolve_latest_url(self) -> str:
        """latest 별칭의 리다이렉트 대상 URL 조회"""
        self.logger.info(f"Resolving latest installer from {self.latest_url}")
        try:
            response = self.session.head(
                self.latest_url,
                allow_redirects=False,
                timeout=self.config.package.download_timeout
            )
        except requests.RequestException as e:
            raise DownloadError(f"Failed to query {self.latest_url}: {e}") from e

        location = response.headers.get("Location")
        if response.status_code not in REDIRECT_STATUSES or not location:
            raise DownloadError(
                f"Expected a redirect from {self.latest_url}, got HTTP {response.status_code}"
            )

        url = urljoin(self.base_url, location)
        self.logger.info(f"Latest installer resolved to {url}")
        return url

    def download(self, url: str) -> Path:
        """설치 파일을 임시 디렉토리로 다운로드"""
        file_name = PurePosixPath(urlparse(url).path).name
        if not file_name:
            raise DownloadError(f"Cannot derive installer file name from {url}")

        self.temp_dir.mkdir(parents=True, exist_ok=True)
        target = self.temp_dir / file_name
        partial = target.with_name(target.name + ".part")

        console.print(f"[cyan]설치 파일 다운로드 중: {file_name}[/cyan]")
        self.logger.info(f"Downloading {url} to {target}")
        try:
            with self.session.get(url, stream=True, timeout=self.config.package.download_timeout) as response:
                response.raise_for_status()
                with open(partial, "wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
            os.replace(partial, target)
        except (requests.RequestException, OSError) as e:
            if partial.exists():
                partial.unlink()
            raise DownloadError(f"Failed to download {url}: {e}") from e

        console.print(f"[green]✓ 다운로드 완료: {target}[/green]")
        self.logger.info(f"Downloaded installer to {target}")
        return target
