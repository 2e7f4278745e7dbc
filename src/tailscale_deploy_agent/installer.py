"""
설치 드라이버
msiexec 무인 설치 -> 서비스 Running 대기 -> 설치 파일 보관 -> tailscale up 인증
각 단계는 이전 단계 성공 시에만 진행 (fail-fast, 자체 롤백 없음)
"""

import shutil
import subprocess
import time
from pathlib import Path
from typing import Callable, List, Optional, Sequence
from rich.console import Console

from .agent_cli import AgentCLI
from .config import InstallConfig
from .errors import (
    AuthenticationError, PackageInstallError, ServiceControlError, ServiceStartTimeoutError
)
from .logger import get_logger
from .models import ArtifactSource, InstallerArtifact, ServiceState, StepRecord
from .package import PackageManager
from .service import ServiceController

console = Console()


class InstallationDriver:
    """Tailscale 설치 드라이버"""

    def __init__(self, config: InstallConfig,
                 package_manager: Optional[PackageManager] = None,
                 service: Optional[ServiceController] = None,
                 agent_cli: Optional[AgentCLI] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.config = config
        self.package_manager = package_manager or PackageManager(config.package.msiexec)
        self.service = service or ServiceController(config.service.name)
        self.agent_cli = agent_cli or AgentCLI(config.auth.executable, config.auth.up_timeout)
        self.sleep = sleep
        self.logger = get_logger()
        self.artifact: Optional[InstallerArtifact] = None
        self.steps: List[StepRecord] = []

    def log_step(self, step: str, status: str, message: str = ""):
        """실행 단계 기록"""
        self.steps.append(StepRecord(step, status, message))

    def install(self, artifact: InstallerArtifact, auth_key: str,
                tags: Sequence[str]) -> InstallerArtifact:
        """설치 및 인증 수행, 최종 설치 파일 위치 반환"""
        console.print("\n[bold cyan]Tailscale 설치 시작...[/bold cyan]\n")
        self.logger.info(f"Installing Tailscale from {artifact.path} ({artifact.source.value})")
        self.artifact = artifact

        self.install_package(artifact)
        self.wait_for_service()
        artifact = self.relocate_artifact(artifact)
        self.authenticate(auth_key, tags)

        console.print("[bold green]✓ Tailscale 설치 및 인증 완료[/bold green]")
        self.logger.info("Tailscale installed and authenticated")
        return artifact

    def install_package(self, artifact: InstallerArtifact):
        """msiexec 무인 설치"""
        console.print("[cyan]패키지 설치 중 (msiexec)...[/cyan]")
        try:
            exit_code = self.package_manager.install(artifact.path, self.config.package.properties)
        except (OSError, subprocess.SubprocessError) as e:
            self.log_step("패키지 설치", "failed", str(e))
            raise PackageInstallError(f"Failed to run msiexec: {e}") from e

        if exit_code != 0:
            self.log_step("패키지 설치", "failed", f"exit {exit_code}")
            raise PackageInstallError("msiexec install failed", exit_code)

        self.log_step("패키지 설치", "success", artifact.path.name)
        console.print("[green]✓ 패키지 설치 완료[/green]")
        self.logger.info("Package installed")

    def wait_for_service(self) -> int:
        """서비스 시작 요청 후 Running 상태가 될 때까지 제한된 횟수로 폴링"""
        service_cfg = self.config.service
        try:
            state = self.service.start()
        except (OSError, subprocess.SubprocessError) as e:
            self.log_step("서비스 시작", "failed", str(e))
            raise ServiceControlError(service_cfg.name, f"sc start: {e}") from e
        self.logger.debug(f"Service start requested: {state.value}")

        max_polls = max(1, int(service_cfg.start_timeout / service_cfg.poll_interval))
        with console.status(f"[bold green]{service_cfg.name} 서비스 시작 대기 중...[/bold green]"):
            for poll in range(1, max_polls + 1):
                try:
                    state = self.service.status()
                except (OSError, subprocess.SubprocessError) as e:
                    self.log_step("서비스 시작", "failed", str(e))
                    raise ServiceControlError(service_cfg.name, f"sc query: {e}") from e
                self.logger.debug(f"Service poll {poll}/{max_polls}: {state.value}")
                if state is ServiceState.RUNNING:
                    self.log_step("서비스 시작", "success", f"{poll}회 확인")
                    console.print(f"[green]✓ {service_cfg.name} 서비스 실행 중[/green]")
                    self.logger.info(f"Service {service_cfg.name} is running")
                    return poll
                if poll < max_polls:
                    self.sleep(service_cfg.poll_interval)

        self.log_step("서비스 시작", "failed", state.value)
        raise ServiceStartTimeoutError(service_cfg.name, service_cfg.start_timeout, max_polls)

    def relocate_artifact(self, artifact: InstallerArtifact) -> InstallerArtifact:
        """다운로드한 설치 파일을 설치 디렉토리로 이동 (실패해도 설치는 유효)"""
        if not artifact.downloaded:
            return artifact

        install_dir = Path(self.config.paths.install_dir)
        target = install_dir / artifact.path.name
        try:
            install_dir.mkdir(parents=True, exist_ok=True)
            shutil.move(str(artifact.path), str(target))
        except OSError as e:
            self.logger.warning(f"Could not move installer into {install_dir}: {e}")
            self.log_step("설치 파일 보관", "failed", str(e))
            return artifact

        self.logger.info(f"Installer cached at {target}")
        self.log_step("설치 파일 보관", "success", target.name)
        self.artifact = InstallerArtifact(target, ArtifactSource.FOUND_EXISTING)
        return self.artifact

    def authenticate(self, auth_key: str, tags: Sequence[str]):
        """tailscale up 무인 인증"""
        console.print("[cyan]Tailscale 인증 중...[/cyan]")
        if tags:
            self.logger.info(f"Authenticating with tags {','.join(tags)}")
        else:
            self.logger.info("Authenticating without tags")

        try:
            exit_code = self.agent_cli.up(auth_key, tags)
        except subprocess.TimeoutExpired as e:
            self.log_step("인증", "failed", "timeout")
            raise AuthenticationError(f"tailscale up timed out after {e.timeout}s") from e
        except (OSError, subprocess.SubprocessError) as e:
            self.log_step("인증", "failed", str(e))
            raise AuthenticationError(f"Failed to run tailscale: {e}") from e

        if exit_code != 0:
            self.log_step("인증", "failed", f"exit {exit_code}")
            raise AuthenticationError("tailscale up failed", exit_code)

        self.log_step("인증", "success", ",".join(tags) or "태그 없음")
        console.print("[green]✓ 인증 완료[/green]")
