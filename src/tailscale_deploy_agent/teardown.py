"""
제거 드라이버
프로세스 종료 -> 서비스 중지 -> 대기 -> msiexec 제거 -> 상태 디렉토리 정리
msiexec 제거만 치명적이고 나머지는 best-effort
"""

import shutil
import subprocess
import time
from pathlib import Path
from typing import Callable, List, Optional
from rich.console import Console

from .config import InstallConfig
from .errors import UninstallError
from .logger import get_logger
from .models import CleanupOutcome, InstallerArtifact, StepRecord
from .package import PackageManager
from .service import ServiceController

console = Console()


def remove_path(path: Path) -> CleanupOutcome:
    """경로 하나 삭제 (디렉토리는 재귀 삭제)"""
    outcome = CleanupOutcome(path)
    try:
        outcome.existed = path.exists() or path.is_symlink()
        if not outcome.existed:
            return outcome
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except OSError as e:
        outcome.error = str(e)
    return outcome


class TeardownDriver:
    """Tailscale 제거 드라이버"""

    def __init__(self, config: InstallConfig,
                 package_manager: Optional[PackageManager] = None,
                 service: Optional[ServiceController] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.config = config
        self.package_manager = package_manager or PackageManager(config.package.msiexec)
        self.service = service or ServiceController(config.service.name)
        self.sleep = sleep
        self.logger = get_logger()
        self.steps: List[StepRecord] = []

    def log_step(self, step: str, status: str, message: str = ""):
        """실행 단계 기록"""
        self.steps.append(StepRecord(step, status, message))

    def uninstall(self, artifact: InstallerArtifact) -> List[CleanupOutcome]:
        """제거 수행, 경로별 정리 결과 반환"""
        console.print("\n[bold cyan]Tailscale 제거 시작...[/bold cyan]\n")
        self.logger.info(f"Uninstalling Tailscale using {artifact.path}")

        self.stop_processes()
        self.stop_service()

        self.logger.debug(f"Waiting {self.config.service.settle_interval}s for handles to be released")
        self.sleep(self.config.service.settle_interval)

        self.uninstall_package(artifact)
        outcomes = self.cleanup(artifact)

        console.print("[bold green]✓ Tailscale 제거 완료[/bold green]")
        self.logger.info("Tailscale uninstalled")
        return outcomes

    def stop_processes(self):
        """에이전트 프로세스 강제 종료 (없어도 정상)"""
        terminated = self.service.terminate_processes(self.config.service.process_names)
        self.log_step("프로세스 종료", "success", ", ".join(terminated) or "실행 중 아님")

    def stop_service(self):
        """서비스 중지 (실패 시 경고만)"""
        success, msg = self.service.stop()
        if success:
            self.logger.info(f"Service {self.config.service.name}: {msg}")
            self.log_step("서비스 중지", "success", msg)
        else:
            console.print(f"[yellow]⚠ 서비스 중지 실패: {msg}[/yellow]")
            self.logger.warning(f"Service stop failed: {msg}")
            self.log_step("서비스 중지", "failed", msg)

    def uninstall_package(self, artifact: InstallerArtifact):
        """msiexec 무인 제거"""
        console.print("[cyan]패키지 제거 중 (msiexec)...[/cyan]")
        try:
            exit_code = self.package_manager.uninstall(artifact.path)
        except (OSError, subprocess.SubprocessError) as e:
            self.log_step("패키지 제거", "failed", str(e))
            raise UninstallError(f"Failed to run msiexec: {e}") from e

        if exit_code != 0:
            self.log_step("패키지 제거", "failed", f"exit {exit_code}")
            raise UninstallError("msiexec uninstall failed", exit_code)

        self.log_step("패키지 제거", "success", artifact.path.name)
        console.print("[green]✓ 패키지 제거 완료[/green]")

    def cleanup_paths(self, artifact: InstallerArtifact) -> List[Path]:
        paths = [Path(self.config.paths.install_dir)]
        paths.extend(Path(p) for p in self.config.paths.state_dirs)
        if artifact.downloaded:
            paths.append(artifact.path)
        return paths

    def cleanup(self, artifact: InstallerArtifact) -> List[CleanupOutcome]:
        """설치/상태 디렉토리 정리 (경로별 실패는 경고 후 계속)"""
        outcomes = []
        for path in self.cleanup_paths(artifact):
            outcome = remove_path(path)
            if outcome.ok:
                self.logger.info(f"Removed {path}" if outcome.existed else f"Not present: {path}")
            else:
                console.print(f"[yellow]⚠ 삭제 실패: {path} ({outcome.error})[/yellow]")
                self.logger.warning(f"Failed to remove {path}: {outcome.error}")
            outcomes.append(outcome)

        failed = [o for o in outcomes if not o.ok]
        self.log_step(
            "상태 정리",
            "failed" if failed else "success",
            f"{len(outcomes) - len(failed)}/{len(outcomes)} 경로"
        )
        return outcomes
