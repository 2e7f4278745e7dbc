"""
Windows Installer(msiexec) 래퍼
종료 코드 0 = 성공, 그 외 종료 코드는 그대로 호출자에게 전달
"""

from pathlib import Path
from typing import Iterable, List

from .system import run_command


class PackageManager:
    """msiexec 호출 클래스"""

    def __init__(self, executable: str = "msiexec"):
        self.executable = executable

    def install_command(self, artifact_path: Path, properties: Iterable[str]) -> List[str]:
        return [self.executable, "/install", str(artifact_path), "/quiet", *properties]

    def uninstall_command(self, target: Path) -> List[str]:
        return [self.executable, "/uninstall", str(target), "/quiet"]

    def install(self, artifact_path: Path, properties: Iterable[str]) -> int:
        """무인 설치 실행, 종료 코드 반환"""
        return run_command(self.install_command(artifact_path, properties)).returncode

    def uninstall(self, target: Path) -> int:
        """무인 제거 실행, 종료 코드 반환"""
        return run_command(self.uninstall_command(target)).returncode
