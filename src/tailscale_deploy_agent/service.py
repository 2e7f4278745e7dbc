"""
Windows 서비스/프로세스 제어 모듈
sc.exe 및 taskkill 기반
"""

import re
import subprocess
from typing import Iterable, List, Tuple

from .logger import get_logger
from .models import ServiceState
from .system import run_command

# sc.exe / taskkill 종료 코드
ERROR_SERVICE_ALREADY_RUNNING = 1056
ERROR_SERVICE_DOES_NOT_EXIST = 1060
ERROR_SERVICE_NOT_ACTIVE = 1062
TASKKILL_PROCESS_NOT_FOUND = 128

_STATE_PATTERN = re.compile(r"STATE\s*:\s*(\d+)")

# SERVICE_STATUS.dwCurrentState -> ServiceState
_STATE_CODES = {
    1: ServiceState.STOPPED,        # STOPPED
    2: ServiceState.STARTING,       # START_PENDING
    3: ServiceState.STOPPED,        # STOP_PENDING
    4: ServiceState.RUNNING,        # RUNNING
    5: ServiceState.STARTING,       # CONTINUE_PENDING
    6: ServiceState.STOPPED,        # PAUSE_PENDING
    7: ServiceState.STOPPED,        # PAUSED
}


def parse_sc_state(output: str) -> ServiceState:
    """sc query 출력에서 상태 추출"""
    match = _STATE_PATTERN.search(output or "")
    if not match:
        return ServiceState.STOPPED
    return _STATE_CODES.get(int(match.group(1)), ServiceState.STOPPED)


class ServiceController:
    """Tailscale 서비스 제어 클래스"""

    def __init__(self, name: str = "Tailscale", sc_executable: str = "sc.exe",
                 taskkill_executable: str = "taskkill"):
        self.name = name
        self.sc_executable = sc_executable
        self.taskkill_executable = taskkill_executable
        self.logger = get_logger()

    def status(self) -> ServiceState:
        """서비스 상태 조회"""
        result = run_command([self.sc_executable, "query", self.name])
        if result.returncode == ERROR_SERVICE_DOES_NOT_EXIST:
            return ServiceState.NOT_INSTALLED
        if result.returncode != 0:
            self.logger.warning(f"sc query {self.name} failed with exit code {result.returncode}")
            return ServiceState.STOPPED
        return parse_sc_state(result.stdout)

    def start(self) -> ServiceState:
        """서비스 시작 요청 (이미 실행 중이면 그대로 성공)"""
        result = run_command([self.sc_executable, "start", self.name])
        if result.returncode == 0:
            return ServiceState.STARTING
        if result.returncode == ERROR_SERVICE_ALREADY_RUNNING:
            return ServiceState.RUNNING
        if result.returncode == ERROR_SERVICE_DOES_NOT_EXIST:
            return ServiceState.NOT_INSTALLED
        self.logger.warning(f"sc start {self.name} failed with exit code {result.returncode}")
        return ServiceState.FAILED_TO_START

    def stop(self) -> Tuple[bool, str]:
        """서비스 중지 (없거나 이미 중지된 경우도 성공)"""
        try:
            result = run_command([self.sc_executable, "stop", self.name])
        except (OSError, subprocess.SubprocessError) as e:
            return False, f"sc stop 실행 실패: {e}"

        if result.returncode == 0:
            return True, "중지됨"
        if result.returncode == ERROR_SERVICE_NOT_ACTIVE:
            return True, "이미 중지됨"
        if result.returncode == ERROR_SERVICE_DOES_NOT_EXIST:
            return True, "서비스 없음"
        return False, f"sc stop 실패 (exit code {result.returncode})"

    def terminate_processes(self, image_names: Iterable[str]) -> List[str]:
        """이름으로 프로세스 강제 종료, 종료된 이름 목록 반환"""
        terminated = []
        for image_name in image_names:
            try:
                result = run_command([self.taskkill_executable, "/F", "/IM", image_name])
            except (OSError, subprocess.SubprocessError) as e:
                self.logger.warning(f"Failed to run taskkill for {image_name}: {e}")
                continue

            if result.returncode == 0:
                self.logger.info(f"Terminated process {image_name}")
                terminated.append(image_name)
            elif result.returncode == TASKKILL_PROCESS_NOT_FOUND:
                self.logger.debug(f"Process {image_name} not running")
            else:
                self.logger.warning(f"taskkill {image_name} failed with exit code {result.returncode}")
        return terminated
