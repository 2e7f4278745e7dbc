"""
에러 정의
모든 에러는 현재 실행에 대해 치명적이며 CLI 최상위에서 한 번만 처리된다
"""

from typing import Optional


class DeployError(RuntimeError):
    """사용자에게 그대로 출력 가능한 배포 에러"""


class InputError(DeployError):
    """잘못되었거나 누락된 명령/입력"""


class PrivilegeError(DeployError):
    """관리자 권한으로 실행되지 않음"""


class DownloadError(DeployError):
    """캐시된 설치 파일이 없고 다운로드도 실패"""


class ExitCodeError(DeployError):
    """외부 프로세스의 비정상 종료 코드를 담는 에러"""

    def __init__(self, message: str, exit_code: Optional[int] = None):
        if exit_code is not None:
            message = f"{message} (exit code {exit_code})"
        super().__init__(message)
        self.exit_code = exit_code


class PackageInstallError(ExitCodeError):
    """msiexec 설치 실패"""


class UninstallError(ExitCodeError):
    """msiexec 제거 실패"""


class AuthenticationError(ExitCodeError):
    """tailscale up 인증 실패"""


class ServiceStartTimeoutError(DeployError):
    """제한 시간 내에 서비스가 Running 상태가 되지 않음"""

    def __init__(self, service_name: str, timeout: float, polls: int):
        super().__init__(
            f"Service '{service_name}' did not reach Running within {timeout:g}s ({polls} polls)"
        )
        self.service_name = service_name
        self.timeout = timeout
        self.polls = polls


class ServiceControlError(ServiceStartTimeoutError):
    """서비스 관리자(sc.exe)를 실행할 수 없어 서비스 상태를 확인하지 못함"""

    def __init__(self, service_name: str, reason: str):
        DeployError.__init__(self, f"Could not control service '{service_name}': {reason}")
        self.service_name = service_name
        self.timeout = None
        self.polls = 0
        self.reason = reason
