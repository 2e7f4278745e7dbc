"""
배포 데이터 모델
설치 파일, 서비스 상태, 실행 결과 등
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple

from .errors import DeployError, InputError


class ArtifactSource(Enum):
    """설치 파일 출처"""
    FOUND_EXISTING = "found-existing"
    DOWNLOADED = "downloaded"


@dataclass(frozen=True)
class InstallerArtifact:
    """해석된 MSI 설치 파일"""
    path: Path
    source: ArtifactSource

    @property
    def downloaded(self) -> bool:
        return self.source is ArtifactSource.DOWNLOADED


class ServiceState(Enum):
    """OS 서비스 관리자에서 관찰한 서비스 상태"""
    NOT_INSTALLED = "NotInstalled"
    STOPPED = "Stopped"
    STARTING = "Starting"
    RUNNING = "Running"
    FAILED_TO_START = "FailedToStart"


class ExitOutcome(Enum):
    """프로세스 종료 결과 (종료 코드는 exit_code)"""
    SUCCESS = "success"
    INVALID_INPUT = "invalid-input"
    OPERATION_FAILED = "operation-failed"

    @property
    def exit_code(self) -> int:
        return 0 if self is ExitOutcome.SUCCESS else 1

    @classmethod
    def from_error(cls, error: Optional[DeployError]) -> "ExitOutcome":
        if error is None:
            return cls.SUCCESS
        if isinstance(error, InputError):
            return cls.INVALID_INPUT
        return cls.OPERATION_FAILED


@dataclass(frozen=True)
class ConnectRequest:
    """connect 실행에 필요한 입력이 모두 채워진 요청"""
    auth_key: str
    tags: Tuple[str, ...] = ()

    def __repr__(self) -> str:
        return f"ConnectRequest(auth_key='***', tags={self.tags!r})"


@dataclass
class StepRecord:
    """실행 단계 기록"""
    step: str
    status: str
    message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


@dataclass
class CleanupOutcome:
    """경로 하나에 대한 정리 결과"""
    path: Path
    existed: bool = False
    error: Optional[str] = field(default=None)

    @property
    def ok(self) -> bool:
        return self.error is None
