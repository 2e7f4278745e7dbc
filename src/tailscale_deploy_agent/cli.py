"""
CLI 메인 인터페이스
Click 및 Rich 기반 사용자 친화적 CLI
"""

import os
import subprocess
import sys
import tempfile
import click
import yaml
from typing import Callable, Iterable, List, Optional
from rich.console import Console
from rich.table import Table

from . import __version__
from .agent_cli import AgentCLI
from .config import InstallConfig, create_sample
from .errors import AuthenticationError, DeployError, PrivilegeError, ServiceStartTimeoutError
from .inputs import InputResolver
from .installer import InstallationDriver
from .logger import init_logger, get_logger
from .models import CleanupOutcome, ConnectRequest, ExitOutcome, InstallerArtifact, StepRecord
from .resolver import InstallerResolver
from .service import ServiceController
from .system import is_elevated
from .teardown import TeardownDriver

console = Console()


class AgentOrchestrator:
    """에이전트 오케스트레이터"""

    def __init__(self, config: InstallConfig, debug: bool = False,
                 resolver: Optional[InstallerResolver] = None,
                 installer: Optional[InstallationDriver] = None,
                 teardown: Optional[TeardownDriver] = None,
                 input_resolver: Optional[InputResolver] = None,
                 elevated: Callable[[], bool] = is_elevated):
        self.config = config
        self.debug = debug
        self.logger = get_logger()
        self.resolver = resolver or InstallerResolver(config)
        self.installer = installer or InstallationDriver(config)
        self.teardown = teardown or TeardownDriver(config)
        self.input_resolver = input_resolver or InputResolver(config)
        self.elevated = elevated
        self.execution_log: List[StepRecord] = []

    def log_step(self, step: str, status: str, message: str = ""):
        """실행 단계 기록"""
        self.execution_log.append(StepRecord(step, status, message))

    def show_summary(self):
        """실행 결과 요약 표시"""
        if not self.execution_log:
            return

        console.print("\n" + "="*60)
        console.print("[bold]실행 결과 요약[/bold]")
        console.print("="*60 + "\n")

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("단계", style="cyan", width=20)
        table.add_column("상태", width=6)
        table.add_column("메시지", width=30)

        for record in self.execution_log:
            status_icon = "✓" if record.succeeded else "✗"
            status_color = "green" if record.succeeded else "red"
            table.add_row(
                record.step,
                f"[{status_color}]{status_icon}[/{status_color}]",
                record.message[:30]
            )

        console.print(table)

        log_files = self.logger.get_log_files()
        console.print(f"\n[bold]로그 파일:[/bold]")
        console.print(f"  Main: {log_files['main_log']}")
        console.print(f"  Error: {log_files['error_log']}")

    def show_cleanup(self, outcomes: Iterable[CleanupOutcome]):
        """경로별 정리 결과 표시"""
        table = Table(title="정리 결과", show_header=True, header_style="bold magenta")
        table.add_column("경로", style="cyan")
        table.add_column("결과")

        for outcome in outcomes:
            if not outcome.ok:
                result = f"[red]✗ {outcome.error}[/red]"
            elif outcome.existed:
                result = "[green]✓ 삭제됨[/green]"
            else:
                result = "[dim]없음[/dim]"
            table.add_row(str(outcome.path), result)

        console.print(table)

    def require_privileges(self):
        """관리자 권한 확인 (권한 상승은 시도하지 않음)"""
        if not self.elevated():
            raise PrivilegeError("This command must be run from an elevated (Administrator) shell")

    def guard(self, operation: str, fn: Callable[[], None]) -> ExitOutcome:
        """작업 실행 후 에러를 종료 결과로 변환"""
        error: Optional[DeployError] = None
        try:
            fn()
        except DeployError as e:
            error = e
            console.print(f"\n[red]✗ {e}[/red]")
            self.logger.error(f"{operation} failed: {e}")
        except KeyboardInterrupt:
            console.print("\n[yellow]사용자에 의해 중단되었습니다.[/yellow]")
            self.logger.warning(f"{operation} interrupted by user")
            return ExitOutcome.OPERATION_FAILED
        except (OSError, subprocess.SubprocessError) as e:
            console.print(f"\n[red]예상치 못한 오류 발생: {e}[/red]")
            self.logger.exception(f"Unexpected error during {operation}")
            return ExitOutcome.OPERATION_FAILED
        finally:
            self.show_summary()

        outcome = ExitOutcome.from_error(error)
        self.logger.info(f"=== {operation} finished: {outcome.name} ===")
        return outcome

    def connect(self, auth_key: Optional[str] = None, tags: Iterable[str] = ()) -> ExitOutcome:
        """설치 및 인증"""
        return self.guard("connect", lambda: self._connect(auth_key, tags))

    def disconnect(self) -> ExitOutcome:
        """중지, 제거 및 정리"""
        return self.guard("disconnect", self._disconnect)

    def _resolve_artifact(self) -> InstallerArtifact:
        try:
            artifact = self.resolver.resolve()
        except DeployError as e:
            self.log_step("설치 파일 확인", "failed", str(e))
            raise
        self.log_step("설치 파일 확인", "success", artifact.source.value)
        return artifact

    def _connect(self, auth_key: Optional[str], tags: Iterable[str]):
        self.logger.info("=== connect started ===")
        self.require_privileges()
        request = self.input_resolver.resolve_connect(auth_key, tags)
        artifact = self._resolve_artifact()

        try:
            self._install(artifact, request)
        except (ServiceStartTimeoutError, AuthenticationError):
            # 패키지는 이미 설치된 상태
            if self.config.agent.rollback_on_failure:
                self.rollback(self.installer.artifact or artifact)
            raise

    def _install(self, artifact: InstallerArtifact, request: ConnectRequest):
        try:
            self.installer.install(artifact, request.auth_key, request.tags)
        finally:
            self.execution_log.extend(self.installer.steps)

    def _disconnect(self):
        self.logger.info("=== disconnect started ===")
        self.require_privileges()
        artifact = self._resolve_artifact()
        try:
            outcomes = self.teardown.uninstall(artifact)
        finally:
            self.execution_log.extend(self.teardown.steps)
        self.show_cleanup(outcomes)

    def rollback(self, artifact: InstallerArtifact):
        """설치 후 단계 실패 시 패키지 제거 (rollback_on_failure)"""
        console.print("\n[bold yellow]오류 발생! 롤백을 시작합니다...[/bold yellow]\n")
        self.logger.error("Post-install step failed, rolling back package install...")
        try:
            self.teardown.uninstall(artifact)
            self.log_step("롤백", "success", "패키지 제거")
        except DeployError as e:
            self.log_step("롤백", "failed", str(e))
            self.logger.error(f"Rollback failed: {e}")
        finally:
            self.execution_log.extend(self.teardown.steps)


def setup_logging(config: InstallConfig, debug: bool):
    """로거 초기화 (로그 디렉토리에 쓸 수 없으면 임시 디렉토리 사용)"""
    try:
        return init_logger(config.agent.log_dir, config.agent.log_level, debug)
    except OSError:
        fallback = os.path.join(tempfile.gettempdir(), "tailscale-deploy-agent")
        return init_logger(fallback, config.agent.log_level, debug)


def build_orchestrator(config: InstallConfig, debug: bool) -> AgentOrchestrator:
    return AgentOrchestrator(config, debug)


def load_context(ctx: click.Context) -> InstallConfig:
    """설정 로드 및 로거 초기화"""
    params = ctx.find_root().params
    try:
        config = InstallConfig.load(params.get("config"))
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]✗ 설정 파일 오류: {e}[/red]")
        sys.exit(ExitOutcome.INVALID_INPUT.exit_code)
    setup_logging(config, params.get("debug", False))
    return config


class AgentGroup(click.Group):
    """알 수 없는 명령은 오류와 도움말 출력 후 종료 코드 1"""

    def resolve_command(self, ctx, args):
        cmd_name = args[0] if args else None
        if cmd_name and not cmd_name.startswith("-") and self.get_command(ctx, cmd_name) is None:
            console.print(f"[red]오류: 알 수 없는 명령 '{cmd_name}'[/red]")
            click.echo(ctx.get_help())
            ctx.exit(ExitOutcome.INVALID_INPUT.exit_code)
        return super().resolve_command(ctx, args)


@click.group(cls=AgentGroup, invoke_without_command=True)
@click.version_option(version=__version__)
@click.option('--config', '-c', type=click.Path(exists=True, dir_okay=False), help='설정 파일 경로')
@click.option('--debug', is_flag=True, help='디버그 모드')
@click.pass_context
def cli(ctx, config, debug):
    """Tailscale Deploy Agent

    Windows 호스트에 Tailscale 을 무인 설치/인증(connect)하거나 제거(disconnect)합니다.
    connect/disconnect 는 관리자 권한이 필요합니다.
    """
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.option('--auth-key', '-k', help='Tailscale auth key (생략 시 설정값 또는 입력)')
@click.option('--tags', '-t', multiple=True,
              help='ACL 태그 (반복 또는 쉼표 구분, tag: 접두사 자동 추가)')
@click.pass_context
def connect(ctx, auth_key, tags):
    """Tailscale 설치 및 인증"""
    config = load_context(ctx)
    orchestrator = build_orchestrator(config, ctx.find_root().params.get("debug", False))
    outcome = orchestrator.connect(auth_key, tags)
    sys.exit(outcome.exit_code)


@cli.command()
@click.pass_context
def disconnect(ctx):
    """Tailscale 중지, 제거 및 상태 정리"""
    config = load_context(ctx)
    orchestrator = build_orchestrator(config, ctx.find_root().params.get("debug", False))
    outcome = orchestrator.disconnect()
    sys.exit(outcome.exit_code)


@cli.command(name="help")
@click.pass_context
def help_command(ctx):
    """도움말 표시"""
    click.echo(ctx.parent.get_help())


@cli.command()
@click.pass_context
def status(ctx):
    """서비스 및 연결 상태 표시"""
    config = load_context(ctx)
    try:
        state = ServiceController(config.service.name).status()
    except (OSError, subprocess.SubprocessError) as e:
        console.print(f"[red]✗ 서비스 상태 조회 실패: {e}[/red]")
        sys.exit(1)

    console.print(f"[bold]{config.service.name} 서비스:[/bold] {state.value}")
    text = AgentCLI(config.auth.executable).status_text()
    if text:
        console.print("\n[bold]Tailscale 상태:[/bold]")
        console.print(text, markup=False)


@cli.command()
@click.argument('output', type=click.Path(), default='./config.yaml')
def init(output):
    """샘플 설정 파일 생성"""
    create_sample(output)
    console.print(f"[green]✓ 샘플 설정 파일 생성: {output}[/green]")
    console.print(f"[cyan]설정 파일을 편집한 후 다음 명령어로 실행하세요:[/cyan]")
    console.print(f"[cyan]  tailscale-deploy-agent --config {output} connect[/cyan]")


@cli.command()
@click.pass_context
def validate(ctx):
    """설정 파일 유효성 검사"""
    config_path = ctx.find_root().params.get("config")
    try:
        cfg = InstallConfig.load(config_path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]✗ 설정 파일 오류: {e}[/red]")
        sys.exit(1)

    console.print("[green]✓ 설정 파일이 유효합니다.[/green]")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("항목", style="cyan")
    table.add_column("값")

    table.add_row("설정 파일", cfg.source_path or "[yellow]기본값[/yellow]")
    table.add_row("설치 디렉토리", cfg.paths.install_dir)
    table.add_row("다운로드 URL", cfg.package.download_base_url)
    table.add_row("서비스", cfg.service.name)
    table.add_row("Auth Key", "설정됨" if cfg.auth.auth_key else "[red]미설정[/red]")
    table.add_row("기본 태그", ", ".join(cfg.auth.tags) or "-")
    table.add_row("롤백 활성화", "예" if cfg.agent.rollback_on_failure else "아니오")

    console.print(table)


def main():
    """메인 엔트리 포인트"""
    cli()


if __name__ == '__main__':
    main()
