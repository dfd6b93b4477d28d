import sys
from typing import Optional

import click

from .config import load_env_files, ProjectConfig
from .logging_utils import setup_logging, get_logger
from .orchestrator import apply_all, plan_all, check_all, unknown_functions


logger = get_logger(__name__)


@click.group()
@click.option(
    "-C",
    "--chdir",
    "chdir",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
    default=".",
    help="프로젝트 디렉토리 (기본: 현재 디렉토리)",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="로그 레벨을 DEBUG로 올립니다. (-vv 부터 boto 로그 포함)",
)
@click.pass_context
def main(ctx: click.Context, chdir: str, verbose: int) -> None:
    """AWS Lambda 패키징/배포 및 stage 별칭 관리 CLI"""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["chdir"] = chdir
    ctx.obj["verbose"] = verbose


def _load_config_from_ctx(ctx: click.Context) -> ProjectConfig:
    base_dir: str = ctx.obj["chdir"]
    load_env_files(base_dir)
    cfg = ProjectConfig.from_env(base_dir)
    logger.debug("Config loaded: %s", cfg)
    return cfg


def _parse_only(cfg: ProjectConfig, only: str) -> Optional[list[str]]:
    if not only.strip():
        return None
    only_list = [p.strip() for p in only.split(",") if p.strip()]

    invalid = unknown_functions(cfg, only_list)
    if invalid:
        click.echo(
            "[ERROR] 프로젝트에 없는 함수가 있습니다: " + ", ".join(invalid),
            err=True,
        )
        sys.exit(1)
    return only_list


_only_option = click.option(
    "--only",
    "only",
    type=str,
    default="",
    help="쉼표로 구분된 함수 identifier. 기본은 lambdas 디렉토리의 모든 함수.",
)


@main.command()
@_only_option
@click.pass_context
def plan(ctx: click.Context, only: str) -> None:
    """배포 대상 함수와 설정 요약을 출력"""
    try:
        cfg = _load_config_from_ctx(ctx)
    except Exception as e:  # noqa: BLE001
        click.echo(f"[ERROR] 설정 로드 실패: {e}", err=True)
        sys.exit(1)

    click.echo(plan_all(cfg, _parse_only(cfg, only)))


@main.command(name="deploy")
@_only_option
@click.pass_context
def deploy(ctx: click.Context, only: str) -> None:
    """Lambda 를 생성/업데이트하고 버전을 발행하여 stage 별칭에 연결"""
    try:
        cfg = _load_config_from_ctx(ctx)
    except Exception as e:  # noqa: BLE001
        click.echo(f"[ERROR] 설정 로드 실패: {e}", err=True)
        sys.exit(1)

    only_list = _parse_only(cfg, only)

    try:
        summary, has_failures = apply_all(cfg, only=only_list)
    except Exception as e:  # noqa: BLE001
        logger.exception("배포 중 오류 발생")
        click.echo(f"[ERROR] 배포 실패: {e}", err=True)
        sys.exit(1)

    click.echo(summary)

    # 함수 단위 실패가 있었다면 전체 명령은 실패(exit 1)로 간주
    if has_failures:
        sys.exit(1)


@main.command()
@_only_option
@click.pass_context
def check(ctx: click.Context, only: str) -> None:
    """
    배포 전에 함수 설정과 원격 함수/별칭 상태를 점검한다.
    (실제 리소스 생성/변경은 하지 않는다)
    """
    try:
        cfg = _load_config_from_ctx(ctx)
    except Exception as e:  # noqa: BLE001
        click.echo(f"[ERROR] 설정 로드 실패: {e}", err=True)
        sys.exit(1)

    try:
        report, has_issues = check_all(cfg, only=_parse_only(cfg, only))
    except Exception as e:  # noqa: BLE001
        logger.exception("사전 체크 중 오류 발생")
        click.echo(f"[ERROR] 체크 실패: {e}", err=True)
        sys.exit(1)

    click.echo(report)

    if has_issues:
        sys.exit(1)
