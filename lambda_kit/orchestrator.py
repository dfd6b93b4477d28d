from __future__ import annotations

import os
from functools import partial
from typing import Dict, Iterable, List, Optional

from .aws_lambda import LambdaClient
from .config import ProjectConfig, discover_functions, load_function_config, remote_function_name
from .deployer import DeploymentResult, FunctionDeployer
from .errors import ResourceNotFound
from .iam import resolve_execution_role
from .logging_utils import format_duration, get_logger
from .modules import ModuleRegistry


logger = get_logger(__name__)


def _select_functions(cfg: ProjectConfig, only: Optional[Iterable[str]]) -> List[str]:
    """
    프로젝트에서 발견된 함수 중 only 에 포함된 것만 실행 대상으로 고른다.
    """
    available = discover_functions(cfg.path(cfg.lambdas_dir))
    if only:
        requested = {s for s in only}
        return [name for name in available if name in requested]
    return available


def unknown_functions(cfg: ProjectConfig, only: Iterable[str]) -> List[str]:
    available = set(discover_functions(cfg.path(cfg.lambdas_dir)))
    return sorted({name for name in only if name not in available})


def _make_deployer(cfg: ProjectConfig, identifier: str, registry: ModuleRegistry) -> FunctionDeployer:
    function_cfg = load_function_config(cfg.path(cfg.lambdas_dir), identifier)
    return FunctionDeployer(
        function_cfg,
        registry,
        role_resolver=partial(
            resolve_execution_role,
            prefix_with_environment=cfg.role_prefix_with_environment,
        ),
        api_gateway_dir=cfg.path(cfg.api_gateway_dir),
        env_vars=dict(os.environ),
    )


def _section(lines: List[str], title: str, items: List[str]) -> None:
    lines.append(f"## {title}")
    if items:
        for s in items:
            lines.append(f"- {s}")
    else:
        lines.append("- (none)")


def plan_all(cfg: ProjectConfig, only: Optional[Iterable[str]] = None) -> str:
    """
    배포 대상 함수와 각 함수의 설정/모듈 구성을 요약한다. 실제 AWS 호출은 하지 않는다.
    """
    lines: List[str] = []
    lines.append("# Deploy plan")
    lines.append(f"- region: {cfg.aws_region}")
    lines.append(f"- environment: {cfg.environment}")
    lines.append(f"- stage: {cfg.stage}")
    lines.append("")

    registry = ModuleRegistry(cfg.path(cfg.modules_dir))
    lines.append("## Config summary")
    lines.append(f"- lambdas_dir: {cfg.path(cfg.lambdas_dir)}")
    lines.append(f"- modules_dir: {cfg.path(cfg.modules_dir)} ({len(registry.list_names())} modules)")
    lines.append(f"- api_gateway_dir: {cfg.path(cfg.api_gateway_dir)}")
    lines.append("")

    lines.append("## Functions")
    selected = _select_functions(cfg, only)
    if not selected:
        lines.append("- (none)")
    for identifier in selected:
        name = remote_function_name(identifier, cfg.context)
        try:
            deployer = _make_deployer(cfg, identifier, registry)
            modules = sorted(deployer.get_node_modules())
        except Exception as e:  # noqa: BLE001
            lines.append(f"- {identifier} -> {name}: 설정 오류 ({e})")
            continue
        params = deployer.config.params
        lines.append(
            f"- {identifier} -> {name}:{cfg.stage} "
            f"(runtime={params['Runtime']}, handler={params['Handler']}, "
            f"modules={', '.join(modules) or '-'}, endpoints={deployer.config.include_endpoints})"
        )

    return "\n".join(lines)


def apply_all(cfg: ProjectConfig, only: Optional[Iterable[str]] = None) -> tuple[str, bool]:
    """
    함수별로 실제 배포를 수행한다.

    Returns:
        summary: 사람이 읽기 좋은 텍스트 요약
        has_failures: 하나 이상의 함수에서 예외가 발생했는지 여부
    """
    results: Dict[str, DeploymentResult] = {}
    failed: List[str] = []

    selected = _select_functions(cfg, only)
    logger.info("배포 대상 함수: %s", selected)

    registry = ModuleRegistry(cfg.path(cfg.modules_dir))
    client = LambdaClient(cfg.aws_region)

    for identifier in selected:
        logger.info("함수 배포: %s", identifier)
        try:
            deployer = _make_deployer(cfg, identifier, registry)
            results[identifier] = deployer.deploy(cfg.aws_region, cfg.context, client=client)
        except Exception:  # noqa: BLE001
            failed.append(identifier)
            logger.exception("함수 배포 실패: %s", identifier)
            continue

    lines: List[str] = []
    lines.append("# Deploy summary")
    lines.append(f"- region: {cfg.aws_region}")
    lines.append(f"- stage: {cfg.stage}")
    lines.append("")

    deployed: List[str] = []
    for identifier, result in results.items():
        r = result.report
        deployed.append(
            f"{r.name} [{r.operation}] version={r.published_version} "
            f"alias={'updated' if r.alias_existed else 'created'} {r.alias_arn} "
            f"(package {format_duration(r.package_build_time)}, deploy {format_duration(r.deploy_time)})"
        )
    _section(lines, "Deployed functions", deployed)
    lines.append("")
    _section(lines, "Failed functions", failed)

    summary = "\n".join(lines)
    return summary, bool(failed)


def check_all(cfg: ProjectConfig, only: Optional[Iterable[str]] = None) -> tuple[str, bool]:
    """
    리소스를 변경하지 않고, 함수 설정과 원격 함수/별칭 상태를 점검한다.

    Returns:
        summary: 사람이 읽기 좋은 텍스트 요약
        has_issues: 설정 오류나 조회 실패가 있는지 여부
    """
    lines: List[str] = []
    critical: List[str] = []

    lines.append("# Deploy pre-check")
    lines.append(f"- region: {cfg.aws_region}")
    lines.append(f"- stage: {cfg.stage}")
    lines.append("")

    registry = ModuleRegistry(cfg.path(cfg.modules_dir))
    client = LambdaClient(cfg.aws_region)

    lines.append("## Functions")
    for identifier in _select_functions(cfg, only):
        name = remote_function_name(identifier, cfg.context)
        try:
            deployer = _make_deployer(cfg, identifier, registry)
            deployer.get_node_modules()
        except Exception as e:  # noqa: BLE001
            msg = f"{identifier}: 설정 오류 ({e})"
            lines.append(f"- {msg}")
            critical.append(msg)
            continue

        try:
            client.get_function(name)
        except ResourceNotFound:
            lines.append(f"- {name}: 없음 (배포 시 생성됨)")
            continue
        except Exception as e:  # noqa: BLE001
            msg = f"{name}: 조회 실패 ({e})"
            lines.append(f"- {msg}")
            critical.append(msg)
            continue

        try:
            alias = client.get_alias(name, cfg.stage)
            lines.append(f"- {name}: 존재함 (별칭 {cfg.stage} -> 버전 {alias['FunctionVersion']})")
        except ResourceNotFound:
            lines.append(f"- {name}: 존재함 (별칭 {cfg.stage} 없음, 배포 시 생성됨)")
        except Exception as e:  # noqa: BLE001
            msg = f"{name}: 별칭 조회 실패 ({e})"
            lines.append(f"- {msg}")
            critical.append(msg)

    lines.append("")
    lines.append("## Summary")
    if critical:
        lines.append("- 상태: 크리티컬 이슈가 있습니다. 배포 전 반드시 해결해야 합니다.")
        for i in critical:
            lines.append(f"  - {i}")
    else:
        lines.append("- 상태: 주요 이슈 없음 (배포 가능 상태로 보입니다)")

    return "\n".join(lines), bool(critical)
