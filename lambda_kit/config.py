from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Tuple

from dotenv import load_dotenv

from .errors import ConfigError


ENV_FILES_DEFAULT_ORDER = [".env", ".env.infra", ".env.secrets"]

FUNCTION_CONFIG_FILE = "config.json"
DEFAULT_HANDLER_DIR = "lambda"


def load_env_files(base_dir: str = ".",
                   files: Optional[List[str]] = None) -> None:
    """
    주어진 디렉토리에서 .env 계열 파일을 순서대로 로드한다.
    후순위 파일이 같은 키를 덮어쓴다.
    """
    order = files or ENV_FILES_DEFAULT_ORDER
    for name in order:
        path = os.path.join(base_dir, name)
        if os.path.exists(path):
            load_dotenv(path, override=True)


def _get_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "y"}


def default_params(identifier: str) -> dict[str, Any]:
    return {
        "FunctionName": identifier,
        "Handler": "lambda.handler",
        "Role": f"PLEASE-CONFIGURE-AN-EXECUTION-ROLE-FOR-{identifier}",
        "Runtime": "nodejs4.3",
        "Timeout": 15,
        "Publish": False,
    }


@dataclass(frozen=True)
class DeployContext:
    environment: str
    stage: str


def remote_function_name(identifier: str, context: DeployContext) -> str:
    """원격 함수 이름은 항상 `<environment>-<identifier>` 이다."""
    return f"{context.environment}-{identifier}"


@dataclass(frozen=True)
class FunctionConfig:
    identifier: str
    handler_path: str
    modules: Tuple[str, ...] = ()
    include_endpoints: bool = False
    params: Mapping[str, Any] = field(default_factory=dict)

    def with_params(self, **overrides: Any) -> "FunctionConfig":
        merged = dict(self.params)
        merged.update(overrides)
        return replace(self, params=MappingProxyType(merged))


def apply_defaults(config: FunctionConfig) -> FunctionConfig:
    """
    params 에서 비어 있는 키만 기본값으로 채운 새 FunctionConfig 를 반환한다.
    명시된 값은 절대 덮어쓰지 않는다.
    """
    params = default_params(config.identifier)
    params.update(config.params or {})
    return replace(
        config,
        modules=tuple(config.modules or ()),
        params=MappingProxyType(params),
    )


def load_function_config(lambdas_dir: str, identifier: str) -> FunctionConfig:
    """
    `<lambdas_dir>/<identifier>/config.json` 을 읽어 기본값이 적용된 FunctionConfig 를 만든다.

    handlerPath 가 없으면 `<lambdas_dir>/<identifier>/lambda` 를 사용하고,
    상대 경로는 함수 디렉토리 기준으로 해석한다.
    """
    function_dir = os.path.join(lambdas_dir, identifier)
    path = os.path.join(function_dir, FUNCTION_CONFIG_FILE)
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"함수 설정 파일이 없습니다: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"함수 설정 파일을 파싱할 수 없습니다: {path} ({e})") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"함수 설정은 JSON object 여야 합니다: {path}")

    modules = raw.get("modules") or []
    params = raw.get("params") or {}
    if not isinstance(modules, list) or not all(isinstance(m, str) for m in modules):
        raise ConfigError(f"modules 는 문자열 배열이어야 합니다: {path}")
    if not isinstance(params, dict):
        raise ConfigError(f"params 는 JSON object 여야 합니다: {path}")

    handler_path = raw.get("handlerPath") or DEFAULT_HANDLER_DIR
    if not os.path.isabs(handler_path):
        handler_path = os.path.join(function_dir, handler_path)

    return apply_defaults(
        FunctionConfig(
            identifier=identifier,
            handler_path=os.path.normpath(handler_path),
            modules=tuple(modules),
            include_endpoints=bool(raw.get("includeEndpoints", False)),
            params=params,
        )
    )


def discover_functions(lambdas_dir: str) -> List[str]:
    """config.json 을 가진 하위 디렉토리 이름을 정렬해서 반환한다."""
    if not os.path.isdir(lambdas_dir):
        return []
    return sorted(
        name
        for name in os.listdir(lambdas_dir)
        if os.path.isfile(os.path.join(lambdas_dir, name, FUNCTION_CONFIG_FILE))
    )


@dataclass
class ProjectConfig:
    # 필수 공통
    aws_region: str
    environment: str
    stage: str

    # 프로젝트 레이아웃
    base_dir: str = "."
    lambdas_dir: str = "lambdas"
    modules_dir: str = "node-modules"
    api_gateway_dir: str = "api-gateway"

    # 역할 이름 앞에 `<environment>_` 를 붙인 IAM role 을 먼저 찾을지 여부
    role_prefix_with_environment: bool = True

    @property
    def context(self) -> DeployContext:
        return DeployContext(environment=self.environment, stage=self.stage)

    def path(self, relative: str) -> str:
        if os.path.isabs(relative):
            return relative
        return os.path.join(self.base_dir, relative)

    @classmethod
    def from_env(cls, base_dir: str = ".") -> "ProjectConfig":
        # 필수값
        missing: List[str] = []
        def req(name: str) -> str:
            val = os.getenv(name)
            if not val:
                missing.append(name)
            return val or ""

        cfg = cls(
            aws_region=req("AWS_REGION"),
            environment=req("DEPLOY_ENVIRONMENT"),
            stage=req("DEPLOY_STAGE"),
            base_dir=base_dir,
            lambdas_dir=os.getenv("LAMBDAS_DIR", "lambdas"),
            modules_dir=os.getenv("MODULES_DIR", "node-modules"),
            api_gateway_dir=os.getenv("API_GATEWAY_DIR", "api-gateway"),
            role_prefix_with_environment=_get_bool("ROLE_PREFIX_WITH_ENVIRONMENT", True),
        )

        if missing:
            raise ValueError(
                "필수 환경변수가 누락되었습니다: " + ", ".join(sorted(set(missing)))
            )

        return cfg
