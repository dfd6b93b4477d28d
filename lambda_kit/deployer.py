"""
deployer
--------

Lambda 함수 하나를 배포하는 책임을 가지는 모듈.

흐름:
  존재 확인 → 생성 or 업데이트 → 버전 발행 → 별칭 확인 → 별칭 생성 or 업데이트

별칭은 항상 방금 발행한 버전을 가리킨다. 같은 함수를 동시에 배포하는
경우에 대한 잠금은 없다.
"""

from __future__ import annotations

import os
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from .aws_lambda import LambdaClient
from .config import DeployContext, FunctionConfig, remote_function_name
from .errors import ResourceNotFound
from .iam import resolve_execution_role
from .integration import IntegrationDescriptor
from .logging_utils import get_logger
from .modules import ModuleRegistry, NodeModule
from .packaging import PackageModule, build_package


logger = get_logger(__name__)

RoleResolver = Callable[[str, DeployContext, Optional[str]], str]

OPERATION_CREATION = "Creation"
OPERATION_UPDATE = "Update"


@dataclass
class DeploymentReport:
    name: str
    operation: Optional[str] = None
    package_build_time: Optional[float] = None
    deploy_time: Optional[float] = None
    published_version: Optional[str] = None
    alias_existed: Optional[bool] = None
    alias_arn: Optional[str] = None


@dataclass(frozen=True)
class DeploymentResult:
    report: DeploymentReport
    integration: IntegrationDescriptor


class FunctionDeployer:
    def __init__(
        self,
        config: FunctionConfig,
        resolver: ModuleRegistry,
        role_resolver: Optional[RoleResolver] = None,
        api_gateway_dir: Optional[str] = None,
        env_vars: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.config = config
        self.resolver = resolver
        self.role_resolver = role_resolver or resolve_execution_role
        self.api_gateway_dir = api_gateway_dir
        self.env_vars = env_vars

    @property
    def identifier(self) -> str:
        return self.config.identifier

    def __str__(self) -> str:
        return f"Node Lambda {self.identifier}"

    def get_node_modules(self) -> Dict[str, NodeModule]:
        """
        설정된 모듈과 그 하위 의존성 전체를 이름 기준으로 중복 없이 반환한다.
        """
        modules: Dict[str, NodeModule] = {}
        for name in self.config.modules:
            module = self.resolver.resolve(name)
            modules.update(module.nested_dependencies())
            modules[module.name] = module
        return modules

    def _package_modules(self) -> List[PackageModule]:
        modules = [
            PackageModule(name=m.name, fs_path=m.fs_path)
            for m in self.get_node_modules().values()
        ]
        if self.config.include_endpoints:
            if not self.api_gateway_dir:
                raise ValueError(
                    f"{self.identifier}: includeEndpoints=true 이면 API Gateway 디렉토리가 필요합니다."
                )
            modules.append(
                PackageModule(name="endpoints", fs_path=os.path.join(self.api_gateway_dir, "endpoints"))
            )
        return modules

    def build_package(self, report: Optional[DeploymentReport] = None) -> bytes:
        env_vars = self.env_vars if self.env_vars is not None else os.environ
        return build_package(
            self.config.handler_path,
            self._package_modules(),
            env_vars,
            report,
        )

    def deploy(
        self,
        region: str,
        context: DeployContext,
        client: Optional[LambdaClient] = None,
    ) -> DeploymentResult:
        """
        함수를 생성/업데이트하고 새 버전을 발행한 뒤 stage 이름의 별칭을 그 버전에 연결한다.
        """
        client = client if client is not None else LambdaClient(region)
        function_name = remote_function_name(self.identifier, context)
        config = self.config.with_params(FunctionName=function_name)
        report = DeploymentReport(name=function_name)

        if self.is_deployed(client, function_name):
            logger.debug("Lambda %s 가 이미 존재합니다.", function_name)
            report.operation = OPERATION_UPDATE
            self.update(client, config, context, report)
        else:
            logger.debug("Lambda %s 가 존재하지 않습니다.", function_name)
            report.operation = OPERATION_CREATION
            self.create(client, config, context, report)

        logger.debug("Lambda %s 배포 완료", function_name)
        version = client.publish_version(function_name)["Version"]
        logger.debug("Lambda %s 버전 발행: %s", function_name, version)
        report.published_version = version

        if self.alias_exists(client, function_name, context.stage):
            logger.debug("Lambda %s 에 별칭 %s 이(가) 이미 있습니다.", function_name, context.stage)
            report.alias_existed = True
            alias = client.update_alias(function_name, context.stage, version)
        else:
            logger.debug("Lambda %s 에 별칭 %s 이(가) 없습니다.", function_name, context.stage)
            report.alias_existed = False
            alias = client.create_alias(function_name, context.stage, version)

        logger.info(
            "Lambda %s 버전 %s -> 별칭 %s",
            function_name,
            alias["FunctionVersion"],
            alias["AliasArn"],
        )
        report.alias_arn = alias["AliasArn"]
        return DeploymentResult(
            report=report,
            integration=IntegrationDescriptor(
                function=config,
                function_version=alias["FunctionVersion"],
                alias_arn=alias["AliasArn"],
            ),
        )

    def is_deployed(self, client: LambdaClient, function_name: str) -> bool:
        try:
            client.get_function(function_name)
        except ResourceNotFound:
            return False
        return True

    def alias_exists(self, client: LambdaClient, function_name: str, stage: str) -> bool:
        try:
            client.get_alias(function_name, stage)
        except ResourceNotFound:
            return False
        return True

    def _resolve_role(self, config: FunctionConfig, context: DeployContext) -> str:
        role = config.params["Role"]
        return self.role_resolver(role, context, role)

    def create(
        self,
        client: LambdaClient,
        config: FunctionConfig,
        context: DeployContext,
        report: DeploymentReport,
    ) -> Dict[str, Any]:
        # 패키지 빌드와 role 조회는 서로 독립적이므로 동시에 수행한다.
        with ThreadPoolExecutor(max_workers=2) as pool:
            package_future = pool.submit(self.build_package, report)
            role_future = pool.submit(self._resolve_role, config, context)
            package = package_future.result()
            role_arn = role_future.result()

        started = time.perf_counter()
        params = dict(config.params)
        params["Code"] = {"ZipFile": package}
        params["Role"] = role_arn
        response = client.create_function(**params)
        report.deploy_time = time.perf_counter() - started
        return response

    def update(
        self,
        client: LambdaClient,
        config: FunctionConfig,
        context: DeployContext,
        report: DeploymentReport,
    ) -> Dict[str, Any]:
        package = self.build_package(report)

        with ThreadPoolExecutor(max_workers=2) as pool:
            code_future = pool.submit(
                client.update_function_code,
                config.params["FunctionName"],
                package,
                bool(config.params.get("Publish", False)),
            )
            role_future = pool.submit(self._resolve_role, config, context)
            code_future.result()
            role_arn = role_future.result()

        # 코드 업데이트가 성공한 뒤 설정 업데이트가 실패하면 원격 상태가 어긋난 채로 남는다.
        started = time.perf_counter()
        params = {k: v for k, v in config.params.items() if k != "Publish"}
        params["Role"] = role_arn
        response = client.update_function_configuration(**params)
        report.deploy_time = time.perf_counter() - started
        return response
