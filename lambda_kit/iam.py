"""
iam
---

Lambda 실행 역할(role) 식별자를 ARN 으로 바꾸는 모듈.
"""

from __future__ import annotations

from typing import Any, List, Optional

import boto3
from botocore.exceptions import ClientError

from .config import DeployContext
from .errors import ConfigError
from .logging_utils import get_logger


logger = get_logger(__name__)


def is_arn(value: Optional[str]) -> bool:
    return bool(value) and value.startswith("arn:")


def candidate_role_names(role: str, context: DeployContext, prefix_with_environment: bool = True) -> List[str]:
    names: List[str] = []
    if prefix_with_environment:
        names.append(f"{context.environment}_{role}")
    names.append(role)
    return names


def resolve_execution_role(
    role: str,
    context: DeployContext,
    fallback: Optional[str] = None,
    *,
    iam_client: Optional[Any] = None,
    prefix_with_environment: bool = True,
) -> str:
    """
    실행 역할 ARN 을 찾는다.

    1. role 이 이미 ARN 이면 그대로 사용
    2. IAM 에서 `<environment>_<role>`, `<role>` 순서로 조회
    3. 못 찾으면 fallback 이 ARN 일 때만 fallback, 아니면 ConfigError
    """
    if is_arn(role):
        return role
    if not role:
        raise ConfigError("실행 역할(Role)이 설정되지 않았습니다.")

    client = iam_client if iam_client is not None else boto3.client("iam")

    for name in candidate_role_names(role, context, prefix_with_environment):
        try:
            arn = client.get_role(RoleName=name)["Role"]["Arn"]
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") != "NoSuchEntity":
                raise
            logger.debug("IAM role 없음: %s", name)
            continue
        logger.debug("IAM role 확인: %s -> %s", name, arn)
        return arn

    if is_arn(fallback):
        logger.warning("IAM role 을 찾지 못해 fallback 을 사용합니다: %s", fallback)
        return fallback  # type: ignore[return-value]

    raise ConfigError(
        f"실행 역할을 찾을 수 없습니다: {role} "
        f"(조회한 이름: {', '.join(candidate_role_names(role, context, prefix_with_environment))})"
    )
