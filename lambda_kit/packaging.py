"""
packaging
---------

Lambda 배포용 zip 패키지를 만드는 모듈.

패키지 구조:
- handler 디렉토리의 파일들 → zip 루트
- 각 node module 디렉토리 → node_modules/<name>/
- env_config.json → 환경설정 값 + LAMBDA=true
"""

from __future__ import annotations

import base64
import json
import os
import tempfile
import time
import zipfile
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from .logging_utils import get_logger


logger = get_logger(__name__)

ENV_CONFIG_FILENAME = "env_config.json"
MODULES_ARCHIVE_DIR = "node_modules"


@dataclass(frozen=True)
class PackageModule:
    name: str
    fs_path: str


# NAME_MAX(255) 안에 들어가도록 인코딩 결과를 이 길이 단위의 경로 조각으로 나눈다.
ARCHIVE_NAME_SEGMENT = 200


def archive_path_for(handler_path: str) -> str:
    """
    handler 경로를 되돌릴 수 있는 형태(urlsafe base64)로 인코딩한 임시 zip 경로.
    인코딩 결과가 길면 하위 디렉토리 조각으로 나누고, 조각을 이어 붙이면 원래 값이 된다.
    """
    encoded = base64.urlsafe_b64encode(handler_path.encode("utf-8")).decode("ascii")
    segments = [
        encoded[i:i + ARCHIVE_NAME_SEGMENT]
        for i in range(0, len(encoded), ARCHIVE_NAME_SEGMENT)
    ] or [""]
    segments[-1] += ".zip"
    return os.path.join(tempfile.gettempdir(), *segments)


def _add_directory(
    archive: zipfile.ZipFile,
    src_dir: str,
    prefix: str,
    skip: Iterable[str] = (),
) -> None:
    """
    src_dir 아래 파일을 prefix 경로로 추가한다.

    디렉토리 심볼릭 링크(pnpm, npm link)도 따라가되, 상위 디렉토리로 되돌아가는
    링크는 순환이므로 건너뛴다. skip 은 src_dir 기준 상대 경로 목록.
    """
    if not os.path.isdir(src_dir):
        raise FileNotFoundError(f"패키지에 포함할 디렉토리가 없습니다: {src_dir}")

    skipped = set(skip)
    chains = {src_dir: {os.path.realpath(src_dir)}}
    for root, dirs, files in os.walk(src_dir, onerror=_raise, followlinks=True):
        chain = chains.pop(root)
        kept = []
        for name in sorted(dirs):
            full = os.path.join(root, name)
            real = os.path.realpath(full)
            if real in chain:
                logger.warning("순환 심볼릭 링크를 건너뜁니다: %s -> %s", full, real)
                continue
            kept.append(name)
            chains[full] = chain | {real}
        dirs[:] = kept

        for name in sorted(files):
            full = os.path.join(root, name)
            rel = os.path.relpath(full, src_dir).replace(os.sep, "/")
            if rel in skipped:
                logger.warning("생성 파일과 이름이 겹쳐 패키지에서 제외합니다: %s", full)
                continue
            archive.write(full, prefix + rel)


def _raise(error: OSError) -> None:
    raise error


def build_env_config(env_vars: Mapping[str, Any]) -> str:
    env_config = dict(env_vars)
    env_config["LAMBDA"] = True
    return json.dumps(env_config)


def build_package(
    handler_path: str,
    modules: Iterable[PackageModule],
    env_vars: Mapping[str, Any],
    report: Optional[Any] = None,
) -> bytes:
    """
    zip 패키지를 임시 파일로 만든 뒤, 그 내용을 bytes 로 반환한다.

    report 가 주어지면 성공/실패와 관계없이 package_build_time(초)을 기록한다.
    임시 파일은 삭제하지 않는다.
    """
    started = time.perf_counter()
    path = archive_path_for(handler_path)
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        # 1980 년 이전 mtime(Nix store, SOURCE_DATE_EPOCH=0 등)은 1980-01-01 로 맞춘다.
        with zipfile.ZipFile(
            path,
            "w",
            compression=zipfile.ZIP_DEFLATED,
            strict_timestamps=False,
        ) as archive:
            _add_directory(archive, handler_path, "", skip=(ENV_CONFIG_FILENAME,))
            for module in modules:
                _add_directory(archive, module.fs_path, f"{MODULES_ARCHIVE_DIR}/{module.name}/")
            archive.writestr(ENV_CONFIG_FILENAME, build_env_config(env_vars))

        with open(path, "rb") as f:
            data = f.read()
    finally:
        if report is not None:
            report.package_build_time = time.perf_counter() - started

    logger.debug("패키지 생성 완료: %s (%d bytes)", path, len(data))
    return data
