"""
modules
-------

Lambda 패키지에 함께 묶을 재사용 node module 을 찾고,
그 의존성을 재귀적으로 펼치는 모듈.

레지스트리 디렉토리 구조:

    <modules_dir>/<name>/package.json

package.json 의 "dependencies" 중 레지스트리에 존재하는 이름만
lambda_kit 이 관리하는 의존성으로 본다. 나머지(npm 패키지)는
모듈 디렉토리 안의 node_modules 에 설치되어 있다고 가정한다.
"""

from __future__ import annotations

import json
import os
from typing import Dict, List, Optional

from .errors import ConfigError, NodeModuleNotFound
from .logging_utils import get_logger


logger = get_logger(__name__)


class NodeModule:
    def __init__(self, name: str, fs_path: str, registry: "ModuleRegistry") -> None:
        self.name = name
        self.fs_path = fs_path
        self._registry = registry
        self._direct: Optional[List[str]] = None

    def __repr__(self) -> str:
        return f"NodeModule({self.name!r}, {self.fs_path!r})"

    def direct_dependency_names(self) -> List[str]:
        if self._direct is None:
            self._direct = self._read_dependency_names()
        return self._direct

    def _read_dependency_names(self) -> List[str]:
        path = os.path.join(self.fs_path, "package.json")
        try:
            with open(path, "r", encoding="utf-8") as f:
                manifest = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"package.json 을 파싱할 수 없습니다: {path} ({e})") from e

        deps = manifest.get("dependencies") or {}
        return [name for name in deps if self._registry.has(name)]

    def nested_dependencies(self) -> Dict[str, "NodeModule"]:
        """
        이 모듈이 (직간접적으로) 의존하는 모듈들을 이름 기준으로 중복 없이 반환한다.
        자기 자신은 포함하지 않으며, 순환 의존이 있어도 멈춘다.
        """
        found: Dict[str, NodeModule] = {}
        pending = list(self.direct_dependency_names())
        while pending:
            name = pending.pop(0)
            if name in found or name == self.name:
                continue
            module = self._registry.resolve(name)
            found[name] = module
            pending.extend(module.direct_dependency_names())
        return found


class ModuleRegistry:
    def __init__(self, modules_dir: str) -> None:
        self.modules_dir = modules_dir
        self._cache: Dict[str, NodeModule] = {}

    def has(self, name: str) -> bool:
        return os.path.isfile(os.path.join(self.modules_dir, name, "package.json"))

    def resolve(self, name: str) -> NodeModule:
        if name in self._cache:
            return self._cache[name]
        if not self.has(name):
            raise NodeModuleNotFound(name, self.modules_dir)

        module = NodeModule(name, os.path.join(self.modules_dir, name), self)
        logger.debug("node module 확인: %s -> %s", name, module.fs_path)
        self._cache[name] = module
        return module

    def list_names(self) -> List[str]:
        if not os.path.isdir(self.modules_dir):
            return []
        return sorted(n for n in os.listdir(self.modules_dir) if self.has(n))
