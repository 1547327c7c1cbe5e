"""Самообновление как конечный автомат.

Idle -> Checking -> Comparing -> Downloading -> Verifying -> Swapping -> Done;
Failed достижимо из любого состояния. Если удалённая версия не новее текущей,
автомат останавливается в Comparing с результатом "уже актуально".
"""
from __future__ import annotations

import logging
import os
import shutil
import stat
import tempfile
from pathlib import Path
from typing import List, Optional

from image_optimizer.models.errors import CorruptArtifact, UpdateError
from image_optimizer.models.release_model import UpdateResult, UpdateState, Version
from image_optimizer.models.run_config import UpdateConfig
from image_optimizer.services.updater.executable_replacer import (
    ExecutableReplacer,
    current_executable,
    get_replacer,
)
from image_optimizer.services.updater.platform_detector import platform_target, select_asset
from image_optimizer.services.updater.release_client import ReleaseClient

logger = logging.getLogger(__name__)


class SelfUpdater:
    def __init__(
        self,
        config: UpdateConfig,
        client: Optional[ReleaseClient] = None,
        replacer: Optional[ExecutableReplacer] = None,
        executable: Optional[Path] = None,
        target: Optional[str] = None,
    ) -> None:
        self.config = config
        self._client = client or ReleaseClient(
            config.release_url,
            user_agent=f"image-optimizer/{config.current_version}",
            timeout_seconds=config.timeout_seconds,
            max_retries=config.max_retries,
        )
        self._replacer = replacer or get_replacer()
        self._executable = executable
        self._target = target
        self._visited: List[UpdateState] = [UpdateState.IDLE]

    @property
    def state(self) -> UpdateState:
        return self._visited[-1]

    @property
    def visited(self) -> List[UpdateState]:
        return list(self._visited)

    def run(self) -> UpdateResult:
        """Выполняет обновление.

        Raises:
            UpdateError: любая ошибка; `exc.state` указывает, где она произошла.
        """
        workdir: Optional[Path] = None
        try:
            self._enter(UpdateState.CHECKING)
            logger.info("Проверка обновлений (текущая версия v%s)", self.config.current_version)
            release = self._client.fetch_latest()

            self._enter(UpdateState.COMPARING)
            current = Version.parse(self.config.current_version)
            latest = Version.parse(release.version_tag)
            logger.info("Последняя версия: %s", release.version_tag)
            if latest <= current:
                return self._result(current, latest, up_to_date=True)

            self._enter(UpdateState.DOWNLOADING)
            target = self._target or platform_target()
            asset = select_asset(release.assets, target)
            workdir = Path(tempfile.mkdtemp(prefix="image-optimizer-update-"))
            logger.info("Загрузка %s", asset.name)
            artifact = self._client.download(asset.download_url, workdir / asset.name)
            self._mark_executable(artifact)

            self._enter(UpdateState.VERIFYING)
            self._verify(artifact)

            self._enter(UpdateState.SWAPPING)
            executable = self._executable or current_executable()
            self._replacer.replace(executable, artifact)

            self._enter(UpdateState.DONE)
            logger.info("Обновлено до v%s", latest)
            return self._result(current, latest, installed_path=executable)
        except UpdateError as exc:
            if exc.state is None:
                exc.state = self.state
            self._enter(UpdateState.FAILED)
            raise
        except OSError as exc:
            failed_in = self.state
            self._enter(UpdateState.FAILED)
            raise UpdateError(f"Ошибка файловой системы при обновлении: {exc}", failed_in) from exc
        finally:
            if workdir is not None:
                shutil.rmtree(workdir, ignore_errors=True)

    # ---- Helpers ----
    def _enter(self, state: UpdateState) -> None:
        logger.debug("updater: %s -> %s", self.state.value, state.value)
        self._visited.append(state)

    def _result(self, current: Version, latest: Version, *, up_to_date: bool = False,
                installed_path: Optional[Path] = None) -> UpdateResult:
        return UpdateResult(
            final_state=self.state,
            current_version=current,
            latest_version=latest,
            up_to_date=up_to_date,
            installed_path=installed_path,
            visited=tuple(self._visited),
        )

    @staticmethod
    def _mark_executable(artifact: Path) -> None:
        if os.name != "nt" and artifact.is_file():
            mode = artifact.stat().st_mode
            os.chmod(artifact, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    @staticmethod
    def _verify(artifact: Path) -> None:
        """Проверяет, что артефакт непуст и помечен как исполняемый."""
        if not artifact.is_file() or artifact.stat().st_size == 0:
            raise CorruptArtifact(f"Загруженный файл пуст или отсутствует: {artifact.name}")
        if not os.access(artifact, os.X_OK):
            raise CorruptArtifact(f"Загруженный файл не помечен как исполняемый: {artifact.name}")
