import logging
from typing import Optional, Sequence

from image_optimizer.cli.args import parse_args, setup_logging
from image_optimizer.config.ini_config import IniConfig
from image_optimizer.controllers.app_controller import EXIT_FATAL, AppController
from image_optimizer.models.errors import ConfigError

logger = logging.getLogger(__name__)


class ImageOptimizerApp:
    def __init__(self, ini: Optional[IniConfig] = None) -> None:
        self._ini = ini

    def run(self, argv: Optional[Sequence[str]] = None) -> int:
        args = parse_args(argv)
        setup_logging(verbose=args.verbose, log_file=args.log_file)

        try:
            ini = self._ini or IniConfig.from_env_or_default()
            settings = ini.load_settings()
        except ConfigError as exc:
            logger.debug("config: %s", exc)
            print(f"Ошибка конфигурации: {exc}")
            return EXIT_FATAL
        if ini.ini_path is not None:
            logger.debug("settings file: %s", ini.ini_path)

        self._controller = AppController(settings=settings)
        return self._controller.run(args)
