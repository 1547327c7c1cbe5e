"""Точка входа в приложение."""
import sys

from image_optimizer.app import ImageOptimizerApp


def main() -> None:
    """Разбирает аргументы, выполняет запуск и завершает процесс с его кодом."""
    app = ImageOptimizerApp()
    sys.exit(app.run())


if __name__ == "__main__":
    main()
