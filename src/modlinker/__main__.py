"""Entry point for the ``modlinker`` command."""

import logging
import sys

from modlinker.cli import build_parser, run, settings_from_args
from modlinker.errors import ModManagerError

logger = logging.getLogger("modlinker")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )
    for name in ("py7zr", "rarfile"):
        logging.getLogger(name).setLevel(logging.WARNING)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args)
    _configure_logging(settings.log_level)

    try:
        run(args, settings)
    except (ModManagerError, OSError, ValueError) as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
