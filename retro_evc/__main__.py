"""Entry point: python -m retro_evc"""

import logging
import sys

from .api import main
from .config import load_config
from .errors import ConfigError

logger = logging.getLogger("retro_evc")


def run() -> None:
    try:
        load_config()
    except ConfigError as e:
        logger.error(str(e))
        sys.exit(1)
    main()


if __name__ == "__main__":
    run()
