""" Package wide defaults, read from the environment or a .env / settings.ini file """

import logging

from decouple import config


def _optional_int(value):
    return int(value) if value not in (None, '') else None


DEFAULT_SEED = config('ARRAYRQMC_SEED', default='', cast=_optional_int)
LOG_LEVEL = config('ARRAYRQMC_LOG_LEVEL', default='WARNING')
DIGITAL_BITS = config('ARRAYRQMC_DIGITAL_BITS', default=31, cast=int)
CI_LEVEL = config('ARRAYRQMC_CI_LEVEL', default=0.9, cast=float)


def configure_logging(level=None):
    """ Install a basic console handler for the arrayrqmc loggers. """
    level = LOG_LEVEL if level is None else level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(format='%(asctime)s %(name)s %(levelname)s: %(message)s')
    logging.getLogger('arrayrqmc').setLevel(level)
    return logging.getLogger('arrayrqmc')
